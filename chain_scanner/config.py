# Settings are read from the environment once, at import time.
# The entry point calls load_dotenv() before importing this module.
import os

# --- App ---
APP_ENV = os.getenv('APP_ENV', 'dev')
LOG_FILE = os.getenv('LOG_FILE') or None

# --- AElf node ---
AELF_NODE_URL = os.getenv('AELF_NODE_URL', 'http://127.0.0.1:8000')
AELF_API_TIMEOUT = int(os.getenv('AELF_API_TIMEOUT', '15'))
AELF_API_REQUEST_DELAY = float(os.getenv('AELF_API_REQUEST_DELAY', '0'))
AELF_API_PROXY_URL = os.getenv('AELF_API_PROXY_URL') or None

# --- MySQL ---
DB_HOST = os.getenv('DB_HOST', 'localhost')
DB_PORT = int(os.getenv('DB_PORT', '3306'))
DB_USER = os.getenv('DB_USER', 'root')
DB_PASSWORD = os.getenv('DB_PASSWORD', '')
DB_NAME = os.getenv('DB_NAME', 'aelf_scan')
DB_POOL_MAXSIZE = int(os.getenv('DB_POOL_MAXSIZE', '10'))

# --- Scanner ---
SCANNER_INTERVAL = int(os.getenv('SCANNER_INTERVAL', '4000'))  # ms
SCANNER_PAGE_SIZE = int(os.getenv('SCANNER_PAGE_SIZE', '100'))
SCANNER_CONCURRENT_QUERY_LIMIT = int(os.getenv('SCANNER_CONCURRENT_QUERY_LIMIT', '40'))
SCANNER_START_HEIGHT = int(os.getenv('SCANNER_START_HEIGHT', '1'))
SCANNER_MISSING_HEIGHTS = os.getenv('SCANNER_MISSING_HEIGHTS', '')
SCANNER_MAX_INSERT = int(os.getenv('SCANNER_MAX_INSERT', '200'))
SCANNER_MODE = os.getenv('SCANNER_MODE', 'all')
SCANNER_LISTENERS = os.getenv('SCANNER_LISTENERS', '')  # tag:contract_address,...
SCANNER_UNCONFIRMED_BLOCK_BUFFER = int(os.getenv('SCANNER_UNCONFIRMED_BLOCK_BUFFER', '60'))
SCANNER_MINED_SPEED = float(os.getenv('SCANNER_MINED_SPEED', '2'))
SCANNER_LOOP_COEF = float(os.getenv('SCANNER_LOOP_COEF', '0.6'))
