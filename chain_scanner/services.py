from . import config

from .block_indexer.scan_config import build_scan_config, parse_height_list
from .block_indexer.scanner import Scanner
from .db_class.mysql_connector import MySQLConnector
from .db_class.repositories.block_repository import BlockRepository
from .providers.aelf_api_client import AElfAPIClient
from .utils.listener_filters import parse_listeners

"""
This file acts as a Service Locator.
It creates SINGLE INSTANCES of all shared services.
The entry point imports it and runs the configured scanner.
"""

scan_config = build_scan_config(
    interval=config.SCANNER_INTERVAL,
    page_size=config.SCANNER_PAGE_SIZE,
    concurrent_query_limit=config.SCANNER_CONCURRENT_QUERY_LIMIT,
    start_height=config.SCANNER_START_HEIGHT,
    missing_height_list=parse_height_list(config.SCANNER_MISSING_HEIGHTS),
    max_insert=config.SCANNER_MAX_INSERT,
    scan_mode=config.SCANNER_MODE,
    listeners=parse_listeners(config.SCANNER_LISTENERS),
    unconfirmed_block_buffer=config.SCANNER_UNCONFIRMED_BLOCK_BUFFER,
    mined_speed=config.SCANNER_MINED_SPEED,
    loop_coef=config.SCANNER_LOOP_COEF,
)

db_connector = MySQLConnector(
    host=config.DB_HOST,
    port=config.DB_PORT,
    user=config.DB_USER,
    password=config.DB_PASSWORD,
    db=config.DB_NAME,
    minsize=1,
    maxsize=config.DB_POOL_MAXSIZE,
    autocommit=False,
)

# --- Sink (single connector) ---
block_repository = BlockRepository(db_connector)

# --- AElf node client ---
aelf_client = AElfAPIClient(
    base_url=config.AELF_NODE_URL,
    page_size=scan_config.page_size,
    delay_seconds=config.AELF_API_REQUEST_DELAY,
    timeout=config.AELF_API_TIMEOUT,
    proxy_url=config.AELF_API_PROXY_URL,
)

scanner = Scanner(block_repository, scan_config, aelf_client)
