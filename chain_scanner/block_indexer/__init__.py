from .data_sink import DataSink
from .scan_config import Listener, ScanConfig, ScanMode, build_scan_config
from .scanner import Scanner
from .scheduler import PeriodicScheduler
from .types import (
    ChainStatus,
    ConfigurationError,
    FetchResult,
    InvariantViolation,
    LoopCursor,
    ScannerError,
    ScanPhase,
)
