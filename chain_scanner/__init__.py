from .block_indexer import (
    ChainStatus,
    ConfigurationError,
    DataSink,
    FetchResult,
    Listener,
    PeriodicScheduler,
    Scanner,
    ScanConfig,
    ScanMode,
    ScanPhase,
    build_scan_config,
)
