# chain_scanner/block_indexer/scan_config.py
import enum
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .types import ConfigurationError


class ScanMode(str, enum.Enum):
    ALL = 'all'
    LISTENER = 'listener'


_POSITIVE_OPTIONS = ('interval', 'page_size', 'concurrent_query_limit', 'max_insert')


def _parse_scan_mode(value: Union[str, ScanMode]) -> ScanMode:
    try:
        return ScanMode(value)
    except ValueError:
        raise ConfigurationError(f"Invalid scan mode: {value!r}") from None


def _validate(config: 'ScanConfig'):
    for name in _POSITIVE_OPTIONS:
        if getattr(config, name) <= 0:
            raise ConfigurationError(f"'{name}' must be positive, got {getattr(config, name)}")
    if config.start_height < 0:
        raise ConfigurationError(f"'start_height' must not be negative, got {config.start_height}")

    tags = [listener.tag for listener in config.listeners]
    if len(set(tags)) < len(tags):
        raise ConfigurationError('duplicated listener names are not allowed')
    if config.scan_mode is ScanMode.LISTENER and not tags:
        raise ConfigurationError("scan mode 'listener' requires at least one listener")


@dataclass(frozen=True)
class Listener:
    """
    Именованный фильтр для режима LISTENER.

    filter получает запись (блок или результат транзакции) и возвращает True,
    если запись относится к этому тегу.
    """
    tag: str
    filter: Callable[[Dict[str, Any]], bool]


@dataclass(frozen=True)
class ScanConfig:
    # interval between loop ticks, ms
    interval: int = 4000
    # transaction results per page
    page_size: int = 100
    # max queries in flight
    concurrent_query_limit: int = 40
    # first height to scan, inclusive
    start_height: int = 1
    missing_height_list: Tuple[int, ...] = ()
    # max heights per sink insert
    max_insert: int = 200
    scan_mode: ScanMode = ScanMode.ALL
    listeners: Tuple[Listener, ...] = ()
    unconfirmed_block_buffer: int = 60
    # mined blocks per second
    mined_speed: float = 2
    loop_coef: float = 0.6

    def __post_init__(self):
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, 'scan_mode', _parse_scan_mode(self.scan_mode))
        object.__setattr__(self, 'missing_height_list', tuple(int(h) for h in self.missing_height_list))
        object.__setattr__(self, 'listeners', tuple(self.listeners))
        _validate(self)

    @property
    def interval_seconds(self) -> float:
        return self.interval / 1000

    @property
    def listener_tags(self) -> Tuple[str, ...]:
        return tuple(listener.tag for listener in self.listeners)


_OPTION_NAMES = frozenset(f.name for f in fields(ScanConfig))


def build_scan_config(base: Optional[ScanConfig] = None, **options) -> ScanConfig:
    """
    Собирает и проверяет ScanConfig.

    Опции накладываются поверх base (или значений по умолчанию). Любая ошибка
    конфигурации приводит к ConfigurationError здесь, а не в рабочем цикле.
    """
    unknown = set(options) - _OPTION_NAMES
    if unknown:
        raise ConfigurationError(f"Unknown scan options: {', '.join(sorted(unknown))}")

    values = {f.name: getattr(base or ScanConfig(), f.name) for f in fields(ScanConfig)}
    values.update(options)

    return ScanConfig(**values)


def parse_height_list(raw: str) -> List[int]:
    """'1, 5,9' -> [1, 5, 9]"""
    return [int(item.strip()) for item in raw.split(',') if item.strip()]
