# chain_scanner/block_indexer/types.py
import enum
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


class ScannerError(Exception):
    """Базовое исключение сканера."""
    pass


class ConfigurationError(ScannerError):
    """Некорректная конфигурация (дубли тегов, неизвестный режим и т.д.)."""
    pass


class InvariantViolation(ScannerError):
    """Состояние, которое не должно достигаться при корректной конфигурации."""
    pass


class ScanPhase(str, enum.Enum):
    INIT = 'init'
    MISSING = 'missing'
    GAP = 'gap'
    LOOP = 'loop'
    ERROR = 'error'


@dataclass(frozen=True)
class ChainStatus:
    best_height: int
    lib_height: int


def block_height(block: Dict[str, Any]) -> int:
    """Высота блока в формате AElf (Header.Height приходит строкой)."""
    return int(block['Header']['Height'])


@dataclass
class FetchResult:
    """
    Результат выборки блоков.

    blocks[i] и txs[i] всегда относятся к одной высоте, порядок - по возрастанию высоты.
    В режиме LISTENER заполняются buckets ({tag: [block, ...]}) и largest_height.
    """
    type: ScanPhase
    blocks: List[Dict[str, Any]] = field(default_factory=list)
    txs: List[List[Dict[str, Any]]] = field(default_factory=list)
    lib_height: Optional[int] = None
    best_height: Optional[int] = None
    buckets: Optional[Dict[str, List[Dict[str, Any]]]] = None
    largest_height: Optional[int] = None

    def heights(self) -> List[int]:
        return [block_height(block) for block in self.blocks]


@dataclass(frozen=True)
class LoopCursor:
    """
    Позиция сканера.

    current_queries - максимальная высота, уже записанная как финализированная.
    last_best_height - best height на конец предыдущего цикла (None до первого цикла).
    last_loop_result - результат предыдущего цикла, нужен только ради неподтвержденного хвоста.
    """
    current_queries: int
    last_best_height: Optional[int] = None
    last_loop_result: FetchResult = field(default_factory=lambda: FetchResult(type=ScanPhase.LOOP))

    def advance(self, lib_height: int, best_height: int,
                loop_result: Optional[FetchResult] = None) -> 'LoopCursor':
        # current_queries never moves backwards
        return replace(
            self,
            current_queries=max(self.current_queries, lib_height),
            last_best_height=best_height,
            last_loop_result=loop_result if loop_result is not None else self.last_loop_result,
        )
