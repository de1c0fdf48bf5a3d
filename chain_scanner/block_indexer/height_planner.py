# chain_scanner/block_indexer/height_planner.py
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from .scan_config import ScanConfig, ScanMode
from .types import ChainStatus, InvariantViolation, LoopCursor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeightPlan:
    """
    Высоты для одного цикла.

    finalized - высоты <= LIB, fresh - новые неподтвержденные высоты.
    В режиме LISTENER finalized пуст, а весь диапазон лежит в fresh.
    """
    finalized: List[int] = field(default_factory=list)
    fresh: List[int] = field(default_factory=list)

    @property
    def heights(self) -> List[int]:
        return self.finalized + self.fresh


def skip_threshold(config: ScanConfig) -> int:
    return math.ceil(config.interval * config.mined_speed * config.loop_coef / 1000)


def should_skip(status: ChainStatus, cursor: LoopCursor, config: ScanConfig) -> bool:
    """Цепочка выросла слишком мало с прошлого цикла - пропускаем тик."""
    if cursor.last_best_height is None:
        return False
    return status.best_height - cursor.last_best_height <= skip_threshold(config)


def plan_heights(status: ChainStatus, cursor: LoopCursor, config: ScanConfig) -> Optional[HeightPlan]:
    """
    Возвращает план выборки на цикл или None, если цикл нужно пропустить.

    В режиме ALL высоты из (lib, last_best] не запрашиваются повторно: их берут
    из результата прошлого цикла (см. result_merger). Если прошлый результат
    пуст, удерживать нечего, и граница fresh опускается до LIB.
    """
    if should_skip(status, cursor, config):
        logger.info(f"Skip loop: best height {status.best_height}, last best height {cursor.last_best_height}")
        return None

    candidates = list(range(cursor.current_queries + 1, status.best_height + 1))

    if config.scan_mode is ScanMode.LISTENER:
        return HeightPlan(fresh=candidates)

    if config.scan_mode is not ScanMode.ALL:
        raise InvariantViolation(f"Invalid scan mode: {config.scan_mode}")

    finalized = [h for h in candidates if h <= status.lib_height]
    if cursor.last_loop_result.blocks and cursor.last_best_height is not None:
        fresh_floor = max(cursor.last_best_height, status.lib_height)
    else:
        fresh_floor = status.lib_height
    fresh = [h for h in candidates if h > fresh_floor]
    return HeightPlan(finalized=finalized, fresh=fresh)
