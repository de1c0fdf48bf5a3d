# chain_scanner/block_indexer/result_merger.py
from typing import Optional

from .types import FetchResult, InvariantViolation, block_height


def merge_results(fresh_result: FetchResult,
                  finalized_count: int,
                  fresh_count: int,
                  lib_height: int,
                  last_best_height: Optional[int],
                  previous_result: FetchResult) -> FetchResult:
    """
    Сшивает результат текущего цикла с неподтвержденным хвостом прошлого.

    Итог: [финализированные] + [удержанные из прошлого цикла, lib < h <= last_best] + [новые].
    Порядок высот возрастающий по построению, txs переставляются так же, как blocks.
    """
    if not previous_result.blocks:
        return fresh_result

    if len(fresh_result.blocks) != finalized_count + fresh_count:
        raise InvariantViolation(
            f"Expected {finalized_count + fresh_count} blocks to merge, got {len(fresh_result.blocks)}")

    split = finalized_count
    kept_blocks = []
    kept_txs = []
    if last_best_height is not None:
        for block, txs in zip(previous_result.blocks, previous_result.txs):
            if lib_height < block_height(block) <= last_best_height:
                kept_blocks.append(block)
                kept_txs.append(txs)

    return FetchResult(
        type=fresh_result.type,
        blocks=fresh_result.blocks[:split] + kept_blocks + fresh_result.blocks[split:],
        txs=fresh_result.txs[:split] + kept_txs + fresh_result.txs[split:],
        lib_height=fresh_result.lib_height,
        best_height=fresh_result.best_height,
    )
