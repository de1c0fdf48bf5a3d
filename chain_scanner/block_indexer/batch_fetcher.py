# chain_scanner/block_indexer/batch_fetcher.py
import asyncio
import logging
from typing import Any, Dict, List, Sequence

from ..providers.chain_client_interface import AbstractChainClient
from .scan_config import ScanConfig, ScanMode
from .types import FetchResult, InvariantViolation, ScanPhase

logger = logging.getLogger(__name__)


def chunked(items: Sequence[int], size: int) -> List[List[int]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchFetcher:
    """
    BatchFetcher (Выборка блоков пачками)

    Делит высоты на группы по concurrent_query_limit. Запросы внутри группы
    идут параллельно, группы - строго последовательно, поэтому одновременно
    в полете не больше concurrent_query_limit запросов.
    """

    def __init__(self, api_client: AbstractChainClient, config: ScanConfig):
        self._api = api_client
        self._config = config

    async def fetch(self, heights: Sequence[int], phase: ScanPhase) -> FetchResult:
        if self._config.scan_mode is ScanMode.ALL:
            return await self._fetch_all(heights, phase)
        if self._config.scan_mode is ScanMode.LISTENER:
            return await self._fetch_with_bloom(heights, phase)
        raise InvariantViolation(f"Invalid scan mode: {self._config.scan_mode}")

    async def _gather_chunks(self, heights: Sequence[int], query) -> List[Any]:
        limit = self._config.concurrent_query_limit
        results: List[Any] = []
        for index, group in enumerate(chunked(heights, limit)):
            logger.debug(f"Query {len(group)} heights in parallel (group {index}): {group[0]}..{group[-1]}")
            results.extend(await asyncio.gather(*(query(height) for height in group)))
        return results

    async def _fetch_all(self, heights: Sequence[int], phase: ScanPhase) -> FetchResult:
        logger.info(f"Start query {len(heights)} blocks, {self._config.concurrent_query_limit} in parallel")
        responses = await self._gather_chunks(heights, self._api.query_transactions_by_height)

        result = FetchResult(type=phase)
        for response in responses:
            result.blocks.append(response['blockInfo'])
            result.txs.append(response['transactions'])
        logger.info(f"End query {len(heights)} blocks")
        return result

    async def _fetch_with_bloom(self, heights: Sequence[int], phase: ScanPhase) -> FetchResult:
        listeners = self._config.listeners

        async def query(height: int) -> Dict[str, Any]:
            return await self._api.query_blocks_and_txs_by_bloom(height, listeners)

        responses = await self._gather_chunks(heights, query)

        buckets: Dict[str, List[Dict[str, Any]]] = {tag: [] for tag in self._config.listener_tags}
        for response in responses:
            if not response or not response.get('block'):
                continue
            block = response['block']
            transactions = response.get('transactions') or []
            for tag in block.get('scanTags', []):
                if tag not in buckets:
                    logger.warning(f"Block tagged with unknown listener '{tag}', skipped for this tag")
                    continue
                buckets[tag].append({
                    **block,
                    'transactionList': [tx for tx in transactions if tag in tx.get('scanTags', [])],
                })

        return FetchResult(
            type=phase,
            buckets=buckets,
            largest_height=heights[-1] if heights else self._config.start_height - 1,
        )
