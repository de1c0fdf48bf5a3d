"""
Shared fakes for scanner tests: an in-memory chain and a recording sink.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import pytest

from chain_scanner.block_indexer.types import ChainStatus, FetchResult
from chain_scanner.providers.chain_client_interface import AbstractChainClient


def make_block(height: int, tx_count: int = 1, block_hash: Optional[str] = None) -> Dict[str, Any]:
    return {
        'BlockHash': block_hash or f"hash-{height}",
        'Header': {'Height': str(height), 'PreviousBlockHash': f"hash-{height - 1}", 'ChainId': 'AELF'},
        'Body': {'TransactionsCount': tx_count},
    }


def make_tx(tx_id: str, height: int, to: str = 'contract') -> Dict[str, Any]:
    return {
        'TransactionId': tx_id,
        'Status': 'MINED',
        'Transaction': {'From': 'sender', 'To': to, 'MethodName': 'Transfer'},
        'BlockNumber': height,
        'Logs': [],
    }


class FakeChainClient(AbstractChainClient):
    """
    In-memory chain. Each chain_status() call pops the next status from the
    script; the last one repeats.
    """

    def __init__(self, statuses: Sequence[ChainStatus] = (), query_delay: float = 0):
        self.statuses: List[ChainStatus] = list(statuses) or [ChainStatus(best_height=0, lib_height=0)]
        self.status_calls = 0
        self.queried_heights: List[int] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.query_delay = query_delay
        self.fail_status_at: Optional[int] = None
        self.fail_heights: set = set()

    async def chain_status(self) -> ChainStatus:
        self.status_calls += 1
        if self.fail_status_at is not None and self.status_calls >= self.fail_status_at:
            raise RuntimeError('chain status unavailable')
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    async def _enter(self, height: int):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.query_delay)
            if height in self.fail_heights:
                raise RuntimeError(f"node failed on height {height}")
            self.queried_heights.append(height)
        finally:
            self.in_flight -= 1

    async def query_transactions_by_height(self, height: int) -> Dict[str, Any]:
        await self._enter(height)
        return {'blockInfo': make_block(height), 'transactions': [make_tx(f"tx-{height}", height)]}

    async def query_blocks_and_txs_by_bloom(self, height: int, listeners) -> Dict[str, Any]:
        await self._enter(height)
        tx = {**make_tx(f"tx-{height}", height), 'scanTags': [listeners[0].tag]}
        return {'block': {**make_block(height), 'scanTags': [listeners[0].tag]}, 'transactions': [tx]}


class RecordingSink:
    """Structural DataSink that keeps every inserted result."""

    def __init__(self, fail_on_insert: Optional[int] = None):
        self.inserted: List[FetchResult] = []
        self.init_calls = 0
        self.destroy_calls = 0
        self.fail_on_insert = fail_on_insert
        self.on_insert = None

    async def init(self):
        self.init_calls += 1

    async def insert(self, result: FetchResult):
        if self.fail_on_insert is not None and len(self.inserted) + 1 >= self.fail_on_insert:
            raise RuntimeError('sink is down')
        self.inserted.append(result)
        if self.on_insert is not None:
            self.on_insert(result)

    async def destroy(self):
        self.destroy_calls += 1

    def heights(self) -> List[List[int]]:
        return [result.heights() for result in self.inserted]


@pytest.fixture
def sink():
    return RecordingSink()
