import asyncio
import logging
import httpx
import json
from typing import Any, Dict, List, Optional, Sequence

from ..block_indexer.scan_config import Listener
from ..block_indexer.types import ChainStatus
from .chain_client_interface import AbstractChainClient

logger = logging.getLogger(__name__)


class AElfAPIError(Exception):
    """Кастомное исключение для всех ошибок web API ноды AElf."""
    pass


class AElfAPIClient(AbstractChainClient):
    """
    Реализация клиента для web API ноды AElf (/api/blockChain/...).
    """
    def __init__(self,
                 base_url: str,
                 page_size: int = 100,
                 delay_seconds: float = 0.0,
                 lock: Optional[asyncio.Lock] = None,
                 timeout: int = 15,
                 proxy_url: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None):

        self._base_url = base_url.rstrip('/')
        self._page_size = page_size
        self._delay = delay_seconds
        self._lock = lock or asyncio.Lock() # Общая блокировка для паузы между запросами
        self._last_request_time = 0.0

        proxy = proxy_url or None
        self._client = client or httpx.AsyncClient(timeout=timeout, proxy=proxy)

    async def close(self):
        await self._client.aclose()

    async def _throttle(self):
        """Выдерживает паузу delay_seconds между стартами запросов. Сами запросы идут вне блокировки."""
        if self._delay <= 0:
            return
        async with self._lock:
            now = asyncio.get_running_loop().time()
            time_since_last = now - self._last_request_time
            sleep_duration = 0.0
            if time_since_last < self._delay:
                sleep_duration = self._delay - time_since_last
                await asyncio.sleep(sleep_duration)
            self._last_request_time = now + sleep_duration

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        await self._throttle()
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error for {e.request.url}: {e.response.status_code} - {e.response.text}")
            raise AElfAPIError(f"HTTP error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Network error for {e.request.url}: {e}")
            raise AElfAPIError(f"Network error: {e}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Failed to decode JSON response from {url}: {e}")
            raise AElfAPIError(f"JSON decode error: {e}") from e

    async def chain_status(self) -> ChainStatus:
        data = await self._request('/api/blockChain/chainStatus')
        try:
            return ChainStatus(
                best_height=int(data['BestChainHeight']),
                lib_height=int(data['LastIrreversibleBlockHeight']),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AElfAPIError(f"Invalid chainStatus response: {data}") from e

    async def get_block_by_height(self, height: int) -> Dict[str, Any]:
        block = await self._request('/api/blockChain/blockByHeight', {
            'blockHeight': height,
            'includeTransactions': 'true',
        })
        if not block or 'Header' not in block:
            raise AElfAPIError(f"Invalid block response for height {height}: {block}")
        return block

    async def get_transaction_results(self, block: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Забирает результаты всех транзакций блока страницами по page_size.
        """
        total = int(block.get('Body', {}).get('TransactionsCount', 0))
        results: List[Dict[str, Any]] = []
        while len(results) < total:
            page = await self._request('/api/blockChain/transactionResults', {
                'blockHash': block['BlockHash'],
                'offset': len(results),
                'limit': self._page_size,
            })
            if not page:
                logger.warning(f"Block {block['BlockHash']}: got {len(results)} of {total} transaction results")
                break
            results.extend(page)
        return results

    async def query_transactions_by_height(self, height: int) -> Dict[str, Any]:
        block = await self.get_block_by_height(height)
        transactions = await self.get_transaction_results(block)
        return {'blockInfo': block, 'transactions': transactions}

    async def query_blocks_and_txs_by_bloom(self, height: int, listeners: Sequence[Listener]) -> Dict[str, Any]:
        block = await self.get_block_by_height(height)
        transactions = await self.get_transaction_results(block)

        tagged_txs = []
        block_tags = {listener.tag for listener in listeners if listener.filter(block)}
        for tx in transactions:
            tx_tags = [listener.tag for listener in listeners if listener.filter(tx)]
            block_tags.update(tx_tags)
            tagged_txs.append({**tx, 'scanTags': tx_tags})

        # keep listener order for stable bucket output
        ordered_tags = [listener.tag for listener in listeners if listener.tag in block_tags]
        return {
            'block': {**block, 'scanTags': ordered_tags},
            'transactions': tagged_txs,
        }
