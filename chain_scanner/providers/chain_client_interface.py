from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence

from ..block_indexer.types import ChainStatus


class AbstractChainClient(ABC):
    """
    Абстрактный базовый класс (интерфейс) для клиента ноды блокчейна.
    Определяет методы, которые нужны сканеру, позволяя подменять
    реализацию (HTTP API ноды, фейк в тестах и т.д.).
    """

    @abstractmethod
    async def chain_status(self) -> ChainStatus:
        """Получить best height и LIB height."""
        pass

    @abstractmethod
    async def query_transactions_by_height(self, height: int) -> Dict[str, Any]:
        """
        Получить блок и все его транзакции.

        :return: {"blockInfo": block, "transactions": [tx_result, ...]}
        """
        pass

    @abstractmethod
    async def query_blocks_and_txs_by_bloom(self, height: int, listeners: Sequence[Any]) -> Dict[str, Any]:
        """
        Получить блок и транзакции, размеченные тегами слушателей.

        :return: {"block": {..., "scanTags": [...]}, "transactions": [{..., "scanTags": [...]}, ...]}
        """
        pass
