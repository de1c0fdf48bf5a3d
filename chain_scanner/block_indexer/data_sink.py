# chain_scanner/block_indexer/data_sink.py
from typing import Protocol, runtime_checkable

from .types import FetchResult


@runtime_checkable
class DataSink(Protocol):
    """
    Хранилище, в которое сканер отдает результаты.

    Проверяется структурно: подходит любой объект с async-методами
    init / insert / destroy, наследование не требуется.
    """

    async def init(self) -> None:
        """Вызывается один раз в фазе INIT."""
        ...

    async def insert(self, result: FetchResult) -> None:
        """Сохранить пачку. Доставка at-least-once, повторная вставка должна быть безопасной."""
        ...

    async def destroy(self) -> None:
        """Освобождение ресурсов после фатальной ошибки."""
        ...
