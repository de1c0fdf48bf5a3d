# chain_scanner/db_class/base_repository.py
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import aiomysql
from .mysql_connector import MySQLConnector


class BaseRepository:
    """
    Общая часть репозиториев сканера: пул соединений MySQLConnector
    и транзакция на одном соединении.
    """
    def __init__(self, connector: MySQLConnector):
        self._connector = connector
        self._pool: Optional[aiomysql.Pool] = None

    async def connect(self) -> aiomysql.Pool:
        if self._pool is None:
            self._pool = await self._connector.get_pool()
        return self._pool

    async def release(self):
        """Закрывает пул коннектора. Следующий connect() создаст его заново."""
        await self._connector.close_pool()
        self._pool = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiomysql.Connection]:
        """
        begin -> (тело) -> commit. При любом исключении: rollback и повторный raise.
        """
        pool = await self.connect()
        async with pool.acquire() as conn:
            await conn.begin()
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
