import asyncio
import logging
from typing import Optional
import aiomysql

logger = logging.getLogger(__name__)


class MySQLConnector:
    """
    Владелец пула соединений aiomysql.
    Пул создается лениво и один на все репозитории.
    """
    def __init__(self,
                 host: str = 'localhost',
                 port: int = 3306,
                 user: str = 'root',
                 password: str = '',
                 db: str = 'aelf_scan',
                 minsize: int = 1,
                 maxsize: int = 10,
                 autocommit: bool = False):
        self._params = dict(
            host=host,
            port=port,
            user=user,
            password=password,
            db=db,
            minsize=minsize,
            maxsize=maxsize,
            autocommit=autocommit,
            charset='utf8mb4',
        )
        self._pool: Optional[aiomysql.Pool] = None
        self._lock = asyncio.Lock()

    async def init_pool(self) -> aiomysql.Pool:
        async with self._lock:
            if self._pool is None:
                logger.info(f"Creating MySQL pool for {self._params['host']}:{self._params['port']}/{self._params['db']}")
                self._pool = await aiomysql.create_pool(**self._params)
        return self._pool

    async def get_pool(self) -> aiomysql.Pool:
        if self._pool is None:
            return await self.init_pool()
        return self._pool

    async def close_pool(self):
        async with self._lock:
            if self._pool is not None:
                self._pool.close()
                await self._pool.wait_closed()
                self._pool = None
                logger.info("MySQL pool closed.")
