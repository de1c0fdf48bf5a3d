# chain_scanner/db_class/repositories/block_repository.py
import logging
from typing import Any, Dict, List, Sequence, Tuple
import aiomysql

from ...block_indexer.types import FetchResult, ScanPhase, block_height
from ..base_repository import BaseRepository

logger = logging.getLogger(__name__)

BlockRow = Tuple[int, str, str, int, int, str]
TxRow = Tuple[str, int, str, str, str, str, str]


def block_row(block: Dict[str, Any]) -> BlockRow:
    header = block['Header']
    return (
        block_height(block),
        block['BlockHash'],
        header.get('PreviousBlockHash', ''),
        header.get('ChainId', 0),
        int(block.get('Body', {}).get('TransactionsCount', 0)),
        header.get('Time', ''),
    )


def tx_rows(block: Dict[str, Any], transactions: Sequence[Dict[str, Any]]) -> List[TxRow]:
    height = block_height(block)
    rows = []
    for tx_result in transactions:
        tx = tx_result.get('Transaction') or {}
        rows.append((
            tx_result['TransactionId'],
            height,
            block['BlockHash'],
            tx.get('From', ''),
            tx.get('To', ''),
            tx.get('MethodName', ''),
            tx_result.get('Status', ''),
        ))
    return rows


def split_by_finality(result: FetchResult) -> Tuple[List[int], List[int]]:
    """
    Делит индексы блоков результата на финализированные и неподтвержденные.

    GAP целиком финализирован. MISSING и LOOP делятся по lib_height, прочитанному
    перед запросом пачки: явно заданная высота может оказаться выше LIB.
    """
    if result.type is ScanPhase.GAP or result.lib_height is None:
        return list(range(len(result.blocks))), []
    confirmed, unconfirmed = [], []
    for index, block in enumerate(result.blocks):
        if block_height(block) <= result.lib_height:
            confirmed.append(index)
        else:
            unconfirmed.append(index)
    return confirmed, unconfirmed


class BlockRepository(BaseRepository):
    """
    MySQL-хранилище для Scanner (реализует init / insert / destroy).

    Таблицы:
    - blocks_0 / transactions_0 - финализированные данные;
    - blocks_unconfirmed / transactions_unconfirmed - окно (LIB, best], перезаписывается каждый цикл;
    - listener_blocks / listener_transactions - результаты режима LISTENER по тегам.
    Все вставки - upsert, повторная доставка пачки безопасна.
    """

    async def init(self):
        await self.connect()
        logger.info("BlockRepository initialized.")

    async def destroy(self):
        await self.release()
        logger.info("BlockRepository destroyed.")

    async def insert(self, result: FetchResult):
        try:
            async with self.transaction() as conn:
                if result.buckets is not None:
                    await self._insert_listener_buckets(conn, result.buckets)
                else:
                    await self._insert_blocks(conn, result)
        except Exception as e:
            logger.error(f"BlockRepository: Failed to insert {result.type.value} result. Transaction rolled back. Error: {e}")
            raise
        logger.info(f"BlockRepository: Committed {result.type.value} result ({len(result.blocks)} blocks).")

    async def _insert_blocks(self, conn: aiomysql.Connection, result: FetchResult):
        confirmed, unconfirmed = split_by_finality(result)

        await self.upsert_blocks(conn, 'blocks_0', [block_row(result.blocks[i]) for i in confirmed])
        await self.upsert_transactions(conn, 'transactions_0', [
            row for i in confirmed for row in tx_rows(result.blocks[i], result.txs[i])
        ])

        unconfirmed_heights = [block_height(result.blocks[i]) for i in unconfirmed]
        # content of an unconfirmed height may change between cycles
        await self.delete_unconfirmed_transactions(conn, unconfirmed_heights)
        await self.upsert_blocks(conn, 'blocks_unconfirmed', [block_row(result.blocks[i]) for i in unconfirmed])
        await self.upsert_transactions(conn, 'transactions_unconfirmed', [
            row for i in unconfirmed for row in tx_rows(result.blocks[i], result.txs[i])
        ])

        if result.lib_height is not None:
            await self.prune_unconfirmed(conn, result.lib_height)

    async def _insert_listener_buckets(self, conn: aiomysql.Connection, buckets: Dict[str, List[Dict[str, Any]]]):
        block_rows = []
        transaction_rows = []
        for tag, blocks in buckets.items():
            for block in blocks:
                block_rows.append((tag, *block_row(block)))
                transaction_rows.extend((tag, *row) for row in tx_rows(block, block.get('transactionList', [])))
        if block_rows:
            sql = """
                INSERT INTO listener_blocks
                    (tag, block_height, block_hash, pre_block_hash, chain_id, tx_count, block_time)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE block_hash = VALUES(block_hash), tx_count = VALUES(tx_count)
            """
            async with conn.cursor() as cursor:
                await cursor.executemany(sql, block_rows)
        if transaction_rows:
            sql = """
                INSERT INTO listener_transactions
                    (tag, tx_id, block_height, block_hash, address_from, address_to, method, tx_status)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE block_hash = VALUES(block_hash), tx_status = VALUES(tx_status)
            """
            async with conn.cursor() as cursor:
                await cursor.executemany(sql, transaction_rows)

    async def upsert_blocks(self, conn: aiomysql.Connection, table: str, rows: List[BlockRow]):
        if not rows:
            return
        sql = f"""
            INSERT INTO {table}
                (block_height, block_hash, pre_block_hash, chain_id, tx_count, block_time)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON DUPLICATE KEY UPDATE
                block_hash = VALUES(block_hash),
                pre_block_hash = VALUES(pre_block_hash),
                tx_count = VALUES(tx_count),
                block_time = VALUES(block_time)
        """
        async with conn.cursor() as cursor:
            await cursor.executemany(sql, rows)

    async def upsert_transactions(self, conn: aiomysql.Connection, table: str, rows: List[TxRow]):
        if not rows:
            return
        sql = f"""
            INSERT INTO {table}
                (tx_id, block_height, block_hash, address_from, address_to, method, tx_status)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON DUPLICATE KEY UPDATE
                block_height = VALUES(block_height),
                block_hash = VALUES(block_hash),
                tx_status = VALUES(tx_status)
        """
        async with conn.cursor() as cursor:
            await cursor.executemany(sql, rows)

    async def delete_unconfirmed_transactions(self, conn: aiomysql.Connection, heights: List[int]):
        if not heights:
            return
        format_strings = ','.join(['%s'] * len(heights))
        sql = f"DELETE FROM transactions_unconfirmed WHERE block_height IN ({format_strings})"
        async with conn.cursor() as cursor:
            await cursor.execute(sql, tuple(heights))

    async def prune_unconfirmed(self, conn: aiomysql.Connection, lib_height: int):
        """Удаляет из неподтвержденных таблиц все, что уже финализировано."""
        async with conn.cursor() as cursor:
            await cursor.execute("DELETE FROM blocks_unconfirmed WHERE block_height <= %s", (lib_height,))
            await cursor.execute("DELETE FROM transactions_unconfirmed WHERE block_height <= %s", (lib_height,))
