# chain_scanner/block_indexer/scanner.py
import asyncio
import logging
from typing import Callable, List, Optional

from ..providers.chain_client_interface import AbstractChainClient
from .batch_fetcher import BatchFetcher, chunked
from .data_sink import DataSink
from .height_planner import plan_heights
from .result_merger import merge_results
from .scan_config import ScanConfig, ScanMode
from .scheduler import PeriodicScheduler
from .types import ChainStatus, ConfigurationError, InvariantViolation, LoopCursor, ScanPhase

logger = logging.getLogger(__name__)


class Scanner:
    """
    Scanner (Оркестратор сканирования)

    Прогоняет фазы INIT -> MISSING -> GAP -> LOOP:
    - MISSING: догружает явно заданные высоты (missing_height_list);
    - GAP: догружает историю от start_height до текущего LIB;
    - LOOP: периодически опрашивает цепочку и отдает в хранилище
      финализированные и неподтвержденные блоки.
    Любая ошибка переводит сканер в ERROR, останавливает таймер, вызывает
    destroy() у хранилища и пробрасывается вызывающему. Повтор - только через restart().
    """

    def __init__(self,
                 data_sink: DataSink,
                 config: ScanConfig,
                 api_client: AbstractChainClient,
                 scheduler_factory: Callable[[float], PeriodicScheduler] = PeriodicScheduler):
        self._api = api_client
        self._scheduler_factory = scheduler_factory
        self._run_finished: Optional[asyncio.Event] = None
        self._setup(data_sink, config)

    def _setup(self, data_sink: DataSink, config: ScanConfig):
        if not isinstance(data_sink, DataSink):
            raise ConfigurationError("data_sink must provide async init(), insert() and destroy()")
        self._phase = ScanPhase.INIT
        self._config = config
        self._data_sink = data_sink
        self._fetcher = BatchFetcher(self._api, config)
        self._scheduler = self._scheduler_factory(config.interval_seconds)
        self._cursor = LoopCursor(current_queries=config.start_height - 1)
        self._loop_times = 0
        self._stop_requested = False

    def scan_phase(self) -> ScanPhase:
        return self._phase

    @property
    def cursor(self) -> LoopCursor:
        return self._cursor

    @property
    def loop_times(self) -> int:
        return self._loop_times

    async def restart(self, data_sink: DataSink, config: ScanConfig,
                      api_client: Optional[AbstractChainClient] = None):
        logger.info("restart scan")
        previous_run = self._run_finished
        if previous_run is not None and not previous_run.is_set():
            # the old run finishes its current tick against the old sink
            self.stop()
            await previous_run.wait()
        if api_client is not None:
            self._api = api_client
        self._setup(data_sink, config)
        await self.start()

    def stop(self):
        """
        Кооперативная остановка: текущая пачка или тик доработает, новых не будет.
        В фазах MISSING и GAP проверяется после каждой вставленной пачки.
        """
        logger.info("stop scan requested")
        self._stop_requested = True
        self._scheduler.end_timer()

    async def start(self):
        logger.info("start scan")
        finished = asyncio.Event()
        self._run_finished = finished
        try:
            await self._data_sink.init()
            self._phase = ScanPhase.MISSING
            await self._query_missing_heights()
            if self._stop_requested:
                logger.info("scan stopped after missing heights")
                return
            self._phase = ScanPhase.GAP
            await self._query_gap_heights()
            if self._stop_requested:
                logger.info("scan stopped before loop")
                return
            self._phase = ScanPhase.LOOP
            await self._query_in_loop()
        except Exception as e:
            logger.error(f"Scan failed in phase '{self._phase.value}': {e}", exc_info=True)
            logger.info("scan is shutdown due to error in program, you can restart scan or trace the error")
            self._phase = ScanPhase.ERROR
            self._scheduler.end_timer()
            await self._destroy_sink()
            raise
        finally:
            finished.set()

    async def _destroy_sink(self):
        try:
            await self._data_sink.destroy()
        except Exception as e:
            logger.error(f"CRITICAL: data sink destroy() failed: {e}", exc_info=True)

    async def _get_status(self) -> ChainStatus:
        status = await self._api.chain_status()
        logger.info(f"get best height {status.best_height}, get LIB height {status.lib_height}")
        return status

    async def _query_missing_heights(self):
        logger.info("start scan missing heights")
        for heights in chunked(self._config.missing_height_list, self._config.max_insert):
            status = await self._get_status()
            result = await self._fetcher.fetch(heights, ScanPhase.MISSING)
            result.lib_height = status.lib_height
            result.best_height = status.best_height
            await self._data_sink.insert(result)
            if self._stop_requested:
                logger.info("scan stopped during missing heights")
                return
        logger.info("end scan missing heights")

    async def _query_gap_heights(self):
        logger.info("start query gap heights")
        start_height = self._config.start_height
        status = await self._get_status()
        if status.lib_height <= start_height:
            logger.info(f"No gap to fill: LIB {status.lib_height} <= start height {start_height}")
            return

        next_height = start_height
        while next_height <= status.lib_height:
            last_height = min(next_height + self._config.max_insert - 1, status.lib_height)
            heights: List[int] = list(range(next_height, last_height + 1))
            result = await self._fetcher.fetch(heights, ScanPhase.GAP)
            result.lib_height = status.lib_height
            result.best_height = status.best_height
            await self._data_sink.insert(result)
            logger.info(f"Gap heights {next_height}-{last_height} inserted")
            if self._stop_requested:
                self._cursor = LoopCursor(
                    current_queries=max(self._cursor.current_queries, last_height),
                    last_best_height=status.best_height,
                )
                logger.info(f"scan stopped during gap heights at {last_height}")
                return
            next_height = last_height + 1
            # LIB moves while we backfill
            status = await self._get_status()

        self._cursor = LoopCursor(
            current_queries=max(self._cursor.current_queries, status.lib_height),
            last_best_height=status.best_height,
        )
        logger.info(f"end query gap heights at LIB {status.lib_height}")

    async def _query_in_loop(self):
        logger.info("start loop")
        self._scheduler.set_callback(self._loop_tick)
        self._scheduler.start_timer()
        await self._scheduler.wait()
        logger.info("loop finished")

    async def _loop_tick(self):
        self._loop_times += 1
        logger.info(f"start loop for {self._loop_times} time")
        status = await self._get_status()
        plan = plan_heights(status, self._cursor, self._config)
        if plan is None:
            return

        if self._config.scan_mode is ScanMode.ALL:
            fetched = await self._fetcher.fetch(plan.heights, ScanPhase.LOOP)
            result = merge_results(
                fetched,
                len(plan.finalized),
                len(plan.fresh),
                status.lib_height,
                self._cursor.last_best_height,
                self._cursor.last_loop_result,
            )
            result.lib_height = status.lib_height
            result.best_height = status.best_height
            await self._data_sink.insert(result)
            self._cursor = self._cursor.advance(status.lib_height, status.best_height, result)
        elif self._config.scan_mode is ScanMode.LISTENER:
            result = await self._fetcher.fetch(plan.heights, ScanPhase.LOOP)
            result.lib_height = status.lib_height
            result.best_height = status.best_height
            await self._data_sink.insert(result)
            self._cursor = self._cursor.advance(status.lib_height, status.best_height)
        else:
            raise InvariantViolation(f"Invalid scan mode: {self._config.scan_mode}")

        logger.info(f"end loop for {self._loop_times} time")
