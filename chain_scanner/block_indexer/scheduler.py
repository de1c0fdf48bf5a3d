# chain_scanner/block_indexer/scheduler.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicScheduler:
    """
    Вызывает один callback с интервалом interval (секунды).

    Следующий тик планируется только после завершения предыдущего, тики
    никогда не перекрываются. end_timer() отменяет будущие тики, но не
    прерывает текущий. Исключение из callback останавливает таймер и
    пробрасывается из wait().
    """

    def __init__(self, interval: float):
        self._interval = interval
        self._callback: Optional[Callable[[], Awaitable[None]]] = None
        self._task: Optional[asyncio.Task] = None
        self._stopped: Optional[asyncio.Event] = None
        self._stop_requested = False

    def set_callback(self, callback: Callable[[], Awaitable[None]]):
        self._callback = callback

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_timer(self) -> asyncio.Task:
        if self._callback is None:
            raise RuntimeError("PeriodicScheduler: callback is not set")
        if self.running:
            raise RuntimeError("PeriodicScheduler: timer is already running")
        self._stopped = asyncio.Event()
        self._stop_requested = False
        self._task = asyncio.create_task(self._run())
        return self._task

    def end_timer(self):
        self._stop_requested = True
        if self._stopped is not None:
            self._stopped.set()

    async def wait(self):
        """Ждет остановки таймера. Пробрасывает исключение упавшего тика."""
        if self._task is not None:
            await self._task

    async def _run(self):
        while not self._stop_requested:
            await self._callback()
            if self._stop_requested:
                break
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        logger.debug("PeriodicScheduler stopped.")
