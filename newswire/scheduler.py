"""Recurring task abstraction on top of asyncio."""

import asyncio
import random
from collections.abc import Awaitable, Callable

from .logging_config import create_execution_logger

Sleep = Callable[[float], Awaitable[None]]


class RecurringTask:
    """Runs ``callback`` every ``interval`` seconds until stopped.

    Each run ("tick") is its own task, so stopping the timer never aborts a
    run that is already in flight. A tick is skipped while the previous one
    is still running.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        interval: float,
        *,
        jitter: float = 0.0,
        sleep: Sleep = asyncio.sleep,
        name: str = "recurring",
        execution_id: str | None = None,
    ):
        """Initialize RecurringTask.

        Args:
            callback: Coroutine function run on every tick
            interval: Seconds between ticks
            jitter: Upper bound of a random delay added to each interval
            sleep: Awaitable sleep used for the interval wait
            name: Name used for tasks and logs
            execution_id: Execution ID for logging context
        """
        self.callback = callback
        self.interval = interval
        self.jitter = jitter
        self.name = name
        self._sleep = sleep
        self._timer: asyncio.Task | None = None
        self._tick: asyncio.Task | None = None
        self.logger = create_execution_logger("scheduler", execution_id)

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> bool:
        return self._tick is not None and not self._tick.done()

    @property
    def current_tick(self) -> asyncio.Task | None:
        return self._tick

    def start(self, run_immediately: bool = False) -> None:
        """(Re)start the timer; the first interval starts counting now."""
        self.stop()
        if run_immediately:
            self.trigger()
        self._timer = asyncio.create_task(self._run(), name=f"{self.name}:timer")

    def stop(self) -> None:
        """Cancel the timer. An in-flight tick keeps running."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def reschedule(self, interval: float) -> None:
        """Change the interval, restarting the timer if it is running."""
        self.interval = interval
        if self.running:
            self.start()

    def trigger(self) -> bool:
        """Run one tick now unless one is already in flight."""
        if self.in_flight:
            self.logger.info(f"{self.name}: previous run still in flight, skipping tick")
            return False
        self._tick = asyncio.create_task(self._guarded(), name=f"{self.name}:tick")
        return True

    def next_delay(self) -> float:
        if self.jitter > 0:
            return self.interval + random.uniform(0, self.jitter)
        return self.interval

    async def _run(self) -> None:
        while True:
            await self._sleep(self.next_delay())
            self.trigger()

    async def _guarded(self) -> None:
        try:
            await self.callback()
        except Exception as e:
            self.logger.exception(f"{self.name}: tick failed: {e}")
