"""Realtime update loop: periodic refresh, exponential backoff, event fan-out."""

import asyncio
import dataclasses
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from .aggregator import Aggregator
from .config import RealtimeConfig
from .events import EventChannel, Subscriber
from .logging_config import create_execution_logger
from .models import (
    CONNECTION_STATUS,
    ERROR,
    NEWS_UPDATE,
    STATE_CONNECTED,
    STATE_RETRYING,
    STATE_STARTING,
    STATE_STOPPED,
    AggregationResult,
    ConnectionStatus,
    Item,
    RealtimeEvent,
    Source,
)
from .scheduler import RecurringTask, Sleep


class RealtimeUpdater:
    """Owns the refresh timer and the retry state machine.

    States: stopped -> starting -> connected <-> retrying -> stopped.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        sources: Sequence[Source],
        channel: EventChannel | None = None,
        config: RealtimeConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        timer_sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        execution_id: str | None = None,
    ):
        """Initialize the updater.

        Args:
            aggregator: Runs one cycle across all sources
            sources: Sources fetched on every cycle
            channel: Event channel subscribers listen on
            config: Retry and interval settings
            sleep: Awaitable sleep used for retry backoff
            timer_sleep: Awaitable sleep used by the refresh timer
            clock: Wall clock for status and event timestamps
            execution_id: Execution ID for logging context
        """
        self.aggregator = aggregator
        self.sources = list(sources)
        self.channel = channel if channel is not None else EventChannel(execution_id)
        self.config = config or RealtimeConfig()
        self.logger = create_execution_logger("realtime", execution_id)
        self.status = ConnectionStatus()
        self.last_result: AggregationResult | None = None
        self.frequency = "normal"

        self._sleep = sleep
        self._clock = clock
        self._timer = RecurringTask(
            self._scheduled_cycle,
            self.interval_for("normal"),
            sleep=timer_sleep,
            name="realtime-refresh",
            execution_id=execution_id,
        )
        self._cycle_lock = asyncio.Lock()
        self._retry_task: asyncio.Task | None = None
        self._has_published = False
        self._last_freshest: datetime | None = None

    def interval_for(self, frequency: str) -> float:
        try:
            return self.config.intervals[frequency]
        except KeyError:
            raise ValueError(f"Unknown update frequency: {frequency}") from None

    @property
    def is_active(self) -> bool:
        return self._timer.running

    @property
    def retry_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    def start(self, frequency: str = "normal") -> None:
        """Start (or restart) the loop: one cycle now, then one per interval."""
        interval = self.interval_for(frequency)
        self.logger.info(f"Starting realtime updates ({frequency}, every {interval}s)")

        self._cancel_timers()
        self.frequency = frequency
        self._timer.interval = interval
        self._update_status(True, retry_count=0, state=STATE_STARTING)
        self._publish(CONNECTION_STATUS, True)
        self._timer.start(run_immediately=True)

    def stop(self, error: str | None = None) -> None:
        """Stop scheduling; an in-flight cycle finishes but no new one starts."""
        self.logger.info("Stopping realtime updates")
        self._cancel_timers()
        self._update_status(False, error=error, state=STATE_STOPPED)
        self._publish(CONNECTION_STATUS, False)

    def set_frequency(self, frequency: str) -> None:
        interval = self.interval_for(frequency)
        self.frequency = frequency
        self._timer.reschedule(interval)

    def set_page_visible(self, visible: bool) -> None:
        """Throttle while hidden; refresh immediately when visible again."""
        if not self.is_active:
            return
        if visible:
            self.set_frequency("normal")
            self._timer.trigger()
        else:
            self.set_frequency("low")

    def subscribe(self, subscriber_id: str, callback: Subscriber) -> None:
        self.channel.subscribe(subscriber_id, callback)

    def unsubscribe(self, subscriber_id: str) -> None:
        """Remove a subscriber; the loop stops with the last one."""
        if self.channel.unsubscribe(subscriber_id) == 0:
            self.stop()

    async def trigger_manual_update(self) -> list[Item]:
        """Run one cycle now, whether or not the loop is running."""
        self.logger.info("Manual update triggered")
        return await self._run_cycle()

    def get_connection_status(self) -> ConnectionStatus:
        return dataclasses.replace(self.status)

    def get_debug_info(self) -> dict[str, Any]:
        return {
            "subscribers": len(self.channel),
            "connection_status": dataclasses.asdict(self.status),
            "update_interval": self._timer.interval,
            "frequency": self.frequency,
            "is_active": self.is_active,
            "retry_pending": self.retry_pending,
            "last_freshest": self._last_freshest.isoformat() if self._last_freshest else None,
        }

    async def wait_idle(self) -> None:
        """Wait until no cycle is in flight and no retry is pending."""
        while True:
            pending = [
                task
                for task in (self._timer.current_tick, self._retry_task)
                if task is not None and not task.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _scheduled_cycle(self) -> None:
        if self.retry_pending:
            self.logger.debug("Retry pending, skipping scheduled cycle")
            return
        if self._cycle_lock.locked():
            self.logger.info("Previous cycle still in flight, skipping scheduled cycle")
            return
        await self._run_cycle()

    async def _run_cycle(self) -> list[Item]:
        async with self._cycle_lock:
            self.logger.info("Fetching latest news")
            try:
                result = await self.aggregator.fetch_all(self.sources)
            except Exception as e:
                self._handle_failure(e)
                return []

            self.last_result = result
            if self._has_new_items(result.items):
                self.logger.info(
                    f"News updated: {len(result.items)} items "
                    f"({result.sources_failed} of {result.sources_total} sources unavailable)"
                )
                self._publish(NEWS_UPDATE, result.items)
            else:
                self.logger.info("No new news items found")

            state = STATE_CONNECTED if self.is_active else self.status.state
            if state == STATE_RETRYING:
                state = STATE_STOPPED
            self._update_status(True, retry_count=0, state=state)
            return result.items

    def _has_new_items(self, items: Sequence[Item]) -> bool:
        freshest = max((item.published for item in items if item.published), default=None)

        if not self._has_published:
            self._has_published = True
            self._last_freshest = freshest
            return True

        if freshest is None:
            return False
        if self._last_freshest is None or freshest > self._last_freshest:
            self._last_freshest = freshest
            return True
        return False

    def _handle_failure(self, error: Exception) -> None:
        message = str(error) or type(error).__name__
        self.logger.error(f"Realtime update failed: {message}", error=message)

        self._update_status(False, error=message)
        self._publish(ERROR, message)

        if self.retry_pending:
            return

        retry_count = self.status.retry_count
        if retry_count < self.config.max_retries:
            delay = self.config.base_retry_delay * 2**retry_count
            self.logger.info(
                f"Retrying in {delay}s (attempt {retry_count + 1}/{self.config.max_retries})",
                retry_delay=delay,
            )
            self._update_status(False, error=message, state=STATE_RETRYING)
            self._publish(CONNECTION_STATUS, False)
            self._retry_task = asyncio.create_task(
                self._retry_after(delay), name="realtime-retry"
            )
        else:
            self.logger.error("Max retries reached. Stopping realtime updates.")
            self.stop(error=message)
            self._publish(ERROR, f"Max retries ({self.config.max_retries}) exceeded: {message}")

    async def _retry_after(self, delay: float) -> None:
        await self._sleep(delay)
        self._retry_task = None
        self.status.retry_count += 1
        await self._run_cycle()

    def _cancel_timers(self) -> None:
        self._timer.stop()
        if self.retry_pending and self._retry_task is not asyncio.current_task():
            self._retry_task.cancel()
        self._retry_task = None

    def _update_status(
        self,
        connected: bool,
        error: str | None = None,
        retry_count: int | None = None,
        state: str | None = None,
    ) -> None:
        self.status = ConnectionStatus(
            connected=connected,
            last_update=self._clock(),
            retry_count=self.status.retry_count if retry_count is None else retry_count,
            error=error,
            state=state or self.status.state,
        )

    def _publish(self, event_type: str, data: Any) -> None:
        self.channel.publish(RealtimeEvent(type=event_type, data=data, timestamp=self._clock()))
