"""Long-running watcher: keeps the realtime loop alive and logs its events."""

import asyncio

from .config import Config
from .context import build_context
from .logging_config import create_execution_logger, new_execution_id, setup_structured_logging
from .models import CONNECTION_STATUS, ERROR, NEWS_UPDATE, RealtimeEvent
from .realtime import RealtimeUpdater
from .recency import select_recent

SUBSCRIBER_ID = "watch-log"


def log_subscriber(config: Config, execution_id: str):
    """Build a subscriber that logs every event the loop publishes."""
    logger = create_execution_logger("runner", execution_id)
    recency = config.get_recency_config()

    def on_event(event: RealtimeEvent) -> None:
        if event.type == NEWS_UPDATE:
            selection = select_recent(event.data, recency.window_days, recency.fallback_count)
            logger.info(
                f"Snapshot: {len(event.data)} items, {len(selection.items)} within "
                f"{recency.window_days} days",
                subscriber_id=SUBSCRIBER_ID,
            )
            for item in selection.items[:10]:
                logger.info(
                    f"[{item.published_at}] {item.source}: {item.title}",
                    source_name=item.source,
                )
        elif event.type == CONNECTION_STATUS:
            logger.info(f"Connection status: connected={event.data}")
        elif event.type == ERROR:
            logger.warning(f"Update error: {event.data}")

    return on_event


async def watch(
    config: Config, frequency: str = "normal", stop_event: asyncio.Event | None = None
) -> None:
    """Run the realtime loop until ``stop_event`` is set (or forever)."""
    execution_id = new_execution_id("watch")
    logger = create_execution_logger("runner", execution_id)
    context = build_context(config, execution_id=execution_id)
    updater = RealtimeUpdater(
        context.aggregator,
        context.sources,
        config=config.get_realtime_config(),
        execution_id=execution_id,
    )
    stop_event = stop_event or asyncio.Event()

    logger.log_execution_start(source_count=len(context.sources), frequency=frequency)
    try:
        updater.subscribe(SUBSCRIBER_ID, log_subscriber(config, execution_id))
        updater.start(frequency)
        await stop_event.wait()
    finally:
        updater.unsubscribe(SUBSCRIBER_ID)
        await updater.wait_idle()
        await context.aclose()
        logger.log_execution_end(debug_info=updater.get_debug_info())


def main() -> None:
    config = Config()
    setup_structured_logging(config.log_level)
    try:
        asyncio.run(watch(config, config.refresh_frequency))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
