"""Publish/subscribe channel for realtime events."""

from collections.abc import Callable

from .logging_config import create_execution_logger
from .models import RealtimeEvent

Subscriber = Callable[[RealtimeEvent], None]


class EventChannel:
    """Named subscribers; a failing subscriber never reaches the publisher."""

    def __init__(self, execution_id: str | None = None):
        self._subscribers: dict[str, Subscriber] = {}
        self.logger = create_execution_logger("event_channel", execution_id)

    def subscribe(self, subscriber_id: str, callback: Subscriber) -> None:
        self._subscribers[subscriber_id] = callback
        self.logger.info(
            f"Subscriber added: {subscriber_id} (total: {len(self._subscribers)})",
            subscriber_id=subscriber_id,
        )

    def unsubscribe(self, subscriber_id: str) -> int:
        """Remove a subscriber and return how many remain."""
        self._subscribers.pop(subscriber_id, None)
        self.logger.info(
            f"Subscriber removed: {subscriber_id} (remaining: {len(self._subscribers)})",
            subscriber_id=subscriber_id,
        )
        return len(self._subscribers)

    def publish(self, event: RealtimeEvent) -> None:
        for subscriber_id, callback in list(self._subscribers.items()):
            try:
                callback(event)
            except Exception as e:
                self.logger.exception(
                    f"Error notifying subscriber {subscriber_id}: {e}",
                    subscriber_id=subscriber_id,
                )

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber_id: str) -> bool:
        return subscriber_id in self._subscribers
