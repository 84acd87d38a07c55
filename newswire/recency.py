"""Recency window filtering."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from .aggregator import sort_by_recency
from .logging_config import create_execution_logger
from .models import Item

DEFAULT_WINDOW_DAYS = 14
DEFAULT_FALLBACK_COUNT = 20

logger = create_execution_logger("recency")


@dataclass
class RecencySelection:
    items: list[Item]
    fallback_used: bool = False
    warning: str | None = None


def window_start(window_days: int, now: datetime | None = None) -> datetime:
    now = now or datetime.now(UTC)
    return now - timedelta(days=window_days)


def is_recent(item: Item, window_days: int = DEFAULT_WINDOW_DAYS, now: datetime | None = None) -> bool:
    """True when the item is dated at or after the window start; undated items fail."""
    if item.published is None:
        return False
    return item.published >= window_start(window_days, now)


def filter_recent(
    items: Sequence[Item], window_days: int = DEFAULT_WINDOW_DAYS, now: datetime | None = None
) -> list[Item]:
    """Drop items older than ``window_days`` or without a parseable date."""
    now = now or datetime.now(UTC)
    return [item for item in items if is_recent(item, window_days, now)]


def select_recent(
    items: Sequence[Item],
    window_days: int = DEFAULT_WINDOW_DAYS,
    fallback_count: int = DEFAULT_FALLBACK_COUNT,
    now: datetime | None = None,
) -> RecencySelection:
    """Filter by recency, falling back to the newest unfiltered items when nothing is left."""
    recent = filter_recent(items, window_days, now)
    if recent or not items:
        return RecencySelection(items=recent)

    warning = (
        f"All {len(items)} items are older than {window_days} days; "
        f"showing the {min(fallback_count, len(items))} newest instead"
    )
    logger.warning(warning, window_days=window_days, total_items=len(items))
    return RecencySelection(
        items=sort_by_recency(items)[:fallback_count],
        fallback_used=True,
        warning=warning,
    )


def date_range_text(window_days: int = DEFAULT_WINDOW_DAYS, now: datetime | None = None) -> str:
    """Human label for the window, e.g. ``2026/10/02 onward``."""
    return f"{window_start(window_days, now).strftime('%Y/%m/%d')} onward"
