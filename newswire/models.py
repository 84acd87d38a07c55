"""Data models for newswire."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Reserved source URL routing a source to the arXiv client instead of the relays
ARXIV_SOURCE_SENTINEL = "ARXIV_API_SOURCE"

NEWS_UPDATE = "news_update"
CONNECTION_STATUS = "connection_status"
ERROR = "error"

STATE_STOPPED = "stopped"
STATE_STARTING = "starting"
STATE_CONNECTED = "connected"
STATE_RETRYING = "retrying"


@dataclass(frozen=True)
class Source:
    """A configured feed provider."""

    name: str
    url: str
    category: str

    @property
    def is_arxiv(self) -> bool:
        return self.url == ARXIV_SOURCE_SENTINEL


@dataclass(frozen=True)
class Item:
    """Represents a single normalized news item.

    ``published`` is the sortable timestamp; ``published_at`` is only for display.
    """

    title: str
    description: str
    link: str
    published_at: str
    source: str
    published: datetime | None = None
    category: str | None = None
    original_title: str | None = None
    original_description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-serializable form of the item."""
        return {
            "title": self.title,
            "description": self.description,
            "link": self.link,
            "published_at": self.published_at,
            "published": self.published.isoformat() if self.published else None,
            "source": self.source,
            "category": self.category,
            "original_title": self.original_title,
            "original_description": self.original_description,
        }


@dataclass(frozen=True)
class CacheEntry:
    """Cached items for one source URL."""

    data: tuple[Item, ...]
    timestamp: float


@dataclass
class AggregationResult:
    """Snapshot of one aggregation cycle plus per-source accounting."""

    items: list[Item]
    sources_total: int = 0
    sources_succeeded: int = 0
    sources_failed: int = 0
    unavailable: list[str] = field(default_factory=list)
    duplicates_removed: int = 0
    duration_seconds: float = 0.0


@dataclass
class ConnectionStatus:
    """Connection state of the realtime update loop."""

    connected: bool = False
    last_update: float = 0.0
    retry_count: int = 0
    error: str | None = None
    state: str = STATE_STOPPED


@dataclass(frozen=True)
class RealtimeEvent:
    """Message published to realtime subscribers."""

    type: str
    data: Any
    timestamp: float


@dataclass(frozen=True)
class VirtualItem:
    """Absolute-positioned render instruction for one list entry."""

    index: int
    start: float
    size: float
    item: Any


@dataclass(frozen=True)
class VirtualWindow:
    """Result of one virtualization pass; ``stop_index`` is exclusive."""

    virtual_items: list[VirtualItem]
    start_index: int
    stop_index: int
    total_size: float
