"""Feed normalization module for newswire."""

import io
import re
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import feedparser
from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from .logging_config import create_execution_logger
from .models import Item, Source

CDATA_PATTERN = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
DISPLAY_FORMAT = "%Y/%m/%d %H:%M"


def as_text(value) -> str:
    """Return ``value`` if it is a string, else an empty string."""
    return value if isinstance(value, str) else ""


def collapse_whitespace(text: str) -> str:
    """Join all whitespace-separated chunks with single spaces."""
    return " ".join(text.split())


def load_feed(document: bytes | str):
    """Parse an in-memory feed document with feedparser.

    The document is handed over as a stream so feedparser never treats it
    as a file path or URL; byte input lets it honor the declared encoding.
    """
    if isinstance(document, str):
        document = document.encode("utf-8")
    return feedparser.parse(io.BytesIO(document))


class FeedNormalizer:
    """Parses RSS/Atom documents into normalized Items."""

    def __init__(self, display_timezone: str = "Asia/Tokyo", execution_id: str | None = None):
        """Initialize FeedNormalizer.

        Args:
            display_timezone: IANA timezone used for display strings
            execution_id: Execution ID for logging context
        """
        self.display_timezone = ZoneInfo(display_timezone)
        self.logger = create_execution_logger("feed_normalizer", execution_id)

    def parse_feed(self, document: bytes | str, source: Source) -> list[Item]:
        """Parse a feed document into Items for ``source``.

        Malformed entries are logged and dropped; they never abort the document.

        Args:
            document: RSS or Atom XML, raw bytes as received or text
            source: Source the document was fetched for

        Returns:
            List of Items, possibly empty
        """
        feed = load_feed(document)

        if feed.bozo and hasattr(feed, "bozo_exception"):
            self.logger.warning(
                f"Feed parsing warning for {source.name}: {feed.bozo_exception}",
                source_name=source.name,
                bozo_exception=str(feed.bozo_exception),
            )

        items = []
        for entry in feed.entries:
            try:
                item = self.normalize_item(entry, source)
            except Exception as e:
                self.logger.warning(
                    f"Failed to normalize entry from {source.name}: {e}",
                    source_name=source.name,
                    error=str(e),
                )
                continue
            if item is not None:
                items.append(item)

        self.logger.debug(
            "Parsed feed document",
            source_name=source.name,
            items_count=len(items),
            total_entries=len(feed.entries),
        )
        return items

    def normalize_item(self, raw_item, source: Source) -> Item | None:
        """Normalize a raw feed entry into an Item.

        Returns:
            The Item, or None when the entry has neither title nor link
        """
        title = self.clean_html_content(as_text(getattr(raw_item, "title", "")))
        link = as_text(getattr(raw_item, "link", "")).strip()

        if not title and not link:
            return None

        published_str = as_text(getattr(raw_item, "published", "")) or as_text(
            getattr(raw_item, "updated", "")
        )
        published = self.parse_timestamp(published_str)

        # Summary first, then description, then Atom content
        content = as_text(getattr(raw_item, "summary", "")) or as_text(
            getattr(raw_item, "description", "")
        )
        if not content:
            raw_content = getattr(raw_item, "content", None)
            if isinstance(raw_content, list) and raw_content:
                content = as_text(raw_content[0].get("value", ""))

        return Item(
            title=title,
            description=self.clean_html_content(content),
            link=link,
            published_at=self.format_display(published, published_str),
            source=source.name,
            published=published,
            category=source.category,
        )

    def parse_timestamp(self, value: str | None) -> datetime | None:
        """Parse a feed date into a timezone-aware datetime, or None."""
        if not value or not value.strip():
            return None
        try:
            published = date_parser.parse(value)
        except (ValueError, TypeError, OverflowError):
            self.logger.debug("Unparseable publish date", raw_date=value)
            return None
        if published.tzinfo is None:
            published = published.replace(tzinfo=UTC)
        return published

    def format_display(self, published: datetime | None, raw: str = "") -> str:
        """Render the display string; the raw text is kept when unparseable."""
        if published is None:
            return raw.strip() if raw else ""
        return published.astimezone(self.display_timezone).strftime(DISPLAY_FORMAT)

    def clean_html_content(self, content: str | None) -> str:
        """Remove CDATA wrappers and HTML tags, decode entities, normalize whitespace.

        Args:
            content: Raw content that may contain HTML

        Returns:
            Clean text content without HTML tags
        """
        if not content:
            return ""

        content = CDATA_PATTERN.sub(r"\1", content)

        if "<" not in content and ">" not in content and "&" not in content:
            return collapse_whitespace(content)

        soup = BeautifulSoup(content, "html.parser")

        for script in soup(["script", "style"]):
            script.decompose()

        text = soup.get_text(separator=" ")

        # Remove any remaining < and > characters (for edge cases like standalone brackets)
        text = text.replace("<", "").replace(">", "")

        return collapse_whitespace(text)
