"""Deduplication module for newswire."""

import hashlib
from collections.abc import Iterable

from .logging_config import create_execution_logger
from .models import Item


class Deduplicator:
    """Removes items that share a link (or, without a link, a title) within one snapshot."""

    def __init__(self, execution_id: str | None = None):
        """Initialize the Deduplicator.

        Args:
            execution_id: Execution ID for logging context
        """
        self.logger = create_execution_logger("deduplicator", execution_id)

    def generate_item_id(self, item: Item) -> str:
        """Generate the dedup key for an item.

        Uses the link when available, otherwise a SHA256 hash of the
        whitespace- and case-normalized title.

        Args:
            item: The item to generate ID for

        Returns:
            Unique identifier string
        """
        link = item.link.strip()
        if link:
            return f"link:{link}"

        normalized_title = " ".join(item.title.lower().split())
        digest = hashlib.sha256(normalized_title.encode("utf-8")).hexdigest()
        return f"title:{digest}"

    def deduplicate(self, items: Iterable[Item]) -> tuple[list[Item], int]:
        """Keep the first occurrence of every key.

        Returns:
            Tuple of (unique items in input order, number of duplicates removed)
        """
        seen: set[str] = set()
        unique: list[Item] = []
        removed = 0

        for item in items:
            item_id = self.generate_item_id(item)
            if item_id in seen:
                removed += 1
                self.logger.debug(
                    "Dropped duplicate item",
                    item_title=item.title,
                    source_name=item.source,
                )
                continue
            seen.add(item_id)
            unique.append(item)

        return unique, removed
