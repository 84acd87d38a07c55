"""Aggregation scheduler: concurrent fan-out over all sources, merged snapshot."""

import asyncio
import time
from collections.abc import Iterable
from datetime import UTC, datetime

from .dedup import Deduplicator
from .exceptions import AggregationError
from .fetcher import SourceFetcher
from .logging_config import create_execution_logger
from .models import AggregationResult, Item, Source

_OLDEST = datetime.min.replace(tzinfo=UTC)


def recency_sort_key(item: Item) -> tuple[bool, datetime]:
    """Sort key placing undated items after every dated one."""
    return item.published is not None, item.published or _OLDEST


def sort_by_recency(items: Iterable[Item]) -> list[Item]:
    """Return items newest first; the sort is stable so ties keep input order."""
    return sorted(items, key=recency_sort_key, reverse=True)


class Aggregator:
    """Runs one fetch cycle across all sources."""

    def __init__(
        self,
        fetcher: SourceFetcher,
        deduplicator: Deduplicator | None = None,
        cycle_timeout: float | None = 30.0,
        execution_id: str | None = None,
    ):
        """Initialize the Aggregator.

        Args:
            fetcher: Per-source fetcher
            deduplicator: Merge-time deduplicator
            cycle_timeout: Seconds after which unfinished sources are cancelled; None waits forever
            execution_id: Execution ID for logging context
        """
        self.fetcher = fetcher
        self.deduplicator = deduplicator or Deduplicator(execution_id)
        self.cycle_timeout = cycle_timeout
        self.logger = create_execution_logger("aggregator", execution_id)

    async def fetch_all(self, sources: Iterable[Source]) -> AggregationResult:
        """Fetch every source concurrently and merge the results.

        One failing source never affects the others.

        Raises:
            AggregationError: If every configured source was unavailable
        """
        sources = list(sources)
        start = time.monotonic()
        if not sources:
            return AggregationResult(items=[])

        self.logger.info(
            f"Starting aggregation of {len(sources)} sources", source_count=len(sources)
        )

        tasks = [
            asyncio.create_task(self.fetcher.fetch_with_status(source), name=f"fetch:{source.name}")
            for source in sources
        ]
        _, pending = await asyncio.wait(tasks, timeout=self.cycle_timeout)
        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self.logger.warning(
                f"Cycle timeout after {self.cycle_timeout}s, cancelled {len(pending)} sources",
                cancelled=len(pending),
            )

        merged: list[Item] = []
        unavailable: list[str] = []
        succeeded = 0

        for source, task in zip(sources, tasks):
            if task.cancelled():
                unavailable.append(source.name)
                continue
            error = task.exception()
            if error is not None:
                self.logger.error(
                    f"Source {source.name} raised: {error}",
                    source_name=source.name,
                    error=str(error),
                )
                unavailable.append(source.name)
                continue
            items, ok = task.result()
            if ok:
                succeeded += 1
                merged.extend(items)
            else:
                unavailable.append(source.name)

        duration = time.monotonic() - start
        self.logger.info(
            f"Aggregation finished in {duration:.2f}s: {succeeded}/{len(sources)} sources "
            f"succeeded ({len(unavailable)} unavailable)",
            sources_succeeded=succeeded,
            sources_failed=len(unavailable),
            unavailable=unavailable,
        )

        if succeeded == 0:
            raise AggregationError(f"All {len(sources)} sources unavailable")

        items, removed = self.deduplicator.deduplicate(sort_by_recency(merged))

        return AggregationResult(
            items=items,
            sources_total=len(sources),
            sources_succeeded=succeeded,
            sources_failed=len(unavailable),
            unavailable=unavailable,
            duplicates_removed=removed,
            duration_seconds=duration,
        )
