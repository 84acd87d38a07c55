"""Explicit wiring of the aggregation pipeline."""

from dataclasses import dataclass

import httpx

from .aggregator import Aggregator
from .arxiv import ArxivClient
from .cache import TTLCache
from .config import Config
from .dedup import Deduplicator
from .fetcher import SourceFetcher
from .models import Source
from .relay import RelayClient
from .rss import FeedNormalizer


@dataclass
class AppContext:
    """Everything one process needs to run aggregation cycles."""

    config: Config
    sources: list[Source]
    http_client: httpx.AsyncClient
    relay_client: RelayClient
    cache: TTLCache
    fetcher: SourceFetcher
    aggregator: Aggregator
    execution_id: str | None = None

    async def aclose(self) -> None:
        await self.http_client.aclose()


def build_context(
    config: Config | None = None,
    http_client: httpx.AsyncClient | None = None,
    execution_id: str | None = None,
) -> AppContext:
    """Build the component graph from configuration.

    Args:
        config: Configuration (read from the environment when omitted)
        http_client: Shared HTTP client; a new one is created when omitted
        execution_id: Execution ID for logging context

    Returns:
        AppContext with every component wired together
    """
    config = config or Config()
    fetch_config = config.get_fetch_config()

    if http_client is None:
        http_client = httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": fetch_config.user_agent},
        )

    relay_client = RelayClient(http_client, fetch_config.relay_timeout, execution_id)
    normalizer = FeedNormalizer(fetch_config.display_timezone, execution_id)
    cache = TTLCache(fetch_config.cache_ttl)
    arxiv_client = ArxivClient(
        relay_client, normalizer, config.get_arxiv_config(), execution_id=execution_id
    )
    fetcher = SourceFetcher(
        relay_client,
        normalizer,
        cache,
        arxiv_client=arxiv_client,
        execution_id=execution_id,
    )
    aggregator = Aggregator(
        fetcher,
        Deduplicator(execution_id),
        cycle_timeout=fetch_config.cycle_timeout,
        execution_id=execution_id,
    )

    return AppContext(
        config=config,
        sources=config.get_sources(),
        http_client=http_client,
        relay_client=relay_client,
        cache=cache,
        fetcher=fetcher,
        aggregator=aggregator,
        execution_id=execution_id,
    )
