"""Source fetcher: TTL cache in front of an ordered relay fallback chain."""

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from .cache import TTLCache
from .exceptions import RateLimitedError, RelayError
from .logging_config import ExecutionLogger, create_execution_logger
from .models import Item, Source
from .relay import DEFAULT_RELAYS, Relay, RelayClient
from .rss import FeedNormalizer

if TYPE_CHECKING:
    from .arxiv import ArxivClient


async def fetch_through_relays(
    relay_client: RelayClient,
    relays: Sequence[Relay],
    target_url: str,
    parse: Callable[[bytes], list[Item]],
    logger: ExecutionLogger,
    label: str,
) -> tuple[list[Item], str | None]:
    """Try ``relays`` strictly in order and return the first non-empty parse.

    Returns:
        Tuple of (items, relay name), or ([], None) when every relay failed
    """
    for relay in relays:
        try:
            body = await relay_client.fetch(relay, target_url)
            document = relay.parse_envelope(body)
            items = parse(document)
        except RateLimitedError:
            logger.warning(
                f"{relay.name}: rate limited (429), trying next relay",
                source_name=label,
                relay=relay.name,
            )
            continue
        except RelayError as e:
            logger.warning(
                f"{relay.name} failed for {label}: {e}",
                source_name=label,
                relay=relay.name,
                error=str(e),
            )
            continue
        except Exception as e:
            logger.error(
                f"Unexpected error from {relay.name} for {label}: {e}",
                source_name=label,
                relay=relay.name,
                error=str(e),
            )
            continue

        if items:
            return items, relay.name

        logger.warning(
            f"{relay.name} returned no items for {label}, trying next relay",
            source_name=label,
            relay=relay.name,
        )

    return [], None


class SourceFetcher:
    """Fetches one source at a time; never raises."""

    def __init__(
        self,
        relay_client: RelayClient,
        normalizer: FeedNormalizer,
        cache: TTLCache,
        relays: Sequence[Relay] = DEFAULT_RELAYS,
        arxiv_client: "ArxivClient | None" = None,
        execution_id: str | None = None,
    ):
        self.relay_client = relay_client
        self.normalizer = normalizer
        self.cache = cache
        self.relays = tuple(relays)
        self.arxiv_client = arxiv_client
        self.logger = create_execution_logger("source_fetcher", execution_id)

    async def fetch(self, source: Source) -> list[Item]:
        """Fetch items for ``source``; an empty list means unavailable this cycle."""
        items, _ = await self.fetch_with_status(source)
        return items

    async def fetch_with_status(self, source: Source) -> tuple[list[Item], bool]:
        """Fetch items for ``source`` and report whether the source delivered."""
        cached = self.cache.get(source.url)
        if cached is not None:
            self.logger.debug(
                f"{source.name}: served from cache ({len(cached)} items)",
                source_name=source.name,
            )
            return cached, True

        try:
            if source.is_arxiv:
                if self.arxiv_client is None:
                    self.logger.warning(
                        f"{source.name}: no arXiv client configured",
                        source_name=source.name,
                    )
                    return [], False
                items = await self.arxiv_client.fetch_recent_papers()
                via = "arxiv"
            else:
                items, via = await fetch_through_relays(
                    self.relay_client,
                    self.relays,
                    source.url,
                    lambda document: self.normalizer.parse_feed(document, source),
                    self.logger,
                    source.name,
                )
        except Exception as e:
            self.logger.error(
                f"Unexpected error fetching {source.name}: {e}",
                source_name=source.name,
                error=str(e),
            )
            return [], False

        if not items:
            self.logger.warning(
                f"{source.name}: all relays failed, source unavailable this cycle",
                source_name=source.name,
                source_url=source.url,
            )
            return [], False

        self.cache.set(source.url, items)
        self.logger.log_source_result(source.name, len(items), via or "unknown")
        return list(items), True
