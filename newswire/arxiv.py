"""arXiv paper-search client."""

import re
from collections.abc import Sequence
from urllib.parse import urlencode

from .config import ArxivConfig
from .fetcher import fetch_through_relays
from .logging_config import create_execution_logger
from .models import Item
from .relay import ARXIV_RELAYS, Relay, RelayClient
from .rss import FeedNormalizer, as_text, collapse_whitespace, load_feed

ARXIV_SOURCE_NAME = "arXiv"
ARXIV_ID_PATTERN = re.compile(r"arxiv\.org/abs/(.+?)(?:v\d+)?$")

AGENT_CATEGORY = "AI Agents"
TECHNOLOGY_CATEGORY = "Technology"
DEFAULT_CATEGORY = TECHNOLOGY_CATEGORY

MAX_AUTHORS = 3
MAX_TAGS = 2


def extract_arxiv_id(entry_id: str) -> str:
    """Turn ``http://arxiv.org/abs/2401.12345v1`` into ``2401.12345``."""
    match = ARXIV_ID_PATTERN.search(entry_id.strip())
    return match.group(1) if match else entry_id.strip()


def map_to_app_category(terms: Sequence[str]) -> str:
    """Map arXiv subject tags onto the app's category taxonomy."""
    for term in terms:
        if term in ("cs.AI", "cs.LG", "cs.CL"):
            return AGENT_CATEGORY
        if term.startswith("cs.") or term == "stat.ML":
            return TECHNOLOGY_CATEGORY
    return DEFAULT_CATEGORY


def format_description(summary: str, authors: Sequence[str], terms: Sequence[str]) -> str:
    """Fold authors and subject tags into the description text."""
    parts = [collapse_whitespace(summary)]
    if authors:
        names = ", ".join(authors[:MAX_AUTHORS])
        if len(authors) > MAX_AUTHORS:
            names += " et al."
        parts.append(f"Authors: {names}")
    if terms:
        parts.append(f"Categories: {', '.join(terms[:MAX_TAGS])}")
    return "\n\n".join(part for part in parts if part)


class ArxivClient:
    """Queries the arXiv API through relays and parses its Atom entries."""

    def __init__(
        self,
        relay_client: RelayClient,
        normalizer: FeedNormalizer,
        config: ArxivConfig | None = None,
        relays: Sequence[Relay] = ARXIV_RELAYS,
        execution_id: str | None = None,
    ):
        self.relay_client = relay_client
        self.normalizer = normalizer
        self.config = config or ArxivConfig()
        self.relays = tuple(relays)
        self.logger = create_execution_logger("arxiv_client", execution_id)

    def build_query_url(
        self, categories: Sequence[str] | None = None, max_results: int | None = None
    ) -> str:
        """Build the API query URL for the category allowlist."""
        categories = categories or self.config.categories
        params = {
            "search_query": " OR ".join(f"cat:{category}" for category in categories),
            "start": 0,
            "max_results": max_results or self.config.max_results,
            "sortBy": "lastUpdatedDate",
            "sortOrder": "descending",
        }
        return f"{self.config.base_url}?{urlencode(params)}"

    async def fetch_recent_papers(
        self, categories: Sequence[str] | None = None, max_results: int | None = None
    ) -> list[Item]:
        """Fetch the newest papers; returns [] when every relay fails."""
        url = self.build_query_url(categories, max_results)
        papers, relay = await fetch_through_relays(
            self.relay_client,
            self.relays,
            url,
            self.parse_document,
            self.logger,
            ARXIV_SOURCE_NAME,
        )
        if papers:
            self.logger.info(
                f"arXiv API: {len(papers)} papers via {relay}",
                relay=relay,
                items_count=len(papers),
            )
        else:
            self.logger.warning("arXiv API: all relays failed")
        return papers

    def parse_document(self, document: bytes | str) -> list[Item]:
        """Parse an arXiv Atom response into Items."""
        feed = load_feed(document)
        papers = []
        for entry in feed.entries:
            try:
                paper = self.normalize_entry(entry)
            except Exception as e:
                self.logger.warning(f"Failed to parse arXiv entry: {e}", error=str(e))
                continue
            if paper is not None:
                papers.append(paper)
        return papers

    def normalize_entry(self, entry) -> Item | None:
        entry_id = as_text(entry.get("id", ""))
        title = collapse_whitespace(as_text(entry.get("title", "")))
        if not title or not entry_id:
            return None

        authors = [
            collapse_whitespace(as_text(author.get("name", "")))
            for author in entry.get("authors", [])
        ]
        authors = [name for name in authors if name]
        terms = [as_text(tag.get("term", "")) for tag in entry.get("tags", [])]
        terms = [term for term in terms if term]

        published_str = as_text(entry.get("published", ""))
        published = self.normalizer.parse_timestamp(published_str)

        return Item(
            title=title,
            description=format_description(as_text(entry.get("summary", "")), authors, terms),
            link=f"https://arxiv.org/abs/{extract_arxiv_id(entry_id)}",
            published_at=self.normalizer.format_display(published, published_str),
            source=ARXIV_SOURCE_NAME,
            published=published,
            category=map_to_app_category(terms),
        )
