"""Configuration management for newswire."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from .models import ARXIV_SOURCE_SENTINEL, Source

DEFAULT_ARXIV_CATEGORIES = ["cs.AI", "cs.LG", "cs.CL", "cs.CV", "cs.RO", "stat.ML"]


@dataclass
class FetchConfig:
    """Configuration for relay fetching and caching."""

    relay_timeout: float = 4.0
    cache_ttl: float = 300.0
    cycle_timeout: float | None = 30.0
    display_timezone: str = "Asia/Tokyo"
    user_agent: str = "newswire/1.0 (feed aggregator)"


@dataclass
class ArxivConfig:
    """Configuration for the arXiv paper-search provider."""

    base_url: str = "https://export.arxiv.org/api/query"
    max_results: int = 15
    categories: list[str] = field(default_factory=lambda: list(DEFAULT_ARXIV_CATEGORIES))


@dataclass
class RealtimeConfig:
    """Configuration for the realtime update loop."""

    base_retry_delay: float = 1.0
    max_retries: int = 5
    intervals: dict[str, float] = field(
        default_factory=lambda: {"high": 120.0, "normal": 300.0, "low": 600.0}
    )


@dataclass
class RecencyConfig:
    """Configuration for the recency window."""

    window_days: int = 14
    fallback_count: int = 20


@dataclass
class TranslationConfig:
    """Configuration for Amazon Translate."""

    enabled: bool = False
    target_language: str = "ja"
    region: str = "us-east-1"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Main configuration manager."""

    SOURCES_FILE = "sources.json"

    DEFAULT_SOURCES = [
        Source(
            name="OpenAI News",
            url="https://openai.com/news/rss.xml",
            category="AI & Machine Learning",
        ),
        Source(
            name="arXiv AI Papers (API)",
            url=ARXIV_SOURCE_SENTINEL,
            category="AI & Machine Learning",
        ),
        Source(
            name="AI Business News",
            url="https://news.google.com/rss/search?q=OpenAI+ChatGPT+AI+investment&hl=en-US&gl=US&ceid=US:en",
            category="Business & Economy",
        ),
        Source(
            name="Hugging Face Blog",
            url="https://huggingface.co/blog/feed.xml",
            category="AI & Machine Learning",
        ),
    ]

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.sources_file = os.getenv("SOURCES_FILE", self.SOURCES_FILE)
        self.aws_region = os.getenv(
            "CURRENT_AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        )
        self.metrics_enabled = _env_bool("METRICS_ENABLED")
        self.metrics_namespace = os.getenv("METRICS_NAMESPACE", "Newswire")

        self.relay_timeout = float(os.getenv("RELAY_TIMEOUT_SECONDS", "4"))
        self.cache_ttl = float(os.getenv("CACHE_TTL_SECONDS", "300"))
        cycle_timeout = os.getenv("CYCLE_TIMEOUT_SECONDS", "30")
        self.cycle_timeout = float(cycle_timeout) if float(cycle_timeout) > 0 else None
        self.display_timezone = os.getenv("DISPLAY_TIMEZONE", "Asia/Tokyo")

        self.arxiv_max_results = int(os.getenv("ARXIV_MAX_RESULTS", "15"))

        self.base_retry_delay = float(os.getenv("RETRY_BASE_DELAY_SECONDS", "1"))
        self.max_retries = int(os.getenv("MAX_RETRIES", "5"))
        self.refresh_frequency = os.getenv("REFRESH_FREQUENCY", "normal")

        self.window_days = int(os.getenv("RECENCY_WINDOW_DAYS", "14"))
        self.fallback_count = int(os.getenv("RECENCY_FALLBACK_COUNT", "20"))

        self.translation_enabled = _env_bool("TRANSLATION_ENABLED")
        self.translation_target = os.getenv("TRANSLATION_TARGET_LANGUAGE", "ja")

    def get_sources(self) -> list[Source]:
        """Get configured sources from the sources file, or the defaults."""
        sources_file = Path(self.sources_file)
        if not sources_file.exists():
            # Try in Lambda root directory
            sources_file = Path("/var/task") / self.sources_file

        if not sources_file.exists():
            return list(self.DEFAULT_SOURCES)

        try:
            with open(sources_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in sources file: {e}") from e

        sources = [
            Source(
                name=entry["name"],
                url=entry["url"],
                category=entry.get("category", "General"),
            )
            for entry in data.get("sources", [])
            if entry.get("enabled", True) and "url" in entry and "name" in entry
        ]

        if not sources:
            raise ValueError(f"No enabled sources found in {sources_file}")

        return sources

    def get_fetch_config(self) -> FetchConfig:
        """Get fetch configuration."""
        return FetchConfig(
            relay_timeout=self.relay_timeout,
            cache_ttl=self.cache_ttl,
            cycle_timeout=self.cycle_timeout,
            display_timezone=self.display_timezone,
        )

    def get_arxiv_config(self) -> ArxivConfig:
        """Get arXiv configuration."""
        return ArxivConfig(max_results=self.arxiv_max_results)

    def get_realtime_config(self) -> RealtimeConfig:
        """Get realtime loop configuration."""
        return RealtimeConfig(
            base_retry_delay=self.base_retry_delay,
            max_retries=self.max_retries,
        )

    def get_recency_config(self) -> RecencyConfig:
        """Get recency window configuration."""
        return RecencyConfig(
            window_days=self.window_days,
            fallback_count=self.fallback_count,
        )

    def get_translation_config(self) -> TranslationConfig:
        """Get translation configuration."""
        return TranslationConfig(
            enabled=self.translation_enabled,
            target_language=self.translation_target,
            region=self.aws_region,
        )
