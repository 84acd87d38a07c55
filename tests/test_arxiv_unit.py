"""Unit tests for the arXiv paper-search client."""

import json
from datetime import UTC, datetime
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from newswire.arxiv import (
    ArxivClient,
    extract_arxiv_id,
    format_description,
    map_to_app_category,
)
from newswire.config import ArxivConfig
from newswire.relay import RelayClient
from newswire.rss import FeedNormalizer

ARXIV_DOCUMENT = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" xmlns:arxiv="http://arxiv.org/schemas/atom">
  <title>ArXiv Query</title>
  <entry>
    <id>http://arxiv.org/abs/2401.12345v2</id>
    <updated>2024-01-03T12:00:00Z</updated>
    <published>2024-01-02T09:30:00Z</published>
    <title>Planning with Language
      Agents</title>
    <summary>  We study   agents
      that plan.  </summary>
    <author><name>Ada Lovelace</name></author>
    <author><name>Alan Turing</name></author>
    <author><name>Grace Hopper</name></author>
    <author><name>Edsger Dijkstra</name></author>
    <category term="cs.CL" scheme="http://arxiv.org/schemas/atom"/>
    <category term="cs.AI" scheme="http://arxiv.org/schemas/atom"/>
    <category term="cs.LG" scheme="http://arxiv.org/schemas/atom"/>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/2401.54321v1</id>
    <published>2024-01-01T08:00:00Z</published>
    <title>Robot Grasping</title>
    <summary>Grasping objects.</summary>
    <author><name>Solo Author</name></author>
    <category term="cs.RO" scheme="http://arxiv.org/schemas/atom"/>
  </entry>
</feed>"""


def make_client(relay_client: RelayClient) -> ArxivClient:
    return ArxivClient(relay_client, FeedNormalizer())


class TestArxivHelpersUnit:
    """Unit tests for arXiv helper functions."""

    def test_extract_id_strips_version(self):
        assert extract_arxiv_id("http://arxiv.org/abs/2401.12345v1") == "2401.12345"
        assert extract_arxiv_id("http://arxiv.org/abs/2401.12345v12") == "2401.12345"

    def test_extract_id_without_version(self):
        assert extract_arxiv_id("http://arxiv.org/abs/2401.12345") == "2401.12345"

    def test_extract_id_old_style(self):
        assert extract_arxiv_id("http://arxiv.org/abs/cs/0112017v1") == "cs/0112017"

    def test_category_mapping(self):
        assert map_to_app_category(["cs.AI"]) == "AI Agents"
        assert map_to_app_category(["cs.CL", "cs.RO"]) == "AI Agents"
        assert map_to_app_category(["cs.CV"]) == "Technology"
        assert map_to_app_category(["stat.ML"]) == "Technology"
        assert map_to_app_category(["math.OC"]) == "Technology"
        assert map_to_app_category([]) == "Technology"

    def test_description_truncates_authors_and_tags(self):
        description = format_description(
            "Summary text", ["A", "B", "C", "D"], ["cs.AI", "cs.LG", "cs.CL"]
        )

        assert description == "Summary text\n\nAuthors: A, B, C et al.\n\nCategories: cs.AI, cs.LG"

    def test_description_without_authors_or_tags(self):
        assert format_description("  Only   summary ", [], []) == "Only summary"


class TestArxivClientUnit:
    """Unit tests for ArxivClient."""

    def test_query_url(self):
        client = ArxivClient(RelayClient(httpx.AsyncClient()), FeedNormalizer(), ArxivConfig())

        url = client.build_query_url()
        parsed = urlparse(url)
        params = parse_qs(parsed.query)

        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://export.arxiv.org/api/query"
        assert params["search_query"] == [
            "cat:cs.AI OR cat:cs.LG OR cat:cs.CL OR cat:cs.CV OR cat:cs.RO OR cat:stat.ML"
        ]
        assert params["max_results"] == ["15"]
        assert params["start"] == ["0"]
        assert params["sortBy"] == ["lastUpdatedDate"]
        assert params["sortOrder"] == ["descending"]

    def test_query_url_overrides(self):
        client = ArxivClient(RelayClient(httpx.AsyncClient()), FeedNormalizer())

        params = parse_qs(urlparse(client.build_query_url(["cs.AI"], 5)).query)

        assert params["search_query"] == ["cat:cs.AI"]
        assert params["max_results"] == ["5"]

    def test_parse_document(self):
        client = ArxivClient(RelayClient(httpx.AsyncClient()), FeedNormalizer())

        papers = client.parse_document(ARXIV_DOCUMENT)

        assert len(papers) == 2
        first = papers[0]
        assert first.title == "Planning with Language Agents"
        assert first.link == "https://arxiv.org/abs/2401.12345"
        assert first.source == "arXiv"
        assert first.category == "AI Agents"
        assert first.published == datetime(2024, 1, 2, 9, 30, tzinfo=UTC)
        assert first.published_at == "2024/01/02 18:30"
        assert first.description.startswith("We study agents that plan.")
        assert "Authors: Ada Lovelace, Alan Turing, Grace Hopper et al." in first.description
        assert "Categories: cs.CL, cs.AI" in first.description

        second = papers[1]
        assert second.link == "https://arxiv.org/abs/2401.54321"
        assert second.category == "Technology"
        assert "et al." not in second.description

    @pytest.mark.asyncio
    async def test_fetch_prefers_allorigins_envelope(self):
        hosts = []

        def handler(request: httpx.Request) -> httpx.Response:
            hosts.append(request.url.host)
            return httpx.Response(200, text=json.dumps({"contents": ARXIV_DOCUMENT}))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            papers = await make_client(RelayClient(http_client)).fetch_recent_papers()

        assert len(papers) == 2
        assert hosts == ["api.allorigins.win"]

    @pytest.mark.asyncio
    async def test_fetch_falls_back_to_raw_relay(self):
        hosts = []

        def handler(request: httpx.Request) -> httpx.Response:
            hosts.append(request.url.host)
            if request.url.host == "api.allorigins.win":
                return httpx.Response(429)
            return httpx.Response(200, text=ARXIV_DOCUMENT)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            papers = await make_client(RelayClient(http_client)).fetch_recent_papers()

        assert len(papers) == 2
        assert hosts == ["api.allorigins.win", "corsproxy.io"]

    @pytest.mark.asyncio
    async def test_fetch_returns_empty_when_every_relay_fails(self):
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(500))
        ) as http_client:
            papers = await make_client(RelayClient(http_client)).fetch_recent_papers()

        assert papers == []
