"""Unit tests for feed normalization of specific RSS/Atom formats."""

from datetime import UTC, datetime
from unittest.mock import Mock

from newswire.models import Item, Source
from newswire.rss import FeedNormalizer

SOURCE = Source(name="AWS Blog", url="https://aws.amazon.com/blogs/aws/feed/", category="Cloud")

RSS_2_0 = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example</title>
    <item>
      <title><![CDATA[AWS Announces   New Service]]></title>
      <link>https://aws.amazon.com/blogs/aws/new-service/</link>
      <description><![CDATA[<p>AWS has announced a new service &amp; more.</p><script>track()</script>]]></description>
      <pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate>
    </item>
    <item>
      <description>An orphan entry without title or link</description>
    </item>
    <item>
      <title>Undated entry</title>
      <link>https://aws.amazon.com/blogs/aws/undated/</link>
    </item>
  </channel>
</rss>"""

ATOM_1_0 = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Atom</title>
  <entry>
    <title>Security Best Practices Update</title>
    <link href="https://aws.amazon.com/blogs/security/best-practices-update/"/>
    <id>tag:aws.amazon.com,2024:/blogs/security/best-practices-update</id>
    <updated>2024-01-01T10:00:00Z</updated>
    <content type="html">&lt;div&gt;&lt;h2&gt;Important Update&lt;/h2&gt;&lt;p&gt;New security guidelines available.&lt;/p&gt;&lt;/div&gt;</content>
  </entry>
</feed>"""


class TestFeedNormalizerUnit:
    """Unit tests for specific RSS/Atom feed formats."""

    def test_rss_2_0_document(self):
        """Test parsing an RSS 2.0 document end to end."""
        items = FeedNormalizer().parse_feed(RSS_2_0, SOURCE)

        assert len(items) == 2
        first = items[0]
        assert first.title == "AWS Announces New Service"
        assert first.link == "https://aws.amazon.com/blogs/aws/new-service/"
        assert first.description == "AWS has announced a new service & more."
        assert "track" not in first.description
        assert first.source == "AWS Blog"
        assert first.category == "Cloud"
        assert first.published == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)
        assert first.published_at == "2024/01/01 19:00"

    def test_undated_entry_is_kept_without_timestamp(self):
        items = FeedNormalizer().parse_feed(RSS_2_0, SOURCE)

        undated = items[1]
        assert undated.title == "Undated entry"
        assert undated.published is None
        assert undated.published_at == ""

    def test_atom_1_0_document(self):
        """Test parsing an Atom 1.0 document using updated and content."""
        items = FeedNormalizer().parse_feed(ATOM_1_0, SOURCE)

        assert len(items) == 1
        item = items[0]
        assert item.title == "Security Best Practices Update"
        assert item.link == "https://aws.amazon.com/blogs/security/best-practices-update/"
        assert "Important Update" in item.description
        assert "New security guidelines available." in item.description
        assert "<h2>" not in item.description
        assert item.published == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)

    def test_malformed_document_yields_no_items(self):
        assert FeedNormalizer().parse_feed("<html><body>Blocked</body></html>", SOURCE) == []

    def test_latin1_document_bytes(self):
        """Test that the XML declaration's encoding is honored for raw bytes."""
        document = """<?xml version="1.0" encoding="ISO-8859-1"?>
<rss version="2.0">
  <channel>
    <title>Actualités</title>
    <item>
      <title>Café ouvert à Paris</title>
      <link>https://example.fr/cafe</link>
      <description>Crème brûlée offerte</description>
    </item>
  </channel>
</rss>""".encode("iso-8859-1")

        items = FeedNormalizer().parse_feed(document, SOURCE)

        assert [item.title for item in items] == ["Café ouvert à Paris"]
        assert items[0].description == "Crème brûlée offerte"

    def test_path_like_text_is_not_opened(self, tmp_path):
        """Test that a document that looks like a file path is parsed, not read from disk."""
        local_feed = tmp_path / "local.xml"
        local_feed.write_text(RSS_2_0, encoding="utf-8")

        assert FeedNormalizer().parse_feed(str(local_feed), SOURCE) == []
        assert FeedNormalizer().parse_feed(str(local_feed).encode(), SOURCE) == []

    def test_normalize_mock_entry(self):
        """Test normalizing a minimal entry object."""
        mock_entry = Mock()
        mock_entry.title = "Minimal Entry"
        mock_entry.link = " https://example.com/minimal "
        mock_entry.summary = None
        mock_entry.description = None
        mock_entry.content = None
        mock_entry.published = None
        mock_entry.updated = None

        result = FeedNormalizer().normalize_item(mock_entry, SOURCE)

        assert isinstance(result, Item)
        assert result.title == "Minimal Entry"
        assert result.link == "https://example.com/minimal"
        assert result.description == ""
        assert result.published is None

    def test_entry_with_only_link_is_kept(self):
        mock_entry = Mock()
        mock_entry.title = None
        mock_entry.link = "https://example.com/untitled"
        mock_entry.summary = "Body"

        result = FeedNormalizer().normalize_item(mock_entry, SOURCE)

        assert result is not None
        assert result.title == ""
        assert result.link == "https://example.com/untitled"

    def test_entry_without_title_and_link_is_skipped(self):
        mock_entry = Mock()
        mock_entry.title = None
        mock_entry.link = None
        mock_entry.summary = "Body"

        assert FeedNormalizer().normalize_item(mock_entry, SOURCE) is None

    def test_summary_preferred_over_description(self):
        mock_entry = Mock()
        mock_entry.title = "Title"
        mock_entry.link = "https://example.com/a"
        mock_entry.summary = "From summary"
        mock_entry.description = "From description"

        result = FeedNormalizer().normalize_item(mock_entry, SOURCE)

        assert result.description == "From summary"

    def test_atom_content_fallback(self):
        mock_entry = Mock()
        mock_entry.title = "Title"
        mock_entry.link = "https://example.com/a"
        mock_entry.summary = None
        mock_entry.description = None
        mock_entry.content = [{"value": "<p>From content</p>"}]

        result = FeedNormalizer().normalize_item(mock_entry, SOURCE)

        assert result.description == "From content"


class TestTimestampHandlingUnit:
    """Unit tests for timestamp parsing and display formatting."""

    def test_naive_timestamp_is_treated_as_utc(self):
        published = FeedNormalizer().parse_timestamp("2024-01-01 10:00:00")

        assert published == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)

    def test_offset_timestamp_is_preserved(self):
        published = FeedNormalizer().parse_timestamp("2024-01-01T10:00:00+09:00")

        assert published == datetime(2024, 1, 1, 1, 0, tzinfo=UTC)

    def test_unparseable_timestamp(self):
        normalizer = FeedNormalizer()

        assert normalizer.parse_timestamp("not a date at all") is None
        assert normalizer.parse_timestamp("") is None
        assert normalizer.parse_timestamp(None) is None

    def test_unparseable_display_keeps_raw_text(self):
        assert FeedNormalizer().format_display(None, " sometime last week ") == "sometime last week"

    def test_display_timezone_is_configurable(self):
        normalizer = FeedNormalizer(display_timezone="UTC")
        published = datetime(2024, 1, 1, 10, 5, tzinfo=UTC)

        assert normalizer.format_display(published) == "2024/01/01 10:05"

    def test_display_in_default_timezone(self):
        published = datetime(2024, 12, 31, 20, 30, tzinfo=UTC)

        assert FeedNormalizer().format_display(published) == "2025/01/01 05:30"


class TestHtmlCleaningUnit:
    """Unit tests for HTML cleaning of specific problematic cases."""

    def test_cdata_is_unwrapped(self):
        cleaned = FeedNormalizer().clean_html_content("<![CDATA[Plain text inside]]>")

        assert cleaned == "Plain text inside"

    def test_entities_are_decoded(self):
        cleaned = FeedNormalizer().clean_html_content("Q&amp;A with &quot;experts&quot;")

        assert cleaned == 'Q&A with "experts"'

    def test_script_and_style_are_removed(self):
        cleaned = FeedNormalizer().clean_html_content(
            "<style>p { color: red; }</style><p>Visible</p><script>alert('x')</script>"
        )

        assert cleaned == "Visible"

    def test_whitespace_is_collapsed(self):
        cleaned = FeedNormalizer().clean_html_content("<p>Line one</p>\n\n\t<p>Line   two</p>")

        assert cleaned == "Line one Line two"

    def test_empty_content(self):
        normalizer = FeedNormalizer()

        assert normalizer.clean_html_content("") == ""
        assert normalizer.clean_html_content(None) == ""
