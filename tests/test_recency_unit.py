"""Unit tests for the recency filter."""

from datetime import UTC, datetime, timedelta

from newswire.models import Item
from newswire.recency import date_range_text, filter_recent, is_recent, select_recent

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


def make_item(title: str, age: timedelta | None) -> Item:
    return Item(
        title=title,
        description="",
        link=f"https://example.com/{title}",
        published_at="",
        source="s",
        published=None if age is None else NOW - age,
    )


class TestRecencyFilterUnit:
    """Unit tests for filter_recent and is_recent."""

    def test_window_boundary(self):
        just_outside = make_item("outside", timedelta(days=14, seconds=1))
        just_inside = make_item("inside", timedelta(days=14, seconds=-1))
        exactly = make_item("exactly", timedelta(days=14))

        assert not is_recent(just_outside, 14, NOW)
        assert is_recent(just_inside, 14, NOW)
        assert is_recent(exactly, 14, NOW)

    def test_undated_items_are_dropped(self):
        assert filter_recent([make_item("undated", None)], 14, NOW) == []

    def test_filter_keeps_order(self):
        items = [
            make_item("a", timedelta(days=1)),
            make_item("old", timedelta(days=30)),
            make_item("b", timedelta(days=2)),
        ]

        assert [item.title for item in filter_recent(items, 14, NOW)] == ["a", "b"]

    def test_custom_window(self):
        items = [make_item("a", timedelta(days=3)), make_item("b", timedelta(days=8))]

        assert [item.title for item in filter_recent(items, 7, NOW)] == ["a"]


class TestSelectRecentUnit:
    """Unit tests for select_recent fallback behavior."""

    def test_no_fallback_when_recent_items_exist(self):
        items = [make_item("fresh", timedelta(days=1)), make_item("stale", timedelta(days=40))]

        selection = select_recent(items, 14, 20, NOW)

        assert [item.title for item in selection.items] == ["fresh"]
        assert selection.fallback_used is False
        assert selection.warning is None

    def test_fallback_returns_newest_unfiltered_items(self):
        items = [make_item(f"old-{days}", timedelta(days=days)) for days in (40, 20, 30, 50)]

        selection = select_recent(items, 14, 2, NOW)

        assert [item.title for item in selection.items] == ["old-20", "old-30"]
        assert selection.fallback_used is True
        assert "older than 14 days" in selection.warning

    def test_empty_input_is_not_a_fallback(self):
        selection = select_recent([], 14, 20, NOW)

        assert selection.items == []
        assert selection.fallback_used is False

    def test_date_range_text(self):
        assert date_range_text(14, NOW) == "2024/06/01 onward"
