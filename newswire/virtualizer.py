"""Virtualized list window computation for large, variable-height item lists."""

import time
from bisect import bisect_left, bisect_right
from collections.abc import Callable, Sequence
from itertools import accumulate
from typing import Any

from .models import VirtualItem, VirtualWindow

SCROLL_DEBOUNCE_SECONDS = 0.15


class VirtualList:
    """Computes which rows of a long list need rendering for a scroll offset.

    The measured size map is the only hidden state; everything else is
    derived on every ``compute`` from the items, scroll offset and
    container height. The map resets whenever a different list object is
    installed with ``set_items``.
    """

    def __init__(
        self,
        items: Sequence[Any] = (),
        container_height: float = 600.0,
        item_height: float = 200.0,
        overscan: int = 5,
        estimate_size: Callable[[int], float] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize VirtualList.

        Args:
            items: Backing list of records
            container_height: Visible viewport height in pixels
            item_height: Default size for rows neither measured nor estimated
            overscan: Extra rows rendered on each side of the visible range
            estimate_size: Optional per-index size estimator
            clock: Monotonic clock used for the scrolling debounce
        """
        if overscan < 0:
            raise ValueError("overscan must be non-negative")
        self._items = items
        self.container_height = container_height
        self.item_height = item_height
        self.overscan = overscan
        self.estimate_size = estimate_size
        self.scroll_offset = 0.0
        self._sizes: dict[int, float] = {}
        self._layout: tuple[list[float], list[float], list[float]] | None = None
        self._clock = clock
        self._last_scroll: float | None = None

    @property
    def items(self) -> Sequence[Any]:
        return self._items

    def set_items(self, items: Sequence[Any]) -> None:
        """Install a new backing list; a different list object drops all measurements."""
        if items is not self._items:
            self._sizes.clear()
        self._items = items
        self._layout = None

    def set_container_height(self, height: float) -> None:
        if height < 0:
            raise ValueError("container height must be non-negative")
        self.container_height = height

    def measure(self, index: int, size: float) -> None:
        """Record the observed size of a rendered row."""
        if size < 0:
            raise ValueError("size must be non-negative")
        if not 0 <= index < len(self._items):
            raise IndexError(f"index {index} out of range")
        if self._sizes.get(index) != size:
            self._sizes[index] = size
            self._layout = None

    def item_size(self, index: int) -> float:
        if index in self._sizes:
            return self._sizes[index]
        if self.estimate_size is not None:
            return self.estimate_size(index)
        return self.item_height

    def layout(self) -> tuple[list[float], list[float], list[float]]:
        """Per-row (sizes, starts, ends), rebuilt only after a measurement or list change."""
        if self._layout is None or len(self._layout[0]) != len(self._items):
            sizes = [self.item_size(i) for i in range(len(self._items))]
            ends = list(accumulate(sizes))
            starts = [end - size for end, size in zip(ends, sizes)]
            self._layout = (sizes, starts, ends)
        return self._layout

    def offsets(self) -> list[float]:
        """Start offset of every row (prefix sums of sizes)."""
        return list(self.layout()[1])

    @property
    def total_size(self) -> float:
        ends = self.layout()[2]
        return ends[-1] if ends else 0.0

    def on_scroll(self, offset: float) -> None:
        self.scroll_offset = max(0.0, offset)
        self._last_scroll = self._clock()

    @property
    def is_scrolling(self) -> bool:
        """True until 150 ms pass without a scroll event."""
        if self._last_scroll is None:
            return False
        return self._clock() - self._last_scroll < SCROLL_DEBOUNCE_SECONDS

    def compute(self, scroll_offset: float | None = None) -> VirtualWindow:
        """Return the render window for ``scroll_offset`` (default: last scrolled offset)."""
        count = len(self._items)
        if count == 0:
            return VirtualWindow(virtual_items=[], start_index=0, stop_index=0, total_size=0.0)

        offset = self.scroll_offset if scroll_offset is None else max(0.0, scroll_offset)
        sizes, starts, ends = self.layout()

        # First row whose extent reaches past the offset, last row starting before the viewport end
        first = min(bisect_right(ends, offset), count - 1)
        last = bisect_left(starts, offset + self.container_height) - 1
        last = min(max(last, first), count - 1)

        start_index = max(0, first - self.overscan)
        stop_index = min(count, last + self.overscan + 1)

        virtual_items = [
            VirtualItem(index=i, start=starts[i], size=sizes[i], item=self._items[i])
            for i in range(start_index, stop_index)
        ]
        return VirtualWindow(
            virtual_items=virtual_items,
            start_index=start_index,
            stop_index=stop_index,
            total_size=ends[-1],
        )
