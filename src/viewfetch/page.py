"""Page snapshot: structural document plus the component runtime.

The document is a BeautifulSoup tree.  Host instances of the runtime are
bound to the tags they render; the binding is keyed by object identity
because tags compare by content.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from bs4 import BeautifulSoup, Tag

from viewfetch.runtime import ComponentInstance, ComponentRuntime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    """Layout box in viewport coordinates."""
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0

    def union(self, other: Rect) -> Rect:
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        right = max(self.x + self.width, other.x + other.width)
        bottom = max(self.y + self.height, other.y + other.height)
        return Rect(x, y, right - x, bottom - y)

    @classmethod
    def union_all(cls, rects: list[Rect]) -> Rect:
        if not rects:
            return cls()
        result = rects[0]
        for rect in rects[1:]:
            result = result.union(rect)
        return result


@dataclass
class Highlight:
    marker: Tag
    deadline: float | None = None


class Page:
    """A snapshot of one page that fetchers are resolved against."""

    def __init__(
        self,
        document: BeautifulSoup,
        runtime: ComponentRuntime | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.document = document
        self.runtime = runtime or ComponentRuntime()
        self.clock = clock
        self._hosts: dict[int, ComponentInstance] = {}
        self._layout: dict[int, Rect] = {}
        self._highlights: list[Highlight] = []

    @classmethod
    def from_html(cls, html: str, **kwargs) -> Page:  # type: ignore
        """Structural-only page: no component is bound to any node."""
        return cls(BeautifulSoup(html, "lxml"), **kwargs)

    @property
    def body(self) -> Tag:
        return self.document.body or self.document

    def root(self, name: str = "body") -> Tag:
        found = self.document.find(name)
        return found if found is not None else self.document

    def elements(self, root: Tag | None = None) -> list[Tag]:
        """Every element under ``root`` in document order, ``root`` first."""
        root = root if root is not None else self.body
        return [root, *root.find_all(True)]

    # ---- Host bindings ----

    def bind(self, node: Tag, instance: ComponentInstance) -> None:
        instance.backing = node
        self._hosts[id(node)] = instance

    def host_instance(self, node: Tag) -> ComponentInstance | None:
        return self._hosts.get(id(node))

    # ---- Layout ----

    def set_rect(self, node: Tag, rect: Rect) -> None:
        self._layout[id(node)] = rect

    def rect_of(self, node: Tag) -> Rect:
        return self._layout.get(id(node), Rect())

    # ---- Highlight markers ----

    def add_highlight(self, marker: Tag, timeout_ms: float | None = None) -> None:
        deadline = None
        if timeout_ms:
            deadline = self.clock() + timeout_ms / 1000.0
        self.body.append(marker)
        self._highlights.append(Highlight(marker, deadline))

    def expire_highlights(self) -> int:
        """Remove markers whose deadline has passed; returns how many."""
        now = self.clock()
        expired = [h for h in self._highlights if h.deadline is not None and h.deadline <= now]
        for highlight in expired:
            highlight.marker.decompose()
        if expired:
            done = {id(h) for h in expired}
            self._highlights = [h for h in self._highlights if id(h) not in done]
            logger.debug("expired %d highlight marker(s)", len(expired))
        return len(expired)

    def clear_highlights(self) -> int:
        count = len(self._highlights)
        for highlight in self._highlights:
            highlight.marker.decompose()
        self._highlights = []
        return count

    @property
    def highlight_count(self) -> int:
        return len(self._highlights)
