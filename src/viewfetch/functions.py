"""Terminal query functions.

A terminal function runs over a resolved fetcher result: ``None``, a
``Tag``, a ``ComponentSet`` or a nested list of those.  Functions are
registered by name in a FunctionRegistry; each engine owns its registry.

Every function is called as ``fn(ctx, result, *args)`` where ``ctx`` is
the engine's FetchContext for the current fetch.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, Callable

from bs4 import Tag

from viewfetch.errors import (
    MultipleElementInteraction,
    UnknownTerminalFunction,
    UnsupportedResultType,
)
from viewfetch.page import Rect
from viewfetch.results import ComponentSet

if TYPE_CHECKING:
    from viewfetch.engine import FetchContext

TerminalFunction = Callable[..., Any]

# A matched component counts as one logical result, however many elements
# it renders, and even when it renders none.  An empty ComponentSet is what
# a non-matching single component query yields, so it counts as zero.
# Existing callers rely on this; it is not an accident of implementation.
ONE_LOGICAL_COMPONENT = 1


def deep_map(item: Any, fn: Callable[[Any], Any]) -> Any:
    """Apply ``fn`` to every leaf of a nested list (or to a lone leaf)."""
    if isinstance(item, list):
        return [deep_map(x, fn) for x in item]
    return fn(item)


def _type_name(item: Any) -> str:
    return type(item).__name__


def exists(ctx: FetchContext, result: Any) -> bool:
    if result is None:
        return False
    if isinstance(result, list):
        return any(exists(ctx, item) for item in result)
    if isinstance(result, ComponentSet):
        return len(result) > 0
    return True


def count(ctx: FetchContext, result: Any) -> int:
    if result is None:
        return 0
    if isinstance(result, list):
        return sum(count(ctx, item) for item in result)
    if isinstance(result, ComponentSet):
        return ONE_LOGICAL_COMPONENT if len(result) else 0
    return 1


def text(ctx: FetchContext, result: Any) -> Any:
    def leaf(item: Any) -> str | None:
        if item is None:
            return None
        if isinstance(item, Tag):
            return item.get_text()
        if isinstance(item, ComponentSet):
            return "".join(el.get_text() for el in ctx.adapter.projected(item))
        raise UnsupportedResultType(f"Cannot get text from unknown item type: {_type_name(item)}")

    return deep_map(result, leaf)


def prop(ctx: FetchContext, result: Any, key: str) -> Any:
    def leaf(item: Any) -> Any:
        if item is None:
            return None
        if isinstance(item, Tag):
            raise UnsupportedResultType("Cannot get props from HTML element")
        if isinstance(item, ComponentSet):
            return item.props().get(key)
        raise UnsupportedResultType(f"Cannot get props from unknown item type: {_type_name(item)}")

    return deep_map(result, leaf)


def interaction_element(ctx: FetchContext, result: Any) -> Tag | None:
    """Element to click or type into on behalf of ``result``.

    Components resolve to their first textarea, input, button or select (in
    the configured order), falling back to their first top-level element.
    """
    if result is None:
        return None
    if isinstance(result, list):
        raise MultipleElementInteraction("Cannot interact with multiple elements at once")
    if isinstance(result, Tag):
        return result
    if not isinstance(result, ComponentSet):
        raise UnsupportedResultType(
            f"Unknown argument type for interactionElement: {_type_name(result)}"
        )
    if len(result) > 1:
        raise MultipleElementInteraction("Cannot interact with multiple elements at once")
    if not result.instances:
        return None

    for selector in ctx.config.interaction_selectors:
        candidates = ctx.adapter.inclusive_find(result, selector)
        if candidates:
            return candidates[0]
    elements = ctx.adapter.elements_of(result.instances[0])
    return elements[0] if elements else None


def _marker_style(ctx: FetchContext, box: Rect) -> str:
    r, g, b = ctx.config.highlight_rgb
    return "; ".join([
        "position: fixed",
        f"top: {box.y:g}px",
        f"left: {box.x:g}px",
        f"height: {box.height:g}px",
        f"width: {box.width:g}px",
        f"background-color: rgba({r}, {g}, {b}, 0.5)",
        f"border: 1px solid rgba({r}, {g}, {b}, 0.7)",
        f"z-index: {ctx.config.highlight_z_index}",
        "pointer-events: none",
    ])


def highlight(ctx: FetchContext, result: Any, timeout_ms: float | None = None) -> bool:
    """Overlay a marker on every leaf of ``result``.

    With ``timeout_ms`` the markers are removed by the first fetch made
    after the timeout has elapsed.
    """
    uid = uuid.uuid4().hex[:12]
    prefix = ctx.config.highlight_class

    def leaf(item: Any) -> None:
        if item is None:
            return
        if isinstance(item, Tag):
            elements = [item]
        elif isinstance(item, ComponentSet):
            elements = ctx.adapter.projected(item)
        else:
            raise UnsupportedResultType(f"Cannot highlight unknown item type: {_type_name(item)}")
        if not elements:
            return
        box = Rect.union_all([ctx.page.rect_of(el) for el in elements])
        marker = ctx.page.document.new_tag(
            "div",
            attrs={"class": [prefix, f"{prefix}-{uid}"], "style": _marker_style(ctx, box)},
        )
        ctx.page.add_highlight(marker, timeout_ms)

    deep_map(result, leaf)
    return True


def clear_highlights(ctx: FetchContext, result: Any) -> int:
    return ctx.page.clear_highlights()


class FunctionRegistry:
    """Name to terminal function mapping."""

    def __init__(self, functions: dict[str, TerminalFunction] | None = None) -> None:
        self._functions: dict[str, TerminalFunction] = dict(functions or {})

    def register(self, name: str, fn: TerminalFunction) -> None:
        self._functions[name] = fn

    def get(self, name: str) -> TerminalFunction:
        fn = self._functions.get(name)
        if fn is None:
            raise UnknownTerminalFunction(name)
        return fn

    def call(self, ctx: FetchContext, name: str, result: Any, args: tuple[Any, ...] = ()) -> Any:
        return self.get(name)(ctx, result, *args)

    def copy(self) -> FunctionRegistry:
        return FunctionRegistry(self._functions)

    @property
    def names(self) -> list[str]:
        return sorted(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions


def default_functions() -> FunctionRegistry:
    return FunctionRegistry({
        "text": text,
        "exists": exists,
        "count": count,
        "prop": prop,
        "interactionElement": interaction_element,
        "highlight": highlight,
        "clearHighlights": clear_highlights,
    })
