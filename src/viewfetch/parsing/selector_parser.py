"""Parser for hybrid view selectors.

A view selector is a CSS selector that may contain component segments,
introduced by ``@``::

    div.foo @Label{patrick: "stewart"} .bar b.qux

parses to a structural segment ``div.foo``, a component segment for
``Label`` with predicate ``{"patrick": "stewart"}`` and a structural segment
``.bar b.qux``.  Only plain descendant semantics are supported around
component segments, so ``div > @Widget`` or ``:not(@Widget)`` are not
meaningful.
"""

from __future__ import annotations

import functools
import json
from dataclasses import dataclass
from typing import Any, Union

from viewfetch.errors import InvalidQuery, SelectorSyntaxError
from viewfetch.parsing.predicate_parser import PredicateParser
from viewfetch.parsing.tokenizer import split_selector

COMPONENT_MARKER = "@"


@dataclass(frozen=True)
class StructuralSegment:
    """A run of plain CSS, matched relative to the current scope."""
    selector: str


@dataclass(frozen=True)
class ComponentSegment:
    """A component match: effective name plus optional property predicate.

    ``predicate`` is None when no property block was given.  Parsed segments
    are cached and shared, so the predicate must be treated as read-only.
    """
    name: str
    predicate: dict[str, Any] | None = None


Segment = Union[StructuralSegment, ComponentSegment]


class SelectorParser:
    """Splits view selectors into structural and component segments."""

    def __init__(self) -> None:
        self._predicates = PredicateParser()

    def build(self, **kwargs) -> None:  # type: ignore
        self._predicates.build(**kwargs)

    def parse(self, text: str) -> tuple[Segment, ...]:
        tokens = split_selector(text)
        if not tokens:
            raise InvalidQuery("Cannot query with empty selector")

        segments: list[Segment] = []
        run: list[str] = []
        for token in tokens:
            if token.startswith(COMPONENT_MARKER):
                if run:
                    segments.append(StructuralSegment(" ".join(run)))
                    run = []
                segments.append(self._parse_component(token))
            else:
                run.append(token)
        if run:
            segments.append(StructuralSegment(" ".join(run)))
        return tuple(segments)

    def _parse_component(self, token: str) -> ComponentSegment:
        body = token[len(COMPONENT_MARKER):]
        brace = body.find("{")
        name = body if brace < 0 else body[:brace]
        if not name or "}" in name:
            raise SelectorSyntaxError(f"Invalid component selector {token!r}")
        if brace < 0:
            return ComponentSegment(name=name)
        return ComponentSegment(name=name, predicate=self._predicates.parse(body[brace:]))


@functools.lru_cache(maxsize=1024)
def parse_selector(text: str) -> tuple[Segment, ...]:
    """Parse ``text``, memoized by the exact input string.

    Each cache miss gets its own parser, so no lexer state is shared
    between callers.
    """
    return SelectorParser().parse(text)


def with_props(selector: str, props: dict[str, Any]) -> str:
    """Narrow the trailing component segment of ``selector`` by ``props``.

    The props are appended as a JSON block, so they override any earlier
    block on key collisions.
    """
    selector = selector.rstrip()
    segments = parse_selector(selector)
    if not isinstance(segments[-1], ComponentSegment):
        raise SelectorSyntaxError(
            f"Cannot add props to {selector!r}: it does not end in a component"
        )
    block = json.dumps(props, separators=(",", ":"))
    last_token = split_selector(selector)[-1]
    if "{" in last_token:
        return f"{selector},{block}"
    return f"{selector}{block}"
