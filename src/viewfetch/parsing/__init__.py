"""Parsing for view selectors and their property blocks."""

from viewfetch.parsing.predicate_parser import PredicateParser
from viewfetch.parsing.selector_parser import (
    ComponentSegment,
    Segment,
    SelectorParser,
    StructuralSegment,
    parse_selector,
    with_props,
)
from viewfetch.parsing.tokenizer import split_selector

__all__ = [
    "ComponentSegment",
    "PredicateParser",
    "Segment",
    "SelectorParser",
    "StructuralSegment",
    "parse_selector",
    "split_selector",
    "with_props",
]
