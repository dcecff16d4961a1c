"""Fetcher execution engine.

Executing a fetcher happens in two phases: normalize the context, then run
the operation against it.  Normalizing turns a context into one of

1. ``None``: the query result is ``None``,
2. ``ROOT``, a ``Tag`` or a ``ComponentSet``: search it,
3. a list: run the query for each element.

A context that is itself a fetcher is normalized by executing it, which is
the only recursion between fetchers.  Each multi query wraps its per-context
results in a list, so the final result is an N-dimensional list where N is
the number of multi queries in the chain.
"""

from __future__ import annotations

import logging
from typing import Any, Union

from bs4 import Tag

from viewfetch.adapter import TreeAdapter
from viewfetch.config import FetchConfig
from viewfetch.errors import InvalidFetcher, InvalidQuery
from viewfetch.fetcher import Fetcher, FunctionCall, Query
from viewfetch.functions import FunctionRegistry, default_functions
from viewfetch.identity import IdentityMap
from viewfetch.page import Page
from viewfetch.parsing.selector_parser import (
    ComponentSegment,
    Segment,
    StructuralSegment,
    parse_selector,
)
from viewfetch.results import ROOT, ComponentSet, NodeSet

logger = logging.getLogger(__name__)

Working = Union[NodeSet, ComponentSet]


class FetchContext:
    """State for one fetch: a fresh identity map and the adapter built on it."""

    def __init__(self, page: Page, config: FetchConfig, functions: FunctionRegistry) -> None:
        self.page = page
        self.config = config
        self.functions = functions
        self.identities = IdentityMap()
        self.adapter = TreeAdapter(page, self.identities, root=config.document_root)


class Engine:
    """Resolves fetchers against a page."""

    def __init__(
        self,
        page: Page,
        config: FetchConfig | None = None,
        functions: FunctionRegistry | None = None,
    ) -> None:
        self.page = page
        self.config = config or FetchConfig()
        self.functions = functions if functions is not None else default_functions()

    def fetch(self, fetcher: Union[Fetcher, dict[str, Any]]) -> Any:
        """Resolve ``fetcher`` to ``None``, a value, or a nested list.

        A component instance is never a valid top-level answer: callers get
        elements or function results, never bare components.
        """
        if isinstance(fetcher, dict):
            fetcher = Fetcher.from_dict(fetcher)
        self.page.expire_highlights()
        ctx = FetchContext(self.page, self.config, self.functions)
        logger.debug("fetch %r", fetcher)
        return self.execute_fetcher(ctx, fetcher, allow_components=False)

    # ---- Fetchers and contexts ----

    def execute_fetcher(self, ctx: FetchContext, fetcher: Fetcher, allow_components: bool = True) -> Any:
        context = self.normalize_context(ctx, fetcher.context)
        operation = fetcher.operation
        if isinstance(operation, Query):
            return self.execute_query(ctx, operation, context, allow_components)
        if isinstance(operation, FunctionCall):
            logger.debug("calling %s%r", operation.name, operation.args)
            return ctx.functions.call(ctx, operation.name, context, operation.args)
        raise InvalidFetcher("fetcher must have either a query or fn operation")

    def normalize_context(self, ctx: FetchContext, context: Any) -> Any:
        if context is None or context is ROOT:
            return context
        if isinstance(context, (list, tuple)):
            return [self.normalize_context(ctx, item) for item in context]
        if isinstance(context, (Tag, ComponentSet)):
            return context
        if isinstance(context, Fetcher):
            return self.execute_fetcher(ctx, context)
        raise InvalidFetcher(f"Unexpected context for normalize_context: {context!r}")

    # ---- Queries ----

    def execute_query(
        self, ctx: FetchContext, query: Query, context: Any, allow_components: bool = True
    ) -> Any:
        if query.at is not None and not query.multi:
            raise InvalidQuery("Can only use `at` on a multi query")
        if context is None:
            return None
        if isinstance(context, list):
            return [self.execute_query(ctx, query, item, allow_components) for item in context]

        segments = parse_selector(query.selector)
        if not allow_components and isinstance(segments[-1], ComponentSegment):
            raise InvalidQuery(
                f"Cannot resolve {query.selector!r} to a component instance; "
                "select an element inside it instead"
            )

        result: Working
        if context is ROOT:
            if isinstance(segments[0], StructuralSegment):
                result = NodeSet((ctx.adapter.root,))
            else:
                result = ComponentSet.root()
        elif isinstance(context, Tag):
            result = NodeSet((context,))
        elif isinstance(context, ComponentSet):
            result = context
        else:
            raise InvalidFetcher(f"Cannot query from context {context!r}")

        for segment in segments:
            result = self.execute_segment(ctx, result, segment)
        return self._finish(query, result)

    def execute_segment(self, ctx: FetchContext, previous: Working, segment: Segment) -> Working:
        adapter = ctx.adapter
        if isinstance(segment, StructuralSegment):
            if isinstance(previous, NodeSet):
                return NodeSet(tuple(adapter.search_all(previous, segment.selector)))
            return NodeSet(tuple(adapter.inclusive_find(previous, segment.selector)))
        if isinstance(segment, ComponentSegment):
            if isinstance(previous, NodeSet):
                scope = adapter.components_of(previous)
            else:
                scope = previous
            return adapter.find_descendants(scope, segment.name, segment.predicate)
        raise InvalidQuery(f"Unknown selector segment {segment!r}")

    def _finish(self, query: Query, result: Working) -> Any:
        if query.multi:
            items: list[Any]
            if isinstance(result, NodeSet):
                items = list(result.nodes)
            else:
                items = result.to_individual_list()
            if query.at is None:
                return items
            at = query.at + len(items) if query.at < 0 else query.at
            return items[at] if 0 <= at < len(items) else None
        return result.first()
