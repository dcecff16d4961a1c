"""Fetchers: deferred, serializable descriptions of what to find and where.

A fetcher pairs a context ("where?") with an operation ("what?").  Chaining
views builds fetchers whose context is another fetcher::

    Fetcher(context=Fetcher(context=ROOT, operation=Query(".person", multi=True)),
            operation=Query(".cats li", multi=True))

Here "multi" is per context element: that fetcher yields a 2-dimensional
list with the cats of every person.  The JSON form matches what a host
process sends::

    {"context": {"context": {"isRoot": true},
                 "query": {"selector": ".person", "multi": true, "at": null}},
     "query": {"selector": ".cats li", "multi": true, "at": null}}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from viewfetch.errors import InvalidFetcher
from viewfetch.results import ROOT


@dataclass(frozen=True)
class Query:
    """Find ``selector`` in each context element.

    ``multi`` yields a list per context element instead of the first match;
    ``at`` then picks one entry of that list (negative counts from the end).
    """
    selector: str
    multi: bool = False
    at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"selector": self.selector, "multi": self.multi, "at": self.at}


@dataclass(frozen=True)
class FunctionCall:
    """Run a terminal function over the resolved context."""
    name: str
    args: tuple[Any, ...] = ()


Operation = Union[Query, FunctionCall]


@dataclass(frozen=True)
class Fetcher:
    context: Any
    operation: Operation

    # ---- Builders ----

    @classmethod
    def from_root(cls, selector: str, multi: bool = False, at: int | None = None) -> Fetcher:
        return cls(ROOT, Query(selector, multi=multi, at=at))

    def find(self, selector: str, multi: bool = False, at: int | None = None) -> Fetcher:
        return Fetcher(self, Query(selector, multi=multi, at=at))

    def call(self, name: str, *args: Any) -> Fetcher:
        return Fetcher(self, FunctionCall(name, tuple(args)))

    # ---- JSON shape ----

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"context": context_to_dict(self.context)}
        if isinstance(self.operation, Query):
            data["query"] = self.operation.to_dict()
        else:
            data["fn"] = self.operation.name
            data["args"] = list(self.operation.args)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Fetcher:
        if not isinstance(data, dict) or "context" not in data:
            raise InvalidFetcher(f"Fetcher must be an object with a context: {data!r}")
        context = context_from_dict(data["context"])
        if data.get("query") is not None:
            query = data["query"]
            if not isinstance(query, dict) or "selector" not in query:
                raise InvalidFetcher(f"Query missing selector: {query!r}")
            at = query.get("at")
            if at is not None and not isinstance(at, int):
                raise InvalidFetcher(f"Query 'at' must be an integer: {at!r}")
            return cls(context, Query(query["selector"], multi=bool(query.get("multi")), at=at))
        if data.get("fn") is not None:
            return cls(context, FunctionCall(data["fn"], tuple(data.get("args") or ())))
        raise InvalidFetcher("fetcher must have either a query or fn property")


def context_to_dict(context: Any) -> Any:
    if context is ROOT:
        return ROOT.to_dict()
    if isinstance(context, Fetcher):
        return context.to_dict()
    if isinstance(context, (list, tuple)):
        return [context_to_dict(item) for item in context]
    # None and resolved handles pass through untouched.
    return context


def context_from_dict(data: Any) -> Any:
    if isinstance(data, list):
        return [context_from_dict(item) for item in data]
    if isinstance(data, dict):
        if data.get("isRoot"):
            return ROOT
        return Fetcher.from_dict(data)
    return data
