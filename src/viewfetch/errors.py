"""Exception types raised while parsing and resolving fetchers."""

from __future__ import annotations


class ViewFetchError(Exception):
    """Base class for every error raised by viewfetch."""


class SelectorSyntaxError(ViewFetchError, SyntaxError):
    """A selector, predicate block, or embedded CSS selector is malformed."""


class UnsupportedComponentKind(ViewFetchError):
    """A matched component instance is of a kind that cannot be introspected."""

    def __init__(self, component: str, message: str) -> None:
        super().__init__(message)
        self.component = component


class MultipleElementInteraction(ViewFetchError):
    """An interaction target was requested for more than one element."""


# Callers narrowing a query usually think of this as ambiguity.
AmbiguousInteractionTarget = MultipleElementInteraction


class UnknownTerminalFunction(ViewFetchError, LookupError):
    """A fetcher named a terminal function that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown query function {name}")
        self.name = name


class InvalidQuery(ViewFetchError, ValueError):
    """A query is well-formed syntactically but cannot be executed."""


class InvalidFetcher(ViewFetchError, ValueError):
    """A fetcher or one of its contexts has an unexpected shape."""


class UnsupportedResultType(ViewFetchError, TypeError):
    """A terminal function received a result it cannot operate on."""


class ConfigError(ViewFetchError, ValueError):
    """Invalid engine configuration."""
