"""viewfetch - resolve view selectors against a page's component tree."""

from viewfetch.config import FetchConfig, load_config
from viewfetch.engine import Engine, FetchContext
from viewfetch.errors import (
    AmbiguousInteractionTarget,
    ConfigError,
    InvalidFetcher,
    InvalidQuery,
    MultipleElementInteraction,
    SelectorSyntaxError,
    UnknownTerminalFunction,
    UnsupportedComponentKind,
    UnsupportedResultType,
    ViewFetchError,
)
from viewfetch.fetcher import Fetcher, FunctionCall, Query
from viewfetch.functions import FunctionRegistry, default_functions
from viewfetch.identity import IdentityMap
from viewfetch.page import Page, Rect
from viewfetch.parsing import SelectorParser, parse_selector, with_props
from viewfetch.render import h, load_page, portal, render
from viewfetch.results import ROOT, ComponentSet, NodeSet
from viewfetch.runtime import ComponentType, InstanceKind

__all__ = [
    # Main API
    "Engine",
    "Fetcher",
    "Query",
    "FunctionCall",
    "ROOT",
    # Pages
    "Page",
    "Rect",
    "ComponentType",
    "InstanceKind",
    "h",
    "portal",
    "render",
    "load_page",
    # Parsing
    "SelectorParser",
    "parse_selector",
    "with_props",
    # Results and functions
    "ComponentSet",
    "NodeSet",
    "FetchContext",
    "FunctionRegistry",
    "default_functions",
    "IdentityMap",
    # Configuration
    "FetchConfig",
    "load_config",
    # Errors
    "ViewFetchError",
    "SelectorSyntaxError",
    "UnsupportedComponentKind",
    "MultipleElementInteraction",
    "AmbiguousInteractionTarget",
    "UnknownTerminalFunction",
    "InvalidQuery",
    "InvalidFetcher",
    "UnsupportedResultType",
    "ConfigError",
]

__version__ = "0.1.0"
