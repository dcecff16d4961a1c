"""Component tree adapter: moves between elements and component instances.

Elements know the host instance that rendered them; instances know their
parent.  Walking from leaf to root is the only direction relied upon, and
it is what lets searches jump through portals: a portal's contents sit
elsewhere in the document, but their instance chain still returns through
the portal to the component that created it.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Iterable, Protocol

import soupsieve
from bs4 import BeautifulSoup, Tag
from mongoquery import Query, QueryError

from viewfetch.errors import InvalidQuery, SelectorSyntaxError, UnsupportedComponentKind
from viewfetch.identity import IdentityMap
from viewfetch.page import Page
from viewfetch.results import ComponentSet
from viewfetch.runtime import ComponentInstance, ComponentType, InstanceKind

logger = logging.getLogger(__name__)

InstancePredicate = Callable[[ComponentInstance], bool]

# Kinds that must carry a backing object to be matched.
_BACKED_KINDS = (InstanceKind.CLASS, InstanceKind.LAZY_CLASS, InstanceKind.PORTAL)
_MEMO_KINDS = (InstanceKind.MEMO, InstanceKind.SIMPLE_MEMO)

# :reactKey(third), :reactKey("2"): matches elements rendered with that key.
_KEY_PSEUDO = re.compile(
    r""":reactKey\(\s*(?:"([^"]*)"|'([^']*)'|([^)]*?))\s*\)""", re.IGNORECASE
)


def search(scope: Tag, selector: str) -> list[Tag]:
    """Descendants of ``scope`` matching the CSS ``selector``."""
    try:
        return list(scope.select(selector))
    except soupsieve.SelectorSyntaxError as e:
        raise SelectorSyntaxError(f"Invalid CSS selector {selector!r}: {e}") from e


def element_path(node: Tag) -> str | None:
    """A selector matching exactly ``node``, or None for detached nodes."""
    steps = []
    current = node
    while not isinstance(current.parent, BeautifulSoup):
        if current.parent is None:
            return None
        siblings = current.parent.find_all(True, recursive=False)
        index = next(i for i, sibling in enumerate(siblings, 1) if sibling is current)
        steps.append(f":nth-child({index})")
        current = current.parent
    steps.append(":root")
    return " > ".join(reversed(steps))


def unique(nodes: Iterable[Any]) -> list[Any]:
    seen: set[int] = set()
    result = []
    for node in nodes:
        if id(node) not in seen:
            seen.add(id(node))
            result.append(node)
    return result


# ---- Identity strategies ----


class IdentityStrategy(Protocol):
    def identity(self, adapter: TreeAdapter, instance: ComponentInstance) -> str: ...


class BackedIdentity:
    """Instances with a durable backing object are identified by it."""

    def identity(self, adapter: TreeAdapter, instance: ComponentInstance) -> str:
        backing = instance.backing if instance.backing is not None else instance
        return adapter.identities.token(backing)


class PositionalIdentity:
    """Anonymous instances are identified by their position under the parent."""

    def identity(self, adapter: TreeAdapter, instance: ComponentInstance) -> str:
        return f"{adapter.identity(instance.parent)}.{adapter.sibling_index(instance)}"


IDENTITY_STRATEGIES: dict[InstanceKind, IdentityStrategy] = {
    InstanceKind.FUNCTION: PositionalIdentity(),
}
DEFAULT_IDENTITY: IdentityStrategy = BackedIdentity()


_MISSING = object()


def _lookup(props: dict[str, Any], path: str) -> Any:
    value: Any = props
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def scalar_types_agree(predicate: dict[str, Any], props: dict[str, Any]) -> bool:
    """False when a literal bool is compared with a number, or the reverse.

    Python treats ``True == 1``; prop matching must not.
    """
    for key, expected in predicate.items():
        if key.startswith("$") or not isinstance(expected, (bool, int, float)):
            continue
        actual = _lookup(props, key)
        if actual is _MISSING or isinstance(actual, (list, tuple)):
            continue
        if isinstance(actual, bool) != isinstance(expected, bool):
            return False
    return True


def make_instance_predicate(name: str, predicate: dict[str, Any] | None) -> InstancePredicate:
    """Match component instances by effective name and props."""
    predicate = predicate or {}
    query = Query(predicate)

    def matches(instance: ComponentInstance) -> bool:
        if not isinstance(instance.type, ComponentType):
            return False
        if instance.type.effective_name != name:
            return False
        try:
            return query.match(instance.props) and scalar_types_agree(predicate, instance.props)
        except QueryError as e:
            raise InvalidQuery(f"Invalid property predicate for @{name}: {e}") from e

    return matches


class TreeAdapter:
    """Traversal helpers for one page, valid for the duration of one fetch."""

    def __init__(self, page: Page, identities: IdentityMap, root: str = "body") -> None:
        self.page = page
        self.identities = identities
        self.root = page.root(root)
        self._identity_cache: dict[int, str] = {}
        self._sibling_indexes: dict[int, int] = {}
        self._positions: dict[int, int] | None = None
        self._keyed: dict[str, list[Tag]] | None = None

    # ---- Identity ----

    def identity(self, instance: ComponentInstance | None) -> str:
        if instance is None:
            return self.identities.token(None)
        cached = self._identity_cache.get(instance.index)
        if cached is None:
            strategy = IDENTITY_STRATEGIES.get(instance.kind, DEFAULT_IDENTITY)
            cached = strategy.identity(self, instance)
            self._identity_cache[instance.index] = cached
        return cached

    def same(self, a: ComponentInstance, b: ComponentInstance) -> bool:
        return self.identity(a) == self.identity(b)

    def sibling_index(self, instance: ComponentInstance) -> int:
        """Number of sibling links from ``instance`` to the end of its chain."""
        pending = []
        current: ComponentInstance | None = instance
        while current is not None and current.index not in self._sibling_indexes:
            pending.append(current)
            current = current.sibling
        index = -1 if current is None else self._sibling_indexes[current.index]
        for node in reversed(pending):
            index += 1
            self._sibling_indexes[node.index] = index
        return self._sibling_indexes[instance.index]

    # ---- Document order ----

    def position(self, node: Tag) -> int:
        if self._positions is None:
            self._positions = {
                id(el): i for i, el in enumerate(self.page.document.find_all(True))
            }
        return self._positions.get(id(node), len(self._positions))

    def document_order(self, nodes: Iterable[Tag]) -> list[Tag]:
        return sorted(unique(nodes), key=self.position)

    # ---- Elements <-> instances ----

    def owner_of(self, node: Tag, predicate: InstancePredicate | None = None) -> ComponentInstance | None:
        """Nearest component directly owning ``node`` that satisfies ``predicate``.

        The walk stops at the first host instance above the node's own: past
        that point the node belongs to another element, not to a component.
        """
        instance = self.page.host_instance(node)
        if instance is None:
            return None
        current = instance.parent
        while current is not None:
            if current.is_host:
                return None
            if predicate is None or predicate(current):
                return current
            current = current.parent
        return None

    def is_direct_owner(self, node: Tag, instance: ComponentInstance) -> bool:
        return self.owner_of(node, lambda candidate: self.same(candidate, instance)) is not None

    def elements_of(self, instance: ComponentInstance) -> list[Tag]:
        """Top-level elements rendered by ``instance``, wherever they landed."""
        return [
            el for el in self.page.document.find_all(True)
            if self.is_direct_owner(el, instance)
        ]

    def projected(self, components: ComponentSet) -> list[Tag]:
        elements: list[Tag] = []
        for instance in components:
            elements.extend(self.elements_of(instance))
        return self.document_order(elements)

    def components_of(self, nodes: Iterable[Tag]) -> ComponentSet:
        return ComponentSet(self.page.host_instance(node) for node in nodes)

    # ---- Searches ----

    def keyed_elements(self, key: str) -> list[Tag]:
        """Elements rendered with the React-style ``key``, compared as text."""
        if self._keyed is None:
            self._keyed = {}
            for instance in self.page.runtime.instances:
                if instance.is_host and instance.key is not None and isinstance(instance.backing, Tag):
                    self._keyed.setdefault(str(instance.key), []).append(instance.backing)
        return unique(self._keyed.get(key, []))

    def expand_keys(self, selector: str) -> str:
        """Rewrite :reactKey(...) into plain CSS soupsieve understands.

        Each pseudo-class becomes an ``:is()`` over structural paths to the
        keyed elements, so it composes with any combinator around it.
        """
        def replace(m: re.Match) -> str:
            key = next(g for g in m.groups() if g is not None)
            paths = [p for p in map(element_path, self.keyed_elements(key)) if p]
            return f":is({', '.join(paths)})" if paths else ":not(*)"

        return _KEY_PSEUDO.sub(replace, selector)

    def search_all(self, scopes: Iterable[Tag], selector: str) -> list[Tag]:
        selector = self.expand_keys(selector)
        found: list[Tag] = []
        for scope in scopes:
            found.extend(search(scope, selector))
        return self.document_order(found)

    def inclusive_find(self, components: ComponentSet, selector: str) -> list[Tag]:
        """Elements matching ``selector`` inside ``components``.

        Components have no element of their own, so the search runs from the
        parents of their top-level elements and keeps only matches that are
        one of those elements or descend from one.
        """
        if components.is_root:
            raise RuntimeError("inclusive_find cannot run against the root scope")
        found: list[Tag] = []
        for instance in components:
            found.extend(self._inclusive_select(self.elements_of(instance), selector))
        return self.document_order(found)

    def _inclusive_select(self, roots: list[Tag], selector: str) -> list[Tag]:
        if not roots:
            return []
        root_ids = {id(root) for root in roots}
        scopes = unique(root.parent if root.parent is not None else root for root in roots)
        matched = []
        for candidate in self.search_all(scopes, selector):
            if id(candidate) in root_ids or any(id(p) in root_ids for p in candidate.parents):
                matched.append(candidate)
        return matched

    def find_descendants(
        self, scope: ComponentSet, name: str, predicate: dict[str, Any] | None = None
    ) -> ComponentSet:
        """Components named ``name`` below ``scope``, in document order.

        Every element is visited in document order and its instance chain is
        walked toward the root.  Chains are cut at the first instance already
        visited, and in-scope checks are memoized, so the whole search costs
        O(scope size * instance count) however many elements share a chain.
        """
        if not scope.is_root and not scope.instances:
            return ComponentSet()
        matches = make_instance_predicate(name, predicate)
        in_scope = self._scope_test(scope)

        seen: set[str] = set()
        results: list[ComponentInstance] = []
        for element in self.page.elements(self.root):
            path_matches = []
            current = self.page.host_instance(element)
            while current is not None:
                ident = self.identity(current)
                if ident in seen:
                    break
                if matches(current) and in_scope(current):
                    self.validate_supported(current)
                    path_matches.append(current)
                seen.add(ident)
                current = current.parent
            # The walk runs leaf to root, the reverse of document order.
            path_matches.reverse()
            results.extend(path_matches)

        logger.debug("@%s matched %d instance(s)", name, len(results))
        return ComponentSet(results)

    def _scope_test(self, scope: ComponentSet) -> InstancePredicate:
        if scope.is_root:
            return lambda instance: True
        scope_ids = {self.identity(instance) for instance in scope}
        memo: dict[int, bool] = {}

        def in_scope(instance: ComponentInstance) -> bool:
            path = []
            current = instance
            while True:
                if current.index in memo:
                    result = memo[current.index]
                    break
                path.append(current)
                parent = current.parent
                if parent is None:
                    result = False
                    break
                if self.identity(parent) in scope_ids:
                    result = True
                    break
                current = parent
            for node in path:
                memo[node.index] = result
            return result

        return in_scope

    def validate_supported(self, instance: ComponentInstance) -> None:
        """Raise unless ``instance`` can be safely used as a match."""
        name = instance.name or "<unknown>"
        kind = instance.kind
        if kind in _MEMO_KINDS:
            raise UnsupportedComponentKind(
                name,
                f"Component {name} is a memo component, which is not currently supported.\n"
                "You can, however, match components inside the memo component.",
            )
        if kind is InstanceKind.FUNCTION:
            return
        if kind not in _BACKED_KINDS:
            raise UnsupportedComponentKind(
                name,
                f"Component {name} is an unsupported instance kind ({kind.value}) "
                "and cannot be queried",
            )
        if instance.backing is None:
            raise UnsupportedComponentKind(
                name, f"Instance of non-functional component {name} has no backing object"
            )
