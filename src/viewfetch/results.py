"""Values the engine works with while executing a query.

A working result is one of:

* ``None`` (nothing found),
* ``ROOT`` (the whole page, before any segment ran),
* a ``NodeSet`` of document elements,
* a ``ComponentSet`` of component instances,
* a list of any of the above, one level per multi query executed.

Resolved results handed back to callers replace ``NodeSet`` by its single
``Tag`` or by a list of tags.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from bs4 import Tag

from viewfetch.runtime import ComponentInstance


class RootContext:
    """Sentinel context meaning "search the whole page"."""

    is_root = True

    def to_dict(self) -> dict[str, bool]:
        return {"isRoot": True}

    def __repr__(self) -> str:
        return "ROOT"


ROOT = RootContext()


@dataclass(frozen=True, eq=False)
class NodeSet:
    """Document elements in document order, without duplicates."""
    nodes: tuple[Tag, ...] = ()

    def first(self) -> Tag | None:
        return self.nodes[0] if self.nodes else None

    def __iter__(self) -> Iterator[Tag]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)


class ComponentSet:
    """A collection of component instances.

    The root set stands for the whole instance graph and is only ever used
    as a search scope.  An empty, non-root set is a legitimate result: it
    is what a single query yields when no component matched.
    """

    def __init__(self, instances: Iterable[ComponentInstance | None] = (), root: bool = False) -> None:
        self.is_root = root
        self.instances: tuple[ComponentInstance, ...] = tuple(
            i for i in instances if i is not None
        )

    @classmethod
    def root(cls) -> ComponentSet:
        return cls(root=True)

    def first(self) -> ComponentSet:
        if not self.instances:
            return self
        return ComponentSet(self.instances[:1])

    def props(self) -> dict[str, Any]:
        """Props of the first instance, or an empty dict."""
        if not self.instances:
            return {}
        return self.instances[0].props

    def to_individual_list(self) -> list[ComponentSet]:
        return [ComponentSet((instance,)) for instance in self.instances]

    def __iter__(self) -> Iterator[ComponentInstance]:
        return iter(self.instances)

    def __len__(self) -> int:
        return len(self.instances)

    def __repr__(self) -> str:
        if self.is_root:
            return "ComponentSet(root)"
        names = ", ".join(i.name or "?" for i in self.instances)
        return f"ComponentSet([{names}])"
