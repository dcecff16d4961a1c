"""Component runtime model: the instance graph overlaid on the document.

Instances are stored in an arena (``ComponentRuntime.instances``) and refer
to each other through ``parent`` (the "return" link), ``child`` and
``sibling``.  Several records may stand for the same logical component
(the runtime keeps alternates around), which is why identity is resolved
through the backing object rather than the record itself.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union


class InstanceKind(enum.Enum):
    ROOT = "root"
    HOST = "host"
    TEXT = "text"
    FUNCTION = "function"
    CLASS = "class"
    LAZY_CLASS = "lazy_class"
    PORTAL = "portal"
    MEMO = "memo"
    SIMPLE_MEMO = "simple_memo"
    FORWARD_REF = "forward_ref"
    CONTEXT_PROVIDER = "context_provider"
    FRAGMENT = "fragment"


@dataclass(frozen=True)
class ComponentType:
    """A component definition.

    ``display_name`` wins over ``name`` when it is a string, mirroring how
    devtools pick the name users see.
    """
    name: str
    kind: InstanceKind = InstanceKind.CLASS
    display_name: str | None = None

    @property
    def effective_name(self) -> str:
        if isinstance(self.display_name, str):
            return self.display_name
        return self.name


InstanceType = Union[ComponentType, str, None]


class ComponentState:
    """Backing object of a stateful component instance."""

    def __init__(self, component: ComponentType) -> None:
        self.component = component

    def __repr__(self) -> str:
        return f"<ComponentState {self.component.effective_name}>"


class PortalHandle:
    """Backing object of a portal: where its children are relocated to."""

    def __init__(self, container: Any) -> None:
        self.container = container

    def __repr__(self) -> str:
        name = getattr(self.container, "name", None)
        return f"<PortalHandle into {name}>"


@dataclass(eq=False)
class ComponentInstance:
    index: int
    kind: InstanceKind
    type: InstanceType = None
    props: dict[str, Any] = field(default_factory=dict)
    key: str | None = None
    backing: Any = None
    parent: ComponentInstance | None = field(default=None, repr=False)
    child: ComponentInstance | None = field(default=None, repr=False)
    sibling: ComponentInstance | None = field(default=None, repr=False)

    @property
    def is_host(self) -> bool:
        return isinstance(self.type, str)

    @property
    def name(self) -> str | None:
        """Effective component name, or the tag name for host instances."""
        if isinstance(self.type, ComponentType):
            return self.type.effective_name
        if isinstance(self.type, str):
            return self.type
        return None


class ComponentRuntime:
    """Arena owning every instance record of one page."""

    def __init__(self) -> None:
        self.instances: list[ComponentInstance] = []
        self._last_child: dict[int, ComponentInstance] = {}

    def create(
        self,
        kind: InstanceKind,
        type: InstanceType = None,
        props: dict[str, Any] | None = None,
        key: str | None = None,
        backing: Any = None,
        parent: ComponentInstance | None = None,
    ) -> ComponentInstance:
        instance = ComponentInstance(
            index=len(self.instances),
            kind=kind,
            type=type,
            props=dict(props or {}),
            key=key,
            backing=backing,
        )
        self.instances.append(instance)
        if parent is not None:
            self.append_child(parent, instance)
        return instance

    def append_child(self, parent: ComponentInstance, child: ComponentInstance) -> None:
        child.parent = parent
        last = self._last_child.get(parent.index)
        if last is None:
            parent.child = child
        else:
            last.sibling = child
        self._last_child[parent.index] = child

    def alternate(self, instance: ComponentInstance) -> ComponentInstance:
        """Add a second record for the same component, sharing its links."""
        twin = ComponentInstance(
            index=len(self.instances),
            kind=instance.kind,
            type=instance.type,
            props=instance.props,
            key=instance.key,
            backing=instance.backing,
            parent=instance.parent,
            child=instance.child,
            sibling=instance.sibling,
        )
        self.instances.append(twin)
        return twin

    def __len__(self) -> int:
        return len(self.instances)
