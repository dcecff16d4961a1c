"""Build page snapshots from virtual-node trees.

This plays the part of the page's UI runtime: it renders a tree of
elements, components and portals into a BeautifulSoup document and records
the matching component instance graph.  Trees are built in Python with
``h`` and ``portal``::

    Alpha = ComponentType("Alpha")
    page = render(
        h(Alpha, {"frank": "oz"},
          h("div", {"class": "alpha-div"}, "Fifth div"),
          portal("body", h("span", None, "elsewhere")))
    )

or loaded from a JSON snapshot with ``load_page``.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Union

from bs4 import BeautifulSoup, NavigableString, Tag

from viewfetch.page import Page, Rect
from viewfetch.runtime import (
    ComponentInstance,
    ComponentRuntime,
    ComponentState,
    ComponentType,
    InstanceKind,
    PortalHandle,
)

logger = logging.getLogger(__name__)

SHELL = '<html><head></head><body><div id="root"></div></body></html>'

# Kinds that keep a durable backing object per mounted instance.
_STATEFUL_KINDS = (InstanceKind.CLASS, InstanceKind.LAZY_CLASS)


@dataclass
class ElementNode:
    tag: str
    attrs: dict[str, Any] = field(default_factory=dict)
    children: list[Any] = field(default_factory=list)
    key: str | None = None
    rect: Rect | None = None


@dataclass
class ComponentNode:
    type: ComponentType
    props: dict[str, Any] = field(default_factory=dict)
    children: list[Any] = field(default_factory=list)
    key: str | None = None


@dataclass
class PortalNode:
    container: Union[str, Tag]
    children: list[Any] = field(default_factory=list)


VNode = Union[ElementNode, ComponentNode, PortalNode, str]


def h(
    type: Union[str, ComponentType],
    props: dict[str, Any] | None = None,
    *children: Any,
    key: str | None = None,
    rect: Union[Rect, tuple, None] = None,
) -> Union[ElementNode, ComponentNode]:
    """Create an element (string type) or component (ComponentType) node."""
    if isinstance(type, ComponentType):
        return ComponentNode(type=type, props=dict(props or {}), children=list(children), key=key)
    if isinstance(rect, tuple):
        rect = Rect(*rect)
    return ElementNode(
        tag=type, attrs=dict(props or {}), children=list(children), key=key, rect=rect
    )


def portal(container: Union[str, Tag], *children: Any) -> PortalNode:
    """Render ``children`` into ``container`` (a CSS selector or a tag)."""
    return PortalNode(container=container, children=list(children))


class Renderer:
    """Renders virtual nodes into a fresh Page."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.clock = clock

    def render(self, tree: Union[VNode, list]) -> Page:
        document = BeautifulSoup(SHELL, "lxml")
        page = Page(document, ComponentRuntime(), clock=self.clock)
        container = document.find(id="root")
        root = page.runtime.create(InstanceKind.ROOT, backing=container)
        self._render_children(page, tree, container, root)
        logger.debug("rendered page with %d instances", len(page.runtime))
        return page

    def _render_children(
        self, page: Page, children: Any, dom_parent: Tag, parent: ComponentInstance
    ) -> None:
        if isinstance(children, (list, tuple)):
            for child in children:
                self._render_children(page, child, dom_parent, parent)
            return
        if children is None or children is False:
            return
        self._render_node(page, children, dom_parent, parent)

    def _render_node(
        self, page: Page, node: Any, dom_parent: Tag, parent: ComponentInstance
    ) -> None:
        runtime = page.runtime
        if isinstance(node, (str, int, float)):
            text = NavigableString(str(node))
            dom_parent.append(text)
            runtime.create(InstanceKind.TEXT, backing=text, parent=parent)
        elif isinstance(node, ElementNode):
            tag = page.document.new_tag(node.tag, attrs=_normalize_attrs(node.attrs))
            dom_parent.append(tag)
            instance = runtime.create(
                InstanceKind.HOST, type=node.tag, props=node.attrs, key=node.key, parent=parent
            )
            page.bind(tag, instance)
            if node.rect is not None:
                page.set_rect(tag, node.rect)
            self._render_children(page, node.children, tag, instance)
        elif isinstance(node, ComponentNode):
            kind = node.type.kind
            backing = ComponentState(node.type) if kind in _STATEFUL_KINDS else None
            instance = runtime.create(
                kind, type=node.type, props=node.props, key=node.key,
                backing=backing, parent=parent,
            )
            self._render_children(page, node.children, dom_parent, instance)
        elif isinstance(node, PortalNode):
            container = node.container
            if isinstance(container, str):
                container = page.document.select_one(container)
                if container is None:
                    raise ValueError(f"Portal container {node.container!r} not found")
            instance = runtime.create(
                InstanceKind.PORTAL, backing=PortalHandle(container), parent=parent
            )
            self._render_children(page, node.children, container, instance)
        else:
            raise TypeError(f"Cannot render {type(node).__name__}: {node!r}")


def _normalize_attrs(attrs: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for name, value in attrs.items():
        if value is None or value is False:
            continue
        if name == "class" and isinstance(value, str):
            value = value.split()
        elif value is True:
            value = ""
        elif not isinstance(value, (str, list)):
            value = str(value)
        result[name] = value
    return result


def render(tree: Union[VNode, list], clock: Callable[[], float] = time.monotonic) -> Page:
    return Renderer(clock=clock).render(tree)


# ---- JSON snapshots ----


def _component_types(declarations: dict[str, Any]) -> dict[str, ComponentType]:
    types = {}
    for name, declaration in declarations.items():
        if isinstance(declaration, str):
            declaration = {"kind": declaration}
        try:
            kind = InstanceKind(declaration.get("kind", InstanceKind.CLASS.value))
        except ValueError:
            raise ValueError(f"Unknown component kind for {name}: {declaration.get('kind')!r}") from None
        types[name] = ComponentType(name=name, kind=kind, display_name=declaration.get("displayName"))
    return types


def node_from_dict(data: Any, types: dict[str, ComponentType]) -> Any:
    """Convert a JSON virtual node (or list of them) into VNodes."""
    if isinstance(data, list):
        return [node_from_dict(item, types) for item in data]
    if isinstance(data, (str, int, float)) or data is None:
        return data
    if not isinstance(data, dict):
        raise ValueError(f"Invalid virtual node: {data!r}")

    children = node_from_dict(data.get("children", []), types)
    if not isinstance(children, list):
        children = [children]
    if "tag" in data:
        rect = data.get("rect")
        if isinstance(rect, dict):
            rect = Rect(**rect)
        elif rect is not None:
            rect = Rect(*rect)
        return ElementNode(
            tag=data["tag"], attrs=dict(data.get("attrs", {})), children=children,
            key=data.get("key"), rect=rect,
        )
    if "component" in data:
        name = data["component"]
        component = types.get(name)
        if component is None:
            component = types[name] = ComponentType(name=name)
        return ComponentNode(
            type=component, props=dict(data.get("props", {})), children=children,
            key=data.get("key"),
        )
    if "portal" in data:
        return PortalNode(container=data["portal"], children=children)
    raise ValueError(f"Virtual node needs 'tag', 'component' or 'portal': {data!r}")


def page_from_dict(data: dict[str, Any], clock: Callable[[], float] = time.monotonic) -> Page:
    if "tree" not in data:
        raise ValueError("Page snapshot is missing 'tree'")
    types = _component_types(data.get("components", {}))
    return render(node_from_dict(data["tree"], types), clock=clock)


def load_page(path: Union[str, Path], clock: Callable[[], float] = time.monotonic) -> Page:
    """Load a page from a ``.json`` snapshot or a structural-only ``.html`` file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".html", ".htm"):
        return Page.from_html(text, clock=clock)
    return page_from_dict(json.loads(text), clock=clock)
