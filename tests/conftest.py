"""Shared fixtures: a sample component app and engines over it."""

import pytest

from viewfetch.engine import Engine
from viewfetch.render import h, portal, render
from viewfetch.runtime import ComponentType, InstanceKind

Alpha = ComponentType("Alpha")
Bravo = ComponentType("Bravo")
Charlie = ComponentType("Charlie")
InsideMemo = ComponentType("InsideMemo")
Toolbar = ComponentType("Toolbar")
Hollow = ComponentType("Hollow")
Papa = ComponentType("Papa", kind=InstanceKind.FUNCTION, display_name="puritan(Papa)")
PortalBox = ComponentType("PortalBox", kind=InstanceKind.FUNCTION)
FunctionalComponent = ComponentType("FunctionalComponent", kind=InstanceKind.FUNCTION)
MemoComponent = ComponentType("MemoComponent", kind=InstanceKind.MEMO)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


def body_portal(*children):
    """A function component that renders its children into the body."""
    return h(PortalBox, None, portal("body", *children))


def sample_app():
    return [
        h(Alpha, {"frank": "sinatra"},
          h(Bravo, {"num": 1},
            h("div", {"class": "alpha-bravo-div"}, "First div")),
          h(Bravo, {"num": 42},
            h(Charlie, {"duck": "goose"},
              h("div", {"class": "bravo-charlie-div"}, "Second div", key="2"),
              h("div", {"class": "bravo-charlie-div"}, "Third div", key="third")),
            h("div", {"class": "bravo-charlie-div"}, "Fourth div")),
          h(Charlie, {"duck": "rubber"},
            h("div", None, "Charlie inside sinatra"))),
        h(Alpha, {"frank": "oz"},
          h("div", {"class": "alpha-div"}, "Fifth div"),
          h(Bravo, {"num": 1},
            h("div", {"class": "alpha-bravo-div"}, "Sixth div")),
          h("div", {"class": "alpha-div"},
            h("span", None, "Seventh div"),
            h(Charlie, {"duck": "mallard"},
              h("div", {"class": "mallard-div"}, "Eighth div")))),
        h(Papa, {"douglas": "crockford"},
          h(Bravo, {"frank": "herbert"},
            h("div", {"id": "frank-herbert"}, "Ninth div"))),
        h(Alpha, {"portal": True},
          body_portal(
              h("div", {"class": "div-in-portal"}, "Now you're thinking with portals"),
              h(Bravo, {"info": "bravo inside portal"},
                h("div", {"class": "div-in-portal-bravo"},
                  "The cake",
                  body_portal(
                      h(Bravo, None,
                        h("span", {"class": "double-portal"}, "is a lie"))))))),
        h("div", {"class": "wrapper"},
          h(Alpha, {"frank": "zappa"},
            h("span", {"class": "content"}, "Alpha zappa"),
            h("div", {"class": "bravo-wrapper"},
              h("span", {"class": "content"}, "Bravo wrapper"),
              h(Bravo, {"word": "boooooo"},
                h("div", {"class": "bravo-inner"}, "Bravo inner"))))),
        h(Alpha, {"hasInput": True},
          h("h1", None, "Here is a text field", rect=(10, 10, 200, 30)),
          h("input", {"type": "text"}, rect=(10, 50, 200, 20))),
        h(FunctionalComponent, None,
          h("div", None,
            h(Alpha, {"frank": "ocean"},
              h("div", {"class": "blep"}, "Hi"),
              h("div", {"class": "blep"}, "Hola"),
              h("div", {"class": "blep"}, "Konichiwa"),
              h("div", {"class": "blep"}, "Bonjour")),
            h(Bravo, {"num": 5},
              h("p", None, "Hello world")))),
        h(FunctionalComponent, {"type": "simple"}, h("div", None, "This is an SFC")),
        h(FunctionalComponent, {"type": "simple"}, h("div", None, "This is a second SFC")),
        h(FunctionalComponent, {"type": "simple"}, h("div", None, "This is a third SFC")),
        body_portal(
            h(FunctionalComponent, {"type": "simple"},
              h("div", None, "This is an SFC inside a portal"))),
        h(MemoComponent, None,
          h(InsideMemo, None,
            h("div", None, "I is memo"))),
        h(Toolbar, None,
          h("div", {"class": "toolbar"},
            h("span", None, "Tools"),
            h("button", {"id": "save"}, "Save"))),
        h(Hollow, {"reason": "renders text only"}, "nothing but text"),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app_page(clock):
    return render(sample_app(), clock=clock)


@pytest.fixture
def engine(app_page):
    return Engine(app_page)
