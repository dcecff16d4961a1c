"""Tests for resolving fetchers against pages."""

import pytest
from bs4 import Tag

from viewfetch.engine import Engine
from viewfetch.errors import (
    InvalidFetcher,
    InvalidQuery,
    SelectorSyntaxError,
    UnknownTerminalFunction,
    UnsupportedComponentKind,
)
from viewfetch.fetcher import Fetcher, FunctionCall, Query
from viewfetch.page import Page
from viewfetch.render import h, portal, render
from viewfetch.results import ROOT
from viewfetch.runtime import ComponentType

CATS_HTML = """
<html><body>
  <div class="person"><span class="name">Alice</span>
    <ul class="cats"><li>Amy</li></ul></div>
  <div class="person"><span class="name">Bob</span>
    <ul class="cats"><li>Bruiser</li><li>Bocephus</li></ul></div>
  <div class="person"><span class="name">Carol</span>
    <ul class="cats"></ul></div>
</body></html>
"""


def text(engine, selector, multi=False, at=None):
    return engine.fetch(Fetcher.from_root(selector, multi=multi, at=at).call("text"))


def el_text(engine, selector):
    fetcher = Fetcher.from_root(selector).call("interactionElement").call("text")
    return engine.fetch(fetcher)


@pytest.fixture
def cats_engine():
    return Engine(Page.from_html(CATS_HTML))


class TestStructuralQueries:
    """Selectors without component segments."""

    def test_multi_returns_nodes_in_document_order(self, cats_engine):
        """Test that a multi structural query returns every match in order."""
        result = cats_engine.fetch(Fetcher.from_root("ul.cats li", multi=True))

        assert len(result) == 3
        assert all(isinstance(node, Tag) for node in result)
        assert [node.get_text() for node in result] == ["Amy", "Bruiser", "Bocephus"]

    def test_single_returns_first_node(self, cats_engine):
        """Test that a single query collapses to the first match."""
        node = cats_engine.fetch(Fetcher.from_root(".person .name"))

        assert node.get_text() == "Alice"

    def test_single_without_match_is_none(self, cats_engine):
        """Test that no match is a value, not an error."""
        assert cats_engine.fetch(Fetcher.from_root(".dog")) is None
        assert cats_engine.fetch(Fetcher.from_root(".dog", multi=True)) == []

    def test_nested_multi_queries(self, cats_engine):
        """Test that each multi query adds one list dimension."""
        people = Fetcher.from_root(".person", multi=True)
        cats = people.find(".cats li", multi=True).call("text")

        assert cats_engine.fetch(cats) == [["Amy"], ["Bruiser", "Bocephus"], []]

    def test_scalar_when_no_multi(self, cats_engine):
        """Test that a chain without multi queries is not wrapped in a list."""
        fetcher = Fetcher.from_root(".person").find(".name").call("text")

        assert cats_engine.fetch(fetcher) == "Alice"

    def test_single_inside_multi(self, cats_engine):
        """Test that a single query mapped over a multi keeps one dimension."""
        fetcher = Fetcher.from_root(".person", multi=True).find(".name").call("text")

        assert cats_engine.fetch(fetcher) == ["Alice", "Bob", "Carol"]

    def test_negative_at(self, cats_engine):
        """Test that at=-1 picks the same node as at=2 on three matches."""
        last = cats_engine.fetch(Fetcher.from_root("ul.cats li", multi=True, at=-1))
        third = cats_engine.fetch(Fetcher.from_root("ul.cats li", multi=True, at=2))

        assert last is third
        assert last.get_text() == "Bocephus"

    def test_at_out_of_range_is_none(self, cats_engine):
        """Test that an index past the end resolves to None."""
        assert cats_engine.fetch(Fetcher.from_root("ul.cats li", multi=True, at=3)) is None
        assert cats_engine.fetch(Fetcher.from_root("ul.cats li", multi=True, at=-4)) is None

    def test_at_inside_chain(self, cats_engine):
        """Test indexing an intermediate multi result."""
        fetcher = (
            Fetcher.from_root(".person", multi=True, at=1)
            .find(".cats li", multi=True, at=-1)
            .call("text")
        )

        assert cats_engine.fetch(fetcher) == "Bocephus"

    def test_at_requires_multi(self, cats_engine):
        """Test that `at` on a single query is rejected."""
        with pytest.raises(InvalidQuery):
            cats_engine.fetch(Fetcher.from_root("li", at=0))

    def test_empty_selector(self, cats_engine):
        """Test that a blank selector is rejected."""
        with pytest.raises(InvalidQuery):
            cats_engine.fetch(Fetcher.from_root("   "))

    def test_invalid_css(self, cats_engine):
        """Test that invalid CSS surfaces as a selector syntax error."""
        with pytest.raises(SelectorSyntaxError):
            cats_engine.fetch(Fetcher.from_root("li:unknown-pseudo"))

    def test_fetch_from_dict(self, cats_engine):
        """Test resolving the JSON form of a fetcher."""
        data = {
            "context": {"context": {"isRoot": True}, "query": {"selector": ".person", "multi": True, "at": None}},
            "fn": "count",
            "args": [],
        }

        assert cats_engine.fetch(data) == 3

    def test_tag_context(self, cats_engine):
        """Test that a resolved element can be used as a context."""
        person = cats_engine.fetch(Fetcher.from_root(".person", multi=True, at=1))
        fetcher = Fetcher(person, Query("li", multi=True))

        assert [li.get_text() for li in cats_engine.fetch(fetcher)] == ["Bruiser", "Bocephus"]

    def test_none_and_list_contexts(self, cats_engine):
        """Test that None contexts stay None and lists are mapped."""
        people = cats_engine.fetch(Fetcher.from_root(".person", multi=True))

        assert cats_engine.fetch(Fetcher(None, Query("li"))) is None
        result = cats_engine.fetch(Fetcher([people[0], None], Query("li")).call("text"))
        assert result == ["Amy", None]

    def test_invalid_context(self, cats_engine):
        """Test that an unknown context shape is rejected."""
        with pytest.raises(InvalidFetcher):
            cats_engine.fetch(Fetcher(42, Query("li")))

    def test_unknown_function(self, cats_engine):
        """Test that unregistered function names are a hard error."""
        with pytest.raises(UnknownTerminalFunction, match="Unknown query function nope"):
            cats_engine.fetch(Fetcher(ROOT, FunctionCall("nope")))


class TestComponentQueries:
    """Selectors with component segments against the sample app."""

    def test_basic_component_match(self, engine):
        """Test that the first matching component's first element is found."""
        assert el_text(engine, "@Alpha") == "First div"

    def test_component_text_concatenates_elements(self, engine):
        """Test that a component's text covers every element it renders."""
        assert text(engine, "@Alpha") == (
            "First divSecond divThird divFourth divCharlie inside sinatra"
        )

    def test_component_child_with_predicate(self, engine):
        """Test narrowing a nested component by props."""
        assert el_text(engine, "@Alpha @Bravo{num: 42}") == "Second div"

    def test_many_components(self, engine):
        """Test matching every instance of a component in document order."""
        fetcher = Fetcher.from_root("@Charlie", multi=True).call("text")

        assert engine.fetch(fetcher) == ["Second divThird div", "Charlie inside sinatra", "Eighth div"]

    def test_scoped_component_search(self, engine):
        """Test that a component context limits the search to its descendants."""
        fetcher = Fetcher.from_root("@Alpha").find("@Charlie", multi=True).call("text")

        assert engine.fetch(fetcher) == ["Second divThird div", "Charlie inside sinatra"]

    def test_predicate_string_value(self, engine):
        """Test matching a string prop."""
        fetcher = Fetcher.from_root("@Alpha").find('@Charlie{duck: "rubber"}', multi=True)

        assert engine.fetch(fetcher.call("text")) == ["Charlie inside sinatra"]

    def test_predicate_with_nested_component(self, engine):
        """Test finding a component inside an element inside the scope."""
        oz = Fetcher.from_root("@Alpha{frank: 'oz'}")

        assert engine.fetch(oz.call("interactionElement").call("text")) == "Fifth div"
        assert engine.fetch(oz.find("@Charlie").call("text")) == "Eighth div"
        assert engine.fetch(oz.find("@Bravo{num: 1}").call("text")) == "Sixth div"

    def test_nested_component_lists(self, engine):
        """Test that a component multi inside a component multi is 2-dimensional."""
        fetcher = Fetcher.from_root("@Alpha", multi=True).find("@Charlie", multi=True)

        assert engine.fetch(fetcher.call("text")) == [
            ["Second divThird div", "Charlie inside sinatra"],
            ["Eighth div"],
            [],
            [],
            [],
            [],
        ]
        assert engine.fetch(fetcher.call("prop", "duck")) == [
            ["goose", "rubber"],
            ["mallard"],
            [],
            [],
            [],
            [],
        ]
        assert engine.fetch(fetcher.call("prop", "goose")) == [
            [None, None],
            [None],
            [],
            [],
            [],
            [],
        ]

    def test_component_indexing_follows_document_order(self, engine):
        """Test that the portal Alpha sorts after every Alpha rendered in place."""
        alphas = Fetcher.from_root("@Alpha", multi=True, at=3)
        assert engine.fetch(alphas.call("text")) == "Here is a text field"

        ocean = Fetcher.from_root("@Alpha", multi=True, at=4)
        assert engine.fetch(ocean.find(".blep", multi=True, at=-1).call("text")) == "Bonjour"

        last = Fetcher.from_root("@Alpha", multi=True, at=-1)
        assert engine.fetch(last.call("prop", "portal")) is True

    def test_counts(self, engine):
        """Test counting single and multi component queries."""
        assert engine.fetch(Fetcher.from_root("@Alpha").call("count")) == 1
        assert engine.fetch(Fetcher.from_root("@Alpha", multi=True).call("count")) == 6
        assert engine.fetch(Fetcher.from_root("@NotHere").call("count")) == 0
        assert engine.fetch(Fetcher.from_root("@NotHere", multi=True).call("count")) == 0

    def test_exists(self, engine):
        """Test existence of single and multi component queries."""
        assert engine.fetch(Fetcher.from_root("@Alpha").call("exists")) is True
        assert engine.fetch(Fetcher.from_root("@Alpha", multi=True).call("exists")) is True
        assert engine.fetch(Fetcher.from_root("@NotHere").call("exists")) is False
        assert engine.fetch(Fetcher.from_root("@NotHere", multi=True).call("exists")) is False

    def test_missing_component_with_structural_tail(self, engine):
        """Test that a failed component match makes the whole chain absent."""
        fetcher = Fetcher.from_root("@Foo{x: 1} .bar")

        assert engine.fetch(fetcher.call("exists")) is False
        assert engine.fetch(fetcher.call("count")) == 0

    def test_display_name(self, engine):
        """Test matching by display name, brackets included."""
        assert el_text(engine, "@puritan(Papa)") == "Ninth div"

    def test_regex_predicate(self, engine):
        """Test that regex literals match string props."""
        assert text(engine, "@Bravo{word: /^boo+$/}") == "Bravo inner"
        assert engine.fetch(Fetcher.from_root("@Bravo{word: /^bo$/}").call("exists")) is False

    def test_react_key(self, engine):
        """Test matching elements by the key they were rendered with."""
        assert text(engine, "@Charlie div:reactKey(third)", multi=True) == ["Third div"]

    def test_numeric_react_key(self, engine):
        """Test that numeric keys are compared as text."""
        assert text(engine, "@Charlie div:reactKey(2)", multi=True) == ["Second div"]

    def test_quoted_react_key(self, engine):
        """Test quoted keys and keys that nothing was rendered with."""
        assert text(engine, "div:reactKey('third')") == "Third div"
        assert text(engine, "div:reactKey(nope)", multi=True) == []

    def test_react_key_with_combinators(self, engine):
        """Test a key on an element that is not the subject of the selector."""
        assert text(engine, "div:reactKey(2) + div", multi=True) == ["Third div"]
        assert text(engine, "div:reactKey(third) + div", multi=True) == ["Fourth div"]
        assert text(engine, "div:not(:reactKey(2)).bravo-charlie-div", multi=True) == [
            "Third div", "Fourth div",
        ]

    def test_component_result_rejected_at_top_level(self, engine):
        """Test that a bare component is never a top-level result."""
        with pytest.raises(InvalidQuery):
            engine.fetch(Fetcher.from_root("@Alpha"))
        with pytest.raises(InvalidQuery):
            engine.fetch(Fetcher.from_root("@Alpha", multi=True))

    def test_element_result_after_component(self, engine):
        """Test that a structural tail makes a component selector resolvable."""
        node = engine.fetch(Fetcher.from_root("@Alpha{hasInput: true} input"))

        assert node.name == "input"


class TestPortals:
    """Searches that cross portal boundaries."""

    def test_structural_search_ignores_components(self, engine):
        """Test plain selectors on elements relocated by portals."""
        assert text(engine, ".div-in-portal") == "Now you're thinking with portals"
        assert text(engine, ".double-portal") == "is a lie"

    def test_component_scope_reaches_into_portal(self, engine):
        """Test finding a component's portal element from the component."""
        assert text(engine, "@Alpha{portal: true} .div-in-portal") == (
            "Now you're thinking with portals"
        )

    def test_nested_portal_is_not_a_top_level_element(self, engine):
        """Test that a portal inside an element is not searched structurally."""
        fetcher = Fetcher.from_root("@Alpha{portal: true} .double-portal")

        assert engine.fetch(fetcher) is None

    def test_nested_portal_through_components(self, engine):
        """Test hopping through both portals via their components."""
        assert text(engine, "@Alpha{portal: true} @Bravo @Bravo .double-portal") == "is a lie"

    def test_document_order_differs_from_instance_order(self):
        """Test that results follow the document, not the instance graph."""
        Item = ComponentType("Item")
        Outer = ComponentType("Outer")
        page = render(
            h(Outer, None,
              portal("body", h(Item, {"name": "in_portal"}, h("p", None, "late"))),
              h(Item, {"name": "in_place"}, h("p", None, "early")))
        )
        fetcher = Fetcher.from_root("@Outer @Item", multi=True).call("prop", "name")

        assert Engine(page).fetch(fetcher) == ["in_place", "in_portal"]


class TestMixedTraversal:
    """Alternating structural and component segments."""

    def test_structural_then_component(self, engine):
        """Test finding a component below an element."""
        assert text(engine, ".wrapper @Alpha .content") == "Alpha zappa"

    def test_full_alternation(self, engine):
        """Test a selector alternating element and component segments."""
        selector = '.wrapper @Alpha{frank:"zappa"} .bravo-wrapper @Bravo div.bravo-inner'

        assert text(engine, selector) == "Bravo inner"

    def test_component_then_deep_structural(self, engine):
        """Test that structural searches from a component reach below its elements."""
        assert text(engine, ".wrapper @Alpha @Bravo .bravo-inner") == "Bravo inner"
        assert text(engine, ".wrapper @Alpha .bravo-inner") == "Bravo inner"

    def test_family_tree(self):
        """Test a component multi inside a structural multi."""
        Parent = ComponentType("Parent")
        Child = ComponentType("Child")

        def family(name, *kids):
            return h("div", {"class": "family"},
                     h(Parent, {"name": name},
                       *[h(Child, {"name": kid}, h("span", None, kid)) for kid in kids]))

        page = render([family("a", "x", "y"), family("b", "z")])
        fetcher = (
            Fetcher.from_root(".family", multi=True)
            .find("@Parent @Child", multi=True)
            .call("prop", "name")
        )

        assert Engine(page).fetch(fetcher) == [["x", "y"], ["z"]]


class TestFunctionalAndMemo:
    """Component kinds without a backing object."""

    def test_functional_components(self, engine):
        """Test matching function components by position."""
        assert engine.fetch(Fetcher.from_root("@FunctionalComponent").call("exists")) is True
        assert text(engine, '@FunctionalComponent{type: "simple"}') == "This is an SFC"

        simples = '@FunctionalComponent{type: "simple"}'
        assert text(engine, simples, multi=True, at=1) == "This is a second SFC"
        assert text(engine, simples, multi=True, at=2) == "This is a third SFC"
        assert text(engine, simples, multi=True, at=-1) == "This is an SFC inside a portal"

    def test_search_inside_functional_component(self, engine):
        """Test structural and component searches inside a function component."""
        bleps = ["Hi", "Hola", "Konichiwa", "Bonjour"]

        assert text(engine, "@FunctionalComponent .blep", multi=True) == bleps
        assert text(engine, '@FunctionalComponent @Alpha{frank:"ocean"} .blep', multi=True) == bleps

    def test_inside_memo(self, engine):
        """Test that components inside a memo component are reachable."""
        assert engine.fetch(Fetcher.from_root("@InsideMemo").call("exists")) is True
        assert text(engine, "@InsideMemo") == "I is memo"

    def test_memo_component_is_unsupported(self, engine):
        """Test that matching a memo component itself is refused."""
        with pytest.raises(UnsupportedComponentKind) as exc_info:
            engine.fetch(Fetcher.from_root("@MemoComponent").call("exists"))

        assert exc_info.value.component == "MemoComponent"
        assert "memo component" in str(exc_info.value)


class TestHighlightLifecycle:
    """Highlight markers across fetches."""

    def markers(self, engine):
        return engine.fetch(Fetcher.from_root(".viewfetch-highlight", multi=True).call("count"))

    def clear(self, engine):
        return engine.fetch(Fetcher(ROOT, FunctionCall("clearHighlights")))

    def test_highlight_and_clear(self, engine):
        """Test one marker per highlighted leaf."""
        assert engine.fetch(Fetcher.from_root("@Alpha").call("highlight")) is True
        assert self.markers(engine) == 1
        assert self.clear(engine) == 1
        assert self.markers(engine) == 0

        engine.fetch(Fetcher.from_root("@Alpha", multi=True).call("highlight"))
        assert self.markers(engine) == 6
        self.clear(engine)

        engine.fetch(Fetcher.from_root("@Alpha span", multi=True).call("highlight"))
        assert self.markers(engine) == 3
        self.clear(engine)
        assert self.markers(engine) == 0

    def test_highlight_timeout(self, engine, app_page, clock):
        """Test that timed markers disappear once their timeout has passed."""
        engine.fetch(Fetcher.from_root("@Alpha").call("highlight", 500))

        assert self.markers(engine) >= 1
        clock.advance(0.2)
        assert self.markers(engine) == 1

        clock.advance(0.4)
        assert self.markers(engine) == 0
        assert app_page.highlight_count == 0

    def test_untimed_markers_survive(self, engine, app_page, clock):
        """Test that markers without a timeout stay until cleared."""
        engine.fetch(Fetcher.from_root(".wrapper").call("highlight"))
        clock.advance(3600)

        assert self.markers(engine) == 1
        assert app_page.highlight_count == 1
