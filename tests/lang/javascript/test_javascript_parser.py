from pathlib import Path

import pytest

from callslice.analysis import analyze_file, analyze_source, parse_source
from callslice.collector import GraphBuilder
from callslice.lang.javascript import JavaScriptCodeParser
from callslice.models import NodeKind
from callslice.parsers import AbstractCodeParser, CodeParserRegistry, unescape
from callslice.selector import bfs_distances
from callslice.syntax import ClassSyntax, FunctionSyntax

SAMPLES = Path(__file__).parent / "samples"


# ------------------------------------------------------------------ #
# helpers
# ------------------------------------------------------------------ #
def _by_name(graph):
    out = {}
    for node in graph:
        out.setdefault(node.name, []).append(node)
    return out


@pytest.fixture(scope="module")
def graph():
    return analyze_file(SAMPLES / "simple.js")


# ------------------------------------------------------------------ #
# lowering
# ------------------------------------------------------------------ #
def test_parser_lowers_declarations_and_calls():
    text = (SAMPLES / "simple.js").read_text()
    module = JavaScriptCodeParser().parse(text, path="simple.js")

    assert module.path == "simple.js"
    assert module.has_errors is False

    classes = module.classes()
    assert [c.name for c in classes] == ["Widget"]
    assert isinstance(classes[0], ClassSyntax)

    fns = module.functions()
    assert all(isinstance(f, FunctionSyntax) for f in fns)
    # Inline callbacks are still lowered; exclusion happens in collection.
    assert any(f.is_arrow and f.inline_call is not None for f in fns)

    callee_lines = sorted(c.line for c in module.calls)
    assert callee_lines[0] == 4  # b() inside a()


def test_parse_source_picks_grammar_by_extension():
    module = parse_source("function f() { g(); }", "x.mjs")
    assert [f.name for f in module.functions()] == ["f"]
    assert len(module.calls) == 1


# ------------------------------------------------------------------ #
# collection
# ------------------------------------------------------------------ #
def test_top_level_functions(graph):
    names = _by_name(graph)

    a = names["a"][0]
    assert a.id == "fn:3:0-5:1"
    assert a.kind == NodeKind.FUNCTION
    assert (a.start_line, a.end_line) == (3, 5)
    assert a.parent_id is None
    assert a.src == "function a() {\n  b();\n}"

    assert {"a", "b", "c"}.issubset(names)


def test_class_members(graph):
    names = _by_name(graph)
    widget = names["Widget"][0]

    assert widget.id == "class:22:0-41:1"
    assert widget.kind == NodeKind.CLASS

    children = [graph.get(c) for c in widget.children]
    assert [c.name for c in children] == [
        "constructor",
        "render",
        "draw",
        "#secret",
        "handle",
    ]
    assert [c.kind for c in children[:4]] == [NodeKind.METHOD] * 4
    assert children[4].kind == NodeKind.ARROW
    assert all(c.parent_id == widget.id for c in children)


def test_printed_source_is_reindented(graph):
    render = _by_name(graph)["render"][0]
    assert render.printed == (
        "render() {\n  this.draw();\n  [1, 2].forEach((x) => c());\n}"
    )
    # the verbatim slice keeps the continuation indent
    assert render.src.splitlines()[-1] == "  }"


def test_object_members_and_assignments(graph):
    names = _by_name(graph)

    assert names["greet"][0].kind == NodeKind.METHOD
    assert names["greet"][0].params == "name"
    assert names["wave"][0].kind == NodeKind.FUNCTION

    run = names["run"][0]
    assert run.params == "{ a, b }, [x, y], ...rest"

    assert names["(default)"][0].kind == NodeKind.FUNCTION


def test_listener_callbacks_are_kept(graph):
    names = _by_name(graph)

    click = names["listener:addEventListener:click@el"][0]
    assert click.kind == NodeKind.FUNCTION
    assert click.params == "ev"
    assert click.start_line == 16

    dynamic = names["listener:addEventListener:<dynamic>@window"][0]
    assert dynamic.kind == NodeKind.ARROW


def test_inline_callbacks_are_excluded(graph):
    # (x) => c() passed to forEach produces no node; its call belongs to render
    arrows = [n for n in graph if n.kind == NodeKind.ARROW]
    assert sorted(n.name for n in arrows) == [
        "handle",
        "listener:addEventListener:<dynamic>@window",
    ]
    assert all(n.start_line != 29 for n in graph)

    names = _by_name(graph)
    render = names["render"][0]
    c = names["c"][0]
    assert c.id in render.calls


def test_call_edges(graph):
    names = _by_name(graph)
    ids = {name: nodes[0].id for name, nodes in names.items()}

    assert graph.get(ids["a"]).calls == (ids["b"],)
    assert graph.get(ids["b"]).calls == (ids["c"],)
    assert graph.get(ids["c"]).calls == ()

    assert graph.get(ids["render"]).calls == (ids["draw"], ids["c"])
    assert graph.get(ids["handle"]).calls == (ids["render"],)
    assert graph.get(ids["wave"]).calls == (ids["greet"],)
    assert graph.get(ids["listener:addEventListener:<dynamic>@window"]).calls == (
        ids["b"],
    )

    assert set(graph.get(ids["a"]).called_by) == {
        ids["listener:addEventListener:click@el"],
        ids["draw"],
    }


def test_calls_and_called_by_are_mirrored(graph):
    for node in graph:
        for callee in node.calls:
            assert node.id in graph.get(callee).called_by
        for caller in node.called_by:
            assert node.id in graph.get(caller).calls
        assert len(set(node.calls)) == len(node.calls)


def test_forest_is_sorted_by_position(graph):
    roots = [t.node for t in graph.forest()]
    positions = [r.position for r in roots]
    assert positions == sorted(positions)
    assert [r.name for r in roots][:3] == ["a", "b", "c"]


def test_name_collision_over_links():
    graph = analyze_file(SAMPLES / "collision.js")
    runs = [n for n in graph if n.name == "run"]
    assert len(runs) == 2

    main = next(n for n in graph if n.name == "main")
    assert set(main.calls) == {r.id for r in runs}

    helper = next(n for n in graph if n.name == "helper")
    a_run = next(r for r in runs if r.start_line == 2)
    assert helper.called_by == (a_run.id,)


def test_broken_file_is_best_effort():
    graph = analyze_file(SAMPLES / "broken.js")
    assert graph.has_errors is True
    assert any(n.name == "ok" for n in graph)


def test_ids_are_deterministic():
    first = analyze_file(SAMPLES / "simple.js")
    again = analyze_file(SAMPLES / "simple.js")
    assert list(first.nodes) == list(again.nodes)
    assert first.edges() == again.edges()


# ------------------------------------------------------------------ #
# ownership
# ------------------------------------------------------------------ #
def test_function_owns_members_of_nested_class():
    graph = analyze_source(
        "function f() {\n"
        "  class C {\n"
        "    h = () => { g(); };\n"
        "    x = g();\n"
        "    m() {}\n"
        "  }\n"
        "}\n"
        "function g() {}\n",
        "nested.js",
    )
    ids = {n.name: n.id for n in graph}

    assert graph.parent_of(ids["C"]) == ids["f"]
    # field initializers belong to the nearest function, methods to their class
    assert graph.parent_of(ids["h"]) == ids["f"]
    assert graph.parent_of(ids["m"]) == ids["C"]
    assert graph.get(ids["g"]).called_by == (ids["h"], ids["f"])


def test_class_owns_field_initializers_without_function():
    graph = analyze_source("class C {\n  x = g();\n}\nfunction g() {}\n", "c.js")
    ids = {n.name: n.id for n in graph}
    assert graph.get(ids["g"]).called_by == (ids["C"],)


# ------------------------------------------------------------------ #
# naming edge cases
# ------------------------------------------------------------------ #
def test_remove_listener_and_nested_target():
    graph = analyze_source(
        "el.removeEventListener(kind, function () {});\n"
        'document.body.addEventListener("keydown", (e) => {});\n'
        'el.addEventListener("a\\"b", () => {});\n',
        "listeners.js",
    )
    names = {n.name for n in graph}
    assert names == {
        "listener:removeEventListener:<dynamic>@el",
        "listener:addEventListener:keydown@document.body",
        'listener:addEventListener:a"b@el',
    }


def test_assignment_through_computed_literal_key():
    graph = analyze_source(
        'arr[0] = function () {};\nobj["k"] = () => {};\n', "assign.js"
    )
    assert sorted(n.name for n in graph) == ["0", "k"]


def test_class_placeholders():
    graph = analyze_source(
        "register(class {});\nexport default class {}\n", "classes.js"
    )
    assert sorted(n.name for n in graph) == ["(anonymous class)", "(default)"]
    assert all(n.kind == NodeKind.CLASS for n in graph)


def test_fallback_ids_without_span():
    builder = GraphBuilder(path="x.js")
    first = builder.add_node(
        0, prefix="fn", name="a", kind=NodeKind.FUNCTION, span=None
    )
    second = builder.add_node(
        1, prefix="class", name="B", kind=NodeKind.CLASS, span=None
    )
    assert (first, second) == ("fn:1", "class:2")
    assert set(builder.build().nodes) == {"fn:1", "class:2"}


def test_unescape():
    assert unescape("\\n") == "\n"
    assert unescape('\\"') == '"'
    assert unescape("\\x41") == "A"
    assert unescape("\\u00e9") == "é"
    assert unescape("\\u{1F600}") == "\U0001F600"
    assert unescape("\\\n") == ""


# ------------------------------------------------------------------ #
# recursion
# ------------------------------------------------------------------ #
def test_recursive_calls_form_cycles():
    graph = analyze_source(
        "function r() { r(); s(); }\nfunction s() { r(); }\n", "rec.js"
    )
    ids = {n.name: n.id for n in graph}

    assert graph.get(ids["r"]).calls == (ids["r"], ids["s"])
    assert graph.get(ids["r"]).called_by == (ids["r"], ids["s"])
    assert graph.get(ids["s"]).calls == (ids["r"],)
    assert graph.neighbors(ids["r"]) == [ids["r"], ids["s"]]

    assert bfs_distances(graph, [ids["s"]], 3) == {ids["s"]: 0, ids["r"]: 1}


# ------------------------------------------------------------------ #
# registry
# ------------------------------------------------------------------ #
def test_abstract_subclass_is_not_registered():
    class PartialParser(AbstractCodeParser):
        pass

    assert PartialParser not in CodeParserRegistry.get_parsers()


def test_concrete_parser_requires_extensions():
    with pytest.raises(ValueError):

        class NoExtensionParser(JavaScriptCodeParser):
            extensions = []
