import pytest

from callslice.analysis import analyze_source
from callslice.errors import SeedResolutionError
from callslice.selector import (
    add_ancestors,
    bfs_distances,
    filter_tree,
    parse_csv_list,
    resolve_seed_ids,
    select_slice,
)

ABC = """\
function a() { b(); }
function b() {}
function c() { b(); }
"""

NESTED = """\
class Shell {
  open() {
    function inner() {
      leaf();
    }
    inner();
  }
}

function leaf() {}

function renderLeaf() {
  leaf();
}
"""


def _ids(graph):
    return {n.name: n.id for n in graph}


@pytest.fixture
def abc():
    return analyze_source(ABC, "abc.js")


@pytest.fixture
def nested():
    return analyze_source(NESTED, "nested.js")


# ------------------------------------------------------------------ #
# seed resolution
# ------------------------------------------------------------------ #
def test_parse_csv_list():
    assert parse_csv_list(" a, ,b ,, c ") == ["a", "b", "c"]
    assert parse_csv_list("") == []
    assert parse_csv_list(None) == []


def test_resolve_exact_id_then_name(abc):
    ids = _ids(abc)
    assert resolve_seed_ids([ids["b"]], abc) == [ids["b"]]
    assert resolve_seed_ids(["c", "a"], abc) == [ids["c"], ids["a"]]


def test_resolve_substring_fallback(nested):
    ids = _ids(nested)
    # "leaf" matches exactly and does not fall through to renderLeaf
    assert resolve_seed_ids(["leaf"], nested) == [ids["leaf"]]
    assert set(resolve_seed_ids(["LEA"], nested)) == {ids["leaf"], ids["renderLeaf"]}


def test_resolve_dedupes_tokens(abc):
    ids = _ids(abc)
    assert resolve_seed_ids(["a", "a", ids["a"]], abc) == [ids["a"]]
    assert resolve_seed_ids(["zzz"], abc) == []


# ------------------------------------------------------------------ #
# traversal
# ------------------------------------------------------------------ #
def test_bfs_is_bidirectional(abc):
    ids = _ids(abc)
    dist = bfs_distances(abc, [ids["a"]], 2)
    # c is reached through b's incoming edge
    assert dist == {ids["a"]: 0, ids["b"]: 1, ids["c"]: 2}


def test_bfs_zero_radius_and_negative(abc):
    ids = _ids(abc)
    assert bfs_distances(abc, [ids["b"]], 0) == {ids["b"]: 0}
    with pytest.raises(ValueError):
        bfs_distances(abc, [ids["b"]], -1)


def test_add_ancestors(nested):
    ids = _ids(nested)
    closed = add_ancestors([ids["inner"]], nested)
    assert closed == {ids["inner"], ids["open"], ids["Shell"]}


# ------------------------------------------------------------------ #
# slicing
# ------------------------------------------------------------------ #
def test_end_to_end_example(abc):
    ids = _ids(abc)
    sel = select_slice(abc, ["a"], full_radius=1, context_radius=1)

    assert sel.seed_ids == (ids["a"],)
    assert sel.full_detail_ids == {ids["a"], ids["b"]}
    assert sel.included_ids == {ids["a"], ids["b"]}
    assert ids["c"] not in sel.distances


def test_containment_and_ancestor_closure(nested):
    ids = _ids(nested)
    sel = select_slice(nested, ["renderLeaf"], full_radius=1, context_radius=2)

    assert set(sel.seed_ids) <= sel.full_detail_ids <= sel.context_ids <= sel.included_ids
    # inner reached at distance 2 drags in its owners
    assert sel.distances[ids["inner"]] == 2
    assert ids["inner"] in sel.context_ids
    assert ids["inner"] not in sel.full_detail_ids
    assert {ids["open"], ids["Shell"]} <= sel.included_ids
    for node_id in sel.included_ids:
        parent = nested.parent_of(node_id)
        assert parent is None or parent in sel.included_ids


def test_context_radius_is_clamped(abc):
    sel = select_slice(abc, ["a"], full_radius=2, context_radius=0)
    assert sel.context_radius == 2
    assert sel.full_detail_ids == sel.context_ids


def test_zero_radius_keeps_only_seeds_and_owners(nested):
    ids = _ids(nested)
    sel = select_slice(nested, ["inner"], full_radius=0, context_radius=0)
    assert sel.full_detail_ids == {ids["inner"]}
    assert sel.included_ids == {ids["inner"], ids["open"], ids["Shell"]}


def test_no_seed_match_raises(abc):
    with pytest.raises(SeedResolutionError) as exc:
        select_slice(abc, ["nope"])
    assert exc.value.exit_code == 2
    assert "nope" in str(exc.value)


def test_negative_radius_rejected(abc):
    with pytest.raises(ValueError):
        select_slice(abc, ["a"], full_radius=-1)


# ------------------------------------------------------------------ #
# filtering
# ------------------------------------------------------------------ #
def test_filter_tree_prunes_and_is_idempotent(nested):
    ids = _ids(nested)
    sel = select_slice(nested, ["inner"], full_radius=0, context_radius=0)

    once = filter_tree(nested.forest(), sel.included_ids)
    twice = filter_tree(once, sel.included_ids)
    assert once == twice

    assert [t.id for t in once] == [ids["Shell"]]
    (open_node,) = once[0].children
    assert [c.id for c in open_node.children] == [ids["inner"]]


def test_filter_tree_drops_subtree_of_excluded_parent(nested):
    ids = _ids(nested)
    # inner without its owners: nothing above it survives, so it is dropped
    kept = filter_tree(nested.forest(), {ids["inner"], ids["leaf"]})
    assert [t.id for t in kept] == [ids["leaf"]]
