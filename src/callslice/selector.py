from collections import deque
from typing import Dict, Iterable, List, Set

from callslice.errors import SeedResolutionError
from callslice.logger import logger
from callslice.models import CallGraph, ModelId, SelectionState, TreeNode


def parse_csv_list(text: str) -> List[str]:
    return [x.strip() for x in str(text or "").split(",") if x.strip()]


def resolve_seed_ids(tokens: Iterable[str], graph: CallGraph) -> List[ModelId]:
    """
    Resolve each token through, in order: exact id, exact name, then
    case-insensitive substring of the name. The first tier that matches
    anything wins for that token.
    """
    by_name = graph.ids_by_name()
    out: Dict[ModelId, None] = {}

    for raw in dict.fromkeys(str(t).strip() for t in tokens):
        if not raw:
            continue

        if raw in graph:
            out[raw] = None
            continue

        exact = by_name.get(raw)
        if exact:
            out.update(dict.fromkeys(exact))
            continue

        needle = raw.lower()
        for node in graph:
            if node.name and needle in node.name.lower():
                out[node.id] = None

    return list(out)


def bfs_distances(
    graph: CallGraph, seed_ids: Iterable[ModelId], radius: int
) -> Dict[ModelId, int]:
    """
    Multi-source breadth-first search over the undirected call graph, up to
    *radius* hops. A node's distance is fixed the first time it is reached.
    """
    if radius < 0:
        raise ValueError("radius must be >= 0")

    dist: Dict[ModelId, int] = {}
    queue: deque = deque()
    for seed in seed_ids:
        if seed not in dist:
            dist[seed] = 0
            queue.append(seed)

    while queue:
        cur = queue.popleft()
        d = dist[cur]
        if d >= radius:
            continue
        for nb in graph.neighbors(cur):
            if nb not in dist:
                dist[nb] = d + 1
                queue.append(nb)

    return dist


def add_ancestors(ids: Iterable[ModelId], graph: CallGraph) -> Set[ModelId]:
    """Close *ids* over the ownership hierarchy."""
    out = set(ids)
    for node_id in list(out):
        parent = graph.parent_of(node_id)
        while parent is not None and parent not in out:
            out.add(parent)
            parent = graph.parent_of(parent)
    return out


def select_slice(
    graph: CallGraph,
    seed_tokens: Iterable[str],
    full_radius: int = 1,
    context_radius: int = 2,
) -> SelectionState:
    tokens = list(seed_tokens)
    if full_radius < 0 or context_radius < 0:
        raise ValueError("radii must be >= 0")
    context_radius = max(context_radius, full_radius)

    seed_ids = resolve_seed_ids(tokens, graph)
    if not seed_ids:
        raise SeedResolutionError(tokens)
    logger.debug("Resolved seeds", tokens=tokens, seeds=seed_ids)

    # One search to the outer radius; the inner set is read off by level.
    distances = bfs_distances(graph, seed_ids, context_radius)
    full_ids = frozenset(i for i, d in distances.items() if d <= full_radius)
    context_ids = frozenset(distances)
    included = frozenset(add_ancestors(context_ids | full_ids, graph))

    logger.debug(
        "Selected slice",
        seeds=len(seed_ids),
        full=len(full_ids),
        context=len(context_ids),
        included=len(included),
    )
    return SelectionState(
        seed_ids=tuple(seed_ids),
        full_detail_ids=full_ids,
        context_ids=context_ids,
        included_ids=included,
        distances=distances,
        full_radius=full_radius,
        context_radius=context_radius,
    )


def filter_tree(nodes: Iterable[TreeNode], included_ids: Iterable[ModelId]) -> List[TreeNode]:
    """
    Keep nodes whose id is included. An excluded node drops its whole subtree;
    sibling order is preserved.
    """
    included = included_ids if isinstance(included_ids, (set, frozenset)) else set(
        included_ids
    )

    def _rec(n: TreeNode):
        if n.id not in included:
            return None
        kids = []
        for c in n.children:
            got = _rec(c)
            if got is not None:
                kids.append(got)
        return TreeNode(node=n.node, children=tuple(kids))

    out: List[TreeNode] = []
    for n in nodes:
        got = _rec(n)
        if got is not None:
            out.append(got)
    return out
