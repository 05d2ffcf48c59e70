from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ProgrammingLanguage(str, Enum):
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    TSX = "tsx"


class NodeKind(str, Enum):
    CLASS = "class"
    FUNCTION = "function"
    METHOD = "method"
    ARROW = "arrow"


# Generic types
ModelId = str


# Core data containers
class Span(BaseModel):
    """Source location of a declaration. Lines are 1-based, columns 0-based."""

    model_config = ConfigDict(frozen=True)

    start_line: int
    start_column: int
    end_line: int
    end_column: int
    start_byte: int = 0
    end_byte: int = 0

    @property
    def position(self) -> Tuple[int, int]:
        return (self.start_line, self.start_column)


class DeclarationNode(BaseModel):
    """
    A function, method or class declaration.

    Records are frozen once the graph is built. ``calls`` and ``called_by``
    are ordered sets: no duplicates, discovery order preserved.
    """

    model_config = ConfigDict(frozen=True)

    id: ModelId
    name: str
    kind: NodeKind
    params: str = ""
    span: Optional[Span] = None

    src: Optional[str] = None  # verbatim source slice
    printed: Optional[str] = None  # re-indented form, preferred for output

    parent_id: Optional[ModelId] = None
    children: Tuple[ModelId, ...] = ()
    calls: Tuple[ModelId, ...] = ()
    called_by: Tuple[ModelId, ...] = ()

    @property
    def start_line(self) -> Optional[int]:
        return self.span.start_line if self.span else None

    @property
    def end_line(self) -> Optional[int]:
        return self.span.end_line if self.span else None

    @property
    def position(self) -> Tuple[int, int]:
        return self.span.position if self.span else (0, 0)


class TreeNode(BaseModel):
    """A declaration together with its (possibly filtered) ownership children."""

    model_config = ConfigDict(frozen=True)

    node: DeclarationNode
    children: Tuple["TreeNode", ...] = ()

    @property
    def id(self) -> ModelId:
        return self.node.id


TreeNode.model_rebuild()


class GraphStats(BaseModel):
    nodes: int = 0
    classes: int = 0
    functions: int = 0
    edges: int = 0
    roots: int = 0


class CallGraph:
    """
    Immutable view over the collected declarations and their call edges.
    """

    def __init__(
        self,
        nodes: Dict[ModelId, DeclarationNode],
        *,
        path: Optional[str] = None,
        has_errors: bool = False,
    ) -> None:
        self._nodes: Mapping[ModelId, DeclarationNode] = MappingProxyType(dict(nodes))
        self.path = path
        self.has_errors = has_errors

    @property
    def nodes(self) -> Mapping[ModelId, DeclarationNode]:
        return self._nodes

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[DeclarationNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, node_id: ModelId) -> Optional[DeclarationNode]:
        return self._nodes.get(node_id)

    def neighbors(self, node_id: ModelId) -> List[ModelId]:
        """
        Union of outgoing call targets and incoming call sources, i.e. the
        call graph treated as undirected.
        """
        node = self._nodes.get(node_id)
        if node is None:
            return []
        return list(dict.fromkeys(node.calls + node.called_by))

    def parent_of(self, node_id: ModelId) -> Optional[ModelId]:
        node = self._nodes.get(node_id)
        return node.parent_id if node else None

    def ancestors(self, node_id: ModelId) -> List[ModelId]:
        """Ownership ancestors of *node_id*, nearest first."""
        out: List[ModelId] = []
        seen = {node_id}
        parent = self.parent_of(node_id)
        while parent is not None and parent not in seen:
            out.append(parent)
            seen.add(parent)
            parent = self.parent_of(parent)
        return out

    def roots(self) -> List[DeclarationNode]:
        roots = [n for n in self._nodes.values() if n.parent_id is None]
        return sorted(roots, key=lambda n: n.position)

    def forest(self) -> List[TreeNode]:
        """Full ownership forest, siblings in ascending source position."""

        def _tree(node: DeclarationNode) -> TreeNode:
            return TreeNode(
                node=node,
                children=tuple(_tree(self._nodes[c]) for c in node.children),
            )

        return [_tree(r) for r in self.roots()]

    def edges(self) -> List[Tuple[ModelId, ModelId]]:
        return [(n.id, callee) for n in self._nodes.values() for callee in n.calls]

    def ids_by_name(self) -> Dict[str, List[ModelId]]:
        out: Dict[str, List[ModelId]] = {}
        for node in self._nodes.values():
            out.setdefault(node.name, []).append(node.id)
        return out

    def stats(self) -> GraphStats:
        return GraphStats(
            nodes=len(self._nodes),
            classes=sum(1 for n in self._nodes.values() if n.kind == NodeKind.CLASS),
            functions=sum(1 for n in self._nodes.values() if n.kind != NodeKind.CLASS),
            edges=sum(len(n.calls) for n in self._nodes.values()),
            roots=sum(1 for n in self._nodes.values() if n.parent_id is None),
        )


class SelectionState(BaseModel):
    """
    Result of slicing: seed ⊆ full_detail ⊆ context ⊆ included.
    """

    model_config = ConfigDict(frozen=True)

    seed_ids: Tuple[ModelId, ...] = ()
    full_detail_ids: frozenset[ModelId] = Field(default_factory=frozenset)
    context_ids: frozenset[ModelId] = Field(default_factory=frozenset)
    included_ids: frozenset[ModelId] = Field(default_factory=frozenset)
    distances: Dict[ModelId, int] = Field(default_factory=dict)
    full_radius: int = 0
    context_radius: int = 0
