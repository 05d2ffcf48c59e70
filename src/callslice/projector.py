import json
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from callslice.collector import ANONYMOUS
from callslice.models import CallGraph, DeclarationNode, ModelId, SelectionState, TreeNode
from callslice.parsers import trim_common_indent
from callslice.settings import STRUCTURAL_FIELDS, OutputFormat, RefMode

Ref = Union[str, Dict[str, str]]


class ProjectionOptions(BaseModel):
    """Shape of the projected tree."""

    structural_fields: Tuple[str, ...] = Field(default=STRUCTURAL_FIELDS)
    include_children: bool = True
    include_child_count: bool = True
    ref_mode: RefMode = RefMode.NAME


class Projector:
    """
    Renders a filtered ownership tree. Full-detail nodes carry source and
    call references; every other node is a structural stub.
    """

    def __init__(
        self,
        graph: CallGraph,
        selection: SelectionState,
        options: Optional[ProjectionOptions] = None,
    ) -> None:
        self.graph = graph
        self.selection = selection
        self.options = options or ProjectionOptions()

    # --- references -------------------------------------------------
    def ref_for(self, node_id: ModelId) -> Ref:
        mode = self.options.ref_mode
        node = self.graph.get(node_id)
        if node is None:
            return node_id if mode == RefMode.ID else "(unknown)"
        if mode == RefMode.ID:
            return node_id
        name = node.name or ANONYMOUS
        if mode == RefMode.NAME:
            return name
        return {"id": node_id, "name": name}

    def ref_label(self, node_id: ModelId) -> str:
        """Single-line form used by the outline encoding."""
        mode = self.options.ref_mode
        node = self.graph.get(node_id)
        if node is None:
            return node_id if mode == RefMode.ID else "(unknown)"
        if mode == RefMode.ID:
            return node_id
        name = node.name or ANONYMOUS
        if mode == RefMode.NAME:
            return name
        return f"{name} ({node_id})"

    def included(self, ids: Iterable[ModelId]) -> List[ModelId]:
        return [i for i in ids if i in self.selection.included_ids]

    # --- projection -------------------------------------------------
    def source_for(self, node: DeclarationNode) -> Optional[str]:
        return node.printed or trim_common_indent(node.src)

    def project(self, forest: Iterable[TreeNode]) -> List[Dict[str, Any]]:
        return [self.project_node(t) for t in forest]

    def project_node(self, tree: TreeNode) -> Dict[str, Any]:
        n = tree.node
        if n.id in self.selection.full_detail_ids:
            out: Dict[str, Any] = {
                "id": n.id,
                "name": n.name,
                "type": n.kind.value,
                "startLine": n.start_line,
                "endLine": n.end_line,
                "params": n.params or "",
                "src": self.source_for(n),
                "calls": [self.ref_for(i) for i in self.included(n.calls)],
                "calledBy": [self.ref_for(i) for i in self.included(n.called_by)],
            }
        else:
            values = {
                "id": n.id,
                "name": n.name,
                "type": n.kind.value,
                "startLine": n.start_line,
                "endLine": n.end_line,
            }
            out = {
                f: values[f] for f in STRUCTURAL_FIELDS if f in self.options.structural_fields
            }

        if self.options.include_children:
            out["children"] = [self.project_node(c) for c in tree.children]
        elif self.options.include_child_count:
            out["childCount"] = len(tree.children)
        return out

    # --- outline ----------------------------------------------------
    def outline(self, forest: Iterable[TreeNode]) -> str:
        parts: List[str] = []

        def _walk(tree: TreeNode, depth: int) -> None:
            n = tree.node
            pad = "  " * depth if self.options.include_children else ""
            title = f"{_header(n.name)}  ({_header(n.id)})"

            if n.id in self.selection.full_detail_ids:
                parts.append(f"{pad}// ==== {title} ====")
                parts.append(self.source_for(n) or "")
                calls = [self.ref_label(i) for i in self.included(n.calls)]
                called_by = [self.ref_label(i) for i in self.included(n.called_by)]
                if calls:
                    parts.append(f"{pad}// calls: {', '.join(calls)}")
                if called_by:
                    parts.append(f"{pad}// calledBy: {', '.join(called_by)}")
                parts.append("")
            elif self.options.include_children:
                parts.append(f"{pad}// -- {title} --")

            for c in tree.children:
                _walk(c, depth + 1)

        for root in forest:
            _walk(root, 0)
        return "\n".join(parts)


# --- encoders -------------------------------------------------------
def to_json(value: Any, pretty: bool = True, indent: int = 2) -> str:
    if pretty:
        return json.dumps(value, indent=indent, ensure_ascii=False)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def escape_for_template_literal(s: Optional[str]) -> str:
    """Escape backticks and ``${`` so the text is safe inside a template literal."""
    return str(s or "").replace("`", "\\`").replace("${", "\\${")


def to_js_literal(value: Any, indent: int = 0) -> str:
    """
    Render *value* as a JavaScript literal. ``src`` strings become template
    literal blocks; every other scalar uses JSON quoting.
    """
    pad = "  " * indent
    pad2 = "  " * (indent + 1)

    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = ",\n".join(pad2 + to_js_literal(v, indent + 1) for v in value)
        return "[\n" + items + "\n" + pad + "]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        lines = []
        for k, v in value.items():
            key = json.dumps(str(k), ensure_ascii=False)
            if k == "src" and isinstance(v, str):
                lines.append(f"{pad2}{key}: `\n{escape_for_template_literal(v)}\n`")
            else:
                lines.append(f"{pad2}{key}: {to_js_literal(v, indent + 1)}")
        return "{\n" + ",\n".join(lines) + "\n" + pad + "}"
    return "null"


def to_module_text(value: Any) -> str:
    return f"export default {to_js_literal(value, 0)};\n"


def render(
    forest: Iterable[TreeNode],
    graph: CallGraph,
    selection: SelectionState,
    options: Optional[ProjectionOptions] = None,
    *,
    fmt: OutputFormat = OutputFormat.JSON,
    pretty: bool = True,
    indent: int = 2,
) -> str:
    projector = Projector(graph, selection, options)
    forest = list(forest)
    if fmt == OutputFormat.OUTLINE:
        return projector.outline(forest)
    projected = projector.project(forest)
    if fmt == OutputFormat.MODULE:
        return to_module_text(projected)
    return to_json(projected, pretty=pretty, indent=indent)


_WS_RE = re.compile(r"\s+")


def _header(s: Optional[str]) -> str:
    return _WS_RE.sub(" ", str(s or "")).strip()
