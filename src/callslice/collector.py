from typing import Dict, List, Optional

from pydantic import BaseModel

from callslice.logger import logger
from callslice.models import CallGraph, DeclarationNode, ModelId, NodeKind, Span
from callslice.syntax import (
    ArrayPattern,
    AssignmentBinding,
    Binding,
    ClassSyntax,
    DefaultExportBinding,
    DefaultPattern,
    Expression,
    FunctionSyntax,
    Identifier,
    IdentifierPattern,
    LiteralValue,
    MemberAccess,
    MethodBinding,
    ObjectPattern,
    Pattern,
    PropertyBinding,
    RestPattern,
    SourceModule,
    ThisExpression,
    VariableBinding,
)

ANONYMOUS = "(anonymous)"
ANONYMOUS_CLASS = "(anonymous class)"
DEFAULT_EXPORT = "(default)"
UNKNOWN_TARGET = "(unknown)"
DYNAMIC_EVENT = "<dynamic>"
LISTENER_METHODS = ("addEventListener", "removeEventListener")


class ListenerInfo(BaseModel):
    method: str
    event_type: str
    target: str

    @property
    def name(self) -> str:
        return f"listener:{self.method}:{self.event_type}@{self.target}"


class GraphBuilder:
    """
    Mutable registry threaded through the class pass, the function pass and
    the call pass. ``build`` freezes it into a ``CallGraph``.
    """

    def __init__(self, path: Optional[str] = None, has_errors: bool = False) -> None:
        self.path = path
        self.has_errors = has_errors
        self._drafts: Dict[ModelId, dict] = {}
        self._enclosing: Dict[ModelId, List[int]] = {}
        self._ids_by_ref: Dict[int, ModelId] = {}
        self._prefix_by_ref: Dict[int, str] = {}
        self._class_first: Dict[ModelId, bool] = {}
        self._name_index: Dict[str, Dict[ModelId, None]] = {}
        self._calls: Dict[ModelId, Dict[ModelId, None]] = {}
        self._called_by: Dict[ModelId, Dict[ModelId, None]] = {}
        self._fallback_counter = 0

    # --- identity ---------------------------------------------------
    def make_id(self, prefix: str, span: Optional[Span]) -> ModelId:
        if span is None:
            self._fallback_counter += 1
            return f"{prefix}:{self._fallback_counter}"
        return (
            f"{prefix}:{span.start_line}:{span.start_column}"
            f"-{span.end_line}:{span.end_column}"
        )

    def owner_of(
        self, enclosing: List[int], class_first: bool = False
    ) -> Optional[ModelId]:
        """
        Owner within an innermost-first enclosing chain: the nearest recorded
        function, else the nearest recorded class. Class methods pass
        ``class_first`` to belong to their class.
        """
        nearest: Dict[str, ModelId] = {}
        for ref in enclosing:
            node_id = self._ids_by_ref.get(ref)
            if node_id is not None:
                nearest.setdefault(self._prefix_by_ref[ref], node_id)
        order = ("class", "fn") if class_first else ("fn", "class")
        for prefix in order:
            if prefix in nearest:
                return nearest[prefix]
        return None

    # --- registration -----------------------------------------------
    def add_node(
        self,
        ref: int,
        *,
        prefix: str,
        name: str,
        kind: NodeKind,
        span: Optional[Span],
        params: str = "",
        src: Optional[str] = None,
        printed: Optional[str] = None,
        enclosing: Optional[List[int]] = None,
        class_first: bool = False,
    ) -> ModelId:
        node_id = self.make_id(prefix, span)
        self._ids_by_ref[ref] = node_id
        self._prefix_by_ref[ref] = prefix
        self._class_first[node_id] = class_first
        self._drafts[node_id] = dict(
            id=node_id,
            name=name,
            kind=kind,
            params=params,
            span=span,
            src=src,
            printed=printed,
        )
        self._enclosing[node_id] = list(enclosing or [])
        self._name_index.setdefault(name, {})[node_id] = None
        return node_id

    def parent_of(self, node_id: ModelId) -> Optional[ModelId]:
        """
        Ownership parent per ``owner_of``. Only meaningful once every pass
        has registered its nodes.
        """
        return self.owner_of(
            self._enclosing.get(node_id, []), self._class_first.get(node_id, False)
        )

    def lookup_name(self, key: str) -> List[ModelId]:
        return list(self._name_index.get(key, {}))

    def add_edge(self, caller_id: Optional[ModelId], callee_id: Optional[ModelId]) -> None:
        if not caller_id or not callee_id:
            return
        self._calls.setdefault(caller_id, {})[callee_id] = None
        self._called_by.setdefault(callee_id, {})[caller_id] = None

    def __len__(self) -> int:
        return len(self._drafts)

    # --- freeze -----------------------------------------------------
    def build(self) -> CallGraph:
        parents = {node_id: self.parent_of(node_id) for node_id in self._drafts}
        children: Dict[ModelId, List[ModelId]] = {node_id: [] for node_id in self._drafts}
        for node_id, parent_id in parents.items():
            if parent_id is not None:
                children[parent_id].append(node_id)

        def _position(node_id: ModelId):
            span = self._drafts[node_id]["span"]
            return (span.start_line, span.start_column) if span else (0, 0)

        nodes: Dict[ModelId, DeclarationNode] = {}
        for node_id, draft in self._drafts.items():
            nodes[node_id] = DeclarationNode(
                **draft,
                parent_id=parents[node_id],
                children=tuple(sorted(children[node_id], key=_position)),
                calls=tuple(self._calls.get(node_id, {})),
                called_by=tuple(self._called_by.get(node_id, {})),
            )
        return CallGraph(nodes, path=self.path, has_errors=self.has_errors)


# --- naming ---------------------------------------------------------
def member_property_name(expr: Expression) -> Optional[str]:
    """Static property name of a member access, if it has one."""
    if not isinstance(expr, MemberAccess):
        return None
    prop = expr.property
    if not expr.computed and isinstance(prop, Identifier):
        return prop.name
    if expr.computed and isinstance(prop, LiteralValue) and prop.is_string:
        return prop.value
    return None


def render_target(expr: Optional[Expression]) -> str:
    """
    Best-effort text of a listener target: ``window``, ``document.body``,
    ``this.el``.
    """
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, ThisExpression):
        return "this"
    if isinstance(expr, MemberAccess):
        left = render_target(expr.object)
        prop = member_property_name(expr)
        return f"{left}.{prop}" if prop else left
    return UNKNOWN_TARGET


def listener_info(fn: FunctionSyntax) -> Optional[ListenerInfo]:
    """
    Return listener details when *fn* is the second positional argument of
    ``<target>.addEventListener(...)`` or ``<target>.removeEventListener(...)``.
    """
    call = fn.inline_call
    if call is None or call.argument_index != 1:
        return None
    method = member_property_name(call.callee)
    if method not in LISTENER_METHODS:
        return None
    assert isinstance(call.callee, MemberAccess)

    event = call.arguments[0] if call.arguments else None
    event_type = (
        event.value
        if isinstance(event, LiteralValue) and event.is_string
        else DYNAMIC_EVENT
    )
    return ListenerInfo(
        method=method, event_type=event_type, target=render_target(call.callee.object)
    )


def _key_name(key: Expression) -> Optional[str]:
    if isinstance(key, Identifier):
        return key.name
    if isinstance(key, LiteralValue):
        return key.value
    return None


def _binding_name(binding: Optional[Binding], *, allow_method: bool) -> Optional[str]:
    if binding is None:
        return None
    if isinstance(binding, VariableBinding):
        return binding.name
    if isinstance(binding, AssignmentBinding):
        target = binding.target
        if isinstance(target, Identifier):
            return target.name
        if isinstance(target, MemberAccess):
            prop = target.property
            if not target.computed and isinstance(prop, Identifier):
                return prop.name
            if target.computed and isinstance(prop, LiteralValue):
                return prop.value
        return None
    if isinstance(binding, PropertyBinding):
        return _key_name(binding.key)
    if isinstance(binding, MethodBinding):
        return _key_name(binding.key) if allow_method else None
    if isinstance(binding, DefaultExportBinding):
        return DEFAULT_EXPORT
    return None


def infer_function_name(fn: FunctionSyntax) -> str:
    if fn.is_method and isinstance(fn.binding, MethodBinding):
        return _key_name(fn.binding.key) or "(method)"
    if fn.name:
        return fn.name
    return _binding_name(fn.binding, allow_method=True) or ANONYMOUS


def infer_class_name(cls: ClassSyntax) -> str:
    if cls.name:
        return cls.name
    return _binding_name(cls.binding, allow_method=False) or ANONYMOUS_CLASS


def param_to_string(p: Pattern) -> str:
    if isinstance(p, IdentifierPattern):
        return p.name
    if isinstance(p, DefaultPattern):
        return f"{param_to_string(p.target)} = …"
    if isinstance(p, ObjectPattern):
        return "{ " + ", ".join(k if k is not None else "…" for k in p.keys) + " }"
    if isinstance(p, ArrayPattern):
        return (
            "["
            + ", ".join(param_to_string(e) if e is not None else "" for e in p.elements)
            + "]"
        )
    if isinstance(p, RestPattern):
        return f"...{param_to_string(p.argument)}"
    return f"<{p.syntax_type}>"


def function_kind(fn: FunctionSyntax) -> NodeKind:
    if fn.is_method:
        return NodeKind.METHOD
    if fn.is_arrow:
        return NodeKind.ARROW
    return NodeKind.FUNCTION


# --- passes ---------------------------------------------------------
def collect_classes(module: SourceModule, builder: GraphBuilder) -> None:
    for cls in module.classes():
        builder.add_node(
            cls.ref,
            prefix="class",
            name=infer_class_name(cls),
            kind=NodeKind.CLASS,
            span=cls.span,
            src=cls.text,
            printed=cls.printed,
            enclosing=cls.enclosing,
        )


def collect_functions(module: SourceModule, builder: GraphBuilder) -> None:
    for fn in module.functions():
        listener = listener_info(fn) if fn.is_expression else None
        if fn.is_expression and fn.inline_call is not None and listener is None:
            continue

        builder.add_node(
            fn.ref,
            prefix="fn",
            name=listener.name if listener else infer_function_name(fn),
            kind=function_kind(fn),
            span=fn.span,
            params=", ".join(param_to_string(p) for p in fn.params),
            src=fn.text,
            printed=fn.printed,
            enclosing=fn.enclosing,
            class_first=isinstance(fn.binding, MethodBinding),
        )


def collect_declarations(module: SourceModule) -> GraphBuilder:
    """
    Run both collection passes. Classes go first so that every class id is
    known before its methods are registered.
    """
    builder = GraphBuilder(path=module.path, has_errors=module.has_errors)
    collect_classes(module, builder)
    collect_functions(module, builder)
    logger.debug("Collected declarations", path=module.path, nodes=len(builder))
    return builder
