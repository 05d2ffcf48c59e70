import inspect
import os
from abc import ABC, abstractmethod
from typing import ClassVar, Dict, List, Optional, Tuple, Type

import tree_sitter as ts

from callslice.logger import logger
from callslice.models import ProgrammingLanguage, Span
from callslice.syntax import (
    ArrayPattern,
    AssignmentBinding,
    Binding,
    CallSyntax,
    ClassSyntax,
    DefaultExportBinding,
    DefaultPattern,
    Expression,
    FunctionSyntax,
    Identifier,
    IdentifierPattern,
    InlineCall,
    LiteralValue,
    MemberAccess,
    MethodBinding,
    ObjectPattern,
    OtherExpression,
    OtherPattern,
    Pattern,
    PropertyBinding,
    RestPattern,
    SourceModule,
    ThisExpression,
    VariableBinding,
)

FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
        "method_definition",
    }
)
EXPRESSION_FUNCTION_TYPES = frozenset(
    {"function_expression", "function", "generator_function", "arrow_function"}
)
CLASS_TYPES = frozenset({"class_declaration", "abstract_class_declaration", "class"})
FIELD_TYPES = frozenset({"field_definition", "public_field_definition"})
IDENTIFIER_TYPES = frozenset(
    {
        "identifier",
        "property_identifier",
        "private_property_identifier",
        "shorthand_property_identifier",
        "type_identifier",
    }
)
# Wrappers that do not count as a syntactic parent.
_TRANSPARENT = frozenset({"parenthesized_expression"})
_CALL_TRANSPARENT = frozenset({"parenthesized_expression", "arguments"})


# Abstract base parser class
class AbstractCodeParser(ABC):
    """
    Lowers a tree-sitter tree of an ECMAScript-family file into a
    ``SourceModule``.

    Subclasses only supply the grammar through ``get_ts_language``; node
    handling is shared because the JavaScript, TypeScript and TSX grammars
    agree on every node type used here.
    """

    language: ClassVar[ProgrammingLanguage]
    extensions: ClassVar[List[str]]

    _ts_parsers: ClassVar[Dict[str, ts.Parser]] = {}

    def __init_subclass__(cls, **kw):
        super().__init_subclass__(**kw)
        if not inspect.isabstract(cls):
            if not getattr(cls, "extensions", None):
                raise ValueError(f"{cls.__name__} missing `extensions`")
            CodeParserRegistry.register_parser(cls)

    @classmethod
    @abstractmethod
    def get_ts_language(cls) -> ts.Language: ...

    def __init__(self) -> None:
        self.parser = self._get_parser()
        self.source_bytes: bytes = b""
        self.path: Optional[str] = None

    @classmethod
    def _get_parser(cls) -> ts.Parser:
        key = cls.language.value
        parser = AbstractCodeParser._ts_parsers.get(key)
        if parser is None:
            parser = ts.Parser(cls.get_ts_language())
            AbstractCodeParser._ts_parsers[key] = parser
        return parser

    def parse(self, text: str, path: Optional[str] = None) -> SourceModule:
        self.source_bytes = text.encode("utf-8")
        self.path = path

        tree = self.parser.parse(self.source_bytes)
        root_node = tree.root_node

        module = SourceModule(path=path, has_errors=root_node.has_error)
        if root_node.has_error:
            logger.warning(
                "Source contains syntax errors; continuing with recovered tree",
                path=path,
                language=self.language.value,
            )

        stack: List[Tuple[ts.Node, Tuple[int, ...]]] = [(root_node, ())]
        while stack:
            node, enclosing = stack.pop()
            inner = enclosing
            if node.is_named:
                try:
                    inner = self._process_node(node, module, enclosing)
                except Exception as ex:
                    logger.warning(
                        "Lowering error; node skipped",
                        path=path,
                        node_type=node.type,
                        line=node.start_point[0] + 1,
                        error=str(ex),
                    )
            for child in reversed(node.children):
                stack.append((child, inner))

        logger.debug(
            "Lowered source",
            path=path,
            declarations=len(module.declarations),
            calls=len(module.calls),
        )
        return module

    def _process_node(
        self, node: ts.Node, module: SourceModule, enclosing: Tuple[int, ...]
    ) -> Tuple[int, ...]:
        """
        Record *node* in *module* when it is a declaration or a call; return
        the enclosing chain its children see.
        """
        ref = len(module.declarations)
        if node.type in CLASS_TYPES:
            module.declarations.append(self._handle_class(node, ref, enclosing))
            return (ref,) + enclosing
        if node.type in FUNCTION_TYPES:
            module.declarations.append(self._handle_function(node, ref, enclosing))
            return (ref,) + enclosing
        if node.type == "call_expression":
            call = self._handle_call(node, enclosing)
            if call is not None:
                module.calls.append(call)
        return enclosing

    # --- handlers ---------------------------------------------------
    def _handle_class(
        self, node: ts.Node, ref: int, enclosing: Tuple[int, ...]
    ) -> ClassSyntax:
        name_node = node.child_by_field_name("name")
        return ClassSyntax(
            ref=ref,
            syntax_type=node.type,
            name=get_node_text(name_node) or None,
            binding=self._binding(node),
            span=self._span(node),
            text=get_node_text(node),
            printed=self._print(node),
            enclosing=list(enclosing),
        )

    def _handle_function(
        self, node: ts.Node, ref: int, enclosing: Tuple[int, ...]
    ) -> FunctionSyntax:
        is_method = node.type == "method_definition"
        is_expression = node.type in EXPRESSION_FUNCTION_TYPES
        name = None
        if not is_method:
            name = get_node_text(node.child_by_field_name("name")) or None
        return FunctionSyntax(
            ref=ref,
            syntax_type=node.type,
            name=name,
            is_expression=is_expression,
            is_arrow=node.type == "arrow_function",
            is_method=is_method,
            params=self._params(node),
            binding=self._binding(node),
            inline_call=self._inline_call(node) if is_expression else None,
            span=self._span(node),
            text=get_node_text(node),
            printed=self._print(node),
            enclosing=list(enclosing),
        )

    def _handle_call(
        self, node: ts.Node, enclosing: Tuple[int, ...]
    ) -> Optional[CallSyntax]:
        args = node.child_by_field_name("arguments")
        # Tagged templates share the node type but are not calls.
        if args is not None and args.type == "template_string":
            return None
        return CallSyntax(
            callee=self._expr(node.child_by_field_name("function")),
            line=node.start_point[0] + 1,
            enclosing=list(enclosing),
        )

    # --- context ----------------------------------------------------
    def _binding(self, node: ts.Node) -> Optional[Binding]:
        if node.type == "method_definition":
            key = self._key_expr(node.child_by_field_name("name"))
            container = node.parent
            if container is not None and container.type == "class_body":
                return MethodBinding(key=key)
            return PropertyBinding(key=key)

        child, parent = node, node.parent
        while parent is not None and parent.type in _TRANSPARENT:
            child, parent = parent, parent.parent
        if parent is None:
            return None

        if parent.type == "variable_declarator" and _is_field(parent, "value", child):
            name_node = parent.child_by_field_name("name")
            if name_node is not None and name_node.type == "identifier":
                return VariableBinding(name=get_node_text(name_node))
            return VariableBinding(name=None)
        if parent.type == "assignment_expression" and _is_field(parent, "right", child):
            return AssignmentBinding(target=self._expr(parent.child_by_field_name("left")))
        if parent.type == "pair" and _is_field(parent, "value", child):
            return PropertyBinding(key=self._key_expr(parent.child_by_field_name("key")))
        if parent.type in FIELD_TYPES and _is_field(parent, "value", child):
            key_node = parent.child_by_field_name(
                "property"
            ) or parent.child_by_field_name("name")
            return PropertyBinding(key=self._key_expr(key_node))
        if parent.type == "export_statement" and any(
            c.type == "default" for c in parent.children
        ):
            return DefaultExportBinding()
        return None

    def _inline_call(self, node: ts.Node) -> Optional[InlineCall]:
        """
        Return the call *node* is an inline part of: the call is its
        syntactic parent (as callee or argument) or its grandparent.
        """
        parent, arg = _syntactic_parent(node)
        if parent is None:
            return None
        if parent.type == "call_expression":
            return self._make_inline(parent, arg)
        grand, _ = _syntactic_parent(parent)
        if grand is not None and grand.type == "call_expression":
            return self._make_inline(grand, None)
        return None

    def _make_inline(self, call: ts.Node, arg: Optional[ts.Node]) -> InlineCall:
        args_node = call.child_by_field_name("arguments")
        arg_nodes: List[ts.Node] = []
        if args_node is not None and args_node.type == "arguments":
            arg_nodes = [c for c in args_node.named_children if c.type != "comment"]
        index = None
        if arg is not None:
            for i, candidate in enumerate(arg_nodes):
                if _same_node(candidate, arg):
                    index = i
                    break
        return InlineCall(
            callee=self._expr(call.child_by_field_name("function")),
            arguments=[self._expr(a) for a in arg_nodes],
            argument_index=index,
        )

    # --- expressions ------------------------------------------------
    def _expr(self, node: Optional[ts.Node]) -> Expression:
        if node is None:
            return OtherExpression(syntax_type="missing")
        t = node.type
        if t in _TRANSPARENT:
            inner = _first_named(node)
            return self._expr(inner) if inner is not None else OtherExpression(
                syntax_type=t
            )
        if t in IDENTIFIER_TYPES:
            return Identifier(name=get_node_text(node))
        if t == "this":
            return ThisExpression()
        if t == "string":
            return LiteralValue(value=string_value(node), is_string=True)
        if t == "number":
            return LiteralValue(value=get_node_text(node), is_string=False)
        if t == "member_expression":
            return MemberAccess(
                object=self._expr(node.child_by_field_name("object")),
                property=self._expr(node.child_by_field_name("property")),
                computed=False,
            )
        if t == "subscript_expression":
            return MemberAccess(
                object=self._expr(node.child_by_field_name("object")),
                property=self._expr(node.child_by_field_name("index")),
                computed=True,
            )
        return OtherExpression(syntax_type=t)

    def _key_expr(self, node: Optional[ts.Node]) -> Expression:
        if node is not None and node.type == "computed_property_name":
            return self._expr(_first_named(node))
        return self._expr(node)

    # --- parameters -------------------------------------------------
    def _params(self, node: ts.Node) -> List[Pattern]:
        single = node.child_by_field_name("parameter")
        if single is not None:
            return [self._pattern(single)]
        params = node.child_by_field_name("parameters")
        if params is None:
            return []
        return [self._pattern(c) for c in params.named_children if c.type != "comment"]

    def _pattern(self, node: Optional[ts.Node]) -> Pattern:
        if node is None:
            return OtherPattern(syntax_type="missing")
        t = node.type
        if t in ("required_parameter", "optional_parameter"):
            inner = self._pattern(node.child_by_field_name("pattern"))
            if node.child_by_field_name("value") is not None:
                return DefaultPattern(target=inner)
            return inner
        if t in ("identifier", "shorthand_property_identifier_pattern", "this"):
            return IdentifierPattern(name=get_node_text(node))
        if t == "assignment_pattern":
            return DefaultPattern(target=self._pattern(node.child_by_field_name("left")))
        if t == "object_pattern":
            return ObjectPattern(
                keys=[
                    self._object_pattern_key(c)
                    for c in node.named_children
                    if c.type != "comment"
                ]
            )
        if t == "array_pattern":
            return ArrayPattern(
                elements=[
                    self._pattern(c) for c in node.named_children if c.type != "comment"
                ]
            )
        if t == "rest_pattern":
            return RestPattern(argument=self._pattern(_first_named(node)))
        return OtherPattern(syntax_type=t)

    def _object_pattern_key(self, node: ts.Node) -> Optional[str]:
        if node.type == "shorthand_property_identifier_pattern":
            return get_node_text(node)
        if node.type == "object_assignment_pattern":
            return get_node_text(node.child_by_field_name("left")) or None
        if node.type == "pair_pattern":
            key = self._expr(node.child_by_field_name("key"))
            if isinstance(key, (Identifier,)):
                return key.name
            if isinstance(key, LiteralValue):
                return key.value
        return None

    # --- locations --------------------------------------------------
    def _span(self, node: ts.Node) -> Optional[Span]:
        if node.start_byte == node.end_byte:
            return None
        return Span(
            start_line=node.start_point[0] + 1,
            start_column=node.start_point[1],
            end_line=node.end_point[0] + 1,
            end_column=node.end_point[1],
            start_byte=node.start_byte,
            end_byte=node.end_byte,
        )

    def _print(self, node: ts.Node) -> Optional[str]:
        if node.start_byte == node.end_byte:
            return None
        line_start = self.source_bytes.rfind(b"\n", 0, node.start_byte) + 1
        prefix = self.source_bytes[line_start : node.start_byte].decode(
            "utf-8", errors="replace"
        )
        indent = prefix[: len(prefix) - len(prefix.lstrip())]
        return reindent(get_node_text(node), indent)


class CodeParserRegistry:
    """
    Singleton registry mapping file extensions to CodeParser implementations.
    """

    _instance = None
    _parsers: List[Type[AbstractCodeParser]] = []

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(CodeParserRegistry, cls).__new__(cls)
        return cls._instance

    @classmethod
    def register_parser(cls, parser: Type[AbstractCodeParser]) -> None:
        if parser not in cls._parsers:
            cls._parsers.append(parser)

    @classmethod
    def get_parsers(cls) -> List[Type[AbstractCodeParser]]:
        return cls._parsers

    @classmethod
    def get_by_language(cls, language: str) -> Optional[Type[AbstractCodeParser]]:
        for parser in cls._parsers:
            if parser.language.value == language:
                return parser
        return None

    @classmethod
    def get_for_path(
        cls, path: Optional[str], default_language: str = "tsx"
    ) -> Type[AbstractCodeParser]:
        ext = os.path.splitext(path or "")[1].lower()
        for parser in cls._parsers:
            if ext in parser.extensions:
                return parser
        parser = cls.get_by_language(default_language)
        if parser is None:
            raise ValueError(f"No parser registered for language: {default_language}")
        return parser


# Helpers
def get_node_text(node) -> str:
    """
    Get text of the tree sitter node
    """
    if not node or not node.text:
        return ""

    return node.text.decode("utf-8", errors="replace")


def string_value(node: ts.Node) -> str:
    """Contents of a string literal node without the quotes."""
    parts = [
        unescape(get_node_text(c)) if c.type == "escape_sequence" else get_node_text(c)
        for c in node.named_children
        if c.type in ("string_fragment", "escape_sequence")
    ]
    if parts:
        return "".join(parts)
    raw = get_node_text(node)
    return raw[1:-1] if len(raw) >= 2 else ""


_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def unescape(seq: str) -> str:
    """Decode one JavaScript escape sequence such as ``\\n``, ``\\x41`` or ``\\u{1F600}``."""
    body = seq[1:] if seq.startswith("\\") else seq
    if not body:
        return seq
    if body in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[body]
    try:
        if body.startswith("u{") and body.endswith("}"):
            return chr(int(body[2:-1], 16))
        if body[0] in "ux" and len(body) > 1:
            return chr(int(body[1:], 16))
    except ValueError:
        return seq
    if body[0] in "\r\n\u2028\u2029":
        # line continuation
        return ""
    return body


def reindent(text: str, indent: str) -> str:
    """
    Remove *indent* (the indentation of the line a declaration starts on)
    from every continuation line of *text*.
    """
    lines = text.split("\n")
    if not indent or len(lines) == 1:
        return text
    out = [lines[0]]
    for line in lines[1:]:
        if line.startswith(indent):
            out.append(line[len(indent) :])
        else:
            stripped = line.lstrip(" \t")
            removed = len(line) - len(stripped)
            out.append(line[min(removed, len(indent)) :])
    return "\n".join(out)


def trim_common_indent(block: Optional[str]) -> Optional[str]:
    """
    Strip leading/trailing blank lines and the indentation shared by every
    non-empty line.
    """
    if block is None:
        return None
    lines = block.strip("\n").split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    non_empty = [line for line in lines if line.strip()]
    if not non_empty:
        return ""

    min_indent = min(len(line) - len(line.lstrip(" \t")) for line in non_empty)
    if min_indent <= 0:
        return "\n".join(lines)
    return "\n".join(line[min_indent:] if line.strip() else "" for line in lines)


def _is_field(parent: ts.Node, field: str, child: ts.Node) -> bool:
    value = parent.child_by_field_name(field)
    return value is not None and _same_node(value, child)


def _same_node(a: ts.Node, b: ts.Node) -> bool:
    return (a.start_byte, a.end_byte, a.type) == (b.start_byte, b.end_byte, b.type)


def _first_named(node: ts.Node) -> Optional[ts.Node]:
    for c in node.named_children:
        if c.type != "comment":
            return c
    return None


def _syntactic_parent(node: ts.Node) -> Tuple[Optional[ts.Node], Optional[ts.Node]]:
    """
    Parent of *node* ignoring parentheses and argument lists. The second
    value is the argument element that contains *node* when an argument list
    was crossed.
    """
    cur, parent, arg = node, node.parent, None
    while parent is not None and parent.type in _CALL_TRANSPARENT:
        if parent.type == "arguments":
            arg = cur
        cur, parent = parent, parent.parent
    return parent, arg
