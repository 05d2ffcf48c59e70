"""
Closed set of syntax shapes consumed by the collector and the resolver.

The parser adapter lowers a concrete tree into these variants; nothing
downstream touches the concrete syntax tree.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from callslice.models import Span

# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


class Identifier(BaseModel):
    type: Literal["identifier"] = "identifier"
    name: str


class LiteralValue(BaseModel):
    type: Literal["literal"] = "literal"
    value: str  # string contents or the number's source text
    is_string: bool = True


class ThisExpression(BaseModel):
    type: Literal["this"] = "this"


class OtherExpression(BaseModel):
    type: Literal["other"] = "other"
    syntax_type: str


class MemberAccess(BaseModel):
    type: Literal["member"] = "member"
    object: "Expression"
    property: "Expression"
    computed: bool = False


Expression = Annotated[
    Union[Identifier, LiteralValue, ThisExpression, OtherExpression, MemberAccess],
    Field(discriminator="type"),
]

MemberAccess.model_rebuild()

# ---------------------------------------------------------------------------
# Binding contexts: where an otherwise anonymous declaration gets its name
# ---------------------------------------------------------------------------


class VariableBinding(BaseModel):
    type: Literal["variable"] = "variable"
    name: Optional[str] = None  # None for destructuring declarators


class AssignmentBinding(BaseModel):
    type: Literal["assignment"] = "assignment"
    target: Expression


class PropertyBinding(BaseModel):
    type: Literal["property"] = "property"
    key: Expression


class MethodBinding(BaseModel):
    type: Literal["method"] = "method"
    key: Expression


class DefaultExportBinding(BaseModel):
    type: Literal["default_export"] = "default_export"


Binding = Annotated[
    Union[
        VariableBinding,
        AssignmentBinding,
        PropertyBinding,
        MethodBinding,
        DefaultExportBinding,
    ],
    Field(discriminator="type"),
]

# ---------------------------------------------------------------------------
# Parameter patterns
# ---------------------------------------------------------------------------


class IdentifierPattern(BaseModel):
    type: Literal["identifier"] = "identifier"
    name: str


class DefaultPattern(BaseModel):
    type: Literal["default"] = "default"
    target: "Pattern"


class ObjectPattern(BaseModel):
    type: Literal["object"] = "object"
    keys: List[Optional[str]] = Field(default_factory=list)


class ArrayPattern(BaseModel):
    type: Literal["array"] = "array"
    elements: List[Optional["Pattern"]] = Field(default_factory=list)


class RestPattern(BaseModel):
    type: Literal["rest"] = "rest"
    argument: "Pattern"


class OtherPattern(BaseModel):
    type: Literal["other"] = "other"
    syntax_type: str


Pattern = Annotated[
    Union[
        IdentifierPattern,
        DefaultPattern,
        ObjectPattern,
        ArrayPattern,
        RestPattern,
        OtherPattern,
    ],
    Field(discriminator="type"),
]

DefaultPattern.model_rebuild()
ArrayPattern.model_rebuild()
RestPattern.model_rebuild()

# ---------------------------------------------------------------------------
# Declarations and calls
# ---------------------------------------------------------------------------


class InlineCall(BaseModel):
    """
    The call a function expression sits in. ``argument_index`` is set only
    when the function is itself a positional argument of that call.
    """

    callee: Expression
    arguments: List[Expression] = Field(default_factory=list)
    argument_index: Optional[int] = None


class FunctionSyntax(BaseModel):
    type: Literal["function"] = "function"
    ref: int
    syntax_type: str
    name: Optional[str] = None  # explicit declaration identifier
    is_expression: bool = False  # function expression or arrow
    is_arrow: bool = False
    is_method: bool = False
    params: List[Pattern] = Field(default_factory=list)
    binding: Optional[Binding] = None
    inline_call: Optional[InlineCall] = None
    span: Optional[Span] = None
    text: Optional[str] = None
    printed: Optional[str] = None
    enclosing: List[int] = Field(default_factory=list)  # innermost first


class ClassSyntax(BaseModel):
    type: Literal["class"] = "class"
    ref: int
    syntax_type: str
    name: Optional[str] = None
    binding: Optional[Binding] = None
    span: Optional[Span] = None
    text: Optional[str] = None
    printed: Optional[str] = None
    enclosing: List[int] = Field(default_factory=list)


Declaration = Annotated[
    Union[FunctionSyntax, ClassSyntax], Field(discriminator="type")
]


class CallSyntax(BaseModel):
    callee: Expression
    line: Optional[int] = None
    enclosing: List[int] = Field(default_factory=list)


class SourceModule(BaseModel):
    """Lowered view of one parsed file, declarations in document order."""

    path: Optional[str] = None
    declarations: List[Declaration] = Field(default_factory=list)
    calls: List[CallSyntax] = Field(default_factory=list)
    has_errors: bool = False

    def classes(self) -> List[ClassSyntax]:
        return [d for d in self.declarations if isinstance(d, ClassSyntax)]

    def functions(self) -> List[FunctionSyntax]:
        return [d for d in self.declarations if isinstance(d, FunctionSyntax)]
