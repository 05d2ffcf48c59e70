"""
Call edge resolution.

Resolution is name based: a call to ``run()`` or ``obj.run()`` links the
caller to *every* declaration named ``run`` in the file. Same-named unrelated
declarations are over-linked; calls through renamed references or dynamic
dispatch are missed.
"""

from typing import Optional

from callslice.collector import GraphBuilder, collect_declarations, member_property_name
from callslice.logger import logger
from callslice.models import CallGraph
from callslice.syntax import CallSyntax, Expression, Identifier, MemberAccess, SourceModule


def callee_key(callee: Expression) -> Optional[str]:
    """
    Name a call resolves through: ``foo()`` -> ``foo``, ``obj.foo()`` and
    ``obj["foo"]()`` -> ``foo``. Anything dynamic yields ``None``.
    """
    if isinstance(callee, Identifier):
        return callee.name
    if isinstance(callee, MemberAccess):
        return member_property_name(callee)
    return None


def resolve_call(call: CallSyntax, builder: GraphBuilder) -> int:
    key = callee_key(call.callee)
    if not key:
        return 0

    # Module-level calls have no caller node and contribute nothing.
    caller_id = builder.owner_of(call.enclosing)
    if caller_id is None:
        return 0

    targets = builder.lookup_name(key)
    for callee_id in targets:
        builder.add_edge(caller_id, callee_id)
    return len(targets)


def resolve_calls(module: SourceModule, builder: GraphBuilder) -> GraphBuilder:
    linked = 0
    for call in module.calls:
        linked += resolve_call(call, builder)
    logger.debug(
        "Resolved call edges", path=module.path, calls=len(module.calls), linked=linked
    )
    return builder


def build_call_graph(module: SourceModule) -> CallGraph:
    """Collect declarations, resolve calls and freeze the result."""
    builder = collect_declarations(module)
    resolve_calls(module, builder)
    return builder.build()
