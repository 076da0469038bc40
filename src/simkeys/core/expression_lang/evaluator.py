"""
Expression evaluator for the entity expression language.

Evaluates expression AST nodes against an entity context. Entity names and
outputs are resolved at evaluation time, so an expression keeps working as
entities are created, deleted or change state. Does NOT use Python's eval().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from simkeys.core.errors import ExpError
from simkeys.core.expression_lang.operators import (
    FALSE,
    TRUE,
    apply_binary,
    apply_unary,
    get_function,
    is_true,
)
from simkeys.core.ir.expressions import (
    ArrayLiteral,
    BinaryExpr,
    BinaryOp,
    CondExpr,
    EntityRef,
    Expr,
    Expression,
    FuncCall,
    IndexExpr,
    Literal,
    MapLiteral,
    OutputRef,
    UnaryExpr,
)
from simkeys.core.ir.results import ExpResult, ResultKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvalContext:
    """
    What an expression is evaluated against.

    Attributes:
        this_ent: Entity bound to ``this``
        sim_time: Simulation time passed to output getters
        namespace: Entity namespace for ``[Name]`` lookups; defaults to
            the namespace of ``this_ent``
    """

    this_ent: Any = None
    sim_time: float = 0.0
    namespace: Any = None

    def get_namespace(self) -> Any:
        if self.namespace is not None:
            return self.namespace
        return getattr(self.this_ent, "namespace", None)


def evaluate_expression(
    exp: Expression,
    this_ent: Any = None,
    sim_time: float = 0.0,
    namespace: Any = None,
) -> ExpResult:
    """Evaluate a parsed expression.

    Args:
        exp: Parsed expression.
        this_ent: Entity bound to ``this``.
        sim_time: Current simulation time.
        namespace: Namespace for entity names (defaults to ``this_ent``'s).

    Returns:
        The computed result.

    Raises:
        ExpError: If evaluation fails; the error is anchored to ``exp.source``.
    """
    ctx = EvalContext(this_ent, sim_time, namespace)
    try:
        return evaluate(exp.root, ctx)
    except ExpError as err:
        anchored = err.with_source(exp.source)
        if anchored is err:
            raise
        raise anchored from err
    except RecursionError:
        raise ExpError(
            "Expression refers back to itself (recursion limit reached)", exp.source, 0
        ) from None


def evaluate(expr: Expr, ctx: EvalContext) -> ExpResult:
    """Evaluate a single AST node.

    Errors raised here carry a position but no source text; use
    ``evaluate_expression`` to get fully anchored diagnostics.
    """
    if isinstance(expr, Literal):
        return expr.result

    if isinstance(expr, BinaryExpr):
        return _interpret_binary(expr, ctx)

    if isinstance(expr, OutputRef):
        return _interpret_output_ref(expr, ctx)

    if isinstance(expr, EntityRef):
        return _interpret_entity_ref(expr, ctx)

    if isinstance(expr, UnaryExpr):
        return apply_unary(expr.op, evaluate(expr.operand, ctx), expr.pos)

    if isinstance(expr, CondExpr):
        if is_true(evaluate(expr.condition, ctx), expr.pos):
            return evaluate(expr.then_expr, ctx)
        return evaluate(expr.else_expr, ctx)

    if isinstance(expr, FuncCall):
        return _interpret_func_call(expr, ctx)

    if isinstance(expr, IndexExpr):
        return _interpret_index(expr, ctx)

    if isinstance(expr, ArrayLiteral):
        return ExpResult.array([evaluate(item, ctx) for item in expr.items])

    if isinstance(expr, MapLiteral):
        return ExpResult.mapping({key: evaluate(value, ctx) for key, value in expr.entries})

    raise ExpError(f"Unknown expression type: {type(expr).__name__}")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _interpret_entity_ref(expr: EntityRef, ctx: EvalContext) -> ExpResult:
    if expr.name is None:
        if ctx.this_ent is None:
            raise ExpError("'this' is not defined in this context", pos=expr.pos)
        return ExpResult.entity(ctx.this_ent)

    namespace = ctx.get_namespace()
    ent = namespace.get_named_entity(expr.name) if namespace is not None else None
    if ent is None:
        raise ExpError(f"Could not find entity: {expr.name}", pos=expr.pos)
    return ExpResult.entity(ent)


def _interpret_output_ref(expr: OutputRef, ctx: EvalContext) -> ExpResult:
    from simkeys.core.entity import Entity

    target = evaluate(expr.target, ctx)
    if target.kind != ResultKind.ENTITY:
        raise ExpError(
            f"Expected an entity before '.{expr.name}', received: {target.type_name()}",
            pos=expr.pos,
        )
    ent = target.value
    if ent is None:
        raise ExpError("Null entity in expression chain", pos=expr.pos)
    if not isinstance(ent, Entity):
        raise ExpError(
            f"Expected an entity before '.{expr.name}', received: {type(ent).__name__}",
            pos=expr.pos,
        )

    handle = ent.get_output_handle(expr.name)
    if handle is None:
        raise ExpError(f"Output '{expr.name}' not found on entity '{ent.name}'", pos=expr.pos)

    try:
        return handle.get_result(ctx.sim_time)
    except ExpError as err:
        # Errors from another entity's expression point at this reference
        logger.debug("Output '%s' of '%s' failed: %s", expr.name, ent.name, err.message)
        raise ExpError(err.message, pos=expr.pos) from err


def _interpret_binary(expr: BinaryExpr, ctx: EvalContext) -> ExpResult:
    left = evaluate(expr.left, ctx)

    if expr.op == BinaryOp.AND:
        if not is_true(left, expr.pos):
            return FALSE
        return TRUE if is_true(evaluate(expr.right, ctx), expr.pos) else FALSE

    if expr.op == BinaryOp.OR:
        if is_true(left, expr.pos):
            return TRUE
        return TRUE if is_true(evaluate(expr.right, ctx), expr.pos) else FALSE

    right = evaluate(expr.right, ctx)
    return apply_binary(expr.op, left, right, expr.pos)


def _interpret_func_call(expr: FuncCall, ctx: EvalContext) -> ExpResult:
    spec = get_function(expr.name)
    if spec is None:
        raise ExpError(f'Unknown function: "{expr.name}"', pos=expr.pos)
    args = [evaluate(arg, ctx) for arg in expr.args]
    return spec.call(args, expr.pos)


def _interpret_index(expr: IndexExpr, ctx: EvalContext) -> ExpResult:
    target = evaluate(expr.target, ctx)
    index = evaluate(expr.index, ctx)

    if target.kind == ResultKind.ARRAY:
        if index.kind != ResultKind.NUMBER or not index.value.is_integer():
            raise ExpError(f"Array index must be an integer, received: {index}", pos=expr.pos)
        i = int(index.value)
        if i < 1 or i > len(target.value):
            raise ExpError(
                f"Index out of range: {i} (array size is {len(target.value)})", pos=expr.pos
            )
        return target.value[i - 1]

    if target.kind == ResultKind.MAP:
        if index.kind != ResultKind.STRING:
            raise ExpError(f"Map key must be a string, received: {index}", pos=expr.pos)
        if index.value not in target.value:
            raise ExpError(f'Key not found: "{index.value}"', pos=expr.pos)
        return target.value[index.value]

    raise ExpError(f"Can not index a value of type {target.type_name()}", pos=expr.pos)
