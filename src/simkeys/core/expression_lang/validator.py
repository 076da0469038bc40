"""
Parse-time checks for expressions.

``validate_expression`` walks an expression without evaluating it. It
confirms that named entities exist and works out the unit type of the
result wherever that can be known before run time. Unit conflicts found
this way are reported immediately instead of on first evaluation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from simkeys.core.errors import ExpError
from simkeys.core.expression_lang.operators import get_function, unit_mismatch
from simkeys.core.ir.expressions import (
    BinaryExpr,
    BinaryOp,
    CondExpr,
    EntityRef,
    Expr,
    Expression,
    FuncCall,
    Literal,
    OutputRef,
    UnaryExpr,
    UnaryOp,
)
from simkeys.core.ir.results import ResultKind
from simkeys.core.units import (
    DIMENSIONLESS,
    UnitType,
    divide_unit_types,
    multiply_unit_types,
)

_COMPARISON_OPS = frozenset(
    {BinaryOp.EQ, BinaryOp.NE, BinaryOp.LT, BinaryOp.LE, BinaryOp.GT, BinaryOp.GE}
)
_SAME_UNIT_OPS = _COMPARISON_OPS | {BinaryOp.ADD, BinaryOp.SUB, BinaryOp.MOD}
_BOOLEAN_OPS = _COMPARISON_OPS | {BinaryOp.AND, BinaryOp.OR}


class _Validator:
    def __init__(self, this_ent: Any, namespace: Any, strict: bool) -> None:
        self.this_ent = this_ent
        self.namespace = namespace
        self.strict = strict

    def resolve_entity(self, expr: EntityRef) -> Any:
        if expr.name is None:
            if self.this_ent is None:
                raise ExpError("'this' is not defined in this context", pos=expr.pos)
            return self.this_ent
        ent = self.namespace.get_named_entity(expr.name) if self.namespace is not None else None
        if ent is None:
            raise ExpError(f"Could not find entity: {expr.name}", pos=expr.pos)
        return ent

    def unit_of(self, expr: Expr) -> UnitType | None:
        """Unit type of a numeric sub-expression, None when unknown until run time."""
        if isinstance(expr, Literal):
            if expr.result.kind == ResultKind.NUMBER:
                return expr.result.unit_type
            return None

        if isinstance(expr, EntityRef):
            self.resolve_entity(expr)
            return None

        if isinstance(expr, OutputRef):
            return self.unit_of_output(expr)

        if isinstance(expr, UnaryExpr):
            operand = self.unit_of(expr.operand)
            if expr.op == UnaryOp.NOT:
                return DIMENSIONLESS
            return operand

        if isinstance(expr, BinaryExpr):
            return self.unit_of_binary(expr)

        if isinstance(expr, CondExpr):
            self.unit_of(expr.condition)
            then_unit = self.unit_of(expr.then_expr)
            else_unit = self.unit_of(expr.else_expr)
            if then_unit is not None and else_unit is not None and then_unit != else_unit:
                raise unit_mismatch(then_unit, else_unit, expr.pos)
            return then_unit or else_unit

        if isinstance(expr, FuncCall):
            arg_units = [self.unit_of(arg) for arg in expr.args]
            spec = get_function(expr.name)
            return spec.unit_rule(arg_units) if spec is not None else None

        # Arrays, maps and indexing: visit children for reference checks only
        for child in _children(expr):
            self.unit_of(child)
        return None

    def unit_of_output(self, expr: OutputRef) -> UnitType | None:
        if not isinstance(expr.target, EntityRef):
            self.unit_of(expr.target)
            return None

        ent = self.resolve_entity(expr.target)
        handle = ent.get_output_handle(expr.name)
        if handle is None:
            if self.strict:
                raise ExpError(
                    f"Output '{expr.name}' not found on entity '{ent.name}'", pos=expr.pos
                )
            return None
        if not handle.is_numeric():
            return None
        return handle.get_unit_type()

    def unit_of_binary(self, expr: BinaryExpr) -> UnitType | None:
        left = self.unit_of(expr.left)
        right = self.unit_of(expr.right)
        known = left is not None and right is not None

        if expr.op in _SAME_UNIT_OPS and known and left != right:
            raise unit_mismatch(left, right, expr.pos)
        if expr.op in _BOOLEAN_OPS:
            return DIMENSIONLESS
        if expr.op == BinaryOp.POW:
            return DIMENSIONLESS
        if expr.op in (BinaryOp.MUL, BinaryOp.DIV):
            if not known:
                return None
            combine = multiply_unit_types if expr.op == BinaryOp.MUL else divide_unit_types
            unit_type = combine(left, right)
            if unit_type is None:
                raise unit_mismatch(left, right, expr.pos)
            return unit_type
        return left or right


def _children(expr: Expr) -> Sequence[Expr]:
    items = getattr(expr, "items", None)
    if items is not None:
        return items
    entries = getattr(expr, "entries", None)
    if entries is not None:
        return [value for _, value in entries]
    children = (getattr(expr, "target", None), getattr(expr, "index", None))
    return [child for child in children if child is not None]


def infer_unit_type(
    exp: Expression, this_ent: Any = None, namespace: Any = None, strict: bool = False
) -> UnitType | None:
    """Best-effort unit type of an expression's result, None if only known at run time."""
    if namespace is None:
        namespace = getattr(this_ent, "namespace", None)
    try:
        return _Validator(this_ent, namespace, strict).unit_of(exp.root)
    except ExpError as err:
        raise err.with_source(exp.source) from None


def validate_expression(
    exp: Expression,
    this_ent: Any = None,
    unit_type: UnitType | None = None,
    namespace: Any = None,
    strict: bool = False,
) -> None:
    """Check an expression before it is stored.

    Args:
        exp: Parsed expression.
        this_ent: Entity bound to ``this``.
        unit_type: Unit type the result must have, if any.
        namespace: Namespace for ``[Name]`` references.
        strict: Also require every output on a directly named entity to exist.

    Raises:
        ExpError: If a named entity is missing, units conflict, or the result
            unit type differs from ``unit_type``.
    """
    inferred = infer_unit_type(exp, this_ent, namespace, strict)
    if unit_type is not None and inferred is not None and inferred != unit_type:
        raise ExpError(
            f"Unit mismatch: expected '{unit_type}', received '{inferred}'", exp.source, 0
        )
