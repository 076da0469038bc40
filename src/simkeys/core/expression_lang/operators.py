"""
Operator and built-in function implementations.

Every operator checks the kinds and unit types of its operands and raises
ExpError (anchored at ``pos``) when they do not fit. Functions are listed in
FUNCTIONS with their argument-count bounds, which the parser checks, and a
unit rule used by the validator.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from simkeys.core.errors import ExpError
from simkeys.core.ir.expressions import BinaryOp, UnaryOp
from simkeys.core.ir.results import ExpResult, ResultKind
from simkeys.core.units import (
    ANGLE,
    DIMENSIONLESS,
    UnitType,
    divide_unit_types,
    multiply_unit_types,
)

TRUE = ExpResult.number(1.0)
FALSE = ExpResult.number(0.0)


def _bool(value: bool) -> ExpResult:
    return TRUE if value else FALSE


def unit_mismatch(a: UnitType, b: UnitType, pos: int) -> ExpError:
    return ExpError(f"Unit mismatch: '{a}' and '{b}' are not compatible", pos=pos)


def _require_number(res: ExpResult, what: str, pos: int) -> None:
    if res.kind != ResultKind.NUMBER:
        raise ExpError(f"{what} requires a number, received: {res.type_name()}", pos=pos)


def _require_numbers(op: BinaryOp, left: ExpResult, right: ExpResult, pos: int) -> None:
    if left.kind != ResultKind.NUMBER or right.kind != ResultKind.NUMBER:
        raise ExpError(
            f"Operator '{op.value}' can not be applied to {left.type_name()} and {right.type_name()}",
            pos=pos,
        )


def _require_same_unit(left: ExpResult, right: ExpResult, pos: int) -> None:
    if left.unit_type != right.unit_type:
        raise unit_mismatch(left.unit_type, right.unit_type, pos)


def is_true(res: ExpResult, pos: int) -> bool:
    """Truth value of a condition: any non-zero number."""
    _require_number(res, "A condition", pos)
    return res.value != 0.0


# ---------------------------------------------------------------------------
# Unary operators
# ---------------------------------------------------------------------------


def apply_unary(op: UnaryOp, operand: ExpResult, pos: int) -> ExpResult:
    _require_number(operand, f"Operator '{op.value}'", pos)
    if op == UnaryOp.NEG:
        return ExpResult.number(-operand.value, operand.unit_type)
    if op == UnaryOp.POS:
        return operand
    return _bool(operand.value == 0.0)


# ---------------------------------------------------------------------------
# Binary operators (&& and || short-circuit in the evaluator)
# ---------------------------------------------------------------------------


def _add(left: ExpResult, right: ExpResult, pos: int) -> ExpResult:
    if left.kind == ResultKind.STRING and right.kind == ResultKind.STRING:
        return ExpResult.string(left.value + right.value)
    _require_numbers(BinaryOp.ADD, left, right, pos)
    _require_same_unit(left, right, pos)
    return ExpResult.number(left.value + right.value, left.unit_type)


def _sub(left: ExpResult, right: ExpResult, pos: int) -> ExpResult:
    _require_numbers(BinaryOp.SUB, left, right, pos)
    _require_same_unit(left, right, pos)
    return ExpResult.number(left.value - right.value, left.unit_type)


def _mul(left: ExpResult, right: ExpResult, pos: int) -> ExpResult:
    _require_numbers(BinaryOp.MUL, left, right, pos)
    unit_type = multiply_unit_types(left.unit_type, right.unit_type)
    if unit_type is None:
        raise unit_mismatch(left.unit_type, right.unit_type, pos)
    return ExpResult.number(left.value * right.value, unit_type)


def _div(left: ExpResult, right: ExpResult, pos: int) -> ExpResult:
    _require_numbers(BinaryOp.DIV, left, right, pos)
    unit_type = divide_unit_types(left.unit_type, right.unit_type)
    if unit_type is None:
        raise unit_mismatch(left.unit_type, right.unit_type, pos)
    if right.value == 0.0:
        if left.value == 0.0 or math.isnan(left.value):
            return ExpResult.number(math.nan, unit_type)
        return ExpResult.number(math.copysign(math.inf, left.value), unit_type)
    return ExpResult.number(left.value / right.value, unit_type)


def _mod(left: ExpResult, right: ExpResult, pos: int) -> ExpResult:
    _require_numbers(BinaryOp.MOD, left, right, pos)
    _require_same_unit(left, right, pos)
    if right.value == 0.0:
        return ExpResult.number(math.nan, left.unit_type)
    return ExpResult.number(math.fmod(left.value, right.value), left.unit_type)


def _pow(left: ExpResult, right: ExpResult, pos: int) -> ExpResult:
    _require_numbers(BinaryOp.POW, left, right, pos)
    if left.unit_type != DIMENSIONLESS or right.unit_type != DIMENSIONLESS:
        raise ExpError(
            f"Operator '^' requires dimensionless values, received: "
            f"'{left.unit_type}' and '{right.unit_type}'",
            pos=pos,
        )
    try:
        value = math.pow(left.value, right.value)
    except OverflowError:
        value = math.inf
    except ValueError:
        value = math.nan
    return ExpResult.number(value)


def _equals(left: ExpResult, right: ExpResult, pos: int) -> bool:
    if left.kind != right.kind:
        raise ExpError(f"Can not compare {left.type_name()} with {right.type_name()}", pos=pos)
    if left.kind == ResultKind.NUMBER:
        _require_same_unit(left, right, pos)
        return left.value == right.value
    if left.kind == ResultKind.ENTITY:
        return left.value is right.value
    return left.value == right.value


def _compare(op: BinaryOp) -> Callable[[ExpResult, ExpResult, int], ExpResult]:
    test: Callable[[float, float], bool] = {
        BinaryOp.LT: lambda a, b: a < b,
        BinaryOp.LE: lambda a, b: a <= b,
        BinaryOp.GT: lambda a, b: a > b,
        BinaryOp.GE: lambda a, b: a >= b,
    }[op]

    def compare(left: ExpResult, right: ExpResult, pos: int) -> ExpResult:
        if left.kind == ResultKind.STRING and right.kind == ResultKind.STRING:
            return _bool(test(left.value, right.value))
        _require_numbers(op, left, right, pos)
        _require_same_unit(left, right, pos)
        return _bool(test(left.value, right.value))

    return compare


BINARY_OPERATORS: dict[BinaryOp, Callable[[ExpResult, ExpResult, int], ExpResult]] = {
    BinaryOp.ADD: _add,
    BinaryOp.SUB: _sub,
    BinaryOp.MUL: _mul,
    BinaryOp.DIV: _div,
    BinaryOp.MOD: _mod,
    BinaryOp.POW: _pow,
    BinaryOp.EQ: lambda a, b, pos: _bool(_equals(a, b, pos)),
    BinaryOp.NE: lambda a, b, pos: _bool(not _equals(a, b, pos)),
    BinaryOp.LT: _compare(BinaryOp.LT),
    BinaryOp.LE: _compare(BinaryOp.LE),
    BinaryOp.GT: _compare(BinaryOp.GT),
    BinaryOp.GE: _compare(BinaryOp.GE),
}


def apply_binary(op: BinaryOp, left: ExpResult, right: ExpResult, pos: int) -> ExpResult:
    """Apply an eager binary operator. ``&&`` and ``||`` short-circuit in the evaluator."""
    return BINARY_OPERATORS[op](left, right, pos)


# ---------------------------------------------------------------------------
# Built-in functions
# ---------------------------------------------------------------------------

FunctionImpl = Callable[[Sequence[ExpResult], int], ExpResult]
UnitRule = Callable[[Sequence[UnitType | None]], UnitType | None]


@dataclass(frozen=True)
class FunctionSpec:
    """
    A built-in function.

    Attributes:
        name: Name used in expressions
        min_args: Fewest arguments accepted
        max_args: Most arguments accepted, None for unbounded
        call: Implementation taking the evaluated arguments and the call position
        unit_rule: Result unit type from argument unit types (None when unknown)
    """

    name: str
    min_args: int
    max_args: int | None
    call: FunctionImpl
    unit_rule: UnitRule


def _first_unit(units: Sequence[UnitType | None]) -> UnitType | None:
    return units[0] if units else None


def _dimensionless(units: Sequence[UnitType | None]) -> UnitType | None:
    return DIMENSIONLESS


def _angle(units: Sequence[UnitType | None]) -> UnitType | None:
    return ANGLE


def _unknown(units: Sequence[UnitType | None]) -> UnitType | None:
    return None


def _number_list(name: str, args: Sequence[ExpResult], pos: int) -> list[ExpResult]:
    """Arguments of max/min style functions; a single array argument is expanded."""
    if len(args) == 1 and args[0].kind == ResultKind.ARRAY:
        args = args[0].value
        if not args:
            raise ExpError(f"Function '{name}' received an empty array", pos=pos)
    for arg in args:
        _require_number(arg, f"Function '{name}'", pos)
        _require_same_unit(args[0], arg, pos)
    return list(args)


def _fn_max(args: Sequence[ExpResult], pos: int) -> ExpResult:
    values = _number_list("max", args, pos)
    return max(values, key=lambda r: r.value)


def _fn_min(args: Sequence[ExpResult], pos: int) -> ExpResult:
    values = _number_list("min", args, pos)
    return min(values, key=lambda r: r.value)


def _fn_index_of_max(args: Sequence[ExpResult], pos: int) -> ExpResult:
    values = _number_list("indexOfMax", args, pos)
    best = max(range(len(values)), key=lambda i: values[i].value)
    return ExpResult.number(best + 1)


def _fn_index_of_min(args: Sequence[ExpResult], pos: int) -> ExpResult:
    values = _number_list("indexOfMin", args, pos)
    best = min(range(len(values)), key=lambda i: values[i].value)
    return ExpResult.number(best + 1)


def _unit_preserving(name: str, func: Callable[[float], float]) -> FunctionImpl:
    def call(args: Sequence[ExpResult], pos: int) -> ExpResult:
        _require_number(args[0], f"Function '{name}'", pos)
        value = args[0].value
        try:
            value = func(value)
        except (OverflowError, ValueError):
            pass  # infinities and NaN round to themselves
        return ExpResult.number(value, args[0].unit_type)

    return call


def _dimensionless_fn(name: str, func: Callable[[float], float]) -> FunctionImpl:
    def call(args: Sequence[ExpResult], pos: int) -> ExpResult:
        arg = args[0]
        _require_number(arg, f"Function '{name}'", pos)
        if arg.unit_type != DIMENSIONLESS:
            raise ExpError(
                f"Function '{name}' requires a dimensionless value, received: '{arg.unit_type}'",
                pos=pos,
            )
        try:
            return ExpResult.number(func(arg.value))
        except ValueError:
            return ExpResult.number(math.nan)
        except OverflowError:
            return ExpResult.number(math.inf)

    return call


def _trig_fn(name: str, func: Callable[[float], float]) -> FunctionImpl:
    def call(args: Sequence[ExpResult], pos: int) -> ExpResult:
        arg = args[0]
        _require_number(arg, f"Function '{name}'", pos)
        if arg.unit_type not in (DIMENSIONLESS, ANGLE):
            raise ExpError(
                f"Function '{name}' requires an angle or dimensionless value, "
                f"received: '{arg.unit_type}'",
                pos=pos,
            )
        return ExpResult.number(func(arg.value))

    return call


def _inverse_trig_fn(name: str, func: Callable[[float], float]) -> FunctionImpl:
    dimensionless = _dimensionless_fn(name, func)

    def call(args: Sequence[ExpResult], pos: int) -> ExpResult:
        return ExpResult.number(dimensionless(args, pos).value, ANGLE)

    return call


def _fn_atan2(args: Sequence[ExpResult], pos: int) -> ExpResult:
    y, x = args
    _require_number(y, "Function 'atan2'", pos)
    _require_number(x, "Function 'atan2'", pos)
    _require_same_unit(y, x, pos)
    return ExpResult.number(math.atan2(y.value, x.value), ANGLE)


def _fn_signum(args: Sequence[ExpResult], pos: int) -> ExpResult:
    _require_number(args[0], "Function 'signum'", pos)
    value = args[0].value
    if math.isnan(value):
        return ExpResult.number(math.nan)
    return ExpResult.number((value > 0) - (value < 0))


def _fn_size(args: Sequence[ExpResult], pos: int) -> ExpResult:
    arg = args[0]
    if arg.kind not in (ResultKind.ARRAY, ResultKind.MAP, ResultKind.STRING):
        raise ExpError(
            f"Function 'size' requires an array, map or string, received: {arg.type_name()}",
            pos=pos,
        )
    return ExpResult.number(len(arg.value))


def _fn_choose(args: Sequence[ExpResult], pos: int) -> ExpResult:
    index = args[0]
    _require_number(index, "Function 'choose'", pos)
    if not index.value.is_integer() or not 1 <= index.value < len(args):
        raise ExpError(
            f"Function 'choose' index must be an integer between 1 and {len(args) - 1}, "
            f"received: {index}",
            pos=pos,
        )
    return args[int(index.value)]


def _fn_not_null(args: Sequence[ExpResult], pos: int) -> ExpResult:
    return _bool(not args[0].is_null)


def _constant(value: float) -> FunctionImpl:
    def call(args: Sequence[ExpResult], pos: int) -> ExpResult:
        return ExpResult.number(value)

    return call


FUNCTIONS: dict[str, FunctionSpec] = {
    spec.name: spec
    for spec in (
        FunctionSpec("max", 1, None, _fn_max, _first_unit),
        FunctionSpec("min", 1, None, _fn_min, _first_unit),
        FunctionSpec("indexOfMax", 1, None, _fn_index_of_max, _dimensionless),
        FunctionSpec("indexOfMin", 1, None, _fn_index_of_min, _dimensionless),
        FunctionSpec("abs", 1, 1, _unit_preserving("abs", abs), _first_unit),
        FunctionSpec("ceil", 1, 1, _unit_preserving("ceil", math.ceil), _first_unit),
        FunctionSpec("floor", 1, 1, _unit_preserving("floor", math.floor), _first_unit),
        FunctionSpec("signum", 1, 1, _fn_signum, _dimensionless),
        FunctionSpec("E", 0, 0, _constant(math.e), _dimensionless),
        FunctionSpec("PI", 0, 0, _constant(math.pi), _dimensionless),
        FunctionSpec("sqrt", 1, 1, _dimensionless_fn("sqrt", math.sqrt), _dimensionless),
        FunctionSpec("exp", 1, 1, _dimensionless_fn("exp", math.exp), _dimensionless),
        FunctionSpec("ln", 1, 1, _dimensionless_fn("ln", math.log), _dimensionless),
        FunctionSpec("log", 1, 1, _dimensionless_fn("log", math.log10), _dimensionless),
        FunctionSpec("sin", 1, 1, _trig_fn("sin", math.sin), _dimensionless),
        FunctionSpec("cos", 1, 1, _trig_fn("cos", math.cos), _dimensionless),
        FunctionSpec("tan", 1, 1, _trig_fn("tan", math.tan), _dimensionless),
        FunctionSpec("asin", 1, 1, _inverse_trig_fn("asin", math.asin), _angle),
        FunctionSpec("acos", 1, 1, _inverse_trig_fn("acos", math.acos), _angle),
        FunctionSpec("atan", 1, 1, _inverse_trig_fn("atan", math.atan), _angle),
        FunctionSpec("atan2", 2, 2, _fn_atan2, _angle),
        FunctionSpec("size", 1, 1, _fn_size, _dimensionless),
        FunctionSpec("choose", 2, None, _fn_choose, _unknown),
        FunctionSpec("notNull", 1, 1, _fn_not_null, _dimensionless),
    )
}


def get_function(name: str) -> FunctionSpec | None:
    return FUNCTIONS.get(name)
