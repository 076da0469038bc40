"""
Token-level parsers shared by the input kinds.

Each function turns one or more tokens into a typed value or raises
InputError with one of the INP_ERR_* messages.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any, NamedTuple

from simkeys.core.config import get_config
from simkeys.core.errors import (
    INP_ERR_BADCOLOUR,
    INP_ERR_BADDATE,
    INP_ERR_BOOLEAN,
    INP_ERR_DOUBLE,
    INP_ERR_DOUBLERANGE,
    INP_ERR_ENTCLASS,
    INP_ERR_ENTNAME,
    INP_ERR_INTEGER,
    INP_ERR_INTEGERRANGE,
    INP_ERR_INTERFACE,
    INP_ERR_NOTUNIQUE,
    INP_ERR_NOUNITFOUND,
    INP_ERR_UNITNOTFOUND,
    INP_ERR_UNITS,
    ExpError,
    InputError,
    wrap_exp_error,
)
from simkeys.core.expression_lang.parser import parse_expression
from simkeys.core.expression_lang.validator import validate_expression
from simkeys.core.inputs.base import NEGATIVE_INFINITY, POSITIVE_INFINITY, assert_count_range
from simkeys.core.ir.expressions import Expression
from simkeys.core.ir.results import format_number
from simkeys.core.keyword_index import KeywordIndex
from simkeys.core.units import DIMENSIONLESS, Unit, UnitType, get_unit, get_unit_type
from simkeys.core.values.chain import OutputChain

if TYPE_CHECKING:
    from simkeys.core.entity import Entity, EntityNamespace

logger = logging.getLogger(__name__)

_UNIT_SUFFIX = re.compile(r"^(?P<number>[^\[\]]+)\[(?P<unit>[^\[\]]+)\]$")


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


def parse_boolean(token: str) -> bool:
    upper = token.upper()
    if upper in ("TRUE", "T"):
        return True
    if upper in ("FALSE", "F"):
        return False
    raise InputError(INP_ERR_BOOLEAN.format(token))


def parse_integer(token: str, min_value: int | None = None, max_value: int | None = None) -> int:
    try:
        value = int(token)
    except ValueError:
        raise InputError(INP_ERR_INTEGER.format(token)) from None
    below = min_value is not None and value < min_value
    above = max_value is not None and value > max_value
    if below or above:
        raise InputError(
            INP_ERR_INTEGERRANGE.format(
                NEGATIVE_INFINITY if min_value is None else min_value,
                POSITIVE_INFINITY if max_value is None else max_value,
                value,
            )
        )
    return value


def _to_float(token: str) -> float:
    if token == POSITIVE_INFINITY:
        return math.inf
    if token == NEGATIVE_INFINITY:
        return -math.inf
    try:
        value = float(token)
    except ValueError:
        raise InputError(INP_ERR_DOUBLE.format(token)) from None
    if not math.isfinite(value):
        raise InputError(INP_ERR_DOUBLE.format(token))
    return value


def check_double_range(value: float, min_value: float, max_value: float) -> None:
    if value < min_value or value > max_value:
        raise InputError(
            INP_ERR_DOUBLERANGE.format(
                format_number(min_value), format_number(max_value), format_number(value)
            )
        )


def parse_double(
    token: str,
    min_value: float = -math.inf,
    max_value: float = math.inf,
    factor: float = 1.0,
) -> float:
    """Parse a number, scale it by ``factor`` and check it lies in the range."""
    value = _to_float(token) * factor
    check_double_range(value, min_value, max_value)
    return value


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------


def split_unit_suffix(token: str) -> tuple[str, str | None]:
    """Split ``5[m]`` into ``("5", "m")``; plain tokens have no unit."""
    match = _UNIT_SUFFIX.match(token)
    if match is None:
        return token, None
    return match.group("number"), match.group("unit")


def parse_unit(name: str, unit_type: UnitType) -> Unit:
    """Look up a unit and require it to belong to ``unit_type``."""
    unit = get_unit(name)
    if unit is None:
        raise InputError(INP_ERR_UNITNOTFOUND.format(name))
    if unit.unit_type != unit_type:
        raise InputError(INP_ERR_UNITS.format(unit_type, unit.unit_type))
    return unit


def parse_unit_type(name: str) -> UnitType:
    unit_type = get_unit_type(name)
    if unit_type is None:
        raise InputError(f"Could not find a unit type named: {name}")
    return unit_type


def _missing_unit(text: str, unit_type: UnitType) -> float:
    if not get_config().inputs.allow_missing_units:
        raise InputError(INP_ERR_NOUNITFOUND.format(text, unit_type))
    logger.warning("Missing unit for '%s', assuming %s", text, unit_type.si_unit)
    return 1.0


def parse_doubles(
    kw: KeywordIndex,
    min_value: float = -math.inf,
    max_value: float = math.inf,
    unit_type: UnitType = DIMENSIONLESS,
) -> list[float]:
    """Parse numbers with an optional trailing unit token, returned in SI units.

    Each number may instead carry its own unit as a suffix: ``5[m]``.
    """
    tokens = list(kw.args)
    shared_unit: Unit | None = None
    if tokens and get_unit(tokens[-1]) is not None:
        shared_unit = parse_unit(tokens.pop(), unit_type)

    values = []
    for token in tokens:
        number, suffix = split_unit_suffix(token)
        if suffix is not None:
            factor = parse_unit(suffix, unit_type).factor
        elif shared_unit is not None:
            factor = shared_unit.factor
        elif unit_type.si_unit:
            factor = _missing_unit(kw.arg_string(), unit_type)
        else:
            factor = 1.0
        values.append(parse_double(number, min_value, max_value, factor))
    return values


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


def _require_namespace(this_ent: Entity | None) -> EntityNamespace:
    namespace = getattr(this_ent, "namespace", None)
    if namespace is None:
        raise InputError("Entity references require an entity in a namespace")
    return namespace


def parse_entity(this_ent: Entity | None, name: str, klass: type) -> Any:
    """Resolve ``name`` to an entity that is an instance of ``klass``."""
    ent = _require_namespace(this_ent).get_named_entity(name)
    if ent is None:
        raise InputError(INP_ERR_ENTNAME.format(name))
    if not isinstance(ent, klass):
        raise InputError(INP_ERR_ENTCLASS.format(klass.__name__, name, type(ent).__name__))
    return ent


def parse_interface_entity(this_ent: Entity | None, name: str, interface: type) -> Any:
    """Resolve ``name`` to any entity implementing ``interface``."""
    ent = _require_namespace(this_ent).get_named_entity(name)
    if ent is None:
        raise InputError(INP_ERR_ENTNAME.format(name))
    if not isinstance(ent, interface):
        raise InputError(INP_ERR_INTERFACE.format(interface.__name__, name))
    return ent


def parse_entity_list(
    this_ent: Entity | None,
    tokens: Sequence[str],
    klass: type,
    unique: bool = False,
) -> list[Any]:
    """Resolve names to entities; a group name stands for all its members."""
    from simkeys.core.entity import EntityGroup

    namespace = _require_namespace(this_ent)
    result: list[Any] = []
    for name in tokens:
        ent = namespace.get_named_entity(name)
        if ent is None:
            raise InputError(INP_ERR_ENTNAME.format(name))
        expand = isinstance(ent, EntityGroup) and not issubclass(EntityGroup, klass)
        members = ent.get_members() if expand else [ent]
        for member in members:
            if not isinstance(member, klass):
                raise InputError(
                    INP_ERR_ENTCLASS.format(klass.__name__, member.name, type(member).__name__)
                )
            if unique and member in result:
                raise InputError(INP_ERR_NOTUNIQUE.format(member.name))
            result.append(member)
    return result


def parse_output_chain(this_ent: Entity | None, kw: KeywordIndex) -> OutputChain:
    """Parse ``[Ent].Out.Sub`` (one token) or ``Ent Out Sub ...`` (several)."""
    from simkeys.core.entity import Entity

    if kw.num_args() == 1 and kw.get_arg(0).startswith("["):
        match = re.match(r"^\[(?P<ent>[^\[\]]+)\]\.(?P<rest>.+)$", kw.get_arg(0))
        if match is None:
            raise InputError(
                f"Expected an output chain such as [Entity].Output, received: {kw.arg_string()}"
            )
        names = [match.group("ent"), *match.group("rest").split(".")]
    else:
        assert_count_range(kw, 2, None)
        names = list(kw.args)

    if any(not name for name in names):
        raise InputError(f"Empty name in output chain: {kw.arg_string()}")

    root = parse_entity(this_ent, names[0], Entity)
    first_name = names[1]
    first_handle = root.get_output_handle(first_name)
    if first_handle is None:
        raise InputError(f"Output named {first_name} not found for Entity {root.name}")

    remaining = names[2:]
    if remaining:
        return_type = first_handle.get_return_type()
        if return_type is not object and not issubclass(return_type, Entity):
            raise InputError(
                f"Output {first_name} of {root.name} does not return an Entity, "
                f"so {'.'.join(remaining)} can not follow it"
            )
    return OutputChain(root, first_name, first_handle, remaining)


# ---------------------------------------------------------------------------
# Colours and dates
# ---------------------------------------------------------------------------


class Colour(NamedTuple):
    """RGBA colour with components between 0 and 1."""

    r: float
    g: float
    b: float
    a: float = 1.0


COLOURS: dict[str, Colour] = {
    "black": Colour(0.0, 0.0, 0.0),
    "white": Colour(1.0, 1.0, 1.0),
    "red": Colour(1.0, 0.0, 0.0),
    "green": Colour(0.0, 0.5, 0.0),
    "lime": Colour(0.0, 1.0, 0.0),
    "blue": Colour(0.0, 0.0, 1.0),
    "yellow": Colour(1.0, 1.0, 0.0),
    "cyan": Colour(0.0, 1.0, 1.0),
    "magenta": Colour(1.0, 0.0, 1.0),
    "orange": Colour(1.0, 0.647, 0.0),
    "purple": Colour(0.5, 0.0, 0.5),
    "brown": Colour(0.647, 0.165, 0.165),
    "pink": Colour(1.0, 0.753, 0.796),
    "grey": Colour(0.5, 0.5, 0.5),
    "gray": Colour(0.5, 0.5, 0.5),
    "lightgrey": Colour(0.827, 0.827, 0.827),
    "darkgrey": Colour(0.663, 0.663, 0.663),
    "navy": Colour(0.0, 0.0, 0.5),
    "skyblue": Colour(0.529, 0.808, 0.922),
}


def _colour_component(token: str, kw: KeywordIndex) -> float:
    try:
        value = float(token)
    except ValueError:
        raise InputError(INP_ERR_BADCOLOUR.format(kw.arg_string())) from None
    if not 0.0 <= value <= 255.0:
        raise InputError(INP_ERR_BADCOLOUR.format(kw.arg_string()))
    return value


def parse_colour(kw: KeywordIndex) -> Colour:
    """Parse ``name [alpha]`` or ``r g b [a]`` (fractions, or 0-255 when any value exceeds 1)."""
    assert_count_range(kw, 1, 4)
    first = kw.get_arg(0)
    named = COLOURS.get(first.lower())

    if named is not None:
        if kw.num_args() > 2:
            raise InputError(INP_ERR_BADCOLOUR.format(kw.arg_string()))
        alpha = named.a
        if kw.num_args() == 2:
            alpha = _colour_component(kw.get_arg(1), kw)
            if alpha > 1.0:
                alpha /= 255.0
        return named._replace(a=alpha)

    if kw.num_args() < 3:
        raise InputError(INP_ERR_BADCOLOUR.format(kw.arg_string()))
    rgb = [_colour_component(tok, kw) for tok in kw.args[:3]]
    if any(v > 1.0 for v in rgb):
        rgb = [v / 255.0 for v in rgb]
    alpha = 1.0
    if kw.num_args() == 4:
        alpha = _colour_component(kw.get_arg(3), kw)
        if alpha > 1.0:
            alpha /= 255.0
    return Colour(rgb[0], rgb[1], rgb[2], alpha)


def format_colour(colour: Colour) -> str:
    for name, named in COLOURS.items():
        if named[:3] == colour[:3]:
            if colour.a == 1.0:
                return name
            return f"{name} {format_number(colour.a)}"
    parts = [format_number(v) for v in colour[:3]]
    if colour.a != 1.0:
        parts.append(format_number(colour.a))
    return " ".join(parts)


def parse_date(kw: KeywordIndex) -> datetime:
    """Parse an RFC 8601 date: ``2024-01-31``, ``2024-01-31T08:30:00`` or ``2024-01-31 08:30:00``."""
    assert_count_range(kw, 1, 2)
    text = "T".join(kw.args)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise InputError(INP_ERR_BADDATE.format(kw.arg_string())) from None


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


def parse_checked_expression(
    this_ent: Entity | None,
    text: str,
    unit_type: UnitType | None = None,
) -> Expression:
    """Parse and validate an expression, converting ExpError to InputError."""
    try:
        exp = parse_expression(text)
        validate_expression(exp, this_ent, unit_type)
    except ExpError as err:
        raise wrap_exp_error(err) from err
    return exp
