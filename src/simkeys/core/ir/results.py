"""
Expression result values.

Every expression evaluates to an ExpResult: a number with a unit type, a
string, an entity reference (``None`` is the null entity), an array or a
string-keyed map. Results are immutable.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, StrEnum
from types import MappingProxyType
from typing import Any

from simkeys.core.errors import ExpError
from simkeys.core.units import DIMENSIONLESS, UnitType

POSITIVE_INFINITY = "Infinity"
NEGATIVE_INFINITY = "-Infinity"


class ResultKind(StrEnum):
    NUMBER = "number"
    STRING = "string"
    ENTITY = "entity"
    ARRAY = "array"
    MAP = "map"


def format_number(value: float) -> str:
    """Render a float the way inputs accept it back."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return POSITIVE_INFINITY if value > 0 else NEGATIVE_INFINITY
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


@dataclass(frozen=True)
class ExpResult:
    """
    Tagged value produced by expression evaluation.

    Attributes:
        kind: Which variant this result is
        value: float for NUMBER, str for STRING, entity or None for ENTITY,
            tuple of ExpResult for ARRAY, read-only mapping for MAP
        unit_type: Unit type of a NUMBER (dimensionless for other kinds)
    """

    kind: ResultKind
    value: Any
    unit_type: UnitType = field(default=DIMENSIONLESS)

    @classmethod
    def number(cls, value: float, unit_type: UnitType = DIMENSIONLESS) -> ExpResult:
        return cls(ResultKind.NUMBER, float(value), unit_type)

    @classmethod
    def string(cls, value: str) -> ExpResult:
        return cls(ResultKind.STRING, value)

    @classmethod
    def entity(cls, value: Any) -> ExpResult:
        return cls(ResultKind.ENTITY, value)

    @classmethod
    def array(cls, items: Sequence[ExpResult]) -> ExpResult:
        return cls(ResultKind.ARRAY, tuple(items))

    @classmethod
    def mapping(cls, items: Mapping[str, ExpResult]) -> ExpResult:
        return cls(ResultKind.MAP, MappingProxyType(dict(items)))

    @classmethod
    def of(cls, value: Any, unit_type: UnitType = DIMENSIONLESS) -> ExpResult:
        """Wrap a plain Python value returned by an output getter.

        Dates and enum members become strings. Raises ExpError for values that
        have no expression representation.
        """
        from simkeys.core.entity import Entity

        if isinstance(value, ExpResult):
            return value
        if value is None or isinstance(value, Entity):
            return cls.entity(value)
        if isinstance(value, bool):
            return cls.number(1.0 if value else 0.0)
        if isinstance(value, (int, float)):
            return cls.number(value, unit_type)
        if isinstance(value, str):
            return cls.string(value)
        if isinstance(value, datetime):
            return cls.string(value.isoformat())
        if isinstance(value, Enum):
            return cls.string(value.name)
        if isinstance(value, Mapping):
            return cls.mapping({str(k): cls.of(v, unit_type) for k, v in value.items()})
        if isinstance(value, (list, tuple)):
            return cls.array([cls.of(v, unit_type) for v in value])
        raise ExpError(f"Cannot use a value of type {type(value).__name__} in an expression")

    @property
    def is_number(self) -> bool:
        return self.kind == ResultKind.NUMBER

    @property
    def is_null(self) -> bool:
        return self.kind == ResultKind.ENTITY and self.value is None

    def to_python(self) -> Any:
        """Unwrap into plain Python values (floats, strings, entities, tuples, dicts)."""
        if self.kind == ResultKind.ARRAY:
            return tuple(item.to_python() for item in self.value)
        if self.kind == ResultKind.MAP:
            return {k: v.to_python() for k, v in self.value.items()}
        return self.value

    def type_name(self) -> str:
        return self.kind.value.upper()

    def __str__(self) -> str:
        if self.kind == ResultKind.NUMBER:
            text = format_number(self.value)
            if self.unit_type.si_unit:
                return f"{text}[{self.unit_type.si_unit}]"
            return text
        if self.kind == ResultKind.STRING:
            return f'"{self.value}"'
        if self.kind == ResultKind.ENTITY:
            if self.value is None:
                return "null"
            return f"[{getattr(self.value, 'name', self.value)}]"
        if self.kind == ResultKind.ARRAY:
            return "{" + ", ".join(str(item) for item in self.value) + "}"
        return "{" + ", ".join(f'"{k}": {v}' for k, v in self.value.items()) + "}"


NULL_RESULT = ExpResult.entity(None)
