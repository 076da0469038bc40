"""
Value handles: named, typed views of an entity's values.

A handle refers to its entity without owning it. The handle kinds are:

- OutputHandle: a getter registered on the entity class with ``@output``
- AttributeHandle: a user-defined attribute, literal or expression-backed
- ExpressionHandle: a user-defined custom output, always evaluated
- InputHandle: an input's current value exposed as an output

Expression-backed handles can change value between calls with the same
simulation time, so they report ``can_cache() == False`` and sort after all
built-in outputs.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from simkeys.core.errors import ExpError
from simkeys.core.expression_lang.evaluator import evaluate_expression
from simkeys.core.ir.expressions import Expression
from simkeys.core.ir.results import ExpResult, ResultKind
from simkeys.core.units import DIMENSIONLESS, UnitType

if TYPE_CHECKING:
    from simkeys.core.inputs.base import Input

USER_SEQUENCE = sys.maxsize

_KIND_TYPES: dict[ResultKind, type] = {
    ResultKind.NUMBER: float,
    ResultKind.STRING: str,
    ResultKind.ENTITY: object,
    ResultKind.ARRAY: tuple,
    ResultKind.MAP: dict,
}


@dataclass(frozen=True)
class OutputSpec:
    """
    Registration record for one ``@output`` getter.

    Attributes:
        name: Output name used in expressions and output chains
        getter: Unbound method called as ``getter(entity, sim_time)``
        unit_type: Unit type of numeric values
        return_type: Python type of the returned value
        description: Text for reports and help
        reportable: Whether the output appears in reports
        sequence: Sort order among outputs of the same class
        owner: Class that declared the output
    """

    name: str
    getter: Callable[[Any, float], Any]
    unit_type: UnitType = DIMENSIONLESS
    return_type: type = float
    description: str = ""
    reportable: bool = False
    sequence: int = 0
    owner: type | None = None


def output(
    name: str,
    *,
    unit_type: UnitType = DIMENSIONLESS,
    return_type: type = float,
    description: str = "",
    reportable: bool = False,
    sequence: int = 0,
) -> Callable[[Callable[[Any, float], Any]], Callable[[Any, float], Any]]:
    """Register a method ``(self, sim_time) -> value`` as a named output.

    Example:
        class Queue(Entity):
            @output("QueueLength", description="Number of entities waiting")
            def get_queue_length(self, sim_time: float) -> int:
                return len(self.items)
    """

    def decorator(func: Callable[[Any, float], Any]) -> Callable[[Any, float], Any]:
        func._output_spec = OutputSpec(  # type: ignore[attr-defined]
            name=name,
            getter=func,
            unit_type=unit_type,
            return_type=return_type,
            description=description,
            reportable=reportable,
            sequence=sequence,
        )
        return func

    return decorator


class ValueHandle(ABC):
    """Common contract of everything an expression can read from an entity."""

    def __init__(self, ent: Any) -> None:
        self.ent = ent

    @abstractmethod
    def get_name(self) -> str: ...

    @abstractmethod
    def get_result(self, sim_time: float) -> ExpResult:
        """The value at ``sim_time`` as an expression result."""

    def get_value(self, sim_time: float, klass: type | None = None) -> Any:
        """The value at ``sim_time`` as a plain Python value.

        Raises:
            ExpError: If ``klass`` is given and the value is not an instance of it.
        """
        value = self.get_result(sim_time).to_python()
        return self._check_class(value, klass)

    def _check_class(self, value: Any, klass: type | None) -> Any:
        if klass is not None and value is not None and not isinstance(value, klass):
            raise ExpError(
                f"Output '{self.get_name()}' returned a {type(value).__name__}, "
                f"expected a {klass.__name__}"
            )
        return value

    def get_value_as_double(self, sim_time: float, default: float) -> float:
        result = self.get_result(sim_time)
        if result.kind != ResultKind.NUMBER:
            return default
        return result.value

    def get_unit_type(self) -> UnitType:
        return DIMENSIONLESS

    def get_return_type(self) -> type:
        return float

    def is_numeric(self) -> bool:
        rt = self.get_return_type()
        return issubclass(rt, (int, float)) and rt is not bool

    def get_description(self) -> str:
        return ""

    def is_reportable(self) -> bool:
        return False

    def get_sequence(self) -> int:
        return USER_SEQUENCE

    def can_cache(self) -> bool:
        return True

    def __repr__(self) -> str:
        owner = getattr(self.ent, "name", self.ent)
        return f"{type(self).__name__}({owner}.{self.get_name()})"


class OutputHandle(ValueHandle):
    """A registered ``@output`` getter bound to one entity."""

    def __init__(self, ent: Any, spec: OutputSpec) -> None:
        super().__init__(ent)
        self.spec = spec

    def get_name(self) -> str:
        return self.spec.name

    def get_result(self, sim_time: float) -> ExpResult:
        return ExpResult.of(self.spec.getter(self.ent, sim_time), self.spec.unit_type)

    def get_value(self, sim_time: float, klass: type | None = None) -> Any:
        return self._check_class(self.spec.getter(self.ent, sim_time), klass)

    def get_unit_type(self) -> UnitType:
        return self.spec.unit_type

    def get_return_type(self) -> type:
        return self.spec.return_type

    def get_description(self) -> str:
        return self.spec.description

    def is_reportable(self) -> bool:
        return self.spec.reportable

    def get_sequence(self) -> int:
        return self.spec.sequence


class AttributeHandle(ValueHandle):
    """
    A user-defined attribute.

    Holds a literal value when one has been set; otherwise evaluates its
    expression each time it is read. ``set_value`` replaces the literal and
    the attribute adopts the unit type of the new value.
    """

    def __init__(
        self,
        ent: Any,
        name: str,
        unit_type: UnitType = DIMENSIONLESS,
        value: ExpResult | None = None,
        expression: Expression | None = None,
    ) -> None:
        super().__init__(ent)
        self.name = name
        self._unit_type = unit_type
        self._initial = value
        self._value = value
        self.expression = expression

    def get_name(self) -> str:
        return self.name

    def get_result(self, sim_time: float) -> ExpResult:
        if self._value is not None:
            return self._value
        if self.expression is None:
            raise ExpError(f"Attribute '{self.name}' has no value")
        return evaluate_expression(self.expression, self.ent, sim_time)

    def set_value(self, value: ExpResult) -> None:
        self._value = value
        if value.kind == ResultKind.NUMBER:
            self._unit_type = value.unit_type

    def reset(self) -> None:
        """Restore the value the attribute was defined with."""
        self._value = self._initial
        if self._initial is not None and self._initial.kind == ResultKind.NUMBER:
            self._unit_type = self._initial.unit_type

    def get_unit_type(self) -> UnitType:
        return self._unit_type

    def get_return_type(self) -> type:
        if self._value is None:
            return float
        return _KIND_TYPES[self._value.kind]

    def is_reportable(self) -> bool:
        return True

    def can_cache(self) -> bool:
        return False


class ExpressionHandle(ValueHandle):
    """
    A custom output defined by an expression.

    The result's unit type must equal the declared one; a mismatch is an
    error raised on every evaluation that produces it.
    """

    def __init__(
        self,
        ent: Any,
        name: str,
        expression: Expression,
        unit_type: UnitType = DIMENSIONLESS,
    ) -> None:
        super().__init__(ent)
        self.name = name
        self.expression = expression
        self._unit_type = unit_type

    def get_name(self) -> str:
        return self.name

    def get_result(self, sim_time: float) -> ExpResult:
        result = evaluate_expression(self.expression, self.ent, sim_time)
        if result.kind == ResultKind.NUMBER and result.unit_type != self._unit_type:
            raise ExpError(
                f"Unit mismatch: custom output '{self.name}' expects '{self._unit_type}', "
                f"received '{result.unit_type}'",
                self.expression.source,
                0,
            )
        return result

    def get_unit_type(self) -> UnitType:
        return self._unit_type

    def is_reportable(self) -> bool:
        return True

    def can_cache(self) -> bool:
        return False


class InputHandle(ValueHandle):
    """An input's current value, readable like an output."""

    def __init__(self, ent: Any, inp: Input) -> None:
        super().__init__(ent)
        self.input = inp

    def get_name(self) -> str:
        return self.input.keyword

    def get_result(self, sim_time: float) -> ExpResult:
        return ExpResult.of(self.input.get_output_value(sim_time), self.get_unit_type())

    def get_value(self, sim_time: float, klass: type | None = None) -> Any:
        return self._check_class(self.input.get_output_value(sim_time), klass)

    def get_unit_type(self) -> UnitType:
        return self.input.get_unit_type()

    def get_return_type(self) -> type:
        return self.input.return_type

    def get_description(self) -> str:
        return self.input.description
