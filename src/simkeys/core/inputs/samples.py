"""
Inputs whose value is computed at simulation time.

SampleInput accepts any of:

    5 m                 a constant with its unit
    5[m]                the same, unit attached
    '[Queue1].Length'   an expression (quoted when it contains spaces)
    Queue1 Length       an output chain
    Generator1          an entity that is itself a SampleProvider

EntityProvInput accepts an entity name or an expression that returns an
entity.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from simkeys.core.errors import (
    INP_ERR_COUNT,
    INP_ERR_ENTCLASS,
    INP_ERR_UNITS,
    ExpError,
    InputError,
)
from simkeys.core.expression_lang.evaluator import evaluate_expression
from simkeys.core.inputs.base import Input, assert_count, assert_count_range
from simkeys.core.inputs.parsing import (
    check_double_range,
    parse_checked_expression,
    parse_doubles,
    parse_output_chain,
)
from simkeys.core.inputs.scalars import format_with_unit
from simkeys.core.ir.expressions import Expression
from simkeys.core.ir.results import ResultKind, format_number
from simkeys.core.keyword_index import KeywordIndex, add_quotes, needs_quoting
from simkeys.core.units import DIMENSIONLESS, USER_SPECIFIED, UnitType
from simkeys.core.values.chain import OutputChain

if TYPE_CHECKING:
    from simkeys.core.entity import Entity


class SampleProvider(ABC):
    """Anything that yields a number with a unit at a given simulation time."""

    @abstractmethod
    def get_next_sample(self, sim_time: float) -> float: ...

    @abstractmethod
    def get_unit_type(self) -> UnitType: ...


class SampleConstant(SampleProvider):
    def __init__(self, value: float, unit_type: UnitType = DIMENSIONLESS) -> None:
        self.value = value
        self.unit_type = unit_type

    def get_next_sample(self, sim_time: float) -> float:
        return self.value

    def get_unit_type(self) -> UnitType:
        return self.unit_type

    def __str__(self) -> str:
        return format_with_unit(format_number(self.value), self.unit_type)


class SampleExpression(SampleProvider):
    """An expression evaluated with ``this`` bound to the owning entity."""

    def __init__(self, expression: Expression, this_ent: Any, unit_type: UnitType) -> None:
        self.expression = expression
        self.this_ent = this_ent
        self.unit_type = unit_type

    def get_next_sample(self, sim_time: float) -> float:
        result = evaluate_expression(self.expression, self.this_ent, sim_time)
        if result.kind != ResultKind.NUMBER:
            raise ExpError(
                f"Expected a number, received a {result.type_name()}", self.expression.source, 0
            )
        if result.unit_type != self.unit_type:
            raise ExpError(
                f"Unit mismatch: expected '{self.unit_type}', received '{result.unit_type}'",
                self.expression.source,
                0,
            )
        return result.value

    def get_unit_type(self) -> UnitType:
        return self.unit_type

    def __str__(self) -> str:
        source = self.expression.source
        return add_quotes(source) if needs_quoting(source) else source


class SampleOutput(SampleProvider):
    """The numeric value at the end of an output chain; NaN when the chain is broken."""

    def __init__(self, chain: OutputChain, unit_type: UnitType) -> None:
        self.chain = chain
        self.unit_type = unit_type

    def get_next_sample(self, sim_time: float) -> float:
        return self.chain.get_value_as_double(sim_time, math.nan)

    def get_unit_type(self) -> UnitType:
        return self.unit_type

    def __str__(self) -> str:
        return " ".join(self.chain.get_tokens())


def parse_sample(
    this_ent: Entity | None,
    kw: KeywordIndex,
    unit_type: UnitType,
    min_value: float = -math.inf,
    max_value: float = math.inf,
) -> SampleProvider:
    """Interpret the tokens of a SampleInput, trying each accepted form in turn."""
    assert_count_range(kw, 1, None)

    if kw.num_args() >= 2:
        try:
            chain = parse_output_chain(this_ent, kw)
        except InputError:
            if kw.num_args() > 2 or unit_type == DIMENSIONLESS:
                raise
        else:
            _check_chain_units(chain, unit_type)
            return SampleOutput(chain, unit_type)

        values = parse_doubles(kw, min_value, max_value, unit_type)
        if len(values) != 1:
            raise InputError(INP_ERR_COUNT.format(1, kw.arg_string()))
        return SampleConstant(values[0], unit_type)

    token = kw.get_arg(0)

    namespace = getattr(this_ent, "namespace", None)
    ent = None if namespace is None else namespace.get_named_entity(token)
    if isinstance(ent, SampleProvider):
        if ent.get_unit_type() not in (USER_SPECIFIED, unit_type):
            raise InputError(INP_ERR_UNITS.format(unit_type, ent.get_unit_type()))
        return ent

    number, _, unit = token.partition("[")
    if _looks_numeric(token) or (unit.endswith("]") and _looks_numeric(number)):
        values = parse_doubles(kw, min_value, max_value, unit_type)
        return SampleConstant(values[0], unit_type)

    exp = parse_checked_expression(this_ent, token, unit_type)
    return SampleExpression(exp, this_ent, unit_type)


def _looks_numeric(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _check_chain_units(chain: OutputChain, unit_type: UnitType) -> None:
    if chain.remaining:
        return
    actual = chain.get_unit_type()
    if actual not in (USER_SPECIFIED, unit_type):
        raise InputError(INP_ERR_UNITS.format(unit_type, actual))


class SampleInput(Input[SampleProvider]):
    """A number with a unit, fixed or computed each time it is sampled."""

    valid_input_desc = "A number with a unit, an expression, an output chain or a sample entity"
    return_type = float

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: SampleProvider | float | None = None,
        unit_type: UnitType = DIMENSIONLESS,
        min_value: float = -math.inf,
        max_value: float = math.inf,
    ) -> None:
        if isinstance(default_value, (int, float)):
            default_value = SampleConstant(float(default_value), unit_type)
        super().__init__(keyword, category, default_value)
        self.unit_type = unit_type
        self.min_value = min_value
        self.max_value = max_value

    def get_unit_type(self) -> UnitType:
        return self.unit_type

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        self.set_value(parse_sample(this_ent, kw, self.unit_type, self.min_value, self.max_value))

    def get_next_sample(self, sim_time: float) -> float:
        """Draw the value at ``sim_time``, checking it against the allowed range."""
        provider = self.get_value()
        if provider is None:
            raise InputError(f"No value has been set for the keyword '{self.keyword}'")
        value = provider.get_next_sample(sim_time)
        if not math.isnan(value):
            check_double_range(value, self.min_value, self.max_value)
        return value

    def get_output_value(self, sim_time: float) -> Any:
        if self.get_value() is None:
            return None
        return self.get_next_sample(sim_time)

    def format_value(self, value: SampleProvider | None) -> str:
        if value is None:
            return ""
        if isinstance(value, SampleProvider) and hasattr(value, "name"):
            return value.name
        return str(value)

    def remove_references(self, ent: Entity) -> bool:
        value = self.value
        if self.is_default or value is None:
            return False
        if value is ent or (isinstance(value, SampleOutput) and value.chain.root is ent):
            self.reset()
            return True
        return False


# ---------------------------------------------------------------------------
# Entity providers
# ---------------------------------------------------------------------------


class EntityProvider(ABC):
    @abstractmethod
    def get_next_entity(self, sim_time: float) -> Any: ...


class EntityProvConstant(EntityProvider):
    def __init__(self, entity: Any) -> None:
        self.entity = entity

    def get_next_entity(self, sim_time: float) -> Any:
        return self.entity

    def __str__(self) -> str:
        return self.entity.name


class EntityProvExpression(EntityProvider):
    """An expression that must evaluate to an entity of ``klass`` (or null)."""

    def __init__(self, expression: Expression, this_ent: Any, klass: type) -> None:
        self.expression = expression
        self.this_ent = this_ent
        self.klass = klass

    def get_next_entity(self, sim_time: float) -> Any:
        result = evaluate_expression(self.expression, self.this_ent, sim_time)
        if result.kind != ResultKind.ENTITY:
            raise ExpError(
                f"Expected an entity, received a {result.type_name()}", self.expression.source, 0
            )
        if result.value is not None and not isinstance(result.value, self.klass):
            raise ExpError(
                f"Expected a {self.klass.__name__}, received: {result.value.name}",
                self.expression.source,
                0,
            )
        return result.value

    def __str__(self) -> str:
        source = self.expression.source
        return add_quotes(source) if needs_quoting(source) else source


class EntityProvInput(Input[EntityProvider]):
    """An entity chosen by name or computed by an expression."""

    def __init__(
        self,
        keyword: str,
        category: str,
        klass: type,
        default_value: EntityProvider | None = None,
    ) -> None:
        super().__init__(keyword, category, default_value)
        self.klass = klass
        self.return_type = klass
        self.invalid_classes: list[type] = []

    def get_valid_input_desc(self) -> str:
        return f"The name of a {self.klass.__name__} or an expression returning one"

    def add_invalid_class(self, klass: type) -> None:
        self.invalid_classes.append(klass)

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count(kw, 1)
        token = kw.get_arg(0)
        namespace = getattr(this_ent, "namespace", None)
        ent = None if namespace is None else namespace.get_named_entity(token)
        if ent is not None:
            if not isinstance(ent, self.klass) or isinstance(ent, tuple(self.invalid_classes)):
                raise InputError(
                    INP_ERR_ENTCLASS.format(self.klass.__name__, ent.name, type(ent).__name__)
                )
            self.set_value(EntityProvConstant(ent))
            return
        exp = parse_checked_expression(this_ent, token)
        self.set_value(EntityProvExpression(exp, this_ent, self.klass))

    def get_next_entity(self, sim_time: float) -> Any:
        provider = self.get_value()
        return None if provider is None else provider.get_next_entity(sim_time)

    def get_output_value(self, sim_time: float) -> Any:
        return self.get_next_entity(sim_time)

    def get_valid_options(self, this_ent: Entity | None = None) -> list[str] | None:
        namespace = getattr(this_ent, "namespace", None)
        if namespace is None:
            return []
        return sorted(
            ent.name
            for ent in namespace.get_entities(self.klass)
            if not isinstance(ent, tuple(self.invalid_classes))
        )

    def format_value(self, value: EntityProvider | None) -> str:
        return "" if value is None else str(value)

    def remove_references(self, ent: Entity) -> bool:
        value = self.value
        if self.is_default or not isinstance(value, EntityProvConstant) or value.entity is not ent:
            return False
        self.reset()
        return True
