"""
User-defined attributes and custom outputs.

    AttributeDefinitionList { { Count 0 } { Length 2.5 m } { Label '"none"' } }
    CustomOutputList { { Doubled '2 * this.Length' m } }

Both inputs replace the entity's complete set of handles each time they are
parsed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from simkeys.core.errors import ExpError, InputError, wrap_exp_error
from simkeys.core.expression_lang.validator import infer_unit_type
from simkeys.core.inputs.base import BRACE_SEPARATOR, Input, assert_count_range
from simkeys.core.inputs.lists import parse_groups
from simkeys.core.inputs.parsing import (
    parse_checked_expression,
    parse_doubles,
    parse_unit_type,
    split_unit_suffix,
)
from simkeys.core.ir.results import ExpResult
from simkeys.core.keyword_index import KeywordIndex, add_quotes, needs_quoting
from simkeys.core.units import DIMENSIONLESS, UnitType, get_unit
from simkeys.core.values.handles import AttributeHandle, ExpressionHandle

if TYPE_CHECKING:
    from simkeys.core.entity import Entity

logger = logging.getLogger(__name__)


def _require_entity(this_ent: Entity | None, keyword: str) -> Entity:
    if this_ent is None:
        raise InputError(f"{keyword} can only be set on an entity")
    return this_ent


def _check_new_name(this_ent: Entity, name: str, seen: set[str]) -> None:
    from simkeys.core.entity import is_valid_name

    if not is_valid_name(name):
        raise InputError(f"Invalid name: '{name}'")
    if name in seen:
        raise InputError(f"Duplicate name: '{name}'")
    if this_ent.is_builtin_output(name):
        raise InputError(f"'{name}' is already an output of {this_ent.name}")


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _quote(text: str) -> str:
    return add_quotes(text) if needs_quoting(text) else text


class AttributeDefinitionListInput(Input[list[AttributeHandle]]):
    """``{ name value [unit] }`` groups, each defining one attribute."""

    valid_input_desc = "Groups of { name value [unit] }"
    return_type = list

    def __init__(self, keyword: str, category: str) -> None:
        super().__init__(keyword, category, [])

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        ent = _require_entity(this_ent, self.keyword)
        seen: set[str] = set()

        def parse_one(group: KeywordIndex) -> AttributeHandle:
            assert_count_range(group, 2, 3)
            name = group.get_arg(0)
            _check_new_name(ent, name, seen)
            if ent.has_output(name) and not ent.has_attribute(name):
                raise InputError(f"'{name}' is already an output of {ent.name}")
            seen.add(name)
            return self._parse_definition(ent, name, group.slice(1))

        handles = parse_groups(kw, parse_one)
        for handle in handles:
            if ent.has_attribute(handle.name):
                logger.debug("Redefining attribute %s.%s", ent.name, handle.name)
        ent.set_attribute_handles(handles)
        self.set_value(handles)

    def _parse_definition(self, ent: Entity, name: str, kw: KeywordIndex) -> AttributeHandle:
        first = kw.get_arg(0)
        if kw.num_args() == 2:
            unit = get_unit(kw.get_arg(1))
            if unit is None:
                raise InputError(f"Could not find a unit named: {kw.get_arg(1)}")
            value = parse_doubles(kw, unit_type=unit.unit_type)[0]
            return AttributeHandle(ent, name, unit.unit_type, ExpResult.number(value, unit.unit_type))

        number, suffix = split_unit_suffix(first)
        if suffix is not None and _is_number(number):
            unit = get_unit(suffix)
            if unit is None:
                raise InputError(f"Could not find a unit named: {suffix}")
            value = parse_doubles(kw, unit_type=unit.unit_type)[0]
            return AttributeHandle(ent, name, unit.unit_type, ExpResult.number(value, unit.unit_type))

        if _is_number(first):
            value = parse_doubles(kw)[0]
            return AttributeHandle(ent, name, DIMENSIONLESS, ExpResult.number(value))

        exp = parse_checked_expression(ent, first)
        try:
            unit_type = infer_unit_type(exp, ent) or DIMENSIONLESS
        except ExpError as err:
            raise wrap_exp_error(err) from err
        return AttributeHandle(ent, name, unit_type, expression=exp)

    def format_value(self, value: list[AttributeHandle] | None) -> str:
        if not value:
            return ""
        return BRACE_SEPARATOR.join(f"{{ {_format_attribute(h)} }}" for h in value)


def _format_attribute(handle: AttributeHandle) -> str:
    if handle.expression is not None:
        return f"{handle.name} {_quote(handle.expression.source)}"
    return f"{handle.name} {_quote(str(handle.get_result(0.0)))}"


class NamedExpressionListInput(Input[list[ExpressionHandle]]):
    """``{ name 'expression' [unit type or unit] }`` groups, each defining a custom output."""

    valid_input_desc = "Groups of { name 'expression' [unit type] }"
    return_type = list

    def __init__(self, keyword: str, category: str) -> None:
        super().__init__(keyword, category, [])

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        ent = _require_entity(this_ent, self.keyword)
        seen: set[str] = set()

        def parse_one(group: KeywordIndex) -> ExpressionHandle:
            assert_count_range(group, 2, 3)
            name = group.get_arg(0)
            _check_new_name(ent, name, seen)
            if ent.has_attribute(name):
                raise InputError(f"'{name}' is already an attribute of {ent.name}")
            seen.add(name)
            unit_type = DIMENSIONLESS
            if group.num_args() == 3:
                unit_type = _parse_unit_or_type(group.get_arg(2))
            exp = parse_checked_expression(ent, group.get_arg(1), unit_type)
            return ExpressionHandle(ent, name, exp, unit_type)

        handles = parse_groups(kw, parse_one)
        ent.set_custom_output_handles(handles)
        self.set_value(handles)

    def format_value(self, value: list[ExpressionHandle] | None) -> str:
        if not value:
            return ""
        groups = []
        for handle in value:
            parts = [handle.name, _quote(handle.expression.source)]
            if handle.get_unit_type() != DIMENSIONLESS:
                parts.append(handle.get_unit_type().name)
            groups.append("{ " + " ".join(parts) + " }")
        return BRACE_SEPARATOR.join(groups)


def _parse_unit_or_type(token: str) -> UnitType:
    unit = get_unit(token)
    if unit is not None:
        return unit.unit_type
    return parse_unit_type(token)
