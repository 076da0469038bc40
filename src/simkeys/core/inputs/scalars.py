"""
Single-valued input kinds.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple, TypeVar

from simkeys.core.errors import INP_ERR_APOSTROPHE, INP_ERR_BADCHOICE, INP_ERR_COUNT, InputError
from simkeys.core.inputs.base import SEPARATOR, Input, assert_count, assert_count_range
from simkeys.core.inputs.parsing import (
    COLOURS,
    Colour,
    format_colour,
    parse_boolean,
    parse_colour,
    parse_date,
    parse_doubles,
    parse_integer,
)
from simkeys.core.ir.results import format_number
from simkeys.core.keyword_index import KeywordIndex, add_quotes, needs_quoting
from simkeys.core.units import DIMENSIONLESS, UnitType

if TYPE_CHECKING:
    from simkeys.core.entity import Entity

E = TypeVar("E", bound=Enum)


def format_with_unit(text: str, unit_type: UnitType) -> str:
    if not unit_type.si_unit:
        return text
    return f"{text}{SEPARATOR}{unit_type.si_unit}"


class BooleanInput(Input[bool]):
    valid_input_desc = "TRUE or FALSE"
    return_type = bool

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count(kw, 1)
        self.set_value(parse_boolean(kw.get_arg(0)))

    def format_value(self, value: bool | None) -> str:
        if value is None:
            return ""
        return "TRUE" if value else "FALSE"

    def get_valid_options(self, this_ent: Entity | None = None) -> list[str] | None:
        return ["TRUE", "FALSE"]


class IntegerInput(Input[int]):
    valid_input_desc = "An integer"
    return_type = int

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: int | None = None,
        min_value: int | None = None,
        max_value: int | None = None,
    ) -> None:
        super().__init__(keyword, category, default_value)
        self.min_value = min_value
        self.max_value = max_value

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count(kw, 1)
        self.set_value(parse_integer(kw.get_arg(0), self.min_value, self.max_value))


class ValueInput(Input[float]):
    """A number with a unit, stored in SI units: ``5 km`` or ``5[km]``."""

    valid_input_desc = "A number followed by a unit"
    return_type = float

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: float | None = None,
        unit_type: UnitType = DIMENSIONLESS,
        min_value: float = -math.inf,
        max_value: float = math.inf,
    ) -> None:
        super().__init__(keyword, category, default_value)
        self.unit_type = unit_type
        self.min_value = min_value
        self.max_value = max_value

    def get_unit_type(self) -> UnitType:
        return self.unit_type

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count_range(kw, 1, 2)
        values = parse_doubles(kw, self.min_value, self.max_value, self.unit_type)
        if len(values) != 1:
            raise InputError(INP_ERR_COUNT.format(1, kw.arg_string()), kw.context)
        self.set_value(values[0])

    def format_value(self, value: float | None) -> str:
        if value is None:
            return ""
        return format_with_unit(format_number(value), self.unit_type)


class StringInput(Input[str]):
    """A single string. Apostrophes are rejected, the record syntax can not escape them."""

    valid_input_desc = "A string; quote it if it contains spaces"
    return_type = str

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count(kw, 1)
        value = kw.get_arg(0)
        if "'" in value:
            raise InputError(INP_ERR_APOSTROPHE.format(value), kw.context)
        self.set_value(value)

    def format_value(self, value: str | None) -> str:
        if value is None:
            return ""
        return add_quotes(value) if needs_quoting(value) else value


class StringChoiceInput(Input[str]):
    """One of a fixed list of strings, matched case-sensitively unless told otherwise."""

    return_type = str

    def __init__(
        self,
        keyword: str,
        category: str,
        choices: list[str],
        default_value: str | None = None,
        case_sensitive: bool = True,
    ) -> None:
        super().__init__(keyword, category, default_value)
        self.choices = list(choices)
        self.case_sensitive = case_sensitive

    def get_valid_input_desc(self) -> str:
        return "One of: " + ", ".join(self.choices)

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count(kw, 1)
        token = kw.get_arg(0)
        for choice in self.choices:
            if choice == token or (not self.case_sensitive and choice.upper() == token.upper()):
                self.set_value(choice)
                return
        raise InputError(INP_ERR_BADCHOICE.format(self.choices, token), kw.context)

    def get_valid_options(self, this_ent: Entity | None = None) -> list[str] | None:
        return list(self.choices)


class EnumInput(Input[E]):
    """A member of a Python Enum, given by its name."""

    def __init__(
        self,
        keyword: str,
        category: str,
        enum_cls: type[E],
        default_value: E | None = None,
    ) -> None:
        super().__init__(keyword, category, default_value)
        self.enum_cls = enum_cls
        self.return_type = enum_cls

    def get_valid_input_desc(self) -> str:
        return "One of: " + ", ".join(m.name for m in self.enum_cls)

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count(kw, 1)
        token = kw.get_arg(0)
        member = self.enum_cls.__members__.get(token)
        if member is None:
            names = [m.name for m in self.enum_cls]
            raise InputError(INP_ERR_BADCHOICE.format(names, token), kw.context)
        self.set_value(member)

    def format_value(self, value: E | None) -> str:
        if value is None:
            return ""
        return value.name

    def get_valid_options(self, this_ent: Entity | None = None) -> list[str] | None:
        return [m.name for m in self.enum_cls]


class DateInput(Input[datetime]):
    valid_input_desc = "An RFC8601 date, e.g. 2024-01-31 or 2024-01-31T08:30:00"
    return_type = datetime

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        self.set_value(parse_date(kw))

    def format_value(self, value: datetime | None) -> str:
        if value is None:
            return ""
        return value.isoformat()


class ColourInput(Input[Colour]):
    valid_input_desc = "A colour name, optionally with an alpha, or RGB(A) values"
    return_type = Colour

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        self.set_value(parse_colour(kw))

    def format_value(self, value: Colour | None) -> str:
        if value is None:
            return ""
        return format_colour(value)

    def get_valid_options(self, this_ent: Entity | None = None) -> list[str] | None:
        return sorted(COLOURS)


class Vec3d(NamedTuple):
    x: float
    y: float
    z: float = 0.0


class Vec3dInput(Input[Vec3d]):
    """Up to three numbers sharing an optional trailing unit; missing components are 0."""

    valid_input_desc = "Up to three numbers followed by a unit"
    return_type = Vec3d

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: Vec3d | None = None,
        unit_type: UnitType = DIMENSIONLESS,
        min_value: float = -math.inf,
        max_value: float = math.inf,
    ) -> None:
        super().__init__(keyword, category, default_value)
        self.unit_type = unit_type
        self.min_value = min_value
        self.max_value = max_value

    def get_unit_type(self) -> UnitType:
        return self.unit_type

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        self.set_value(parse_vec3d(kw, self.unit_type, self.min_value, self.max_value))

    def format_value(self, value: Vec3d | None) -> str:
        if value is None:
            return ""
        return format_vec3d(value, self.unit_type)


def parse_vec3d(
    kw: KeywordIndex,
    unit_type: UnitType,
    min_value: float = -math.inf,
    max_value: float = math.inf,
) -> Vec3d:
    assert_count_range(kw, 1, 4)
    values = parse_doubles(kw, min_value, max_value, unit_type)
    if not 1 <= len(values) <= 3:
        raise InputError(INP_ERR_COUNT.format("1, 2 or 3", kw.arg_string()), kw.context)
    values.extend([0.0] * (3 - len(values)))
    return Vec3d(*values)


def format_vec3d(value: Vec3d, unit_type: UnitType) -> str:
    return format_with_unit(" ".join(format_number(v) for v in value), unit_type)
