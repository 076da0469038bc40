"""
Base class and count checks for keyword inputs.

Every input kind implements ``parse(this_ent, kw)``: it validates the
keyword's tokens and either replaces the stored value or raises InputError,
leaving the previous value in place. ``get_default_string`` renders the
default in the same syntax ``parse`` accepts.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from simkeys.core.config import get_config
from simkeys.core.errors import (
    INP_ERR_COUNT,
    INP_ERR_EVENCOUNT,
    INP_ERR_MONOTONIC,
    INP_ERR_ODDCOUNT,
    INP_ERR_RANGECOUNT,
    INP_ERR_RANGECOUNTMIN,
    INP_ERR_REQUIRED,
    INP_ERR_SUMTOLERANCE,
    InputError,
)
from simkeys.core.keyword_index import KeywordIndex, format_tokens
from simkeys.core.units import DIMENSIONLESS, UnitType

if TYPE_CHECKING:
    from simkeys.core.entity import Entity

T = TypeVar("T")

POSITIVE_INFINITY = "Infinity"
NEGATIVE_INFINITY = "-Infinity"
SEPARATOR = "  "
BRACE_SEPARATOR = " "


class Input(Generic[T]):
    """
    A typed keyword argument of an entity.

    Attributes:
        keyword: Name the input is set by
        category: Group the keyword is listed under
        default_value: Value used until the input is set
        value: Last successfully parsed value
        is_default: True until a value has been parsed
        edited: True once set after the namespace started recording edits
        hidden: Not shown to users
        required: ``validate`` fails while the input has no value
        output: Expose the value as an output of the entity
    """

    valid_input_desc = "Any value"
    return_type: type = object

    def __init__(self, keyword: str, category: str, default_value: T | None = None) -> None:
        self.keyword = keyword
        self.category = category
        self.default_value = default_value
        self.value: T | None = None
        self.is_default = True
        self.edited = False
        self.hidden = False
        self.required = False
        self.output = False
        self.description = ""
        self.default_text: str | None = None
        self.value_tokens: list[str] | None = None

    # -- Value access --

    def get_value(self) -> T | None:
        if self.is_default:
            return self.default_value
        return self.value

    def get_output_value(self, sim_time: float) -> Any:
        """Value seen through an InputHandle."""
        return self.get_value()

    def get_unit_type(self) -> UnitType:
        return DIMENSIONLESS

    def set_value(self, value: T | None) -> None:
        self.value = value
        self.is_default = False

    def reset(self) -> None:
        self.value = None
        self.is_default = True
        self.edited = False
        self.value_tokens = None

    def copy_from(self, other: Input[T]) -> None:
        self.value = other.value
        self.is_default = other.is_default
        self.value_tokens = None if other.value_tokens is None else list(other.value_tokens)

    # -- Parsing --

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not implement parse()")

    def set_tokens(self, kw: KeywordIndex) -> None:
        """Remember the tokens of the last parse for display."""
        if kw.num_args() > get_config().inputs.max_stored_tokens:
            self.value_tokens = None
            return
        self.value_tokens = list(kw.args)

    def get_value_tokens(self) -> list[str]:
        return list(self.value_tokens or [])

    def get_value_string(self) -> str:
        """The user-entered text, empty while the default applies."""
        if self.is_default:
            return ""
        if self.value_tokens is None:
            return self.format_value(self.value)
        return format_tokens(self.value_tokens)

    def get_default_string(self) -> str:
        if self.default_text is not None:
            return self.default_text
        if self.default_value is None:
            return ""
        return self.format_value(self.default_value)

    def format_value(self, value: T | None) -> str:
        if value is None:
            return ""
        return str(value)

    def get_valid_options(self, this_ent: Entity | None = None) -> list[str] | None:
        """Closed list of accepted values, None if any value of the right type goes."""
        return None

    def get_valid_input_desc(self) -> str:
        return self.valid_input_desc

    def validate(self) -> None:
        if self.required and self.get_value() is None:
            raise InputError(INP_ERR_REQUIRED.format(self.keyword))

    def remove_references(self, ent: Entity) -> bool:
        """Drop references to a deleted entity; True if the value changed."""
        return False

    def is_synonym(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.keyword!r})"


# ---------------------------------------------------------------------------
# Count checks
# ---------------------------------------------------------------------------


def _join_counts(counts: Sequence[int]) -> str:
    if len(counts) == 1:
        return str(counts[0])
    return ", ".join(str(c) for c in counts[:-1]) + f" or {counts[-1]}"


def assert_count(kw: KeywordIndex, *counts: int) -> None:
    """Require the number of arguments to be one of ``counts``."""
    if kw.num_args() in counts:
        return
    raise InputError(INP_ERR_COUNT.format(_join_counts(counts), kw.arg_string()), kw.context)


def assert_count_range(kw: KeywordIndex, min_count: int, max_count: int | None = None) -> None:
    """Require ``min_count <= num_args <= max_count`` (no upper bound for None)."""
    if max_count is not None and max_count >= sys.maxsize:
        max_count = None
    if min_count == max_count:
        assert_count(kw, min_count)
        return
    n = kw.num_args()
    if n >= min_count and (max_count is None or n <= max_count):
        return
    if max_count is None:
        raise InputError(INP_ERR_RANGECOUNTMIN.format(min_count, kw.arg_string()), kw.context)
    raise InputError(
        INP_ERR_RANGECOUNT.format(min_count, max_count, kw.arg_string()), kw.context
    )


def assert_count_even(kw: KeywordIndex) -> None:
    if kw.num_args() % 2 != 0:
        raise InputError(INP_ERR_EVENCOUNT.format(kw.arg_string()), kw.context)


def assert_count_odd(kw: KeywordIndex) -> None:
    if kw.num_args() % 2 != 1:
        raise InputError(INP_ERR_ODDCOUNT.format(kw.arg_string()), kw.context)


def assert_sum_tolerance(values: Sequence[float], total: float, tolerance: float) -> None:
    """Require ``values`` to add up to ``total`` within ``tolerance``."""
    actual = sum(values)
    if abs(actual - total) > tolerance:
        raise InputError(INP_ERR_SUMTOLERANCE.format(total, tolerance, actual))


def assert_monotonic(values: Sequence[float]) -> None:
    """Require ``values`` to be non-decreasing."""
    for prev, cur in zip(values, values[1:]):
        if cur < prev:
            raise InputError(INP_ERR_MONOTONIC.format(list(values)))
