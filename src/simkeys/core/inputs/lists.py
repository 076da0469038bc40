"""
List-valued input kinds.

Flat lists take one token per element (``1 2 3``, ``a b c``). Lists of
compound values take one brace group per element (``{ red } { 0 0 255 }``).
``min_count`` and ``max_count`` bound the number of elements.
"""

from __future__ import annotations

import logging
import math
import sys
from typing import TYPE_CHECKING, Any, TypeVar

from simkeys.core.errors import (
    INP_ERR_APOSTROPHE,
    INP_ERR_ELEMENT,
    INP_ERR_NOTUNIQUE,
    INP_ERR_RANGECOUNT,
    INP_ERR_RANGECOUNTMIN,
    InputError,
)
from simkeys.core.inputs.base import BRACE_SEPARATOR, Input, assert_count_range
from simkeys.core.inputs.parsing import (
    Colour,
    format_colour,
    parse_colour,
    parse_doubles,
    parse_entity_list,
    parse_integer,
    parse_interface_entity,
)
from simkeys.core.inputs.scalars import (
    Vec3d,
    format_vec3d,
    format_with_unit,
    parse_vec3d,
)
from simkeys.core.ir.results import format_number
from simkeys.core.keyword_index import KeywordIndex, format_tokens
from simkeys.core.units import DIMENSIONLESS, UnitType, get_unit

if TYPE_CHECKING:
    from simkeys.core.entity import Entity

logger = logging.getLogger(__name__)

T = TypeVar("T")


def check_element_count(n: int, min_count: int, max_count: int, kw: KeywordIndex) -> None:
    if min_count <= n <= max_count:
        return
    if max_count >= sys.maxsize:
        raise InputError(INP_ERR_RANGECOUNTMIN.format(min_count, kw.arg_string()), kw.context)
    raise InputError(INP_ERR_RANGECOUNT.format(min_count, max_count, kw.arg_string()), kw.context)


def parse_groups(kw: KeywordIndex, parse_one: Any) -> list[Any]:
    """Apply ``parse_one`` to every brace group, naming the failing element."""
    values = []
    for i, group in enumerate(kw.sub_args(), start=1):
        try:
            values.append(parse_one(group))
        except InputError as err:
            raise InputError(
                INP_ERR_ELEMENT.format(i, err.message), kw.context, err.exp_error
            ) from err
    return values


class ListInput(Input[list[T]]):
    """Base for inputs holding a list of elements."""

    return_type = list

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: list[T] | None = None,
        min_count: int = 0,
        max_count: int = sys.maxsize,
    ) -> None:
        super().__init__(keyword, category, default_value)
        self.min_count = min_count
        self.max_count = max_count

    def get_list_size(self) -> int:
        return len(self.get_value() or [])

    def format_element(self, value: T) -> str:
        return str(value)

    def format_value(self, value: list[T] | None) -> str:
        if value is None:
            return ""
        return " ".join(self.format_element(v) for v in value)


class IntegerListInput(ListInput[int]):
    valid_input_desc = "A list of integers"

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: list[int] | None = None,
        min_value: int | None = None,
        max_value: int | None = None,
        min_count: int = 0,
        max_count: int = sys.maxsize,
    ) -> None:
        super().__init__(keyword, category, default_value, min_count, max_count)
        self.min_value = min_value
        self.max_value = max_value

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count_range(kw, self.min_count, self.max_count)
        self.set_value([parse_integer(tok, self.min_value, self.max_value) for tok in kw])


class ValueListInput(ListInput[float]):
    """Numbers sharing one trailing unit, stored in SI units."""

    valid_input_desc = "A list of numbers followed by a unit"

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: list[float] | None = None,
        unit_type: UnitType = DIMENSIONLESS,
        min_value: float = -math.inf,
        max_value: float = math.inf,
        min_count: int = 0,
        max_count: int = sys.maxsize,
    ) -> None:
        super().__init__(keyword, category, default_value, min_count, max_count)
        self.unit_type = unit_type
        self.min_value = min_value
        self.max_value = max_value

    def get_unit_type(self) -> UnitType:
        return self.unit_type

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        values = parse_doubles(kw, self.min_value, self.max_value, self.unit_type)
        check_element_count(len(values), self.min_count, self.max_count, kw)
        self.set_value(values)

    def format_value(self, value: list[float] | None) -> str:
        if not value:
            return ""
        return format_with_unit(" ".join(format_number(v) for v in value), self.unit_type)


class StringListInput(ListInput[str]):
    valid_input_desc = "A list of strings"

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: list[str] | None = None,
        choices: list[str] | None = None,
        min_count: int = 0,
        max_count: int = sys.maxsize,
    ) -> None:
        super().__init__(keyword, category, default_value, min_count, max_count)
        self.choices = choices

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count_range(kw, self.min_count, self.max_count)
        values = list(kw.args)
        for tok in values:
            if "'" in tok:
                raise InputError(INP_ERR_APOSTROPHE.format(tok), kw.context)
        if self.choices is not None:
            for tok in values:
                if tok not in self.choices:
                    raise InputError(f"Expected one of {self.choices}, received: {tok}", kw.context)
        self.set_value(values)

    def format_value(self, value: list[str] | None) -> str:
        if value is None:
            return ""
        return format_tokens(value)

    def get_valid_options(self, this_ent: Entity | None = None) -> list[str] | None:
        return None if self.choices is None else list(self.choices)


class ColourListInput(ListInput[Colour]):
    valid_input_desc = "A list of colours, each enclosed in braces"

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        values = parse_groups(kw, parse_colour)
        check_element_count(len(values), self.min_count, self.max_count, kw)
        self.set_value(values)

    def format_value(self, value: list[Colour] | None) -> str:
        if value is None:
            return ""
        return BRACE_SEPARATOR.join(f"{{ {format_colour(c)} }}" for c in value)


class Vec3dListInput(ListInput[Vec3d]):
    """Vectors in braces with an optional shared unit: ``{ 0 0 0 } { 1 2 0 } m``."""

    valid_input_desc = "A list of vectors, each enclosed in braces, followed by a unit"

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: list[Vec3d] | None = None,
        unit_type: UnitType = DIMENSIONLESS,
        min_count: int = 0,
        max_count: int = sys.maxsize,
    ) -> None:
        super().__init__(keyword, category, default_value, min_count, max_count)
        self.unit_type = unit_type

    def get_unit_type(self) -> UnitType:
        return self.unit_type

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        args = list(kw.args)
        unit: list[str] = []
        if args and args[-1] != "}" and get_unit(args[-1]) is not None:
            unit = [args.pop()]
        groups = KeywordIndex(kw.keyword, args, kw.context)

        def parse_one(group: KeywordIndex) -> Vec3d:
            return parse_vec3d(KeywordIndex(kw.keyword, [*group.args, *unit]), self.unit_type)

        values = parse_groups(groups, parse_one)
        check_element_count(len(values), self.min_count, self.max_count, kw)
        self.set_value(values)

    def format_value(self, value: list[Vec3d] | None) -> str:
        if value is None:
            return ""
        groups = BRACE_SEPARATOR.join(f"{{ {format_vec3d(v, DIMENSIONLESS)} }}" for v in value)
        return format_with_unit(groups, self.unit_type) if value else ""


# ---------------------------------------------------------------------------
# Entity lists
# ---------------------------------------------------------------------------


def _names(ents: list[Any]) -> str:
    return " ".join(ent.name for ent in ents)


class EntityListInput(ListInput[Any]):
    """Entities of one class; group names expand to their members."""

    def __init__(
        self,
        keyword: str,
        category: str,
        klass: type,
        default_value: list[Any] | None = None,
        unique: bool = True,
        min_count: int = 0,
        max_count: int = sys.maxsize,
    ) -> None:
        super().__init__(keyword, category, default_value, min_count, max_count)
        self.klass = klass
        self.unique = unique

    def get_valid_input_desc(self) -> str:
        return f"A list of {self.klass.__name__} entities"

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        values = parse_entity_list(this_ent, kw.args, self.klass, self.unique)
        check_element_count(len(values), self.min_count, self.max_count, kw)
        self.set_value(values)

    def format_element(self, value: Any) -> str:
        return value.name

    def get_valid_options(self, this_ent: Entity | None = None) -> list[str] | None:
        namespace = getattr(this_ent, "namespace", None)
        if namespace is None:
            return []
        return sorted(ent.name for ent in namespace.get_entities(self.klass))

    def remove_references(self, ent: Entity) -> bool:
        if self.is_default or not self.value or ent not in self.value:
            return False
        self.set_value([v for v in self.value if v is not ent])
        return True


class InterfaceEntityListInput(ListInput[Any]):
    """Entities implementing an interface, in any order of their classes."""

    def __init__(
        self,
        keyword: str,
        category: str,
        interface: type,
        default_value: list[Any] | None = None,
        unique: bool = True,
        min_count: int = 0,
        max_count: int = sys.maxsize,
    ) -> None:
        super().__init__(keyword, category, default_value, min_count, max_count)
        self.interface = interface
        self.unique = unique

    def get_valid_input_desc(self) -> str:
        return f"A list of entities implementing {self.interface.__name__}"

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count_range(kw, self.min_count, self.max_count)
        values: list[Any] = []
        for name in kw:
            ent = parse_interface_entity(this_ent, name, self.interface)
            if self.unique and ent in values:
                raise InputError(INP_ERR_NOTUNIQUE.format(ent.name), kw.context)
            values.append(ent)
        self.set_value(values)

    def format_element(self, value: Any) -> str:
        return value.name

    def remove_references(self, ent: Entity) -> bool:
        if self.is_default or not self.value or ent not in self.value:
            return False
        self.set_value([v for v in self.value if v is not ent])
        return True


class EntityListListInput(ListInput[list[Any]]):
    """Lists of entities, one brace group per inner list: ``{ A B } { C }``."""

    def __init__(
        self,
        keyword: str,
        category: str,
        klass: type,
        default_value: list[list[Any]] | None = None,
        unique: bool = True,
        min_count: int = 0,
        max_count: int = sys.maxsize,
    ) -> None:
        super().__init__(keyword, category, default_value, min_count, max_count)
        self.klass = klass
        self.unique = unique

    def get_valid_input_desc(self) -> str:
        return f"Lists of {self.klass.__name__} entities, each enclosed in braces"

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        def parse_one(group: KeywordIndex) -> list[Any]:
            return parse_entity_list(this_ent, group.args, self.klass, self.unique)

        values = parse_groups(kw, parse_one)
        check_element_count(len(values), self.min_count, self.max_count, kw)
        self.set_value(values)

    def format_value(self, value: list[list[Any]] | None) -> str:
        if value is None:
            return ""
        return BRACE_SEPARATOR.join(f"{{ {_names(inner)} }}" for inner in value)

    def remove_references(self, ent: Entity) -> bool:
        if self.is_default or not self.value:
            return False
        changed = False
        new_value = []
        for inner in self.value:
            if ent in inner:
                inner = [v for v in inner if v is not ent]
                changed = True
            new_value.append(inner)
        if changed:
            self.set_value(new_value)
        return changed


class KeyListInput(Input[dict[Any, list[Any]]]):
    """
    Entity lists looked up by a key entity.

    Each brace group is ``{ Key V1 V2 }`` for one key, or ``{ V1 V2 }`` for
    keys without an entry of their own. ``++`` and ``--`` after the key
    (or as the first token of a keyless group) add to and remove from the
    existing list instead of replacing it.
    """

    valid_input_desc = "Groups of { key value1 value2 ... }"
    return_type = dict

    def __init__(
        self,
        keyword: str,
        category: str,
        key_class: type,
        value_class: type,
        default_value: list[Any] | None = None,
    ) -> None:
        super().__init__(keyword, category, None)
        self.key_class = key_class
        self.value_class = value_class
        self.no_key_default = list(default_value or [])
        self.no_key_value = list(self.no_key_default)
        self.value = {}

    def get_value(self) -> dict[Any, list[Any]]:
        return dict(self.value or {})

    def get_value_for(self, key: Any) -> list[Any]:
        """The list for ``key``, or the keyless list when it has none."""
        values = (self.value or {}).get(key)
        if values is None:
            return list(self.no_key_value)
        return list(values)

    def reset(self) -> None:
        super().reset()
        self.value = {}
        self.no_key_value = list(self.no_key_default)

    def copy_from(self, other: Input[dict[Any, list[Any]]]) -> None:
        super().copy_from(other)
        self.value = dict(other.value or {})
        if isinstance(other, KeyListInput):
            self.no_key_value = list(other.no_key_value)

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        mapping = dict(self.value or {})
        no_key_value = list(self.no_key_value)
        for group in kw.sub_args():
            tokens = list(group.args)
            if not tokens:
                continue
            key = self._try_key(this_ent, tokens[0])
            if key is None:
                no_key_value = self._apply(this_ent, no_key_value, tokens)
            else:
                mapping[key] = self._apply(this_ent, mapping.get(key, []), tokens[1:])
        self.value = mapping
        self.no_key_value = no_key_value
        self.is_default = False

    def _try_key(self, this_ent: Entity | None, name: str) -> Any:
        namespace = getattr(this_ent, "namespace", None)
        ent = None if namespace is None else namespace.get_named_entity(name)
        if ent is None or not isinstance(ent, self.key_class):
            return None
        return ent

    def _apply(self, this_ent: Entity | None, current: list[Any], tokens: list[str]) -> list[Any]:
        op = tokens[0] if tokens else ""
        if op == "++":
            values = list(current)
            for val in parse_entity_list(this_ent, tokens[1:], self.value_class, True):
                if val in values:
                    raise InputError(INP_ERR_NOTUNIQUE.format(val.name))
                values.append(val)
            return values
        if op == "--":
            values = list(current)
            for val in parse_entity_list(this_ent, tokens[1:], self.value_class, True):
                if val not in values:
                    logger.warning("Could not remove %s from %s", val.name, self.keyword)
                    continue
                values.remove(val)
            return values
        return parse_entity_list(this_ent, tokens, self.value_class, True)

    def format_value(self, value: dict[Any, list[Any]] | None) -> str:
        groups = []
        if self.no_key_value:
            groups.append(f"{{ {_names(self.no_key_value)} }}")
        for key, values in (value or {}).items():
            groups.append(f"{{ {' '.join([key.name, *(v.name for v in values)])} }}")
        return BRACE_SEPARATOR.join(groups)

    def get_value_string(self) -> str:
        if self.is_default:
            return ""
        return self.format_value(self.value)

    def remove_references(self, ent: Entity) -> bool:
        changed = False
        mapping = dict(self.value or {})
        if ent in mapping:
            del mapping[ent]
            changed = True
        for key, values in mapping.items():
            if ent in values:
                mapping[key] = [v for v in values if v is not ent]
                changed = True
        if ent in self.no_key_value:
            self.no_key_value = [v for v in self.no_key_value if v is not ent]
            changed = True
        self.value = mapping
        return changed
