"""
Inputs that refer to entities, to another entity's keyword, or to an output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

from simkeys.core.errors import INP_ERR_CIRCULAR, InputError
from simkeys.core.inputs.base import Input, assert_count
from simkeys.core.inputs.parsing import parse_entity, parse_interface_entity, parse_output_chain
from simkeys.core.keyword_index import KeywordIndex
from simkeys.core.units import DIMENSIONLESS, UnitType
from simkeys.core.values.chain import OutputChain

if TYPE_CHECKING:
    from simkeys.core.entity import Entity


class EntityInput(Input[Any]):
    """A single entity that is an instance of ``klass``."""

    def __init__(
        self,
        keyword: str,
        category: str,
        klass: type,
        default_value: Any = None,
    ) -> None:
        super().__init__(keyword, category, default_value)
        self.klass = klass
        self.return_type = klass

    def get_valid_input_desc(self) -> str:
        return f"The name of a {self.klass.__name__}"

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count(kw, 1)
        self.set_value(parse_entity(this_ent, kw.get_arg(0), self.klass))

    def format_value(self, value: Any) -> str:
        return "" if value is None else value.name

    def get_valid_options(self, this_ent: Entity | None = None) -> list[str] | None:
        namespace = getattr(this_ent, "namespace", None)
        if namespace is None:
            return []
        return sorted(ent.name for ent in namespace.get_entities(self.klass) if ent is not this_ent)

    def remove_references(self, ent: Entity) -> bool:
        if self.is_default or self.value is not ent:
            return False
        self.reset()
        return True


class InterfaceEntityInput(EntityInput):
    """A single entity of any class that implements ``klass``."""

    def get_valid_input_desc(self) -> str:
        return f"The name of an entity implementing {self.klass.__name__}"

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count(kw, 1)
        self.set_value(parse_interface_entity(this_ent, kw.get_arg(0), self.klass))


class RelativeEntityInput(EntityInput):
    """
    The entity this one is positioned relative to.

    Following the same keyword from the candidate must never lead back to
    the entity being edited.
    """

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        assert_count(kw, 1)
        candidate = parse_entity(this_ent, kw.get_arg(0), self.klass)
        self.check_circular(this_ent, candidate)
        self.set_value(candidate)

    def check_circular(self, this_ent: Entity | None, candidate: Any) -> None:
        seen: set[int] = set()
        current = candidate
        while current is not None and id(current) not in seen:
            if current is this_ent:
                raise InputError(INP_ERR_CIRCULAR.format(this_ent.name))
            seen.add(id(current))
            inp = current.get_input(self.keyword)
            current = inp.get_value() if isinstance(inp, RelativeEntityInput) else None


class KeywordRef(NamedTuple):
    """An entity and one of its inputs."""

    entity: Any
    input: Input


class KeywordInput(Input[KeywordRef]):
    """``<entity> <keyword>``: another entity's input."""

    valid_input_desc = "An entity name followed by one of its keywords"
    return_type = KeywordRef

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        from simkeys.core.entity import Entity

        assert_count(kw, 2)
        ent = parse_entity(this_ent, kw.get_arg(0), Entity)
        inp = ent.get_input(kw.get_arg(1))
        if inp is None:
            raise InputError(f"Keyword {kw.get_arg(1)} could not be found for Entity {ent.name}")
        self.set_value(KeywordRef(ent, inp))

    def format_value(self, value: KeywordRef | None) -> str:
        if value is None:
            return ""
        return f"{value.entity.name} {value.input.keyword}"

    def remove_references(self, ent: Entity) -> bool:
        if self.is_default or self.value is None or self.value.entity is not ent:
            return False
        self.reset()
        return True


class OutputInput(Input[OutputChain]):
    """An output chain such as ``[Queue1].QueueLength`` or ``Server1 Entity Name``."""

    valid_input_desc = "An output chain, e.g. [Entity].Output"
    return_type = OutputChain

    def __init__(
        self,
        keyword: str,
        category: str,
        default_value: OutputChain | None = None,
        unit_type: UnitType | None = None,
    ) -> None:
        super().__init__(keyword, category, default_value)
        self.unit_type = unit_type

    def get_unit_type(self) -> UnitType:
        if self.unit_type is not None:
            return self.unit_type
        chain = self.get_value()
        return DIMENSIONLESS if chain is None else chain.get_unit_type()

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        chain = parse_output_chain(this_ent, kw)
        if self.unit_type is not None and not chain.remaining:
            actual = chain.get_unit_type()
            if actual != self.unit_type:
                raise InputError(
                    f"Unit types do not match, expected {self.unit_type}, received: {actual}"
                )
        self.set_value(chain)

    def get_output_value(self, sim_time: float) -> Any:
        chain = self.get_value()
        if chain is None:
            return None
        return chain.get_value(sim_time)

    def format_value(self, value: OutputChain | None) -> str:
        return "" if value is None else str(value)

    def remove_references(self, ent: Entity) -> bool:
        if self.is_default or self.value is None or self.value.root is not ent:
            return False
        self.reset()
        return True
