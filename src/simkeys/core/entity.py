"""
Minimal entity model used by inputs and expressions.

An Entity has a unique name inside an EntityNamespace, an ordered table of
keyword inputs, and a set of named outputs. Outputs come from four places,
searched in this order:

1. user-defined attributes (AttributeDefinitionList)
2. user-defined custom outputs (CustomOutputList)
3. methods registered on the class with ``@output``
4. inputs flagged as outputs

The ``@output`` registry is collected once per class when the class is
created, so lookups never inspect the class at run time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import replace
from typing import TYPE_CHECKING, ClassVar

from simkeys.core.errors import ExpError, InputError
from simkeys.core.ir.results import ExpResult
from simkeys.core.values.handles import (
    AttributeHandle,
    ExpressionHandle,
    InputHandle,
    OutputHandle,
    OutputSpec,
    ValueHandle,
    output,
)

if TYPE_CHECKING:
    from simkeys.core.inputs.base import Input

logger = logging.getLogger(__name__)

_FORBIDDEN_NAME_CHARS = frozenset(" \t\r\n{}[]'\".#")


def is_valid_name(name: str) -> bool:
    """Entity names must be non-empty and free of delimiter characters."""
    return bool(name) and not any(c in _FORBIDDEN_NAME_CHARS for c in name)


def _collect_outputs(cls: type) -> dict[str, OutputSpec]:
    """Gather ``@output`` methods, subclasses overriding base-class names."""
    outputs: dict[str, OutputSpec] = {}
    for klass in reversed(cls.__mro__):
        for attr in vars(klass).values():
            spec = getattr(attr, "_output_spec", None)
            if isinstance(spec, OutputSpec):
                outputs[spec.name] = replace(spec, owner=klass)
    return outputs


class Entity:
    """
    A named object in a simulation model.

    Subclasses declare their keyword inputs in ``__init__`` with
    ``add_input`` and their outputs with the ``@output`` decorator.
    """

    _outputs: ClassVar[dict[str, OutputSpec]] = {}

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        cls._outputs = _collect_outputs(cls)

    def __init__(self, name: str, namespace: EntityNamespace | None = None) -> None:
        if not is_valid_name(name):
            raise InputError(f"Invalid entity name: '{name}'")
        self.name = name
        self.namespace = namespace
        self._inputs: dict[str, Input] = {}
        self._attributes: dict[str, AttributeHandle] = {}
        self._custom_outputs: dict[str, ExpressionHandle] = {}

        # Imported here: the input kinds depend on this module
        from simkeys.core.inputs.attributes import (
            AttributeDefinitionListInput,
            NamedExpressionListInput,
        )
        from simkeys.core.inputs.scalars import StringInput

        self.description = StringInput("Description", "Key Inputs", "")
        self.description.output = True
        self.add_input(self.description)
        self.add_input(AttributeDefinitionListInput("AttributeDefinitionList", "Options"))
        self.add_input(NamedExpressionListInput("CustomOutputList", "Options"))

        if namespace is not None:
            namespace.add(self)

    # -- Inputs --

    def add_input(self, inp: Input) -> None:
        if inp.keyword in self._inputs:
            raise ValueError(f"Duplicate keyword '{inp.keyword}' on {type(self).__name__}")
        self._inputs[inp.keyword] = inp

    def get_input(self, keyword: str) -> Input | None:
        return self._inputs.get(keyword)

    def get_inputs(self) -> list[Input]:
        return list(self._inputs.values())

    def get_edited_inputs(self) -> list[Input]:
        return [inp for inp in self._inputs.values() if inp.edited]

    # -- Attributes and custom outputs --

    def set_attribute_handles(self, handles: list[AttributeHandle]) -> None:
        """Replace all user-defined attributes."""
        self._attributes = {h.name: h for h in handles}

    def set_custom_output_handles(self, handles: list[ExpressionHandle]) -> None:
        """Replace all user-defined custom outputs."""
        self._custom_outputs = {h.name: h for h in handles}

    def get_attribute(self, name: str) -> AttributeHandle | None:
        return self._attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self._attributes

    def set_attribute(self, name: str, value: ExpResult) -> None:
        """Assign a new value to a defined attribute.

        Raises:
            ExpError: If the attribute does not exist.
        """
        handle = self._attributes.get(name)
        if handle is None:
            raise ExpError(f"Attribute '{name}' is not defined on entity '{self.name}'")
        handle.set_value(value)

    def reset_attributes(self) -> None:
        for handle in self._attributes.values():
            handle.reset()

    # -- Outputs --

    def get_output_handle(self, name: str) -> ValueHandle | None:
        handle: ValueHandle | None = self._attributes.get(name)
        if handle is not None:
            return handle
        handle = self._custom_outputs.get(name)
        if handle is not None:
            return handle
        spec = self._outputs.get(name)
        if spec is not None:
            return OutputHandle(self, spec)
        inp = self._inputs.get(name)
        if inp is not None and inp.output:
            return InputHandle(self, inp)
        return None

    def has_output(self, name: str) -> bool:
        if name in self._attributes or name in self._custom_outputs or name in self._outputs:
            return True
        inp = self._inputs.get(name)
        return inp is not None and inp.output

    def is_builtin_output(self, name: str) -> bool:
        """True for outputs declared by the class or its inputs."""
        if name in self._outputs:
            return True
        inp = self._inputs.get(name)
        return inp is not None and inp.output

    def get_output_handle_list(self) -> list[ValueHandle]:
        """All outputs: built-in ones by declaring class and sequence, then user-defined."""
        mro = list(reversed(type(self).__mro__))
        specs = sorted(
            self._outputs.values(),
            key=lambda s: (mro.index(s.owner) if s.owner in mro else 0, s.sequence, s.name),
        )
        handles: list[ValueHandle] = [OutputHandle(self, spec) for spec in specs]
        handles.extend(InputHandle(self, inp) for inp in self._inputs.values() if inp.output)
        handles.extend(self._attributes.values())
        handles.extend(self._custom_outputs.values())
        return handles

    @output("Name", return_type=str, description="The unique name of the entity.")
    def get_name_output(self, sim_time: float) -> str:
        return self.name

    @output("ObjectType", return_type=str, description="The class of the entity.", sequence=1)
    def get_object_type(self, sim_time: float) -> str:
        return type(self).__name__

    # -- Lifecycle --

    def kill(self) -> list[tuple[Entity, Input]]:
        """Remove the entity and clear every reference other entities hold to it.

        Returns:
            The (entity, input) pairs whose value changed.
        """
        changed: list[tuple[Entity, Input]] = []
        if self.namespace is None:
            return changed
        self.namespace.remove(self)
        for ent in list(self.namespace):
            for inp in ent.get_inputs():
                if inp.remove_references(self):
                    logger.debug("Removed %s from %s.%s", self.name, ent.name, inp.keyword)
                    changed.append((ent, inp))
        return changed

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


Entity._outputs = _collect_outputs(Entity)


class EntityGroup(Entity):
    """An entity standing for a list of other entities."""

    def __init__(self, name: str, namespace: EntityNamespace | None = None) -> None:
        from simkeys.core.inputs.lists import EntityListInput

        self.list_input = EntityListInput("List", "Key Inputs", Entity, [])
        super().__init__(name, namespace)
        self.add_input(self.list_input)

    def get_members(self) -> list[Entity]:
        return list(self.list_input.get_value() or [])

    @output("NumberOfMembers", return_type=int, description="Number of entities in the group.")
    def get_number_of_members(self, sim_time: float) -> int:
        return len(self.get_members())


class EntityNamespace:
    """Registry of entities by unique name."""

    def __init__(self) -> None:
        self._entities: dict[str, Entity] = {}
        self.record_edits = False

    def add(self, ent: Entity) -> None:
        if ent.name in self._entities:
            raise InputError(f"Entity name already in use: {ent.name}")
        self._entities[ent.name] = ent
        ent.namespace = self

    def remove(self, ent: Entity) -> bool:
        if self._entities.get(ent.name) is not ent:
            return False
        del self._entities[ent.name]
        return True

    def rename(self, ent: Entity, new_name: str) -> None:
        if not is_valid_name(new_name):
            raise InputError(f"Invalid entity name: '{new_name}'")
        if new_name in self._entities:
            raise InputError(f"Entity name already in use: {new_name}")
        self._entities.pop(ent.name, None)
        ent.name = new_name
        self._entities[new_name] = ent

    def get_named_entity(self, name: str) -> Entity | None:
        return self._entities.get(name)

    def get_entities(self, klass: type[Entity] = Entity) -> list[Entity]:
        return [ent for ent in self._entities.values() if isinstance(ent, klass)]

    def set_record_edits(self, value: bool = True) -> None:
        """Inputs parsed from now on are marked as edited."""
        self.record_edits = value

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, name: object) -> bool:
        return name in self._entities
