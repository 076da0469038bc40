"""Tests for list-valued inputs, brace groups and entity lists."""

from __future__ import annotations

import logging

import pytest

from simkeys.core.entity import Entity, EntityGroup, EntityNamespace
from simkeys.core.errors import InputError
from simkeys.core.inputs import (
    Colour,
    ColourListInput,
    EntityListInput,
    EntityListListInput,
    IntegerListInput,
    InterfaceEntityListInput,
    KeyListInput,
    StringListInput,
    ValueListInput,
    Vec3d,
    Vec3dListInput,
    apply_args,
)
from simkeys.core.keyword_index import KeywordIndex
from simkeys.core.units import DISTANCE, TIME


def kw(text: str, keyword: str = "Key") -> KeywordIndex:
    return KeywordIndex.from_string(keyword, text)


class Servable:
    """Marker interface."""


class Desk(Entity, Servable):
    pass


class TestIntegerListInput:
    def test_parse(self) -> None:
        inp = IntegerListInput("Sizes", "Key Inputs")
        inp.parse(None, kw("1 2 3"))
        assert inp.get_value() == [1, 2, 3]
        assert inp.get_list_size() == 3
        assert inp.format_value([1, 2, 3]) == "1 2 3"

    def test_bad_element(self) -> None:
        inp = IntegerListInput("Sizes", "Key Inputs")
        with pytest.raises(InputError, match="Expected an integer value, received: x"):
            inp.parse(None, kw("1 2 x"))

    def test_count_bounds(self) -> None:
        inp = IntegerListInput("Sizes", "Key Inputs", min_count=1, max_count=2)
        with pytest.raises(InputError, match="Expected an input with 1 to 2 values"):
            inp.parse(None, kw("1 2 3"))

    def test_value_range(self) -> None:
        inp = IntegerListInput("Sizes", "Key Inputs", min_value=0, max_value=5)
        with pytest.raises(InputError, match="Expected an integer between 0 and 5, received: 6"):
            inp.parse(None, kw("1 6"))


class TestValueListInput:
    def test_shared_unit(self) -> None:
        inp = ValueListInput("Times", "Key Inputs", unit_type=TIME)
        inp.parse(None, kw("1 2 3 min"))
        assert inp.get_value() == [60.0, 120.0, 180.0]
        assert inp.format_value(inp.get_value()) == "60 120 180  s"

    def test_empty_list_formats_empty(self) -> None:
        inp = ValueListInput("Times", "Key Inputs", [], TIME)
        assert inp.get_default_string() == ""

    def test_minimum_count(self) -> None:
        inp = ValueListInput("Times", "Key Inputs", unit_type=TIME, min_count=2)
        with pytest.raises(
            InputError, match="Expected an input with at least 2 values, received: 1 s"
        ):
            inp.parse(None, kw("1 s"))

    def test_maximum_count(self) -> None:
        inp = ValueListInput("Times", "Key Inputs", unit_type=TIME, max_count=2)
        with pytest.raises(InputError, match="Expected an input with 0 to 2 values"):
            inp.parse(None, kw("1 2 3 s"))

    def test_dimensionless(self) -> None:
        inp = ValueListInput("Weights", "Key Inputs")
        inp.parse(None, kw("0.5 1.5"))
        assert inp.get_value() == [0.5, 1.5]
        assert inp.format_value([0.5, 1.5]) == "0.5 1.5"


class TestStringListInput:
    def test_parse_and_format(self) -> None:
        inp = StringListInput("Labels", "Key Inputs")
        inp.parse(None, kw("'a b' c"))
        assert inp.get_value() == ["a b", "c"]
        assert inp.format_value(["a b", "c"]) == "'a b' c"

    def test_choices(self) -> None:
        inp = StringListInput("Labels", "Key Inputs", choices=["A", "B"])
        inp.parse(None, kw("B A"))
        assert inp.get_valid_options() == ["A", "B"]
        with pytest.raises(InputError, match="received: C"):
            inp.parse(None, kw("A C"))
        assert inp.get_value() == ["B", "A"]


    def test_apostrophe_is_rejected(self) -> None:
        inp = StringListInput("Labels", "Key Inputs")
        with pytest.raises(InputError, match="can not contain an apostrophe, received: it's"):
            inp.parse(None, KeywordIndex("Labels", ["ok", "it's"]))
        assert inp.get_value() is None


class TestColourListInput:
    def test_groups(self) -> None:
        inp = ColourListInput("Colours", "Graphics")
        inp.parse(None, kw("{ red } { 0 0 255 }"))
        assert inp.get_value() == [Colour(1.0, 0.0, 0.0), Colour(0.0, 0.0, 1.0)]
        assert inp.format_value(inp.get_value()) == "{ red } { blue }"

    def test_failing_element_is_named(self) -> None:
        inp = ColourListInput("Colours", "Graphics")
        with pytest.raises(
            InputError,
            match="Error parsing element 2: Expected a colour name or RGB values, received: mauve",
        ):
            inp.parse(None, kw("{ red } { mauve }"))

    def test_tokens_outside_braces(self) -> None:
        inp = ColourListInput("Colours", "Graphics")
        with pytest.raises(InputError, match="Expected values enclosed in braces"):
            inp.parse(None, kw("{ red } blue"))


class TestVec3dListInput:
    def test_shared_trailing_unit(self) -> None:
        inp = Vec3dListInput("Points", "Graphics", unit_type=DISTANCE)
        inp.parse(None, kw("{ 0 0 0 } { 1 2 } km"))
        assert inp.get_value() == [Vec3d(0.0, 0.0, 0.0), Vec3d(1000.0, 2000.0, 0.0)]
        assert inp.format_value(inp.get_value()) == "{ 0 0 0 } { 1000 2000 0 }  m"

    def test_missing_unit(self) -> None:
        inp = Vec3dListInput("Points", "Graphics", unit_type=DISTANCE)
        with pytest.raises(InputError, match="Error parsing element 1: A unit is required"):
            inp.parse(None, kw("{ 1 2 3 }"))


class TestEntityListInput:
    def test_parse(self, queue: Entity, server: Entity) -> None:
        inp = EntityListInput("Targets", "Key Inputs", Entity)
        inp.parse(queue, kw("Server1 Queue1"))
        assert inp.get_value() == [server, queue]
        assert inp.format_value(inp.get_value()) == "Server1 Queue1"

    def test_wrong_class(self, queue: Entity, server: Entity, server_class: type[Entity]) -> None:
        inp = EntityListInput("Targets", "Key Inputs", server_class)
        with pytest.raises(InputError, match="Expected a Server, Queue1 is a Queue"):
            inp.parse(queue, kw("Server1 Queue1"))

    def test_unknown_entity(self, queue: Entity) -> None:
        inp = EntityListInput("Targets", "Key Inputs", Entity)
        with pytest.raises(InputError, match="Could not find an Entity named: Nobody"):
            inp.parse(queue, kw("Nobody"))

    def test_unique(self, queue: Entity, server: Entity) -> None:
        inp = EntityListInput("Targets", "Key Inputs", Entity)
        with pytest.raises(
            InputError, match="List must contain unique entries, repeated entry: Server1"
        ):
            inp.parse(queue, kw("Server1 Server1"))
        repeated = EntityListInput("Targets", "Key Inputs", Entity, unique=False)
        repeated.parse(queue, kw("Server1 Server1"))
        assert repeated.get_value() == [server, server]

    def test_requires_namespace(self) -> None:
        inp = EntityListInput("Targets", "Key Inputs", Entity)
        with pytest.raises(InputError, match="Entity references require an entity in a namespace"):
            inp.parse(None, kw("Server1"))

    def test_group_expands_to_members(
        self, namespace: EntityNamespace, queue: Entity, server: Entity, server_class: type[Entity]
    ) -> None:
        other = server_class("Server2", namespace)
        group = EntityGroup("Servers", namespace)
        apply_args(group, "List", "Server1", "Server2")

        servers = EntityListInput("Targets", "Key Inputs", server_class)
        servers.parse(queue, kw("Servers"))
        assert servers.get_value() == [server, other]

        anything = EntityListInput("Targets", "Key Inputs", Entity)
        anything.parse(queue, kw("Servers"))
        assert anything.get_value() == [group]

    def test_valid_options(
        self, namespace: EntityNamespace, queue: Entity, server: Entity, server_class: type[Entity]
    ) -> None:
        server_class("Alpha", namespace)
        inp = EntityListInput("Targets", "Key Inputs", server_class)
        assert inp.get_valid_options(queue) == ["Alpha", "Server1"]
        assert inp.get_valid_options(None) == []

    def test_remove_references(self, queue: Entity, server: Entity) -> None:
        inp = EntityListInput("Targets", "Key Inputs", Entity)
        assert not inp.remove_references(server)
        inp.parse(queue, kw("Server1 Queue1"))
        assert inp.remove_references(server)
        assert inp.get_value() == [queue]
        assert not inp.remove_references(server)


class TestInterfaceEntityListInput:
    def test_interface(self, namespace: EntityNamespace, queue: Entity) -> None:
        desk = Desk("Desk1", namespace)
        inp = InterfaceEntityListInput("Desks", "Key Inputs", Servable)
        inp.parse(queue, kw("Desk1"))
        assert inp.get_value() == [desk]
        with pytest.raises(
            InputError, match="Expected an object implementing Servable, Queue1 does not"
        ):
            inp.parse(queue, kw("Desk1 Queue1"))


class TestEntityListListInput:
    def test_groups(self, queue: Entity, server: Entity) -> None:
        inp = EntityListListInput("Routes", "Key Inputs", Entity)
        inp.parse(queue, kw("{ Queue1 Server1 } { Server1 }"))
        assert inp.get_value() == [[queue, server], [server]]
        assert inp.format_value(inp.get_value()) == "{ Queue1 Server1 } { Server1 }"

    def test_remove_references(self, queue: Entity, server: Entity) -> None:
        inp = EntityListListInput("Routes", "Key Inputs", Entity)
        inp.parse(queue, kw("{ Queue1 Server1 } { Server1 }"))
        assert inp.remove_references(server)
        assert inp.get_value() == [[queue], []]


class TestKeyListInput:
    @pytest.fixture
    def queues(self, namespace: EntityNamespace, queue_class: type[Entity]) -> list[Entity]:
        return [queue_class("QueueA", namespace), queue_class("QueueB", namespace)]

    @pytest.fixture
    def routing(self, server_class: type[Entity], queue_class: type[Entity]) -> KeyListInput:
        return KeyListInput("Routing", "Key Inputs", server_class, queue_class)

    def test_keyed_and_keyless_groups(
        self,
        routing: KeyListInput,
        server: Entity,
        queues: list[Entity],
        namespace: EntityNamespace,
        server_class: type[Entity],
    ) -> None:
        routing.parse(server, kw("{ Server1 QueueA } { QueueB }"))
        assert routing.get_value() == {server: [queues[0]]}
        assert routing.get_value_for(server) == [queues[0]]
        other = server_class("Server2", namespace)
        assert routing.get_value_for(other) == [queues[1]]
        assert routing.get_value_string() == "{ QueueB } { Server1 QueueA }"

    def test_add_and_remove(
        self, routing: KeyListInput, server: Entity, queues: list[Entity]
    ) -> None:
        routing.parse(server, kw("{ Server1 QueueA }"))
        routing.parse(server, kw("{ Server1 ++ QueueB }"))
        assert routing.get_value_for(server) == queues
        routing.parse(server, kw("{ Server1 -- QueueA }"))
        assert routing.get_value_for(server) == [queues[1]]

    def test_add_duplicate(self, routing: KeyListInput, server: Entity, queues: list[Entity]) -> None:
        routing.parse(server, kw("{ Server1 QueueA }"))
        with pytest.raises(InputError, match="repeated entry: QueueA"):
            routing.parse(server, kw("{ Server1 ++ QueueA }"))
        assert routing.get_value_for(server) == [queues[0]]

    def test_failed_removal_is_logged(
        self,
        routing: KeyListInput,
        server: Entity,
        queues: list[Entity],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        routing.parse(server, kw("{ Server1 QueueA }"))
        with caplog.at_level(logging.WARNING):
            routing.parse(server, kw("{ Server1 -- QueueB }"))
        assert "Could not remove QueueB from Routing" in caplog.text
        assert routing.get_value_for(server) == [queues[0]]

    def test_keyless_default_and_reset(
        self, server_class: type[Entity], queue_class: type[Entity], server: Entity, queues: list[Entity]
    ) -> None:
        routing = KeyListInput("Routing", "Key Inputs", server_class, queue_class, [queues[0]])
        assert routing.get_value_for(server) == [queues[0]]
        routing.parse(server, kw("{ ++ QueueB }"))
        assert routing.get_value_for(server) == queues
        routing.reset()
        assert routing.get_value() == {}
        assert routing.get_value_for(server) == [queues[0]]

    def test_remove_references(
        self, routing: KeyListInput, server: Entity, queues: list[Entity]
    ) -> None:
        routing.parse(server, kw("{ Server1 QueueA QueueB } { QueueA }"))
        assert routing.remove_references(queues[0])
        assert routing.get_value_for(server) == [queues[1]]
        assert routing.no_key_value == []
        assert routing.remove_references(server)
        assert routing.get_value() == {}
