"""Tests for entities, groups and the entity namespace."""

from __future__ import annotations

import pytest

from simkeys.core.entity import Entity, EntityGroup, EntityNamespace, is_valid_name
from simkeys.core.errors import ExpError, InputError
from simkeys.core.inputs import StringInput, apply_args
from simkeys.core.ir import ExpResult


class TestNames:
    @pytest.mark.parametrize("name", ["Queue1", "Server_2", "a-b"])
    def test_valid(self, name: str) -> None:
        assert is_valid_name(name)

    @pytest.mark.parametrize("name", ["", "two words", "a{b", "[x]", "a.b", "it's", 'q"'])
    def test_invalid(self, name: str) -> None:
        assert not is_valid_name(name)

    def test_entity_rejects_invalid_name(self, namespace: EntityNamespace) -> None:
        with pytest.raises(InputError, match="Invalid entity name: 'bad name'"):
            Entity("bad name", namespace)


class TestNamespace:
    def test_lookup(self, namespace: EntityNamespace, queue: Entity, server: Entity) -> None:
        assert namespace.get_named_entity("Queue1") is queue
        assert namespace.get_named_entity("Nobody") is None
        assert "Server1" in namespace
        assert len(namespace) == 2
        assert queue.namespace is namespace

    def test_duplicate_name(self, namespace: EntityNamespace, queue: Entity) -> None:
        with pytest.raises(InputError, match="Entity name already in use: Queue1"):
            Entity("Queue1", namespace)

    def test_get_entities_by_class(
        self,
        namespace: EntityNamespace,
        queue: Entity,
        server: Entity,
        server_class: type[Entity],
    ) -> None:
        assert namespace.get_entities(server_class) == [server]
        assert set(namespace.get_entities()) == {queue, server}

    def test_rename(self, namespace: EntityNamespace, queue: Entity) -> None:
        namespace.rename(queue, "Queue2")
        assert queue.name == "Queue2"
        assert namespace.get_named_entity("Queue2") is queue
        assert "Queue1" not in namespace

    def test_rename_conflicts(
        self, namespace: EntityNamespace, queue: Entity, server: Entity
    ) -> None:
        with pytest.raises(InputError, match="already in use"):
            namespace.rename(queue, "Server1")
        with pytest.raises(InputError, match="Invalid entity name"):
            namespace.rename(queue, "a b")
        assert queue.name == "Queue1"

    def test_remove(self, namespace: EntityNamespace, queue: Entity) -> None:
        assert namespace.remove(queue)
        assert not namespace.remove(queue)
        assert "Queue1" not in namespace

    def test_entity_without_namespace(self) -> None:
        loose = Entity("Loose")
        assert loose.namespace is None
        assert loose.kill() == []


class TestInputs:
    def test_default_inputs(self, queue: Entity) -> None:
        keywords = [inp.keyword for inp in queue.get_inputs()]
        assert keywords[:3] == ["Description", "AttributeDefinitionList", "CustomOutputList"]
        assert "Capacity" in keywords

    def test_duplicate_keyword(self, queue: Entity) -> None:
        with pytest.raises(ValueError, match="Duplicate keyword 'Capacity'"):
            queue.add_input(StringInput("Capacity", "Key Inputs"))

    def test_edited_inputs_follow_namespace_flag(
        self, namespace: EntityNamespace, server: Entity
    ) -> None:
        apply_args(server, "ServiceTime", "3", "s")
        assert server.get_edited_inputs() == []
        namespace.set_record_edits()
        apply_args(server, "TravelDistance", "5", "m")
        assert [inp.keyword for inp in server.get_edited_inputs()] == ["TravelDistance"]


class TestOutputs:
    def test_has_output(self, server: Entity) -> None:
        assert server.has_output("Speed")
        assert server.has_output("ServiceTime")
        assert server.has_output("Name")
        assert not server.has_output("TravelDistance")

    def test_builtin_outputs_exclude_user_outputs(self, server: Entity) -> None:
        apply_args(server, "AttributeDefinitionList", "{", "Count", "0", "}")
        assert server.has_output("Count")
        assert not server.is_builtin_output("Count")
        assert server.is_builtin_output("Speed")

    def test_set_and_reset_attribute(self, server: Entity) -> None:
        apply_args(server, "AttributeDefinitionList", "{", "Count", "0", "}")
        server.set_attribute("Count", ExpResult.number(5.0))
        handle = server.get_output_handle("Count")
        assert handle is not None
        assert handle.get_result(0.0).value == 5.0
        server.reset_attributes()
        assert handle.get_result(0.0).value == 0.0

    def test_set_unknown_attribute(self, server: Entity) -> None:
        with pytest.raises(ExpError, match="Attribute 'Nope' is not defined on entity 'Server1'"):
            server.set_attribute("Nope", ExpResult.number(1.0))


class TestGroups:
    def test_members(self, namespace: EntityNamespace, queue: Entity, server: Entity) -> None:
        group = EntityGroup("Group1", namespace)
        apply_args(group, "List", "Queue1", "Server1")
        assert group.get_members() == [queue, server]
        handle = group.get_output_handle("NumberOfMembers")
        assert handle is not None
        assert handle.get_value(0.0) == 2

    def test_empty_group(self, namespace: EntityNamespace) -> None:
        group = EntityGroup("Group1", namespace)
        assert group.get_members() == []


class TestKill:
    def test_references_are_cleared(
        self, namespace: EntityNamespace, queue: Entity, server: Entity
    ) -> None:
        group = EntityGroup("Group1", namespace)
        apply_args(group, "List", "Queue1", "Server1")
        apply_args(server, "NextComponent", "Queue1")

        changed = queue.kill()

        assert {(ent.name, inp.keyword) for ent, inp in changed} == {
            ("Server1", "NextComponent"),
            ("Group1", "List"),
        }
        assert "Queue1" not in namespace
        assert group.get_members() == [server]
        next_input = server.get_input("NextComponent")
        assert next_input is not None
        assert next_input.get_value() is None
        assert next_input.is_default

    def test_unreferenced_entity(self, queue: Entity, server: Entity) -> None:
        assert server.kill() == []
