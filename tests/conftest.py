"""Shared pytest fixtures for simkeys tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from simkeys.core.config import set_config
from simkeys.core.entity import Entity, EntityNamespace
from simkeys.core.inputs import (
    EntityInput,
    IntegerInput,
    RelativeEntityInput,
    ValueInput,
)
from simkeys.core.units import DISTANCE, SPEED, TIME
from simkeys.core.values.handles import output


class Queue(Entity):
    """A queue with a stored list of waiting entities."""

    def __init__(self, name: str, namespace: EntityNamespace | None = None) -> None:
        super().__init__(name, namespace)
        self.items: list[Entity] = []
        self.capacity = IntegerInput("Capacity", "Key Inputs", 10, min_value=0)
        self.add_input(self.capacity)

    @output("QueueLength", return_type=int, description="Number of waiting entities")
    def get_queue_length(self, sim_time: float) -> int:
        return len(self.items)

    @output("First", return_type=Entity, description="Entity at the head of the queue")
    def get_first(self, sim_time: float) -> Entity | None:
        return self.items[0] if self.items else None


class Server(Entity):
    """A server with timing inputs and an onward connection."""

    def __init__(self, name: str, namespace: EntityNamespace | None = None) -> None:
        super().__init__(name, namespace)
        self.service_time = ValueInput("ServiceTime", "Key Inputs", 1.0, TIME, min_value=0.0)
        self.service_time.output = True
        self.add_input(self.service_time)
        self.travel_distance = ValueInput("TravelDistance", "Key Inputs", 0.0, DISTANCE)
        self.add_input(self.travel_distance)
        self.next_component = EntityInput("NextComponent", "Key Inputs", Entity)
        self.add_input(self.next_component)
        self.relative_entity = RelativeEntityInput("RelativeEntity", "Graphics", Entity)
        self.add_input(self.relative_entity)

    @output("Speed", unit_type=SPEED, description="Travel speed", sequence=2)
    def get_speed(self, sim_time: float) -> float:
        return 2.0

    @output("Elapsed", unit_type=TIME, description="Simulation time", sequence=1)
    def get_elapsed(self, sim_time: float) -> float:
        return sim_time

    @output("Next", return_type=Entity, description="Next component")
    def get_next(self, sim_time: float) -> Entity | None:
        return self.next_component.get_value()


@pytest.fixture(autouse=True)
def default_config() -> Iterator[None]:
    """Every test starts from the default configuration."""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def namespace() -> EntityNamespace:
    return EntityNamespace()


@pytest.fixture
def queue(namespace: EntityNamespace) -> Queue:
    return Queue("Queue1", namespace)


@pytest.fixture
def server(namespace: EntityNamespace) -> Server:
    return Server("Server1", namespace)


@pytest.fixture
def queue_class() -> type[Queue]:
    return Queue


@pytest.fixture
def server_class() -> type[Server]:
    return Server
