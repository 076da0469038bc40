"""
Output chains: ``[Entity].Output.SubOutput...``.

Each hop is looked up again on every evaluation, so a chain follows the
entity an output currently returns rather than the one it returned when the
chain was parsed.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from simkeys.core.ir.results import ExpResult, ResultKind
from simkeys.core.units import DIMENSIONLESS, UnitType
from simkeys.core.values.handles import ValueHandle


class OutputChain:
    """
    A first output on a root entity followed by zero or more output names.

    Attributes:
        root: Entity the chain starts from
        first_name: Name of the first output
        first_handle: Handle found for the first output when the chain was built
        remaining: Names of the outputs looked up on each following entity
    """

    def __init__(
        self,
        root: Any,
        first_name: str,
        first_handle: ValueHandle,
        remaining: Sequence[str] = (),
    ) -> None:
        self.root = root
        self.first_name = first_name
        self.first_handle = first_handle
        self.remaining: tuple[str, ...] = tuple(remaining)

    def _resolve_handle(self, sim_time: float) -> ValueHandle | None:
        """Walk the chain to the last handle, None if any hop is missing."""
        from simkeys.core.entity import Entity

        handle = self.root.get_output_handle(self.first_name)
        for name in self.remaining:
            if handle is None:
                return None
            ent = handle.get_result(sim_time)
            if ent.kind != ResultKind.ENTITY or not isinstance(ent.value, Entity):
                return None
            handle = ent.value.get_output_handle(name)
        return handle

    def get_result(self, sim_time: float) -> ExpResult | None:
        handle = self._resolve_handle(sim_time)
        if handle is None:
            return None
        return handle.get_result(sim_time)

    def get_value(self, sim_time: float, klass: type | None = None) -> Any:
        handle = self._resolve_handle(sim_time)
        if handle is None:
            return None
        return handle.get_value(sim_time, klass)

    def get_value_as_double(self, sim_time: float, default: float) -> float:
        handle = self._resolve_handle(sim_time)
        if handle is None:
            return default
        return handle.get_value_as_double(sim_time, default)

    def get_unit_type(self, sim_time: float = 0.0) -> UnitType:
        if not self.remaining:
            return self.first_handle.get_unit_type()
        handle = self._resolve_handle(sim_time)
        if handle is None:
            return DIMENSIONLESS
        return handle.get_unit_type()

    def get_return_type(self, sim_time: float = 0.0) -> type:
        handle = self.first_handle if not self.remaining else self._resolve_handle(sim_time)
        if handle is None:
            return object
        return handle.get_return_type()

    def get_tokens(self) -> list[str]:
        return [self.root.name, self.first_name, *self.remaining]

    def __str__(self) -> str:
        return ".".join([f"[{self.root.name}]", self.first_name, *self.remaining])

    def __repr__(self) -> str:
        return f"OutputChain({self})"
