"""
Unit types, units and the rules for combining them.

A UnitType names a physical dimension (distance, time, speed...). Two unit
types are the same when their names are equal, so values built in different
places compare correctly. Each Unit belongs to one unit type and carries the
factor that converts it to the SI unit of that type.

Multiplication rules are declared once (``a * b = product``); the matching
division rules are derived from them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class UnitType:
    """A physical dimension, compared by value."""

    name: str
    si_unit: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Unit:
    """A concrete unit: ``km`` is a DistanceUnit worth 1000 m."""

    name: str
    unit_type: UnitType
    factor: float = 1.0

    def to_si(self, value: float) -> float:
        return value * self.factor

    def from_si(self, value: float) -> float:
        return value / self.factor


DIMENSIONLESS = UnitType("DimensionlessUnit")
USER_SPECIFIED = UnitType("UserSpecifiedUnit")
DISTANCE = UnitType("DistanceUnit", "m")
TIME = UnitType("TimeUnit", "s")
RATE = UnitType("RateUnit", "/s")
SPEED = UnitType("SpeedUnit", "m/s")
ACCELERATION = UnitType("AccelerationUnit", "m/s2")
ANGLE = UnitType("AngleUnit", "rad")
ANGULAR_SPEED = UnitType("AngularSpeedUnit", "rad/s")
AREA = UnitType("AreaUnit", "m2")
VOLUME = UnitType("VolumeUnit", "m3")
VOLUME_FLOW = UnitType("VolumeFlowUnit", "m3/s")
MASS = UnitType("MassUnit", "kg")
MASS_FLOW = UnitType("MassFlowUnit", "kg/s")
DENSITY = UnitType("DensityUnit", "kg/m3")
LINEAR_DENSITY = UnitType("LinearDensityUnit", "kg/m")
ENERGY = UnitType("EnergyUnit", "J")
SPECIFIC_ENERGY = UnitType("SpecificEnergyUnit", "J/kg")
ENERGY_DENSITY = UnitType("EnergyDensityUnit", "J/m3")
POWER = UnitType("PowerUnit", "W")
PRESSURE = UnitType("PressureUnit", "Pa")
VISCOSITY = UnitType("ViscosityUnit", "Pa-s")
COST = UnitType("CostUnit", "$")
COST_RATE = UnitType("CostRateUnit", "$/s")

UNIT_TYPES: dict[str, UnitType] = {
    ut.name: ut
    for ut in (
        DIMENSIONLESS,
        USER_SPECIFIED,
        DISTANCE,
        TIME,
        RATE,
        SPEED,
        ACCELERATION,
        ANGLE,
        ANGULAR_SPEED,
        AREA,
        VOLUME,
        VOLUME_FLOW,
        MASS,
        MASS_FLOW,
        DENSITY,
        LINEAR_DENSITY,
        ENERGY,
        SPECIFIC_ENERGY,
        ENERGY_DENSITY,
        POWER,
        PRESSURE,
        VISCOSITY,
        COST,
        COST_RATE,
    )
}

_HOUR = 3600.0
_DAY = 24.0 * _HOUR
_YEAR = 8760.0 * _HOUR

UNITS: dict[str, Unit] = {
    u.name: u
    for u in (
        # distance
        Unit("m", DISTANCE),
        Unit("km", DISTANCE, 1000.0),
        Unit("cm", DISTANCE, 0.01),
        Unit("mm", DISTANCE, 0.001),
        Unit("mi", DISTANCE, 1609.344),
        Unit("ft", DISTANCE, 0.3048),
        Unit("in", DISTANCE, 0.0254),
        # time
        Unit("s", TIME),
        Unit("ms", TIME, 0.001),
        Unit("min", TIME, 60.0),
        Unit("h", TIME, _HOUR),
        Unit("d", TIME, _DAY),
        Unit("w", TIME, 7.0 * _DAY),
        Unit("y", TIME, _YEAR),
        # rate
        Unit("/s", RATE),
        Unit("/min", RATE, 1.0 / 60.0),
        Unit("/h", RATE, 1.0 / _HOUR),
        Unit("/d", RATE, 1.0 / _DAY),
        # speed and acceleration
        Unit("m/s", SPEED),
        Unit("km/h", SPEED, 1000.0 / _HOUR),
        Unit("mph", SPEED, 1609.344 / _HOUR),
        Unit("m/s2", ACCELERATION),
        # angles
        Unit("rad", ANGLE),
        Unit("deg", ANGLE, math.pi / 180.0),
        Unit("rad/s", ANGULAR_SPEED),
        Unit("deg/s", ANGULAR_SPEED, math.pi / 180.0),
        Unit("rpm", ANGULAR_SPEED, 2.0 * math.pi / 60.0),
        # area and volume
        Unit("m2", AREA),
        Unit("km2", AREA, 1.0e6),
        Unit("m3", VOLUME),
        Unit("L", VOLUME, 0.001),
        Unit("m3/s", VOLUME_FLOW),
        Unit("m3/h", VOLUME_FLOW, 1.0 / _HOUR),
        # mass
        Unit("kg", MASS),
        Unit("g", MASS, 0.001),
        Unit("t", MASS, 1000.0),
        Unit("kg/s", MASS_FLOW),
        Unit("t/h", MASS_FLOW, 1000.0 / _HOUR),
        Unit("kg/m3", DENSITY),
        Unit("kg/m", LINEAR_DENSITY),
        # energy and power
        Unit("J", ENERGY),
        Unit("kJ", ENERGY, 1000.0),
        Unit("kWh", ENERGY, 1000.0 * _HOUR),
        Unit("J/kg", SPECIFIC_ENERGY),
        Unit("J/m3", ENERGY_DENSITY),
        Unit("W", POWER),
        Unit("kW", POWER, 1000.0),
        Unit("Pa", PRESSURE),
        Unit("kPa", PRESSURE, 1000.0),
        Unit("Pa-s", VISCOSITY),
        # cost
        Unit("$", COST),
        Unit("$/s", COST_RATE),
        Unit("$/h", COST_RATE, 1.0 / _HOUR),
        Unit("$/d", COST_RATE, 1.0 / _DAY),
    )
}

_MULT_RULES: dict[tuple[UnitType, UnitType], UnitType] = {}
_DIV_RULES: dict[tuple[UnitType, UnitType], UnitType] = {}


def add_mult_rule(a: UnitType, b: UnitType, product: UnitType) -> None:
    """Declare ``a * b = product`` together with both inverse division rules."""
    _MULT_RULES[(a, b)] = product
    _MULT_RULES[(b, a)] = product
    _DIV_RULES[(product, a)] = b
    _DIV_RULES[(product, b)] = a


add_mult_rule(RATE, TIME, DIMENSIONLESS)
add_mult_rule(SPEED, TIME, DISTANCE)
add_mult_rule(ACCELERATION, TIME, SPEED)
add_mult_rule(MASS_FLOW, TIME, MASS)
add_mult_rule(VOLUME_FLOW, TIME, VOLUME)
add_mult_rule(ANGULAR_SPEED, TIME, ANGLE)
add_mult_rule(POWER, TIME, ENERGY)
add_mult_rule(COST_RATE, TIME, COST)
add_mult_rule(VISCOSITY, TIME, LINEAR_DENSITY)

add_mult_rule(DISTANCE, RATE, SPEED)
add_mult_rule(SPEED, RATE, ACCELERATION)
add_mult_rule(MASS, RATE, MASS_FLOW)
add_mult_rule(VOLUME, RATE, VOLUME_FLOW)
add_mult_rule(ANGLE, RATE, ANGULAR_SPEED)
add_mult_rule(ENERGY, RATE, POWER)
add_mult_rule(COST, RATE, COST_RATE)
add_mult_rule(VISCOSITY, RATE, PRESSURE)

add_mult_rule(DISTANCE, DISTANCE, AREA)
add_mult_rule(LINEAR_DENSITY, DISTANCE, MASS)
add_mult_rule(AREA, DISTANCE, VOLUME)

add_mult_rule(SPEED, SPEED, SPECIFIC_ENERGY)
add_mult_rule(LINEAR_DENSITY, SPEED, MASS_FLOW)
add_mult_rule(AREA, SPEED, VOLUME_FLOW)

add_mult_rule(ENERGY_DENSITY, VOLUME, ENERGY)
add_mult_rule(DENSITY, VOLUME, MASS)
add_mult_rule(PRESSURE, VOLUME, ENERGY)

add_mult_rule(ENERGY_DENSITY, VOLUME_FLOW, POWER)
add_mult_rule(DENSITY, VOLUME_FLOW, MASS_FLOW)
add_mult_rule(PRESSURE, VOLUME_FLOW, POWER)


def multiply_unit_types(a: UnitType, b: UnitType) -> UnitType | None:
    """Unit type of ``a * b``, or None when no rule applies."""
    if a == DIMENSIONLESS:
        return b
    if b == DIMENSIONLESS:
        return a
    return _MULT_RULES.get((a, b))


def divide_unit_types(a: UnitType, b: UnitType) -> UnitType | None:
    """Unit type of ``a / b``, or None when no rule applies."""
    if b == DIMENSIONLESS:
        return a
    if a == b:
        return DIMENSIONLESS
    return _DIV_RULES.get((a, b))


def get_unit(name: str) -> Unit | None:
    return UNITS.get(name)


def get_unit_type(name: str) -> UnitType | None:
    """Look up a unit type by its full name (``DistanceUnit``) or short form (``Distance``)."""
    unit_type = UNIT_TYPES.get(name)
    if unit_type is None and not name.endswith("Unit"):
        unit_type = UNIT_TYPES.get(name + "Unit")
    return unit_type


def get_units(unit_type: UnitType) -> list[Unit]:
    """All known units of one type, SI unit first."""
    units = [u for u in UNITS.values() if u.unit_type == unit_type]
    units.sort(key=lambda u: (u.factor != 1.0, u.name))
    return units
