"""Tests for unit types, units and unit arithmetic rules."""

from __future__ import annotations

import math

import pytest

from simkeys.core.units import (
    ACCELERATION,
    ANGLE,
    AREA,
    DIMENSIONLESS,
    DISTANCE,
    ENERGY,
    POWER,
    RATE,
    SPEED,
    TIME,
    UnitType,
    divide_unit_types,
    get_unit,
    get_unit_type,
    get_units,
    multiply_unit_types,
)


class TestUnitTypes:
    def test_equal_by_value(self) -> None:
        assert UnitType("DistanceUnit", "m") == DISTANCE
        assert hash(UnitType("DistanceUnit", "m")) == hash(DISTANCE)

    def test_str_is_name(self) -> None:
        assert str(TIME) == "TimeUnit"

    def test_lookup_full_and_short_names(self) -> None:
        assert get_unit_type("DistanceUnit") is DISTANCE
        assert get_unit_type("Distance") is DISTANCE
        assert get_unit_type("Nonsense") is None


class TestUnits:
    @pytest.mark.parametrize(
        ("name", "unit_type", "factor"),
        [
            ("m", DISTANCE, 1.0),
            ("km", DISTANCE, 1000.0),
            ("mm", DISTANCE, 0.001),
            ("min", TIME, 60.0),
            ("h", TIME, 3600.0),
            ("d", TIME, 86400.0),
            ("km/h", SPEED, 1000.0 / 3600.0),
            ("/h", RATE, 1.0 / 3600.0),
            ("deg", ANGLE, math.pi / 180.0),
        ],
    )
    def test_table(self, name: str, unit_type: UnitType, factor: float) -> None:
        unit = get_unit(name)
        assert unit is not None
        assert unit.unit_type == unit_type
        assert unit.factor == pytest.approx(factor)

    def test_unknown_unit(self) -> None:
        assert get_unit("furlong") is None

    def test_si_conversion(self) -> None:
        km = get_unit("km")
        assert km is not None
        assert km.to_si(2.5) == 2500.0
        assert km.from_si(2500.0) == 2.5

    def test_get_units_lists_si_unit_first(self) -> None:
        units = get_units(DISTANCE)
        assert units[0].name == "m"
        assert {"km", "cm", "mm"} <= {u.name for u in units}
        assert all(u.unit_type == DISTANCE for u in units)


class TestUnitRules:
    def test_dimensionless_is_neutral_for_multiplication(self) -> None:
        assert multiply_unit_types(DISTANCE, DIMENSIONLESS) == DISTANCE
        assert multiply_unit_types(DIMENSIONLESS, TIME) == TIME

    def test_dividing_by_dimensionless(self) -> None:
        assert divide_unit_types(DISTANCE, DIMENSIONLESS) == DISTANCE

    def test_same_types_divide_to_dimensionless(self) -> None:
        assert divide_unit_types(DISTANCE, DISTANCE) == DIMENSIONLESS
        assert divide_unit_types(ENERGY, ENERGY) == DIMENSIONLESS

    @pytest.mark.parametrize(
        ("a", "b", "product"),
        [
            (SPEED, TIME, DISTANCE),
            (TIME, SPEED, DISTANCE),
            (ACCELERATION, TIME, SPEED),
            (DISTANCE, DISTANCE, AREA),
            (POWER, TIME, ENERGY),
            (RATE, TIME, DIMENSIONLESS),
        ],
    )
    def test_multiplication_rules(self, a: UnitType, b: UnitType, product: UnitType) -> None:
        assert multiply_unit_types(a, b) == product

    @pytest.mark.parametrize(
        ("a", "b", "quotient"),
        [
            (DISTANCE, TIME, SPEED),
            (DISTANCE, SPEED, TIME),
            (ENERGY, TIME, POWER),
            (DIMENSIONLESS, TIME, RATE),
            (DIMENSIONLESS, RATE, TIME),
            (AREA, DISTANCE, DISTANCE),
        ],
    )
    def test_division_rules(self, a: UnitType, b: UnitType, quotient: UnitType) -> None:
        assert divide_unit_types(a, b) == quotient

    def test_missing_rules(self) -> None:
        assert multiply_unit_types(DISTANCE, TIME) is None
        assert divide_unit_types(TIME, DISTANCE) is None
