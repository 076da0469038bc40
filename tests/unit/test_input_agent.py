"""Tests for applying keyword records to entities."""

from __future__ import annotations

import logging

import pytest

from simkeys.core.entity import Entity
from simkeys.core.errors import InputError, ParseContext
from simkeys.core.inputs import (
    DeprecatedInput,
    SampleInput,
    SynonymInput,
    apply_args,
    apply_input,
    apply_record,
    split_record,
)
from simkeys.core.keyword_index import KeywordIndex, tokenize
from simkeys.core.units import TIME


class TestSplitRecord:
    def test_braced_and_bare_values(self) -> None:
        keywords = split_record(tokenize("A 1 B { 2 3 } C { }"))
        assert [(kw.keyword, list(kw.args)) for kw in keywords] == [
            ("A", ["1"]),
            ("B", ["2", "3"]),
            ("C", []),
        ]

    def test_nested_groups(self) -> None:
        (kw,) = split_record(tokenize("Points { { 1 2 } { 3 4 } m }"))
        assert kw.keyword == "Points"
        assert list(kw.args) == ["{", "1", "2", "}", "{", "3", "4", "}", "m"]

    def test_context_is_attached(self) -> None:
        context = ParseContext("model.cfg", 4)
        (kw,) = split_record(["A", "1"], context)
        assert kw.context == context

    def test_brace_instead_of_keyword(self) -> None:
        with pytest.raises(InputError, match="Expected a keyword, received: {"):
            split_record(tokenize("{ 1 }"))

    def test_missing_value(self) -> None:
        with pytest.raises(InputError, match="No value given for keyword B"):
            split_record(tokenize("A 1 B"))

    def test_unbalanced_braces(self) -> None:
        with pytest.raises(InputError, match="Braces do not match"):
            split_record(tokenize("A { 1"))


class TestApplyInput:
    def test_returns_input(self, server: Entity) -> None:
        inp = apply_args(server, "ServiceTime", "5", "min")
        assert inp is server.get_input("ServiceTime")
        assert inp.get_value() == 300.0
        assert inp.get_value_string() == "5 min"

    def test_unknown_keyword(self, server: Entity) -> None:
        with pytest.raises(InputError, match="Keyword Nope could not be found for Entity Server1"):
            apply_args(server, "Nope", "1")

    def test_error_names_entity_and_keyword(self, server: Entity) -> None:
        with pytest.raises(
            InputError,
            match="Server1 keyword ServiceTime: Expected a number between 0 and Infinity, received: -1",
        ):
            apply_args(server, "ServiceTime", "-1", "s")
        service_time = server.get_input("ServiceTime")
        assert service_time is not None
        assert service_time.is_default

    def test_error_keeps_context(self, server: Entity) -> None:
        context = ParseContext("model.cfg", 3)
        with pytest.raises(InputError) as exc_info:
            apply_input(server, KeywordIndex("ServiceTime", ["x", "s"], context))
        assert exc_info.value.context == context
        assert str(exc_info.value).startswith("model.cfg:3\n")

    def test_error_keeps_expression_error(self, server: Entity) -> None:
        server.add_input(SampleInput("Delay", "Key Inputs", 0.0, TIME))
        with pytest.raises(InputError) as exc_info:
            apply_args(server, "Delay", "this.Speed")
        assert exc_info.value.exp_error is not None
        assert exc_info.value.exp_error.source == "this.Speed"

    def test_expression_error_inside_group(self, server: Entity) -> None:
        with pytest.raises(InputError, match="Error parsing element 1") as exc_info:
            apply_args(server, "CustomOutputList", "{", "X", "1 +", "}")
        assert exc_info.value.exp_error is not None


class TestApplyRecord:
    def test_applies_in_order(self, server: Entity) -> None:
        applied = apply_record(
            server, "ServiceTime { 5 min } Description 'A busy server' \" trailing comment"
        )
        assert [inp.keyword for inp in applied] == ["ServiceTime", "Description"]
        assert server.service_time.get_value() == 300.0  # type: ignore[attr-defined]
        assert server.description.get_value() == "A busy server"

    def test_earlier_keywords_stay_applied(self, server: Entity) -> None:
        with pytest.raises(InputError, match="Server1 keyword ServiceTime"):
            apply_record(server, "TravelDistance { 5 m } ServiceTime { x s }")
        assert server.travel_distance.get_value() == 5.0  # type: ignore[attr-defined]

    def test_context(self, server: Entity) -> None:
        with pytest.raises(InputError) as exc_info:
            apply_record(server, "ServiceTime { 5 }", ParseContext("model.cfg", 7))
        assert str(exc_info.value).startswith("model.cfg:7\n")
        assert "A unit is required" in str(exc_info.value)


class TestSynonymInput:
    def test_forwards_to_target(self, server: Entity) -> None:
        service_time = server.get_input("ServiceTime")
        assert service_time is not None
        synonym = SynonymInput("ProcessTime", service_time)
        server.add_input(synonym)

        assert synonym.hidden
        assert synonym.is_synonym()
        target = apply_args(server, "ProcessTime", "2", "s")
        assert target is service_time
        assert service_time.get_value() == 2.0
        assert service_time.get_value_string() == "2 s"
        assert synonym.get_value() == 2.0
        assert synonym.get_valid_input_desc() == service_time.get_valid_input_desc()


class TestDeprecatedInput:
    def test_warning(self, server: Entity, caplog: pytest.LogCaptureFixture) -> None:
        server.add_input(DeprecatedInput("OldKey", "Use NewKey instead."))
        with caplog.at_level(logging.WARNING):
            apply_args(server, "OldKey", "anything")
        assert "Server1 keyword OldKey is deprecated and ignored. Use NewKey instead." in caplog.text

    def test_fatal(self, server: Entity) -> None:
        server.add_input(DeprecatedInput("OldKey", "Use NewKey instead.", fatal=True))
        with pytest.raises(
            InputError, match=r"Keyword OldKey is no longer supported\. Use NewKey instead\."
        ):
            apply_args(server, "OldKey", "anything")
