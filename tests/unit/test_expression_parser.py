"""Tests for the expression tokenizer and Pratt parser."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from simkeys.core.config import ExpressionsConfig, SimKeysConfig, set_config
from simkeys.core.errors import ExpError
from simkeys.core.expression_lang import parse_expr, parse_expression, tokenize
from simkeys.core.expression_lang.tokenizer import TokenKind
from simkeys.core.ir import (
    ArrayLiteral,
    BinaryExpr,
    BinaryOp,
    CondExpr,
    EntityRef,
    FuncCall,
    IndexExpr,
    Literal,
    OutputRef,
    ResultKind,
    UnaryExpr,
    UnaryOp,
)
from simkeys.core.units import DISTANCE, SPEED


class TestTokenizer:
    def test_token_kinds(self) -> None:
        tokens = tokenize('max(1.5e3[km], "a") && this.x')
        kinds = [t.kind for t in tokens]
        assert kinds == [
            TokenKind.IDENT,
            TokenKind.SYMBOL,
            TokenKind.NUMBER,
            TokenKind.SQUARE,
            TokenKind.SYMBOL,
            TokenKind.STRING,
            TokenKind.SYMBOL,
            TokenKind.SYMBOL,
            TokenKind.IDENT,
            TokenKind.SYMBOL,
            TokenKind.IDENT,
            TokenKind.EOF,
        ]
        assert tokens[2].value == "1.5e3"
        assert tokens[3].value == "km"
        assert tokens[7].value == "&&"

    def test_positions(self) -> None:
        tokens = tokenize("1 +  2")
        assert [t.pos for t in tokens] == [0, 2, 5, 6]

    def test_leading_decimal_point(self) -> None:
        assert tokenize(".5")[0].value == ".5"

    def test_square_contents_are_stripped(self) -> None:
        assert tokenize("[ Queue1 ]")[0].value == "Queue1"

    def test_comments_are_skipped(self) -> None:
        tokens = tokenize("1 # one # + 2")
        assert [t.value for t in tokens] == ["1", "+", "2", ""]

    @pytest.mark.parametrize(
        ("source", "message"),
        [
            ('"abc', "Unterminated string literal"),
            ("[abc", "Unterminated square bracket"),
            ("[a[b]]", "Nested square brackets"),
            ("1 # open", "Unterminated comment"),
            ("1 @ 2", "Unexpected character"),
            ("1e+", "Malformed number exponent"),
        ],
    )
    def test_errors(self, source: str, message: str) -> None:
        with pytest.raises(ExpError, match=message):
            tokenize(source)


class TestPrecedence:
    def test_multiplication_binds_tighter(self) -> None:
        root = parse_expr("1 + 2 * 3", fold=False)
        assert isinstance(root, BinaryExpr)
        assert root.op == BinaryOp.ADD
        assert isinstance(root.right, BinaryExpr)
        assert root.right.op == BinaryOp.MUL

    def test_str_shows_grouping(self) -> None:
        assert str(parse_expr("1 + 2 * 3 - 4", fold=False)) == "((1 + (2 * 3)) - 4)"

    def test_power_is_right_associative(self) -> None:
        root = parse_expr("2 ^ 3 ^ 2", fold=False)
        assert isinstance(root, BinaryExpr)
        assert isinstance(root.left, Literal)
        assert isinstance(root.right, BinaryExpr)

    def test_subtraction_is_left_associative(self) -> None:
        assert str(parse_expr("5 - 2 - 1", fold=False)) == "((5 - 2) - 1)"

    def test_unary_binds_tighter_than_power(self) -> None:
        root = parse_expr("-2 ^ 2", fold=False)
        assert isinstance(root, BinaryExpr)
        assert isinstance(root.left, UnaryExpr)
        assert root.left.op == UnaryOp.NEG

    def test_logic_below_comparison(self) -> None:
        root = parse_expr("1 < 2 && 3 == 3 || 0", fold=False)
        assert isinstance(root, BinaryExpr)
        assert root.op == BinaryOp.OR
        assert isinstance(root.left, BinaryExpr)
        assert root.left.op == BinaryOp.AND

    def test_parentheses_override(self) -> None:
        assert str(parse_expr("(1 + 2) * 3", fold=False)) == "((1 + 2) * 3)"

    def test_conditional_at_top_level(self) -> None:
        root = parse_expr("1 < 2 ? 10 : 20", fold=False)
        assert isinstance(root, CondExpr)
        assert isinstance(root.condition, BinaryExpr)

    def test_conditional_inside_parentheses(self) -> None:
        root = parse_expr("1 + (0 ? 2 : 3)", fold=False)
        assert isinstance(root, BinaryExpr)
        assert isinstance(root.right, CondExpr)


class TestOpenings:
    def test_number_with_unit_is_stored_in_si(self) -> None:
        root = parse_expr("2[km]")
        assert isinstance(root, Literal)
        assert root.result.value == 2000.0
        assert root.result.unit_type == DISTANCE

    def test_string_literal(self) -> None:
        root = parse_expr('"hello"')
        assert isinstance(root, Literal)
        assert root.result.kind == ResultKind.STRING

    def test_null(self) -> None:
        root = parse_expr("null")
        assert isinstance(root, Literal)
        assert root.result.is_null

    def test_this_chain(self) -> None:
        root = parse_expr("this.obj.Name")
        assert isinstance(root, OutputRef)
        assert root.name == "Name"
        assert isinstance(root.target, OutputRef)
        assert root.target.target == EntityRef(name=None, pos=0)

    def test_named_entity_chain(self) -> None:
        root = parse_expr("[Queue1].QueueLength")
        assert isinstance(root, OutputRef)
        assert isinstance(root.target, EntityRef)
        assert root.target.name == "Queue1"
        assert str(root) == "[Queue1].QueueLength"

    def test_index_after_output(self) -> None:
        root = parse_expr("this.Values(2)")
        assert isinstance(root, IndexExpr)
        assert isinstance(root.target, OutputRef)

    def test_nested_index(self) -> None:
        root = parse_expr('this.Table("a")(1)')
        assert isinstance(root, IndexExpr)
        assert isinstance(root.target, IndexExpr)

    def test_function_call(self) -> None:
        root = parse_expr("max(this.a, 2)")
        assert isinstance(root, FuncCall)
        assert root.name == "max"
        assert len(root.args) == 2

    def test_empty_array(self) -> None:
        root = parse_expr("{}")
        assert isinstance(root, Literal)
        assert root.result.kind == ResultKind.ARRAY
        assert root.result.value == ()

    def test_array_of_references_is_not_folded(self) -> None:
        root = parse_expr("{1, this.a}")
        assert isinstance(root, ArrayLiteral)

    def test_map_literal(self) -> None:
        root = parse_expr('{"a": 1[m], "b": 2}')
        assert isinstance(root, Literal)
        assert root.result.kind == ResultKind.MAP
        assert root.result.value["a"].unit_type == DISTANCE


class TestConstantFolding:
    def test_constant_arithmetic_is_folded(self) -> None:
        root = parse_expr("10[m] / 2[s]")
        assert isinstance(root, Literal)
        assert root.result.value == 5.0
        assert root.result.unit_type == SPEED

    def test_function_of_constants_is_folded(self) -> None:
        root = parse_expr("max(1, 3, 2)")
        assert isinstance(root, Literal)
        assert root.result.value == 3.0

    def test_logical_operators_are_folded(self) -> None:
        root = parse_expr("1 && 0")
        assert isinstance(root, Literal)
        assert root.result.value == 0.0
        root = parse_expr("0 || 2")
        assert isinstance(root, Literal)
        assert root.result.value == 1.0

    def test_failing_subtree_is_kept(self) -> None:
        root = parse_expr("1[m] + 1[s]")
        assert isinstance(root, BinaryExpr)

    def test_references_are_not_folded(self) -> None:
        assert isinstance(parse_expr("this.a + 1"), BinaryExpr)

    def test_disabled_by_config(self) -> None:
        set_config(SimKeysConfig(expressions=ExpressionsConfig(fold_constants=False)))
        assert isinstance(parse_expr("1 + 2"), BinaryExpr)

    def test_explicit_flag_wins(self) -> None:
        set_config(SimKeysConfig(expressions=ExpressionsConfig(fold_constants=False)))
        assert isinstance(parse_expr("1 + 2", fold=True), Literal)


class TestParseErrors:
    @pytest.mark.parametrize(
        ("source", "message"),
        [
            ("1 +", "Unexpected end of string"),
            ("(1", "Unexpected end of string"),
            ("1 ? 2", "Unexpected end of string"),
            ("1 2", "Unexpected additional values"),
            ("5[furlong]", "Unknown unit: furlong"),
            ("foo(1)", 'Unknown function: "foo"'),
            ("max()", 'Function "max" expects at least 1 arguments'),
            ("sin(1, 2)", 'Function "sin" expects at most 1 arguments'),
            ('{"a": 1, "a": 2}', 'Duplicate key in map literal: "a"'),
            ("[]", "Empty entity name"),
            ("this.", "Expected an output name"),
            ("*", "Can not parse expression"),
        ],
    )
    def test_messages(self, source: str, message: str) -> None:
        with pytest.raises(ExpError, match=message):
            parse_expr(source)

    def test_error_points_at_token(self) -> None:
        with pytest.raises(ExpError) as exc_info:
            parse_expr("1 + foo(2)")
        err = exc_info.value
        assert err.pos == 4
        assert err.source == "1 + foo(2)"
        assert err.format() == "1 + foo(2)\n    ^"

    def test_error_at_end_of_string(self) -> None:
        with pytest.raises(ExpError) as exc_info:
            parse_expr("1 +")
        assert exc_info.value.pos == 3


class TestExpression:
    def test_keeps_source(self) -> None:
        exp = parse_expression("2 * this.a")
        assert exp.source == "2 * this.a"
        assert str(exp) == "2 * this.a"
        assert isinstance(exp.root, BinaryExpr)

    def test_nodes_are_frozen(self) -> None:
        exp = parse_expression("this.a")
        with pytest.raises(ValidationError):
            exp.source = "other"  # type: ignore[misc]
