"""
Precedence-climbing (Pratt) parser for the entity expression language.

Grammar:
    expr      → opening (binop expr)* ["?" expr ":" expr]
    opening   → NUMBER [SQUARE]                  number, optionally with a unit
              | STRING | "null"
              | ("this" | SQUARE) chain          entity reference
              | IDENT "(" [expr ("," expr)*] ")" function call
              | "(" expr ")"
              | unop expr
              | "{" [expr ("," expr)*] "}"       array literal
              | "{" STRING ":" expr ("," STRING ":" expr)* "}"   map literal
    chain     → ("." IDENT | "(" expr ")")*
    unop      → "-" | "+" | "!"

Binding powers (higher binds tighter):
    unary - + !       50
    ^                 40  (right associative)
    * / %             30
    + -               20
    < <= > >=         12
    == !=             10
    &&                 8
    ||                 6
    ? :                only at the outermost level of an expression

Sub-trees built only from constants are folded into a Literal while parsing.
A sub-tree whose evaluation fails is kept as is so that the error surfaces
at evaluation time with its position.
"""

from __future__ import annotations

import logging

from simkeys.core.config import get_config
from simkeys.core.errors import ExpError
from simkeys.core.expression_lang.evaluator import EvalContext, evaluate
from simkeys.core.expression_lang.operators import get_function
from simkeys.core.expression_lang.tokenizer import Token, TokenKind, tokenize
from simkeys.core.ir.expressions import (
    ArrayLiteral,
    BinaryExpr,
    BinaryOp,
    CondExpr,
    EntityRef,
    Expr,
    Expression,
    FuncCall,
    IndexExpr,
    Literal,
    MapLiteral,
    OutputRef,
    UnaryExpr,
    UnaryOp,
)
from simkeys.core.ir.results import NULL_RESULT, ExpResult
from simkeys.core.units import get_unit

logger = logging.getLogger(__name__)

UNARY_POWER = 50

BINARY_POWERS: dict[str, int] = {
    "^": 40,
    "*": 30,
    "/": 30,
    "%": 30,
    "+": 20,
    "-": 20,
    "<": 12,
    "<=": 12,
    ">": 12,
    ">=": 12,
    "==": 10,
    "!=": 10,
    "&&": 8,
    "||": 6,
}

RIGHT_ASSOCIATIVE = frozenset({"^"})

_UNARY_OPS = {"-": UnaryOp.NEG, "+": UnaryOp.POS, "!": UnaryOp.NOT}


class _Parser:
    """Pratt parser over a token list."""

    def __init__(self, source: str, tokens: list[Token], fold: bool) -> None:
        self.source = source
        self.tokens = tokens
        self.pos = 0
        self.fold = fold

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]  # EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def error(self, message: str, tok: Token | None = None) -> ExpError:
        tok = tok or self.current
        return ExpError(message, self.source, tok.pos)

    def expect_symbol(self, value: str) -> Token:
        tok = self.current
        if not tok.is_symbol(value):
            if tok.kind == TokenKind.EOF:
                raise self.error("Unexpected end of string")
            raise self.error(f'Expected "{value}", got "{tok.value}"')
        return self.advance()

    def match_symbol(self, value: str) -> Token | None:
        if self.current.is_symbol(value):
            return self.advance()
        return None

    # -- Grammar rules --

    def parse_top(self) -> Expr:
        expr = self.parse_expr(0)
        if self.current.kind != TokenKind.EOF:
            raise self.error("Unexpected additional values")
        return expr

    def parse_expr(self, min_power: int) -> Expr:
        left = self.parse_opening()

        while True:
            tok = self.current
            if tok.kind != TokenKind.SYMBOL:
                break

            if tok.value == "?":
                if min_power > 0:
                    break
                left = self.parse_conditional(left)
                break

            power = BINARY_POWERS.get(tok.value)
            if power is None or power <= min_power:
                break

            self.advance()
            next_min = power - 1 if tok.value in RIGHT_ASSOCIATIVE else power
            right = self.parse_expr(next_min)
            node = BinaryExpr(op=BinaryOp(tok.value), left=left, right=right, pos=tok.pos)
            left = self.fold_node(node)

        return left

    def parse_conditional(self, condition: Expr) -> Expr:
        question = self.advance()
        then_expr = self.parse_expr(0)
        self.expect_symbol(":")
        else_expr = self.parse_expr(0)
        return self.fold_node(
            CondExpr(
                condition=condition,
                then_expr=then_expr,
                else_expr=else_expr,
                pos=question.pos,
            )
        )

    def parse_opening(self) -> Expr:
        tok = self.current

        if tok.kind == TokenKind.NUMBER:
            return self.parse_number()

        if tok.kind == TokenKind.STRING:
            self.advance()
            return Literal(result=ExpResult.string(tok.value), pos=tok.pos)

        if tok.kind == TokenKind.SQUARE:
            self.advance()
            if not tok.value:
                raise self.error("Empty entity name", tok)
            return self.parse_chain(EntityRef(name=tok.value, pos=tok.pos))

        if tok.kind == TokenKind.IDENT:
            if tok.value == "this":
                self.advance()
                return self.parse_chain(EntityRef(name=None, pos=tok.pos))
            if tok.value == "null":
                self.advance()
                return Literal(result=NULL_RESULT, pos=tok.pos)
            return self.parse_func_call()

        if tok.kind == TokenKind.SYMBOL:
            if tok.value == "(":
                self.advance()
                inner = self.parse_expr(0)
                self.expect_symbol(")")
                return inner
            if tok.value in _UNARY_OPS:
                self.advance()
                operand = self.parse_expr(UNARY_POWER)
                return self.fold_node(
                    UnaryExpr(op=_UNARY_OPS[tok.value], operand=operand, pos=tok.pos)
                )
            if tok.value == "{":
                return self.parse_collection()

        if tok.kind == TokenKind.EOF:
            raise self.error("Unexpected end of string")
        raise self.error("Can not parse expression")

    def parse_number(self) -> Expr:
        tok = self.advance()
        value = float(tok.value)
        if self.current.kind != TokenKind.SQUARE:
            return Literal(result=ExpResult.number(value), pos=tok.pos)

        unit_tok = self.advance()
        unit = get_unit(unit_tok.value)
        if unit is None:
            raise self.error(f"Unknown unit: {unit_tok.value}", unit_tok)
        return Literal(result=ExpResult.number(unit.to_si(value), unit.unit_type), pos=tok.pos)

    def parse_chain(self, target: Expr) -> Expr:
        """Output lookups and indexing following an entity reference."""
        while True:
            if self.match_symbol("."):
                name_tok = self.current
                if name_tok.kind != TokenKind.IDENT:
                    raise self.error("Expected an output name after '.'")
                self.advance()
                target = OutputRef(target=target, name=name_tok.value, pos=name_tok.pos)
            elif self.current.is_symbol("(") and isinstance(target, (OutputRef, IndexExpr)):
                paren = self.advance()
                index = self.parse_expr(0)
                self.expect_symbol(")")
                target = IndexExpr(target=target, index=index, pos=paren.pos)
            else:
                return target

    def parse_func_call(self) -> Expr:
        name_tok = self.advance()
        spec = get_function(name_tok.value)
        if spec is None:
            raise self.error(f'Unknown function: "{name_tok.value}"', name_tok)
        self.expect_symbol("(")

        args: list[Expr] = []
        if not self.current.is_symbol(")"):
            args.append(self.parse_expr(0))
            while self.match_symbol(","):
                args.append(self.parse_expr(0))
        self.expect_symbol(")")

        if len(args) < spec.min_args:
            raise self.error(
                f'Function "{spec.name}" expects at least {spec.min_args} arguments. '
                f"{len(args)} provided.",
                name_tok,
            )
        if spec.max_args is not None and len(args) > spec.max_args:
            raise self.error(
                f'Function "{spec.name}" expects at most {spec.max_args} arguments. '
                f"{len(args)} provided.",
                name_tok,
            )
        return self.fold_node(FuncCall(name=spec.name, args=tuple(args), pos=name_tok.pos))

    def parse_collection(self) -> Expr:
        brace = self.advance()
        if self.match_symbol("}"):
            return Literal(result=ExpResult.array([]), pos=brace.pos)

        if self.current.kind == TokenKind.STRING and self.peek(1).is_symbol(":"):
            entries: list[tuple[str, Expr]] = []
            seen: set[str] = set()
            while True:
                key_tok = self.current
                if key_tok.kind != TokenKind.STRING:
                    raise self.error("Expected a string key in map literal")
                if key_tok.value in seen:
                    raise self.error(f'Duplicate key in map literal: "{key_tok.value}"', key_tok)
                seen.add(key_tok.value)
                self.advance()
                self.expect_symbol(":")
                entries.append((key_tok.value, self.parse_expr(0)))
                if not self.match_symbol(","):
                    break
            self.expect_symbol("}")
            return self.fold_node(MapLiteral(entries=tuple(entries), pos=brace.pos))

        items = [self.parse_expr(0)]
        while self.match_symbol(","):
            items.append(self.parse_expr(0))
        self.expect_symbol("}")
        return self.fold_node(ArrayLiteral(items=tuple(items), pos=brace.pos))

    # -- Constant folding --

    def fold_node(self, node: Expr) -> Expr:
        """Replace a node whose children are all constants by its value."""
        if not self.fold:
            return node
        children = _children(node)
        if children is None or not all(isinstance(c, Literal) for c in children):
            return node
        try:
            result = evaluate(node, EvalContext())
        except ExpError as err:
            logger.debug("Not folding %s: %s", node, err.message)
            return node
        return Literal(result=result, pos=node.pos)


def _children(node: Expr) -> tuple[Expr, ...] | None:
    if isinstance(node, BinaryExpr):
        return (node.left, node.right)
    if isinstance(node, UnaryExpr):
        return (node.operand,)
    if isinstance(node, CondExpr):
        return (node.condition, node.then_expr, node.else_expr)
    if isinstance(node, FuncCall):
        return node.args
    if isinstance(node, ArrayLiteral):
        return node.items
    if isinstance(node, MapLiteral):
        return tuple(value for _, value in node.entries)
    # References are never constant
    return None


def parse_expr(source: str, fold: bool | None = None) -> Expr:
    """Parse an expression string into an AST.

    Args:
        source: Expression text.
        fold: Fold constant sub-trees; defaults to the configured setting.

    Raises:
        ExpError: If the text is not a valid expression.
    """
    if fold is None:
        fold = get_config().expressions.fold_constants
    tokens = tokenize(source)
    return _Parser(source, tokens, fold).parse_top()


def parse_expression(source: str, fold: bool | None = None) -> Expression:
    """Parse an expression and keep its source text for diagnostics."""
    return Expression(source=source, root=parse_expr(source, fold))
