"""
Expression AST for the entity expression language.

Supports:
- Arithmetic: +, -, *, /, %, ^ with unit-type propagation
- Comparison: ==, !=, <, >, <=, >=
- Logic: &&, ||, !
- Conditionals: cond ? a : b
- Entity references: this, [Queue1]
- Output chains: [Queue1].NumberInProgress, this.obj.Name
- Function calls: max(a, b), sin(30[deg])
- Array and map literals: {1, 2, 3}, {"a": 1[m]}
- Indexing: this.Values(2), this.Table("key")
- Number literals with units: 5[m], 1.5e3[km/h]

Nodes are frozen; children are stored in tuples so a parsed tree can be
shared and evaluated concurrently. Every node records ``pos``, the offset
of its defining token in the source text.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, SkipValidation

from simkeys.core.ir.results import ExpResult

# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class BinaryOp(StrEnum):
    """Binary operators for expressions."""

    # Arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    POW = "^"
    # Comparison
    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    # Logical
    AND = "&&"
    OR = "||"


class UnaryOp(StrEnum):
    """Unary operators for expressions."""

    NEG = "-"
    POS = "+"
    NOT = "!"


# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------


class Literal(BaseModel):
    """A constant result: number with unit, string or null."""

    result: SkipValidation[ExpResult] = Field(description="The constant value")
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return str(self.result)


class EntityRef(BaseModel):
    """
    Reference to an entity, resolved by name at evaluation time.

    Examples:
        - EntityRef(name=None) → this
        - EntityRef(name="Queue1") → [Queue1]
    """

    name: str | None = Field(default=None, description="Entity name, None for 'this'")
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.name is None:
            return "this"
        return f"[{self.name}]"


class OutputRef(BaseModel):
    """An output looked up on the entity produced by ``target``."""

    target: Expr
    name: str = Field(description="Output or attribute name")
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.target}.{self.name}"


class IndexExpr(BaseModel):
    """Array element (1-based) or map entry: target(index)."""

    target: Expr
    index: Expr
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.target}({self.index})"


class BinaryExpr(BaseModel):
    """Binary operation: left op right."""

    op: BinaryOp
    left: Expr
    right: Expr
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.left} {self.op.value} {self.right})"


class UnaryExpr(BaseModel):
    """Unary operation: op operand."""

    op: UnaryOp
    operand: Expr
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.op.value}{self.operand}"


class CondExpr(BaseModel):
    """Conditional expression: condition ? then_expr : else_expr."""

    condition: Expr
    then_expr: Expr
    else_expr: Expr
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.condition} ? {self.then_expr} : {self.else_expr})"


class FuncCall(BaseModel):
    """Built-in function call: name(arg1, arg2, ...)."""

    name: str = Field(description="Function name")
    args: tuple[Expr, ...] = Field(default=(), description="Arguments")
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        args_str = ", ".join(str(a) for a in self.args)
        return f"{self.name}({args_str})"


class ArrayLiteral(BaseModel):
    """Array literal: {a, b, c}."""

    items: tuple[Expr, ...] = ()
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return "{" + ", ".join(str(i) for i in self.items) + "}"


class MapLiteral(BaseModel):
    """Map literal with string keys: {"a": 1, "b": 2}."""

    entries: tuple[tuple[str, Expr], ...] = ()
    pos: int = 0

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return "{" + ", ".join(f'"{k}": {v}' for k, v in self.entries) + "}"


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Expr = (
    Literal
    | EntityRef
    | OutputRef
    | IndexExpr
    | BinaryExpr
    | UnaryExpr
    | CondExpr
    | FuncCall
    | ArrayLiteral
    | MapLiteral
)


class Expression(BaseModel):
    """A parsed expression together with the text it came from."""

    source: str
    root: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.source


# Rebuild models for recursive forward references
OutputRef.model_rebuild()
IndexExpr.model_rebuild()
BinaryExpr.model_rebuild()
UnaryExpr.model_rebuild()
CondExpr.model_rebuild()
FuncCall.model_rebuild()
ArrayLiteral.model_rebuild()
MapLiteral.model_rebuild()
Expression.model_rebuild()
