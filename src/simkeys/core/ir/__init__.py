"""
Data types shared by the expression parser, evaluator and value handles.
"""

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
from simkeys.core.ir.results import NULL_RESULT, ExpResult, ResultKind, format_number

__all__ = [
    "ArrayLiteral",
    "BinaryExpr",
    "BinaryOp",
    "CondExpr",
    "EntityRef",
    "ExpResult",
    "Expr",
    "Expression",
    "FuncCall",
    "IndexExpr",
    "Literal",
    "MapLiteral",
    "NULL_RESULT",
    "OutputRef",
    "ResultKind",
    "UnaryExpr",
    "UnaryOp",
    "format_number",
]
