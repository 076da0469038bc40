"""
Unit-aware expression language for entity inputs and outputs.

Usage:
    from simkeys.core.expression_lang import evaluate_expression, parse_expression

    exp = parse_expression("[Queue1].QueueLength * 2[s]")
    result = evaluate_expression(exp, this_ent=server, sim_time=10.0)
"""

from simkeys.core.expression_lang.evaluator import EvalContext, evaluate, evaluate_expression
from simkeys.core.expression_lang.operators import FUNCTIONS, FunctionSpec, get_function
from simkeys.core.expression_lang.parser import parse_expr, parse_expression
from simkeys.core.expression_lang.tokenizer import Token, TokenKind, tokenize
from simkeys.core.expression_lang.validator import infer_unit_type, validate_expression

__all__ = [
    "EvalContext",
    "FUNCTIONS",
    "FunctionSpec",
    "Token",
    "TokenKind",
    "evaluate",
    "evaluate_expression",
    "get_function",
    "infer_unit_type",
    "parse_expr",
    "parse_expression",
    "tokenize",
    "validate_expression",
]
