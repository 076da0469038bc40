"""
Value handles and output chains.
"""

from simkeys.core.values.chain import OutputChain
from simkeys.core.values.handles import (
    USER_SEQUENCE,
    AttributeHandle,
    ExpressionHandle,
    InputHandle,
    OutputHandle,
    OutputSpec,
    ValueHandle,
    output,
)

__all__ = [
    "USER_SEQUENCE",
    "AttributeHandle",
    "ExpressionHandle",
    "InputHandle",
    "OutputChain",
    "OutputHandle",
    "OutputSpec",
    "ValueHandle",
    "output",
]
