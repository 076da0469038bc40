"""
simkeys - typed keyword inputs and a unit-aware expression language for
discrete-event simulation models.
"""

from __future__ import annotations

from ._version import __version__
from .core import ir
from .core.errors import ExpError, InputError, SimKeysError

__all__ = [
    "__version__",
    "ir",
    "ExpError",
    "InputError",
    "SimKeysError",
]
