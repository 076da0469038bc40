"""Core simkeys functionality: units, record tokenizing, entities and errors."""

from . import ir
from .config import SimKeysConfig, get_config, load_config, set_config
from .entity import Entity, EntityGroup, EntityNamespace
from .errors import ExpError, InputError, ParseContext, SimKeysError
from .keyword_index import KeywordIndex, tokenize
from .units import UnitType, get_unit, get_unit_type

__all__ = [
    "ir",
    "Entity",
    "EntityGroup",
    "EntityNamespace",
    "ExpError",
    "InputError",
    "KeywordIndex",
    "ParseContext",
    "SimKeysConfig",
    "SimKeysError",
    "UnitType",
    "get_config",
    "get_unit",
    "get_unit_type",
    "load_config",
    "set_config",
    "tokenize",
]
