"""
Runtime configuration for simkeys.

Settings come from an optional ``simkeys.toml`` file:

    [inputs]
    max_stored_tokens = 1000
    allow_missing_units = false

    [expressions]
    fold_constants = true

    [logging]
    level = "WARNING"

The SIMKEYS_LOG_LEVEL environment variable overrides ``logging.level``.

Usage:
    from simkeys.core.config import get_config, load_config, set_config

    set_config(load_config(Path("simkeys.toml")))
    if get_config().expressions.fold_constants:
        ...
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILENAME = "simkeys.toml"
LOG_LEVEL_ENV_VAR = "SIMKEYS_LOG_LEVEL"

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class InputsConfig:
    """Keyword input behaviour."""

    max_stored_tokens: int = 1000  # tokens above this are not kept for re-display
    allow_missing_units: bool = False  # read unitless values as SI and log a warning


@dataclass
class ExpressionsConfig:
    """Expression parser behaviour."""

    fold_constants: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class SimKeysConfig:
    """Complete simkeys configuration."""

    inputs: InputsConfig = field(default_factory=InputsConfig)
    expressions: ExpressionsConfig = field(default_factory=ExpressionsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def log_level(self) -> int:
        return logging.getLevelName(self.logging.level)


def _resolve_log_level(configured: str) -> str:
    env_value = os.environ.get(LOG_LEVEL_ENV_VAR, "").upper().strip()
    if not env_value:
        return configured.upper()
    if env_value in _VALID_LEVELS:
        return env_value
    logging.getLogger(__name__).warning(
        "Unknown %s value '%s'. Valid values: %s. Using %s.",
        LOG_LEVEL_ENV_VAR,
        env_value,
        ", ".join(_VALID_LEVELS),
        configured,
    )
    return configured.upper()


def load_config(path: Path | None = None) -> SimKeysConfig:
    """Load configuration from a TOML file.

    Args:
        path: File to read. When None, ``simkeys.toml`` in the current
            directory is used if present, otherwise defaults apply.

    Returns:
        The loaded configuration with environment overrides applied.
    """
    data: dict = {}
    if path is None:
        candidate = Path.cwd() / CONFIG_FILENAME
        if candidate.exists():
            path = candidate
    if path is not None:
        data = tomllib.loads(path.read_text(encoding="utf-8"))

    inputs_data = data.get("inputs", {})
    expressions_data = data.get("expressions", {})
    logging_data = data.get("logging", {})

    inputs = InputsConfig(
        max_stored_tokens=inputs_data.get("max_stored_tokens", 1000),
        allow_missing_units=inputs_data.get("allow_missing_units", False),
    )
    expressions = ExpressionsConfig(
        fold_constants=expressions_data.get("fold_constants", True),
    )
    log_config = LoggingConfig(
        level=_resolve_log_level(logging_data.get("level", "WARNING")),
    )
    return SimKeysConfig(inputs=inputs, expressions=expressions, logging=log_config)


_config: SimKeysConfig | None = None


def get_config() -> SimKeysConfig:
    """Return the process-wide configuration, loading defaults on first use."""
    global _config
    if _config is None:
        _config = SimKeysConfig()
    return _config


def set_config(config: SimKeysConfig | None) -> None:
    """Replace the process-wide configuration (None restores defaults)."""
    global _config
    _config = config
