"""
Settings for fefcalc.

Settings are read from an optional ``fefcalc.toml`` and then overridden by
environment variables:

    [parser]
    max_nesting_depth = 64

    [logging]
    level = "WARNING"

Environment overrides:
    FEFCALC_MAX_NESTING_DEPTH
    FEFCALC_LOG_LEVEL
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path

from fefcalc.core.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "fefcalc.toml"
MAX_NESTING_DEPTH_VAR = "FEFCALC_MAX_NESTING_DEPTH"
LOG_LEVEL_VAR = "FEFCALC_LOG_LEVEL"

DEFAULT_MAX_NESTING_DEPTH = 64
# Each nesting level costs a handful of interpreter frames
_NESTING_DEPTH_CEILING = 200

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Runtime settings."""

    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if not 1 <= self.max_nesting_depth <= _NESTING_DEPTH_CEILING:
            raise ConfigError(
                f"max_nesting_depth must be between 1 and {_NESTING_DEPTH_CEILING}, "
                f"got {self.max_nesting_depth}"
            )
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(
                f"Unknown log level '{self.log_level}'. Expected one of: {', '.join(_LOG_LEVELS)}"
            )
        object.__setattr__(self, "log_level", self.log_level.upper())


DEFAULT_SETTINGS = Settings()


def _parse_depth(raw: object, source: str) -> int:
    if isinstance(raw, bool):
        raise ConfigError(f"{source}: max_nesting_depth must be an integer, got {raw!r}")
    try:
        return int(raw)  # type: ignore[call-overload]
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{source}: max_nesting_depth must be an integer, got {raw!r}") from e


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from ``path`` (or ``./fefcalc.toml``) and the environment.

    A missing default file is not an error; an explicitly given path must
    exist.

    Raises:
        ConfigError: If the file cannot be read or a value is invalid.
    """
    settings = DEFAULT_SETTINGS

    config_path = path or Path.cwd() / CONFIG_FILENAME
    if path is not None or config_path.exists():
        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigError(f"Cannot read {config_path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

        parser_data = data.get("parser", {})
        logging_data = data.get("logging", {})
        if "max_nesting_depth" in parser_data:
            settings = replace(
                settings,
                max_nesting_depth=_parse_depth(parser_data["max_nesting_depth"], str(config_path)),
            )
        if "level" in logging_data:
            settings = replace(settings, log_level=str(logging_data["level"]))
        logger.debug("Loaded settings from %s", config_path)

    env_depth = os.environ.get(MAX_NESTING_DEPTH_VAR, "").strip()
    if env_depth:
        settings = replace(settings, max_nesting_depth=_parse_depth(env_depth, MAX_NESTING_DEPTH_VAR))

    env_level = os.environ.get(LOG_LEVEL_VAR, "").strip()
    if env_level:
        settings = replace(settings, log_level=env_level)

    return settings
