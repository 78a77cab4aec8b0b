"""Settings for pmon: defaults, JSON config file and command-line overrides."""

from __future__ import annotations

import json
import math
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from pmon.averaging import STRATEGY_NAMES
from pmon.log import get_logger

logger = get_logger("config")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised when a setting has an invalid value."""


@dataclass(frozen=True)
class Settings:
    interval: float = 1.0
    strategy: str = "approx"
    stale_after: int = 3
    log_level: str = "WARNING"
    log_file: str | None = None
    tui: bool = False

    def validate(self) -> Settings:
        if not math.isfinite(self.interval) or self.interval <= 0:
            raise ConfigError(f"interval must be a positive number, got {self.interval}")
        if self.interval > threading.TIMEOUT_MAX:
            raise ConfigError(f"interval must be <= {threading.TIMEOUT_MAX}, got {self.interval}")
        if self.strategy not in STRATEGY_NAMES:
            raise ConfigError(f"strategy must be one of {STRATEGY_NAMES}, got {self.strategy!r}")
        if self.stale_after < 1:
            raise ConfigError(f"stale_after must be >= 1, got {self.stale_after}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")
        return self

    def merged(self, overrides: Mapping[str, Any]) -> Settings:
        """Return a copy with every known, non-None key of ``overrides`` applied."""
        known = {f.name: f for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                logger.debug("Ignoring unknown setting %r", key)
                continue
            if value is None:
                continue
            changes[key] = _coerce(key, value, type(getattr(Settings(), key)))
        return replace(self, **changes)


def _coerce(key: str, value: Any, kind: type) -> Any:
    if kind is type(None):
        return str(value)
    if kind is bool:
        if isinstance(value, bool):
            return value
        raise ConfigError(f"{key} must be a boolean, got {value!r}")
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be {kind.__name__}, got {value!r}")
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"{key} must be a whole number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ConfigError(f"{key} must be {kind.__name__}, got {value!r}") from exc


def default_config_path() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        base = Path(xdg)
    else:
        base = Path.home() / ".config"
    return base / "pmon" / "config.json"


def load_config_file(path: Path | None = None) -> dict[str, Any]:
    """Read the JSON config file; missing or malformed files yield ``{}``."""
    p = path or default_config_path()
    if not p.exists():
        return {}
    try:
        with open(p, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", p, exc)
        return {}
    if not isinstance(obj, dict):
        logger.warning("Ignoring config file %s: expected a JSON object", p)
        return {}
    return obj


def load_settings(
    overrides: Mapping[str, Any] | None = None, path: Path | None = None
) -> Settings:
    """Defaults, then the config file, then ``overrides``."""
    settings = Settings().merged(load_config_file(path))
    if overrides:
        settings = settings.merged(overrides)
    return settings.validate()
