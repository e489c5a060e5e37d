"""YAML configuration.

    log:
      level: WARNING
    remote:
      data: board.yaml
      latency: 0.0
    engine:
      dispatch_timeout: null

Every key is optional. Unknown sections are ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from optikan.errors import ConfigError

DEFAULT_CONFIG = "optikan.yaml"
DEFAULT_DATA = "board.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    log_level: str = "WARNING"
    data_path: Path = Path(DEFAULT_DATA)
    latency: float = 0.0
    dispatch_timeout: float | None = None

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level)


def _section(data: dict, name: str) -> dict:
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section


def _number(value: Any, name: str, allow_none: bool = False) -> float | None:
    if value is None and allow_none:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(f"{name} must be a non-negative number")
    return float(value)


def parse_config(data: dict | None, base: Path | None = None) -> Config:
    """Build a Config from parsed YAML. Relative data paths resolve against base."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("config must be a mapping")
    config = Config()

    log = _section(data, "log")
    if "level" in log:
        level = str(log["level"]).upper()
        if level not in LOG_LEVELS:
            raise ConfigError(f"log.level must be one of {', '.join(LOG_LEVELS)}")
        config.log_level = level

    remote = _section(data, "remote")
    if "data" in remote:
        if not isinstance(remote["data"], str) or not remote["data"]:
            raise ConfigError("remote.data must be a file path")
        config.data_path = Path(remote["data"])
    if "latency" in remote:
        config.latency = _number(remote["latency"], "remote.latency")

    engine = _section(data, "engine")
    if "dispatch_timeout" in engine:
        config.dispatch_timeout = _number(engine["dispatch_timeout"], "engine.dispatch_timeout", allow_none=True)

    if base is not None and not config.data_path.is_absolute():
        config.data_path = base / config.data_path
    return config


def load_config(path: str | Path | None = None) -> Config:
    """Load config from path, or from optikan.yaml in the working directory.

    An explicit path must exist; the default file is optional.
    """
    if path is None:
        path = Path(DEFAULT_CONFIG)
        if not path.exists():
            return Config()
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    return parse_config(data, base=path.parent)
