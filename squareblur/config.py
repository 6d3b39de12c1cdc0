"""Optional user settings, loaded from a YAML file and checked against a schema."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jsonschema import Draft7Validator

from .compose import BLUR_RADIUS, RESAMPLE, RESAMPLE_FILTERS
from .errors import ConfigError

ENV_VAR = "SQUAREBLUR_CONFIG"
DEFAULT_PATH = Path("~/.config/squareblur/config.yaml")

SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "squareblur settings",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "blur_radius": {"type": "number", "minimum": 0},
        "resample": {"type": "string", "enum": sorted(RESAMPLE_FILTERS)},
        "backup_dir": {"type": "string", "minLength": 1},
        "confirm": {"type": "boolean"},
    },
}


@dataclass(frozen=True)
class Settings:
    blur_radius: float = BLUR_RADIUS
    resample: str = RESAMPLE
    backup_dir: Optional[Path] = None
    confirm: bool = False

    def override(self, **values: Any) -> "Settings":
        """Copy with every non-None value replaced."""
        return replace(self, **{k: v for k, v in values.items() if v is not None})


def config_path() -> Path:
    env = os.environ.get(ENV_VAR)
    return Path(env).expanduser() if env else DEFAULT_PATH.expanduser()


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigError(f"Could not read config {str(path)!r}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config {str(path)!r}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {str(path)!r} must be a mapping, got {type(data).__name__}")
    return data


def load_settings(path: str | os.PathLike | None = None) -> Settings:
    """Load settings from ``path`` (or the default location); missing file means defaults."""
    cfg_path = Path(path).expanduser() if path is not None else config_path()
    data = _read_yaml(cfg_path)

    errors = sorted(Draft7Validator(SCHEMA).iter_errors(data), key=lambda e: list(e.path))
    if errors:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.path) or '<root>'}: {err.message}" for err in errors
        )
        raise ConfigError(f"Config {str(cfg_path)!r} is invalid: {details}")

    if "backup_dir" in data:
        data["backup_dir"] = Path(data["backup_dir"]).expanduser()
    return Settings(**data)
