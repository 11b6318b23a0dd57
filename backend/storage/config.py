"""Global app settings (editor display, fonts, autosave)."""

import json
from pathlib import Path
from typing import Any, get_args

from pydantic import TypeAdapter, ValidationError

from storied.models import Status

from .core import read_json, write_json
from .errors import EntityValidationError

_CONFIG_DEFAULTS: dict[str, Any] = {
    "app_width_percent": 100,
    "outline_panel_width_percent": 25,
    "autosave_seconds": 30,
    "default_status": "concept",
    "font_settings": {
        "editor":  {"family": "Crimson Text", "size": 18, "style": "normal"},
        "heading": {"family": "Cinzel",       "size": 22, "style": "normal"},
        "ui":      {"family": "Inter",        "size": 14, "style": "normal"},
    },
}

_SCALAR_KEYS = ("app_width_percent", "outline_panel_width_percent", "autosave_seconds", "default_status")

_status = TypeAdapter(Status)


def _config_path(data_dir: Path) -> Path:
    return data_dir / "config.json"


def get_config(data_dir: Path) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config: dict[str, Any] = json.loads(json.dumps(_CONFIG_DEFAULTS))
    stored = read_json(_config_path(data_dir), default={})
    for key in _SCALAR_KEYS:
        if key in stored:
            config[key] = stored[key]
    if "font_settings" in stored:
        for group, vals in stored["font_settings"].items():
            if group in config["font_settings"] and isinstance(vals, dict):
                config["font_settings"][group].update(vals)
    return config


def update_config(data_dir: Path, fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config.

    Scalars are overwritten, font groups merged key-by-key, unknown keys ignored.
    An unknown ``default_status`` raises EntityValidationError and nothing is saved.
    """
    if "default_status" in fields:
        try:
            _status.validate_python(fields["default_status"])
        except ValidationError:
            raise EntityValidationError(
                f"default_status must be one of {', '.join(get_args(Status))}, "
                f"got {fields['default_status']!r}"
            ) from None
    config = get_config(data_dir)
    for key in _SCALAR_KEYS:
        if key in fields:
            config[key] = fields[key]
    if "font_settings" in fields:
        for group, vals in fields["font_settings"].items():
            if group in config["font_settings"] and isinstance(vals, dict):
                config["font_settings"][group].update(vals)
    write_json(_config_path(data_dir), config)
    return config
