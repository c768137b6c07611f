"""Configuration loading."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .config_models import WayfinderConfig


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / "config.yaml",
        Path.home() / ".wayfinder" / "config.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config_model(config_path: Optional[Path] = None) -> WayfinderConfig:
    """Load configuration as Pydantic model with validation.

    Missing file means defaults; bad YAML or invalid values raise ValueError.
    """
    data = {}

    path = config_path or find_config()
    if path and path.exists():
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

    try:
        return WayfinderConfig.from_dict(data)
    except ValidationError as e:
        raise ValueError(f"Config validation failed: {e}") from e
