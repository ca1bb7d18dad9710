"""Settings loading and validation utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple
import copy

import yaml

from .bom_grams import GRAM_SOURCES
from .units import RECOGNIZED_UNITS, normalize_unit


DEFAULT_SETTINGS: Dict = {
    "catalog": {"path": "data/catalog.yaml"},
    "bom": {"gram_source": "component"},
    "units": {"aliases": {}},
    "logging": {"level": "INFO", "file": None},
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base; lists are replaced, not merged."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_yaml_file(path: Path) -> dict:
    """Load a YAML file and return an object (empty dict for empty files)."""
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_settings(profile: str, settings_dir: Path) -> dict:
    """
    Load settings for a profile.

    Defaults are overlaid with base.yaml (if present) and then with
    <profile>.yaml (if present and profile != "base").
    """
    settings = copy.deepcopy(DEFAULT_SETTINGS)

    base_path = settings_dir / "base.yaml"
    if base_path.exists():
        settings = deep_merge(settings, load_yaml_file(base_path))
    if profile == "base":
        return settings

    override_path = settings_dir / f"{profile}.yaml"
    if override_path.exists():
        settings = deep_merge(settings, load_yaml_file(override_path))
    return settings


def _section(settings: Dict, name: str) -> Dict:
    """Settings section as a dict ({} when left empty or not a mapping)."""
    section = settings.get(name)
    return section if isinstance(section, dict) else {}


def get_unit_aliases(settings: Dict) -> Dict[str, str]:
    aliases = _section(settings, "units").get("aliases")
    return dict(aliases) if isinstance(aliases, dict) else {}


def get_gram_source(settings: Dict) -> str:
    return _section(settings, "bom").get("gram_source") or "component"


def get_catalog_path(settings: Dict) -> str:
    return _section(settings, "catalog").get("path") or DEFAULT_SETTINGS["catalog"]["path"]


def get_logging_options(settings: Dict) -> Tuple[str, Optional[str]]:
    """Log level and file; an invalid level falls back to INFO."""
    section = _section(settings, "logging")
    level = str(section.get("level") or "INFO").upper()
    if level not in LOG_LEVELS:
        level = "INFO"
    return level, section.get("file")


def validate_settings(settings: Dict) -> List[str]:
    """Validate settings structure and values."""
    errors: List[str] = []

    for name in DEFAULT_SETTINGS:
        if name in settings and not isinstance(settings[name], dict):
            errors.append(f"{name} must be a mapping (got {type(settings[name]).__name__})")

    gram_source = get_gram_source(settings)
    if gram_source not in GRAM_SOURCES:
        errors.append(
            f"bom.gram_source invalid: '{gram_source}' (expected one of {', '.join(GRAM_SOURCES)})"
        )

    aliases = _section(settings, "units").get("aliases") or {}
    if not isinstance(aliases, dict):
        errors.append("units.aliases must be a mapping of alias -> unit")
    else:
        for alias, unit in aliases.items():
            if normalize_unit(unit) not in RECOGNIZED_UNITS:
                errors.append(f"units.aliases.{alias} points at unknown unit '{unit}'")

    level = str(_section(settings, "logging").get("level") or "INFO").upper()
    if level not in LOG_LEVELS:
        errors.append(f"logging.level invalid: '{level}'")

    return errors
