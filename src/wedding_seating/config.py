"""
Configuration loading.

Reads a YAML file with optional ``criteria`` and ``settings`` sections
and turns them into ``OptimizationCriteria`` and ``OptimizerSettings``.
Keys left out keep their dataclass defaults.

    criteria:
      mix_guest_sides: true
      balance_table_ages: false
    settings:
      population_size: 60
      max_generations: 150
      seed: 7
"""
from __future__ import annotations

from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .models import OptimizationCriteria, OptimizerSettings


class ConfigurationError(Exception):
    """Raised when configuration is invalid"""
    pass


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from YAML file"""
    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration root must be a mapping")
    return config


def _apply(section: str, values: Any, target):
    if values is None:
        return target
    if not isinstance(values, dict):
        raise ConfigurationError(f"'{section}' must be a mapping")
    known = {f.name for f in fields(target)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown {section} keys: {', '.join(unknown)}")
    for key, value in values.items():
        if isinstance(getattr(target, key), bool) and not isinstance(value, bool):
            raise ConfigurationError(f"{section}.{key} must be true or false")
    return replace(target, **values)


def parse_config(
    config: Dict[str, Any],
    criteria: Optional[OptimizationCriteria] = None,
    settings: Optional[OptimizerSettings] = None,
) -> Tuple[OptimizationCriteria, OptimizerSettings]:
    """Merge a loaded configuration over the given (or default) criteria and settings."""
    criteria = _apply("criteria", config.get("criteria"), criteria or OptimizationCriteria())
    settings = _apply("settings", config.get("settings"), settings or OptimizerSettings())
    try:
        settings.validate()
    except ValueError as e:
        raise ConfigurationError(str(e))
    return criteria, settings


def load_optimizer_config(config_path: Union[str, Path]) -> Tuple[OptimizationCriteria, OptimizerSettings]:
    """Load criteria and settings from a YAML file."""
    return parse_config(load_config(config_path))
