"""
Settings loading utilities.

Supports environment variable interpolation and config inheritance through a
``base.yaml`` next to the loaded file.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from featurerunner.config.settings import RunnerSettings

# Keys accepted at the top level of a settings file
_SECTION = "runner"


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, dict):
        msg = f"Settings file {path} must contain a mapping, got {type(data).__name__}"
        raise ValueError(msg)
    return _process_config_values(data) if data else {}


def load_settings(
    config_path: Path | None = None,
    base_path: Path | None = None,
) -> RunnerSettings:
    """
    Load runner settings from YAML file(s).

    Settings may sit at the top level or under a ``runner:`` section:

        runner:
          log_level: debug
          resources_root: ${RESOURCES:./tests/resources}

    Args:
        config_path: Settings file; None returns the defaults.
        base_path: Optional base settings for inheritance. Defaults to a
            base.yaml in the same directory, if present.

    Returns:
        Validated RunnerSettings.

    Raises:
        ValueError: If the merged settings are invalid.
    """
    if config_path is None:
        return RunnerSettings()

    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        potential_base = config_path.parent / "base.yaml"
        is_self = potential_base.resolve() == config_path.resolve()
        base_data = load_yaml(potential_base) if potential_base.exists() and not is_self else {}

    merged = _deep_merge(base_data, load_yaml(config_path))
    section = merged.get(_SECTION, merged)
    if not isinstance(section, dict):
        msg = f"'{_SECTION}' section must be a mapping"
        raise ValueError(msg)

    try:
        return RunnerSettings(**section)
    except ValidationError as e:
        msg = f"Invalid runner settings in {config_path}: {e}"
        raise ValueError(msg) from e
