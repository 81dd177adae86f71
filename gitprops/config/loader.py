from __future__ import annotations

import copy
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, NamedTuple, Optional

import yaml

from gitprops.exceptions import ConfigValidationError
from .snapshot import parse_settings
from .typed_models import PluginSettings

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")

PROJECT_SECTION = "project"


class LoadedConfig(NamedTuple):
    settings: PluginSettings
    project: Dict[str, Any]


def substitute_env_vars(value: Any, config_path: Optional[str] = None) -> Any:
    """Recursively expand ${VAR} and ${VAR:default} in string values.

    Raises:
        ConfigValidationError: If a referenced variable is unset and has no default
    """
    if isinstance(value, str):

        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2)

            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default_value is not None:
                return default_value
            raise ConfigValidationError(
                f"Environment variable '{var_name}' is not set and no default provided",
                config_path=config_path,
                key=var_name,
            )

        return _ENV_VAR_PATTERN.sub(replacer, value)

    if isinstance(value, dict):
        return {k: substitute_env_vars(v, config_path) for k, v in value.items()}

    if isinstance(value, list):
        return [substitute_env_vars(item, config_path) for item in value]

    return value


def merge_overrides(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``overrides`` over ``base``; nested mappings merge, leaves replace."""
    merged = copy.deepcopy(dict(base))
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_overrides(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: str) -> Dict[str, Any]:
    logger.info(f"Loading config from {path}")

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigValidationError("Config file not found", config_path=path)

    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            cfg = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in config file: {exc}", config_path=path) from exc

    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ConfigValidationError("Config must be a YAML dictionary/object", config_path=path)

    return cfg


def load_config(
    path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    enable_env_substitution: bool = True,
) -> LoadedConfig:
    """Load option groups from a YAML file and apply overrides.

    Args:
        path: Config YAML file; None means conventions only
        overrides: Option tree merged over the file (e.g. CLI flags)
        enable_env_substitution: Expand ${VAR} references in the file

    Returns:
        LoadedConfig with validated settings and the raw ``project`` section
    """
    raw: Dict[str, Any] = _read_yaml(path) if path else {}
    if enable_env_substitution:
        raw = substitute_env_vars(raw, config_path=path)
    if overrides:
        raw = merge_overrides(raw, overrides)

    project = raw.pop(PROJECT_SECTION, None) or {}
    if not isinstance(project, dict):
        raise ConfigValidationError(
            "project section must be a mapping", config_path=path, key=PROJECT_SECTION
        )

    settings = parse_settings(raw, config_path=path)
    return LoadedConfig(settings=settings, project=project)
