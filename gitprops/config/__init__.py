"""Option models, config file loading and the settings snapshot."""

from .loader import LoadedConfig, load_config, merge_overrides, substitute_env_vars
from .snapshot import (
    ProjectContext,
    SettingsSnapshot,
    build_snapshot,
    parse_settings,
    resolve_deferred,
)
from .typed_models import (
    FilterSettings,
    FormatSettings,
    GeneralSettings,
    GitDescribeConfig,
    GitSettings,
    OutputFormat,
    OutputSettings,
    PluginSettings,
)

__all__ = [
    "FilterSettings",
    "FormatSettings",
    "GeneralSettings",
    "GitDescribeConfig",
    "GitSettings",
    "LoadedConfig",
    "OutputFormat",
    "OutputSettings",
    "PluginSettings",
    "ProjectContext",
    "SettingsSnapshot",
    "build_snapshot",
    "load_config",
    "merge_overrides",
    "parse_settings",
    "resolve_deferred",
    "substitute_env_vars",
]
