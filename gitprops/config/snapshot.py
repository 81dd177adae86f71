"""Immutable settings snapshot assembled once per build.

The snapshot is the only thing the extraction adapter ever reads. Building
it resolves every deferred option, applies conventions that depend on the
project (e.g. ``<project_dir>/.git``) and fails fast with a
ConfigValidationError before any extraction is attempted.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from gitprops.exceptions import ConfigValidationError
from .typed_models import GitDescribeConfig, OutputFormat, PluginSettings

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILE = Path("build") / "git.properties"


@dataclass(frozen=True)
class ProjectContext:
    """Name, base directory and version of the project being built."""

    name: str
    base_dir: Path
    version: str = "unspecified"


@dataclass(frozen=True)
class SettingsSnapshot:
    project_name: str
    project_dir: Path
    project_version: str

    verbose: bool
    skip: bool
    build_output_timestamp: Optional[datetime]

    dot_git_directory: Path
    git_describe: GitDescribeConfig
    abbrev_length: int
    fail_on_no_git_directory: bool
    fail_on_unable_to_extract_repo_info: bool
    use_native_git: bool
    native_git_timeout_in_ms: int
    evaluate_on_commit: str
    stay_offline: bool
    use_branch_name_from_build_environment: bool

    property_prefix: str
    date_format: str
    date_format_time_zone: str

    include_only_properties: Tuple[str, ...]
    exclude_properties: Tuple[str, ...]

    generate_output_file: bool
    output_file: Path
    output_format: OutputFormat
    escape_unicode: bool
    encoding: str

    @property
    def prefix_dot(self) -> str:
        """Property namespace with its separator, or "" for an empty prefix."""
        return f"{self.property_prefix}." if self.property_prefix else ""


def resolve_deferred(value: Any) -> Any:
    """Resolve zero-argument providers nested anywhere in an option tree."""
    if callable(value):
        return resolve_deferred(value())
    if isinstance(value, Mapping):
        return {key: resolve_deferred(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_deferred(item) for item in value]
    return value


def parse_settings(
    options: Optional[Mapping[str, Any]], config_path: Optional[str] = None
) -> PluginSettings:
    """Validate a raw option tree into PluginSettings."""
    try:
        return PluginSettings.model_validate(resolve_deferred(options or {}))
    except ValidationError as exc:
        first = exc.errors()[0]
        key = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigValidationError(
            f"Invalid option {key or '<root>'}: {first.get('msg')}",
            config_path=config_path,
            key=key or None,
        ) from exc


def _source_date_epoch() -> Optional[datetime]:
    raw = os.environ.get("SOURCE_DATE_EPOCH")
    if not raw:
        return None
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except ValueError as exc:
        raise ConfigValidationError(
            f"SOURCE_DATE_EPOCH must be an integer, got {raw!r}",
            key="SOURCE_DATE_EPOCH",
        ) from exc


def _anchor(path: Optional[Path], base_dir: Path, default: Path) -> Path:
    target = Path(path) if path is not None else default
    if not target.is_absolute():
        target = base_dir / target
    return target


def build_snapshot(
    options: Union[PluginSettings, Mapping[str, Any], None],
    project: ProjectContext,
    config_path: Optional[str] = None,
) -> SettingsSnapshot:
    """Assemble the immutable snapshot for one build.

    Args:
        options: Parsed PluginSettings or a raw (possibly deferred) option tree
        project: Project the properties are generated for
        config_path: Config file the options came from, for error context

    Raises:
        ConfigValidationError: if an option is invalid or a required one is absent
    """
    if isinstance(options, PluginSettings):
        settings = options
    else:
        settings = parse_settings(options, config_path=config_path)

    if not project.name or not str(project.name).strip():
        raise ConfigValidationError("Project name is required", config_path=config_path, key="project.name")
    if project.base_dir is None:
        raise ConfigValidationError("Project directory is required", config_path=config_path, key="project.base_dir")

    base_dir = Path(project.base_dir).resolve()
    git = settings.git
    fmt = settings.format

    snapshot = SettingsSnapshot(
        project_name=str(project.name).strip(),
        project_dir=base_dir,
        project_version=str(project.version),
        verbose=settings.general.verbose,
        skip=settings.general.skip,
        build_output_timestamp=settings.general.build_output_timestamp or _source_date_epoch(),
        dot_git_directory=_anchor(git.dot_git_directory, base_dir, Path(".git")),
        git_describe=git.git_describe,
        abbrev_length=git.abbrev_length,
        fail_on_no_git_directory=git.fail_on_no_git_directory,
        fail_on_unable_to_extract_repo_info=git.fail_on_unable_to_extract_repo_info,
        use_native_git=git.use_native_git,
        native_git_timeout_in_ms=git.native_git_timeout_in_ms,
        evaluate_on_commit=git.evaluate_on_commit,
        stay_offline=git.stay_offline,
        use_branch_name_from_build_environment=git.use_branch_name_from_build_environment,
        property_prefix=fmt.property_prefix,
        date_format=fmt.date_format,
        date_format_time_zone=fmt.date_format_time_zone,
        include_only_properties=tuple(settings.filter.include_only_properties),
        exclude_properties=tuple(settings.filter.exclude_properties),
        generate_output_file=settings.output.generate_output_file,
        output_file=_anchor(settings.output.output_file, base_dir, DEFAULT_OUTPUT_FILE),
        output_format=settings.output.output_format,
        escape_unicode=settings.output.escape_unicode,
        encoding=settings.output.encoding,
    )
    logger.debug(
        "Built settings snapshot for %s (git_dir=%s, prefix=%r)",
        snapshot.project_name,
        snapshot.dot_git_directory,
        snapshot.property_prefix,
    )
    return snapshot
