"""Typed option models using Pydantic for validation.

Options are grouped into namespaces (general, git, format, filter, output)
that together form one logical settings object. Every field has a
convention (default); validators reject bad values when the model is
built so that nothing downstream has to re-check them.
"""

from __future__ import annotations

import codecs
import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_ABBREV_LENGTH = 4
MAX_ABBREV_LENGTH = 40


class OutputFormat(str, Enum):
    properties = "properties"
    json = "json"
    yml = "yml"

    @classmethod
    def choices(cls) -> List[str]:
        return [member.value for member in cls]


class _OptionGroup(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class GitDescribeConfig(_OptionGroup):
    """Options forwarded to ``git describe``."""

    skip: bool = False
    always: bool = True
    dirty: str = "-dirty"
    match: str = "*"
    abbrev: int = 7
    tags: bool = False
    force_long_format: bool = False

    @field_validator("abbrev")
    @classmethod
    def _validate_abbrev(cls, value: int) -> int:
        # git describe accepts 0 (suppress the long format suffix)
        if value < 0 or value > MAX_ABBREV_LENGTH:
            raise ValueError(f"abbrev must be between 0 and {MAX_ABBREV_LENGTH}")
        return value


class GeneralSettings(_OptionGroup):
    verbose: bool = False
    skip: bool = False
    build_output_timestamp: Optional[Union[datetime, int]] = None

    @field_validator("build_output_timestamp")
    @classmethod
    def _normalize_timestamp(cls, value):
        if value is None:
            return None
        if isinstance(value, int):
            return datetime.fromtimestamp(value, tz=timezone.utc)
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class GitSettings(_OptionGroup):
    dot_git_directory: Optional[Path] = None
    git_describe: GitDescribeConfig = Field(default_factory=GitDescribeConfig)
    abbrev_length: int = 7
    fail_on_no_git_directory: bool = True
    fail_on_unable_to_extract_repo_info: bool = True
    use_native_git: bool = False
    evaluate_on_commit: str = "HEAD"
    native_git_timeout_in_ms: int = 30000
    stay_offline: bool = True
    use_branch_name_from_build_environment: bool = True

    @field_validator("abbrev_length")
    @classmethod
    def _validate_abbrev_length(cls, value: int) -> int:
        # git never abbreviates below four hex digits
        if value < MIN_ABBREV_LENGTH:
            raise ValueError(f"abbrev_length must be at least {MIN_ABBREV_LENGTH}")
        if value > MAX_ABBREV_LENGTH:
            raise ValueError(f"abbrev_length must not exceed {MAX_ABBREV_LENGTH}")
        return value

    @field_validator("native_git_timeout_in_ms")
    @classmethod
    def _validate_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("native_git_timeout_in_ms must be a positive duration")
        return value

    @field_validator("evaluate_on_commit")
    @classmethod
    def _validate_commit_ref(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("evaluate_on_commit must not be empty")
        # Refuse anything git would read as a command line option
        if value.startswith("-"):
            raise ValueError(f"evaluate_on_commit is not a valid reference: {value}")
        return value


class FormatSettings(_OptionGroup):
    property_prefix: str = "git"
    date_format: str = "%Y-%m-%dT%H:%M:%S%z"
    date_format_time_zone: str = ""

    @field_validator("property_prefix")
    @classmethod
    def _trim_prefix(cls, value: str) -> str:
        return value.strip()

    @field_validator("date_format_time_zone")
    @classmethod
    def _validate_time_zone(cls, value: str) -> str:
        value = value.strip()
        if value:
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"unknown time zone id: {value}") from exc
        return value


class FilterSettings(_OptionGroup):
    exclude_properties: List[str] = Field(default_factory=list)
    include_only_properties: List[str] = Field(default_factory=list)

    @field_validator("exclude_properties", "include_only_properties", mode="before")
    @classmethod
    def _coerce_single_rule(cls, value):
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("exclude_properties", "include_only_properties")
    @classmethod
    def _validate_rules(cls, value: List[str]) -> List[str]:
        for rule in value:
            try:
                re.compile(rule)
            except re.error as exc:
                raise ValueError(f"malformed rule {rule!r}: {exc}") from exc
        return value


class OutputSettings(_OptionGroup):
    generate_output_file: bool = False
    output_file: Optional[Path] = None
    output_format: OutputFormat = OutputFormat.properties
    escape_unicode: bool = False
    encoding: str = "utf-8"

    @field_validator("encoding")
    @classmethod
    def _validate_encoding(cls, value: str) -> str:
        try:
            return codecs.lookup(value).name
        except LookupError as exc:
            raise ValueError(f"unknown encoding: {value}") from exc


class PluginSettings(_OptionGroup):
    """All option groups of one plugin application."""

    general: GeneralSettings = Field(default_factory=GeneralSettings)
    git: GitSettings = Field(default_factory=GitSettings)
    format: FormatSettings = Field(default_factory=FormatSettings)
    filter: FilterSettings = Field(default_factory=FilterSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
