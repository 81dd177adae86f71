"""Bridge between the settings snapshot and an extractor.

The adapter is a pure translation layer: it exposes the snapshot through the
extractor callback contract, runs the extractor and hands back whatever map
it produced. It keeps no state between invocations and does neither caching
nor filtering.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from gitprops.config.snapshot import SettingsSnapshot
from gitprops.config.typed_models import GitDescribeConfig, OutputFormat
from gitprops.exceptions import ExtractionError, MissingGitDirectoryError
from gitprops.extractors import BaseExtractor, get_extractor_class, list_extractor_types
from gitprops.logging_config import VerboseLoggerAdapter

logger = logging.getLogger(__name__)

EXTRACTOR_LOGGER = "gitprops.extractor"


class SnapshotCallback:
    """ExtractorCallback implementation reading from a SettingsSnapshot."""

    def __init__(self, settings: SettingsSnapshot, env: Optional[Mapping[str, str]] = None):
        self._settings = settings
        self._env = dict(os.environ if env is None else env)
        self._log = VerboseLoggerAdapter(logging.getLogger(EXTRACTOR_LOGGER), settings.verbose)

    def get_dot_git_directory(self) -> Path:
        return self._settings.dot_git_directory

    def get_evaluate_on_commit(self) -> str:
        return self._settings.evaluate_on_commit

    def get_abbrev_length(self) -> int:
        return self._settings.abbrev_length

    def get_date_format(self) -> str:
        return self._settings.date_format

    def get_date_format_time_zone(self) -> str:
        return self._settings.date_format_time_zone

    def get_git_describe(self) -> GitDescribeConfig:
        return self._settings.git_describe

    def use_native_git(self) -> bool:
        return self._settings.use_native_git

    def get_native_git_timeout_in_ms(self) -> int:
        return self._settings.native_git_timeout_in_ms

    def is_offline(self) -> bool:
        return self._settings.stay_offline

    def get_use_branch_name_from_build_environment(self) -> bool:
        return self._settings.use_branch_name_from_build_environment

    def get_prefix_dot(self) -> str:
        return self._settings.prefix_dot

    def get_include_only_properties(self) -> List[str]:
        return list(self._settings.include_only_properties)

    def get_exclude_properties(self) -> List[str]:
        return list(self._settings.exclude_properties)

    def should_generate_properties_file(self) -> bool:
        return self._settings.generate_output_file

    def get_generate_properties_file(self) -> Path:
        return self._settings.output_file

    def get_properties_output_format(self) -> OutputFormat:
        return self._settings.output_format

    def get_properties_source_charset(self) -> str:
        return self._settings.encoding

    def should_properties_escape_unicode(self) -> bool:
        return self._settings.escape_unicode

    def get_project_name(self) -> str:
        return self._settings.project_name

    def get_project_base_dir(self) -> Path:
        return self._settings.project_dir

    def supply_project_version(self) -> Callable[[], str]:
        return lambda: self._settings.project_version

    def get_system_env(self) -> Mapping[str, str]:
        return self._env

    def get_log(self) -> logging.LoggerAdapter:
        return self._log

    def get_reproducible_build_output_timestamp(self) -> Optional[datetime]:
        return self._settings.build_output_timestamp


def extractor_name_for(settings: SettingsSnapshot) -> str:
    return "native" if settings.use_native_git else "embedded"


class ExtractionAdapter:
    """Runs the configured extractor for a snapshot.

    Args:
        extractor_factory: Optional callable returning the extractor to use;
            defaults to the registered ``native``/``embedded`` extractor
        env: Environment exposed to the extractor (defaults to os.environ)
    """

    def __init__(
        self,
        extractor_factory: Optional[Callable[[SettingsSnapshot], BaseExtractor]] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        self._extractor_factory = extractor_factory or self._registered_extractor
        self._env = env

    @staticmethod
    def _registered_extractor(settings: SettingsSnapshot) -> BaseExtractor:
        name = extractor_name_for(settings)
        extractor_cls = get_extractor_class(name)
        if extractor_cls is None:
            available = ", ".join(sorted(list_extractor_types())) or "none"
            raise ExtractionError(
                f"No extractor registered under '{name}' (available: {available})", extractor_type=name
            )
        return extractor_cls()

    def extract(self, settings: SettingsSnapshot) -> Dict[str, str]:
        """Return the raw property map for ``settings``.

        A missing .git directory yields an empty map when
        ``fail_on_no_git_directory`` is off; any other extraction failure
        yields an empty map when ``fail_on_unable_to_extract_repo_info`` is
        off. Otherwise the failure propagates.
        """
        extractor = self._extractor_factory(settings)
        callback = SnapshotCallback(settings, env=self._env)
        try:
            return dict(extractor.extract(callback))
        except MissingGitDirectoryError as exc:
            if settings.fail_on_no_git_directory:
                raise
            logger.info(f"{exc.message}; skipping property generation")
            return {}
        except ExtractionError as exc:
            if settings.fail_on_unable_to_extract_repo_info:
                raise
            logger.warning(f"Unable to extract repository information, publishing no properties: {exc}")
            return {}
