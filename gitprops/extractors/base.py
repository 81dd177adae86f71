"""Extractor boundary: callback contract, registry and shared property assembly.

The extraction algorithm lives behind two seams:

- ``ExtractorCallback``: the fixed set of accessors through which an
  extractor reads its settings. The adapter supplies an implementation
  backed by the settings snapshot.
- ``GitSession``: the primitive repository queries (resolve a reference,
  describe, read commit details...). ``native`` sessions shell out to the
  git binary, ``embedded`` sessions use GitPython.

Extractor Registration:
    Use the @register_extractor decorator to register new extractor types:

    @register_extractor("native")
    class NativeGitExtractor(BaseExtractor):
        ...
"""

from __future__ import annotations

import logging
import re
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Tuple, Type
from zoneinfo import ZoneInfo

from gitprops.config.typed_models import GitDescribeConfig, OutputFormat
from gitprops.exceptions import ExtractionError, GitPropsError, MissingGitDirectoryError
from gitprops.filtering import is_included
from gitprops.property_io import write_properties

# Global registry mapping extractor names to extractor classes
EXTRACTOR_REGISTRY: Dict[str, Type["BaseExtractor"]] = {}

NO_REMOTE = "NO_REMOTE"

# (CI marker variable, branch variables in order of preference)
_CI_BRANCH_VARIABLES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("JENKINS_URL", ("GIT_LOCAL_BRANCH", "GIT_BRANCH", "BRANCH_NAME")),
    ("HUDSON_URL", ("GIT_LOCAL_BRANCH", "GIT_BRANCH", "BRANCH_NAME")),
    ("GITHUB_ACTIONS", ("GITHUB_HEAD_REF", "GITHUB_REF")),
    ("GITLAB_CI", ("CI_COMMIT_REF_NAME",)),
    ("TRAVIS", ("TRAVIS_BRANCH",)),
    ("TF_BUILD", ("BUILD_SOURCEBRANCH",)),
    ("BITBUCKET_BUILD_NUMBER", ("BITBUCKET_BRANCH",)),
    ("CODEBUILD_BUILD_ID", ("CODEBUILD_WEBHOOK_HEAD_REF",)),
)
_DESCRIBE_SUFFIX = re.compile(r"^(?P<head>.*-\d+)-g[0-9a-f]+(?P<tail>-.*)?$")


def register_extractor(name: str) -> Callable[[Type["BaseExtractor"]], Type["BaseExtractor"]]:
    """Decorator to register an extractor class under ``name``."""
    def decorator(cls: Type["BaseExtractor"]) -> Type["BaseExtractor"]:
        cls.name = name
        EXTRACTOR_REGISTRY[name] = cls
        return cls
    return decorator


def get_extractor_class(name: str) -> Optional[Type["BaseExtractor"]]:
    return EXTRACTOR_REGISTRY.get(name)


def list_extractor_types() -> List[str]:
    return list(EXTRACTOR_REGISTRY.keys())


class ExtractorCallback(Protocol):
    """Accessors an extractor uses to read its configuration."""

    def get_dot_git_directory(self) -> Path: ...
    def get_evaluate_on_commit(self) -> str: ...
    def get_abbrev_length(self) -> int: ...
    def get_date_format(self) -> str: ...
    def get_date_format_time_zone(self) -> str: ...
    def get_git_describe(self) -> GitDescribeConfig: ...
    def use_native_git(self) -> bool: ...
    def get_native_git_timeout_in_ms(self) -> int: ...
    def is_offline(self) -> bool: ...
    def get_use_branch_name_from_build_environment(self) -> bool: ...
    def get_prefix_dot(self) -> str: ...
    def get_include_only_properties(self) -> List[str]: ...
    def get_exclude_properties(self) -> List[str]: ...
    def should_generate_properties_file(self) -> bool: ...
    def get_generate_properties_file(self) -> Path: ...
    def get_properties_output_format(self) -> OutputFormat: ...
    def get_properties_source_charset(self) -> str: ...
    def should_properties_escape_unicode(self) -> bool: ...
    def get_project_name(self) -> str: ...
    def get_project_base_dir(self) -> Path: ...
    def supply_project_version(self) -> Callable[[], str]: ...
    def get_system_env(self) -> Mapping[str, str]: ...
    def get_log(self) -> logging.LoggerAdapter: ...
    def get_reproducible_build_output_timestamp(self) -> Optional[datetime]: ...


@dataclass(frozen=True)
class CommitDetails:
    author_name: str
    author_email: str
    message_full: str
    message_short: str
    author_time: datetime
    committer_time: datetime


class GitSession(ABC):
    """Primitive queries against one repository for one extraction run."""

    @abstractmethod
    def resolve_commit(self, ref: str) -> str:
        """Full commit id the reference points to."""

    @abstractmethod
    def abbreviate(self, commit_id: str, length: int) -> str:
        ...

    @abstractmethod
    def current_branch(self) -> str:
        """Checked out branch, or the commit id when HEAD is detached."""

    @abstractmethod
    def describe(self, ref: str, config: GitDescribeConfig) -> str:
        """``git describe`` output without any dirty marker."""

    @abstractmethod
    def is_dirty(self) -> bool:
        ...

    @abstractmethod
    def tags_at(self, commit_id: str) -> List[str]:
        ...

    @abstractmethod
    def commit_details(self, commit_id: str) -> CommitDetails:
        ...

    @abstractmethod
    def closest_tag(self, commit_id: str) -> Tuple[str, int]:
        """Nearest reachable tag and the number of commits since it ("", 0 if none)."""

    @abstractmethod
    def total_commit_count(self, commit_id: str) -> int:
        ...

    @abstractmethod
    def remote_origin_url(self) -> str:
        ...

    @abstractmethod
    def fetch(self) -> None:
        ...

    @abstractmethod
    def ahead_behind(self, branch: str) -> Tuple[str, str]:
        """Commits ahead of and behind the upstream, NO_REMOTE when untracked."""

    @abstractmethod
    def config_value(self, section: str, option: str) -> str:
        ...

    def close(self) -> None:
        pass


def branch_from_environment(env: Mapping[str, str]) -> Optional[str]:
    """Branch name reported by a recognised CI server, if any."""
    for marker, variables in _CI_BRANCH_VARIABLES:
        if not env.get(marker):
            continue
        for variable in variables:
            value = env.get(variable)
            if value:
                for prefix in ("refs/heads/", "origin/"):
                    if value.startswith(prefix):
                        value = value[len(prefix):]
                return value
    return None


def short_describe(describe: str) -> str:
    """Describe output without its ``-g<hash>`` part."""
    match = _DESCRIBE_SUFFIX.match(describe)
    if not match:
        return describe
    return match.group("head") + (match.group("tail") or "")


def format_time(moment: datetime, date_format: str, time_zone: str) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    zone = ZoneInfo(time_zone) if time_zone else None
    return moment.astimezone(zone).strftime(date_format)


class BaseExtractor(ABC):
    """Abstract base class for all extractors.

    Subclasses only open a GitSession; turning session answers into the
    property map is shared. Properties rejected by the include/exclude rules
    are never computed.
    """

    name: str = "unknown"

    @abstractmethod
    def open_session(self, callback: ExtractorCallback) -> GitSession:
        raise NotImplementedError()

    def extract(self, callback: ExtractorCallback) -> Dict[str, str]:
        """Run the extraction and return the prefixed property map.

        Raises:
            MissingGitDirectoryError: if the .git directory does not exist
            ExtractionError: if the repository cannot be queried
        """
        log = callback.get_log()
        git_dir = Path(callback.get_dot_git_directory())
        ref = callback.get_evaluate_on_commit()
        if not git_dir.is_dir():
            raise MissingGitDirectoryError(str(git_dir), commit_ref=ref)

        log.info(f"Collecting git properties from {git_dir} at {ref} using the {self.name} extractor")
        session = self.open_session(callback)
        try:
            providers = self._providers(session, callback)
            prefix_dot = callback.get_prefix_dot()
            include_only = callback.get_include_only_properties()
            exclude = callback.get_exclude_properties()

            properties: Dict[str, str] = {}
            for suffix, provider in providers.items():
                key = prefix_dot + suffix
                if not is_included(key, include_only, exclude):
                    log.debug(f"Skipping filtered property {key}")
                    continue
                try:
                    properties[key] = provider()
                except GitPropsError:
                    raise
                except Exception as exc:
                    raise ExtractionError(
                        f"Unable to compute {key}",
                        extractor_type=self.name,
                        git_dir=str(git_dir),
                        commit_ref=ref,
                        original_error=exc,
                    ) from exc
                log.debug(f"{key}={properties[key]}")
        finally:
            session.close()

        if callback.should_generate_properties_file():
            write_properties(
                properties,
                callback.get_generate_properties_file(),
                output_format=callback.get_properties_output_format(),
                encoding=callback.get_properties_source_charset(),
                escape_unicode=callback.should_properties_escape_unicode(),
            )
        return properties

    def _providers(self, session: GitSession, callback: ExtractorCallback) -> Dict[str, Callable[[], str]]:
        ref = callback.get_evaluate_on_commit()
        describe_config = callback.get_git_describe()
        date_format = callback.get_date_format()
        time_zone = callback.get_date_format_time_zone()

        @lru_cache(maxsize=None)
        def commit_id() -> str:
            return session.resolve_commit(ref)

        @lru_cache(maxsize=None)
        def details() -> CommitDetails:
            return session.commit_details(commit_id())

        @lru_cache(maxsize=None)
        def dirty() -> bool:
            return session.is_dirty()

        @lru_cache(maxsize=None)
        def branch() -> str:
            if callback.get_use_branch_name_from_build_environment():
                from_env = branch_from_environment(callback.get_system_env())
                if from_env:
                    return from_env
            return session.current_branch()

        @lru_cache(maxsize=None)
        def describe() -> str:
            if describe_config.skip:
                return ""
            value = session.describe(ref, describe_config)
            if value and dirty() and ref == "HEAD" and describe_config.dirty:
                value += describe_config.dirty
            return value

        @lru_cache(maxsize=None)
        def closest_tag() -> Tuple[str, int]:
            return session.closest_tag(commit_id())

        @lru_cache(maxsize=None)
        def ahead_behind() -> Tuple[str, str]:
            if not callback.is_offline():
                session.fetch()
            return session.ahead_behind(branch())

        def build_time() -> str:
            moment = callback.get_reproducible_build_output_timestamp() or datetime.now(timezone.utc)
            return format_time(moment, date_format, time_zone)

        return {
            "branch": branch,
            "dirty": lambda: str(dirty()).lower(),
            "tags": lambda: ",".join(session.tags_at(commit_id())),
            "commit.id": commit_id,
            "commit.id.abbrev": lambda: session.abbreviate(commit_id(), callback.get_abbrev_length()),
            "commit.id.describe": describe,
            "commit.id.describe-short": lambda: short_describe(describe()),
            "commit.user.name": lambda: details().author_name,
            "commit.user.email": lambda: details().author_email,
            "commit.message.full": lambda: details().message_full,
            "commit.message.short": lambda: details().message_short,
            "commit.time": lambda: format_time(details().committer_time, date_format, time_zone),
            "commit.author.time": lambda: format_time(details().author_time, date_format, time_zone),
            "commit.committer.time": lambda: format_time(details().committer_time, date_format, time_zone),
            "closest.tag.name": lambda: closest_tag()[0],
            "closest.tag.commit.count": lambda: str(closest_tag()[1]) if closest_tag()[0] else "",
            "total.commit.count": lambda: str(session.total_commit_count(commit_id())),
            "remote.origin.url": session.remote_origin_url,
            "local.branch.ahead": lambda: ahead_behind()[0],
            "local.branch.behind": lambda: ahead_behind()[1],
            "build.user.name": lambda: session.config_value("user", "name"),
            "build.user.email": lambda: session.config_value("user", "email"),
            "build.time": build_time,
            "build.version": lambda: callback.supply_project_version()(),
            "build.host": socket.gethostname,
        }
