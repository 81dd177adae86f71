"""Extractor backed by GitPython.

GitPython reads refs, commits and config through its object database;
``describe``, ``rev-parse --short`` and ``fetch`` are delegated to the git
command it wraps. The native timeout does not apply here.
"""

from __future__ import annotations

import configparser
import logging
from pathlib import Path
from typing import List, Tuple

import git
import git.exc

from gitprops.config.typed_models import GitDescribeConfig
from gitprops.exceptions import ExtractionError
from .base import NO_REMOTE, BaseExtractor, CommitDetails, ExtractorCallback, GitSession, register_extractor

logger = logging.getLogger(__name__)


class EmbeddedGitSession(GitSession):
    def __init__(self, repo: git.Repo, log: logging.LoggerAdapter):
        self.repo = repo
        self.log = log

    def _commit(self, ref: str) -> git.Commit:
        try:
            return self.repo.commit(ref)
        except (git.exc.BadName, git.exc.GitError, ValueError) as exc:
            raise ExtractionError(
                f"Unable to resolve {ref} to a commit",
                extractor_type="embedded",
                git_dir=str(self.repo.git_dir),
                commit_ref=ref,
                original_error=exc,
            ) from exc

    def resolve_commit(self, ref: str) -> str:
        return self._commit(ref).hexsha

    def abbreviate(self, commit_id: str, length: int) -> str:
        # Lengthened by git when the prefix is ambiguous
        return self.repo.git.rev_parse(commit_id, short=str(length))

    def current_branch(self) -> str:
        if self.repo.head.is_detached:
            return self.repo.head.commit.hexsha
        return self.repo.active_branch.name

    def describe(self, ref: str, config: GitDescribeConfig) -> str:
        kwargs = {"abbrev": str(config.abbrev), "always": config.always, "tags": config.tags,
                  "long": config.force_long_format}
        if config.match:
            kwargs["match"] = config.match
        try:
            return self.repo.git.describe(ref, **kwargs)
        except git.exc.GitCommandError as exc:
            self.log.debug("git describe failed: %s", exc)
            return ""

    def is_dirty(self) -> bool:
        return self.repo.is_dirty(untracked_files=False)

    def tags_at(self, commit_id: str) -> List[str]:
        return sorted(tag.name for tag in self.repo.tags if tag.commit.hexsha == commit_id)

    def commit_details(self, commit_id: str) -> CommitDetails:
        commit = self._commit(commit_id)
        message = commit.message
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        message = message.strip()
        return CommitDetails(
            author_name=commit.author.name or "",
            author_email=commit.author.email or "",
            message_full=message,
            message_short=message.splitlines()[0] if message else "",
            author_time=commit.authored_datetime,
            committer_time=commit.committed_datetime,
        )

    def closest_tag(self, commit_id: str) -> Tuple[str, int]:
        try:
            tag = self.repo.git.describe(commit_id, tags=True, abbrev="0")
        except git.exc.GitCommandError:
            return "", 0
        count = sum(1 for _ in self.repo.iter_commits(f"{tag}..{commit_id}"))
        return tag, count

    def total_commit_count(self, commit_id: str) -> int:
        return self._commit(commit_id).count()

    def remote_origin_url(self) -> str:
        for remote in self.repo.remotes:
            if remote.name == "origin":
                return next(iter(remote.urls), "")
        return ""

    def fetch(self) -> None:
        for remote in self.repo.remotes:
            if remote.name == "origin":
                try:
                    remote.fetch()
                except git.exc.GitCommandError as exc:
                    self.log.warning("git fetch failed: %s", exc)

    def ahead_behind(self, branch: str) -> Tuple[str, str]:
        if self.repo.head.is_detached:
            return NO_REMOTE, NO_REMOTE
        tracking = self.repo.active_branch.tracking_branch()
        if tracking is None:
            return NO_REMOTE, NO_REMOTE
        local = self.repo.active_branch.path
        ahead = sum(1 for _ in self.repo.iter_commits(f"{tracking.path}..{local}"))
        behind = sum(1 for _ in self.repo.iter_commits(f"{local}..{tracking.path}"))
        return str(ahead), str(behind)

    def config_value(self, section: str, option: str) -> str:
        reader = self.repo.config_reader()
        try:
            return reader.get(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return ""

    def close(self) -> None:
        self.repo.close()


@register_extractor("embedded")
class EmbeddedGitExtractor(BaseExtractor):
    def open_session(self, callback: ExtractorCallback) -> GitSession:
        git_dir = Path(callback.get_dot_git_directory())
        try:
            repo = git.Repo(str(git_dir))
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as exc:
            raise ExtractionError(
                "Not a readable git repository",
                extractor_type="embedded",
                git_dir=str(git_dir),
                commit_ref=callback.get_evaluate_on_commit(),
                original_error=exc,
            ) from exc
        return EmbeddedGitSession(repo, callback.get_log())
