"""Extractor backed by the native ``git`` executable."""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from gitprops.config.typed_models import GitDescribeConfig
from gitprops.exceptions import ExtractionError, ExtractionTimeoutError
from .base import NO_REMOTE, BaseExtractor, CommitDetails, ExtractorCallback, GitSession, register_extractor

logger = logging.getLogger(__name__)

# author name, author email, author time, committer time, raw body
_COMMIT_FORMAT = "%an%x00%ae%x00%aI%x00%cI%x00%B"


class NativeGitSession(GitSession):
    """Runs every query as a git subprocess bounded by a timeout."""

    def __init__(self, git_dir: Path, timeout_ms: int, log: logging.LoggerAdapter, executable: str = "git"):
        self.git_dir = git_dir
        self.work_tree = git_dir.parent
        self.timeout_ms = timeout_ms
        self.log = log
        self.executable = executable

    def _run(self, *args: str, check: bool = True) -> Optional[str]:
        command = [self.executable, f"--git-dir={self.git_dir}", f"--work-tree={self.work_tree}", *args]
        self.log.debug("Running %s", " ".join(command))
        try:
            completed = subprocess.run(
                command,
                cwd=self.work_tree,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_ms / 1000.0,
            )
        except subprocess.TimeoutExpired as exc:
            raise ExtractionTimeoutError(
                f"git {args[0]} did not finish within {self.timeout_ms} ms",
                timeout_ms=self.timeout_ms,
                command=" ".join(args),
                git_dir=str(self.git_dir),
            ) from exc
        except OSError as exc:
            raise ExtractionError(
                f"Unable to execute {self.executable}",
                extractor_type="native",
                git_dir=str(self.git_dir),
                original_error=exc,
            ) from exc

        if completed.returncode != 0:
            if not check:
                return None
            raise ExtractionError(
                f"git {' '.join(args)} exited with status {completed.returncode}: {completed.stderr.strip()}",
                extractor_type="native",
                git_dir=str(self.git_dir),
            )
        return completed.stdout.rstrip("\n")

    def resolve_commit(self, ref: str) -> str:
        try:
            return self._run("rev-parse", "--verify", f"{ref}^{{commit}}")
        except ExtractionTimeoutError:
            raise
        except ExtractionError as exc:
            raise ExtractionError(
                f"Unable to resolve {ref} to a commit",
                extractor_type="native",
                git_dir=str(self.git_dir),
                commit_ref=ref,
                original_error=exc,
            ) from exc

    def abbreviate(self, commit_id: str, length: int) -> str:
        return self._run("rev-parse", f"--short={length}", commit_id)

    def current_branch(self) -> str:
        branch = self._run("symbolic-ref", "--short", "-q", "HEAD", check=False)
        if branch:
            return branch
        return self._run("rev-parse", "HEAD")

    def describe(self, ref: str, config: GitDescribeConfig) -> str:
        args: List[str] = ["describe", f"--abbrev={config.abbrev}"]
        if config.always:
            args.append("--always")
        if config.tags:
            args.append("--tags")
        if config.force_long_format:
            args.append("--long")
        if config.match:
            args.append(f"--match={config.match}")
        args.append(ref)
        return self._run(*args, check=False) or ""

    def is_dirty(self) -> bool:
        status = self._run("status", "--porcelain", "--untracked-files=no")
        return bool(status.strip())

    def tags_at(self, commit_id: str) -> List[str]:
        output = self._run("tag", "--points-at", commit_id)
        return [line for line in output.splitlines() if line]

    def commit_details(self, commit_id: str) -> CommitDetails:
        output = self._run("log", "-1", f"--format={_COMMIT_FORMAT}", commit_id)
        name, email, author_time, committer_time, body = output.split("\x00", 4)
        message = body.strip()
        return CommitDetails(
            author_name=name,
            author_email=email,
            message_full=message,
            message_short=message.splitlines()[0] if message else "",
            author_time=datetime.fromisoformat(author_time),
            committer_time=datetime.fromisoformat(committer_time),
        )

    def closest_tag(self, commit_id: str) -> Tuple[str, int]:
        tag = self._run("describe", "--tags", "--abbrev=0", commit_id, check=False)
        if not tag:
            return "", 0
        return tag, int(self._run("rev-list", "--count", f"{tag}..{commit_id}"))

    def total_commit_count(self, commit_id: str) -> int:
        return int(self._run("rev-list", "--count", commit_id))

    def remote_origin_url(self) -> str:
        return self._run("config", "--get", "remote.origin.url", check=False) or ""

    def fetch(self) -> None:
        self._run("fetch", "--quiet", check=False)

    def ahead_behind(self, branch: str) -> Tuple[str, str]:
        upstream = self._run("rev-parse", "--abbrev-ref", f"{branch}@{{upstream}}", check=False)
        if not upstream:
            return NO_REMOTE, NO_REMOTE
        counts = self._run("rev-list", "--left-right", "--count", f"{branch}...{upstream}")
        ahead, behind = counts.split()
        return ahead, behind

    def config_value(self, section: str, option: str) -> str:
        return self._run("config", "--get", f"{section}.{option}", check=False) or ""


@register_extractor("native")
class NativeGitExtractor(BaseExtractor):
    def __init__(self, executable: str = "git"):
        self.executable = executable

    def open_session(self, callback: ExtractorCallback) -> GitSession:
        return NativeGitSession(
            Path(callback.get_dot_git_directory()),
            callback.get_native_git_timeout_in_ms(),
            callback.get_log(),
            executable=self.executable,
        )
