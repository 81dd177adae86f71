"""Pytest configuration and fixtures."""

import shutil
import subprocess
from pathlib import Path

import pytest

from gitprops.adapter import ExtractionAdapter
from gitprops.config import ProjectContext, build_snapshot
from tests.fakes import CountingExtractor


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    """Keep CI variables and SOURCE_DATE_EPOCH of the host out of the tests."""
    for name in (
        "SOURCE_DATE_EPOCH",
        "JENKINS_URL",
        "HUDSON_URL",
        "GITHUB_ACTIONS",
        "GITLAB_CI",
        "TRAVIS",
        "TF_BUILD",
        "BITBUCKET_BUILD_NUMBER",
        "CODEBUILD_BUILD_ID",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project(tmp_path: Path) -> ProjectContext:
    return ProjectContext(name="demo", base_dir=tmp_path, version="1.2.3")


@pytest.fixture
def dot_git(tmp_path: Path) -> Path:
    path = tmp_path / ".git"
    path.mkdir()
    return path


@pytest.fixture
def make_snapshot(project):
    """Build a snapshot for the ``project`` fixture from a raw option tree."""

    def _make(options=None, **kwargs):
        return build_snapshot(options or {}, kwargs.pop("project", project), **kwargs)

    return _make


@pytest.fixture
def counting_extractor() -> CountingExtractor:
    return CountingExtractor()


@pytest.fixture
def counting_adapter(counting_extractor) -> ExtractionAdapter:
    return ExtractionAdapter(extractor_factory=lambda settings: counting_extractor, env={})


def _git(cwd: Path, *args: str) -> str:
    completed = subprocess.run(
        ["git", "-c", "init.defaultBranch=main", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A repository with two commits and an annotated tag on the first."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "--quiet")
    _git(repo, "config", "user.name", "Jane Doe")
    _git(repo, "config", "user.email", "jane@example.com")
    _git(repo, "config", "commit.gpgsign", "false")
    _git(repo, "config", "tag.gpgsign", "false")

    (repo / "README.md").write_text("first\n", encoding="utf-8")
    _git(repo, "add", "README.md")
    _git(repo, "commit", "--quiet", "-m", "Initial commit")
    _git(repo, "tag", "-a", "v1.0.0", "-m", "Release 1.0.0")

    (repo / "README.md").write_text("second\n", encoding="utf-8")
    _git(repo, "commit", "--quiet", "-am", "Second commit\n\nWith a body")
    return repo


@pytest.fixture
def git():
    """Run git commands in a test repository."""
    return _git
