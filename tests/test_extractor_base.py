"""Tests for the shared property assembly of extractors."""

import json
from datetime import datetime, timezone

import pytest

from gitprops.adapter import SnapshotCallback
from gitprops.exceptions import ExtractionError, MissingGitDirectoryError
from gitprops.extractors import branch_from_environment, get_extractor_class, register_extractor, short_describe
from gitprops.extractors.base import EXTRACTOR_REGISTRY, NO_REMOTE, BaseExtractor, format_time
from tests.fakes import COMMIT_ID, FakeSession, SessionExtractor

UTC_OPTIONS = {"format": {"date_format_time_zone": "UTC"}}


def _extract(make_snapshot, session, options=None, env=None):
    merged = {**UTC_OPTIONS, **(options or {})}
    callback = SnapshotCallback(make_snapshot(merged), env=env or {})
    return SessionExtractor(session).extract(callback)


def test_full_property_set(make_snapshot, dot_git):
    session = FakeSession(tags=("v1.0.0",), remote="https://example.com/demo.git")
    properties = _extract(
        make_snapshot,
        session,
        {"general": {"build_output_timestamp": datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)}},
    )

    assert properties["git.commit.id"] == COMMIT_ID
    assert properties["git.commit.id.abbrev"] == COMMIT_ID[:7]
    assert properties["git.branch"] == "main"
    assert properties["git.dirty"] == "false"
    assert properties["git.tags"] == "v1.0.0"
    assert properties["git.commit.id.describe"] == "v1.0.0-3-g0123456"
    assert properties["git.commit.id.describe-short"] == "v1.0.0-3"
    assert properties["git.commit.user.name"] == "Jane Doe"
    assert properties["git.commit.user.email"] == "jane@example.com"
    assert properties["git.commit.message.full"] == "Add feature\n\nLonger body"
    assert properties["git.commit.message.short"] == "Add feature"
    assert properties["git.commit.time"] == "2024-03-01T12:30:00+0000"
    assert properties["git.closest.tag.name"] == "v1.0.0"
    assert properties["git.closest.tag.commit.count"] == "3"
    assert properties["git.total.commit.count"] == "42"
    assert properties["git.remote.origin.url"] == "https://example.com/demo.git"
    assert properties["git.local.branch.ahead"] == NO_REMOTE
    assert properties["git.build.user.name"] == "Builder"
    assert properties["git.build.time"] == "2024-05-01T08:00:00+0000"
    assert properties["git.build.version"] == "1.2.3"
    assert "git.build.host" in properties
    assert session.closed


def test_commit_details_are_read_once(make_snapshot, dot_git):
    session = FakeSession()
    _extract(make_snapshot, session)
    assert session.calls["commit_details"] == 1
    assert session.calls["resolve_commit"] == 1


def test_filtered_properties_are_not_computed(make_snapshot, dot_git):
    session = FakeSession()
    properties = _extract(
        make_snapshot,
        session,
        {"filter": {"exclude_properties": ["git.commit.id.describe.*", "git.local.branch.*"]}},
    )

    assert "git.commit.id.describe" not in properties
    assert "git.commit.id" in properties
    assert session.calls["describe"] == 0
    assert session.calls["ahead_behind"] == 0


def test_include_only_limits_queries(make_snapshot, dot_git):
    session = FakeSession()
    properties = _extract(make_snapshot, session, {"filter": {"include_only_properties": ["git.commit.id"]}})

    assert properties == {"git.commit.id": COMMIT_ID}
    assert set(session.calls) == {"resolve_commit"}


def test_prefix_is_applied(make_snapshot, dot_git):
    properties = _extract(make_snapshot, FakeSession(), {"format": {"property_prefix": "scm"}})
    assert properties and all(key.startswith("scm.") for key in properties)


def test_empty_prefix(make_snapshot, dot_git):
    properties = _extract(make_snapshot, FakeSession(), {"format": {"property_prefix": ""}})
    assert "commit.id" in properties
    assert "build.time" in properties


def test_dirty_marker_is_appended_for_head(make_snapshot, dot_git):
    properties = _extract(make_snapshot, FakeSession(dirty=True))
    assert properties["git.dirty"] == "true"
    assert properties["git.commit.id.describe"] == "v1.0.0-3-g0123456-dirty"
    assert properties["git.commit.id.describe-short"] == "v1.0.0-3-dirty"


def test_dirty_marker_is_not_appended_for_other_refs(make_snapshot, dot_git):
    properties = _extract(make_snapshot, FakeSession(dirty=True), {"git": {"evaluate_on_commit": "v1.0.0"}})
    assert properties["git.commit.id.describe"] == "v1.0.0-3-g0123456"


def test_describe_can_be_skipped(make_snapshot, dot_git):
    session = FakeSession()
    properties = _extract(make_snapshot, session, {"git": {"git_describe": {"skip": True}}})
    assert properties["git.commit.id.describe"] == ""
    assert session.calls["describe"] == 0


def test_no_closest_tag(make_snapshot, dot_git):
    properties = _extract(make_snapshot, FakeSession(closest=("", 0)))
    assert properties["git.closest.tag.name"] == ""
    assert properties["git.closest.tag.commit.count"] == ""


def test_branch_from_build_environment(make_snapshot, dot_git):
    session = FakeSession(branch="HEAD")
    properties = _extract(
        make_snapshot, session, env={"GITHUB_ACTIONS": "true", "GITHUB_REF": "refs/heads/feature/x"}
    )
    assert properties["git.branch"] == "feature/x"
    assert session.calls["current_branch"] == 0


def test_branch_from_environment_can_be_disabled(make_snapshot, dot_git):
    properties = _extract(
        make_snapshot,
        FakeSession(branch="main"),
        {"git": {"use_branch_name_from_build_environment": False}},
        env={"JENKINS_URL": "http://ci", "GIT_BRANCH": "origin/release"},
    )
    assert properties["git.branch"] == "main"


def test_offline_does_not_fetch(make_snapshot, dot_git):
    session = FakeSession()
    _extract(make_snapshot, session)
    assert session.calls["fetch"] == 0

    session = FakeSession()
    _extract(make_snapshot, session, {"git": {"stay_offline": False}})
    assert session.calls["fetch"] == 1


def test_missing_git_directory(make_snapshot):
    with pytest.raises(MissingGitDirectoryError):
        _extract(make_snapshot, FakeSession())


def test_session_failure_is_wrapped(make_snapshot, dot_git):
    session = FakeSession(failing=("total_commit_count",))
    with pytest.raises(ExtractionError) as excinfo:
        _extract(make_snapshot, session)

    assert excinfo.value.details["extractor_type"] == "fake"
    assert excinfo.value.details["error_type"] == "RuntimeError"
    assert "git.total.commit.count" in excinfo.value.message
    assert session.closed


def test_output_file_is_written(make_snapshot, dot_git, tmp_path):
    _extract(
        make_snapshot,
        FakeSession(),
        {"output": {"generate_output_file": True, "output_file": "out/git.json", "output_format": "json"}},
    )
    written = json.loads((tmp_path / "out" / "git.json").read_text(encoding="utf-8"))
    assert written["git.commit.id"] == COMMIT_ID


def test_output_file_not_written_by_default(make_snapshot, dot_git, tmp_path):
    _extract(make_snapshot, FakeSession())
    assert not (tmp_path / "build" / "git.properties").exists()


@pytest.mark.parametrize(
    "env, expected",
    [
        ({}, None),
        ({"GIT_BRANCH": "main"}, None),
        ({"JENKINS_URL": "http://ci", "GIT_LOCAL_BRANCH": "dev", "GIT_BRANCH": "origin/main"}, "dev"),
        ({"JENKINS_URL": "http://ci", "GIT_BRANCH": "origin/main"}, "main"),
        ({"GITLAB_CI": "true", "CI_COMMIT_REF_NAME": "topic"}, "topic"),
        ({"GITHUB_ACTIONS": "true", "GITHUB_HEAD_REF": "pr-branch", "GITHUB_REF": "refs/pull/1/merge"}, "pr-branch"),
        ({"TF_BUILD": "True", "BUILD_SOURCEBRANCH": "refs/heads/release"}, "release"),
    ],
)
def test_branch_from_environment(env, expected):
    assert branch_from_environment(env) == expected


@pytest.mark.parametrize(
    "describe, expected",
    [
        ("v1.0.0-3-g0123456", "v1.0.0-3"),
        ("v1.0.0-3-g0123456-dirty", "v1.0.0-3-dirty"),
        ("v1.0.0", "v1.0.0"),
        ("0123456", "0123456"),
        ("build-gcc", "build-gcc"),
        ("release-gabc1234", "release-gabc1234"),
        ("build-gcc-2-gabc1234", "build-gcc-2"),
        ("", ""),
    ],
)
def test_short_describe(describe, expected):
    assert short_describe(describe) == expected


def test_format_time_in_zone():
    moment = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert format_time(moment, "%Y-%m-%d %H:%M %z", "Europe/Berlin") == "2024-01-01 13:00 +0100"


def test_format_time_treats_naive_as_utc():
    assert format_time(datetime(2024, 1, 1, 12, 0), "%H:%M%z", "UTC") == "12:00+0000"


def test_register_extractor():
    @register_extractor("test-only")
    class TestOnlyExtractor(BaseExtractor):
        def open_session(self, callback):
            raise NotImplementedError()

    try:
        assert get_extractor_class("test-only") is TestOnlyExtractor
        assert TestOnlyExtractor.name == "test-only"
    finally:
        EXTRACTOR_REGISTRY.pop("test-only", None)
