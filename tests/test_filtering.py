"""Tests for include/exclude property filtering."""

import pytest

from gitprops.filtering import filter_properties, is_included

PROPERTIES = {
    "git.commit.id": "abc123",
    "git.commit.user.name": "Jane Doe",
    "git.commit.user.email": "jane@example.com",
    "git.build.time": "2024-01-01T00:00:00+0000",
    "git.branch": "main",
}


def test_no_rules_keeps_everything():
    assert filter_properties(PROPERTIES) == PROPERTIES


def test_exclude_drops_matching_keys():
    result = filter_properties(PROPERTIES, exclude=["git.commit.user.*"])
    assert set(result) == {"git.commit.id", "git.build.time", "git.branch"}


def test_include_only_keeps_matching_keys():
    result = filter_properties(PROPERTIES, include_only=["git.commit.id", "git.branch"])
    assert result == {"git.commit.id": "abc123", "git.branch": "main"}


def test_exclude_wins_over_include():
    result = filter_properties(
        {"git.commit.id": "abc123", "git.build.time": "x"},
        include_only=["git.*"],
        exclude=["git.build.*"],
    )
    assert result == {"git.commit.id": "abc123"}


def test_rules_match_the_whole_key():
    # "git.commit" is not a prefix rule; it has to cover the entire key
    assert filter_properties(PROPERTIES, include_only=["git.commit"]) == {}


def test_dot_in_rule_matches_any_character():
    result = filter_properties({"gitXcommitXuserXname": "x"}, exclude=["git.commit.user.*"])
    assert result == {}


def test_escaped_dot_matches_literally():
    result = filter_properties(
        {"gitXcommitXuserXname": "x", "git.commit.user.name": "y"},
        exclude=["git\\.commit\\.user\\..*"],
    )
    assert result == {"gitXcommitXuserXname": "x"}


def test_empty_map_and_empty_rules():
    assert filter_properties({}, include_only=[], exclude=[]) == {}


def test_excluding_everything():
    assert filter_properties(PROPERTIES, exclude=[".*"]) == {}


def test_input_is_not_modified():
    original = dict(PROPERTIES)
    filter_properties(original, exclude=[".*"])
    assert original == PROPERTIES


@pytest.mark.parametrize(
    "include_only, exclude",
    [
        ([], []),
        ([], ["git.commit.user.*"]),
        (["git.commit.*"], []),
        (["git.*"], ["git.build.*", "git.branch"]),
    ],
)
def test_filtering_is_idempotent(include_only, exclude):
    once = filter_properties(PROPERTIES, include_only, exclude)
    twice = filter_properties(once, include_only, exclude)
    assert once == twice


@pytest.mark.parametrize(
    "key, expected",
    [
        ("git.commit.id", True),
        ("git.commit.user.name", False),
        ("git.branch", False),
    ],
)
def test_is_included(key, expected):
    assert is_included(key, include_only=["git.commit.*"], exclude=["git.commit.user.*"]) is expected
