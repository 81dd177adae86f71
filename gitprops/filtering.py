"""Include/exclude filtering of generated properties.

Rules are regular expressions matched against the whole key, not shell
globs. ``git.commit.user.*`` therefore also matches ``gitXcommitXuserX``
because ``.`` matches any character; escape literal dots when an exact
prefix is required.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Dict, Iterable, List, Mapping, Pattern, Sequence


@lru_cache(maxsize=256)
def _compile(rule: str) -> Pattern[str]:
    return re.compile(rule)


def compile_rules(rules: Iterable[str]) -> List[Pattern[str]]:
    return [_compile(rule) for rule in rules]


def matches_any(key: str, patterns: Sequence[Pattern[str]]) -> bool:
    return any(pattern.fullmatch(key) for pattern in patterns)


def is_included(key: str, include_only: Sequence[str] = (), exclude: Sequence[str] = ()) -> bool:
    """Whether ``key`` survives the rules; exclusions always win."""
    if include_only and not matches_any(key, compile_rules(include_only)):
        return False
    return not matches_any(key, compile_rules(exclude))


def filter_properties(
    properties: Mapping[str, str],
    include_only: Sequence[str] = (),
    exclude: Sequence[str] = (),
) -> Dict[str, str]:
    """Return a new map holding only the keys allowed by the rules.

    With a non-empty ``include_only`` list a key must match at least one of
    its rules; afterwards any key matching an ``exclude`` rule is dropped.
    Never fails for empty maps or rule lists.
    """
    include_patterns = compile_rules(include_only)
    exclude_patterns = compile_rules(exclude)

    filtered: Dict[str, str] = {}
    for key, value in properties.items():
        if include_patterns and not matches_any(key, include_patterns):
            continue
        if matches_any(key, exclude_patterns):
            continue
        filtered[key] = value
    return filtered
