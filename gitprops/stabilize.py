"""Neutralize volatile properties so results can serve as a cache key."""

from __future__ import annotations

import hashlib
import json
from typing import Dict, Mapping, Optional

BUILD_TIME = "build.time"


def stabilize(properties: Mapping[str, str], prefix: str) -> Dict[str, str]:
    """Blank the build timestamp while keeping its key.

    Every key starting with ``prefix`` and ending with ``build.time`` gets an
    empty value; all other entries pass through unchanged. The key set is
    never altered.
    """
    stable: Dict[str, str] = {}
    for key, value in properties.items():
        if key.startswith(prefix) and key.endswith(BUILD_TIME):
            stable[key] = ""
        else:
            stable[key] = value
    return stable


def fingerprint(properties: Mapping[str, str], extra: Optional[Mapping[str, str]] = None) -> str:
    """SHA-256 over the sorted map (plus optional extra inputs)."""
    payload = {"properties": dict(properties), "extra": dict(extra or {})}
    encoded = json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()
