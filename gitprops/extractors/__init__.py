"""Extractor interfaces and the bundled native/embedded implementations."""

from .base import (
    EXTRACTOR_REGISTRY,
    BaseExtractor,
    CommitDetails,
    ExtractorCallback,
    GitSession,
    branch_from_environment,
    get_extractor_class,
    list_extractor_types,
    register_extractor,
    short_describe,
)
from .embedded import EmbeddedGitExtractor
from .native import NativeGitExtractor

__all__ = [
    "EXTRACTOR_REGISTRY",
    "BaseExtractor",
    "CommitDetails",
    "EmbeddedGitExtractor",
    "ExtractorCallback",
    "GitSession",
    "NativeGitExtractor",
    "branch_from_environment",
    "get_extractor_class",
    "list_extractor_types",
    "register_extractor",
    "short_describe",
]
