"""Computed-once publication of the generated properties.

A BuildContext is owned by the build that creates it and holds every value
memoized for that build; it is reset explicitly when the build ends. The
ResultPublisher runs snapshot -> extraction -> filter -> stabilization the
first time its result is requested and returns the cached, read-only map
afterwards. PropertyBag exposes the same result as a lazily evaluated
mapping for other build steps.
"""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Set

from gitprops.adapter import ExtractionAdapter
from gitprops.config.snapshot import SettingsSnapshot
from gitprops.exceptions import GitPropsError
from gitprops.filtering import filter_properties
from gitprops.stabilize import stabilize

logger = logging.getLogger(__name__)

RESULT_KEY = "gitProperties"


class BuildContext:
    """Per-build cache plus the extra properties visible to other steps."""

    def __init__(self) -> None:
        self._results: Dict[str, Any] = {}
        self._computing: Set[str] = set()
        self._lock = threading.RLock()
        self.extra_properties: Dict[str, Any] = {}

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, computing it on first use.

        Failures are not cached; a later call computes again.
        """
        with self._lock:
            if key in self._results:
                return self._results[key]
            if key in self._computing:
                raise GitPropsError(
                    f"Re-entrant computation of '{key}' within the same build",
                    details={"key": key},
                )
            self._computing.add(key)
            try:
                value = compute()
            finally:
                self._computing.discard(key)
            self._results[key] = value
            return value

    def is_computed(self, key: str) -> bool:
        with self._lock:
            return key in self._results

    def reset(self) -> None:
        with self._lock:
            self._results.clear()
            self.extra_properties.clear()

    def __enter__(self) -> "BuildContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.reset()


class ResultPublisher:
    def __init__(
        self,
        snapshot_factory: Callable[[], SettingsSnapshot],
        context: BuildContext,
        adapter: Optional[ExtractionAdapter] = None,
        key: str = RESULT_KEY,
    ):
        self._snapshot_factory = snapshot_factory
        self._context = context
        self._adapter = adapter or ExtractionAdapter()
        self.key = key

    @property
    def context(self) -> BuildContext:
        return self._context

    def get_settings(self) -> SettingsSnapshot:
        """The snapshot for this build; assembled once, before any extraction."""
        return self._context.get_or_compute(f"{self.key}.settings", self._snapshot_factory)

    def get_result(self) -> Mapping[str, str]:
        return self._context.get_or_compute(self.key, self._compute)

    def _compute(self) -> Mapping[str, str]:
        settings = self.get_settings()
        if settings.skip:
            logger.info("Property generation is skipped by configuration")
            return MappingProxyType({})

        logger.debug("Executing extraction to gather git properties")
        raw = self._adapter.extract(settings)
        filtered = filter_properties(
            raw,
            include_only=settings.include_only_properties,
            exclude=settings.exclude_properties,
        )
        stable = stabilize(filtered, settings.property_prefix)
        logger.info(
            f"Published {len(stable)} git properties for {settings.project_name} "
            f"({len(raw) - len(filtered)} filtered out)"
        )
        return MappingProxyType(stable)


class PropertyBag(Mapping[str, str]):
    """Read-through view of the published result.

    Nothing is computed until a key is read. ``bag.get(key)`` returns None
    for unknown keys and ``bag.get(key, default)`` the given default.
    Calling the bag without a key renders every ``value:key,`` pair; calling
    it with a key behaves like ``get``.
    """

    def __init__(self, publisher: ResultPublisher):
        self._publisher = publisher

    def _properties(self) -> Mapping[str, str]:
        return self._publisher.get_result()

    def __getitem__(self, key: str) -> str:
        return self._properties()[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties())

    def __len__(self) -> int:
        return len(self._properties())

    def __call__(self, key: Optional[str] = None) -> Optional[str]:
        if key is None:
            return str(self)
        return self.get(key)

    def __str__(self) -> str:
        return "".join(f"{value}:{key}," for key, value in self._properties().items())

    def __repr__(self) -> str:
        if not self._publisher.context.is_computed(self._publisher.key):
            return "PropertyBag(<not computed>)"
        return f"PropertyBag({dict(self._properties())!r})"
