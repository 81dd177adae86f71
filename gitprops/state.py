"""Persisted task state for up-to-date checks.

Stores the fingerprint of the last successful generation so a later build
with identical inputs can skip the task.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from gitprops.exceptions import TaskStateError

logger = logging.getLogger(__name__)


class TaskStateManager:
    """Manage the state file of one generation task."""

    def __init__(self, state_file: Path, enabled: bool = True):
        """Initialize state manager.

        Args:
            state_file: JSON file holding the last fingerprint
            enabled: Whether state is persisted at all
        """
        self.state_file = Path(state_file)
        self.enabled = enabled

    def save(self, task_name: str, fingerprint: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Record a successful execution.

        Raises:
            TaskStateError: if the state file cannot be written
        """
        if not self.enabled:
            return

        state = {
            "task": task_name,
            "fingerprint": fingerprint,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metadata": metadata or {},
        }
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.state_file, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
        except OSError as exc:
            raise TaskStateError(
                "Failed to write task state", state_file=str(self.state_file), original_error=exc
            ) from exc
        logger.debug(f"Saved state for {task_name}: {fingerprint}")

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored state, or None if absent, disabled or unreadable."""
        if not self.enabled or not self.state_file.exists():
            return None

        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning(f"Ignoring unreadable task state {self.state_file}: {exc}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed task state {self.state_file}")
            return None
        return data

    def last_fingerprint(self) -> Optional[str]:
        state = self.load()
        return state.get("fingerprint") if state else None
