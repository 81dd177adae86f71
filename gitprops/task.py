"""The generation task as seen by the build host."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from gitprops.config.snapshot import SettingsSnapshot
from gitprops.publisher import ResultPublisher
from gitprops.stabilize import fingerprint
from gitprops.state import TaskStateManager

logger = logging.getLogger(__name__)


class TaskOutcome(str, Enum):
    SKIPPED = "skipped"
    UP_TO_DATE = "up-to-date"
    EXECUTED = "executed"


class GenerationTask:
    """Generates the git properties and publishes them to the build context.

    The .git directory is the staleness input and the optional property file
    the staleness output. The generated (stabilized) properties are
    themselves a task input, which is why they are memoized: evaluating them
    for the up-to-date check and for the execution runs extraction once.
    """

    NAME = "gitPropsGeneration"

    def __init__(self, publisher: ResultPublisher, state: Optional[TaskStateManager] = None):
        self.publisher = publisher
        self.state = state

    @property
    def settings(self) -> SettingsSnapshot:
        return self.publisher.get_settings()

    @property
    def input_directory(self) -> Path:
        return self.settings.dot_git_directory

    @property
    def output_file(self) -> Optional[Path]:
        settings = self.settings
        return settings.output_file if settings.generate_output_file else None

    @property
    def generated_properties(self) -> Mapping[str, str]:
        return self.publisher.get_result()

    def only_if(self) -> bool:
        return not self.settings.skip

    def current_fingerprint(self) -> str:
        output = self.output_file
        return fingerprint(
            self.generated_properties,
            extra={
                "input_directory": str(self.input_directory),
                "output_file": str(output) if output else "",
            },
        )

    def is_up_to_date(self) -> bool:
        if self.state is None:
            return False
        output = self.output_file
        if output is not None and not output.exists():
            return False
        return self.state.last_fingerprint() == self.current_fingerprint()

    def execute(self, force: bool = False) -> TaskOutcome:
        context = self.publisher.context
        if not self.only_if():
            logger.info(f"Task {self.NAME} skipped")
            context.extra_properties[self.publisher.key] = MappingProxyType({})
            return TaskOutcome.SKIPPED

        properties = self.generated_properties
        context.extra_properties[self.publisher.key] = properties

        if not force and self.is_up_to_date():
            logger.info(f"Task {self.NAME} is up to date")
            return TaskOutcome.UP_TO_DATE

        if self.state is not None:
            self.state.save(
                self.NAME,
                self.current_fingerprint(),
                metadata={"property_count": len(properties), "project": self.settings.project_name},
            )
        logger.info(f"Task {self.NAME} generated {len(properties)} properties")
        return TaskOutcome.EXECUTED
