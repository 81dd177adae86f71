"""Wire the generation task and the property bag into a build."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from gitprops.adapter import ExtractionAdapter
from gitprops.config.snapshot import ProjectContext, build_snapshot
from gitprops.config.typed_models import PluginSettings
from gitprops.publisher import RESULT_KEY, BuildContext, PropertyBag, ResultPublisher
from gitprops.state import TaskStateManager
from gitprops.task import GenerationTask

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = Path("build") / "tmp" / "gitprops" / "state.json"


class GitPropsPlugin:
    """One application of the plugin to a project.

    Applying the plugin registers a PropertyBag under ``gitProperties`` in
    the context's extra properties, so other build steps can query it before
    the task has run; executing the task replaces it with the computed map.
    """

    def __init__(
        self,
        project: ProjectContext,
        options: Union[PluginSettings, Mapping[str, Any], None] = None,
        *,
        config_path: Optional[str] = None,
        adapter: Optional[ExtractionAdapter] = None,
        context: Optional[BuildContext] = None,
        state_file: Optional[Path] = None,
        persist_state: bool = True,
    ):
        self.project = project
        self.context = context or BuildContext()
        self.publisher = ResultPublisher(
            lambda: build_snapshot(options, project, config_path=config_path),
            self.context,
            adapter=adapter,
        )
        state_path = Path(state_file) if state_file else Path(project.base_dir) / DEFAULT_STATE_FILE
        self.task = GenerationTask(self.publisher, TaskStateManager(state_path, enabled=persist_state))
        self.properties = PropertyBag(self.publisher)
        self.context.extra_properties[RESULT_KEY] = self.properties


def apply(project: ProjectContext, options: Union[PluginSettings, Mapping[str, Any], None] = None, **kwargs: Any) -> GitPropsPlugin:
    logger.debug(f"Applying git properties plugin to {project.name}")
    return GitPropsPlugin(project, options, **kwargs)
