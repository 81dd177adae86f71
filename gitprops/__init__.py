"""git-commit-props: git metadata as filtered, cache-stable build properties."""

from gitprops.adapter import ExtractionAdapter
from gitprops.config import PluginSettings, ProjectContext, SettingsSnapshot, build_snapshot, load_config
from gitprops.filtering import filter_properties
from gitprops.plugin import GitPropsPlugin, apply
from gitprops.publisher import BuildContext, PropertyBag, ResultPublisher
from gitprops.stabilize import stabilize
from gitprops.task import GenerationTask, TaskOutcome

__version__ = "1.0.0"

__all__ = [
    "BuildContext",
    "ExtractionAdapter",
    "GenerationTask",
    "GitPropsPlugin",
    "PluginSettings",
    "ProjectContext",
    "PropertyBag",
    "ResultPublisher",
    "SettingsSnapshot",
    "TaskOutcome",
    "apply",
    "build_snapshot",
    "filter_properties",
    "load_config",
    "stabilize",
]
