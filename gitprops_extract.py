"""CLI entrypoint for git-commit-props.

This file wires together:

- Config loading and validation
- Plugin application for one project directory
- Task execution with up-to-date checking
- Printing the published properties (or a single key)
"""

import sys
import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from gitprops import __version__
from gitprops.config import OutputFormat, ProjectContext, load_config
from gitprops.exceptions import GitPropsError
from gitprops.logging_config import log_exception, setup_logging
from gitprops.plugin import apply
from gitprops.property_io import render
from gitprops.task import TaskOutcome

logger = logging.getLogger(__name__)


def _typed_path(value: Optional[str]) -> Optional[str]:
    # Paths typed on the command line are relative to the working directory
    return str(Path(value).resolve()) if value else None


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}

    def put(section: str, key: str, value: Any) -> None:
        if value is not None:
            overrides.setdefault(section, {})[key] = value

    put("general", "verbose", True if args.verbose else None)
    put("general", "skip", True if args.skip else None)
    put("git", "use_native_git", True if args.native else None)
    put("git", "evaluate_on_commit", args.commit)
    put("git", "abbrev_length", args.abbrev_length)
    put("git", "dot_git_directory", _typed_path(args.git_dir))
    put("git", "fail_on_no_git_directory", False if args.allow_missing_git_dir else None)
    put("format", "property_prefix", args.prefix)
    put("filter", "include_only_properties", args.include or None)
    put("filter", "exclude_properties", args.exclude or None)
    if args.output:
        put("output", "generate_output_file", True)
        put("output", "output_file", _typed_path(args.output))
    put("output", "output_format", args.format)
    return overrides


def _project(args: argparse.Namespace, section: Dict[str, Any]) -> ProjectContext:
    if args.project_dir:
        base_dir = Path(args.project_dir)
    elif section.get("base_dir"):
        # Relative to the config file that names it
        base_dir = Path(args.config).resolve().parent / Path(str(section["base_dir"]))
    else:
        base_dir = Path.cwd()
    name = args.project_name or section.get("name") or base_dir.resolve().name
    version = args.project_version or section.get("version") or "unspecified"
    return ProjectContext(name=name, base_dir=base_dir, version=str(version))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate git commit properties for a project build",
    )

    parser.add_argument("--config", help="Path to YAML config file")
    parser.add_argument("--project-dir", help="Project base directory (default: current directory)")
    parser.add_argument("--project-name", help="Project name (default: project directory name)")
    parser.add_argument("--project-version", help="Project version exposed as build.version")

    parser.add_argument("--git-dir", help="Path to the .git directory (default: <project-dir>/.git)")
    parser.add_argument("--commit", help="Commit reference to evaluate (default: HEAD)")
    parser.add_argument("--abbrev-length", type=int, help="Length of the abbreviated commit id")
    parser.add_argument("--native", action="store_true", help="Use the native git executable")
    parser.add_argument(
        "--allow-missing-git-dir",
        action="store_true",
        help="Publish no properties instead of failing when the .git directory is missing",
    )
    parser.add_argument("--prefix", help="Property namespace prefix (default: git)")
    parser.add_argument(
        "--include",
        action="append",
        default=[],
        help="Regular expression of properties to keep (can be specified multiple times)",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Regular expression of properties to drop (can be specified multiple times)",
    )
    parser.add_argument("--output", help="Write the properties to this file")
    parser.add_argument("--format", choices=OutputFormat.choices(), help="Format for --output and stdout")
    parser.add_argument("--key", help="Print only the value of this property")
    parser.add_argument("--skip", action="store_true", help="Skip property generation")

    parser.add_argument("--state-file", help="Where to keep up-to-date state")
    parser.add_argument("--force", action="store_true", help="Ignore up-to-date state")

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG level) logging, including extractor output",
    )
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress all output except errors")
    parser.add_argument(
        "--log-format",
        choices=["human", "json", "simple"],
        default=None,
        help="Log format (default: human). Can also set via GITPROPS_LOG_FORMAT env var",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"git-commit-props {__version__}",
        help="Show version and exit",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        log_level: Optional[int] = logging.DEBUG
    elif args.quiet:
        log_level = logging.ERROR
    else:
        log_level = None
    setup_logging(level=log_level, format_type=args.log_format)

    try:
        loaded = load_config(args.config, overrides=_cli_overrides(args))
        project = _project(args, loaded.project)
        plugin = apply(
            project,
            loaded.settings,
            config_path=args.config,
            state_file=Path(args.state_file) if args.state_file else None,
        )
        outcome = plugin.task.execute(force=args.force)
        logger.info(f"{plugin.task.NAME}: {outcome.value}")
        properties = plugin.task.generated_properties if outcome is not TaskOutcome.SKIPPED else {}
    except GitPropsError as exc:
        log_exception(logger, "Property generation failed", exc)
        return 1

    if args.key:
        value = properties.get(args.key)
        if value is None:
            logger.error(f"Property {args.key} is not set")
            return 1
        print(value)
        return 0

    fmt = OutputFormat(args.format) if args.format else None
    if fmt is None:
        print(json.dumps(dict(sorted(properties.items())), indent=2, ensure_ascii=False))
    else:
        sys.stdout.write(render(properties, fmt))
    return 0


if __name__ == "__main__":
    sys.exit(main())
