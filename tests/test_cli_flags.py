"""Tests for the git-props command line."""

import json
import logging

import pytest

import gitprops_extract


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_parser_defaults():
    args = gitprops_extract.build_parser().parse_args([])
    assert args.include == []
    assert args.exclude == []
    assert args.force is False
    assert gitprops_extract._cli_overrides(args) == {}


def test_cli_overrides_map_to_option_groups(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    args = gitprops_extract.build_parser().parse_args(
        [
            "--native",
            "--abbrev-length", "10",
            "--prefix", "scm",
            "--exclude", "scm\\.build\\..*",
            "--exclude", "scm\\.remote\\..*",
            "--output", "out/git.json",
            "--format", "json",
            "--allow-missing-git-dir",
        ]
    )
    assert gitprops_extract._cli_overrides(args) == {
        "git": {"use_native_git": True, "abbrev_length": 10, "fail_on_no_git_directory": False},
        "format": {"property_prefix": "scm"},
        "filter": {"exclude_properties": ["scm\\.build\\..*", "scm\\.remote\\..*"]},
        "output": {
            "generate_output_file": True,
            "output_file": str(tmp_path.resolve() / "out" / "git.json"),
            "output_format": "json",
        },
    }


def test_relative_git_dir_resolves_against_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    args = gitprops_extract.build_parser().parse_args(["--project-dir", "/elsewhere", "--git-dir", "repo/.git"])
    assert gitprops_extract._cli_overrides(args)["git"]["dot_git_directory"] == str(tmp_path.resolve() / "repo" / ".git")


def test_config_base_dir_is_relative_to_config_file(tmp_path, monkeypatch):
    (tmp_path / "conf").mkdir()
    (tmp_path / "proj").mkdir()
    config = tmp_path / "conf" / "gitprops.yaml"
    config.write_text("project:\n  base_dir: ../proj\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path / "proj")

    args = gitprops_extract.build_parser().parse_args(["--config", str(config)])
    project = gitprops_extract._project(args, {"base_dir": "../proj"})

    assert project.base_dir.resolve() == (tmp_path / "proj").resolve()
    assert project.name == "proj"


def test_config_base_dir_anchors_default_state_file(tmp_path, monkeypatch, capsys):
    (tmp_path / "conf").mkdir()
    (tmp_path / "proj").mkdir()
    (tmp_path / "cwd").mkdir()
    config = tmp_path / "conf" / "gitprops.yaml"
    config.write_text(
        "project:\n  base_dir: ../proj\ngit:\n  fail_on_no_git_directory: false\n", encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path / "cwd")

    assert gitprops_extract.main(["--config", str(config), "-q"]) == 0
    assert json.loads(capsys.readouterr().out) == {}
    assert (tmp_path / "proj" / "build" / "tmp" / "gitprops" / "state.json").is_file()
    assert not (tmp_path / "cwd" / "build").exists()


def test_missing_git_dir_allowed_prints_empty_map(tmp_path, capsys):
    code = gitprops_extract.main(["--project-dir", str(tmp_path), "--allow-missing-git-dir", "-q"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {}


def test_missing_git_dir_fails(tmp_path, capsys):
    code = gitprops_extract.main(["--project-dir", str(tmp_path), "-q"])

    assert code == 1
    assert capsys.readouterr().out == ""


def test_invalid_option_fails(tmp_path):
    assert gitprops_extract.main(["--project-dir", str(tmp_path), "--abbrev-length", "0", "-q"]) == 1


def test_key_lookup(git_repo, git, capsys):
    head = git(git_repo, "rev-parse", "HEAD")

    code = gitprops_extract.main(["--project-dir", str(git_repo), "--key", "git.commit.id", "-q"])

    assert code == 0
    assert capsys.readouterr().out.strip() == head


def test_unknown_key_fails(git_repo):
    assert gitprops_extract.main(["--project-dir", str(git_repo), "--key", "git.nope", "-q"]) == 1


def test_full_run_with_output_file(git_repo, capsys):
    argv = [
        "--project-dir", str(git_repo),
        "--native",
        "--exclude", "git\\.commit\\.user\\..*",
        "--output", str(git_repo / "build" / "git.properties"),
        "--state-file", str(git_repo / "build" / "state.json"),
        "-q",
    ]

    assert gitprops_extract.main(argv) == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["git.build.time"] == ""
    assert "git.commit.user.name" not in printed

    written = (git_repo / "build" / "git.properties").read_text(encoding="utf-8")
    assert f"git.commit.id={printed['git.commit.id']}" in written.splitlines()
    assert "git.commit.user.name" not in written

    # Second run with identical inputs is up to date and prints the same map
    assert gitprops_extract.main(argv) == 0
    assert json.loads(capsys.readouterr().out) == printed


def test_format_flag_renders_stdout(tmp_path, capsys):
    config = tmp_path / "gitprops.yaml"
    config.write_text("general:\n  skip: true\n", encoding="utf-8")

    code = gitprops_extract.main(["--config", str(config), "--project-dir", str(tmp_path), "--format", "yml", "-q"])

    assert code == 0
    assert capsys.readouterr().out.strip() == "{}"


def test_project_section_from_config(tmp_path, capsys):
    config = tmp_path / "gitprops.yaml"
    config.write_text(
        f"project:\n  name: from-config\n  base_dir: {tmp_path}\n  version: 9.9.9\ngit:\n  fail_on_no_git_directory: false\n",
        encoding="utf-8",
    )

    assert gitprops_extract.main(["--config", str(config), "-q"]) == 0
    assert json.loads(capsys.readouterr().out) == {}
