"""Tests for the hiliner CLI."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from hiliner.cli import app
from helpers import action, write_config

runner = CliRunner()


def project_config(project: Path, actions: list[dict], **extra: object) -> Path:
    return write_config(project / ".hiliner" / "action-config.json", actions, **extra)


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "keyboard actions" in result.output


def test_cli_config_paths(home, project):
    project_config(project, [])
    result = runner.invoke(app, ["config", "paths", "--cwd", str(project)])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert [line.split()[1] for line in lines] == ["system", "user", "project"]
    assert lines[2].split()[0] == "✓"
    assert lines[0].split()[0] == "-"


def test_cli_config_paths_with_explicit(home, project, tmp_path):
    result = runner.invoke(
        app, ["config", "paths", "--cwd", str(project), "--config", str(tmp_path / "x.json")]
    )
    assert result.exit_code == 0
    assert "explicit" in result.output.splitlines()[-1]


def test_cli_config_validate_no_files(home, project):
    result = runner.invoke(app, ["config", "validate", "--cwd", str(project)])
    assert result.exit_code == 0
    assert "No config files found" in result.output
    assert "actions  = 12" in result.output


def test_cli_config_validate_valid(home, project):
    path = project_config(project, [action("fmt", "F"), action("lint", "L")])
    result = runner.invoke(app, ["config", "validate", "--cwd", str(project)])
    assert result.exit_code == 0
    assert f"Config valid: {path} (2 actions)" in result.output
    assert "actions  = 14" in result.output


def test_cli_config_validate_invalid(home, project):
    project_config(project, [{"id": "fmt", "key": "F"}])
    result = runner.invoke(app, ["config", "validate", "--cwd", str(project)])
    assert result.exit_code == 1
    assert "Config validation failed" in result.output
    assert "/actions/0/description" in result.output


def test_cli_config_validate_lenient(home, project):
    project_config(project, [action("ok", "O"), {"id": "bad", "key": "B"}])
    result = runner.invoke(app, ["config", "validate", "--cwd", str(project), "--lenient"])
    assert result.exit_code == 0
    assert "Dropped invalid action bad" in result.output
    assert "(1 actions)" in result.output


def test_cli_config_validate_missing_explicit(home, project, tmp_path):
    result = runner.invoke(
        app,
        ["config", "validate", "--cwd", str(project), "--config", str(tmp_path / "nope.json")],
    )
    assert result.exit_code == 1
    assert "file_not_found" in result.output


def test_cli_config_validate_broken_json(home, project):
    path = project / ".hiliner" / "action-config.json"
    path.parent.mkdir()
    path.write_text("{ not json")
    result = runner.invoke(app, ["config", "validate", "--cwd", str(project)])
    assert result.exit_code == 1
    assert "parse_error" in result.output


def test_cli_config_validate_registry_errors(home, project):
    project_config(project, [action("quit", "Q"), action("mine", "j")])
    result = runner.invoke(app, ["config", "validate", "--cwd", str(project)])
    assert result.exit_code == 1
    assert "Action registry could not be built" in result.output
    assert "[CRITICAL_BUILTIN_OVERRIDE]" in result.output
    assert "[KEY_BINDING_CONFLICT]" in result.output


def test_cli_config_show(home, project):
    write_config(home / ".hiliner" / "action-config.json", [action("x", "X", "echo u")])
    project_config(project, [action("x", "X", "echo p")], keyBindings={"Z": "x"})

    result = runner.invoke(app, ["config", "show", "--cwd", str(project)])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert len(data["sources"]) == 2
    assert data["config"]["actions"][0]["script"] == "echo p"
    assert data["config"]["keyBindings"] == {"Z": "x"}
    assert [c["type"] for c in data["conflicts"]] == ["duplicate_action_id"]


def test_cli_config_show_replace(home, project):
    write_config(home / ".hiliner" / "action-config.json", [action("u", "U")])
    project_config(project, [action("p", "P")])

    result = runner.invoke(app, ["config", "show", "--cwd", str(project), "--strategy", "replace"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [a["id"] for a in data["config"]["actions"]] == ["p"]


def test_cli_actions_list(home, project):
    project_config(project, [action("fmt", "F", category="editing")], keyBindings={"Q": "quit"})
    result = runner.invoke(app, ["actions", "list", "--cwd", str(project)])
    assert result.exit_code == 0
    assert "Navigation:" in result.output
    assert "Editing:" in result.output
    assert "space" in result.output
    assert "(custom)" in result.output
    assert "alias Q -> quit" in result.output
    assert "12 built-in, 1 custom" in result.output


def test_cli_actions_list_json(home, project):
    result = runner.invoke(app, ["actions", "list", "--cwd", str(project), "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["total_builtin"] == 12
    assert data["total_custom"] == 0
    assert "navigation" in data["categories"]


def test_cli_actions_resolve(home, project):
    project_config(project, [action("fmt", "F", "fmt {{filePath}} {{lineStart}}-{{lineEnd}}")])
    target = project / "main.py"
    target.write_text("a\nb\nc\n")

    result = runner.invoke(
        app,
        ["actions", "resolve", "F", str(target), "--cwd", str(project), "-l", "3", "-l", "2"],
    )

    assert result.exit_code == 0
    assert "action: fmt" in result.output
    assert f"fmt {target.resolve()} 2-3" in result.output


def test_cli_actions_resolve_builtin(home, project):
    target = project / "main.py"
    target.write_text("a\n")
    result = runner.invoke(app, ["actions", "resolve", "q", str(target), "--cwd", str(project)])
    assert result.exit_code == 0
    assert '"builtin": "quit"' in result.output


def test_cli_actions_resolve_unknown_key(home, project):
    target = project / "main.py"
    target.write_text("a\n")
    result = runner.invoke(app, ["actions", "resolve", "Z", str(target), "--cwd", str(project)])
    assert result.exit_code == 1
    assert "No action bound to key" in result.output


def test_cli_actions_resolve_missing_file(home, project):
    result = runner.invoke(
        app, ["actions", "resolve", "q", str(project / "absent.py"), "--cwd", str(project)]
    )
    assert result.exit_code == 1
    assert "Cannot read" in result.output


def test_cli_actions_list_merge_all_shows_conflicts(home, project):
    write_config(home / ".hiliner" / "action-config.json", [action("t1", "T")])
    project_config(project, [action("t2", "T")])

    result = runner.invoke(
        app, ["actions", "list", "--cwd", str(project), "--strategy", "merge_all"]
    )

    assert result.exit_code == 0
    assert "Key conflicts:" in result.output
    assert "kept t2, dropped t1" in result.output
    assert "(1 conflicts)" in result.output
    assert "↑" in result.output


def test_cli_config_validate_lenient_drops_orphan_alias(home, project):
    project_config(project, [action("ok", "O"), {"id": "bad", "key": "B"}], keyBindings={"X": "bad"})
    result = runner.invoke(app, ["config", "validate", "--cwd", str(project), "--lenient"])
    assert result.exit_code == 0
    assert "Dropped key binding 'X'" in result.output
