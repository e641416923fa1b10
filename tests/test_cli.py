from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from linear_workflow.cli import app
from linear_workflow.cli.parsers import parse_render
from linear_workflow.migrations import CURRENT_VERSION

runner = CliRunner()


def test_parse_render_requires_separator():
    assert parse_render("a.template=out/a.txt") == (Path("a.template"), Path("out/a.txt"))
    with pytest.raises(typer.BadParameter):
        parse_render("no-separator")
    with pytest.raises(typer.BadParameter):
        parse_render("=out.txt")


def test_render_prints_to_stdout(tmp_path: Path, config_file: Path):
    template = tmp_path / "t.template"
    template.write_text("{{project.name}}/{{linear.teamKey}}", encoding="utf-8")

    result = runner.invoke(app, ["render", str(template), "--config", str(config_file)])

    assert result.exit_code == 0
    assert result.stdout == "demo-app/DEV"


def test_render_missing_template_fails(tmp_path: Path, config_file: Path):
    result = runner.invoke(
        app, ["render", str(tmp_path / "nope.template"), "--config", str(config_file)]
    )
    assert result.exit_code == 1


def test_apply_writes_outputs(tmp_path: Path, config_file: Path):
    template = tmp_path / "t.template"
    template.write_text("team={{linear.teamKey}}\n", encoding="utf-8")
    output = tmp_path / "out" / "team.env"

    result = runner.invoke(
        app,
        ["apply", "--render", f"{template}={output}", "--config", str(config_file)],
    )

    assert result.exit_code == 0
    assert output.read_text(encoding="utf-8") == "team=DEV\n"


def test_apply_continue_on_error_exits_nonzero(tmp_path: Path, config_file: Path):
    template = tmp_path / "t.template"
    template.write_text("x", encoding="utf-8")
    good = tmp_path / "good.txt"

    result = runner.invoke(
        app,
        [
            "apply",
            "--render", f"{tmp_path / 'missing.template'}={tmp_path / 'bad.txt'}",
            "--render", f"{template}={good}",
            "--config", str(config_file),
            "--continue-on-error",
        ],
    )

    assert result.exit_code == 1
    assert good.read_text(encoding="utf-8") == "x"


def test_install_status_and_health(project: Path, config_file: Path):
    result = runner.invoke(
        app, ["install", "--project", str(project), "--config", str(config_file)]
    )
    assert result.exit_code == 0
    assert (project / ".mcp.json").exists()

    status = runner.invoke(app, ["status", "--project", str(project)])
    assert status.exit_code == 0
    assert "No installation in progress" in status.stdout

    health = runner.invoke(app, ["health", "--project", str(project), "--json"])
    report = json.loads(health.stdout)
    assert {c["name"] for c in report["checks"]} >= {"Configuration file", "Required fields"}
    assert health.exit_code == 0


def test_install_dry_run_writes_nothing(project: Path, config_file: Path):
    result = runner.invoke(
        app,
        ["install", "--project", str(project), "--config", str(config_file), "--dry-run"],
    )
    assert result.exit_code == 0
    assert "would write .mcp.json" in result.stdout
    assert list(project.iterdir()) == []


def test_rollback_without_state(project: Path):
    result = runner.invoke(app, ["rollback", "--project", str(project)])
    assert result.exit_code == 0


def test_check_version_and_upgrade(project: Path, config: dict):
    (project / ".linear-workflow.json").write_text(json.dumps(config), encoding="utf-8")

    check = runner.invoke(app, ["check-version", "--project", str(project)])
    assert check.exit_code == 0
    assert "Installed version: 1.0.0" in check.stdout
    assert "1.1.0 → 1.2.0" in check.stdout

    upgraded = runner.invoke(app, ["upgrade", "--project", str(project)])
    assert upgraded.exit_code == 0
    assert f"Configuration at version {CURRENT_VERSION}" in upgraded.stdout


def test_check_version_without_installation(project: Path):
    result = runner.invoke(app, ["check-version", "--project", str(project)])
    assert result.exit_code == 0
    assert "No workflow installed" in result.stdout


def test_upgrade_without_installation_fails(project: Path):
    result = runner.invoke(app, ["upgrade", "--project", str(project)])
    assert result.exit_code == 1


def test_list_migrations():
    result = runner.invoke(app, ["list-migrations"])
    assert result.exit_code == 0
    assert "1.0.0 → 1.1.0" in result.stdout
    assert "1.1.0 → 1.2.0" in result.stdout


def test_check_version_tolerates_prerelease_suffix(project: Path, config: dict):
    config["version"] = "1.2.0-beta"
    (project / ".linear-workflow.json").write_text(json.dumps(config), encoding="utf-8")

    result = runner.invoke(app, ["check-version", "--project", str(project)])

    assert result.exit_code == 0
    assert "Up to date" in result.stdout
