from __future__ import annotations

import json
from pathlib import Path

import pytest

from linear_workflow import migrations
from linear_workflow.core.errors import MigrationError
from linear_workflow.migrations import (
    CURRENT_VERSION,
    Migration,
    compare_versions,
    execute_migrations,
    installed_version,
    migration_path,
    upgrade,
)


def _write_config(project: Path, config: dict) -> Path:
    path = project / ".linear-workflow.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "left, right, expected",
    [
        ("1.0.0", "1.0.0", 0),
        ("1.0.0", "1.1.0", -1),
        ("1.10.0", "1.9.0", 1),
        ("2", "1.9.9", 1),
        ("1.2", "1.2.0", 0),
        ("1.2.0-beta", "1.2.0", 0),
        ("v1.1", "1.1.0", 0),
        ("1.10.0-rc1", "1.9.0", 1),
        ("", "1.0.0", -1),
        ("latest", "0.0.0", 0),
    ],
)
def test_compare_versions(left, right, expected):
    assert compare_versions(left, right) == expected


def test_installed_version_defaults():
    assert installed_version({}) == "1.0.0"
    assert installed_version({"version": "1.1.0"}) == "1.1.0"


def test_migration_path_is_contiguous():
    assert [m.to_version for m in migration_path("1.0.0", CURRENT_VERSION)] == ["1.1.0", "1.2.0"]
    assert [m.to_version for m in migration_path("1.1.0", CURRENT_VERSION)] == ["1.2.0"]
    assert [m.to_version for m in migration_path("1.0.0", "1.1.0")] == ["1.1.0"]
    assert migration_path("0.9.0", CURRENT_VERSION) == []


def test_first_migration_restructures_assignees():
    config = {
        "version": "1.0.0",
        "assignees": {"enabled": True, "onDevelop": "ann", "onProduction": "bob"},
    }
    upgraded = execute_migrations(config, migration_path("1.0.0", "1.1.0"), Path("."))

    assert upgraded["version"] == "1.1.0"
    assert upgraded["features"]["dryRunMode"] is True
    assert upgraded["assignees"]["onInProgress"] == "ann"
    assert upgraded["assignees"]["onDone"] == "bob"
    assert "onDevelop" not in upgraded["assignees"]
    assert config["version"] == "1.0.0"


@pytest.mark.parametrize(
    "branches, profile",
    [
        ({"main": "main"}, "startup"),
        ({"main": "main", "staging": "staging"}, "small-team"),
        ({"main": "main", "staging": "staging", "prod": "prod"}, "enterprise"),
        ({"main": "main", "prod": "prod"}, "custom"),
    ],
)
def test_second_migration_detects_profile(branches, profile):
    config = {"version": "1.1.0", "branches": branches}
    upgraded = execute_migrations(config, migration_path("1.1.0", "1.2.0"), Path("."))
    assert upgraded["profile"] == profile
    assert upgraded["preferences"]["confirmOnExit"] is True


def test_failing_migration_is_wrapped():
    def broken(config, project_path):
        raise KeyError("branches")

    chain = [Migration("1.0.0", "1.1.0", "broken", broken)]
    with pytest.raises(MigrationError, match="1.0.0 → 1.1.0"):
        execute_migrations({"version": "1.0.0"}, chain, Path("."))


def test_upgrade_saves_result_with_backup(project: Path, config: dict):
    path = _write_config(project, config)
    original = path.read_text(encoding="utf-8")

    upgraded = upgrade(project)

    assert upgraded["version"] == CURRENT_VERSION
    assert json.loads(path.read_text(encoding="utf-8"))["profile"] == "small-team"
    assert (project / ".linear-workflow.json.backup").read_text(encoding="utf-8") == original


def test_upgrade_to_intermediate_version(project: Path, config: dict):
    _write_config(project, config)
    upgraded = upgrade(project, "1.1.0")
    assert upgraded["version"] == "1.1.0"
    assert "profile" not in upgraded


def test_upgrade_when_current_is_a_no_op(project: Path, config: dict):
    config["version"] = CURRENT_VERSION
    _write_config(project, config)

    assert upgrade(project) == config
    assert not (project / ".linear-workflow.json.backup").exists()


def test_upgrade_without_configuration(project: Path):
    with pytest.raises(MigrationError, match="No existing"):
        upgrade(project)


def test_upgrade_without_path(project: Path, config: dict, monkeypatch: pytest.MonkeyPatch):
    _write_config(project, config)
    monkeypatch.setattr(migrations, "migration_path", lambda current, target: [])
    with pytest.raises(MigrationError, match="No migration path"):
        upgrade(project)


def test_invalid_configuration_json(project: Path):
    (project / ".linear-workflow.json").write_text("{oops", encoding="utf-8")
    with pytest.raises(MigrationError, match="not valid JSON"):
        migrations.load_config(project)


def test_migration_path_accepts_prefixed_versions():
    assert [m.to_version for m in migration_path("v1.0", CURRENT_VERSION)] == ["1.1.0", "1.2.0"]


def test_upgrade_with_prerelease_version_is_a_no_op(project: Path, config: dict):
    config["version"] = "1.2.0-beta"
    _write_config(project, config)
    assert upgrade(project) == config
