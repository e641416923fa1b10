"""Versioned configuration migrations.

Each migration upgrades a configuration from one version to the next. The
engine chains them from the installed version to a target and saves the
result, keeping a backup of the previous file.
"""

from __future__ import annotations

import copy
import datetime as dt
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from .core.errors import MigrationError
from .rendering.io import atomic_write_text, backup_file

logger = logging.getLogger(__name__)

CURRENT_VERSION = "1.2.0"
DEFAULT_VERSION = "1.0.0"
CONFIG_FILE = ".linear-workflow.json"

Config = dict[str, Any]


_LEADING_DIGITS = re.compile(r"\d+")


def version_key(version: str) -> tuple[int, int, int]:
    """Major, minor and patch numbers of ``version``.

    A leading ``v`` is ignored, each part contributes its leading digits
    (``"0-beta"`` is 0) and missing or non-numeric parts count as 0.
    """
    parts = str(version).strip().lstrip("vV").split(".")
    numbers = []
    for part in parts[:3]:
        match = _LEADING_DIGITS.match(part)
        numbers.append(int(match.group()) if match else 0)
    numbers += [0] * (3 - len(numbers))
    return numbers[0], numbers[1], numbers[2]


def compare_versions(left: str, right: str) -> int:
    """Compare dotted versions; returns -1, 0 or 1."""
    for a, b in zip(version_key(left), version_key(right)):
        if a < b:
            return -1
        if a > b:
            return 1
    return 0


@dataclass(frozen=True)
class Migration:
    from_version: str
    to_version: str
    description: str
    migrate: Callable[[Config, Path], Config]
    breaking: bool = False
    changes: tuple[str, ...] = field(default_factory=tuple)


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _migrate_1_0_to_1_1(config: Config, project_path: Path) -> Config:
    updated = copy.deepcopy(config)
    features = updated.setdefault("features", {})
    features["dryRunMode"] = True

    assignees = updated.get("assignees")
    if isinstance(assignees, dict) and assignees.get("enabled"):
        restructured = dict(assignees)
        restructured["onInProgress"] = restructured.pop("onDevelop", None)
        restructured["onReview"] = assignees.get("onReview")
        restructured["onStaging"] = assignees.get("onStaging")
        restructured["onDone"] = restructured.pop("onProduction", None)
        restructured.setdefault("preserveOriginal", True)
        updated["assignees"] = restructured

    updated["version"] = "1.1.0"
    updated["lastMigration"] = _now()
    return updated


def _detect_profile(branches: dict[str, Any]) -> str:
    staging = branches.get("staging")
    prod = branches.get("prod")
    if staging and prod:
        return "enterprise"
    if staging:
        return "small-team"
    if not prod:
        return "startup"
    return "custom"


def _migrate_1_1_to_1_2(config: Config, project_path: Path) -> Config:
    updated = copy.deepcopy(config)
    branches = config.get("branches")
    if isinstance(branches, dict):
        updated["profile"] = _detect_profile(branches)
    else:
        updated.setdefault("profile", "custom")

    updated.setdefault(
        "preferences",
        {"confirmOnExit": True, "autoSave": False, "verboseLogging": False},
    )
    updated["version"] = "1.2.0"
    updated["lastMigration"] = _now()
    return updated


MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        from_version="1.0.0",
        to_version="1.1.0",
        description="Add auto-assignment enhancements and dry-run mode",
        migrate=_migrate_1_0_to_1_1,
        changes=(
            "New: Dry-run mode for preview before installation",
            "New: Enhanced auto-assignment with per-status configuration",
            "New: Workflow health check command",
        ),
    ),
    Migration(
        from_version="1.1.0",
        to_version="1.2.0",
        description="Add configuration profiles and editor preferences",
        migrate=_migrate_1_1_to_1_2,
        changes=(
            "New: Configuration profiles (startup, small team, enterprise)",
            "New: Editor preferences",
        ),
    ),
)


def installed_version(config: Config) -> str:
    return str(config.get("version") or DEFAULT_VERSION)


def migration_path(
    from_version: str,
    to_version: str,
    migrations: tuple[Migration, ...] = MIGRATIONS,
) -> list[Migration]:
    """Contiguous chain of migrations from ``from_version`` up to ``to_version``."""
    ordered = sorted(migrations, key=lambda m: version_key(m.from_version))
    chain: list[Migration] = []
    current = from_version
    for migration in ordered:
        if compare_versions(migration.to_version, to_version) > 0:
            break
        if compare_versions(migration.from_version, current) == 0:
            chain.append(migration)
            current = migration.to_version
    return chain


def execute_migrations(
    config: Config, migrations: list[Migration], project_path: Path
) -> Config:
    """Apply ``migrations`` in order and return the upgraded configuration."""
    current = copy.deepcopy(config)
    for migration in migrations:
        logger.info(f"Migrating {migration.from_version} → {migration.to_version}")
        if migration.breaking:
            logger.warning("This is a breaking change")
        try:
            current = migration.migrate(current, project_path)
        except Exception as e:
            raise MigrationError(
                f"Migration {migration.from_version} → {migration.to_version} failed: {e}"
            ) from e
    return current


def load_config(project_path: Path, config_file: str = CONFIG_FILE) -> Config | None:
    """Load the installed configuration, or None when there is none."""
    path = project_path / config_file
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except ValueError as e:
        raise MigrationError(f"Configuration {path} is not valid JSON: {e}") from e


def save_config(
    config: Config, project_path: Path, config_file: str = CONFIG_FILE
) -> Path | None:
    """Write the configuration atomically; returns the backup path, if any."""
    path = project_path / config_file
    backup = backup_file(path)
    if backup is not None:
        logger.info(f"Backup created: {backup.name}")
    atomic_write_text(path, json.dumps(config, indent=2) + "\n")
    logger.info("Configuration updated")
    return backup


def upgrade(
    project_path: Path,
    to_version: str | None = None,
    config_file: str = CONFIG_FILE,
) -> Config:
    """Upgrade the installed configuration to ``to_version`` (default: latest)."""
    config = load_config(project_path, config_file)
    if config is None:
        raise MigrationError("No existing workflow configuration found")

    current = installed_version(config)
    target = to_version or CURRENT_VERSION
    if compare_versions(current, target) >= 0:
        logger.info(f"Already at {current}; nothing to upgrade")
        return config

    migrations = migration_path(current, target)
    if not migrations:
        raise MigrationError(f"No migration path from {current} to {target}")

    upgraded = execute_migrations(config, migrations, project_path)
    save_config(upgraded, project_path, config_file)
    logger.info(f"Upgraded from {current} to {installed_version(upgraded)}")
    return upgraded
