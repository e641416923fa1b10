"""Health checks for an installed project."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from ._utils import is_git_repository
from .core.models import HealthReport
from .rendering.template import lookup
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "project.name",
    "branches.main",
    "linear.teamKey",
    "formats.issuePattern",
    "paths.issues",
)


def _load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _check_config(project: Path, settings: Settings, report: HealthReport) -> dict | None:
    path = project / settings.config_file
    if not path.exists():
        report.add("Configuration file", False, f"{settings.config_file} not found")
        return None
    try:
        config = _load_json(path)
    except ValueError as e:
        report.add("Configuration file", False, f"Invalid JSON: {e}")
        return None
    report.add("Configuration file", True, f"{settings.config_file} found and valid")

    missing = [name for name in REQUIRED_FIELDS if lookup(config, name) in (None, "")]
    report.add(
        "Required fields",
        not missing,
        "All required fields present" if not missing else "Missing required fields",
        missing=missing,
    )
    return config


def _check_workflow(
    project: Path, settings: Settings, config: dict | None, report: HealthReport
) -> None:
    relative = (config and lookup(config, "paths.workflow")) or settings.workflow_path
    path = project / relative
    if not path.exists():
        report.add("GitHub Actions workflow", False, f"{relative} not found")
        return
    try:
        workflow = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        report.add("GitHub Actions workflow", False, f"Invalid YAML: {e}")
        return
    if not isinstance(workflow, dict) or "jobs" not in workflow:
        report.add("GitHub Actions workflow", False, "Workflow defines no jobs")
        return
    report.add("GitHub Actions workflow", True, f"{relative} is valid")


def _check_hook(project: Path, settings: Settings, report: HealthReport) -> None:
    if not is_git_repository(project):
        report.add(
            "Git hook", False, "Not a git repository", severity="warning"
        )
        return
    hook = project / settings.hook_path
    if not hook.exists():
        report.add("Git hook", False, f"{settings.hook_path} not installed")
    elif not os.access(hook, os.X_OK):
        report.add("Git hook", False, f"{settings.hook_path} is not executable")
    else:
        report.add("Git hook", True, "commit-msg hook installed")


def _check_mcp(project: Path, report: HealthReport) -> None:
    path = project / ".mcp.json"
    if not path.exists():
        report.add("MCP configuration", False, ".mcp.json not found", severity="warning")
        return
    try:
        data = _load_json(path)
    except ValueError as e:
        report.add("MCP configuration", False, f"Invalid JSON: {e}")
        return
    if lookup(data, "mcpServers.linear") is None:
        report.add("MCP configuration", False, "No Linear server configured")
        return
    report.add("MCP configuration", True, "Linear MCP server configured")


def _check_docs(
    project: Path, settings: Settings, config: dict | None, report: HealthReport
) -> None:
    docs = project / settings.docs_path
    report.add(
        "Workflow documentation",
        docs.exists(),
        f"{settings.docs_path} {'found' if docs.exists() else 'not found'}",
        severity="warning",
    )
    issues = (config and lookup(config, "paths.issues")) or settings.issues_dir
    report.add(
        "Issues directory",
        (project / issues).is_dir(),
        f"{issues} {'found' if (project / issues).is_dir() else 'not found'}",
        severity="warning",
    )


def check_health(project_path: Path, settings: Settings | None = None) -> HealthReport:
    """Inspect ``project_path`` for a complete, well-formed installation."""
    settings = settings or get_settings()
    report = HealthReport()

    config = _check_config(project_path, settings, report)
    _check_workflow(project_path, settings, config, report)
    _check_hook(project_path, settings, report)
    _check_mcp(project_path, report)
    _check_docs(project_path, settings, config, report)

    logger.debug(f"Health score for {project_path}: {report.score}%")
    return report
