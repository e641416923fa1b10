"""Shared fixtures for installer tests."""
from __future__ import annotations

import copy
import json
from pathlib import Path

import pytest

SAMPLE_CONFIG = {
    "version": "1.0.0",
    "project": {"name": "demo-app", "path": "."},
    "branches": {"main": "main", "staging": "staging"},
    "linear": {
        "teamKey": "DEV",
        "teamId": "team-1",
        "teamName": "Developers",
        "workspaceId": "ws-1",
        "workspaceName": "Acme",
        "statuses": {
            "inProgress": "In Progress",
            "inProgressId": "state-1",
            "review": "In Review",
            "reviewId": "state-2",
            "staging": "Staging",
            "stagingId": "state-3",
            "done": "Done",
            "doneId": "state-4",
        },
    },
    "formats": {
        "commit": "conventional-parens",
        "pr": "issue-prefix",
        "issuePattern": "DEV-[0-9]+",
        "issueExample": "DEV-123",
    },
    "detail": "technical",
    "paths": {
        "issues": "docs/issues",
        "workflow": ".github/workflows/linear-status-update.yml",
    },
}


@pytest.fixture
def config() -> dict:
    return copy.deepcopy(SAMPLE_CONFIG)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def git_project(project: Path) -> Path:
    (project / ".git" / "hooks").mkdir(parents=True)
    return project


@pytest.fixture
def config_file(tmp_path: Path, config: dict) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    return path
