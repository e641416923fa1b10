from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LINEAR_WORKFLOW_", case_sensitive=False)

    config_file: str = ".linear-workflow.json"
    state_file: str = ".linear-workflow-state.json"
    templates_dir: Path = PACKAGE_TEMPLATES_DIR
    branch_name: str = "setup/linear-workflow"
    mcp_url: str = "https://mcp.linear.app/mcp"
    issues_dir: str = "docs/issues"
    workflow_path: str = ".github/workflows/linear-status-update.yml"
    docs_path: str = "docs/linear-workflow.md"
    hook_path: str = ".git/hooks/commit-msg"
    preview_chars: int = 500


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
