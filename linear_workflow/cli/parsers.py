"""CLI argument parsers and validators."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer


def parse_render(value: str) -> tuple[Path, Path]:
    """Parse a render argument in format TEMPLATE=OUTPUT."""
    if "=" not in value:
        raise typer.BadParameter(f"Must be TEMPLATE=OUTPUT, got: {value!r}")
    tpl, out = value.split("=", 1)
    if not tpl or not out:
        raise typer.BadParameter(f"Must be TEMPLATE=OUTPUT, got: {value!r}")
    return Path(tpl), Path(out)


def load_config(path: Path) -> dict[str, Any]:
    """Load a JSON configuration file used as the rendering context."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise typer.BadParameter(f"Configuration file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise typer.BadParameter(f"Configuration in {path} must be a JSON object")
    return data
