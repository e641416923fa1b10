from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, Sequence

logger = logging.getLogger(__name__)


def run_logged(
    cmd: Iterable[str],
    *,
    cwd: Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """
    Run a subprocess capturing its output. On failure the captured stderr is
    logged before CalledProcessError is raised.
    """
    cmd_list: Sequence[str] = list(cmd)
    logger.debug("Running: %s", " ".join(cmd_list))

    result = subprocess.run(
        cmd_list,
        cwd=str(cwd) if cwd is not None else None,
        capture_output=True,
        text=True,
    )
    if check and result.returncode != 0:
        if result.stderr:
            logger.error(result.stderr.rstrip())
        raise subprocess.CalledProcessError(
            result.returncode,
            result.args,
            output=result.stdout,
            stderr=result.stderr,
        )
    return result


def has_command(name: str) -> bool:
    return shutil.which(name) is not None


def is_git_repository(path: Path) -> bool:
    return (path / ".git").is_dir()
