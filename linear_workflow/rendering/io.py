"""File I/O operations for rendering."""

from __future__ import annotations

import datetime as dt
import logging
import os
import shutil
import stat
import tempfile
from pathlib import Path

from ..core.errors import BackupError, TemplateReadError, WriteError

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644


def ensure_parent(path: Path) -> None:
    """Ensure parent directories exist for the given path.

    Args:
        path: Path whose parent directories should be created
    """
    path.parent.mkdir(parents=True, exist_ok=True)


def missing_directories(directory: Path, root: Path) -> list[Path]:
    """Return ``directory`` and its ancestors under ``root`` that do not exist.

    Ordered outermost first, which is the order ``mkdir(parents=True)``
    creates them in.
    """
    missing: list[Path] = []
    current = directory
    while current != root and root in current.parents and not current.exists():
        missing.append(current)
        current = current.parent
    return list(reversed(missing))


def read_template(path: Path) -> str:
    """Read template text, raising TemplateReadError when unavailable."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateReadError(path, str(e)) from e


def atomic_write_text(path: Path, text: str, mode: int | None = None) -> None:
    """Write text to a file atomically using a temporary file.

    The temporary file lives next to the destination so the final rename
    never crosses filesystems. On failure the destination keeps its prior
    content (or stays absent) and the temporary file is removed.

    Args:
        path: Destination file path
        text: Text content to write
        mode: File permissions (octal); None keeps the mode of an existing
            destination, or 0644 for a new one
    """
    if mode is None:
        try:
            mode = stat.S_IMODE(path.stat().st_mode)
        except FileNotFoundError:
            mode = DEFAULT_FILE_MODE

    tmp_name: str | None = None
    try:
        ensure_parent(path)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.{os.getpid()}.",
            suffix=".tmp",
            dir=str(path.parent),
        )
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except OSError as e:
        raise WriteError(path, str(e)) from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            try:
                os.remove(tmp_name)
            except OSError:
                logger.warning(f"Could not remove temporary file {tmp_name}")


def backup_path_for(
    path: Path, suffix: str = ".backup", timestamp: bool = False
) -> Path:
    """Compute where a backup of ``path`` is stored."""
    if timestamp:
        ts = dt.datetime.now(dt.timezone.utc).isoformat().replace(":", "-").replace(".", "-")
        return path.with_name(f"{path.name}.{ts}{suffix}")
    return path.with_name(f"{path.name}{suffix}")


def unused_backup_path(
    path: Path, suffix: str = ".backup", timestamp: bool = False
) -> Path:
    """Return a backup location for ``path`` that does not exist yet.

    Backups left by earlier sessions are never overwritten: when the plain
    name is taken the timestamped name is used, then a numbered variant of it.
    """
    candidate = backup_path_for(path, suffix, timestamp)
    if not candidate.exists():
        return candidate

    stamped = backup_path_for(path, suffix, timestamp=True)
    stem = stamped.name.removesuffix(suffix)
    candidate = stamped
    counter = 1
    while candidate.exists():
        candidate = stamped.with_name(f"{stem}.{counter}{suffix}")
        counter += 1
    return candidate


def backup_file(
    path: Path, suffix: str = ".backup", timestamp: bool = False
) -> Path | None:
    """Copy an existing file aside before it is overwritten.

    Args:
        path: File to back up
        suffix: Backup file suffix
        timestamp: Insert a timestamp before the suffix

    Returns:
        The backup path, or None when ``path`` does not exist
    """
    if not path.exists():
        return None

    target = unused_backup_path(path, suffix, timestamp)
    try:
        shutil.copy2(path, target)
    except OSError as e:
        raise BackupError(path, str(e)) from e

    logger.debug(f"Backed up {path} → {target}")
    return target
