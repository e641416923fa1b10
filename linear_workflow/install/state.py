"""Persisted progress of an installation, used for crash recovery."""

from __future__ import annotations

import datetime as dt
import json
import logging
import traceback
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..core.models import BackupRecord, ErrorInfo, PhaseRecord, StateSnapshot
from ..rendering.io import atomic_write_text

logger = logging.getLogger(__name__)


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


class InstallationState:
    """Phase-by-phase installation progress backed by a JSON file.

    With ``persist=False`` every mutator still works in memory but nothing is
    written to or deleted from disk.
    """

    def __init__(self, state_file: Path, *, persist: bool = True) -> None:
        self.state_file = state_file
        self.persist = persist
        self.snapshot = StateSnapshot()

    def load(self) -> bool:
        """Load the state file; False when absent or unparsable."""
        try:
            raw = self.state_file.read_text(encoding="utf-8")
            self.snapshot = StateSnapshot.model_validate(json.loads(raw))
        except FileNotFoundError:
            self.snapshot = StateSnapshot()
            return False
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable state file {self.state_file}: {e}")
            self.snapshot = StateSnapshot()
            return False
        return True

    def save(self) -> None:
        if not self.persist:
            return
        payload = self.snapshot.model_dump(mode="json", by_alias=True)
        atomic_write_text(self.state_file, json.dumps(payload, indent=2) + "\n")

    def clear(self) -> None:
        if not self.persist:
            return
        self.state_file.unlink(missing_ok=True)

    def start_installation(self) -> None:
        self.snapshot = StateSnapshot(in_progress=True, start_time=_now())

    def complete_phase(self, name: str, details: dict[str, Any] | None = None) -> None:
        record = PhaseRecord(name=name, completed_at=_now(), **(details or {}))
        self.snapshot.completed_phases.append(record)
        self.snapshot.phase = name

    def begin_phase(self, name: str) -> None:
        self.snapshot.phase = name

    def fail_phase(self, name: str, error: BaseException) -> None:
        self.snapshot.failed_phase = name
        self.snapshot.error = ErrorInfo(
            message=str(error),
            stack="".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
            timestamp=_now(),
        )

    def track_backup(self, original: Path, backup: Path) -> None:
        if any(
            b.original == original and b.backup == backup for b in self.snapshot.backups
        ):
            return
        self.snapshot.backups.append(BackupRecord(original=original, backup=backup))

    def track_file_created(self, path: Path) -> None:
        if path not in self.snapshot.files_created:
            self.snapshot.files_created.append(path)

    def track_directory_created(self, path: Path) -> None:
        if path not in self.snapshot.directories_created:
            self.snapshot.directories_created.append(path)

    def complete(self) -> None:
        self.snapshot.in_progress = False
        self.snapshot.phase = "completed"

    @property
    def in_progress(self) -> bool:
        return self.snapshot.in_progress

    @property
    def completed_phases(self) -> list[PhaseRecord]:
        return self.snapshot.completed_phases

    @property
    def failed_phase(self) -> str | None:
        return self.snapshot.failed_phase
