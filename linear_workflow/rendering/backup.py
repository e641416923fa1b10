"""Backup tracking and best-effort restoration."""

from __future__ import annotations

import datetime as dt
import logging
import shutil
from pathlib import Path
from typing import Callable, Iterable

from ..core.models import BackupRecord, RollbackReport

logger = logging.getLogger(__name__)


def restore_backups(
    records: Iterable[BackupRecord],
    report: RollbackReport,
    *,
    delete_backups: bool = True,
) -> list[BackupRecord]:
    """Copy every backup over its original.

    A failure on one record is logged, added to ``report`` and skipped.

    Returns:
        Records that could not be restored
    """
    unresolved: list[BackupRecord] = []
    for record in records:
        if not record.backup.exists():
            logger.warning(f"Backup missing for {record.original}: {record.backup}")
            report.fail(record.original, "Backup file not found")
            unresolved.append(record)
            continue
        try:
            shutil.copy2(record.backup, record.original)
        except OSError as e:
            logger.warning(f"Could not restore {record.original}: {e}")
            report.fail(record.original, e)
            unresolved.append(record)
            continue
        report.restored.append(record.original)
        logger.info(f"Restored {record.original}")

        if delete_backups:
            try:
                record.backup.unlink()
            except OSError as e:
                logger.warning(f"Could not delete backup {record.backup}: {e}")
                report.fail(record.backup, e)
                continue
            report.backups_deleted.append(record.backup)
    return unresolved


class BackupSession:
    """Ordered record of the backups taken during one installation session.

    ``on_record`` is called with every new record before the overwritten file
    is written, so callers can persist it first.
    """

    def __init__(
        self, on_record: Callable[[BackupRecord], None] | None = None
    ) -> None:
        self._records: list[BackupRecord] = []
        self._written: set[Path] = set()
        self._on_record = on_record

    def record(self, original: Path, backup: Path) -> BackupRecord:
        entry = BackupRecord(
            original=original,
            backup=backup,
            timestamp=dt.datetime.now(dt.timezone.utc).isoformat(),
        )
        self._records.append(entry)
        if self._on_record is not None:
            self._on_record(entry)
        return entry

    def covers(self, path: Path) -> bool:
        """True once ``path`` was backed up or written in this session."""
        target = path.absolute()
        return target in self._written or any(
            r.original.absolute() == target for r in self._records
        )

    def mark_written(self, path: Path) -> None:
        self._written.add(path.absolute())

    @property
    def records(self) -> list[BackupRecord]:
        return list(self._records)

    def clear(self) -> None:
        self._records = []
        self._written = set()

    def __len__(self) -> int:
        return len(self._records)

    def rollback(self, *, delete_backups: bool = True) -> RollbackReport:
        """Restore every tracked backup; clears the session when all succeed."""
        report = RollbackReport()
        unresolved = restore_backups(
            self._records, report, delete_backups=delete_backups
        )
        if report.ok:
            self.clear()
        else:
            self._records = unresolved
        return report

    def discard_backups(self) -> RollbackReport:
        """Delete every tracked backup file and clear the session."""
        report = RollbackReport()
        for record in self._records:
            try:
                record.backup.unlink(missing_ok=True)
            except OSError as e:
                report.fail(record.backup, e)
                continue
            report.backups_deleted.append(record.backup)
        self.clear()
        return report
