"""Domain models for template application, installation state and reports."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RenderTask(BaseModel):
    """A single template rendering task."""

    template_path: Path = Field(..., description="Template file path")
    output_path: Path = Field(..., description="Output file path")


class ApplyOptions(BaseModel):
    """Options shared by single-file and batch template application."""

    backup: bool = Field(default=True, description="Copy an existing output aside first")
    backup_suffix: str = Field(default=".backup", description="Suffix for backup files")
    timestamped_backup: bool = Field(
        default=False, description="Insert an ISO timestamp before the backup suffix"
    )
    dry_run: bool = Field(default=False, description="Render only, touch nothing")
    continue_on_error: bool = Field(
        default=False, description="Batch only: record failures and keep going"
    )
    file_mode: int | None = Field(
        default=None, description="File permissions (octal); None keeps the existing mode"
    )
    preview_chars: int = Field(default=500, ge=0, description="Dry-run preview length")


class ApplyResult(BaseModel):
    """Outcome of applying one template to one output path."""

    success: bool
    template_path: Path
    output_path: Path
    backup_path: Path | None = None
    dry_run: bool = False
    preview: str | None = None
    error: str | None = None


class BackupRecord(BaseModel):
    """An overwritten file and the copy taken before the overwrite."""

    original: Path
    backup: Path
    timestamp: str | None = None


class RollbackFailure(BaseModel):
    """A single restore or delete that did not succeed during rollback."""

    path: Path
    error: str


class RollbackReport(BaseModel):
    """Per-item outcome of a best-effort rollback."""

    restored: list[Path] = Field(default_factory=list)
    removed: list[Path] = Field(default_factory=list)
    backups_deleted: list[Path] = Field(default_factory=list)
    failures: list[RollbackFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def fail(self, path: Path, error: Exception | str) -> None:
        self.failures.append(RollbackFailure(path=path, error=str(error)))


class PhaseRecord(BaseModel):
    """A completed installation phase; extra keys hold phase details."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    name: str
    completed_at: str = Field(..., alias="completedAt")


class ErrorInfo(BaseModel):
    message: str
    stack: str | None = None
    timestamp: str


class StateSnapshot(BaseModel):
    """On-disk shape of the installation recovery file."""

    model_config = ConfigDict(populate_by_name=True)

    in_progress: bool = Field(default=False, alias="inProgress")
    phase: str | None = None
    start_time: str | None = Field(default=None, alias="startTime")
    completed_phases: list[PhaseRecord] = Field(
        default_factory=list, alias="completedPhases"
    )
    failed_phase: str | None = Field(default=None, alias="failedPhase")
    error: ErrorInfo | None = None
    backups: list[BackupRecord] = Field(default_factory=list)
    files_created: list[Path] = Field(default_factory=list, alias="filesCreated")
    directories_created: list[Path] = Field(
        default_factory=list, alias="directoriesCreated"
    )


class InstallReport(BaseModel):
    """Summary returned by a finished (or dry-run) installation."""

    success: bool
    dry_run: bool = False
    phases: list[PhaseRecord] = Field(default_factory=list)
    files_created: list[Path] = Field(default_factory=list)
    backups: list[BackupRecord] = Field(default_factory=list)
    previews: dict[str, str] = Field(default_factory=dict)


class HealthCheck(BaseModel):
    name: str
    passed: bool
    message: str
    severity: str = "error"
    details: dict[str, Any] = Field(default_factory=dict)


class HealthReport(BaseModel):
    """Results of checking an installed project."""

    checks: list[HealthCheck] = Field(default_factory=list)

    def add(
        self,
        name: str,
        passed: bool,
        message: str,
        *,
        severity: str = "error",
        **details: Any,
    ) -> None:
        self.checks.append(
            HealthCheck(
                name=name,
                passed=passed,
                message=message,
                severity=severity,
                details=details,
            )
        )

    @property
    def errors(self) -> list[HealthCheck]:
        return [c for c in self.checks if not c.passed and c.severity == "error"]

    @property
    def warnings(self) -> list[HealthCheck]:
        return [c for c in self.checks if not c.passed and c.severity == "warning"]

    @property
    def score(self) -> int:
        if not self.checks:
            return 0
        passed = sum(1 for c in self.checks if c.passed)
        return round(passed / len(self.checks) * 100)

    @property
    def healthy(self) -> bool:
        return not self.errors
