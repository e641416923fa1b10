"""Exception taxonomy for template application and installation."""

from __future__ import annotations

from pathlib import Path


class InstallerError(Exception):
    """Base class for every error raised by the installer core."""


class TemplateReadError(InstallerError):
    """Raised when a template file is missing or unreadable."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot read template {path}: {reason}")
        self.path = path


class WriteError(InstallerError):
    """Raised when an atomic write or rename fails."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot write {path}: {reason}")
        self.path = path


class BackupError(InstallerError):
    """Raised when an existing file cannot be copied aside before overwrite."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot back up {path}: {reason}")
        self.path = path


class PhaseError(InstallerError):
    """Raised when an installation phase fails.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, phase: str, completed_phases: list[str], message: str) -> None:
        super().__init__(f"Phase '{phase}' failed: {message}")
        self.phase = phase
        self.completed_phases = completed_phases


class MigrationError(InstallerError):
    """Raised when a configuration upgrade cannot be performed."""
