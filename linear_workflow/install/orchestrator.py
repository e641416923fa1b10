"""Phased installation with persisted progress and automatic rollback.

Phases run strictly in order. Progress is written to the state file after
every phase, so an interrupted run is detected (and rolled back) by the next
one. Concurrent installations against the same project directory are not
supported.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, Mapping

from .. import __version__
from .._utils import has_command, is_git_repository, run_logged
from ..core.errors import InstallerError, PhaseError
from ..core.models import (
    ApplyOptions,
    ApplyResult,
    BackupRecord,
    InstallReport,
    RenderTask,
    RollbackReport,
    StateSnapshot,
)
from ..migrations import CURRENT_VERSION
from ..rendering.backup import BackupSession, restore_backups
from ..rendering.engine import apply_all
from ..rendering.io import atomic_write_text, backup_file, missing_directories
from ..rendering.template import lookup
from ..settings import Settings, get_settings
from . import phases as names
from .phases import Phase, PhaseDetails
from .state import InstallationState

logger = logging.getLogger(__name__)

HOOK_MODE = 0o755

# GitHub Actions expressions share the {{ }} marker syntax, so templates
# reference them through the context instead of writing them literally.
ACTIONS_EXPRESSIONS = {
    "linearApiKey": "${{ secrets.LINEAR_API_KEY }}",
    "eventName": "${{ github.event_name }}",
    "eventAction": "${{ github.event.action }}",
    "prTitle": "${{ github.event.pull_request.title }}",
    "prMerged": "${{ github.event.pull_request.merged }}",
    "headRef": "${{ github.head_ref }}",
    "baseRef": "${{ github.base_ref }}",
    "refName": "${{ github.ref_name }}",
    "commitMessage": "${{ github.event.head_commit.message }}",
    "issuesOutput": "${{ steps.issues.outputs.ids }}",
    "stateOutput": "${{ steps.state.outputs.id }}",
}


class SetupOrchestrator:
    """Runs the installation phases for one project directory."""

    def __init__(
        self,
        project_path: Path | None = None,
        settings: Settings | None = None,
        *,
        templates_dir: Path | None = None,
        create_branch: bool = False,
    ) -> None:
        self.project_path = (project_path or Path.cwd()).resolve()
        self.settings = settings or get_settings()
        self.templates_dir = templates_dir or self.settings.templates_dir
        self.create_branch = create_branch
        self.state = InstallationState(self.project_path / self.settings.state_file)
        self.session = BackupSession(on_record=self._persist_backup)

        self._dry_run = False
        self._config: dict[str, Any] = {}
        self._context: dict[str, Any] = {}
        self._previews: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def install(self, config: Mapping[str, Any], *, dry_run: bool = False) -> InstallReport:
        """Run every phase; on failure roll back and raise PhaseError."""
        self._dry_run = dry_run
        self._config = dict(config)
        self._context = self.render_context(self._config)
        self._previews = {}
        self.session = BackupSession(on_record=self._persist_backup)
        self.state = InstallationState(
            self.project_path / self.settings.state_file, persist=not dry_run
        )

        logger.info(f"Installing Linear workflow into {self.project_path}")
        if dry_run:
            logger.info("Dry run: no files will be modified")

        if self.state.load() and self.state.in_progress:
            self._recover_previous_installation()

        self.state.start_installation()
        self.state.save()

        phases = self.phases()
        for index, phase in enumerate(phases, start=1):
            self._execute_phase(phase, index, len(phases))

        self.state.complete()
        snapshot = self.state.snapshot
        report = InstallReport(
            success=True,
            dry_run=dry_run,
            phases=list(snapshot.completed_phases),
            files_created=list(snapshot.files_created),
            backups=list(snapshot.backups),
            previews=dict(self._previews),
        )
        self.state.clear()
        self.session.clear()

        logger.info("Installation complete")
        return report

    def rollback(self) -> RollbackReport:
        """Undo the installation recorded in the state file."""
        self.state = InstallationState(self.project_path / self.settings.state_file)
        if not self.state.load():
            logger.info("No installation state found; nothing to roll back")
            return RollbackReport()
        return self._rollback_state()

    def status(self) -> StateSnapshot | None:
        """Return the persisted installation state, if any."""
        state = InstallationState(self.project_path / self.settings.state_file)
        if not state.load():
            return None
        return state.snapshot

    def phases(self) -> list[Phase]:
        return [
            Phase(names.CREATE_BRANCH, self._create_branch),
            Phase(names.WRITE_CONFIG, self._write_config),
            Phase(names.WRITE_WORKFLOW, self._write_workflow),
            Phase(names.WRITE_DOCS, self._write_docs),
            Phase(names.WRITE_INTEGRATIONS, self._write_integrations),
            Phase(names.INSTALL_HOOK, self._install_hook),
            Phase(names.CREATE_DOC_DIRS, self._create_doc_dirs),
        ]

    def render_context(self, config: Mapping[str, Any]) -> dict[str, Any]:
        """User configuration overlaid with installer-provided values."""
        context = dict(config)
        context["installer"] = {
            "version": __version__,
            "configVersion": CURRENT_VERSION,
            "generatedAt": dt.datetime.now(dt.timezone.utc).isoformat(),
        }
        context["mcp"] = {"url": self.settings.mcp_url}
        context["actions"] = dict(ACTIONS_EXPRESSIONS)
        return context

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def _recover_previous_installation(self) -> None:
        failed = self.state.failed_phase or self.state.snapshot.phase or "unknown"
        if self._dry_run:
            logger.warning(
                f"Previous installation incomplete (phase: {failed}); "
                "a real run would roll it back first"
            )
            return

        logger.warning(
            f"Previous installation incomplete (phase: {failed}); rolling it back"
        )
        report = self._rollback_state()
        if not report.ok:
            raise InstallerError(
                "Previous installation could not be fully rolled back: "
                + "; ".join(f"{f.path}: {f.error}" for f in report.failures)
            )

    def _execute_phase(self, phase: Phase, index: int, total: int) -> None:
        logger.info(f"[{index}/{total}] {phase.name}")
        self.state.begin_phase(phase.name)

        try:
            details = phase.run()
        except Exception as e:
            completed = [p.name for p in self.state.completed_phases]
            logger.error(f"Phase '{phase.name}' failed: {e}")
            self.state.fail_phase(phase.name, e)
            try:
                self.state.save()
            except InstallerError as save_error:
                logger.error(f"Could not persist failure state: {save_error}")

            report = self._rollback_state()
            if report.ok:
                logger.info("Rollback complete; project restored")
            else:
                logger.error(
                    f"Rollback finished with {len(report.failures)} failure(s)"
                )
            raise PhaseError(phase.name, completed, str(e)) from e

        self.state.complete_phase(phase.name, details)
        self.state.save()

    def _rollback_state(self) -> RollbackReport:
        snapshot = self.state.snapshot
        report = RollbackReport()
        logger.info("Rolling back installation")

        unresolved_backups = restore_backups(snapshot.backups, report)
        backup_targets = {record.original for record in snapshot.backups}

        unresolved_files: list[Path] = []
        for path in snapshot.files_created:
            if path in backup_targets:
                continue
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not delete {path}: {e}")
                report.fail(path, e)
                unresolved_files.append(path)
                continue
            report.removed.append(path)
            logger.info(f"Deleted {path}")

        for directory in sorted(
            snapshot.directories_created, key=lambda p: len(p.parts), reverse=True
        ):
            try:
                directory.rmdir()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.info(f"Leaving directory {directory} in place: {e}")
                continue
            report.removed.append(directory)

        self.session.clear()
        if report.ok:
            self.state.clear()
        else:
            snapshot.backups = unresolved_backups
            snapshot.files_created = unresolved_files
            self.state.save()
        return report

    # ------------------------------------------------------------------
    # Write helpers
    # ------------------------------------------------------------------

    def _relative(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.project_path))
        except ValueError:
            return str(path)

    def _template(self, name: str) -> Path:
        return self.templates_dir / name

    def _track_output(self, path: Path) -> None:
        for directory in missing_directories(path.parent, self.project_path):
            self.state.track_directory_created(directory)
        if not path.exists():
            self.state.track_file_created(path)

    def _persist_backup(self, record: BackupRecord) -> None:
        self.state.track_backup(record.original, record.backup)
        self.state.save()

    def _write_output(self, path: Path, text: str, mode: int | None = None) -> None:
        if self._dry_run:
            self._previews[self._relative(path)] = text[: self.settings.preview_chars]
            return

        self._track_output(path)
        self.state.save()
        if not self.session.covers(path):
            backup = backup_file(path)
            if backup is not None:
                self.session.record(path, backup)

        atomic_write_text(path, text, mode=mode)
        self.session.mark_written(path)

    def _apply(self, tasks: list[RenderTask], mode: int | None = None) -> list[ApplyResult]:
        options = ApplyOptions(
            dry_run=self._dry_run,
            file_mode=mode,
            preview_chars=self.settings.preview_chars,
        )
        if not self._dry_run:
            for task in tasks:
                self._track_output(task.output_path)
            self.state.save()

        results = apply_all(tasks, self._context, options, self.session)

        for result in results:
            if result.preview is not None:
                self._previews[self._relative(result.output_path)] = result.preview
        return results

    def _outputs(self, *paths: Path) -> dict[str, Any]:
        key = "wouldWrite" if self._dry_run else "files"
        return {key: [self._relative(p) for p in paths]}

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _create_branch(self) -> PhaseDetails:
        branch = self.settings.branch_name
        if not self.create_branch:
            return {"skipped": True}
        if not is_git_repository(self.project_path) or not has_command("git"):
            logger.warning("Not a git repository (or git missing); skipping branch")
            return {"skipped": True}
        if self._dry_run:
            logger.info(f"[dry run] Would create branch {branch}")
            return {"branch": branch}

        exists = (
            run_logged(
                ["git", "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"],
                cwd=self.project_path,
                check=False,
            ).returncode
            == 0
        )
        command = ["git", "checkout", branch] if exists else ["git", "checkout", "-b", branch]
        run_logged(command, cwd=self.project_path)
        logger.info(f"Switched to branch {branch}")
        return {"branch": branch, "created": not exists}

    def _write_config(self) -> PhaseDetails:
        path = self.project_path / self.settings.config_file
        self._write_output(path, json.dumps(self._config, indent=2) + "\n")
        return self._outputs(path)

    def _write_workflow(self) -> PhaseDetails:
        workflow = lookup(self._config, "paths.workflow") or self.settings.workflow_path
        tasks = [
            RenderTask(
                template_path=self._template("github-workflow.yml.template"),
                output_path=self.project_path / workflow,
            )
        ]
        self._apply(tasks)
        return self._outputs(*(t.output_path for t in tasks))

    def _write_docs(self) -> PhaseDetails:
        tasks = [
            RenderTask(
                template_path=self._template("linear-workflow.md.template"),
                output_path=self.project_path / self.settings.docs_path,
            )
        ]
        self._apply(tasks)
        return self._outputs(*(t.output_path for t in tasks))

    def _write_integrations(self) -> PhaseDetails:
        tasks = [
            RenderTask(
                template_path=self._template("mcp.json.template"),
                output_path=self.project_path / ".mcp.json",
            ),
            RenderTask(
                template_path=self._template("env.example.template"),
                output_path=self.project_path / ".env.example",
            ),
        ]
        self._apply(tasks)
        return self._outputs(*(t.output_path for t in tasks))

    def _install_hook(self) -> PhaseDetails:
        if not is_git_repository(self.project_path):
            logger.warning("Not a git repository; skipping commit-msg hook")
            return {"skipped": True}

        tasks = [
            RenderTask(
                template_path=self._template("commit-msg.template"),
                output_path=self.project_path / self.settings.hook_path,
            )
        ]
        self._apply(tasks, mode=HOOK_MODE)
        return self._outputs(*(t.output_path for t in tasks))

    def _create_doc_dirs(self) -> PhaseDetails:
        issues = lookup(self._config, "paths.issues") or self.settings.issues_dir
        directory = self.project_path / issues
        if self._dry_run:
            logger.info(f"[dry run] Would create {issues}")
            return {"wouldCreate": [issues]}

        for created in missing_directories(directory, self.project_path):
            self.state.track_directory_created(created)
        self.state.save()
        directory.mkdir(parents=True, exist_ok=True)
        return {"directories": [issues]}
