"""Main CLI application."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from ..core.errors import InstallerError
from ..core.models import ApplyOptions, RenderTask
from ..health import check_health
from ..install.orchestrator import SetupOrchestrator
from ..migrations import (
    CURRENT_VERSION,
    MIGRATIONS,
    compare_versions,
    installed_version,
    load_config as load_installed_config,
    migration_path,
    upgrade as upgrade_config,
)
from ..rendering import engine
from ..rendering.io import read_template
from ..rendering.template import render_template
from ..settings import get_settings
from .parsers import load_config, parse_render

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="linear-workflow",
    help="Install and maintain the Linear ↔ GitHub workflow in a project.",
    no_args_is_help=True,
)

ProjectOption = Annotated[
    Path,
    typer.Option(
        "--project",
        "-p",
        help="Project directory (default: cwd).",
        metavar="DIR",
    ),
]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Configuration JSON (default: PROJECT/.linear-workflow.json).",
        metavar="FILE",
    ),
]


def _config_path(project: Path, config: Path | None) -> Path:
    return config if config is not None else project / get_settings().config_file


@app.callback()
def configure(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose logging.",
        ),
    ] = False,
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


@app.command()
def install(
    project: ProjectOption = Path("."),
    config: ConfigOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Preview changes without modifying files."),
    ] = False,
    create_branch: Annotated[
        bool,
        typer.Option(
            "--create-branch", help="Switch to the setup branch before installing."
        ),
    ] = False,
) -> None:
    """Run the installation with automatic rollback on failure."""
    data = load_config(_config_path(project, config))
    orchestrator = SetupOrchestrator(project, create_branch=create_branch)

    try:
        report = orchestrator.install(data, dry_run=dry_run)
    except InstallerError as e:
        logger.error(str(e))
        raise typer.Exit(code=1) from e

    for phase in report.phases:
        typer.echo(f"✓ {phase.name}")
    if dry_run:
        for path in report.previews:
            typer.echo(f"[dry run] would write {path}")
        return
    for path in report.files_created:
        typer.echo(f"• {path}")
    for record in report.backups:
        typer.echo(f"• {record.original} → {record.backup.name}")


@app.command()
def rollback(project: ProjectOption = Path(".")) -> None:
    """Roll back an incomplete installation."""
    report = SetupOrchestrator(project).rollback()
    for path in report.restored:
        typer.echo(f"✓ Restored {path}")
    for path in report.removed:
        typer.echo(f"✓ Deleted {path}")
    if not report.ok:
        for failure in report.failures:
            logger.error(f"{failure.path}: {failure.error}")
        raise typer.Exit(code=1)


@app.command()
def status(project: ProjectOption = Path(".")) -> None:
    """Show the current installation status."""
    snapshot = SetupOrchestrator(project).status()
    if snapshot is None:
        typer.echo("No installation in progress")
        return

    typer.echo(f"In progress: {snapshot.in_progress}")
    typer.echo(f"Current phase: {snapshot.phase or 'N/A'}")
    typer.echo(f"Started: {snapshot.start_time or 'N/A'}")
    for phase in snapshot.completed_phases:
        typer.echo(f"  ✓ {phase.name}")
    if snapshot.failed_phase:
        message = snapshot.error.message if snapshot.error else "unknown error"
        typer.echo(f"  ✗ {snapshot.failed_phase}: {message}")
    for path in snapshot.files_created:
        typer.echo(f"  • {path}")


@app.command()
def render(
    template: Annotated[Path, typer.Argument(help="Template file.", metavar="TEMPLATE")],
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help="Configuration JSON.", metavar="FILE"),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Escape values for JSON output."),
    ] = False,
) -> None:
    """Render a template to stdout."""
    context = load_config(config)
    try:
        text = read_template(template)
    except InstallerError as e:
        logger.error(str(e))
        raise typer.Exit(code=1) from e
    typer.echo(render_template(text, context, json_mode=json_output), nl=False)


@app.command()
def apply(
    renders: Annotated[
        list[str],
        typer.Option(
            "--render",
            help="Render TEMPLATE to OUTPUT (format: TEMPLATE=OUTPUT). Repeatable.",
            metavar="TEMPLATE=OUTPUT",
        ),
    ],
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help="Configuration JSON.", metavar="FILE"),
    ],
    backup: Annotated[
        bool,
        typer.Option("--backup/--no-backup", help="Back up existing outputs."),
    ] = True,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Render without writing."),
    ] = False,
    continue_on_error: Annotated[
        bool,
        typer.Option("--continue-on-error", help="Keep going after a failed template."),
    ] = False,
) -> None:
    """Apply templates to output files."""
    tasks = [
        RenderTask(template_path=tpl, output_path=out)
        for tpl, out in map(parse_render, renders)
    ]
    options = ApplyOptions(
        backup=backup, dry_run=dry_run, continue_on_error=continue_on_error
    )
    context = load_config(config)

    try:
        results = engine.apply_all(tasks, context, options)
    except InstallerError as e:
        logger.error(str(e))
        raise typer.Exit(code=1) from e

    for result in results:
        mark = "✓" if result.success else "✗"
        typer.echo(f"{mark} {result.template_path} → {result.output_path}")
        if result.backup_path:
            typer.echo(f"  backup: {result.backup_path}")
        if result.error:
            typer.echo(f"  error: {result.error}")
    if not all(r.success for r in results):
        raise typer.Exit(code=1)


@app.command("check-version")
def check_version(project: ProjectOption = Path(".")) -> None:
    """Compare the installed configuration with the latest version."""
    try:
        config = load_installed_config(project, get_settings().config_file)
    except InstallerError as e:
        logger.error(str(e))
        raise typer.Exit(code=1) from e
    if config is None:
        typer.echo("No workflow installed")
        return

    installed = installed_version(config)
    typer.echo(f"Installed version: {installed}")
    typer.echo(f"Latest version:    {CURRENT_VERSION}")

    comparison = compare_versions(installed, CURRENT_VERSION)
    if comparison == 0:
        typer.echo("Up to date")
    elif comparison > 0:
        typer.echo("Installed version is newer than this tool")
    else:
        for migration in migration_path(installed, CURRENT_VERSION):
            typer.echo(f"  {migration.from_version} → {migration.to_version}: {migration.description}")


@app.command()
def upgrade(
    project: ProjectOption = Path("."),
    to: Annotated[
        Optional[str],
        typer.Option("--to", help="Target version (default: latest).", metavar="VERSION"),
    ] = None,
) -> None:
    """Upgrade the installed configuration."""
    try:
        upgraded = upgrade_config(project, to, get_settings().config_file)
    except InstallerError as e:
        logger.error(str(e))
        raise typer.Exit(code=1) from e
    typer.echo(f"Configuration at version {installed_version(upgraded)}")


@app.command("list-migrations")
def list_migrations() -> None:
    """List every registered migration."""
    for migration in MIGRATIONS:
        suffix = " (breaking)" if migration.breaking else ""
        typer.echo(f"{migration.from_version} → {migration.to_version}{suffix}")
        typer.echo(f"  {migration.description}")
        for change in migration.changes:
            typer.echo(f"    • {change}")


@app.command()
def health(
    project: ProjectOption = Path("."),
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print the report as JSON."),
    ] = False,
) -> None:
    """Check the installation in a project."""
    report = check_health(project)
    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        typer.echo(f"Overall health: {report.score}%")
        for check in report.checks:
            mark = "✓" if check.passed else ("⚠" if check.severity == "warning" else "✗")
            typer.echo(f"{mark} {check.name}: {check.message}")
    if not report.healthy:
        raise typer.Exit(code=1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
