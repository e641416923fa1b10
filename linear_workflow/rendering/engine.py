"""Template application engine."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from ..core.errors import InstallerError
from ..core.models import ApplyOptions, ApplyResult, RenderTask
from .backup import BackupSession
from .io import atomic_write_text, backup_file, read_template
from .template import is_json_output, render_template

logger = logging.getLogger(__name__)


def apply_template(
    template_path: Path,
    output_path: Path,
    context: Mapping[str, Any],
    options: ApplyOptions | None = None,
    session: BackupSession | None = None,
) -> ApplyResult:
    """Render a template file and write it to ``output_path``.

    Args:
        template_path: Template file to read
        output_path: Destination of the rendered text
        context: Template context data
        options: Backup, dry-run and permission options
        session: Receives a record for every backup taken. An output it
            already covers is not backed up again.

    Returns:
        Result describing what happened

    Raises:
        TemplateReadError: The template could not be read
        BackupError: An existing output could not be copied aside
        WriteError: The rendered text could not be written
    """
    options = options or ApplyOptions()
    logger.debug(f"Rendering template: {template_path}")

    template = read_template(template_path)
    rendered = render_template(
        template, context, json_mode=is_json_output(output_path)
    )

    result = ApplyResult(
        success=False,
        template_path=template_path,
        output_path=output_path,
        dry_run=options.dry_run,
    )

    if options.dry_run:
        result.success = True
        result.preview = rendered[: options.preview_chars]
        logger.info(f"[dry run] Would render {template_path} → {output_path}")
        return result

    if options.backup and not (session is not None and session.covers(output_path)):
        backup = backup_file(
            output_path, options.backup_suffix, options.timestamped_backup
        )
        if backup is not None:
            result.backup_path = backup
            if session is not None:
                session.record(output_path, backup)

    atomic_write_text(output_path, rendered, mode=options.file_mode)
    if session is not None:
        session.mark_written(output_path)
    logger.info(f"Rendered {template_path} → {output_path}")

    result.success = True
    return result


def apply_all(
    tasks: Sequence[RenderTask],
    context: Mapping[str, Any],
    options: ApplyOptions | None = None,
    session: BackupSession | None = None,
) -> list[ApplyResult]:
    """Apply templates in order.

    With ``continue_on_error`` a failed task is recorded and the batch moves
    on; otherwise the first failure propagates. Nothing already written is
    undone here. An output listed more than once is backed up only before its
    first write.

    Returns:
        One result per attempted task
    """
    options = options or ApplyOptions()
    session = session if session is not None else BackupSession()
    logger.info(f"Applying {len(tasks)} template(s)")

    results: list[ApplyResult] = []
    for task in tasks:
        try:
            results.append(
                apply_template(
                    task.template_path, task.output_path, context, options, session
                )
            )
        except InstallerError as e:
            if not options.continue_on_error:
                raise
            logger.warning(f"Skipping {task.output_path}: {e}")
            results.append(
                ApplyResult(
                    success=False,
                    template_path=task.template_path,
                    output_path=task.output_path,
                    dry_run=options.dry_run,
                    error=str(e),
                )
            )

    succeeded = sum(1 for r in results if r.success)
    logger.info(f"Successfully applied {succeeded}/{len(tasks)} template(s)")
    return results
