"""Installation phase descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

PhaseDetails = Optional[dict[str, Any]]


@dataclass(frozen=True)
class Phase:
    """One named step of an installation.

    ``run`` performs the step and may return details recorded with the
    completed phase.
    """

    name: str
    run: Callable[[], PhaseDetails]


CREATE_BRANCH = "Create installation branch"
WRITE_CONFIG = "Create configuration file"
WRITE_WORKFLOW = "Generate GitHub Actions workflow"
WRITE_DOCS = "Create workflow documentation"
WRITE_INTEGRATIONS = "Configure MCP integration"
INSTALL_HOOK = "Install git hooks"
CREATE_DOC_DIRS = "Create documentation folders"

PHASE_ORDER = (
    CREATE_BRANCH,
    WRITE_CONFIG,
    WRITE_WORKFLOW,
    WRITE_DOCS,
    WRITE_INTEGRATIONS,
    INSTALL_HOOK,
    CREATE_DOC_DIRS,
)
