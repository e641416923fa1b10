from .backup import BackupSession
from .engine import apply_all, apply_template
from .template import render_template

__all__ = ["BackupSession", "apply_all", "apply_template", "render_template"]
