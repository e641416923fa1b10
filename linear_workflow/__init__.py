"""Linear workflow installer - renders and installs the Linear ↔ GitHub workflow.

Templates are rendered with the project's configuration and written
atomically; installations run in phases that roll back on failure.
"""

__version__ = "0.1.0"

# Configure logging for library use
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Re-export main CLI entry point
from .cli import main

__all__ = ["main"]
