"""Command-line interface for linklog.

Provides commands for inspecting and exporting the durable log store,
the session record and the pipeline configuration.
"""

from .main import cli, main

__all__ = ["cli", "main"]
