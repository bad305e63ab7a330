"""Logging utilities and helpers.

This package provides logging infrastructure for linklog:
- iso_formatter: ISO 8601 timestamp formatting for JSONL logs and entries
- logging_context: Request-scoped URL and user id context

Import directly from submodules to avoid circular imports:
    from linklog.utils.logging.iso_formatter import format_iso8601
"""

__all__: list[str] = []  # Direct submodule imports required (see docstring)
