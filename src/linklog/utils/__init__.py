"""Shared utilities (file handling, logging helpers)."""

__all__: list[str] = []
