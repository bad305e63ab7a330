"""Subcommand groups for the linklog CLI."""

__all__: list[str] = []
