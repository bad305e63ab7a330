"""Shared file utilities for linklog.

Provides common utilities used by config, the durable store and the session record:
- get_app_dir: OS-appropriate application directory
- ensure_secure_directory / set_secure_permissions: Owner-only permissions
- atomic_write_text: Write-then-rename so readers never see a partial file
- require_file_exists / load_validated_json: Validated JSON loading
- format_size: Human-readable byte counts for CLI output
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import TypeVar

import click
from pydantic import BaseModel, ValidationError

from linklog.constants import APP_NAME

# Type variable for Pydantic models
T = TypeVar("T", bound=BaseModel)

__all__ = [
    "atomic_write_text",
    "ensure_secure_directory",
    "format_size",
    "get_app_dir",
    "load_validated_json",
    "require_file_exists",
    "set_secure_permissions",
]


def get_app_dir() -> Path:
    """Get the OS-appropriate application directory.

    Uses click.get_app_dir() which returns:
    - macOS: ~/Library/Application Support/linklog
    - Linux: ~/.config/linklog (XDG compliant)
    - Windows: C:\\Users\\<user>\\AppData\\Roaming\\linklog

    Returns:
        Path to the application directory.
    """
    return Path(click.get_app_dir(APP_NAME))


def set_secure_permissions(path: Path, *, is_directory: bool = False) -> None:
    """Set secure permissions on file or directory.

    Sets permissions to restrict access to owner only:
    - Directory: 0o700 (rwx------)
    - File: 0o600 (rw-------)

    Does nothing on Windows. Silently ignores permission errors
    (some systems don't allow permission changes).

    Args:
        path: Path to file or directory.
        is_directory: If True, use directory permissions (0o700).
    """
    if sys.platform == "win32":
        return

    try:
        mode = 0o700 if is_directory else 0o600
        path.chmod(mode)
    except OSError:
        pass  # Permission changes might fail on some systems


def ensure_secure_directory(directory: Path) -> None:
    """Create a directory (and parents) with owner-only permissions.

    Args:
        directory: Directory to create.

    Raises:
        OSError: If directory creation fails.
    """
    directory.mkdir(parents=True, exist_ok=True)
    set_secure_permissions(directory, is_directory=True)


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """Replace a file's contents atomically.

    Writes to a temporary sibling, fsyncs, then renames over the target.
    On failure the original file is left untouched and the temporary
    file is removed.

    Args:
        path: Target file path.
        text: Full new contents.
        encoding: Text encoding.

    Raises:
        OSError: If the write, fsync or rename fails.
    """
    ensure_secure_directory(path.parent)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    set_secure_permissions(path)


def require_file_exists(
    file_path: Path,
    file_type: str = "file",
    init_hint: bool = True,
) -> None:
    """Raise FileNotFoundError with helpful message if file doesn't exist.

    Args:
        file_path: Path to check.
        file_type: Description for error message (e.g., "configuration").
        init_hint: If True, suggest running 'linklog config init'.

    Raises:
        FileNotFoundError: If file doesn't exist.
    """
    if file_path.exists():
        return

    hint = f"\nRun 'linklog config init' to create a {file_type} file." if init_hint else ""
    raise FileNotFoundError(f"{file_type.capitalize()} file not found at {file_path}.{hint}")


def load_validated_json(
    file_path: Path,
    model_class: type[T],
    file_type: str = "file",
    recovery_hint: str | None = None,
    encoding: str | None = "utf-8",
) -> T:
    """Load JSON file and validate against Pydantic model.

    Combines file reading, JSON parsing, and Pydantic validation with
    consistent error messages.

    Args:
        file_path: Path to JSON file.
        model_class: Pydantic model class to validate against.
        file_type: Description for error messages (e.g., "config", "session").
        recovery_hint: Optional hint appended to validation errors.
        encoding: File encoding.

    Returns:
        Validated Pydantic model instance.

    Raises:
        ValueError: If JSON is invalid or validation fails.
    """
    try:
        with open(file_path, "r", encoding=encoding) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_type} file {file_path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Could not read {file_type} file {file_path}: {e}") from e

    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")

        hint = f"\n\n{recovery_hint}" if recovery_hint else ""
        raise ValueError(
            f"Invalid {file_type} configuration in {file_path}:\n" + "\n".join(errors) + hint
        ) from e


def format_size(size_bytes: int) -> str:
    """Format a byte count for display (e.g. "1.5 KB").

    Args:
        size_bytes: Size in bytes.

    Returns:
        Size with the largest unit that keeps the value at or above 1.
    """
    size = float(size_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"
