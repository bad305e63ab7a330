"""Context variables for request-scoped entry context.

The host application (e.g. a request handler of the URL shortener) sets the
URL being served and the acting user id; every entry created while the
context is active picks them up without explicit parameter passing.

Context variables are thread-safe and automatically scoped per-async-task,
so concurrent requests never see each other's values.
"""

from __future__ import annotations

__all__ = [
    "clear_context",
    "current_url_var",
    "get_current_url",
    "get_user_id",
    "request_context",
    "set_current_url",
    "set_user_id",
    "user_id_var",
]

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

current_url_var: ContextVar[str | None] = ContextVar("linklog_current_url", default=None)
"""URL of the page or endpoint currently being served."""

user_id_var: ContextVar[str | None] = ContextVar("linklog_user_id", default=None)
"""User id of the caller currently being served."""


def get_current_url() -> str | None:
    """Get the current URL from context.

    Returns:
        str | None: Current URL if set, None otherwise.
    """
    return current_url_var.get()


def set_current_url(url: str | None) -> None:
    """Set the current URL in context.

    Args:
        url: URL being served, or None to unset.
    """
    current_url_var.set(url)


def get_user_id() -> str | None:
    """Get the current user id from context.

    Returns:
        str | None: Current user id if set, None otherwise.
    """
    return user_id_var.get()


def set_user_id(user_id: str | None) -> None:
    """Set the current user id in context.

    Args:
        user_id: Acting user id, or None to unset.
    """
    user_id_var.set(user_id)


def clear_context() -> None:
    """Reset all request-scoped context values."""
    current_url_var.set(None)
    user_id_var.set(None)


@contextmanager
def request_context(*, url: str | None = None, user_id: str | None = None) -> Iterator[None]:
    """Bind URL and user id for the duration of a block.

    Values that are None leave the surrounding context untouched.

    Example:
        >>> with request_context(url="https://sho.rt/abc123", user_id="u-42"):
        ...     logger.info("Redirect served", "RedirectHandler")
    """
    url_token = current_url_var.set(url) if url is not None else None
    user_token = user_id_var.set(user_id) if user_id is not None else None
    try:
        yield
    finally:
        if user_token is not None:
            user_id_var.reset(user_token)
        if url_token is not None:
            current_url_var.reset(url_token)
