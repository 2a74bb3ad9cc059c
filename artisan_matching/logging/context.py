"""Request-scoped logging context.

Fields pushed here are attached to every log record emitted while they are
active (see ``ContextualFilter``). Context lives in a ``ContextVar`` so
concurrent matching requests on different threads never see each other's
request_id.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional
from uuid import uuid4

LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the active context fields."""
    return LogContextVar.get().copy()


def push_log_context(**kwargs) -> Token:
    """Merge fields into the active context.

    Returns:
        Token to hand to pop_log_context() to restore the previous state

    Example:
        >>> token = push_log_context(request_id="abc123", tier="deterministic")
        >>> pop_log_context(token)
    """
    return LogContextVar.set({**LogContextVar.get(), **kwargs})


def pop_log_context(token: Token) -> None:
    """Restore the context captured by push_log_context()."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop all context fields. Mostly useful in tests."""
    LogContextVar.set({})


def new_request_id() -> str:
    """Generate an identifier for one matching request."""
    return uuid4().hex


class log_context:
    """Context manager that scopes fields to a block.

    Example:
        >>> with log_context(request_id="abc123", tier="deterministic"):
        ...     logger.info("Scoring candidates")  # carries request_id and tier
    """

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
            self.token = None
        return False
