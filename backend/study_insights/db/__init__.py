"""Database utilities for the study insights backend."""

from .session import (
    dispose_engine,
    get_engine,
    get_session_factory,
    read_only_scope,
    session_scope,
)

__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "read_only_scope",
    "session_scope",
]
