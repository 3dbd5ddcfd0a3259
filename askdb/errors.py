"""Error kinds raised by the AskDB core.

The resolver turns every one of these into a tagged ``Resolution``; only
unexpected exceptions reach the presentation layer.
"""
from __future__ import annotations


class AskDBError(Exception):
    """Base class for expected, recoverable-or-reportable failures."""


class DatabaseConnectionError(AskDBError):
    """The backend is unreachable or refused the credentials."""


class UnsafeStatementError(AskDBError):
    """The safety classifier blocked a statement."""


class TranslationError(AskDBError):
    """The AI service failed (network, auth, quota, timeout, empty reply)."""


class ExecutionError(AskDBError):
    """The backend rejected a statement."""

    def __init__(self, sql: str, message: str):
        super().__init__(message)
        self.sql = sql
        self.message = message

    def __str__(self) -> str:
        return f"SQL Command: {self.sql}\n\n{self.message}"
