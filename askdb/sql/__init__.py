"""SQL execution and safety for AskDB Lite."""
from .executor import (
    ConnectionParameters,
    DatabaseBackend,
    SqlAlchemyBackend,
    SqliteBackend,
    TabularResult,
    connect,
    create_backend,
)
from .safety import explain_unsafe, is_sql_safe

__all__ = [
    "ConnectionParameters",
    "DatabaseBackend",
    "SqlAlchemyBackend",
    "SqliteBackend",
    "TabularResult",
    "connect",
    "create_backend",
    "explain_unsafe",
    "is_sql_safe",
]
