# AskDB Lite - natural-language queries over relational databases
"""
AskDB Lite - ask a database questions in plain language or SQL.
"""

__version__ = "0.1.0"

from .catalog import Catalog, Column, DatabaseType, Table
from .resolver import QueryResolver, Resolution, Status
from .session import Session
from .sql.executor import ConnectionParameters, TabularResult, connect
from .sql.safety import is_sql_safe
from .suggestions import SuggestionCache
from .translator import AITranslator, ResolvedQuery

__all__ = [
    "__version__",
    "AITranslator",
    "Catalog",
    "Column",
    "ConnectionParameters",
    "DatabaseType",
    "QueryResolver",
    "Resolution",
    "ResolvedQuery",
    "Session",
    "Status",
    "SuggestionCache",
    "Table",
    "TabularResult",
    "connect",
    "is_sql_safe",
]
