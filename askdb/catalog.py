"""In-memory schema snapshot of a connected database."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Tuple


class DatabaseType(str, Enum):
    SQL_SERVER = "SqlServer"
    MYSQL = "MySql"
    POSTGRESQL = "PostgreSql"
    SQLITE = "Sqlite"

    @classmethod
    def parse(cls, value: str) -> "DatabaseType":
        v = (value or "").strip().lower().replace(" ", "").replace("_", "")
        aliases = {
            "sqlserver": cls.SQL_SERVER, "mssql": cls.SQL_SERVER,
            "mysql": cls.MYSQL, "mariadb": cls.MYSQL,
            "postgresql": cls.POSTGRESQL, "postgres": cls.POSTGRESQL, "pg": cls.POSTGRESQL,
            "sqlite": cls.SQLITE, "sqlite3": cls.SQLITE,
        }
        if v not in aliases:
            raise ValueError(f"Unsupported database type: {value!r}")
        return aliases[v]


@dataclass(frozen=True)
class Column:
    name: str
    declared_type: str = ""


@dataclass(frozen=True)
class Table:
    name: str
    columns: Tuple[Column, ...] = ()

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


@dataclass
class Catalog:
    """Tables of one connection plus the subset chosen as AI context.

    ``selected_tables`` is only changed through :meth:`select`, which keeps it
    a subset of ``tables`` in catalog order.
    """

    database_type: DatabaseType
    tables: Tuple[Table, ...] = ()
    _selected: Tuple[str, ...] = field(default=(), repr=False)

    def __post_init__(self) -> None:
        self.tables = tuple(self.tables)
        if not self._selected:
            self._selected = tuple(t.name for t in self.tables)

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    @property
    def selected_tables(self) -> List[Table]:
        chosen = set(self._selected)
        return [t for t in self.tables if t.name in chosen]

    def table(self, name: str) -> Table:
        for t in self.tables:
            if t.name == name:
                return t
        for t in self.tables:
            if t.name.lower() == name.lower():
                return t
        raise KeyError(name)

    def select(self, names: Iterable[str]) -> None:
        """Replace the selection; unknown names raise ``KeyError``."""
        resolved = {self.table(n).name for n in names}
        self._selected = tuple(t.name for t in self.tables if t.name in resolved)

    def select_all(self) -> None:
        self._selected = tuple(self.table_names)

    def schema_context(self) -> str:
        lines = []
        for t in self.selected_tables:
            cols = ", ".join(
                f"{c.name} ({c.declared_type})" if c.declared_type else c.name
                for c in t.columns
            )
            lines.append(f"Table {t.name}: {cols}")
        return "\n".join(lines)
