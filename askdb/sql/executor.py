from __future__ import annotations

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from ..catalog import Catalog, Column, DatabaseType, Table
from ..dialects import DialectProfile, profile_for
from ..errors import DatabaseConnectionError, ExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class TabularResult:
    """Named columns and positional rows, kept as a DataFrame."""

    frame: pd.DataFrame

    @classmethod
    def from_records(cls, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> "TabularResult":
        return cls(pd.DataFrame.from_records([tuple(r) for r in rows], columns=list(columns)))

    @classmethod
    def empty(cls) -> "TabularResult":
        return cls(pd.DataFrame())

    @property
    def columns(self) -> List[str]:
        return [str(c) for c in self.frame.columns]

    @property
    def rows(self) -> List[Tuple[Any, ...]]:
        return list(self.frame.itertuples(index=False, name=None))

    @property
    def row_count(self) -> int:
        return len(self.frame)


@dataclass
class ConnectionParameters:
    """Where to connect. ``url`` wins over the individual fields."""

    database_type: DatabaseType
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    path: Optional[str] = None
    url: Optional[str] = None
    options: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_url(cls, url: str) -> "ConnectionParameters":
        """Accept a SQLAlchemy URL or a bare SQLite file path."""
        if "://" not in url:
            return cls(DatabaseType.SQLITE, path=url)
        try:
            parsed = make_url(url)
        except ArgumentError as e:
            raise ValueError(f"Invalid database URL: {url!r}") from e
        backend = parsed.get_backend_name()
        if backend == "sqlite":
            return cls(DatabaseType.SQLITE, path=parsed.database or ":memory:")
        return cls(DatabaseType.parse(backend), url=url)

    def to_url(self) -> URL:
        if self.url:
            return make_url(self.url)
        profile = profile_for(self.database_type)
        if profile.drivername is None:
            return URL.create("sqlite", database=self.path or ":memory:")
        return URL.create(
            profile.drivername,
            username=self.username,
            password=self.password,
            host=self.host,
            port=self.port or profile.default_port,
            database=self.database,
            query=self.options,
        )


class DatabaseBackend(ABC):
    """connect / introspect / execute over one engine.

    Drivers are blocking, so every call is pushed to a worker thread.
    """

    def __init__(self, params: ConnectionParameters):
        self.params = params
        self.profile: DialectProfile = profile_for(params.database_type)
        self.catalog: Optional[Catalog] = None

    @property
    def database_type(self) -> DatabaseType:
        return self.params.database_type

    @abstractmethod
    def _open(self) -> None:
        ...

    @abstractmethod
    def _run(self, sql: str) -> Tuple[List[str], List[Tuple[Any, ...]]]:
        ...

    @abstractmethod
    def _close(self) -> None:
        ...

    def _interrupt(self) -> None:
        """Best effort abort of a running statement."""

    async def connect(self) -> Catalog:
        try:
            await asyncio.to_thread(self._open)
        except DatabaseConnectionError:
            raise
        except Exception as e:
            raise DatabaseConnectionError(str(e)) from e
        try:
            return await self.introspect()
        except ExecutionError as e:
            await self.close()
            raise DatabaseConnectionError(f"Could not read the schema: {e.message}") from e

    async def introspect(self) -> Catalog:
        _, rows = await self._run_async(self.profile.introspection_sql)
        tables: Dict[str, List[Column]] = {}
        for schema, table, column, declared in rows:
            name = self.profile.table_name(schema, table)
            tables.setdefault(name, []).append(Column(column, str(declared or "")))
        self.catalog = Catalog(
            self.database_type,
            tuple(Table(name, tuple(cols)) for name, cols in tables.items()),
        )
        logger.debug("Introspected %d tables", len(self.catalog.tables))
        return self.catalog

    async def execute(self, sql: str) -> TabularResult:
        columns, rows = await self._run_async(sql)
        if not columns:
            return TabularResult.empty()
        return TabularResult.from_records(columns, rows)

    async def close(self) -> None:
        await asyncio.to_thread(self._close)

    async def _run_async(self, sql: str) -> Tuple[List[str], List[Tuple[Any, ...]]]:
        try:
            return await asyncio.to_thread(self._run, sql)
        except asyncio.CancelledError:
            self._interrupt()
            raise
        except Exception as e:
            raise ExecutionError(sql, str(e)) from e


class SqliteBackend(DatabaseBackend):
    def __init__(self, params: ConnectionParameters):
        super().__init__(params)
        self._conn: Optional[sqlite3.Connection] = None

    def _open(self) -> None:
        target = self.params.path or ":memory:"
        if target != ":memory:":
            path = Path(target).expanduser().resolve()
            if not path.exists():
                raise DatabaseConnectionError(f"SQLite DB not found at: {path}")
            target = str(path)
        self._conn = sqlite3.connect(target, check_same_thread=False)

    def _run(self, sql: str) -> Tuple[List[str], List[Tuple[Any, ...]]]:
        if self._conn is None:
            raise RuntimeError("Not connected")
        cur = self._conn.execute(sql)
        try:
            columns = [d[0] for d in cur.description or ()]
            rows = cur.fetchall() if columns else []
        finally:
            cur.close()
        if self._conn.in_transaction:
            self._conn.commit()
        return columns, rows

    def _interrupt(self) -> None:
        if self._conn is not None:
            self._conn.interrupt()

    def _close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


class SqlAlchemyBackend(DatabaseBackend):
    """SQL Server, MySQL and PostgreSQL through one SQLAlchemy engine."""

    def __init__(self, params: ConnectionParameters):
        super().__init__(params)
        self._engine: Optional[Engine] = None

    def _open(self) -> None:
        engine = create_engine(self.params.to_url(), pool_pre_ping=True)
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            engine.dispose()
            raise DatabaseConnectionError(str(e)) from e
        self._engine = engine

    def _run(self, sql: str) -> Tuple[List[str], List[Tuple[Any, ...]]]:
        if self._engine is None:
            raise RuntimeError("Not connected")
        with self._engine.begin() as conn:
            result = conn.exec_driver_sql(sql)
            if not result.returns_rows:
                return [], []
            return list(result.keys()), [tuple(r) for r in result.fetchall()]

    def _close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


_BACKENDS = {
    DatabaseType.SQLITE: SqliteBackend,
    DatabaseType.SQL_SERVER: SqlAlchemyBackend,
    DatabaseType.MYSQL: SqlAlchemyBackend,
    DatabaseType.POSTGRESQL: SqlAlchemyBackend,
}


def create_backend(params: ConnectionParameters) -> DatabaseBackend:
    return _BACKENDS[params.database_type](params)


async def connect(params: ConnectionParameters) -> DatabaseBackend:
    """Open a backend and introspect its catalog (``backend.catalog``)."""
    backend = create_backend(params)
    await backend.connect()
    return backend
