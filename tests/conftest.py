"""
Pytest configuration and shared fixtures.
"""
import sqlite3

import pytest

from askdb.catalog import Catalog, Column, DatabaseType, Table
from askdb.errors import ExecutionError
from askdb.sql.executor import TabularResult
from askdb.translator import AITranslator


CUSTOMERS = [
    ("Ana Lopez", "ana@example.com", "Madrid"),
    ("Ben Smith", "ben@example.com", "London"),
    ("Chloe Ng", "chloe@example.com", "Seattle"),
]


@pytest.fixture
def shop_db(tmp_path):
    """
    Create a temporary shop database with Customers and Orders.
    """
    db_path = tmp_path / "shop.sqlite"
    conn = sqlite3.connect(str(db_path))
    conn.executescript("""
        CREATE TABLE Customers (
            Id INTEGER PRIMARY KEY AUTOINCREMENT,
            Name TEXT NOT NULL,
            Email TEXT,
            City TEXT
        );
        CREATE TABLE Orders (
            Id INTEGER PRIMARY KEY AUTOINCREMENT,
            CustomerId INTEGER NOT NULL,
            Total REAL NOT NULL
        );
    """)
    conn.executemany("INSERT INTO Customers (Name, Email, City) VALUES (?, ?, ?)", CUSTOMERS)
    conn.executemany(
        "INSERT INTO Orders (CustomerId, Total) VALUES (?, ?)",
        [(1, 25.5), (1, 10.0), (2, 99.9)],
    )
    conn.commit()
    conn.close()
    return db_path


@pytest.fixture
def shop_catalog():
    """Catalog matching shop_db, all tables selected."""
    return Catalog(
        DatabaseType.SQLITE,
        (
            Table("Customers", (Column("Id", "INTEGER"), Column("Name", "TEXT"),
                                Column("Email", "TEXT"), Column("City", "TEXT"))),
            Table("Orders", (Column("Id", "INTEGER"), Column("CustomerId", "INTEGER"),
                             Column("Total", "REAL"))),
        ),
    )


class FakeModel:
    """Text model that replays canned replies and records prompts."""

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or [])
        self.error = error
        self.prompts = []

    async def generate_content(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def make_translator():
    """Build an AITranslator backed by a FakeModel."""
    def _make(replies=None, error=None):
        model = FakeModel(replies, error)
        translator = AITranslator(model_factory=lambda credential, name: model)
        return translator, model
    return _make


class RecordingBackend:
    """
    In-memory backend: ``responses`` maps a SQL string to rows.
    Anything else fails like a real engine would.
    """

    def __init__(self, responses=None, columns=("Id", "Name")):
        self.responses = dict(responses or {})
        self.columns = list(columns)
        self.executed = []
        self.closed = False

    async def execute(self, sql):
        self.executed.append(sql)
        if sql not in self.responses:
            raise ExecutionError(sql, f'near "{sql.split()[0]}": syntax error')
        return TabularResult.from_records(self.columns, self.responses[sql])

    async def close(self):
        self.closed = True


@pytest.fixture
def recording_backend():
    return RecordingBackend


# Markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that touch a real SQLite file")
