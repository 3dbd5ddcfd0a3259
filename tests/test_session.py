"""
Tests for session orchestration against a real SQLite file.
"""
import asyncio
import json

import pytest

from askdb.catalog import DatabaseType
from askdb.config import Settings
from askdb.errors import DatabaseConnectionError
from askdb.resolver import Status
from askdb.session import Session
from askdb.sql.executor import ConnectionParameters

pytestmark = pytest.mark.integration


def _params(path):
    return ConnectionParameters(DatabaseType.SQLITE, path=str(path))


def _settings(**kw):
    kw.setdefault("api_key", "test-key")
    kw.setdefault("suggestion_count", 2)
    return Settings(**kw)


class TestOpen:
    def test_open_and_warm_up(self, shop_db, make_translator):
        translator, model = make_translator(["SELECT Name FROM Customers\nSELECT COUNT(*) FROM Orders"])

        async def run():
            async with await Session.open(_params(shop_db), _settings(), translator) as session:
                await session.wait_ready()
                return session.cache.snapshot(), session.selected_table_names

        snapshot, selected = asyncio.run(run())
        assert selected == ["Customers", "Orders"]
        assert "SELECT" in snapshot
        assert "Customers" in snapshot
        assert "CustomerId" in snapshot
        assert "SELECT Name FROM Customers" in snapshot
        assert "a" not in snapshot
        assert [len(s) for s in snapshot] == sorted(len(s) for s in snapshot)
        assert "SQLite" in model.prompts[0]

    def test_warm_up_without_api_key(self, shop_db, make_translator):
        translator, model = make_translator()

        async def run():
            session = await Session.open(_params(shop_db), _settings(api_key=None), translator)
            await session.wait_ready()
            await session.close()
            return session

        session = asyncio.run(run())
        assert model.prompts == []
        assert "Orders" in session.cache

    def test_warm_up_survives_ai_failure(self, shop_db, make_translator):
        translator, _ = make_translator(error=RuntimeError("quota exceeded"))

        async def run():
            async with await Session.open(_params(shop_db), _settings(), translator) as session:
                await session.wait_ready()
                return session.suggest("cust")

        assert asyncio.run(run()) == ["customer", "customers", "Customers", "CustomerId"]

    def test_rebuild_after_selection_reuses_ai_queries(self, shop_db, make_translator):
        translator, model = make_translator(["SELECT Name FROM Customers"])

        async def run():
            async with await Session.open(_params(shop_db), _settings(), translator) as session:
                await session.wait_ready()
                session.select_tables(["Orders"])
                await session.start_warm_up()
                return session.cache.snapshot()

        snapshot = asyncio.run(run())
        assert len(model.prompts) == 1
        assert "SELECT Name FROM Customers" in snapshot
        assert "Orders" in snapshot
        assert "CustomerId" in snapshot
        assert "Email" not in snapshot

    def test_connection_error(self, tmp_path):
        with pytest.raises(DatabaseConnectionError):
            asyncio.run(Session.open(_params(tmp_path / "nope.sqlite"), _settings(), warm_up=False))


class TestResolve:
    def test_direct_sql_then_copy(self, shop_db, make_translator):
        translator, _ = make_translator()

        async def run():
            async with await Session.open(_params(shop_db), _settings(), translator, warm_up=False) as session:
                res = await session.resolve("SELECT * FROM Customers")
                copied = session.copy_sql()
                return res, copied, session.suggest("select *")

        res, copied, hits = asyncio.run(run())
        assert res.status is Status.SUCCESS
        assert res.result.row_count == 3
        assert copied == "SELECT * FROM Customers"
        assert hits == ["SELECT * FROM Customers"]

    def test_translation_uses_selected_tables(self, shop_db, make_translator):
        translator, model = make_translator(
            [json.dumps({"is_sql": True, "output": "SELECT Total FROM Orders WHERE CustomerId = 1"})]
        )

        async def run():
            async with await Session.open(_params(shop_db), _settings(), translator, warm_up=False) as session:
                session.select_tables(["Orders"])
                return await session.resolve("totals for customer one")

        res = asyncio.run(run())
        assert res.ok
        assert res.result.row_count == 2
        assert "Table Orders" in model.prompts[0]
        assert "Table Customers" not in model.prompts[0]

    def test_drop_is_blocked_and_table_survives(self, shop_db, make_translator):
        translator, _ = make_translator()

        async def run():
            async with await Session.open(_params(shop_db), _settings(), translator, warm_up=False) as session:
                blocked = await session.resolve("DROP TABLE Customers")
                still_there = await session.resolve("SELECT COUNT(*) AS n FROM Customers")
                return blocked, still_there

        blocked, still_there = asyncio.run(run())
        assert blocked.status is Status.REJECTED
        assert still_there.result.rows == [(3,)]

    def test_copy_sql_without_query(self, shop_db, make_translator):
        translator, _ = make_translator()

        async def run():
            async with await Session.open(_params(shop_db), _settings(), translator, warm_up=False) as session:
                return session.copy_sql()

        assert asyncio.run(run()) is None


class TestClose:
    def test_close_cancels_in_flight(self, shop_db, make_translator):
        class HangingModel:
            async def generate_content(self, prompt):
                await asyncio.sleep(30)

        from askdb.translator import AITranslator
        translator = AITranslator(model_factory=lambda credential, name: HangingModel())

        async def run():
            session = await Session.open(_params(shop_db), _settings(), translator, warm_up=False)
            task = asyncio.create_task(session.resolve("show me everything"))
            await asyncio.sleep(0.05)
            await session.close()
            with pytest.raises(asyncio.CancelledError):
                await task
            return session

        session = asyncio.run(run())
        assert session.backend._conn is None

    def test_resolve_after_close(self, shop_db, make_translator):
        translator, _ = make_translator()

        async def run():
            session = await Session.open(_params(shop_db), _settings(), translator, warm_up=False)
            await session.close()
            await session.close()
            await session.resolve("SELECT 1")

        with pytest.raises(RuntimeError, match="closed"):
            asyncio.run(run())
