"""
Tests for the SQL safety module.
Covers the destructive-statement denylist and fail-closed behaviour.
"""
import re

import pytest

from askdb.sql.safety import (
    DESTRUCTIVE_PATTERNS,
    explain_unsafe,
    is_sql_safe,
    mask_sql,
    split_statements,
)


class TestBlocksDestructive:
    """Statements that destroy schema or data."""

    @pytest.mark.parametrize("sql", [
        "DROP TABLE Customers",
        "drop table customers",
        "  DROP   TABLE X  ",
        "TRUNCATE TABLE Orders",
        "ALTER TABLE Customers ADD Age INT",
        "DELETE FROM Customers",
        "delete from Customers;",
        "UPDATE Customers SET Name = 'x'",
        "GRANT ALL ON Customers TO hacker",
        "REVOKE SELECT ON Customers FROM app",
        "EXEC sp_executesql N'DROP TABLE users'",
        "EXECUTE('malicious code')",
        "xp_cmdshell 'dir'",
        "CALL purge_everything()",
        "DBCC CHECKDB",
        "SHUTDOWN WITH NOWAIT",
        "ATTACH DATABASE 'other.db' AS other",
        "RESTORE DATABASE shop FROM DISK = 'c:/old.bak' WITH REPLACE",
        "KILL 53",
        "CREATE OR REPLACE VIEW v AS SELECT 1",
        "create  or\nreplace function f() returns int as 'select 1' language sql",
    ])
    def test_blocked(self, sql):
        assert is_sql_safe(sql) is False

    def test_drop_after_select(self):
        """Test a destructive statement chained after a harmless one."""
        assert is_sql_safe("SELECT 1; DROP TABLE Customers") is False

    def test_drop_hidden_behind_comment(self):
        """Test comments do not hide the second statement."""
        assert is_sql_safe("SELECT 1 /* harmless */; DROP TABLE Customers") is False

    def test_delete_in_cte_without_where(self):
        assert is_sql_safe("WITH d AS (DELETE FROM t RETURNING *) SELECT * FROM d") is False

    def test_where_only_in_earlier_statement(self):
        """Test WHERE must follow the DELETE in the same statement."""
        assert is_sql_safe("SELECT * FROM t WHERE 1=1; DELETE FROM t") is False

    def test_where_outside_cte_does_not_cover_delete(self):
        sql = "WITH d AS (DELETE FROM Customers RETURNING *) SELECT * FROM d WHERE 1=1"
        assert is_sql_safe(sql) is False

    def test_where_in_subquery_does_not_cover_update(self):
        assert is_sql_safe("UPDATE Customers SET City = (SELECT 'x' WHERE 1=1)") is False

    def test_filtered_delete_in_cte(self):
        sql = "WITH d AS (DELETE FROM Customers WHERE Id = 3 RETURNING *) SELECT * FROM d"
        assert is_sql_safe(sql) is True

    def test_update_with_subquery_and_where(self):
        sql = "UPDATE Orders SET Total = (SELECT MAX(Total) FROM Orders) WHERE Id = 1"
        assert is_sql_safe(sql) is True


class TestExecutableComments:
    """MySQL runs the body of /*! ... */ comments."""

    @pytest.mark.parametrize("sql", [
        "/*!50000 DROP */ TABLE Customers",
        "SELECT 1 /*! ; DROP TABLE Customers */",
        "/*!DELETE FROM Customers*/",
    ])
    def test_body_is_checked(self, sql):
        assert is_sql_safe(sql) is False

    def test_harmless_body_allowed(self):
        assert is_sql_safe("SELECT /*!40001 SQL_NO_CACHE */ * FROM Customers") is True

    def test_unterminated_literal_in_body(self):
        assert is_sql_safe("SELECT /*! 'abc */ 1") is False

    def test_explain_names_hidden_keyword(self):
        assert explain_unsafe("/*!50000 DROP */ TABLE Customers") == "DROP is not allowed"


class TestAllowsReads:
    """Pure reads and filtered writes are allowed."""

    @pytest.mark.parametrize("sql", [
        "SELECT * FROM Customers",
        "select count(*) from Orders",
        "  SELECT Name FROM Customers WHERE City = 'London'  ",
        "WITH t AS (SELECT * FROM Orders) SELECT SUM(Total) FROM t",
        "SELECT TOP 10 * FROM [Order Details]",
        "SELECT \"drop\" FROM t",
        "SELECT * FROM Customers WHERE Note = 'drop table x; --'",
        "SELECT updated_at, deleted_flag FROM Customers",
        "SELECT 1 -- DROP TABLE Customers",
        "SELECT $$DROP TABLE x$$",
    ])
    def test_allowed(self, sql):
        assert is_sql_safe(sql) is True

    def test_delete_with_where(self):
        assert is_sql_safe("DELETE FROM Orders WHERE Id = 3") is True

    def test_update_with_where(self):
        assert is_sql_safe("UPDATE Customers SET City = 'Paris' WHERE Id = 1") is True

    def test_insert(self):
        assert is_sql_safe("INSERT INTO Orders (CustomerId, Total) VALUES (1, 2.5)") is True


class TestFailClosed:
    """Anything the classifier cannot read is blocked."""

    @pytest.mark.parametrize("sql", ["", "   ", None, ";", " ; ; "])
    def test_empty(self, sql):
        assert is_sql_safe(sql) is False

    def test_unterminated_string(self):
        assert is_sql_safe("SELECT 'abc FROM Customers") is False

    def test_unterminated_block_comment(self):
        assert is_sql_safe("SELECT 1 /* DROP TABLE x") is False

    def test_explain_reason(self):
        assert explain_unsafe("DROP TABLE x") == "DROP is not allowed"
        assert explain_unsafe("DELETE FROM x") == "DELETE without WHERE is not allowed"
        assert explain_unsafe("SELECT 1") is None


class TestMasking:
    """Test literal masking helpers."""

    def test_mask_replaces_literals(self):
        masked = mask_sql("SELECT 'drop' FROM [drop] -- drop")
        assert "drop" not in masked.lower()

    def test_mask_doubled_quote(self):
        assert mask_sql("SELECT 'it''s' AS x") is not None

    def test_split_statements(self):
        assert split_statements("SELECT 1; SELECT 2;  ") == ["SELECT 1", "SELECT 2"]

    def test_patterns_are_regex(self):
        for pattern, label in DESTRUCTIVE_PATTERNS:
            re.compile(pattern, re.IGNORECASE)
            assert label
