"""Per-engine configuration data.

Everything that differs between engines lives here as data; the backends in
``askdb.sql.executor`` read it instead of branching on the engine.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .catalog import DatabaseType


@dataclass(frozen=True)
class DialectProfile:
    database_type: DatabaseType
    display_name: str
    drivername: Optional[str]
    introspection_sql: str
    default_schema: Optional[str]
    quote: Tuple[str, str]
    default_port: Optional[int] = None

    def table_name(self, schema: Optional[str], table: str) -> str:
        if not schema or schema == self.default_schema:
            return table
        return f"{schema}.{table}"


# Every introspection query returns (schema, table, column, declared type)
# ordered by table and ordinal position.
_INFORMATION_SCHEMA_SQL = """SELECT TABLE_SCHEMA, TABLE_NAME, COLUMN_NAME, DATA_TYPE
FROM INFORMATION_SCHEMA.COLUMNS
{where}
ORDER BY TABLE_SCHEMA, TABLE_NAME, ORDINAL_POSITION"""

PROFILES: Dict[DatabaseType, DialectProfile] = {
    DatabaseType.SQL_SERVER: DialectProfile(
        database_type=DatabaseType.SQL_SERVER,
        display_name="SQL Server (T-SQL)",
        drivername="mssql+pyodbc",
        introspection_sql=_INFORMATION_SCHEMA_SQL.format(
            where="WHERE TABLE_SCHEMA NOT IN ('sys', 'INFORMATION_SCHEMA')"
        ),
        default_schema="dbo",
        quote=("[", "]"),
        default_port=1433,
    ),
    DatabaseType.MYSQL: DialectProfile(
        database_type=DatabaseType.MYSQL,
        display_name="MySQL",
        drivername="mysql+pymysql",
        introspection_sql=_INFORMATION_SCHEMA_SQL.format(
            where="WHERE TABLE_SCHEMA = DATABASE()"
        ),
        default_schema=None,
        quote=("`", "`"),
        default_port=3306,
    ),
    DatabaseType.POSTGRESQL: DialectProfile(
        database_type=DatabaseType.POSTGRESQL,
        display_name="PostgreSQL",
        drivername="postgresql+psycopg2",
        introspection_sql=_INFORMATION_SCHEMA_SQL.format(
            where="WHERE TABLE_SCHEMA NOT IN ('pg_catalog', 'information_schema')"
        ),
        default_schema="public",
        quote=('"', '"'),
        default_port=5432,
    ),
    DatabaseType.SQLITE: DialectProfile(
        database_type=DatabaseType.SQLITE,
        display_name="SQLite",
        drivername=None,
        introspection_sql="""SELECT 'main', m.name, p.name, p.type
FROM sqlite_master AS m
JOIN pragma_table_info(m.name) AS p
WHERE m.type IN ('table', 'view') AND m.name NOT LIKE 'sqlite_%'
ORDER BY m.name, p.cid""",
        default_schema="main",
        quote=('"', '"'),
    ),
}


def profile_for(database_type: DatabaseType) -> DialectProfile:
    return PROFILES[database_type]
