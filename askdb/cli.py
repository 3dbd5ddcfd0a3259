from __future__ import annotations

import asyncio
import logging
import sys
from typing import List, Optional

from .catalog import DatabaseType
from .config import Settings, load_settings
from .errors import DatabaseConnectionError
from .resolver import ErrorKind, Resolution
from .session import Session
from .sql.executor import ConnectionParameters

INTRO = """
🧠 AskDB Lite — ask your database in plain English (or SQL)
What I do:
- Run your SQL directly when it is safe
- Otherwise translate your question into SQL for the selected tables
- Block destructive commands (DROP, TRUNCATE, ALTER, DELETE without WHERE, ...)
Commands:
- tables             → list tables (* = used as AI context)
- use t1,t2 | all    → choose the tables the AI may use
- sql                → show the last SQL and keep it for suggestions
- suggest <text>     → autosuggestions for a prefix
- help               → this text
- exit               → quit
""".strip()

MAX_PREVIEW_ROWS = 20


def _prompt_choice(prompt: str, choices: List[str], default: Optional[str] = None) -> str:
    while True:
        suffix = f" [{default}]" if default else ""
        raw = input(f"{prompt}{suffix}: ").strip()
        if not raw and default:
            return default
        for c in choices:
            if raw.lower() == c.lower():
                return c
        print(f"  ⚠️  Choose one: {', '.join(choices)}.")


def _prompt_connection() -> ConnectionParameters:
    kinds = [t.value for t in DatabaseType]
    db_type = DatabaseType(_prompt_choice("database type", kinds, default=DatabaseType.SQLITE.value))
    if db_type is DatabaseType.SQLITE:
        return ConnectionParameters(db_type, path=input("database file: ").strip())
    port = input("port (blank for default): ").strip()
    return ConnectionParameters(
        db_type,
        host=input("host: ").strip() or "localhost",
        port=int(port) if port.isdigit() else None,
        database=input("database: ").strip() or None,
        username=input("user: ").strip() or None,
        password=input("password: ").strip() or None,
    )


def _print_tables(session: Session) -> None:
    selected = set(session.selected_table_names)
    for t in session.catalog.tables:
        mark = "*" if t.name in selected else " "
        print(f"  {mark} {t.name} ({len(t.columns)} columns)")


def _print_resolution(res: Resolution) -> None:
    if res.ok:
        if res.translated:
            print(f"SQL:\n{res.sql}\n")
        frame = res.result.frame
        if frame.empty:
            print("✅ Done. No rows returned.\n")
            return
        print(frame.head(MAX_PREVIEW_ROWS))
        print(f"\nDone. Returned {len(frame)} rows.\n")
        return
    if res.error_kind is ErrorKind.UNSAFE_STATEMENT:
        print("\n🚫 You must not execute this dangerous command.\n")
        return
    title = res.title or res.status.value.title()
    print(f"\n❌ {title}: {res.reason}\n")


def _handle_command(session: Session, q: str) -> bool:
    """Run a shell command; False when ``q`` is not one."""
    low = q.lower()
    if low == "help":
        print("\n" + INTRO + "\n")
    elif low == "tables":
        _print_tables(session)
    elif low.startswith("use "):
        arg = q[len("use "):].strip()
        try:
            if arg.lower() == "all":
                session.select_all()
            else:
                session.select_tables(n.strip() for n in arg.split(",") if n.strip())
        except KeyError as e:
            print(f"  ⚠️  Unknown table: {e.args[0]}")
        _print_tables(session)
    elif low == "sql":
        sql = session.copy_sql()
        print(sql if sql else "No query yet.")
    elif low.startswith("suggest "):
        for s in session.suggest(q[len("suggest "):], limit=10):
            print(f"  {s}")
    else:
        return False
    return True


async def run_shell(params: ConnectionParameters, settings: Settings) -> None:
    print("\n" + INTRO + "\n")
    if not settings.api_key:
        print("ℹ️  OPENAI_API_KEY not set. Only SQL that runs as typed will work.\n")
    try:
        session = await Session.open(params, settings)
    except DatabaseConnectionError as e:
        print(f"❌ Could not connect: {e}")
        return

    async with session:
        print(f"🔗 Connected ({session.catalog.database_type.value}, {len(session.catalog.tables)} tables)\n")
        while True:
            try:
                q = (await asyncio.to_thread(input, "Ask a question: ")).strip()
            except (EOFError, KeyboardInterrupt):
                print("\n👋 Goodbye!\n")
                break
            if not q:
                continue
            if q.lower() in ("exit", "quit", "bye", "q"):
                print("\n👋 Goodbye!\n")
                break
            if _handle_command(session, q):
                if q.lower().startswith("use "):
                    session.start_warm_up()
                continue
            print("⏳ Running...")
            _print_resolution(await session.resolve(q))


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    target = argv[0] if argv else settings.database_url
    try:
        params = ConnectionParameters.from_url(target) if target else _prompt_connection()
    except (EOFError, KeyboardInterrupt):
        return 1
    except ValueError as e:
        print(f"❌ {e}")
        return 2
    try:
        asyncio.run(run_shell(params, settings))
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
