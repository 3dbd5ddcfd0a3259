from __future__ import annotations

import logging
import re
from typing import List, Optional

logger = logging.getLogger(__name__)

# Literals, quoted identifiers and comments, in the order the scanner tries them.
_MASK_RE = re.compile(
    r"""
      (?P<string>'(?:[^']|'')*')
    | (?P<dquote>"(?:[^"]|"")*")
    | (?P<bracket>\[[^\]\n]*\])
    | (?P<backtick>`[^`]*`)
    | (?P<dollar>\$(?P<tag>[A-Za-z_]\w*)?\$.*?\$(?P=tag)?\$)
    | (?P<exec>/\*!\d*(?P<body>.*?)\*/)
    | (?P<line>--[^\n]*)
    | (?P<block>/\*.*?\*/)
    """,
    re.S | re.X,
)

# Anything left after masking that opens a literal or comment means the
# scanner could not pair it up.
_UNTERMINATED_RE = re.compile(r"['\"`]|/\*|\*/|\$\w*\$")

DESTRUCTIVE_PATTERNS = [
    (r"\bdrop\b", "DROP"),
    (r"\btruncate\b", "TRUNCATE"),
    (r"\balter\b", "ALTER"),
    (r"\bgrant\b", "GRANT"),
    (r"\brevoke\b", "REVOKE"),
    (r"\bdeny\b", "DENY"),
    (r"\brename\b", "RENAME"),
    (r"\bshutdown\b", "SHUTDOWN"),
    (r"\bdbcc\b", "DBCC"),
    (r"\bexec(?:ute)?\b", "EXEC"),
    (r"\bcall\b", "CALL"),
    (r"\battach\b", "ATTACH"),
    (r"\bdetach\b", "DETACH"),
    (r"\brestore\b", "RESTORE"),
    (r"\bkill\b", "KILL"),
    (r"\bcreate\s+or\s+replace\b", "CREATE OR REPLACE"),
    (r"\bxp_\w+", "extended stored procedure"),
    (r"\bsp_\w+", "system stored procedure"),
]

_UNFILTERED_WRITE_RE = re.compile(r"\b(delete|update)\b", re.I)
_DEPTH_TOKEN_RE = re.compile(r"[()]|\bwhere\b", re.I)


def mask_sql(sql: str) -> Optional[str]:
    """Blank out literals and quoted names, drop comments.

    MySQL executable comments (``/*! ... */``) run on the server, so their
    body is kept and masked like the rest of the text.
    Returns None when the text has an unterminated literal or comment.
    """
    def _sub(m: re.Match) -> str:
        if m.group("exec") is not None:
            body = mask_sql(m.group("body"))
            # a lone quote makes the outer text unterminated
            return " ' " if body is None else f" {body} "
        if m.group("line") is not None or m.group("block") is not None:
            return " "
        if m.group("string") is not None:
            return "''"
        return "_q_"

    masked = _MASK_RE.sub(_sub, sql)
    # '' placeholders are the only quotes allowed to remain
    if _UNTERMINATED_RE.search(masked.replace("''", " ")):
        return None
    return masked


def split_statements(masked_sql: str) -> List[str]:
    return [s.strip() for s in masked_sql.split(";") if s.strip()]


def _has_where(stmt: str, start: int) -> bool:
    """True when a WHERE follows ``start`` in the same parenthesis level."""
    depth = 0
    for m in _DEPTH_TOKEN_RE.finditer(stmt, start):
        token = m.group(0)
        if token == "(":
            depth += 1
        elif token == ")":
            depth -= 1
            if depth < 0:
                return False
        elif depth == 0:
            return True
    return False


def explain_unsafe(sql: str) -> Optional[str]:
    """Return why ``sql`` must not run, or None when it is safe."""
    if not (sql or "").strip():
        return "empty statement"
    masked = mask_sql(sql)
    if masked is None:
        return "unterminated literal or comment"
    statements = split_statements(masked)
    if not statements:
        return "no statement"
    for stmt in statements:
        for pattern, label in DESTRUCTIVE_PATTERNS:
            if re.search(pattern, stmt, re.I):
                return f"{label} is not allowed"
        for write in _UNFILTERED_WRITE_RE.finditer(stmt):
            if not _has_where(stmt, write.end()):
                return f"{write.group(1).upper()} without WHERE is not allowed"
    return None


def is_sql_safe(sql: str) -> bool:
    """Denylist check; fails closed on anything it cannot classify."""
    reason = explain_unsafe(sql)
    if reason is not None:
        logger.info("Blocked statement (%s): %.80s", reason, sql)
        return False
    return True
