"""
Query resolution state machine.

Raw text is first tried as SQL. Only when direct execution fails is it sent
to the AI translator, and translated SQL is checked by the safety classifier
again before it runs. Every expected failure comes back as a ``Resolution``;
nothing in ``askdb.errors`` crosses ``resolve``.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from .catalog import Catalog
from .errors import ExecutionError, TranslationError
from .sql.executor import TabularResult
from .sql.safety import is_sql_safe
from .suggestions import SuggestionCache
from .translator import AITranslator, ResolvedQuery

logger = logging.getLogger(__name__)

FORBIDDEN = "forbidden command"
FORBIDDEN_MESSAGE = "You must not execute this dangerous command."
INVALID_SQL_TITLE = "Invalid SQL Command"
NOT_TRANSLATABLE = "The request could not be converted to SQL."


class State(str, Enum):
    IDLE = "idle"
    SAFETY_CHECK_DIRECT = "safety_check_direct"
    DIRECT_EXECUTE = "direct_execute"
    AI_TRANSLATE = "ai_translate"
    SAFETY_CHECK_TRANSLATED = "safety_check_translated"
    EXECUTE_TRANSLATED = "execute_translated"
    SUCCESS = "success"
    REJECTED = "rejected"
    FAILURE = "failure"


class Status(str, Enum):
    SUCCESS = "success"
    REJECTED = "rejected"
    FAILURE = "failure"


class ErrorKind(str, Enum):
    UNSAFE_STATEMENT = "unsafe_statement"
    NOT_TRANSLATABLE = "not_translatable"
    TRANSLATION_FAILURE = "translation_failure"
    EXECUTION_ERROR = "execution_error"
    EMPTY_QUERY = "empty_query"


@dataclass(frozen=True)
class Resolution:
    status: Status
    result: Optional[TabularResult] = None
    sql: Optional[str] = None
    reason: Optional[str] = None
    title: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    translated: bool = False
    trail: List[State] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is Status.SUCCESS


class QueryResolver:
    """Turns user text into a result, a rejection, or a failure."""

    def __init__(
        self,
        backend: Any,
        catalog: Catalog,
        translator: AITranslator,
        cache: SuggestionCache,
        credential: Optional[str] = None,
        translate_timeout: Optional[float] = None,
        execute_timeout: Optional[float] = None,
    ):
        self.backend = backend
        self.catalog = catalog
        self.translator = translator
        self.cache = cache
        self.credential = credential
        self.translate_timeout = translate_timeout
        self.execute_timeout = execute_timeout

    async def _execute(self, sql: str) -> TabularResult:
        try:
            return await asyncio.wait_for(self.backend.execute(sql), self.execute_timeout)
        except asyncio.TimeoutError:
            raise ExecutionError(sql, f"Execution timed out after {self.execute_timeout:g}s") from None

    async def _translate(self, text: str) -> ResolvedQuery:
        call = self.translator.translate(
            self.credential,
            text,
            self.catalog.database_type,
            self.catalog.schema_context(),
        )
        try:
            return await asyncio.wait_for(call, self.translate_timeout)
        except asyncio.TimeoutError:
            raise TranslationError(f"Translation timed out after {self.translate_timeout:g}s") from None

    async def resolve(self, raw_text: str) -> Resolution:
        trail = [State.IDLE]

        def done(status: Status, **kw) -> Resolution:
            trail.append(State(status.value))
            logger.debug("Resolution %s via %s", status.value, [s.value for s in trail])
            return Resolution(status, trail=trail, **kw)

        text = (raw_text or "").strip()
        if not text:
            return done(Status.REJECTED, reason="empty query", error_kind=ErrorKind.EMPTY_QUERY)

        trail.append(State.SAFETY_CHECK_DIRECT)
        if not is_sql_safe(text):
            return done(
                Status.REJECTED, sql=text, reason=FORBIDDEN, title="Forbidden",
                error_kind=ErrorKind.UNSAFE_STATEMENT,
            )

        trail.append(State.DIRECT_EXECUTE)
        try:
            result = await self._execute(text)
        except ExecutionError as e:
            logger.debug("Direct execution failed, falling back to AI: %s", e.message)
        else:
            self.cache.append([text])
            return done(Status.SUCCESS, result=result, sql=text)

        trail.append(State.AI_TRANSLATE)
        try:
            resolved = await self._translate(text)
        except TranslationError as e:
            return done(
                Status.FAILURE, reason=str(e), error_kind=ErrorKind.TRANSLATION_FAILURE,
            )

        if not resolved.is_sql:
            return done(
                Status.REJECTED, reason=resolved.output or NOT_TRANSLATABLE,
                title=INVALID_SQL_TITLE, error_kind=ErrorKind.NOT_TRANSLATABLE,
                translated=True,
            )

        sql = resolved.output
        trail.append(State.SAFETY_CHECK_TRANSLATED)
        if not is_sql_safe(sql):
            return done(
                Status.REJECTED, sql=sql, reason=FORBIDDEN, title="Forbidden",
                error_kind=ErrorKind.UNSAFE_STATEMENT, translated=True,
            )

        trail.append(State.EXECUTE_TRANSLATED)
        try:
            result = await self._execute(sql)
        except ExecutionError as e:
            return done(
                Status.FAILURE, sql=sql, reason=str(e),
                error_kind=ErrorKind.EXECUTION_ERROR, translated=True,
            )
        self.cache.append([sql])
        return done(Status.SUCCESS, result=result, sql=sql, translated=True)
