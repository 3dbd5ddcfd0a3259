from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .catalog import DatabaseType
from .dialects import profile_for
from .errors import TranslationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

SUGGEST_PROMPT = """
You are a {dialect} expert.
Write {count} different, commonly useful {dialect} SELECT queries that a data analyst would run.
Output one query per line. No numbering, no explanations, no code fences.
""".strip()

TRANSLATE_PROMPT = """
You translate requests into {dialect} SQL.
Use only the tables and columns listed in the schema. Quote identifiers that need it with {quote_left}{quote_right}.
Output JSON ONLY:
{{"is_sql": true, "output": "<one {dialect} statement>"}}
or, when the request cannot be expressed as SQL over this schema:
{{"is_sql": false, "output": "<short explanation for the user>"}}

Schema:
{schema}
""".strip()

_FENCE_RE = re.compile(r"^```(?:json|sql)?\s*|\s*```$", re.I)
_QUERY_START_RE = re.compile(r"^\s*(select|with|insert|update|delete|merge|values|explain|show|describe)\b", re.I)
# Statements the safety gate rejects still count as SQL.
_STATEMENT_START_RE = re.compile(
    r"^\s*(select|with|insert|update|delete|merge|values|explain|show|describe|drop|alter|truncate"
    r"|create|grant|revoke|deny|rename|exec|execute|call|attach|detach|restore|kill|shutdown|dbcc|replace)\b",
    re.I,
)
_LIST_MARKER_RE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


@dataclass(frozen=True)
class ResolvedQuery:
    """Translator output: executable SQL, or an explanation when ``is_sql`` is False."""

    is_sql: bool
    output: str


class OpenAIChatModel:
    """Single request/response text completion over the OpenAI chat API."""

    def __init__(self, credential: str, model: str = DEFAULT_MODEL):
        from openai import AsyncOpenAI

        self._client = AsyncOpenAI(api_key=credential)
        self._model = model

    async def generate_content(self, prompt: str) -> str:
        resp = await self._client.chat.completions.create(
            model=self._model,
            temperature=0,
            messages=[{"role": "user", "content": prompt}],
        )
        return resp.choices[0].message.content or ""

    async def close(self) -> None:
        await self._client.close()


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", (text or "").strip()).strip()


def classify_reply(text: str) -> ResolvedQuery:
    """Turn a raw model reply into a ``ResolvedQuery``."""
    body = _strip_fences(text)
    try:
        data = json.loads(body)
    except ValueError:
        data = None
    if isinstance(data, dict) and "output" in data:
        output = _strip_fences(str(data.get("output") or ""))
        is_sql = data.get("is_sql")
        if isinstance(is_sql, str):
            is_sql = is_sql.strip().lower() == "true"
        return ResolvedQuery(bool(is_sql) and bool(output), output)
    return ResolvedQuery(bool(_STATEMENT_START_RE.match(body)), body)


def parse_suggestions(text: str, count: int) -> List[str]:
    queries: List[str] = []
    for line in _strip_fences(text).splitlines():
        q = _LIST_MARKER_RE.sub("", line).strip()
        if q and _QUERY_START_RE.match(q):
            queries.append(q)
        if len(queries) >= count:
            break
    return queries


class AITranslator:
    """Wraps the text-completion call used for suggestions and translation.

    ``model_factory(credential, model_name)`` builds the model object, once
    per credential; the default talks to OpenAI. ``close`` releases them.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        model_factory: Optional[Callable[[str, str], Any]] = None,
    ):
        self.model_name = model_name
        self._model_factory = model_factory or OpenAIChatModel
        self._models: Dict[str, Any] = {}

    def _model_for(self, credential: str) -> Any:
        model = self._models.get(credential)
        if model is None:
            model = self._models[credential] = self._model_factory(credential, self.model_name)
        return model

    async def close(self) -> None:
        """Release the clients of every model built so far."""
        models, self._models = list(self._models.values()), {}
        for model in models:
            close = getattr(model, "close", None)
            if close is not None:
                await close()

    async def _complete(self, credential: Optional[str], prompt: str) -> str:
        if not credential:
            raise TranslationError("No API key configured for the AI translator.")
        try:
            model = self._model_for(credential)
            text = await model.generate_content(prompt)
        except asyncio.CancelledError:
            raise
        except TranslationError:
            raise
        except Exception as e:
            logger.warning("AI request failed: %s", e)
            raise TranslationError(str(e) or type(e).__name__) from e
        if not (text or "").strip():
            raise TranslationError("The AI service returned an empty reply.")
        return text

    async def suggest_queries(self, credential: Optional[str], dialect: DatabaseType, count: int) -> List[str]:
        if count <= 0:
            return []
        prompt = SUGGEST_PROMPT.format(dialect=profile_for(dialect).display_name, count=count)
        return parse_suggestions(await self._complete(credential, prompt), count)

    async def translate(
        self,
        credential: Optional[str],
        text: str,
        dialect: DatabaseType,
        schema_context: str,
    ) -> ResolvedQuery:
        profile = profile_for(dialect)
        prompt = TRANSLATE_PROMPT.format(
            dialect=profile.display_name,
            quote_left=profile.quote[0],
            quote_right=profile.quote[1],
            schema=schema_context or "(no tables selected)",
        )
        prompt += "\n\nRequest:\n" + text
        resolved = classify_reply(await self._complete(credential, prompt))
        logger.debug("Translated %r -> is_sql=%s", text, resolved.is_sql)
        return resolved
