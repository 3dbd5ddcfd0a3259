"""
One connected session: catalog, suggestion cache and resolver.

The session owns everything it creates and tears it down on ``close``;
in-flight resolutions are cancelled and the connection is released.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Set

from .catalog import Catalog
from .config import Settings, load_settings
from .errors import TranslationError
from .keywords import build_sources, common_words, sql_keywords
from .resolver import QueryResolver, Resolution
from .sql.executor import ConnectionParameters, DatabaseBackend, connect
from .suggestions import SuggestionCache
from .translator import AITranslator

logger = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        backend: DatabaseBackend,
        catalog: Catalog,
        settings: Settings,
        translator: Optional[AITranslator] = None,
        cache: Optional[SuggestionCache] = None,
    ):
        self.backend = backend
        self.catalog = catalog
        self.settings = settings
        self._owns_translator = translator is None
        self.translator = translator or AITranslator(settings.model)
        self.cache = cache or SuggestionCache()
        self.resolver = QueryResolver(
            backend,
            catalog,
            self.translator,
            self.cache,
            credential=settings.api_key,
            translate_timeout=settings.translate_timeout,
            execute_timeout=settings.execute_timeout,
        )
        self.last_sql: Optional[str] = None
        self._history: List[str] = []
        self._suggested: Optional[List[str]] = None
        self._tasks: Set[asyncio.Task] = set()
        self._warm_up: Optional[asyncio.Task] = None
        self._closed = False

    @classmethod
    async def open(
        cls,
        params: ConnectionParameters,
        settings: Optional[Settings] = None,
        translator: Optional[AITranslator] = None,
        warm_up: bool = True,
    ) -> "Session":
        settings = settings or load_settings()
        backend = await connect(params)
        session = cls(backend, backend.catalog, settings, translator=translator)
        if warm_up:
            session.start_warm_up()
        return session

    # ------------------------------------------------------------------
    # Suggestion cache
    # ------------------------------------------------------------------
    def start_warm_up(self) -> asyncio.Task:
        """Rebuild the cache in the background, replacing any rebuild in progress."""
        if self._warm_up is not None and not self._warm_up.done():
            self._warm_up.cancel()
        self._warm_up = asyncio.create_task(self.warm_up())
        return self._warm_up

    async def wait_ready(self) -> None:
        if self._warm_up is not None:
            await self._warm_up

    async def _suggested_queries(self) -> List[str]:
        if self._suggested is not None:
            return self._suggested
        if not self.settings.api_key or self.settings.suggestion_count <= 0:
            return []
        try:
            self._suggested = await asyncio.wait_for(
                self.translator.suggest_queries(
                    self.settings.api_key,
                    self.catalog.database_type,
                    self.settings.suggestion_count,
                ),
                self.settings.translate_timeout,
            )
        except (TranslationError, asyncio.TimeoutError) as e:
            logger.warning("Skipping AI query suggestions: %s", e)
            return []
        return self._suggested

    async def warm_up(self) -> None:
        """Rebuild the cache from keywords, schema, AI examples and history."""
        assets = self.settings.assets_dir
        try:
            keywords, words = await asyncio.gather(
                asyncio.to_thread(sql_keywords, self.catalog.database_type, assets),
                asyncio.to_thread(common_words, assets),
            )
        except OSError as e:
            logger.warning("Keyword lists unavailable: %s", e)
            keywords, words = [], []
        suggested = await self._suggested_queries()
        sources = build_sources(self.catalog, keywords, words, suggested, self._history)
        await self.cache.load_async(sources)

    def suggest(self, prefix: str, limit: Optional[int] = None) -> List[str]:
        return self.cache.prefix_search(prefix, limit=limit)

    def complete(self, prefix: str) -> Optional[str]:
        return self.cache.first_match(prefix)

    # ------------------------------------------------------------------
    # Table selection
    # ------------------------------------------------------------------
    @property
    def selected_table_names(self) -> List[str]:
        return [t.name for t in self.catalog.selected_tables]

    def select_tables(self, names: Iterable[str]) -> None:
        self.catalog.select(names)

    def select_all(self) -> None:
        self.catalog.select_all()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    async def resolve(self, text: str) -> Resolution:
        if self._closed:
            raise RuntimeError("Session is closed")
        task = asyncio.create_task(self.resolver.resolve(text))
        self._tasks.add(task)
        try:
            resolution = await task
        finally:
            self._tasks.discard(task)
        if resolution.ok:
            self.last_sql = resolution.sql
            self._history.append(resolution.sql)
        return resolution

    def copy_sql(self) -> Optional[str]:
        """Return the last resolved SQL and remember it for suggestions."""
        if self.last_sql:
            self.cache.append([self.last_sql])
        return self.last_sql

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        pending = list(self._tasks)
        if self._warm_up is not None:
            pending.append(self._warm_up)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await self.backend.close()
        if self._owns_translator:
            await self.translator.close()
        logger.debug("Session closed")

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
