"""
Autosuggestion index.

The cache holds one immutable tuple at a time. ``load`` builds a new tuple and
swaps it in; ``append`` copies the current tuple with the new entries placed
by length. Readers grab the reference once, so they always see a complete
snapshot.
"""
from __future__ import annotations

import asyncio
import bisect
import logging
import re
import threading
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

API_KEY_PATTERNS = [
    re.compile(r"^AIza[0-9A-Za-z_\-]{35}$"),            # Google / Gemini
    re.compile(r"^sk-(?:proj-)?[0-9A-Za-z_\-]{20,}$"),  # OpenAI
]
_TOKEN_RE = re.compile(r"^[0-9A-Za-z_\-]{32,128}$")


def looks_like_api_key(text: str) -> bool:
    t = (text or "").strip()
    if any(p.match(t) for p in API_KEY_PATTERNS):
        return True
    if not _TOKEN_RE.match(t):
        return False
    return (
        any(c.isdigit() for c in t)
        and any(c.isupper() for c in t)
        and any(c.islower() for c in t)
    )


def _usable(entries: Iterable[Optional[str]]) -> Iterator[str]:
    for e in entries:
        if e is not None and e.strip():
            yield e


def build_snapshot(sources: Sequence[Iterable[Optional[str]]]) -> Tuple[str, ...]:
    """Deduplicate across sources and order by length.

    ``sorted`` is stable, so equal-length strings keep first-seen order.
    """
    seen = dict.fromkeys(e for source in sources for e in _usable(source))
    return tuple(sorted(seen, key=len))


class SuggestionCache:
    def __init__(self, entries: Iterable[str] = ()):
        self._entries: Tuple[str, ...] = build_snapshot([entries])
        self._write_lock = threading.Lock()

    def load(self, sources: Sequence[Iterable[Optional[str]]]) -> None:
        """Replace the contents with the given sources."""
        snapshot = build_snapshot(sources)
        with self._write_lock:
            self._entries = snapshot
        logger.debug("Suggestion cache rebuilt with %d entries", len(snapshot))

    async def load_async(self, sources: Sequence[Iterable[Optional[str]]]) -> None:
        frozen = [tuple(s) for s in sources]
        snapshot = await asyncio.to_thread(build_snapshot, frozen)
        with self._write_lock:
            self._entries = snapshot
        logger.debug("Suggestion cache rebuilt with %d entries", len(snapshot))

    def append(self, entries: Iterable[Optional[str]]) -> None:
        if isinstance(entries, str):
            entries = [entries]
        with self._write_lock:
            current = list(self._entries)
            present = set(current)
            lengths = [len(e) for e in current]
            for e in _usable(entries):
                if e in present:
                    continue
                pos = bisect.bisect_right(lengths, len(e))
                current.insert(pos, e)
                lengths.insert(pos, len(e))
                present.add(e)
            self._entries = tuple(current)

    def snapshot(self) -> Tuple[str, ...]:
        return self._entries

    def prefix_search(
        self,
        prefix: str,
        exclude_api_key_like: bool = True,
        limit: Optional[int] = None,
    ) -> List[str]:
        if not (prefix or "").strip():
            return []
        needle = prefix.casefold()
        hits: List[str] = []
        for entry in self._entries:
            if not entry.casefold().startswith(needle):
                continue
            if exclude_api_key_like and looks_like_api_key(entry):
                continue
            hits.append(entry)
            if limit is not None and len(hits) >= limit:
                break
        return hits

    def first_match(self, prefix: str) -> Optional[str]:
        hits = self.prefix_search(prefix, limit=1)
        return hits[0] if hits else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __contains__(self, entry: object) -> bool:
        return entry in self._entries
