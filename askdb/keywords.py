"""Keyword and dictionary sources for the suggestion cache."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .catalog import Catalog, DatabaseType

ASSETS_DIR = Path(__file__).resolve().parent / "assets"
MIN_WORD_LENGTH = 2


def read_lines(path: Path) -> List[str]:
    with open(path, encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip()]


def sql_keywords(database_type: DatabaseType, assets_dir: Optional[Path] = None) -> List[str]:
    base = Path(assets_dir) if assets_dir else ASSETS_DIR
    return read_lines(base / "keywords" / f"{database_type.value}.txt")


def common_words(assets_dir: Optional[Path] = None) -> List[str]:
    base = Path(assets_dir) if assets_dir else ASSETS_DIR
    return [w for w in read_lines(base / "popular_words.txt") if len(w) >= MIN_WORD_LENGTH]


def build_sources(
    catalog: Catalog,
    keywords: Iterable[str],
    words: Iterable[str],
    suggested: Iterable[str] = (),
    history: Iterable[str] = (),
) -> List[Sequence[str]]:
    """Cache sources in load order; only selected tables contribute names."""
    selected = catalog.selected_tables
    return [
        list(keywords),
        list(words),
        [t.name for t in selected],
        [c for t in selected for c in t.column_names],
        list(suggested),
        list(history),
    ]
