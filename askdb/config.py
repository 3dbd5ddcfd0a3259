from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .keywords import ASSETS_DIR
from .translator import DEFAULT_MODEL

ROOT = Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    suggestion_count: int = 30
    translate_timeout: Optional[float] = 60.0
    execute_timeout: Optional[float] = 120.0
    assets_dir: Path = ASSETS_DIR
    database_url: Optional[str] = None
    log_level: str = "WARNING"


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_timeout(name: str, default: float) -> Optional[float]:
    value = _env_number(name, default, float)
    return value if value > 0 else None


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Read settings from the environment, after loading ``.env``."""
    load_dotenv(env_file or ROOT / ".env")
    assets = os.getenv("ASKDB_ASSETS_DIR")
    return Settings(
        api_key=os.getenv("OPENAI_API_KEY") or None,
        model=os.getenv("ASKDB_MODEL") or DEFAULT_MODEL,
        suggestion_count=_env_number("ASKDB_SUGGESTION_COUNT", 30, int),
        translate_timeout=_env_timeout("ASKDB_TRANSLATE_TIMEOUT", 60.0),
        execute_timeout=_env_timeout("ASKDB_EXECUTE_TIMEOUT", 120.0),
        assets_dir=Path(assets).expanduser() if assets else ASSETS_DIR,
        database_url=os.getenv("ASKDB_DATABASE_URL") or None,
        log_level=(os.getenv("ASKDB_LOG_LEVEL") or "WARNING").upper(),
    )
