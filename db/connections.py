from __future__ import annotations

from pathlib import Path

import sqlalchemy
from sqlalchemy.engine import URL, Engine

from config import settings

_engines: dict[str, Engine] = {}


def build_sqlite_url(path: str) -> URL:
    """Return an SQLAlchemy URL for the SQLite file at ``path``."""
    return URL.create("sqlite", database=path)


def get_engine(url: URL | str) -> Engine:
    """Return (and cache) a SQLAlchemy engine for ``url``."""
    key = str(url)
    engine = _engines.get(key)
    if engine is None:
        engine = sqlalchemy.create_engine(url, pool_pre_ping=True)
        _engines[key] = engine
    return engine


def get_store_engine(path: str | None = None) -> Engine:
    """Return the engine backing the local profile store.

    The parent directory is created on first use.
    """
    db_path = path or settings.profile_db_path
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return get_engine(build_sqlite_url(db_path))


def dispose_engines() -> None:
    """Dispose and forget every cached engine."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()


__all__ = [
    "build_sqlite_url",
    "get_engine",
    "get_store_engine",
    "dispose_engines",
]
