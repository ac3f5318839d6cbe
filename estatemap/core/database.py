"""
Database Configuration

Supports both SQLite (development) and PostgreSQL (production).
Uses the SQLAlchemy 2.0 asyncio extension: aiosqlite for the embedded file,
asyncpg for the networked server.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Tuple

from sqlalchemy.orm import declarative_base

SQLITE = "sqlite"
POSTGRES = "postgresql"

# Base class for models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the shape both backends store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def resolve_database_url(url: str) -> Tuple[str, str]:
    """
    Map a configured connection string onto a backend and async driver URL.

    Accepted shapes:
        sqlite:///./data/app.db, sqlite+aiosqlite:///..., ./data/app.db
        postgres://..., postgresql://..., postgresql+asyncpg://...

    Returns:
        (backend, async_url) where backend is SQLITE or POSTGRES

    Raises:
        ValueError: If the scheme is not one of the supported shapes
    """
    url = url.strip()
    if "://" not in url:
        # Bare file path
        return SQLITE, f"sqlite+aiosqlite:///{url}"

    scheme, rest = url.split("://", 1)
    scheme = scheme.lower()
    if scheme in ("sqlite", "sqlite+aiosqlite"):
        return SQLITE, f"sqlite+aiosqlite://{rest}"
    # Heroku/Railway style postgres:// is not accepted by SQLAlchemy
    if scheme in ("postgres", "postgresql", "postgresql+asyncpg", "postgresql+psycopg2"):
        return POSTGRES, f"postgresql+asyncpg://{rest}"

    raise ValueError(f"Unsupported DATABASE_URL scheme: {scheme}")


def sqlite_file_path(async_url: str) -> Path:
    """Filesystem path of an sqlite+aiosqlite URL (':memory:' passes through)"""
    _, sep, path = async_url.partition(":///")
    return Path(path if sep else ":memory:")
