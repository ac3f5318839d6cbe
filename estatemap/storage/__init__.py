"""Persistence backends: one interface, selected by DATABASE_URL."""
from estatemap.core.config import Settings
from estatemap.core.database import POSTGRES, resolve_database_url

from .base import PersistenceAdapter
from .postgres import PostgresPersistence
from .sqlite import SqlitePersistence


def create_persistence(settings: Settings) -> PersistenceAdapter:
    """Build the adapter for the configured connection string"""
    backend, url = resolve_database_url(settings.DATABASE_URL)
    if backend == POSTGRES:
        return PostgresPersistence(
            url,
            echo=settings.DEBUG,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            connect_attempts=settings.DB_CONNECT_ATTEMPTS,
            connect_backoff=settings.DB_CONNECT_BACKOFF_SECONDS,
        )
    return SqlitePersistence(
        url,
        echo=settings.DEBUG,
        connect_attempts=settings.DB_CONNECT_ATTEMPTS,
        connect_backoff=settings.DB_CONNECT_BACKOFF_SECONDS,
    )


__all__ = [
    'PersistenceAdapter',
    'SqlitePersistence', 'PostgresPersistence',
    'create_persistence',
]
