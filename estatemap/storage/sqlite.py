"""
Embedded SQLite backend (development)

Single database file through aiosqlite. Writers are serialized by SQLite's
own file lock; the busy timeout makes concurrent writers wait instead of
failing with "database is locked".
"""
import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from estatemap.core.database import SQLITE, sqlite_file_path
from estatemap.storage.sql import SqlAlchemyPersistence

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 30


class SqlitePersistence(SqlAlchemyPersistence):
    """Embedded file-backed storage"""

    backend = SQLITE

    def __init__(self, url: str, echo: bool = False, connect_attempts: int = 1, connect_backoff: float = 0.5):
        path = sqlite_file_path(url)
        in_memory = str(path) in (':memory:', '')

        if in_memory:
            # One shared connection, otherwise every checkout sees an empty database
            engine = create_async_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo,
            )
        else:
            # Create database directory if needed
            path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_async_engine(
                url,
                connect_args={"timeout": BUSY_TIMEOUT_SECONDS},
                echo=echo,
            )

        @event.listens_for(engine.sync_engine, "connect")
        def _set_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        logger.info("Using SQLite database at %s", path)
        super().__init__(engine, connect_attempts=connect_attempts, connect_backoff=connect_backoff)
