"""
Networked PostgreSQL backend (production)

asyncpg connection pool. The server may still be starting when the app
boots, so ``connect()`` retries with exponential backoff.
"""
import logging

from sqlalchemy.ext.asyncio import create_async_engine

from estatemap.core.database import POSTGRES
from estatemap.storage.sql import SqlAlchemyPersistence

logger = logging.getLogger(__name__)


class PostgresPersistence(SqlAlchemyPersistence):
    """Networked relational storage"""

    backend = POSTGRES

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        connect_attempts: int = 5,
        connect_backoff: float = 0.5,
    ):
        engine = create_async_engine(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=300,
            echo=echo,
        )
        logger.info("Using PostgreSQL database at %s", engine.url.render_as_string(hide_password=True))
        super().__init__(engine, connect_attempts=connect_attempts, connect_backoff=connect_backoff)
