"""
SQLAlchemy Persistence

Shared implementation of PersistenceAdapter on an AsyncEngine. Backends only
differ in how the engine is built; every query below runs unchanged on
SQLite and PostgreSQL.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from sqlalchemy import delete, func, or_, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from estatemap.core.database import Base, utcnow
from estatemap.core.errors import ConflictError, EstateMapError, NotFound, PersistenceError
from estatemap.models import FeatureRequest, Property, User
from estatemap.models.property import encode_coordinates
from estatemap.schemas import FeatureRequestRecord, PropertyRecord, UserRecord
from estatemap.storage.base import PersistenceAdapter

logger = logging.getLogger(__name__)

_VOTE_COLUMNS = {
    'up': Property.thumbs_up,
    'down': Property.thumbs_down,
}


def user_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        username=row.username,
        name=row.name,
        first_name=row.first_name,
        last_name=row.last_name,
        role=row.role,
        active=bool(row.active),
        created_at=row.created_at,
        updated_at=row.updated_at,
        password_hash=row.password_hash,
    )


def property_record(row: Property) -> PropertyRecord:
    return PropertyRecord(
        id=row.id,
        address=row.address,
        zoning=row.zoning,
        value=row.value,
        notes=row.notes or '',
        tax_value=row.tax_value,
        assessed_value=row.assessed_value,
        cap_rate=row.cap_rate,
        monthly_payment=row.monthly_payment,
        coordinates=row.coordinates,
        thumbs_up=row.thumbs_up or 0,
        thumbs_down=row.thumbs_down or 0,
        created_by=row.created_by,
        created_by_name=row.created_by_name,
        created_at=row.created_at,
        last_updated=row.last_updated,
        version=row.version or 1,
    )


def feature_request_record(row: FeatureRequest) -> FeatureRequestRecord:
    return FeatureRequestRecord(
        id=row.id,
        description=row.description,
        submitter_email=row.submitter_email,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def property_columns(values: dict) -> dict:
    """Translate record field names into column assignments"""
    columns = dict(values)
    if 'coordinates' in columns:
        columns['coordinates_json'] = encode_coordinates(columns.pop('coordinates'))
    return columns


class SqlAlchemyPersistence(PersistenceAdapter):
    """PersistenceAdapter over an async SQLAlchemy engine"""

    def __init__(self, engine: AsyncEngine, connect_attempts: int = 5, connect_backoff: float = 0.5):
        self.engine = engine
        self.connect_attempts = max(1, connect_attempts)
        self.connect_backoff = connect_backoff
        self._sessions = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    # ==================== LIFECYCLE ====================

    async def _ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def connect(self) -> None:
        for attempt in range(1, self.connect_attempts + 1):
            try:
                await self._ping()
            except (SQLAlchemyError, OSError) as exc:
                if attempt == self.connect_attempts:
                    logger.error("Database unreachable after %d attempts: %s", attempt, exc)
                    raise PersistenceError("Database unreachable") from exc
                delay = self.connect_backoff * 2 ** (attempt - 1)
                logger.warning(
                    "Database not reachable (attempt %d/%d), retrying in %.2fs: %s",
                    attempt, self.connect_attempts, delay, exc,
                )
                await asyncio.sleep(delay)
            else:
                logger.info("Connected to %s database", self.backend)
                return

    async def init_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _transaction(self):
        """Session inside a transaction, with storage errors translated"""
        try:
            async with self._sessions() as session:
                async with session.begin():
                    yield session
        except EstateMapError:
            raise
        except IntegrityError as exc:
            raise self._conflict(exc) from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Storage operation failed")
            raise PersistenceError() from exc

    @staticmethod
    def _conflict(exc: IntegrityError) -> ConflictError:
        detail = str(exc.orig).lower()
        if 'username' in detail:
            return ConflictError("User with this username already exists")
        if 'email' in detail:
            return ConflictError("User with this email already exists")
        logger.warning("Integrity violation: %s", detail)
        return ConflictError("Conflicts with existing data")

    # ==================== USERS ====================

    async def get_user(self, user_id: int, active_only: bool = True) -> Optional[UserRecord]:
        query = select(User).where(User.id == user_id)
        if active_only:
            query = query.where(User.active.is_(True))
        async with self._transaction() as session:
            row = (await session.execute(query)).scalar_one_or_none()
            return user_record(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        query = select(User).where(User.email == email, User.active.is_(True))
        async with self._transaction() as session:
            row = (await session.execute(query)).scalar_one_or_none()
            return user_record(row) if row else None

    async def list_users(self) -> List[UserRecord]:
        query = select(User).order_by(User.created_at.desc(), User.id.desc())
        async with self._transaction() as session:
            return [user_record(row) for row in (await session.execute(query)).scalars()]

    async def insert_user(self, values: dict) -> UserRecord:
        async with self._transaction() as session:
            row = User(**values)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return user_record(row)

    async def update_user(self, user_id: int, values: dict) -> UserRecord:
        stmt = update(User).where(User.id == user_id)
        demotes = values.get('active') is False or values.get('role', 'admin') != 'admin'
        if demotes:
            # Checked inside the UPDATE so two admins demoting each other cannot both win.
            # FOR UPDATE serializes concurrent demotions on PostgreSQL; SQLite's write lock does it there.
            admins = (
                select(User.id)
                .where(User.role == 'admin', User.active.is_(True))
                .with_for_update()
                .subquery()
            )
            remaining = select(func.count()).select_from(admins).scalar_subquery()
            stmt = stmt.where(or_(User.role != 'admin', User.active.is_(False), remaining > 1))
        stmt = stmt.values(**values, updated_at=utcnow()).execution_options(synchronize_session=False)

        async with self._transaction() as session:
            result = await session.execute(stmt)
            row = (
                await session.execute(
                    select(User).where(User.id == user_id).execution_options(populate_existing=True)
                )
            ).scalar_one_or_none()
            if row is None:
                raise NotFound("User not found")
            if result.rowcount == 0:
                raise ConflictError("At least one active admin is required")
            return user_record(row)

    async def count_active_admins(self) -> int:
        query = select(func.count(User.id)).where(User.role == 'admin', User.active.is_(True))
        async with self._transaction() as session:
            return (await session.execute(query)).scalar_one()

    # ==================== PROPERTIES ====================

    async def _select_property(self, session, property_id: int) -> Optional[Property]:
        query = (
            select(Property)
            .where(Property.id == property_id)
            .execution_options(populate_existing=True)
        )
        return (await session.execute(query)).scalar_one_or_none()

    async def list_properties(self) -> List[PropertyRecord]:
        query = select(Property).order_by(Property.created_at.desc(), Property.id.desc())
        async with self._transaction() as session:
            return [property_record(row) for row in (await session.execute(query)).scalars()]

    async def get_property(self, property_id: int) -> Optional[PropertyRecord]:
        async with self._transaction() as session:
            row = await self._select_property(session, property_id)
            return property_record(row) if row else None

    async def insert_property(self, values: dict) -> PropertyRecord:
        async with self._transaction() as session:
            row = Property(**property_columns(values))
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return property_record(row)

    async def update_property(
        self, property_id: int, values: dict, expected_version: Optional[int] = None
    ) -> PropertyRecord:
        async with self._transaction() as session:
            if values:
                stmt = update(Property).where(Property.id == property_id)
                if expected_version is not None:
                    stmt = stmt.where(Property.version == expected_version)
                stmt = stmt.values(
                    **property_columns(values),
                    version=Property.version + 1,
                    updated_at=utcnow(),
                ).execution_options(synchronize_session=False)
                result = await session.execute(stmt)
                changed = result.rowcount > 0
            else:
                changed = False

            row = await self._select_property(session, property_id)
            if row is None:
                raise NotFound("Property not found")
            if expected_version is not None and not changed and row.version != expected_version:
                raise ConflictError(
                    f"Property {property_id} was modified (version {row.version}, expected {expected_version})"
                )
            return property_record(row)

    async def increment_vote(self, property_id: int, direction: str) -> PropertyRecord:
        column = _VOTE_COLUMNS[direction]
        stmt = (
            update(Property)
            .where(Property.id == property_id)
            .values({column: column + 1, Property.updated_at: utcnow()})
            .execution_options(synchronize_session=False)
        )
        async with self._transaction() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFound("Property not found")
            row = await self._select_property(session, property_id)
            return property_record(row)

    async def delete_property(self, property_id: int) -> bool:
        async with self._transaction() as session:
            result = await session.execute(delete(Property).where(Property.id == property_id))
            return result.rowcount > 0

    async def delete_all_properties(self) -> int:
        async with self._transaction() as session:
            result = await session.execute(delete(Property))
            return result.rowcount

    # ==================== FEATURE REQUESTS ====================

    async def insert_feature_request(self, values: dict) -> FeatureRequestRecord:
        async with self._transaction() as session:
            row = FeatureRequest(**values)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return feature_request_record(row)

    async def list_feature_requests(self) -> List[FeatureRequestRecord]:
        query = select(FeatureRequest).order_by(FeatureRequest.created_at.desc(), FeatureRequest.id.desc())
        async with self._transaction() as session:
            return [feature_request_record(row) for row in (await session.execute(query)).scalars()]

    async def get_feature_request(self, request_id: int) -> Optional[FeatureRequestRecord]:
        async with self._transaction() as session:
            row = await session.get(FeatureRequest, request_id)
            return feature_request_record(row) if row else None

    async def update_feature_request_status(self, request_id: int, status: str) -> FeatureRequestRecord:
        async with self._transaction() as session:
            row = await session.get(FeatureRequest, request_id)
            if row is None:
                raise NotFound("Feature request not found")
            row.status = status
            row.updated_at = utcnow()
            await session.flush()
            return feature_request_record(row)

    async def delete_feature_request(self, request_id: int) -> bool:
        async with self._transaction() as session:
            result = await session.execute(delete(FeatureRequest).where(FeatureRequest.id == request_id))
            return result.rowcount > 0
