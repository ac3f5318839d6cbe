from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from conftest import open_storage, run, seed_admin
from estatemap.core.config import Settings
from estatemap.core.database import POSTGRES, SQLITE, resolve_database_url
from estatemap.core.errors import ConflictError, NotFound, PersistenceError
from estatemap.storage import PostgresPersistence, SqlitePersistence, create_persistence
from estatemap.storage import sql as sql_storage


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("sqlite:///./data/app.db", (SQLITE, "sqlite+aiosqlite:///./data/app.db")),
        ("sqlite+aiosqlite:////tmp/app.db", (SQLITE, "sqlite+aiosqlite:////tmp/app.db")),
        ("data/app.db", (SQLITE, "sqlite+aiosqlite:///data/app.db")),
        ("postgres://u:p@db:5432/map", (POSTGRES, "postgresql+asyncpg://u:p@db:5432/map")),
        ("postgresql://u:p@db/map", (POSTGRES, "postgresql+asyncpg://u:p@db/map")),
    ],
)
def test_resolve_database_url(url: str, expected: tuple[str, str]) -> None:
    assert resolve_database_url(url) == expected


def test_resolve_database_url_rejects_unknown_scheme() -> None:
    with pytest.raises(ValueError):
        resolve_database_url("mysql://u:p@db/map")


def test_create_persistence_selects_backend(tmp_path: Path) -> None:
    sqlite = create_persistence(Settings(DATABASE_URL=str(tmp_path / "a.db")))
    postgres = create_persistence(Settings(DATABASE_URL="postgres://u:p@localhost/map"))

    assert isinstance(sqlite, SqlitePersistence)
    assert isinstance(postgres, PostgresPersistence)
    assert postgres.engine.url.drivername == "postgresql+asyncpg"


def test_sqlite_creates_parent_directory(tmp_path: Path) -> None:
    SqlitePersistence(f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'dir' / 'map.db'}")

    assert (tmp_path / "nested" / "dir").is_dir()


def test_property_round_trip_preserves_fields(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            owner = await seed_admin(storage)
            created = await storage.insert_property({
                "address": "123 Main St",
                "zoning": "Commercial",
                "value": 350000.0,
                "coordinates": [40.035, -83.025],
                "created_by": owner.id,
                "created_by_name": owner.name,
            })
            return created, await storage.get_property(created.id)
        finally:
            await storage.close()

    created, fetched = run(scenario())

    assert fetched == created
    assert fetched.address == "123 Main St"
    assert fetched.zoning == "Commercial"
    assert fetched.value == 350000.0
    assert fetched.coordinates == [40.035, -83.025]
    assert fetched.thumbs_up == 0 and fetched.thumbs_down == 0
    assert fetched.version == 1


def test_concurrent_votes_are_all_counted(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            created = await storage.insert_property({"address": "9 Vote Ave"})
            await asyncio.gather(*(storage.increment_vote(created.id, "up") for _ in range(20)))
            await asyncio.gather(*(storage.increment_vote(created.id, "down") for _ in range(5)))
            return await storage.get_property(created.id)
        finally:
            await storage.close()

    result = run(scenario())

    assert result.thumbs_up == 20
    assert result.thumbs_down == 5
    assert result.version == 1


def test_vote_on_missing_property_is_not_found(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            await storage.increment_vote(404, "up")
        finally:
            await storage.close()

    with pytest.raises(NotFound):
        run(scenario())


def test_update_bumps_version_and_rejects_stale_version(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            created = await storage.insert_property({"address": "5 Oak St"})
            first = await storage.update_property(created.id, {"notes": "a"}, expected_version=1)
            with pytest.raises(ConflictError):
                await storage.update_property(created.id, {"notes": "b"}, expected_version=1)
            return first, await storage.get_property(created.id)
        finally:
            await storage.close()

    first, current = run(scenario())

    assert first.version == 2
    assert current.notes == "a"
    assert current.version == 2


def test_duplicate_email_is_a_conflict(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            values = {"email": "dup@example.com", "name": "Dup", "password_hash": "x", "role": "viewer"}
            await storage.insert_user(values)
            await storage.insert_user(dict(values))
        finally:
            await storage.close()

    with pytest.raises(ConflictError, match="email"):
        run(scenario())


def test_connect_retries_with_exponential_backoff(monkeypatch: Any) -> None:
    delays: list[float] = []
    attempts = {"count": 0}

    async def flaky_ping(self) -> None:
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise OSError("connection refused")

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(sql_storage.SqlAlchemyPersistence, "_ping", flaky_ping)
    monkeypatch.setattr(sql_storage.asyncio, "sleep", fake_sleep)

    storage = SqlitePersistence("sqlite+aiosqlite:///:memory:", connect_attempts=5, connect_backoff=0.5)
    run(storage.connect())

    assert attempts["count"] == 3
    assert delays == [0.5, 1.0]


def test_connect_gives_up_after_max_attempts(monkeypatch: Any) -> None:
    delays: list[float] = []

    async def dead_ping(self) -> None:
        raise OSError("connection refused")

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(sql_storage.SqlAlchemyPersistence, "_ping", dead_ping)
    monkeypatch.setattr(sql_storage.asyncio, "sleep", fake_sleep)

    storage = SqlitePersistence("sqlite+aiosqlite:///:memory:", connect_attempts=3, connect_backoff=0.25)
    with pytest.raises(PersistenceError):
        run(storage.connect())

    assert delays == [0.25, 0.5]
