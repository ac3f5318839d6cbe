from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any

# Cheap hashing and a fixed secret before any estatemap import builds its globals
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

from estatemap.app import create_app
from estatemap.core.config import Settings
from estatemap.schemas import TokenClaims, UserCreate
from estatemap.services import UserDirectory
from estatemap.storage import SqlitePersistence

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'estatemap.db'}",
        JWT_SECRET="test-secret",
        BCRYPT_ROUNDS=4,
        DB_CONNECT_ATTEMPTS=1,
        ADMIN_EMAIL=ADMIN_EMAIL,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        ADMIN_NAME="Admin User",
        SENDGRID_API_KEY="",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_token(client: TestClient) -> str:
    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return response.json()["token"]


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def run(coro: Any) -> Any:
    return asyncio.run(coro)


async def open_storage(tmp_path: Path) -> SqlitePersistence:
    storage = SqlitePersistence(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await storage.connect()
    await storage.init_schema()
    return storage


async def seed_admin(storage: SqlitePersistence) -> TokenClaims:
    """Real user row so created_by satisfies the foreign key"""
    user = await UserDirectory(storage).create(
        UserCreate(email="owner@example.com", name="Owner", password="pw", role="admin")
    )
    return TokenClaims(id=user.id, email=user.email, name=user.name, role=user.role)


class FakeEvents:
    """Collects published events in order"""

    def __init__(self) -> None:
        self.published: list[tuple[str, Any]] = []

    def publish(self, event: Any, data: Any) -> int:
        self.published.append((getattr(event, "value", event), data))
        return 1

    def names(self) -> list[str]:
        return [name for name, _ in self.published]
