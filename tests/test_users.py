from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from conftest import open_storage, run
from estatemap.core.errors import ConflictError, NotFound, ValidationError
from estatemap.core.security import build_password_context, verify_password
from estatemap.schemas import TokenClaims, UserCreate, UserPatch
from estatemap.services import UserDirectory


def _claims(user) -> TokenClaims:
    return TokenClaims(id=user.id, email=user.email, name=user.name, role=user.role)


def test_admin_cannot_demote_or_delete_themselves(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage)
            admin = await users.create(UserCreate(email="a@x.io", name="A", password="pw", role="admin"))
            me = _claims(admin)

            with pytest.raises(ValidationError, match="own role"):
                await users.update(admin.id, UserPatch(role="viewer"), me)
            with pytest.raises(ValidationError, match="deactivate your own"):
                await users.update(admin.id, UserPatch(active=False), me)
            with pytest.raises(ValidationError, match="delete your own"):
                await users.deactivate(admin.id, me)

            # Renaming yourself is fine, and restating the same role is not a change of role
            renamed = await users.update(admin.id, UserPatch(name="Alice", role="admin"), me)
            return renamed
        finally:
            await storage.close()

    renamed = run(scenario())

    assert renamed.name == "Alice"
    assert renamed.role == "admin"
    assert renamed.active is True


def test_last_active_admin_is_kept(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage)
            first = await users.create(UserCreate(email="a@x.io", name="A", password="pw", role="admin"))
            second = await users.create(UserCreate(email="b@x.io", name="B", password="pw", role="admin"))
            stale_second = _claims(second)

            await users.deactivate(second.id, _claims(first))

            # second's token outlives the account; first is now the only admin
            with pytest.raises(ConflictError):
                await users.deactivate(first.id, stale_second)
            with pytest.raises(ConflictError):
                await users.update(first.id, UserPatch(role="editor"), stale_second)
            return await users.get(second.id), await storage.count_active_admins()
        finally:
            await storage.close()

    deactivated, admins = run(scenario())

    assert deactivated.active is False
    assert admins == 1


def test_password_change_is_hashed(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage)
            admin = await users.create(UserCreate(email="a@x.io", name="A", password="pw", role="admin"))
            editor = await users.create(UserCreate(email="e@x.io", name="E", password="old", role="editor"))
            await users.update(editor.id, UserPatch(password="new-pass"), _claims(admin))
            return await storage.get_user_by_email("e@x.io")
        finally:
            await storage.close()

    stored = run(scenario())

    assert stored.password_hash != "new-pass"
    assert verify_password("new-pass", stored.password_hash)
    assert not verify_password("old", stored.password_hash)


def test_inactive_users_are_listed_but_not_found_when_active_only(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage)
            admin = await users.create(UserCreate(email="a@x.io", name="A", password="pw", role="admin"))
            viewer = await users.create(UserCreate(email="v@x.io", name="V", password="pw"))
            await users.deactivate(viewer.id, _claims(admin))
            listed = await users.list()
            with pytest.raises(NotFound):
                await users.get(viewer.id, include_inactive=False)
            return listed
        finally:
            await storage.close()

    listed = run(scenario())

    assert {user.email for user in listed} == {"a@x.io", "v@x.io"}
    assert [user.email for user in listed if not user.active] == ["v@x.io"]


def test_duplicate_email_is_rejected(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage)
            await users.create(UserCreate(email="a@x.io", name="A", password="pw"))
            await users.create(UserCreate(email="a@x.io", name="Again", password="pw"))
        finally:
            await storage.close()

    with pytest.raises(ConflictError):
        run(scenario())


def test_default_admin_is_seeded_once(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage)
            first = await users.ensure_default_admin("root@x.io", "pw", "Root")
            second = await users.ensure_default_admin("root@x.io", "pw", "Root")
            return first, second, await storage.count_active_admins()
        finally:
            await storage.close()

    first, second, admins = run(scenario())

    assert first is not None and first.role == "admin"
    assert second is None
    assert admins == 1


def test_admins_deactivating_each_other_at_once_leave_one_admin(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage)
            first = await users.create(UserCreate(email="a@x.io", name="A", password="pw", role="admin"))
            second = await users.create(UserCreate(email="b@x.io", name="B", password="pw", role="admin"))
            results = await asyncio.gather(
                users.deactivate(second.id, _claims(first)),
                users.deactivate(first.id, _claims(second)),
                return_exceptions=True,
            )
            return results, await storage.count_active_admins()
        finally:
            await storage.close()

    results, admins = run(scenario())

    assert admins == 1
    assert sum(isinstance(result, ConflictError) for result in results) == 1
    assert sum(getattr(result, "active", None) is False for result in results) == 1


def test_admins_demoting_each_other_at_once_leave_one_admin(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage)
            first = await users.create(UserCreate(email="a@x.io", name="A", password="pw", role="admin"))
            second = await users.create(UserCreate(email="b@x.io", name="B", password="pw", role="admin"))
            results = await asyncio.gather(
                users.update(second.id, UserPatch(role="editor"), _claims(first)),
                users.update(first.id, UserPatch(role="viewer"), _claims(second)),
                return_exceptions=True,
            )
            return results, await storage.count_active_admins()
        finally:
            await storage.close()

    results, admins = run(scenario())

    assert admins == 1
    assert sum(isinstance(result, ConflictError) for result in results) == 1


def test_storage_refuses_to_remove_the_last_admin(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage)
            admin = await users.create(UserCreate(email="a@x.io", name="A", password="pw", role="admin"))
            viewer = await users.create(UserCreate(email="v@x.io", name="V", password="pw"))

            with pytest.raises(ConflictError, match="active admin"):
                await storage.update_user(admin.id, {"active": False})
            with pytest.raises(ConflictError, match="active admin"):
                await storage.update_user(admin.id, {"role": "editor"})
            with pytest.raises(NotFound):
                await storage.update_user(9999, {"active": False})

            # Non-admins and harmless admin edits are not held back
            retired = await storage.update_user(viewer.id, {"active": False})
            renamed = await storage.update_user(admin.id, {"name": "Alice", "role": "admin"})
            return retired, renamed
        finally:
            await storage.close()

    retired, renamed = run(scenario())

    assert retired.active is False
    assert renamed.name == "Alice" and renamed.active is True


def test_directory_hashes_with_the_context_it_was_given(tmp_path: Path) -> None:
    async def scenario():
        storage = await open_storage(tmp_path)
        try:
            users = UserDirectory(storage, pwd_context=build_password_context(5))
            await users.create(UserCreate(email="a@x.io", name="A", password="pw", role="admin"))
            return await storage.get_user_by_email("a@x.io")
        finally:
            await storage.close()

    stored = run(scenario())

    assert stored.password_hash.startswith("$2b$05$")
    assert verify_password("pw", stored.password_hash)
