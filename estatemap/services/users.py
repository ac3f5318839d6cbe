"""
User Directory

Admin-only management of map users. Accounts are soft-deleted. Two guarantees
hold: an admin can never demote or deactivate themselves, and the last active
admin can never be demoted or deactivated. The second is enforced by the
storage write itself, so it also holds between concurrent requests.
"""
import logging
from typing import List, Optional

from passlib.context import CryptContext

from estatemap.core.errors import ConflictError, NotFound, ValidationError
from estatemap.core.security import hash_password_async
from estatemap.schemas import TokenClaims, UserCreate, UserPatch, UserRecord
from estatemap.storage import PersistenceAdapter

logger = logging.getLogger(__name__)


class UserDirectory:
    """User management on top of the PersistenceAdapter"""

    def __init__(self, storage: PersistenceAdapter, pwd_context: Optional[CryptContext] = None):
        self.storage = storage
        # None falls back to the process-wide context
        self.pwd_context = pwd_context

    async def list(self) -> List[UserRecord]:
        return await self.storage.list_users()

    async def get(self, user_id: int, include_inactive: bool = True) -> UserRecord:
        user = await self.storage.get_user(user_id, active_only=not include_inactive)
        if user is None:
            raise NotFound("User not found")
        return user

    async def create(self, data: UserCreate) -> UserRecord:
        values = data.model_dump(exclude={'password'})
        values['password_hash'] = await hash_password_async(data.password, self.pwd_context)
        values['active'] = True
        user = await self.storage.insert_user(values)
        logger.info("User %s created with role %s", user.id, user.role)
        return user

    async def update(self, user_id: int, patch: UserPatch, actor: TokenClaims) -> UserRecord:
        """
        Raises:
            ValidationError: If the actor changes their own role or deactivates themselves
            ConflictError: If the change would leave no active admin
        """
        changes = patch.changes()
        current = await self.get(user_id)

        if user_id == actor.id:
            if 'role' in changes and changes['role'] != current.role:
                raise ValidationError("Cannot change your own role")
            if changes.get('active') is False:
                raise ValidationError("Cannot deactivate your own account")

        if 'password' in changes:
            changes['password_hash'] = await hash_password_async(changes.pop('password'), self.pwd_context)
        if not changes:
            return current

        user = await self.storage.update_user(user_id, changes)
        logger.info("User %s updated (%s)", user_id, ", ".join(sorted(changes)))
        return user

    async def deactivate(self, user_id: int, actor: TokenClaims) -> UserRecord:
        if user_id == actor.id:
            raise ValidationError("Cannot delete your own account")
        user = await self.storage.update_user(user_id, {'active': False})
        logger.info("User %s deactivated by user %s", user_id, actor.id)
        return user

    async def ensure_default_admin(self, email: str, password: str, name: str) -> Optional[UserRecord]:
        """Seed an admin account when no active admin exists"""
        if await self.storage.count_active_admins() > 0:
            return None
        try:
            user = await self.create(UserCreate(email=email, name=name, password=password, role='admin'))
        except ConflictError:
            logger.warning("No active admin and %s is taken; seed an admin manually", email)
            return None
        logger.info("Default admin user created: %s", email)
        return user
