"""
Persistence Interface

Every durable read and write goes through a PersistenceAdapter. The embedded
(SQLite file) and networked (PostgreSQL) backends implement the same
interface and are chosen by configuration, never by swapping source files.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from estatemap.schemas import FeatureRequestRecord, PropertyRecord, UserRecord


class PersistenceAdapter(ABC):
    """Async storage interface for users, properties and feature requests"""

    backend: str = ""

    # ==================== LIFECYCLE ====================

    @abstractmethod
    async def connect(self) -> None:
        """Establish connectivity, retrying with backoff"""

    @abstractmethod
    async def init_schema(self) -> None:
        """Create missing tables"""

    @abstractmethod
    async def close(self) -> None:
        """Release pooled connections"""

    # ==================== USERS ====================

    @abstractmethod
    async def get_user(self, user_id: int, active_only: bool = True) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        """Active user with this email, credential hash included"""

    @abstractmethod
    async def list_users(self) -> List[UserRecord]:
        ...

    @abstractmethod
    async def insert_user(self, values: dict) -> UserRecord:
        ...

    @abstractmethod
    async def update_user(self, user_id: int, values: dict) -> UserRecord:
        """
        Raises:
            NotFound: If the user does not exist
            ConflictError: If the write would leave no active admin
        """

    @abstractmethod
    async def count_active_admins(self) -> int:
        ...

    # ==================== PROPERTIES ====================

    @abstractmethod
    async def list_properties(self) -> List[PropertyRecord]:
        """All properties, newest first"""

    @abstractmethod
    async def get_property(self, property_id: int) -> Optional[PropertyRecord]:
        ...

    @abstractmethod
    async def insert_property(self, values: dict) -> PropertyRecord:
        ...

    @abstractmethod
    async def update_property(
        self, property_id: int, values: dict, expected_version: Optional[int] = None
    ) -> PropertyRecord:
        """
        Write the given fields in a single statement.

        Raises:
            NotFound: If the property does not exist
            ConflictError: If expected_version is given and no longer current
        """

    @abstractmethod
    async def increment_vote(self, property_id: int, direction: str) -> PropertyRecord:
        """Atomically add one to thumbs_up ("up") or thumbs_down ("down")"""

    @abstractmethod
    async def delete_property(self, property_id: int) -> bool:
        ...

    @abstractmethod
    async def delete_all_properties(self) -> int:
        ...

    # ==================== FEATURE REQUESTS ====================

    @abstractmethod
    async def insert_feature_request(self, values: dict) -> FeatureRequestRecord:
        ...

    @abstractmethod
    async def list_feature_requests(self) -> List[FeatureRequestRecord]:
        ...

    @abstractmethod
    async def get_feature_request(self, request_id: int) -> Optional[FeatureRequestRecord]:
        ...

    @abstractmethod
    async def update_feature_request_status(self, request_id: int, status: str) -> FeatureRequestRecord:
        ...

    @abstractmethod
    async def delete_feature_request(self, request_id: int) -> bool:
        ...
