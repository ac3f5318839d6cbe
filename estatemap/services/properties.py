"""
Property Store

Business rules for the shared property collection. Every mutation is written
through the PersistenceAdapter first; only once it has committed is the
resulting entity handed to the broadcaster.

Concurrent edits follow last-writer-wins unless the caller passes the
version it last saw, in which case a stale write is rejected.
"""
import logging
from typing import List, Optional

from estatemap.core.errors import AuthError, NotFound, ValidationError
from estatemap.core.security import AuthGateway
from estatemap.realtime.events import PropertyEvent
from estatemap.schemas import PropertyCreate, PropertyPatch, PropertyRecord, TokenClaims
from estatemap.storage import PersistenceAdapter

logger = logging.getLogger(__name__)

DEFAULT_ZONING = "Residential"
DEFAULT_VALUE = 200000.0

VOTE_DIRECTIONS = ("up", "down")


class PropertyStore:
    """Create, read, update, delete and vote on properties"""

    def __init__(self, storage: PersistenceAdapter, events=None):
        self.storage = storage
        # Anything with publish(event, data); None disables fan-out
        self.events = events

    def _emit(self, event: PropertyEvent, data: dict) -> None:
        if self.events is not None:
            self.events.publish(event, data)

    # ==================== READS ====================

    async def list(self) -> List[PropertyRecord]:
        return await self.storage.list_properties()

    async def get(self, property_id: int) -> PropertyRecord:
        record = await self.storage.get_property(property_id)
        if record is None:
            raise NotFound("Property not found")
        return record

    # ==================== WRITES ====================

    async def create(self, data: PropertyCreate, actor: Optional[TokenClaims]) -> PropertyRecord:
        if actor is None:
            raise AuthError("Access token required")
        address = (data.address or "").strip()
        if not address:
            raise ValidationError("Address is required")

        values = {
            'address': address,
            'zoning': data.zoning if data.zoning is not None else DEFAULT_ZONING,
            'value': data.value if data.value is not None else DEFAULT_VALUE,
            'notes': data.notes or '',
            'tax_value': data.tax_value,
            'assessed_value': data.assessed_value,
            'cap_rate': data.cap_rate,
            'monthly_payment': data.monthly_payment,
            'coordinates': data.coordinates,
            'created_by': actor.id,
            'created_by_name': actor.display_name,
        }
        record = await self.storage.insert_property(values)
        logger.info("Property %s created by user %s", record.id, actor.id)
        self._emit(PropertyEvent.CREATED, record.to_event())
        return record

    async def update(
        self, property_id: int, patch: PropertyPatch, expected_version: Optional[int] = None
    ) -> PropertyRecord:
        """
        Write only the fields present in the patch

        Raises:
            NotFound: If the property does not exist
            ConflictError: If expected_version is given and is stale
        """
        changes = patch.changes()
        record = await self.storage.update_property(property_id, changes, expected_version)
        if changes:
            logger.info("Property %s updated (%s)", property_id, ", ".join(sorted(changes)))
            self._emit(PropertyEvent.UPDATED, record.to_event())
        return record

    async def vote(self, property_id: int, direction: str) -> PropertyRecord:
        """
        Add one thumbs-up or thumbs-down. Two identical calls count twice.
        """
        if direction not in VOTE_DIRECTIONS:
            raise ValidationError('Invalid vote. Must be "up" or "down"')
        record = await self.storage.increment_vote(property_id, direction)
        self._emit(PropertyEvent.UPDATED, record.to_event())
        return record

    async def delete(self, property_id: int, actor: TokenClaims) -> int:
        AuthGateway.require_role(actor, "admin")
        if not await self.storage.delete_property(property_id):
            raise NotFound("Property not found")
        logger.info("Property %s deleted by user %s", property_id, actor.id)
        self._emit(PropertyEvent.DELETED, {"id": property_id})
        return property_id

    async def delete_all(self, actor: TokenClaims) -> int:
        AuthGateway.require_role(actor, "admin")
        count = await self.storage.delete_all_properties()
        logger.info("All %d properties deleted by user %s", count, actor.id)
        self._emit(PropertyEvent.ALL_DELETED, {"count": count})
        return count
