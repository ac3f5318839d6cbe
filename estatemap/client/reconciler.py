"""
Client-side property cache

Holds the client's view of the property collection: a full snapshot fetched
over REST, kept current by applying broadcast events. The server is the
source of truth; the cache is replaced wholesale on every resync.
"""
import logging
from typing import Any, Dict, List, Optional

from estatemap.realtime.events import PropertyEvent

logger = logging.getLogger(__name__)

_UPSERT = {PropertyEvent.CREATED.value, PropertyEvent.UPDATED.value}


class ClientReconciler:
    """Merges property events into a local cache keyed by id"""

    def __init__(self):
        self._properties: Dict[int, Dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._properties)

    def __contains__(self, property_id) -> bool:
        return property_id in self._properties

    @property
    def properties(self) -> List[Dict[str, Any]]:
        """Cached properties, newest first"""
        return sorted(self._properties.values(), key=lambda p: p["id"], reverse=True)

    def get(self, property_id: int) -> Optional[Dict[str, Any]]:
        return self._properties.get(property_id)

    def load_snapshot(self, snapshot: List[Dict[str, Any]]) -> None:
        """Replace the cache with a full server snapshot"""
        self._properties = {item["id"]: dict(item) for item in snapshot}
        logger.debug("Loaded snapshot of %d properties", len(self._properties))

    def apply(self, event: str, data: Any) -> bool:
        """
        Apply one broadcast event

        Returns:
            True if the cache changed
        """
        event = getattr(event, "value", event)
        if event in _UPSERT:
            self._properties[data["id"]] = dict(data)
            return True
        if event == PropertyEvent.DELETED.value:
            return self._properties.pop(data["id"], None) is not None
        if event == PropertyEvent.ALL_DELETED.value:
            changed = bool(self._properties)
            self._properties.clear()
            return changed
        logger.debug("Ignoring unknown event %r", event)
        return False
