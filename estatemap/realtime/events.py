"""
Real-time Event Catalog

Frames on the event socket are JSON text: {"event": <name>, "data": {...}}
"""
import enum
import json
from typing import Any


class PropertyEvent(str, enum.Enum):
    """Server to client: committed property mutations"""
    CREATED = "propertyCreated"
    UPDATED = "propertyUpdated"
    DELETED = "propertyDeleted"
    ALL_DELETED = "allPropertiesDeleted"


class RoomMessage(str, enum.Enum):
    """Client to server: note collaboration rooms"""
    JOIN = "joinProperty"
    LEAVE = "leaveProperty"
    NOTE_UPDATE = "propertyNoteUpdate"


def encode_frame(event: str, data: Any) -> str:
    if isinstance(event, enum.Enum):
        event = event.value
    return json.dumps({"event": event, "data": data})


def decode_frame(raw: str):
    """
    Parse a frame into (event, data)

    Raises:
        ValueError: If the frame is not a JSON object with a string "event"
    """
    message = json.loads(raw)
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        raise ValueError("frame must be an object with an 'event' name")
    return message["event"], message.get("data")
