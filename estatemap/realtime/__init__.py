"""Live fan-out of property mutations over WebSockets."""
from .broadcaster import Broadcaster, Connection
from .events import PropertyEvent, RoomMessage, decode_frame, encode_frame

__all__ = [
    'Broadcaster', 'Connection',
    'PropertyEvent', 'RoomMessage', 'decode_frame', 'encode_frame',
]
