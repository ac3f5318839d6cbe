from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import pytest

from conftest import run
from estatemap.realtime import Broadcaster, PropertyEvent, decode_frame, encode_frame
from estatemap.realtime.broadcaster import CLOSE_TRY_AGAIN, room_name


class _FakeWebSocket:
    def __init__(self, stall: bool = False) -> None:
        self.accepted = False
        self.sent: list[dict[str, Any]] = []
        self.close_code: Optional[int] = None
        self._stall = stall

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, frame: str) -> None:
        if self._stall:
            await asyncio.Event().wait()
        self.sent.append(json.loads(frame))

    async def close(self, code: int = 1000) -> None:
        self.close_code = code


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_frames_round_trip() -> None:
    frame = encode_frame(PropertyEvent.DELETED, {"id": 3})

    assert json.loads(frame) == {"event": "propertyDeleted", "data": {"id": 3}}
    assert decode_frame(frame) == ("propertyDeleted", {"id": 3})


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"data": {}}', '{"event": 5}'])
def test_malformed_frames_are_rejected(raw: str) -> None:
    with pytest.raises(ValueError):
        decode_frame(raw)


def test_room_name_requires_integer_id() -> None:
    assert room_name(7) == "property-7"
    assert room_name("7") == "property-7"
    for bad in (None, True, "seven", {"id": 7}):
        with pytest.raises(ValueError):
            room_name(bad)


def test_publish_reaches_every_connection_in_order() -> None:
    async def scenario():
        broadcaster = Broadcaster(queue_size=10)
        sockets = [_FakeWebSocket(), _FakeWebSocket()]
        for socket in sockets:
            await broadcaster.connect(socket)

        for n in range(3):
            assert broadcaster.publish(PropertyEvent.UPDATED, {"id": n}) == 2
        await _settle()
        await broadcaster.close_all()
        return sockets, broadcaster

    sockets, broadcaster = run(scenario())

    for socket in sockets:
        assert socket.accepted
        assert [frame["data"]["id"] for frame in socket.sent] == [0, 1, 2]
        assert socket.close_code == 1001
    assert broadcaster.connection_count == 0


def test_slow_connection_is_evicted_without_delaying_others() -> None:
    async def scenario():
        broadcaster = Broadcaster(queue_size=2)
        healthy, stalled = _FakeWebSocket(), _FakeWebSocket(stall=True)
        await broadcaster.connect(healthy)
        await broadcaster.connect(stalled)

        for n in range(4):
            broadcaster.publish(PropertyEvent.CREATED, {"id": n})
            await asyncio.sleep(0)
        await _settle()
        count = broadcaster.connection_count
        await broadcaster.close_all()
        return healthy, stalled, count

    healthy, stalled, count = run(scenario())

    assert [frame["data"]["id"] for frame in healthy.sent] == [0, 1, 2, 3]
    assert stalled.close_code == CLOSE_TRY_AGAIN
    assert count == 1


def test_events_published_while_disconnected_are_not_replayed() -> None:
    async def scenario():
        broadcaster = Broadcaster()
        broadcaster.publish(PropertyEvent.CREATED, {"id": 1})
        late = _FakeWebSocket()
        await broadcaster.connect(late)
        broadcaster.publish(PropertyEvent.CREATED, {"id": 2})
        await _settle()
        await broadcaster.close_all()
        return late

    late = run(scenario())

    assert [frame["data"]["id"] for frame in late.sent] == [2]


def test_note_updates_are_relayed_to_room_members_only() -> None:
    async def scenario():
        broadcaster = Broadcaster()
        author, member, outsider = _FakeWebSocket(), _FakeWebSocket(), _FakeWebSocket()
        author_conn = await broadcaster.connect(author)
        member_conn = await broadcaster.connect(member)
        await broadcaster.connect(outsider)

        broadcaster.handle_client_message(author_conn, "joinProperty", 5)
        broadcaster.handle_client_message(member_conn, "joinProperty", 5)
        note = {"propertyId": 5, "notes": "asking price dropped"}
        broadcaster.handle_client_message(author_conn, "propertyNoteUpdate", note)
        await _settle()

        broadcaster.handle_client_message(member_conn, "leaveProperty", 5)
        broadcaster.handle_client_message(author_conn, "propertyNoteUpdate", {"propertyId": 5, "notes": "again"})
        broadcaster.handle_client_message(author_conn, "somethingElse", None)
        await _settle()
        await broadcaster.close_all()
        return author, member, outsider, member_conn

    author, member, outsider, member_conn = run(scenario())

    assert member.sent == [{"event": "propertyNoteUpdate", "data": {"propertyId": 5, "notes": "asking price dropped"}}]
    assert author.sent == []
    assert outsider.sent == []
    assert member_conn.rooms == set()


def test_note_update_without_property_id_is_rejected() -> None:
    async def scenario():
        broadcaster = Broadcaster()
        conn = await broadcaster.connect(_FakeWebSocket())
        try:
            broadcaster.handle_client_message(conn, "propertyNoteUpdate", {"notes": "x"})
        finally:
            await broadcaster.close_all()

    with pytest.raises(ValueError):
        run(scenario())
