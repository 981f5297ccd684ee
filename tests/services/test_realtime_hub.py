# mypy: ignore-errors
# tests/services/test_realtime_hub.py
"""Unit tests for the in-process realtime hub."""

import asyncio

from whisper_echo.services.realtime import RealtimeHub, room_for


class FakeConnection:
    def __init__(self, fail: bool = False) -> None:
        self.frames = []
        self.fail = fail

    async def send_json(self, data) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)


def test_emit_reaches_room_members_only() -> None:
    async def scenario():
        hub = RealtimeHub()
        mine, theirs = FakeConnection(), FakeConnection()
        await hub.join(room_for(1), mine)
        await hub.join(room_for(2), theirs)
        delivered = await hub.emit_to_user(1, "notification:new", {"id": 7})
        return delivered, mine.frames, theirs.frames

    delivered, mine, theirs = asyncio.run(scenario())
    assert delivered == 1
    assert mine == [{"event": "notification:new", "data": {"id": 7}}]
    assert theirs == []


def test_emit_to_empty_room() -> None:
    assert asyncio.run(RealtimeHub().emit("42", "chat:new-message", {})) == 0


def test_failed_connection_is_dropped() -> None:
    async def scenario():
        hub = RealtimeHub()
        good, bad = FakeConnection(), FakeConnection(fail=True)
        await hub.join("1", good)
        await hub.join("1", bad)
        delivered = await hub.emit("1", "chat:message-updated", {"id": 1})
        return hub, delivered, good

    hub, delivered, good = asyncio.run(scenario())
    assert delivered == 1
    assert len(good.frames) == 1
    assert hub.connection_count("1") == 1


def test_leave_removes_empty_room() -> None:
    async def scenario():
        hub = RealtimeHub()
        connection = FakeConnection()
        await hub.join("5", connection)
        await hub.leave("5", connection)
        await hub.leave("5", connection)
        return hub

    assert asyncio.run(scenario()).connection_count("5") == 0
