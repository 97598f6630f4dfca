from datetime import datetime

from relay import JoinOutcome

CHAT = "/chat"


async def test_join_acknowledges_with_member_count(relay, sio):
    await relay.chat_join("A", "room")
    await relay.chat_join("B", "room")
    assert sio.events("A", CHAT) == [("joined-room", {"roomId": "room", "users": 1})]
    assert sio.events("B", CHAT) == [("joined-room", {"roomId": "room", "users": 2})]


async def test_chat_room_is_capped(relay, sio):
    await relay.chat_join("A", "room")
    await relay.chat_join("B", "room")
    assert await relay.chat_join("C", "room") is JoinOutcome.FULL
    assert sio.events("C", CHAT) == [("room-full", None)]
    assert "C" not in sio.rooms[(CHAT, "room")]


async def test_chat_state_is_independent_of_calls(relay, sio):
    await relay.join_room("A", "room")
    await relay.join_room("B", "room")
    assert await relay.chat_join("C", "room") is JoinOutcome.ADDED
    assert "room" in relay.chats
    assert [p.sid for p in relay.chats.members("room")] == ["C"]


async def test_message_reaches_every_member_including_sender(relay, sio):
    await relay.chat_join("A", "room")
    await relay.chat_join("B", "room")
    sio.clear()

    message = await relay.chat_message("A", {"roomId": "room", "text": "hello", "timestamp": "spoofed"})

    assert message["text"] == "hello"
    assert message["sender"] == "A"
    assert message["timestamp"] != "spoofed"
    assert message["timestamp"].endswith("Z")
    datetime.fromisoformat(message["timestamp"].replace("Z", "+00:00"))
    assert sio.events("A", CHAT) == [("message", message)]
    assert sio.events("B", CHAT) == [("message", message)]
    # nothing leaks into the call namespace
    assert sio.events("A") == []


async def test_message_without_room_is_dropped(relay, sio):
    await relay.chat_join("A", "room")
    sio.clear()
    assert await relay.chat_message("A", {"text": "hello"}) is None
    assert sio.events("A", CHAT) == []


async def test_disconnect_frees_chat_slot(relay, sio):
    await relay.chat_join("A", "room")
    await relay.chat_join("B", "room")
    sio.clear()

    await relay.chat_disconnect("B")
    sio.forget("B", CHAT)

    assert sio.event_names("A", CHAT) == ["user-left"]
    assert [p.sid for p in relay.chats.members("room")] == ["A"]

    await relay.chat_disconnect("A")
    assert "room" not in relay.chats


async def test_leave_chat_room(relay, sio):
    await relay.chat_join("A", "room")
    await relay.chat_leave("A", "room")
    assert "room" not in relay.chats
    assert "A" not in sio.rooms[(CHAT, "room")]
