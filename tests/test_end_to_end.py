import asyncio
import socket

import pytest
import socketio
import uvicorn

import app as application

ROOM = "e2e-room"


def free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


async def wait_until(condition, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.02)


class Recorder:
    """socketio.AsyncClient that keeps every event it receives."""

    def __init__(self, events, namespace="/"):
        self.client = socketio.AsyncClient()
        self.received = []
        for event in events:
            self.client.on(event, self._recorder(event), namespace=namespace)

    def _recorder(self, event):
        async def handler(*args):
            self.received.append((event, args[0] if args else None))
        return handler

    def names(self):
        return [event for event, _ in self.received]


@pytest.fixture
async def server_url():
    port = free_port()
    server = uvicorn.Server(uvicorn.Config(application.asgi_app, host="127.0.0.1", port=port, log_level="warning", lifespan="off"))
    task = asyncio.create_task(server.serve())
    await wait_until(lambda: server.started)
    yield f"http://127.0.0.1:{port}"
    server.should_exit = True
    await task


async def test_call_signaling_over_real_socketio(server_url):
    events = ["ready", "room-users", "room-full", "offer", "user-left", "user-joining"]
    a, b, c = Recorder(events), Recorder(events), Recorder(events)
    relay = application.relay
    try:
        for peer in (a, b, c):
            await peer.client.connect(server_url)

        await a.client.emit("join-room", {"roomId": ROOM, "userName": "Dr. Rao", "userRole": "doctor"})
        await wait_until(lambda: len(relay.calls.members(ROOM)) == 1)
        await b.client.emit("join-room", {"roomId": ROOM, "userName": "Asha", "userRole": "patient"})
        await wait_until(lambda: "room-users" in a.names() and "room-users" in b.names())
        assert "ready" in a.names() and "ready" in b.names()

        await c.client.emit("join-room", ROOM)
        await wait_until(lambda: "room-full" in c.names())
        assert len(relay.calls.members(ROOM)) == 2

        await a.client.emit("offer", {"roomId": ROOM, "offer": {"sdp": "x", "type": "offer"}})
        await wait_until(lambda: "offer" in b.names())
        assert ("offer", {"sdp": "x", "type": "offer"}) in b.received
        assert "offer" not in a.names()
        assert "offer" not in c.names()

        await b.client.disconnect()
        await wait_until(lambda: "user-left" in a.names())
        assert ("user-left", {"userName": "Asha", "userRole": "patient"}) in a.received
        assert [p.user_name for p in relay.calls.members(ROOM)] == ["Dr. Rao"]

        await a.client.disconnect()
        await wait_until(lambda: ROOM not in relay.calls)
    finally:
        for peer in (a, b, c):
            if peer.client.connected:
                await peer.client.disconnect()


async def test_chat_namespace_over_real_socketio(server_url):
    events = ["joined-room", "message"]
    a, b = Recorder(events, namespace="/chat"), Recorder(events, namespace="/chat")
    try:
        for peer in (a, b):
            await peer.client.connect(server_url, namespaces=["/chat"])

        await a.client.emit("join-room", ROOM, namespace="/chat")
        await b.client.emit("join-room", ROOM, namespace="/chat")
        await wait_until(lambda: "joined-room" in a.names() and "joined-room" in b.names())

        await a.client.emit("user-message", {"roomId": ROOM, "text": "hello"}, namespace="/chat")
        await wait_until(lambda: "message" in a.names() and "message" in b.names())

        message = dict(b.received)["message"]
        assert message["text"] == "hello"
        assert message == dict(a.received)["message"]
        assert message["sender"] != b.client.get_sid("/chat")
    finally:
        for peer in (a, b):
            if peer.client.connected:
                await peer.client.disconnect()
    await wait_until(lambda: ROOM not in application.relay.chats)
