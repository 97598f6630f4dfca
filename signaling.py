import socketio
from constants import CORS_ALLOWED_ORIGINS, CHAT_NAMESPACE
from relay import RelayService, RELAY_EVENTS
from logging_config import get_logger

logger = get_logger(__name__)


def create_socket_server(client_manager=None) -> socketio.AsyncServer:
    origins = "*" if "*" in CORS_ALLOWED_ORIGINS else CORS_ALLOWED_ORIGINS
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=origins,
        client_manager=client_manager,
    )


def register_handlers(sio: socketio.AsyncServer, relay: RelayService):
    """Bind the call-signaling namespace ("/") and the chat namespace to ``relay``.

    Event names and payload shapes must stay exactly as the web client
    expects them.
    """

    @sio.on("connect")
    async def connect(sid, environ, auth=None):
        logger.info(f"User connected: {sid}")

    @sio.on("join-room")
    async def join_room(sid, data=None):
        await relay.join_room(sid, data)

    def make_relay_handler(event):
        async def handler(sid, data=None):
            await relay.relay(sid, event, data)
        return handler

    for event in RELAY_EVENTS:
        sio.on(event, handler=make_relay_handler(event))

    @sio.on("leave-room")
    async def leave_room(sid, data=None):
        await relay.leave_room(sid, data)

    @sio.on("doctorConnect")
    async def doctor_connect(sid, doctor_id=None):
        relay.register_doctor(sid, doctor_id)

    @sio.on("emergencyRequest")
    async def emergency_request(sid, data=None):
        await relay.emergency_request(sid, data)

    @sio.on("disconnect")
    async def disconnect(sid, reason=None):
        await relay.disconnect(sid)

    # chat namespace

    @sio.on("connect", namespace=CHAT_NAMESPACE)
    async def chat_connect(sid, environ, auth=None):
        logger.info(f"Chat user connected: {sid}")

    @sio.on("join-room", namespace=CHAT_NAMESPACE)
    async def chat_join_room(sid, data=None):
        await relay.chat_join(sid, data)

    @sio.on("user-message", namespace=CHAT_NAMESPACE)
    async def chat_user_message(sid, data=None):
        await relay.chat_message(sid, data)

    @sio.on("leave-room", namespace=CHAT_NAMESPACE)
    async def chat_leave_room(sid, data=None):
        await relay.chat_leave(sid, data)

    @sio.on("disconnect", namespace=CHAT_NAMESPACE)
    async def chat_disconnect(sid, reason=None):
        await relay.chat_disconnect(sid)

    logger.info("Socket.IO handlers registered")
