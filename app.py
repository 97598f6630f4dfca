from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import socketio
from routers.rooms import rooms_router
from backend import create_client_manager
from signaling import create_socket_server, register_handlers
from relay import RelayService
from constants import CORS_ALLOWED_ORIGINS, LOG_LEVEL, LOG_FILE
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI(title="Cureon signaling")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)

# One relay per process. Its room maps are only visible to connections
# handled by this instance; Redis (when configured) only distributes emits.
sio = create_socket_server(client_manager=create_client_manager())
relay = RelayService(sio)
register_handlers(sio, relay)
app.state.relay = relay

# Socket.IO is served on /socket.io, everything else falls through to FastAPI
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)

logger.info("Cureon signaling application initialized")
