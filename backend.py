import redis
import socketio
from constants import REDIS_HOST, REDIS_PORT, REDIS_URL, SOCKETIO_CHANNEL
from logging_config import get_logger

logger = get_logger(__name__)


def redis_enabled() -> bool:
    return bool(REDIS_HOST)


def create_client_manager():
    """Build the Socket.IO client manager used to fan out emits.

    Without ``REDIS_HOST`` every emit stays inside this process and the
    default in-memory manager is used (returns None). With it, emits are
    published on a Redis channel so connections held by other instances
    receive them too. Room membership itself stays per process.
    """
    if not redis_enabled():
        logger.info("REDIS_HOST not set, using in-process Socket.IO manager")
        return None

    try:
        # AsyncRedisManager connects lazily, check reachability up front
        client = redis.Redis.from_url(REDIS_URL, decode_responses=True)
        client.ping()
        client.close()
        logger.info(f"Redis reachable at {REDIS_HOST}:{REDIS_PORT}")
    except Exception as e:
        logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
        raise

    manager = socketio.AsyncRedisManager(REDIS_URL, channel=SOCKETIO_CHANNEL)
    logger.info(f"Socket.IO emits distributed over Redis channel {SOCKETIO_CHANNEL}")
    return manager
