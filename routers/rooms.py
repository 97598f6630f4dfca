from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import HealthResponse, RoomInfo, RoomMember, RoomsResponse
from relay import Peer, RelayService, utc_timestamp
from backend import redis_enabled
from typing import List
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(tags=["rooms"])


def get_relay(request: Request) -> RelayService:
    return request.app.state.relay


def to_room_info(relay: RelayService, room_id: str, members: List[Peer]) -> RoomInfo:
    return RoomInfo(
        room_id=room_id,
        users=[RoomMember(sid=p.sid, user_name=p.user_name, user_role=p.user_role) for p in members],
        count=len(members),
        is_full=len(members) >= relay.calls.capacity,
    )


@rooms_router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    relay = get_relay(request)
    return HealthResponse(
        status="ok",
        active_rooms=len(relay.calls),
        active_chat_rooms=len(relay.chats),
        registered_doctors=len(relay.doctors),
        timestamp=utc_timestamp(),
        redis_enabled=redis_enabled(),
    )


@rooms_router.get("/rooms", response_model=RoomsResponse)
async def list_rooms(request: Request):
    """
    List active call rooms with their members.

    Intended for debugging; room tokens are the only secret protecting a call,
    so do not expose this route publicly.
    """
    relay = get_relay(request)
    rooms = [to_room_info(relay, room_id, members) for room_id, members in relay.calls.snapshot().items()]
    logger.debug(f"Listing {len(rooms)} active rooms")
    return RoomsResponse(rooms=rooms, active_rooms=len(rooms))


@rooms_router.get("/rooms/{room_id}", response_model=RoomInfo)
async def get_room_details(room_id: str, request: Request):
    relay = get_relay(request)
    members = relay.room_info(room_id)
    if members is None:
        logger.info(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")
    return to_room_info(relay, room_id, members)
