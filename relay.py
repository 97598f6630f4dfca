import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from constants import ROOM_CAPACITY, EMERGENCY_ROOM_ID, CHAT_NAMESPACE
from logging_config import get_logger
from schemas.signaling import JoinRequest, RoomUser, UserJoiningNotice, EmergencyNotification, ChatMessage

logger = get_logger(__name__)

# event name -> key in the client payload that carries the opaque blob
RELAY_EVENTS = {
    "offer": "offer",
    "answer": "answer",
    "ice-candidate": "candidate",
}


def describe(payload: Any, limit: int = 80) -> str:
    """Short form of a client payload for log lines; SDP blobs can be kilobytes."""
    text = repr(payload)
    if len(text) > limit:
        text = text[:limit] + "..."
    return f"{type(payload).__name__} {text}"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-01T10:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Peer:
    sid: str
    user_name: str = "Unknown"
    user_role: str = "user"

    def as_room_user(self) -> dict:
        return RoomUser(user_name=self.user_name, user_role=self.user_role).model_dump(by_alias=True)


class JoinOutcome(enum.Enum):
    ADDED = "added"
    ALREADY_MEMBER = "already_member"
    FULL = "full"


class RoomRegistry:
    """Process-local map of room token -> ordered list of peers.

    A room exists only while it has at least one member; removing the last
    member deletes the entry. No list ever grows past ``capacity``.
    """

    def __init__(self, capacity: int = ROOM_CAPACITY):
        self.capacity = capacity
        self.rooms: Dict[str, List[Peer]] = {}

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self.rooms

    def members(self, room_id: str) -> List[Peer]:
        return list(self.rooms.get(room_id, []))

    def add(self, room_id: str, peer: Peer) -> JoinOutcome:
        members = self.rooms.get(room_id, [])
        if any(member.sid == peer.sid for member in members):
            return JoinOutcome.ALREADY_MEMBER
        if len(members) >= self.capacity:
            return JoinOutcome.FULL
        self.rooms.setdefault(room_id, []).append(peer)
        return JoinOutcome.ADDED

    def remove(self, room_id: str, sid: str) -> Optional[Peer]:
        members = self.rooms.get(room_id)
        if not members:
            return None
        for index, peer in enumerate(members):
            if peer.sid == sid:
                del members[index]
                if not members:
                    del self.rooms[room_id]
                return peer
        return None

    def remove_everywhere(self, sid: str) -> List[Tuple[str, Peer]]:
        """Remove ``sid`` from every room it belongs to, returning (room_id, peer) pairs."""
        removed = []
        for room_id in list(self.rooms):
            peer = self.remove(room_id, sid)
            if peer is not None:
                removed.append((room_id, peer))
        return removed

    def snapshot(self) -> Dict[str, List[Peer]]:
        return {room_id: list(members) for room_id, members in self.rooms.items()}


class RelayService:
    """Room bookkeeping and message relay for call signaling and chat.

    Registry mutations never straddle an ``await``: a membership change is
    made synchronously, and anything emitted after an ``await`` is decided on
    the registry as it is at that point, since other handlers may have run.
    """

    def __init__(self, sio, capacity: int = ROOM_CAPACITY, chat_namespace: str = CHAT_NAMESPACE):
        self.sio = sio
        self.calls = RoomRegistry(capacity)
        self.chats = RoomRegistry(capacity)
        # doctor_id -> sid
        self.doctors: Dict[str, str] = {}
        self.chat_namespace = chat_namespace

    # ----- call signaling -----

    async def join_room(self, sid: str, payload: Any) -> Optional[JoinOutcome]:
        request = JoinRequest.from_payload(payload)
        if request is None:
            logger.warning(f"Ignoring join-room from {sid}: unusable payload {describe(payload)}")
            return None

        room_id = request.room_id
        logger.info(f"User {sid} ({request.user_name} - {request.user_role}) joining room: {room_id}")

        existing = self.calls.members(room_id)
        peer = Peer(sid=sid, user_name=request.user_name, user_role=request.user_role)
        outcome = self.calls.add(room_id, peer)

        if outcome is JoinOutcome.FULL:
            logger.info(f"Room {room_id} is full, rejecting {sid}")
            await self.sio.emit("room-full", to=sid)
            return outcome

        if outcome is JoinOutcome.ALREADY_MEMBER:
            logger.debug(f"User {sid} is already in room {room_id}, re-subscribing only")
            await self.sio.enter_room(sid, room_id)
            return outcome

        members = self.calls.members(room_id)
        logger.info(f"User {sid} ({request.user_name}) joined room {room_id}. Total users: {len(members)}")

        # subscribe first so a user-left sent while we await below reaches the joiner
        await self.sio.enter_room(sid, room_id)

        for other in existing:
            if not self._is_member(self.calls, room_id, other.sid):
                continue
            notice = UserJoiningNotice(
                room_id=room_id,
                caller_name=request.user_name,
                caller_role=request.user_role,
                socket_id=sid,
            )
            await self.sio.emit("user-joining", notice.model_dump(by_alias=True), to=other.sid)

        # other handlers may have run during the awaits, decide on the current roster.
        # Only the peer that completed the room announces it, so ready goes out once.
        members = self.calls.members(room_id)
        if len(members) == self.calls.capacity and members[-1].sid == sid:
            roster = [member.as_room_user() for member in members]
            logger.info(f"Room {room_id} is ready with {len(members)} users")
            await self.sio.emit("ready", room=room_id)
            await self.sio.emit("room-users", {"users": roster}, room=room_id)
        else:
            logger.debug(f"Room {room_id} waiting for second user")
        return outcome

    async def relay(self, sid: str, event: str, payload: Any) -> bool:
        key = RELAY_EVENTS[event]
        if not isinstance(payload, dict) or not isinstance(payload.get("roomId"), str):
            logger.warning(f"Dropping {event} from {sid}: payload has no roomId")
            return False
        room_id = payload["roomId"]
        logger.debug(f"Relaying {event} from {sid} in room {room_id}")
        await self.sio.emit(event, payload.get(key), room=room_id, skip_sid=sid)
        return True

    async def leave_room(self, sid: str, payload: Any) -> Optional[Peer]:
        request = JoinRequest.from_payload(payload)
        if request is None:
            logger.warning(f"Ignoring leave-room from {sid}: unusable payload {describe(payload)}")
            return None
        return await self._drop(self.calls, request.room_id, sid, namespace=None)

    async def disconnect(self, sid: str):
        logger.info(f"User disconnected: {sid}")
        for doctor_id in [d for d, doctor_sid in self.doctors.items() if doctor_sid == sid]:
            del self.doctors[doctor_id]
            logger.info(f"Doctor {doctor_id} unregistered")

        for room_id, peer in self.calls.remove_everywhere(sid):
            logger.info(f"User {sid} ({peer.user_name}) left room {room_id}")
            await self._notify_left(self.calls, room_id, peer, namespace=None)

    # ----- emergency broadcast -----

    def register_doctor(self, sid: str, doctor_id: Any) -> bool:
        if doctor_id is None or doctor_id == "":
            logger.warning(f"Ignoring doctorConnect from {sid}: no doctor id")
            return False
        self.doctors[str(doctor_id)] = sid
        logger.info(f"Doctor {doctor_id} registered on {sid}")
        return True

    async def emergency_request(self, sid: str, payload: Any) -> int:
        patient_name = payload.get("name") if isinstance(payload, dict) else None
        notification = EmergencyNotification(patient_name=patient_name, room_id=EMERGENCY_ROOM_ID)
        # one emit per connection even if it registered under several ids
        doctor_sids = list(dict.fromkeys(self.doctors.values()))
        logger.info(f"Emergency request from {sid} for {patient_name}, notifying {len(doctor_sids)} doctors")
        for doctor_sid in doctor_sids:
            await self.sio.emit("emergencyNotification", notification.model_dump(by_alias=True), to=doctor_sid)
        return len(doctor_sids)

    # ----- chat -----

    async def chat_join(self, sid: str, payload: Any) -> Optional[JoinOutcome]:
        request = JoinRequest.from_payload(payload)
        if request is None:
            logger.warning(f"Ignoring chat join-room from {sid}: unusable payload {describe(payload)}")
            return None

        room_id = request.room_id
        outcome = self.chats.add(room_id, Peer(sid=sid, user_name=request.user_name, user_role=request.user_role))
        if outcome is JoinOutcome.FULL:
            logger.info(f"Chat room {room_id} is full, rejecting {sid}")
            await self.sio.emit("room-full", to=sid, namespace=self.chat_namespace)
            return outcome

        await self.sio.enter_room(sid, room_id, namespace=self.chat_namespace)
        count = len(self.chats.members(room_id))
        logger.info(f"Chat user {sid} joined room {room_id}. Total users: {count}")
        await self.sio.emit("joined-room", {"roomId": room_id, "users": count}, to=sid, namespace=self.chat_namespace)
        return outcome

    async def chat_message(self, sid: str, payload: Any) -> Optional[dict]:
        if not isinstance(payload, dict) or not isinstance(payload.get("roomId"), str):
            logger.warning(f"Dropping chat message from {sid}: payload has no roomId")
            return None
        room_id = payload["roomId"]
        message = ChatMessage(text=payload.get("text"), sender=sid, timestamp=utc_timestamp()).model_dump()
        logger.debug(f"Chat message in room {room_id} from {sid}")
        await self.sio.emit("message", message, room=room_id, namespace=self.chat_namespace)
        return message

    async def chat_leave(self, sid: str, payload: Any) -> Optional[Peer]:
        request = JoinRequest.from_payload(payload)
        if request is None:
            logger.warning(f"Ignoring chat leave-room from {sid}: unusable payload {describe(payload)}")
            return None
        return await self._drop(self.chats, request.room_id, sid, namespace=self.chat_namespace)

    async def chat_disconnect(self, sid: str):
        logger.info(f"Chat user disconnected: {sid}")
        for room_id, peer in self.chats.remove_everywhere(sid):
            await self._notify_left(self.chats, room_id, peer, namespace=self.chat_namespace)

    # ----- read-only views -----

    def room_info(self, room_id: str) -> Optional[List[Peer]]:
        if room_id not in self.calls:
            return None
        return self.calls.members(room_id)

    # ----- helpers -----

    @staticmethod
    def _is_member(registry: RoomRegistry, room_id: str, sid: str) -> bool:
        return any(member.sid == sid for member in registry.members(room_id))

    async def _drop(self, registry: RoomRegistry, room_id: str, sid: str, namespace: Optional[str]) -> Optional[Peer]:
        peer = registry.remove(room_id, sid)
        if peer is None:
            logger.debug(f"{sid} asked to leave {room_id} but was not a member")
            return None
        await self.sio.leave_room(sid, room_id, namespace=namespace)
        logger.info(f"User {sid} ({peer.user_name}) left room {room_id}")
        await self._notify_left(registry, room_id, peer, namespace=namespace)
        return peer

    async def _notify_left(self, registry: RoomRegistry, room_id: str, peer: Peer, namespace: Optional[str]):
        await self.sio.emit(
            "user-left",
            peer.as_room_user(),
            room=room_id,
            skip_sid=peer.sid,
            namespace=namespace,
        )
        if room_id not in registry:
            logger.info(f"Room {room_id} deleted (empty)")
