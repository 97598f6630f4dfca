from pydantic import BaseModel
from typing import Optional


class RoomMember(BaseModel):
    sid: str
    user_name: str
    user_role: str

class RoomInfo(BaseModel):
    room_id: str
    users: list[RoomMember]
    count: int
    is_full: bool

class RoomsResponse(BaseModel):
    rooms: list[RoomInfo]
    active_rooms: int

class HealthResponse(BaseModel):
    status: str
    active_rooms: int
    active_chat_rooms: int
    registered_doctors: int
    timestamp: str
    redis_enabled: Optional[bool] = None
