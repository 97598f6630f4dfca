from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional


class JoinRequest(BaseModel):
    """Normalized `join-room` payload.

    Clients send either a bare room token or
    ``{"roomId": ..., "userName": ..., "userRole": ...}``.
    """
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")
    user_name: str = Field(default="Unknown", alias="userName")
    user_role: str = Field(default="user", alias="userRole")

    @classmethod
    def from_payload(cls, data: Any) -> Optional["JoinRequest"]:
        if isinstance(data, str):
            return cls(room_id=data) if data else None
        if not isinstance(data, dict):
            return None
        room_id = data.get("roomId")
        if not isinstance(room_id, str) or not room_id:
            return None
        user_name = data.get("userName")
        user_role = data.get("userRole")
        return cls(
            room_id=room_id,
            user_name=user_name if isinstance(user_name, str) and user_name else "Unknown",
            user_role=user_role if isinstance(user_role, str) and user_role else "user",
        )


class RoomUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_name: str = Field(alias="userName")
    user_role: str = Field(alias="userRole")


class UserJoiningNotice(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")
    caller_name: str = Field(alias="callerName")
    caller_role: str = Field(alias="callerRole")
    socket_id: str = Field(alias="socketId")


class EmergencyNotification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_name: Any = Field(default=None, alias="patientName")
    room_id: str = Field(alias="roomId")


class ChatMessage(BaseModel):
    text: Any
    sender: str
    timestamp: str
