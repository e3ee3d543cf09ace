from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RoomType(str, Enum):
    GROUP = "GROUP"
    PERSONAL = "PERSONAL"


class CreateChatRoomRequest(CamelModel):
    room_name: str = Field(min_length=1, max_length=100)
    room_type: RoomType = RoomType.GROUP

    @field_validator("room_name")
    @classmethod
    def strip_room_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("roomName must not be blank")
        return value


class JoinChatRoomRequest(CamelModel):
    user_email: str = Field(min_length=1)
    room_idx: int = Field(ge=0, strict=True)

    @field_validator("user_email")
    @classmethod
    def strip_user_email(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("userEmail must not be blank")
        return value


class CreateChatRoomResponse(CamelModel):
    room_idx: int
    room_name: str
    room_type: RoomType
    created_by: str
    created_at: str


class JoinChatRoomResponse(CamelModel):
    room_idx: int
    room_name: str
    room_type: RoomType
    user_email: str
    joined_at: str


class ChatRoomRelationResponse(CamelModel):
    room_idx: int
    room_name: str
    room_type: RoomType
    user_email: str
    joined_at: str


class ChatRoomResponse(CamelModel):
    room_idx: int
    room_name: str
    room_type: RoomType
    created_by: str
    created_at: str
    member_count: int
    members: list[str]
    is_member: Optional[bool] = None
