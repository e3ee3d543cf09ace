from datetime import datetime
from typing import Optional

import redis
from fastapi import Depends

from backend import RedisBackend, get_redis_backend
from exceptions import ChatRoomNotFound, DuplicatedChatRoomMember, ForbiddenChatRoomAccess
from logging_config import get_logger
from schemas.rooms import (
    ChatRoomRelationResponse,
    ChatRoomResponse,
    CreateChatRoomRequest,
    CreateChatRoomResponse,
    JoinChatRoomRequest,
    JoinChatRoomResponse,
)

logger = get_logger(__name__)


class ChatRoomService:
    """Owns rooms and memberships.

    A room is never deleted here: leaving only drops the caller's membership.
    """

    def __init__(self, backend: RedisBackend):
        self.backend = backend

    def save(self, user_email: str, request: CreateChatRoomRequest) -> CreateChatRoomResponse:
        room = self.backend.create_room(
            {"room_name": request.room_name, "room_type": request.room_type.value},
            creator_email=user_email,
        )
        logger.info(f"Room {room['room_idx']} created successfully: name={request.room_name}, owner={user_email}")
        return CreateChatRoomResponse(**room)

    def join_chat_room(self, request: JoinChatRoomRequest) -> JoinChatRoomResponse:
        room = self._get_room_or_raise(request.room_idx)
        joined_at = self.backend.add_member(request.room_idx, request.user_email)
        if joined_at is None:
            logger.warning(f"Join room failed: {request.user_email} is already a member of room {request.room_idx}")
            raise DuplicatedChatRoomMember(request.user_email, request.room_idx)

        logger.info(f"User {request.user_email} joined room {request.room_idx}")
        self._notify(request.room_idx, "user_joined", request.user_email)
        return JoinChatRoomResponse(
            room_idx=room["room_idx"],
            room_name=room["room_name"],
            room_type=room["room_type"],
            user_email=request.user_email,
            joined_at=joined_at,
        )

    def leave_chat_room(self, user_email: str, room_idx: int) -> ChatRoomRelationResponse:
        room = self._get_room_or_raise(room_idx)
        joined_at = self.backend.remove_member(room_idx, user_email)
        if joined_at is None:
            logger.warning(f"Leave room failed: {user_email} is not a member of room {room_idx}")
            raise ForbiddenChatRoomAccess(user_email, room_idx)

        logger.info(f"User {user_email} left room {room_idx}")
        self._notify(room_idx, "user_left", user_email)
        return self._to_relation(room, user_email, joined_at)

    def enter_chat_room(self, room_idx: str) -> None:
        """Make sure the room's pub/sub topic exists so clients can subscribe right away."""
        if not self.backend.room_exists(room_idx):
            logger.warning(f"Enter room failed: Room {room_idx} not found")
            raise ChatRoomNotFound(room_idx)
        self.backend.ensure_topic(room_idx)

    def find_room_by_room_idx(self, user_email: str, room_idx: int) -> ChatRoomResponse:
        room = self._get_room_or_raise(room_idx)
        return self._to_room(room, user_email)

    def find_all_by_user_id(self, user_email: str) -> list[ChatRoomRelationResponse]:
        relations = []
        for room_idx, joined_at in self.backend.get_user_memberships(user_email):
            room = self._get_room_or_raise(room_idx)
            relations.append(self._to_relation(room, user_email, joined_at))
        logger.debug(f"Found {len(relations)} rooms for {user_email}")
        return relations

    def find_all(self) -> list[ChatRoomResponse]:
        rooms = []
        for room_idx in self.backend.get_all_room_idxs():
            room = self.backend.get_room(room_idx)
            if room is not None:
                rooms.append(self._to_room(room))
        logger.debug(f"Found {len(rooms)} rooms")
        return rooms

    def _get_room_or_raise(self, room_idx: int) -> dict:
        room = self.backend.get_room(room_idx)
        if room is None:
            logger.warning(f"Room {room_idx} not found")
            raise ChatRoomNotFound(room_idx)
        return room

    def _to_room(self, room: dict, user_email: Optional[str] = None) -> ChatRoomResponse:
        members = self.backend.get_members(room["room_idx"])
        return ChatRoomResponse(
            room_idx=room["room_idx"],
            room_name=room["room_name"],
            room_type=room["room_type"],
            created_by=room["created_by"],
            created_at=room["created_at"],
            member_count=len(members),
            members=sorted(members, key=members.get),
            is_member=None if user_email is None else user_email in members,
        )

    @staticmethod
    def _to_relation(room: dict, user_email: str, joined_at: str) -> ChatRoomRelationResponse:
        return ChatRoomRelationResponse(
            room_idx=room["room_idx"],
            room_name=room["room_name"],
            room_type=room["room_type"],
            user_email=user_email,
            joined_at=joined_at,
        )

    def _notify(self, room_idx: int, event: str, user_email: str):
        message = {
            "type": "system",
            "event": event,
            "room_idx": room_idx,
            "user_email": user_email,
            "timestamp": datetime.now().isoformat(),
        }
        try:
            self.backend.publish_message(str(room_idx), message)
        except redis.RedisError as e:
            logger.error(f"Could not publish {event} for room {room_idx}: {e}", exc_info=True)


def get_chat_room_service(backend: RedisBackend = Depends(get_redis_backend)) -> ChatRoomService:
    return ChatRoomService(backend)
