from typing import Optional

from status_codes import Status


class ChatRoomException(Exception):
    """Base error for chat room operations, translated to an envelope by the app."""

    status = Status.INTERNAL_SERVER_ERROR

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.status.message
        super().__init__(self.detail)


class InvalidInput(ChatRoomException):
    status = Status.INVALID_INPUT


class ChatRoomNotFound(ChatRoomException):
    status = Status.NOT_FOUND_CHATROOM

    def __init__(self, room_idx):
        self.room_idx = room_idx
        super().__init__(f"Chat room {room_idx} not found")


class ForbiddenChatRoomAccess(ChatRoomException):
    status = Status.FORBIDDEN_CHATROOM

    def __init__(self, user_email: str, room_idx):
        self.user_email = user_email
        self.room_idx = room_idx
        super().__init__(f"{user_email} is not a member of chat room {room_idx}")


class DuplicatedChatRoomMember(ChatRoomException):
    status = Status.DUPLICATED_CHATROOM_MEMBER

    def __init__(self, user_email: str, room_idx):
        self.user_email = user_email
        self.room_idx = room_idx
        super().__init__(f"{user_email} is already a member of chat room {room_idx}")

