from enum import Enum


class Status(Enum):
    """Outcome codes returned in the response envelope.

    The numeric code and message of each member are part of the public API.
    The first three digits of a code are the HTTP status of the response.
    """

    SUCCESS_CREATED_CHATROOM = (2001, "Chat room created")
    SUCCESS_JOINED_CHATROOM = (2002, "Joined chat room")
    SUCCESS_DELETED_CHATROOM = (2003, "Left chat room")
    SUCCESS_ENTERED_CHATROOM = (2004, "Entered chat room")
    SUCCESS_SEARCHED_CHATROOM = (2005, "Chat room search completed")

    INVALID_INPUT = (4000, "Invalid input")
    FORBIDDEN_CHATROOM = (4030, "Not a member of the chat room")
    NOT_FOUND_CHATROOM = (4040, "Chat room not found")
    NOT_FOUND_RESOURCE = (4041, "Resource not found")
    METHOD_NOT_ALLOWED = (4050, "Method not allowed")
    DUPLICATED_CHATROOM_MEMBER = (4090, "Already a member of the chat room")
    INTERNAL_SERVER_ERROR = (5000, "Internal server error")

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message

    @property
    def http_status(self) -> int:
        return self.code // 10

    @property
    def is_success(self) -> bool:
        return self.http_status < 400
