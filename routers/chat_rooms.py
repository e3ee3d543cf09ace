from typing import Annotated

from fastapi import APIRouter, Depends, Header, Path

from constants import API_PREFIX, USER_EMAIL_HEADER
from exceptions import InvalidInput
from logging_config import get_logger
from schemas.response import build_response
from schemas.rooms import CreateChatRoomRequest, JoinChatRoomRequest
from services.chat_rooms import ChatRoomService, get_chat_room_service
from status_codes import Status

logger = get_logger(__name__)

chat_rooms_router = APIRouter(prefix=API_PREFIX, tags=["chatRoom"])


def get_user_email(user_email: str = Header(..., alias=USER_EMAIL_HEADER)) -> str:
    """Identity of the caller, as forwarded by the gateway in the USER-EMAIL header."""
    user_email = user_email.strip()
    if not user_email:
        raise InvalidInput(f"{USER_EMAIL_HEADER} header must not be blank")
    return user_email


RoomIdx = Annotated[int, Path(ge=0)]


def create_chat_room(
    request: CreateChatRoomRequest,
    user_email: str = Depends(get_user_email),
    service: ChatRoomService = Depends(get_chat_room_service),
):
    logger.info(f"Room creation request from {user_email}, name: {request.room_name}, type: {request.room_type.value}")
    return build_response(service.save(user_email, request), Status.SUCCESS_CREATED_CHATROOM)


def join_chat_room(
    request: JoinChatRoomRequest,
    service: ChatRoomService = Depends(get_chat_room_service),
):
    # Identity comes from the body here, unlike the other endpoints
    logger.info(f"Join room request for {request.room_idx} from {request.user_email}")
    return build_response(service.join_chat_room(request), Status.SUCCESS_JOINED_CHATROOM)


def leave_chat_room(
    room_idx: RoomIdx,
    user_email: str = Depends(get_user_email),
    service: ChatRoomService = Depends(get_chat_room_service),
):
    logger.info(f"Leave room request for {room_idx} from {user_email}")
    return build_response(service.leave_chat_room(user_email, room_idx), Status.SUCCESS_DELETED_CHATROOM)


def enter_chat_room(
    room_idx: RoomIdx,
    user_email: str = Depends(get_user_email),
    service: ChatRoomService = Depends(get_chat_room_service),
):
    logger.info(f"Enter room request for {room_idx} from {user_email}")
    # Topic must exist before the client gets the room back and subscribes
    service.enter_chat_room(str(room_idx))
    return build_response(service.find_room_by_room_idx(user_email, room_idx), Status.SUCCESS_ENTERED_CHATROOM)


def find_my_chat_rooms(
    user_email: str = Depends(get_user_email),
    service: ChatRoomService = Depends(get_chat_room_service),
):
    logger.debug(f"Room list request from {user_email}")
    return build_response(service.find_all_by_user_id(user_email), Status.SUCCESS_SEARCHED_CHATROOM)


def find_chat_room(
    room_idx: RoomIdx,
    user_email: str = Depends(get_user_email),
    service: ChatRoomService = Depends(get_chat_room_service),
):
    logger.debug(f"Room details request for {room_idx} from {user_email}")
    return build_response(service.find_room_by_room_idx(user_email, room_idx), Status.SUCCESS_SEARCHED_CHATROOM)


def find_all_chat_rooms(service: ChatRoomService = Depends(get_chat_room_service)):
    logger.debug("All rooms request")
    return build_response(service.find_all(), Status.SUCCESS_SEARCHED_CHATROOM)


# (method, path template, handler). Literal paths come before "/{room_idx}".
# "" is the prefix itself; "/" is kept so the trailing-slash form does not redirect.
CHAT_ROOM_ROUTES = [
    ("POST", "", create_chat_room),
    ("POST", "/", create_chat_room),
    ("POST", "/join", join_chat_room),
    ("POST", "/leave/{room_idx}", leave_chat_room),
    ("GET", "/enter/{room_idx}", enter_chat_room),
    ("GET", "/all", find_all_chat_rooms),
    ("GET", "", find_my_chat_rooms),
    ("GET", "/", find_my_chat_rooms),
    ("GET", "/{room_idx}", find_chat_room),
]

for method, path, handler in CHAT_ROOM_ROUTES:
    chat_rooms_router.add_api_route(path, handler, methods=[method], name=handler.__name__, include_in_schema=path != "/")
