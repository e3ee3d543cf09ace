from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from constants import CORS_ALLOW_ORIGINS, LOG_LEVEL, LOG_FILE
from exceptions import ChatRoomException
from logging_config import get_logger, setup_logging
from routers.chat_rooms import chat_rooms_router
from schemas.response import empty_response
from status_codes import Status

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI(title="Chat Rooms API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_rooms_router)


@app.exception_handler(ChatRoomException)
async def chat_room_exception_handler(request: Request, exc: ChatRoomException):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.status.name} ({exc.detail})")
    return empty_response(exc.status)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"{request.method} {request.url.path} rejected: invalid input {exc.errors()}")
    return empty_response(Status.INVALID_INPUT)


HTTP_ERROR_STATUSES = {
    400: Status.INVALID_INPUT,
    403: Status.FORBIDDEN_CHATROOM,
    404: Status.NOT_FOUND_RESOURCE,
    405: Status.METHOD_NOT_ALLOWED,
    409: Status.DUPLICATED_CHATROOM_MEMBER,
}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Routing errors (unknown path, wrong method) get the envelope too."""
    if exc.status_code in HTTP_ERROR_STATUSES:
        status = HTTP_ERROR_STATUSES[exc.status_code]
    elif exc.status_code >= 500:
        status = Status.INTERNAL_SERVER_ERROR
    else:
        status = Status.INVALID_INPUT
    logger.info(f"{request.method} {request.url.path} rejected: {exc.status_code} {exc.detail}")
    response = empty_response(status)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return empty_response(Status.INTERNAL_SERVER_ERROR)


logger.info("FastAPI application initialized")
