from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from status_codes import Status


class Envelope(BaseModel):
    status: int
    message: str
    data: Optional[Any] = None


def build_response(payload: Any, status: Status) -> JSONResponse:
    """Wrap a payload (one object or a list, passed through as-is) in the response envelope."""
    envelope = Envelope(status=status.code, message=status.message, data=jsonable_encoder(payload, by_alias=True))
    return JSONResponse(status_code=status.http_status, content=envelope.model_dump())


def empty_response(status: Status) -> JSONResponse:
    return build_response(None, status)
