from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from revvio.schemas.business import BusinessProfileRead


class ApiError(BaseModel):
    success: bool = False
    error: str
    details: list[str] | None = None


class BusinessProfileEnvelope(BaseModel):
    success: bool = True
    data: BusinessProfileRead
    message: str | None = None


def success_response(data: BaseModel, status_code: int = 200, message: str | None = None) -> JSONResponse:
    content: dict[str, Any] = {"success": True, "data": data.model_dump(mode="json", by_alias=True)}
    if message is not None:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


def error_response(error: str, status_code: int, details: list[str] | None = None) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))
