# business_profile.py
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from revvio.database import get_db
from revvio.errors import InvalidUserReferenceError, ProfileConflictError
from revvio.routers.dependencies import get_current_user_id, get_optional_user_id
from revvio.schemas.api import ApiError, BusinessProfileEnvelope, error_response, success_response
from revvio.schemas.business import BusinessProfileRead, OnboardingForm, validation_details
from revvio.services.business_profile_service import get_business_profile, upsert_business_profile


logger = logging.getLogger(__name__)

router = APIRouter(tags=["business"])

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ApiError},
    status.HTTP_401_UNAUTHORIZED: {"model": ApiError},
    status.HTTP_404_NOT_FOUND: {"model": ApiError},
    status.HTTP_409_CONFLICT: {"model": ApiError},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ApiError},
}


@router.get(
    "/business/profile",
    response_model=BusinessProfileEnvelope,
    responses=_ERROR_RESPONSES,
    summary="Fetch the caller's business profile",
)
def read_business_profile(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> JSONResponse:
    try:
        profile = get_business_profile(db, user_id)
    except Exception:
        logger.exception("Error fetching business profile user_id=%s", user_id)
        return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if profile is None:
        return error_response("Business profile not found", status.HTTP_404_NOT_FOUND)
    return success_response(BusinessProfileRead.model_validate(profile))


@router.post(
    "/business/profile",
    response_model=BusinessProfileEnvelope,
    responses=_ERROR_RESPONSES,
    summary="Create or overwrite the caller's business profile",
)
async def save_business_profile(
    request: Request,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> JSONResponse:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return error_response("Invalid JSON in request body", status.HTTP_400_BAD_REQUEST)

    try:
        form = OnboardingForm.model_validate(body)
    except ValidationError as exc:
        return error_response("Validation failed", status.HTTP_400_BAD_REQUEST, details=validation_details(exc))

    try:
        result = await run_in_threadpool(upsert_business_profile, db, user_id, form)
    except ProfileConflictError:
        return error_response("A business profile already exists for this user", status.HTTP_409_CONFLICT)
    except InvalidUserReferenceError:
        return error_response("Invalid user reference", status.HTTP_400_BAD_REQUEST)
    except Exception:
        logger.exception("Error creating/updating business profile user_id=%s", user_id)
        return error_response(
            "Internal server error while processing your request",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    data = result.profile
    if result.created:
        return success_response(data, status.HTTP_201_CREATED, "Business profile created successfully")
    return success_response(data, status.HTTP_200_OK, "Business profile updated successfully")


@router.get("/business-profile", summary="Lightweight profile read for dashboard widgets")
def read_business_profile_compact(
    db: Session = Depends(get_db),
    user_id: int | None = Depends(get_optional_user_id),
) -> dict[str, Any] | None:
    if user_id is None:
        return None
    profile = get_business_profile(db, user_id)
    if profile is None:
        return None
    return BusinessProfileRead.model_validate(profile).model_dump(mode="json", by_alias=True)
