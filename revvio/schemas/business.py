from __future__ import annotations

import re
from datetime import datetime

from email_validator import EmailNotValidError, validate_email
from pydantic import AnyUrl, BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


# Optional leading "+", optional parenthesised area code, 3+3+4..6 digits.
PHONE_RE = re.compile(r"^[+]?[(]?[0-9]{3}[)]?[-\s.]?[0-9]{3}[-\s.]?[0-9]{4,6}$")

_URL_ADAPTER = TypeAdapter(AnyUrl)


def _is_url(value: str) -> bool:
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return True


def _check_url(value: str) -> str:
    if not _is_url(value):
        raise PydanticCustomError("url", "Please enter a valid URL")
    # Stored exactly as typed; AnyUrl would append a trailing slash.
    return value


def _raise_issues(code: str, issues: list[str]) -> None:
    # Pydantic allows one error per field; every failed rule travels in ctx["issues"].
    if issues:
        raise PydanticCustomError(code, issues[0], {"issues": issues})


class _FormModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BusinessInfoForm(_FormModel):
    """Step 1: basic business information."""

    business_name: str
    phone: str
    email: str

    @field_validator("business_name")
    @classmethod
    def _validate_business_name(cls, v: str) -> str:
        issues = []
        if len(v) < 2:
            issues.append("Business name must be at least 2 characters")
        if len(v) > 255:
            issues.append("Business name must be less than 255 characters")
        _raise_issues("business_name", issues)
        return v

    @field_validator("phone")
    @classmethod
    def _validate_phone(cls, v: str) -> str:
        issues = []
        if not v:
            issues.append("Phone number is required")
        if not PHONE_RE.match(v):
            issues.append("Please enter a valid phone number")
        _raise_issues("phone", issues)
        return v

    @field_validator("email")
    @classmethod
    def _validate_email(cls, v: str) -> str:
        issues = []
        if not v:
            issues.append("Email is required")
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError:
            issues.append("Please enter a valid email address")
        if len(v) > 255:
            issues.append("Email must be less than 255 characters")
        _raise_issues("email", issues)
        return v


class ReviewLinksForm(_FormModel):
    """Step 2: where customers are sent to leave a review."""

    google_review_url: str
    facebook_review_url: str | None = None
    yelp_review_url: str | None = None

    @field_validator("google_review_url")
    @classmethod
    def _validate_google(cls, v: str) -> str:
        issues = []
        if not v:
            issues.append("Google Review link is required")
        if not _is_url(v):
            issues.append("Please enter a valid URL")
        _raise_issues("url", issues)
        return v

    @field_validator("facebook_review_url", "yelp_review_url")
    @classmethod
    def _validate_optional_url(cls, v: str | None) -> str | None:
        if not v:
            return v
        return _check_url(v)


class OnboardingForm(ReviewLinksForm, BusinessInfoForm):
    """Complete profile submission: both wizard steps together."""


class BusinessProfileRead(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    user_id: int
    business_name: str
    phone: str | None = None
    email: str | None = None
    google_review_url: str | None = None
    facebook_review_url: str | None = None
    yelp_review_url: str | None = None
    onboarding_completed: bool
    created_at: datetime
    updated_at: datetime


def validation_details(exc: ValidationError) -> list[str]:
    """Flatten pydantic errors into ``"<field>: <message>"`` strings, one per failed rule."""
    details: list[str] = []
    for err in exc.errors(include_url=False):
        path = ".".join(str(part) for part in err.get("loc", ()))
        messages = (err.get("ctx") or {}).get("issues") or [err.get("msg", "Invalid value")]
        for msg in messages:
            details.append(f"{path}: {msg}" if path else str(msg))
    return details
