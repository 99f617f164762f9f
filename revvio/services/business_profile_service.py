from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from revvio.errors import classify_integrity_error
from revvio.models.business_profile import BusinessProfile
from revvio.schemas.business import BusinessProfileRead, OnboardingForm


logger = logging.getLogger(__name__)

# Columns replaced on every resubmission; created_at and user_id are never touched.
OVERWRITE_COLUMNS = (
    "business_name",
    "phone",
    "email",
    "google_review_url",
    "facebook_review_url",
    "yelp_review_url",
    "onboarding_completed",
    "updated_at",
)


@dataclass(frozen=True)
class UpsertResult:
    profile: BusinessProfileRead
    created: bool


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_profile_values(user_id: int, form: OnboardingForm, now: datetime) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "business_name": form.business_name,
        "phone": form.phone,
        "email": form.email,
        "google_review_url": form.google_review_url,
        # Empty optional links are stored as NULL.
        "facebook_review_url": form.facebook_review_url or None,
        "yelp_review_url": form.yelp_review_url or None,
        "onboarding_completed": True,
        "created_at": now,
        "updated_at": now,
    }


def get_business_profile(db: Session, user_id: int) -> BusinessProfile | None:
    return db.query(BusinessProfile).filter(BusinessProfile.user_id == user_id).first()


def _upsert_on_conflict(db: Session, dialect: str, values: dict[str, Any]) -> tuple[BusinessProfileRead, bool]:
    insert_fn = sqlite_insert if dialect == "sqlite" else pg_insert
    table = BusinessProfile.__table__
    stmt = insert_fn(table).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.user_id],
        set_={name: stmt.excluded[name] for name in OVERWRITE_COLUMNS},
    ).returning(*table.c)
    row = db.execute(stmt).one()
    # Insert stamps both timestamps with the same value; update only moves updated_at.
    return BusinessProfileRead.model_validate(row), row.created_at == row.updated_at


def _upsert_on_duplicate_key(db: Session, values: dict[str, Any]) -> tuple[BusinessProfileRead, bool]:
    table = BusinessProfile.__table__
    stmt = mysql_insert(table).values(**values)
    stmt = stmt.on_duplicate_key_update({name: stmt.inserted[name] for name in OVERWRITE_COLUMNS})
    # MySQL reports 1 affected row for an insert and 2 for an update.
    created = db.execute(stmt).rowcount == 1
    # The row stays locked by this transaction until commit.
    record = (
        db.query(BusinessProfile)
        .filter(BusinessProfile.user_id == values["user_id"])
        .populate_existing()
        .one()
    )
    return BusinessProfileRead.model_validate(record), created


def _select_then_write(db: Session, values: dict[str, Any]) -> tuple[BusinessProfileRead, bool]:
    # Not atomic; the unique index on user_id turns a lost race into a conflict.
    record = db.query(BusinessProfile).filter(BusinessProfile.user_id == values["user_id"]).first()
    created = record is None
    if created:
        record = BusinessProfile(**values)
        db.add(record)
    else:
        for name in OVERWRITE_COLUMNS:
            setattr(record, name, values[name])
    db.flush()
    return BusinessProfileRead.model_validate(record), created


def upsert_business_profile(db: Session, user_id: int, form: OnboardingForm) -> UpsertResult:
    """Create the caller's profile, or fully overwrite the existing one.

    A single INSERT ... ON CONFLICT / ON DUPLICATE KEY statement keyed on
    ``user_id`` does the write, and the returned profile and created flag are
    taken from that statement, so a concurrent resubmission committed right
    after this one cannot change what this caller is told. Integrity failures
    are re-raised as ``ProfileConflictError`` or ``InvalidUserReferenceError``
    based on the driver's error code; anything unrecognised propagates unchanged.
    """
    values = build_profile_values(user_id, form, _utc_now())
    dialect = db.get_bind().dialect.name
    try:
        if dialect in ("sqlite", "postgresql"):
            profile, created = _upsert_on_conflict(db, dialect, values)
        elif dialect in ("mysql", "mariadb"):
            profile, created = _upsert_on_duplicate_key(db, values)
        else:
            profile, created = _select_then_write(db, values)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        classified = classify_integrity_error(exc)
        if classified is None:
            raise
        logger.warning("business profile write rejected user_id=%s: %s", user_id, type(classified).__name__)
        raise classified from exc

    logger.info("business profile %s user_id=%s id=%s", "created" if created else "updated", user_id, profile.id)
    return UpsertResult(profile=profile, created=created)
