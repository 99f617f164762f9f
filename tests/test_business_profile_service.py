from __future__ import annotations

import threading

import pytest
from sqlalchemy.exc import IntegrityError

from revvio.database import SessionLocal
from revvio.errors import (
    InvalidUserReferenceError,
    ProfileConflictError,
    classify_integrity_error,
)
from revvio.models.business_profile import BusinessProfile
from revvio.models.user import User
from revvio.schemas.business import OnboardingForm
from revvio.services import business_profile_service
from revvio.services.business_profile_service import (
    get_business_profile,
    upsert_business_profile,
)


def _make_user(db, email: str = "owner@example.org") -> User:
    user = User(email=email, password_hash="x")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _form(**overrides) -> OnboardingForm:
    data = {
        "businessName": "Acme Bakery",
        "phone": "555-123-4567",
        "email": "owner@acmebakery.com",
        "googleReviewUrl": "https://g.page/r/acme-bakery/review",
        "facebookReviewUrl": "https://facebook.com/acmebakery",
        "yelpReviewUrl": "https://yelp.com/biz/acme-bakery",
    }
    data.update(overrides)
    return OnboardingForm.model_validate(data)


def test_upsert_creates_then_updates(db_session) -> None:
    user = _make_user(db_session)
    assert get_business_profile(db_session, user.id) is None

    created = upsert_business_profile(db_session, user.id, _form())
    assert created.created is True
    assert created.profile.user_id == user.id
    assert created.profile.onboarding_completed is True
    assert created.profile.yelp_review_url == "https://yelp.com/biz/acme-bakery"

    updated = upsert_business_profile(db_session, user.id, _form(businessName="Acme", yelpReviewUrl=""))
    assert updated.created is False
    assert updated.profile.id == created.profile.id
    assert updated.profile.business_name == "Acme"
    assert updated.profile.yelp_review_url is None
    assert updated.profile.updated_at > updated.profile.created_at
    # The first result keeps the data it wrote.
    assert created.profile.business_name == "Acme Bakery"

    assert db_session.query(BusinessProfile).count() == 1


def test_upsert_for_unknown_user_is_invalid_reference(db_session) -> None:
    with pytest.raises(InvalidUserReferenceError):
        upsert_business_profile(db_session, 9999, _form())
    assert db_session.query(BusinessProfile).count() == 0


def test_select_then_write_fallback_matches_upsert(db_session) -> None:
    user = _make_user(db_session)
    values = business_profile_service.build_profile_values(
        user.id, _form(), business_profile_service._utc_now()
    )
    profile_id = business_profile_service._select_then_write(db_session, values)
    db_session.commit()

    values = business_profile_service.build_profile_values(
        user.id, _form(phone="+15551234567"), business_profile_service._utc_now()
    )
    assert business_profile_service._select_then_write(db_session, values) == profile_id
    db_session.commit()
    assert get_business_profile(db_session, user.id).phone == "+15551234567"


def test_duplicate_profile_row_classifies_as_conflict(db_session) -> None:
    user = _make_user(db_session)
    db_session.add(BusinessProfile(user_id=user.id, business_name="First"))
    db_session.commit()

    db_session.add(BusinessProfile(user_id=user.id, business_name="Second"))
    with pytest.raises(IntegrityError) as excinfo:
        db_session.commit()
    db_session.rollback()

    assert isinstance(classify_integrity_error(excinfo.value), ProfileConflictError)


class _DriverError(Exception):
    pass


def _integrity_error(**attrs) -> IntegrityError:
    orig = _DriverError(*attrs.pop("args", ()))
    for key, value in attrs.items():
        setattr(orig, key, value)
    return IntegrityError("INSERT ...", {}, orig)


@pytest.mark.parametrize(
    "attrs, expected",
    [
        ({"sqlstate": "23505"}, ProfileConflictError),
        ({"pgcode": "23503"}, InvalidUserReferenceError),
        ({"args": (1062, "Duplicate entry '1' for key 'user_id'")}, ProfileConflictError),
        ({"args": (1452, "Cannot add or update a child row")}, InvalidUserReferenceError),
        ({"sqlite_errorname": "SQLITE_CONSTRAINT_NOTNULL"}, type(None)),
    ],
)
def test_classification_uses_driver_codes(attrs, expected) -> None:
    assert isinstance(classify_integrity_error(_integrity_error(**attrs)), expected)


def test_classification_ignores_message_text() -> None:
    exc = _integrity_error(args=("duplicate key value violates unique constraint",))
    assert classify_integrity_error(exc) is None


def test_profile_owns_customers_and_review_requests(db_session) -> None:
    from revvio.models import Customer, ReviewRequest, ReviewRequestStatus, ReviewRequestType

    user = _make_user(db_session)
    upsert_business_profile(db_session, user.id, _form())
    profile = get_business_profile(db_session, user.id)

    customer = Customer(business_id=profile.id, name="Jane Doe", phone="555-987-6543")
    db_session.add(customer)
    db_session.flush()
    request = ReviewRequest(
        business_id=profile.id,
        customer_id=customer.id,
        type=ReviewRequestType.SMS.value,
        tracking_token="tok-1",
    )
    db_session.add(request)
    db_session.commit()
    db_session.refresh(profile)

    assert request.status == ReviewRequestStatus.PENDING.value
    assert [c.name for c in profile.customers] == ["Jane Doe"]
    assert profile.review_requests[0].customer is customer
    assert user.business_profile is profile


def test_concurrent_first_submissions_create_exactly_one_profile(db_session) -> None:
    user_id = _make_user(db_session).id
    workers = 8
    barrier = threading.Barrier(workers)
    results: list[bool] = []
    errors: list[BaseException] = []
    lock = threading.Lock()

    def submit(n: int) -> None:
        with SessionLocal() as db:
            barrier.wait()
            try:
                result = upsert_business_profile(db, user_id, _form(businessName=f"Acme {n}"))
            except BaseException as exc:
                with lock:
                    errors.append(exc)
                return
            with lock:
                results.append(result.created)

    threads = [threading.Thread(target=submit, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert len(results) == workers
    assert results.count(True) == 1
    assert db_session.query(BusinessProfile).filter(BusinessProfile.user_id == user_id).count() == 1
