from __future__ import annotations

import os
from typing import Any

import pytest
from fastapi.testclient import TestClient


def pytest_configure() -> None:
    # Ensure the SQLAlchemy engine is created against sqlite for tests.
    os.environ["DB_URL"] = "sqlite:///./test.db"
    os.environ["ENVIRONMENT"] = "test"
    os.environ.setdefault("JWT_SECRET", "test-secret")


@pytest.fixture()
def reset_db() -> None:
    from revvio.database import Base, engine
    import revvio.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture()
def db_session(reset_db) -> Any:
    from revvio.database import SessionLocal

    with SessionLocal() as session:
        yield session


@pytest.fixture()
def client(reset_db) -> Any:
    from revvio.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def valid_payload() -> dict[str, str]:
    return {
        "businessName": "Acme Bakery",
        "phone": "(555) 123-4567",
        "email": "owner@acmebakery.com",
        "googleReviewUrl": "https://g.page/r/acme-bakery/review",
        "facebookReviewUrl": "https://facebook.com/acmebakery/reviews",
        "yelpReviewUrl": "",
    }

