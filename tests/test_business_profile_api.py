from __future__ import annotations

from revvio.database import SessionLocal
from revvio.models.business_profile import BusinessProfile
from revvio.routers import business_profile as business_profile_router


PROFILE_URL = "/api/business/profile"


def _register_and_login(client, email: str, password: str = "SecretPass123") -> str:
    r = client.post("/auth/register", json={"email": email, "password": password})
    assert r.status_code == 201
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200
    client.cookies.clear()
    return r.json()["access_token"]


def _auth(client, email: str = "owner@example.org") -> dict[str, str]:
    token = _register_and_login(client, email)
    return {"Authorization": f"Bearer {token}"}


def test_get_before_submission_is_404(client) -> None:
    headers = _auth(client)
    r = client.get(PROFILE_URL, headers=headers)
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Business profile not found"}


def test_first_submission_creates_profile(client, valid_payload) -> None:
    headers = _auth(client)
    r = client.post(PROFILE_URL, json=valid_payload, headers=headers)
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Business profile created successfully"
    data = body["data"]
    assert data["businessName"] == "Acme Bakery"
    assert data["phone"] == "(555) 123-4567"
    assert data["googleReviewUrl"] == valid_payload["googleReviewUrl"]
    assert data["facebookReviewUrl"] == valid_payload["facebookReviewUrl"]
    assert data["yelpReviewUrl"] is None
    assert data["onboardingCompleted"] is True
    assert data["createdAt"] and data["updatedAt"]

    r = client.get(PROFILE_URL, headers=headers)
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": data}


def test_second_submission_fully_replaces_profile(client, valid_payload) -> None:
    headers = _auth(client)
    first = client.post(PROFILE_URL, json=valid_payload, headers=headers).json()["data"]

    resubmission = dict(valid_payload, businessName="Acme Bakery & Cafe")
    del resubmission["facebookReviewUrl"]
    r = client.post(PROFILE_URL, json=resubmission, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Business profile updated successfully"
    data = body["data"]
    assert data["id"] == first["id"]
    assert data["businessName"] == "Acme Bakery & Cafe"
    # Omitted optional link reverts to empty: full replace, not merge.
    assert data["facebookReviewUrl"] is None
    assert data["createdAt"] == first["createdAt"]

    with SessionLocal() as db:
        rows = db.query(BusinessProfile).all()
        assert len(rows) == 1
        assert rows[0].facebook_review_url is None


def test_identical_resubmission_only_moves_updated_at(client, valid_payload) -> None:
    headers = _auth(client)
    first = client.post(PROFILE_URL, json=valid_payload, headers=headers).json()["data"]
    r = client.post(PROFILE_URL, json=valid_payload, headers=headers)
    assert r.status_code == 200
    second = r.json()["data"]

    assert second["updatedAt"] != first["updatedAt"]
    first.pop("updatedAt")
    second.pop("updatedAt")
    assert first == second


def test_invalid_email_is_400_with_details(client, valid_payload) -> None:
    headers = _auth(client)
    r = client.post(PROFILE_URL, json=dict(valid_payload, email="not-an-email"), headers=headers)
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert any(d.startswith("email:") for d in body["details"])


def test_empty_google_url_is_rejected(client, valid_payload) -> None:
    headers = _auth(client)
    r = client.post(PROFILE_URL, json=dict(valid_payload, googleReviewUrl=""), headers=headers)
    assert r.status_code == 400
    assert "googleReviewUrl: Google Review link is required" in r.json()["details"]


def test_empty_facebook_url_is_accepted(client, valid_payload) -> None:
    headers = _auth(client)
    r = client.post(PROFILE_URL, json=dict(valid_payload, facebookReviewUrl=""), headers=headers)
    assert r.status_code == 201
    assert r.json()["data"]["facebookReviewUrl"] is None


def test_missing_fields_are_listed(client) -> None:
    headers = _auth(client)
    r = client.post(PROFILE_URL, json={"businessName": "Acme"}, headers=headers)
    assert r.status_code == 400
    details = r.json()["details"]
    assert "phone: Field required" in details
    assert "email: Field required" in details
    assert "googleReviewUrl: Field required" in details


def test_invalid_json_body_is_400(client) -> None:
    headers = _auth(client)
    r = client.post(
        PROFILE_URL,
        content=b"{not json",
        headers={**headers, "Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Invalid JSON in request body"}


def test_profiles_are_isolated_per_user(client, valid_payload) -> None:
    alice = _auth(client, "alice@example.org")
    bob = _auth(client, "bob@example.org")

    assert client.post(PROFILE_URL, json=valid_payload, headers=alice).status_code == 201
    assert client.get(PROFILE_URL, headers=bob).status_code == 404
    r = client.post(PROFILE_URL, json=dict(valid_payload, businessName="Bob's Bikes"), headers=bob)
    assert r.status_code == 201
    assert client.get(PROFILE_URL, headers=alice).json()["data"]["businessName"] == "Acme Bakery"


def test_unauthenticated_requests_never_reach_the_store(client, valid_payload, monkeypatch) -> None:
    def _fail(*args, **kwargs):
        raise AssertionError("store accessed without a session")

    monkeypatch.setattr(business_profile_router, "get_business_profile", _fail)
    monkeypatch.setattr(business_profile_router, "upsert_business_profile", _fail)

    r = client.get(PROFILE_URL)
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Unauthorized. Please sign in."}

    r = client.post(PROFILE_URL, json=valid_payload)
    assert r.status_code == 401

    r = client.post(PROFILE_URL, json=valid_payload, headers={"Authorization": "Bearer forged.token.value"})
    assert r.status_code == 401


def test_unauthenticated_check_precedes_json_parsing(client) -> None:
    r = client.post(PROFILE_URL, content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 401


def test_unexpected_store_failure_is_500(client, valid_payload, monkeypatch) -> None:
    headers = _auth(client)

    def _boom(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(business_profile_router, "upsert_business_profile", _boom)
    r = client.post(PROFILE_URL, json=valid_payload, headers=headers)
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "Internal server error while processing your request"}


def test_conflict_from_store_is_409(client, valid_payload, monkeypatch) -> None:
    from revvio.errors import ProfileConflictError

    headers = _auth(client)

    def _conflict(*args, **kwargs):
        raise ProfileConflictError("duplicate")

    monkeypatch.setattr(business_profile_router, "upsert_business_profile", _conflict)
    r = client.post(PROFILE_URL, json=valid_payload, headers=headers)
    assert r.status_code == 409
    assert r.json()["error"] == "A business profile already exists for this user"


def test_compact_profile_endpoint(client, valid_payload) -> None:
    assert client.get("/api/business-profile").json() is None

    headers = _auth(client)
    assert client.get("/api/business-profile", headers=headers).json() is None

    client.post(PROFILE_URL, json=valid_payload, headers=headers)
    body = client.get("/api/business-profile", headers=headers).json()
    assert body["businessName"] == "Acme Bakery"
    assert body["onboardingCompleted"] is True


def test_database_failure_during_session_lookup_is_500(client, valid_payload, monkeypatch) -> None:
    from sqlalchemy.exc import OperationalError

    from revvio.routers import dependencies

    headers = _auth(client)

    def _down(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is unavailable"))

    monkeypatch.setattr(dependencies, "get_active_user", _down)
    for r in (
        client.get(PROFILE_URL, headers=headers),
        client.post(PROFILE_URL, json=valid_payload, headers=headers),
    ):
        assert r.status_code == 500
        assert r.json() == {"success": False, "error": "Internal server error"}
