"""Tests for the correlation ID header on responses."""

from fastapi.testclient import TestClient

import codearena.main as main_module
from codearena.database import get_db
from codearena.main import app
from codearena.schemas.verification import Submission
from codearena.services.clock import get_clock
from codearena.services.codeforces_client import get_codeforces_client


def test_correlation_id_on_success(client):
    """Test that a successful response carries a correlation id."""
    response = client.get("/health")
    assert response.status_code == 200
    assert len(response.headers["X-Correlation-ID"]) == 8  # 4 bytes as hex


def test_correlation_id_on_redirect(client):
    """Test that a redirect carries a correlation id."""
    response = client.post("/check-verification", follow_redirects=False)
    assert response.status_code == 303
    assert len(response.headers["X-Correlation-ID"]) == 8


def test_correlation_id_on_validation_error(client):
    """Test that a rejected request body still gets a correlation id."""
    response = client.post("/verify-handle", json={"handle": 123})
    assert response.status_code == 422
    assert len(response.headers["X-Correlation-ID"]) == 8


def test_correlation_id_on_unhandled_exception(db_session, codeforces, clock, monkeypatch):
    """A failing directory write surfaces as a 500 that still carries the correlation ID."""
    from codearena.services import challenge_verifier

    def raise_error(*args, **kwargs):
        raise RuntimeError("Unexpected database error")

    monkeypatch.setattr(challenge_verifier, "upsert_verified_user", raise_error)
    codeforces.submissions["alice"] = [
        Submission(
            contest_id=1500, index="A", verdict="COMPILATION_ERROR", creation_time_seconds=1010
        )
    ]

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_codeforces_client] = lambda: codeforces
    app.dependency_overrides[get_clock] = lambda: clock
    original_engine = main_module.engine
    main_module.engine = db_session.get_bind()

    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            test_client.post("/verify-handle", json={"handle": "alice"}, follow_redirects=False)

            response = test_client.post("/check-verification", follow_redirects=False)

            assert response.status_code == 500
            assert len(response.headers["X-Correlation-ID"]) == 8
            assert response.json()["detail"] == "Internal Server Error"

            # The challenge survives the failed write
            assert test_client.get("/login").json()["verification_state"] == "pending"
    finally:
        app.dependency_overrides.clear()
        main_module.engine = original_engine


def test_correlation_ids_unique_across_requests(client):
    """Test that each request gets its own correlation id."""
    response1 = client.get("/health")
    response2 = client.get("/health")

    assert response1.headers["X-Correlation-ID"] != response2.headers["X-Correlation-ID"]
