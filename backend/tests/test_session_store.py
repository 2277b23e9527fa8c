"""Tests for the session-backed verification store and the record invariants."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from codearena.schemas.verification import (
    ChallengeProblem,
    UserPrincipal,
    VerificationRecord,
    VerificationState,
)
from codearena.services.session_store import RECORD_KEY
from tests.test_utils import utc_from_timestamp

PROBLEM = ChallengeProblem(contest_id=1500, index="A", name="Prison Break", rating=800)


def pending_record(**overrides):
    issued_at = utc_from_timestamp(1000)
    fields = {
        "state": VerificationState.PENDING,
        "handle": "alice",
        "problem": PROBLEM,
        "issued_at": issued_at,
        "expires_at": issued_at + timedelta(seconds=150),
    }
    fields.update(overrides)
    return VerificationRecord(**fields)


class TestVerificationRecord:
    def test_pending_requires_problem(self):
        """Test that a pending record must name a problem."""
        with pytest.raises(ValidationError):
            pending_record(problem=None)

    def test_initial_rejects_problem(self):
        """Test that an initial record cannot carry a problem."""
        with pytest.raises(ValidationError):
            pending_record(state=VerificationState.INITIAL)

    def test_expiry_must_follow_issue(self):
        """Test that the window cannot be empty."""
        issued_at = utc_from_timestamp(1000)
        with pytest.raises(ValidationError):
            pending_record(expires_at=issued_at)

    def test_is_expired_only_after_deadline(self):
        """Test that expiry is strictly after the deadline."""
        record = pending_record()
        assert not record.is_expired(record.expires_at)
        assert record.is_expired(record.expires_at + timedelta(seconds=1))


class TestSessionVerificationStore:
    def test_empty_session_has_no_record(self, store):
        """Test loading from a fresh session."""
        assert store.load() is None

    def test_save_and_load(self, store, session_data):
        """Test that a saved record round-trips through the session."""
        record = pending_record()
        store.save(record)

        assert isinstance(session_data[RECORD_KEY]["issued_at"], str)
        assert session_data[RECORD_KEY]["problem"]["link"].endswith("/1500/A")
        assert store.load() == record

    def test_save_overwrites(self, store):
        """Test that saving replaces the previous record."""
        store.save(pending_record())
        replacement = pending_record(handle="tourist")
        store.save(replacement)
        assert store.load() == replacement

    def test_clear(self, store):
        """Test that clearing is idempotent."""
        store.save(pending_record())
        store.clear()
        store.clear()
        assert store.load() is None

    def test_corrupt_record_loads_as_none(self, store, session_data):
        """Test that an invalid stored record is treated as absent."""
        session_data[RECORD_KEY] = {"state": "pending", "handle": "alice"}
        assert store.load() is None

    def test_flash_is_consumed(self, store):
        """Test that a flash message is shown only once."""
        store.flash("Verification time expired. Please try again.", "danger")

        assert store.pop_flash() == ("Verification time expired. Please try again.", "danger")
        assert store.pop_flash() == (None, None)

    def test_login(self, store, session_data):
        """Test storing the verified principal."""
        assert store.current_user() is None

        store.login(UserPrincipal(handle="alice"))

        assert session_data["user"] == {"handle": "alice", "verified": True}
        assert store.current_user() == UserPrincipal(handle="alice", verified=True)
