from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field, model_validator

from codearena.config import settings


def to_epoch_seconds(value: datetime) -> int:
    """Whole seconds since the epoch; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp())


class VerificationState(str, Enum):
    INITIAL = "initial"
    PENDING = "pending"


class ChallengeProblem(BaseModel):
    contest_id: int
    index: str
    name: str
    rating: int | None = None

    @computed_field
    @property
    def link(self) -> str:
        return f"{settings.codeforces_problem_base}/{self.contest_id}/{self.index}"


class Submission(BaseModel):
    contest_id: int | None
    index: str
    verdict: str | None = None  # absent while the submission is still queued
    creation_time_seconds: int


class VerificationRecord(BaseModel):
    """
    The per-session handle verification in flight.

    A record with a problem is always PENDING and vice versa. The window is
    fixed at issuance and never extended.
    """

    state: VerificationState = VerificationState.INITIAL
    handle: str = Field(..., min_length=1)
    problem: ChallengeProblem | None = None
    issued_at: datetime
    expires_at: datetime

    @model_validator(mode="after")
    def check_invariants(self) -> "VerificationRecord":
        if (self.problem is not None) != (self.state == VerificationState.PENDING):
            raise ValueError("problem must be set exactly when the record is pending")
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be after issued_at")
        return self

    @property
    def is_pending(self) -> bool:
        return self.state == VerificationState.PENDING

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class UserPrincipal(BaseModel):
    handle: str
    verified: bool = True


class VerifyHandleRequest(BaseModel):
    handle: str | None = None


class LoginState(BaseModel):
    verification_state: VerificationState
    handle: str | None = None
    problem_link: str | None = None
    problem_name: str | None = None
    expires_at: datetime | None = None
    message: str | None = None
    message_type: str | None = None
    user: UserPrincipal | None = None
