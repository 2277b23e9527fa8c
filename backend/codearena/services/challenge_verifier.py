from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

import structlog
from sqlalchemy.orm import Session

from codearena.config import settings
from codearena.schemas.verification import (
    Submission,
    UserPrincipal,
    VerificationRecord,
    to_epoch_seconds,
)
from codearena.services.clock import Clock, utcnow
from codearena.services.codeforces_client import CodeforcesAPIError, CodeforcesClient
from codearena.services.errors import DANGER, WARNING
from codearena.services.session_store import SessionVerificationStore
from codearena.services.user_service import upsert_verified_user

logger = structlog.get_logger()


class OutcomeStatus(str, Enum):
    VERIFIED = "verified"
    NOT_YET_SATISFIED = "not_yet_satisfied"
    NO_ACTIVE_CHALLENGE = "no_active_challenge"
    EXPIRED = "expired"
    FEED_UNAVAILABLE = "feed_unavailable"


_MESSAGES = {
    OutcomeStatus.VERIFIED: ("Your handle has been verified.", None),
    OutcomeStatus.NOT_YET_SATISFIED: (
        "Compilation error submission not found. "
        "Make sure you submitted to the correct problem.",
        WARNING,
    ),
    OutcomeStatus.NO_ACTIVE_CHALLENGE: (
        "No verification in progress. Please start over.",
        DANGER,
    ),
    OutcomeStatus.EXPIRED: ("Verification time expired. Please try again.", DANGER),
    OutcomeStatus.FEED_UNAVAILABLE: (
        "Could not fetch your submissions. Please try again.",
        DANGER,
    ),
}


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    status: OutcomeStatus
    principal: UserPrincipal | None = None

    @property
    def message(self) -> str:
        return _MESSAGES[self.status][0]

    @property
    def severity(self) -> str | None:
        return _MESSAGES[self.status][1]

    @property
    def is_verified(self) -> bool:
        return self.status == OutcomeStatus.VERIFIED


def find_qualifying_submission(
    submissions: Iterable[Submission],
    record: VerificationRecord,
    verdict: str,
) -> Submission | None:
    """
    Return the first submission proving control of ``record.handle``, if any.

    It must target the challenge problem, carry the sentinel verdict, and be
    made no earlier than the second the challenge was issued.
    """
    problem = record.problem
    if problem is None:
        return None
    issued_second = to_epoch_seconds(record.issued_at)

    for submission in submissions:
        if (
            submission.contest_id == problem.contest_id
            and submission.index == problem.index
            and submission.verdict == verdict
            and submission.creation_time_seconds >= issued_second
        ):
            return submission
    return None


async def check_challenge(
    record: VerificationRecord | None,
    *,
    store: SessionVerificationStore,
    client: CodeforcesClient,
    db: Session,
    clock: Clock = utcnow,
) -> VerificationOutcome:
    """
    Check whether the pending challenge in ``record`` has been fulfilled.

    Safe to call repeatedly: only VERIFIED, EXPIRED and NO_ACTIVE_CHALLENGE
    change the session, and the feed is never queried for an expired record.
    """
    if record is None or not record.is_pending:
        store.clear()
        return VerificationOutcome(OutcomeStatus.NO_ACTIVE_CHALLENGE)

    log = logger.bind(handle=record.handle)

    if record.is_expired(clock()):
        store.clear()
        log.info("verification_expired", expires_at=record.expires_at.isoformat())
        return VerificationOutcome(OutcomeStatus.EXPIRED)

    try:
        submissions = await client.fetch_recent_submissions(
            record.handle, settings.submission_lookback
        )
    except CodeforcesAPIError as e:
        log.warning("submission_feed_unavailable", error=str(e))
        return VerificationOutcome(OutcomeStatus.FEED_UNAVAILABLE)

    match = find_qualifying_submission(submissions, record, settings.challenge_verdict)
    if match is None:
        log.info("verification_not_yet_satisfied", submissions_checked=len(submissions))
        return VerificationOutcome(OutcomeStatus.NOT_YET_SATISFIED)

    # A failed directory write must leave the pending record in place
    upsert_verified_user(db, record.handle)
    principal = UserPrincipal(handle=record.handle, verified=True)
    store.clear()
    store.login(principal)

    log.info("handle_verified", submitted_at=match.creation_time_seconds)
    return VerificationOutcome(OutcomeStatus.VERIFIED, principal=principal)
