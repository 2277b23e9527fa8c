import random
from collections.abc import Sequence
from datetime import timedelta

import structlog

from codearena.config import settings
from codearena.schemas.verification import ChallengeProblem, VerificationRecord, VerificationState
from codearena.services.clock import Clock, utcnow
from codearena.services.codeforces_client import CodeforcesAPIError, CodeforcesClient
from codearena.services.errors import (
    CatalogUnavailable,
    EmptyHandle,
    NoEligibleProblems,
    UnknownHandle,
)
from codearena.services.session_store import SessionVerificationStore

logger = structlog.get_logger()

_rng = random.Random()


def get_rng() -> random.Random:
    """Dependency for FastAPI endpoints to get the problem selection random source."""
    return _rng


def eligible_problems(
    problems: Sequence[ChallengeProblem], max_rating: int
) -> list[ChallengeProblem]:
    """Problems with a known rating no higher than ``max_rating``."""
    return [p for p in problems if p.rating is not None and p.rating <= max_rating]


def select_challenge_problem(
    problems: Sequence[ChallengeProblem],
    rng: random.Random,
    max_rating: int,
) -> ChallengeProblem:
    pool = eligible_problems(problems, max_rating)
    if not pool:
        raise NoEligibleProblems()
    return rng.choice(pool)


async def issue_challenge(
    handle: str | None,
    *,
    store: SessionVerificationStore,
    client: CodeforcesClient,
    clock: Clock = utcnow,
    rng: random.Random = _rng,
) -> VerificationRecord:
    """
    Start a handle verification: pick a challenge problem and record it as pending.

    Any record already in the session is replaced. Raises a VerificationError
    subclass when no challenge can be issued; the session is left untouched
    in that case.
    """
    handle = (handle or "").strip()
    if not handle:
        raise EmptyHandle()

    try:
        canonical = await client.lookup_account(handle)
    except CodeforcesAPIError as e:
        logger.warning("handle_lookup_failed", handle=handle, error=str(e))
        raise UnknownHandle() from e
    if canonical is None:
        logger.info("handle_not_found", handle=handle)
        raise UnknownHandle()
    handle = canonical

    try:
        catalog = await client.fetch_catalog()
    except CodeforcesAPIError as e:
        logger.warning("problem_catalog_unavailable", error=str(e))
        raise CatalogUnavailable() from e

    try:
        problem = select_challenge_problem(catalog, rng, settings.max_challenge_rating)
    except NoEligibleProblems:
        logger.error(
            "no_eligible_challenge_problems",
            catalog_size=len(catalog),
            max_rating=settings.max_challenge_rating,
        )
        raise

    issued_at = clock()
    record = VerificationRecord(
        state=VerificationState.PENDING,
        handle=handle,
        problem=problem,
        issued_at=issued_at,
        expires_at=issued_at + timedelta(seconds=settings.verification_window_seconds),
    )
    store.save(record)

    logger.info(
        "verification_challenge_issued",
        handle=handle,
        contest_id=problem.contest_id,
        index=problem.index,
        expires_at=record.expires_at.isoformat(),
    )
    return record
