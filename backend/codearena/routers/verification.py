import random

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from codearena.config import settings
from codearena.database import get_db
from codearena.schemas.verification import (
    LoginState,
    UserPrincipal,
    VerificationState,
    VerifyHandleRequest,
)
from codearena.services.challenge_issuer import get_rng, issue_challenge
from codearena.services.challenge_verifier import check_challenge
from codearena.services.clock import Clock, get_clock
from codearena.services.codeforces_client import CodeforcesClient, get_codeforces_client
from codearena.services.errors import VerificationError
from codearena.services.session_store import SessionVerificationStore

router = APIRouter()
logger = structlog.get_logger()


def get_store(request: Request) -> SessionVerificationStore:
    return SessionVerificationStore(request.session)


def _redirect(path: str) -> RedirectResponse:
    return RedirectResponse(path, status_code=303)


@router.get("/", response_model=dict[str, UserPrincipal | None])
async def home(store: SessionVerificationStore = Depends(get_store)):
    return {"user": store.current_user()}


@router.get("/login", response_model=LoginState)
async def login_state(store: SessionVerificationStore = Depends(get_store)):
    """
    Everything the login view shows: the challenge in progress, if any, and
    the pending flash message. The message is consumed by this call.
    """
    record = store.load()
    message, message_type = store.pop_flash()

    state = LoginState(
        verification_state=VerificationState.INITIAL,
        message=message,
        message_type=message_type,
        user=store.current_user(),
    )
    if record is not None and record.is_pending:
        state.verification_state = VerificationState.PENDING
        state.handle = record.handle
        state.problem_link = record.problem.link
        state.problem_name = record.problem.name
        state.expires_at = record.expires_at
    return state


@router.post("/verify-handle", status_code=303)
async def verify_handle(
    payload: VerifyHandleRequest | None = None,
    store: SessionVerificationStore = Depends(get_store),
    client: CodeforcesClient = Depends(get_codeforces_client),
    clock: Clock = Depends(get_clock),
    rng: random.Random = Depends(get_rng),
):
    """Issue a new verification challenge for the submitted handle."""
    handle = payload.handle if payload else None
    try:
        await issue_challenge(handle, store=store, client=client, clock=clock, rng=rng)
    except VerificationError as e:
        logger.info("verification_issue_rejected", reason=type(e).__name__)
        store.flash(e.message, e.severity)

    return _redirect(settings.login_path)


@router.post("/check-verification", status_code=303)
async def check_verification(
    store: SessionVerificationStore = Depends(get_store),
    client: CodeforcesClient = Depends(get_codeforces_client),
    clock: Clock = Depends(get_clock),
    db: Session = Depends(get_db),
):
    """
    Check the session's pending challenge against the handle's recent submissions.

    Redirects home once verified, back to the login view otherwise.
    """
    outcome = await check_challenge(store.load(), store=store, client=client, db=db, clock=clock)

    if outcome.is_verified:
        return _redirect(settings.home_path)

    store.flash(outcome.message, outcome.severity)
    return _redirect(settings.login_path)
