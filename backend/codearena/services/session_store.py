from collections.abc import MutableMapping
from typing import Any

import structlog
from pydantic import ValidationError

from codearena.schemas.verification import UserPrincipal, VerificationRecord

logger = structlog.get_logger()

RECORD_KEY = "verification"
MESSAGE_KEY = "message"
MESSAGE_TYPE_KEY = "message_type"
USER_KEY = "user"


class SessionVerificationStore:
    """
    Per-session state of the handle verification flow.

    Wraps a session mapping (Starlette's ``request.session``, or a plain dict
    in tests). Values are stored JSON-ready so cookie-backed sessions work.
    """

    def __init__(self, session: MutableMapping[str, Any]) -> None:
        self._session = session

    def load(self) -> VerificationRecord | None:
        raw = self._session.get(RECORD_KEY)
        if raw is None:
            return None
        try:
            return VerificationRecord.model_validate(raw)
        except ValidationError:
            logger.warning("verification_record_invalid")
            return None

    def save(self, record: VerificationRecord) -> None:
        # Replaces whatever was there; one record per session
        self._session[RECORD_KEY] = record.model_dump(mode="json")

    def clear(self) -> None:
        self._session.pop(RECORD_KEY, None)

    def flash(self, message: str, severity: str) -> None:
        self._session[MESSAGE_KEY] = message
        self._session[MESSAGE_TYPE_KEY] = severity

    def pop_flash(self) -> tuple[str | None, str | None]:
        return self._session.pop(MESSAGE_KEY, None), self._session.pop(MESSAGE_TYPE_KEY, None)

    def login(self, principal: UserPrincipal) -> None:
        self._session[USER_KEY] = principal.model_dump()

    def current_user(self) -> UserPrincipal | None:
        raw = self._session.get(USER_KEY)
        return UserPrincipal.model_validate(raw) if raw else None
