from codearena.schemas.verification import (
    ChallengeProblem,
    LoginState,
    Submission,
    UserPrincipal,
    VerificationRecord,
    VerificationState,
    VerifyHandleRequest,
)

__all__ = [
    "ChallengeProblem",
    "LoginState",
    "Submission",
    "UserPrincipal",
    "VerificationRecord",
    "VerificationState",
    "VerifyHandleRequest",
]
