"""Failures of the handle verification flow, each carrying its user-facing message."""

DANGER = "danger"
WARNING = "warning"


class VerificationError(Exception):
    message = "An error occurred. Please try again."
    severity = DANGER

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class EmptyHandle(VerificationError):
    message = "Please enter a valid CodeForces handle"


class UnknownHandle(VerificationError):
    message = "Invalid CodeForces handle. Please try again."


class CatalogUnavailable(VerificationError):
    message = "Failed to fetch problems. Please try again later."


class NoEligibleProblems(VerificationError):
    message = "No suitable verification problem is available right now. Please try again later."
