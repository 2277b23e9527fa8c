from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Get current UTC time as naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def get_clock() -> Clock:
    """Dependency for FastAPI endpoints to get the current-time source."""
    return utcnow
