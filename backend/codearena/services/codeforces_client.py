"""Read-only client for the public Codeforces API."""

import httpx
import structlog
from pydantic import ValidationError

from codearena.config import Settings, settings
from codearena.schemas.verification import ChallengeProblem, Submission

logger = structlog.get_logger()


class CodeforcesAPIError(Exception):
    """A Codeforces API call did not produce a usable result."""


class CodeforcesUnavailableError(CodeforcesAPIError):
    """Timeout, transport failure, or a response that is not a valid envelope."""


class CodeforcesRequestFailed(CodeforcesAPIError):
    """The API answered with status FAILED."""

    def __init__(self, method: str, comment: str) -> None:
        self.method = method
        self.comment = comment
        super().__init__(f"{method}: {comment}")


class CodeforcesClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, config: Settings) -> "CodeforcesClient":
        return cls(config.codeforces_api_base, timeout=config.codeforces_timeout_seconds)

    async def _call(self, method: str, params: dict | None = None):
        """Call an API method and return the ``result`` of an OK envelope."""
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(f"/{method}", params=params)
        except httpx.TimeoutException as e:
            raise CodeforcesUnavailableError(f"{method}: timed out") from e
        except httpx.RequestError as e:
            raise CodeforcesUnavailableError(f"{method}: {e}") from e

        # FAILED envelopes come back with 4xx statuses, so parse before checking
        try:
            envelope = response.json()
        except ValueError as e:
            raise CodeforcesUnavailableError(
                f"{method}: non-JSON response (HTTP {response.status_code})"
            ) from e

        if not isinstance(envelope, dict) or "status" not in envelope:
            raise CodeforcesUnavailableError(f"{method}: malformed envelope")

        if envelope["status"] != "OK":
            raise CodeforcesRequestFailed(method, str(envelope.get("comment", "")))

        if "result" not in envelope:
            raise CodeforcesUnavailableError(f"{method}: envelope has no result")
        return envelope["result"]

    async def lookup_account(self, handle: str) -> str | None:
        """
        Return the canonical spelling of ``handle`` if it names exactly one account.

        Handles are case-insensitive on Codeforces. user.info splits its
        argument on ";", so a claim naming several accounts resolves to None.
        """
        try:
            result = await self._call("user.info", {"handles": handle})
        except CodeforcesRequestFailed as e:
            if "not found" in e.comment.lower():
                return None
            raise

        if not isinstance(result, list) or len(result) != 1:
            return None
        account = result[0]
        canonical = account.get("handle") if isinstance(account, dict) else None
        if not isinstance(canonical, str) or canonical.lower() != handle.lower():
            return None
        return canonical

    async def fetch_catalog(self) -> list[ChallengeProblem]:
        """Fetch every problem in the problemset."""
        result = await self._call("problemset.problems")
        try:
            raw_problems = result["problems"]
        except (KeyError, TypeError) as e:
            raise CodeforcesUnavailableError("problemset.problems: missing problems") from e

        problems = []
        try:
            for raw in raw_problems:
                if raw.get("contestId") is None or not raw.get("index"):
                    continue
                problems.append(
                    ChallengeProblem(
                        contest_id=raw["contestId"],
                        index=raw["index"],
                        name=raw.get("name", ""),
                        rating=raw.get("rating"),
                    )
                )
        except (AttributeError, TypeError, ValidationError) as e:
            raise CodeforcesUnavailableError("problemset.problems: malformed problem") from e
        return problems

    async def fetch_recent_submissions(self, handle: str, limit: int) -> list[Submission]:
        """Fetch the ``limit`` most recent submissions of a handle, newest first."""
        result = await self._call("user.status", {"handle": handle, "from": 1, "count": limit})
        if not isinstance(result, list):
            raise CodeforcesUnavailableError("user.status: result is not a list")

        submissions = []
        try:
            for raw in result:
                problem = raw.get("problem") or {}
                if "creationTimeSeconds" not in raw or "index" not in problem:
                    logger.debug("codeforces_submission_skipped", submission_id=raw.get("id"))
                    continue
                submissions.append(
                    Submission(
                        contest_id=problem.get("contestId"),
                        index=problem["index"],
                        verdict=raw.get("verdict"),
                        creation_time_seconds=raw["creationTimeSeconds"],
                    )
                )
        except (AttributeError, TypeError, ValidationError) as e:
            raise CodeforcesUnavailableError("user.status: malformed submission") from e
        return submissions


def get_codeforces_client() -> CodeforcesClient:
    """Dependency for FastAPI endpoints to get a Codeforces client."""
    return CodeforcesClient.from_settings(settings)
