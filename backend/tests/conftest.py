import random
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import codearena.main as main_module
from codearena.database import Base, get_db
from codearena.main import app
from codearena.schemas.verification import ChallengeProblem, Submission
from codearena.services.challenge_issuer import get_rng
from codearena.services.clock import get_clock
from codearena.services.codeforces_client import get_codeforces_client
from codearena.services.session_store import SessionVerificationStore
from tests.test_utils import utc_from_timestamp


class FakeClock:
    """Settable stand-in for the wall clock."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


class FakeCodeforcesClient:
    """
    In-memory Codeforces API.

    Set ``*_error`` to an exception instance to make the matching call fail.
    """

    def __init__(self):
        self.accounts: set[str] = set()
        self.catalog: list[ChallengeProblem] = []
        self.submissions: dict[str, list[Submission]] = {}
        self.lookup_error: Exception | None = None
        self.catalog_error: Exception | None = None
        self.feed_error: Exception | None = None
        self.feed_calls: list[tuple[str, int]] = []

    async def lookup_account(self, handle: str) -> str | None:
        if self.lookup_error:
            raise self.lookup_error
        matches = [account for account in self.accounts if account.lower() == handle.lower()]
        return matches[0] if len(matches) == 1 else None

    async def fetch_catalog(self) -> list[ChallengeProblem]:
        if self.catalog_error:
            raise self.catalog_error
        return list(self.catalog)

    async def fetch_recent_submissions(self, handle: str, limit: int) -> list[Submission]:
        self.feed_calls.append((handle, limit))
        if self.feed_error:
            raise self.feed_error
        return self.submissions.get(handle, [])[:limit]


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FakeClock(utc_from_timestamp(1000))


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def session_data():
    return {}


@pytest.fixture
def store(session_data):
    return SessionVerificationStore(session_data)


@pytest.fixture
def codeforces():
    fake = FakeCodeforcesClient()
    fake.accounts = {"alice", "tourist"}
    fake.catalog = [
        ChallengeProblem(contest_id=1500, index="A", name="Prison Break", rating=800),
        ChallengeProblem(contest_id=1600, index="B", name="Hard One", rating=2400),
        ChallengeProblem(contest_id=1700, index="C", name="Unrated", rating=None),
    ]
    return fake


@pytest.fixture
def client(db_session, codeforces, clock, rng):
    """Create a test client backed by the test database and the fake Codeforces API."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_codeforces_client] = lambda: codeforces
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_rng] = lambda: rng

    # check_database_tables() at startup should see the test database
    original_engine = main_module.engine
    main_module.engine = db_session.get_bind()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    main_module.engine = original_engine
