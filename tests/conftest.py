"""Pytest configuration and fixtures for the guided intake engine."""

import asyncio
import itertools
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from intake.exceptions import DraftNotFoundError, DraftTransportError
from intake.main import app, get_database_session, limiter
from intake.models.database import (
    create_database_engine,
    create_tables,
    get_session_maker,
)
from intake.services.draft_service import DraftPersistenceManager
from intake.services.identity_store import InMemoryIdentityStore
from intake.services.navigation_service import IntakeSession
from intake.services.step_registry import (
    AGENT_APPLICATION,
    FULL_APPLICATION,
    FUNDING_QUIZ,
)


class FakeDraftBackend:
    """In-memory DraftBackend that records every call.

    ``fail_next`` makes the next create/update raise a transport error, and
    ``gate`` (an ``asyncio.Event``) holds writes until the test releases it.
    """

    def __init__(self):
        self.records: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str | None, dict[str, Any] | None]] = []
        self.fail_next = 0
        self.gate: asyncio.Event | None = None
        self._ids = itertools.count(1)

    async def _write_gate(self):
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next -= 1
            raise DraftTransportError("backend unavailable", status_code=503)

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("create", None, dict(payload)))
        await self._write_gate()
        identity = f"draft-{next(self._ids)}"
        self.records[identity] = {"id": identity, **payload}
        return self.records[identity]

    async def update(self, identity: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("update", identity, dict(payload)))
        await self._write_gate()
        if identity not in self.records:
            raise DraftNotFoundError(identity)
        self.records[identity].update(payload)
        return self.records[identity]

    async def read(self, identity: str) -> dict[str, Any]:
        self.calls.append(("read", identity, None))
        if identity not in self.records:
            raise DraftNotFoundError(identity)
        return dict(self.records[identity])

    def writes(self) -> list[tuple[str, str | None, dict[str, Any] | None]]:
        return [call for call in self.calls if call[0] != "read"]


@pytest.fixture
def backend() -> FakeDraftBackend:
    return FakeDraftBackend()


@pytest.fixture
def identity_store() -> InMemoryIdentityStore:
    return InMemoryIdentityStore()


def make_session(variant, backend, identity_store, **kwargs) -> IntakeSession:
    persistence = DraftPersistenceManager(variant, backend, identity_store)
    return IntakeSession(persistence, **kwargs)


@pytest.fixture
def session_factory():
    return make_session


@pytest.fixture
def full_session(backend, identity_store) -> IntakeSession:
    return make_session(FULL_APPLICATION, backend, identity_store)


@pytest.fixture
def agent_session(backend, identity_store) -> IntakeSession:
    return make_session(AGENT_APPLICATION, backend, identity_store)


@pytest.fixture
def quiz_session(backend, identity_store) -> IntakeSession:
    return make_session(FUNDING_QUIZ, backend, identity_store)


@pytest.fixture
def full_application_answers() -> list[dict[str, Any]]:
    """Valid raw input for each full-application step, in order."""
    return [
        {"legal_business_name": "Acme Plumbing LLC", "doing_business_as": "Acme"},
        {"company_email": "office@acmeplumbing.com", "company_website": ""},
        {"business_start_date": "2019-04-01", "state_of_incorporation": "tx"},
        {"ein": "123456789", "do_you_process_credit_cards": "yes"},
        {"industry": "Construction"},
        {
            "business_street": "100 Congress Ave",
            "business_unit": "Suite 200",
            "business_city": "Austin",
            "business_state": "TX",
            "business_zip": "78701",
        },
        {"requested_loan_amount": "75000", "mca_balance_amount": ""},
        {
            "full_name": "Dana Smith",
            "email": "dana@acmeplumbing.com",
            "phone": "5125550100",
            "ownership_percentage": "100",
        },
        {
            "social_security": "123456789",
            "date_of_birth": "1980-02-03",
            "personal_credit_score_range": "700",
        },
        {
            "owner_street": "12 Elm St",
            "owner_city": "Austin",
            "owner_state": "TX",
            "owner_zip": "78702",
        },
    ]


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite shared across connections."""
    engine = create_database_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(sqlite_engine):
    session = get_session_maker(sqlite_engine)()
    yield session
    session.close()


@pytest_asyncio.fixture
async def client(sqlite_engine) -> AsyncClient:
    """Create an HTTP client for testing the API."""
    SessionLocal = get_session_maker(sqlite_engine)

    def override_session():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_database_session] = override_session
    if limiter is not None:
        limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    if limiter is not None:
        limiter.enabled = True
