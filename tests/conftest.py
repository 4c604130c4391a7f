import pytest

from app.auth.identity import auth_dependency
from tests.fakes import (
    FakeRedis,
    InMemoryAccountRepository,
    InMemoryCallRepository,
    InMemoryEventRepository,
    InMemoryOpportunityRepository,
    InMemorySyncStateRepository,
    InMemoryTokenRepository,
    InMemoryUserRepository,
    RecordingNextCallDates,
    ScriptedCalendarClient,
)


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def users():
    repo = InMemoryUserRepository()
    repo.add_organization("org-1", "seller.io")
    repo.add_user("user-123", "rep@seller.io", "org-1")
    return repo


@pytest.fixture
def tokens():
    repo = InMemoryTokenRepository()
    repo.tokens["user-123"] = "access-token"
    return repo


@pytest.fixture
def sync_states():
    return InMemorySyncStateRepository()


@pytest.fixture
def events(users):
    return InMemoryEventRepository(users)


@pytest.fixture
def accounts():
    return InMemoryAccountRepository()


@pytest.fixture
def opportunities():
    return InMemoryOpportunityRepository()


@pytest.fixture
def calls():
    return InMemoryCallRepository()


@pytest.fixture
def next_call_dates():
    return RecordingNextCallDates()


@pytest.fixture
def calendar_client():
    return ScriptedCalendarClient()
