"""
Tests for the calendar sync engine against in-memory repositories and a
scripted provider.
"""

from datetime import timedelta

import pytest

from app.config import settings
from app.features.calendar_sync.domain import SyncState
from app.features.calendar_sync.services.sync_service import CalendarSyncService
from app.models.domain.errors import UserNotFoundError
from app.services.calendar.google_client import (
    ProviderAuthError,
    ProviderTransientError,
    SyncTokenInvalidError,
)
from tests.fakes import NOW, fixed_clock, google_event


@pytest.fixture
def service(calendar_client, users, tokens, sync_states, events, accounts, next_call_dates):
    accounts.add("acc-acme", "org-1", "https://www.acme.com", [("opp-1", "Acme Renewal")])
    return CalendarSyncService(
        provider_clients={"google": calendar_client},
        users=users,
        tokens=tokens,
        sync_states=sync_states,
        events=events,
        accounts=accounts,
        next_call_dates=next_call_dates,
        clock=fixed_clock(),
    )


@pytest.mark.asyncio
async def test_first_run_is_full_sync_and_stores_sync_token(
    service, calendar_client, events, sync_states, next_call_dates
):
    calendar_client.add_page(
        [
            google_event("g-1", ["rep@seller.io", "buyer@acme.com"]),
            google_event("g-2", ["rep@seller.io", "peer@seller.io"]),
        ],
        next_sync_token="sync-1",
    )

    result = await service.sync("user-123")

    assert (result.created, result.updated, result.deleted, result.matched) == (2, 0, 0, 1)
    assert result.errors == []

    request = calendar_client.requests[0]
    assert request["sync_token"] is None
    assert request["time_min"] == NOW - timedelta(days=settings.SYNC_WINDOW_PAST_DAYS)
    assert request["time_max"] == NOW + timedelta(days=settings.SYNC_WINDOW_FUTURE_DAYS)

    linked = events.find("user-123", "g-1")
    assert linked["account_id"] == "acc-acme"
    assert linked["opportunity_id"] == "opp-1"
    assert linked["is_external"] is True
    assert events.find("user-123", "g-2")["is_external"] is False

    state = sync_states.states[("user-123", "google")]
    assert state.sync_token == "sync-1"
    assert state.page_token is None
    assert state.last_status == "success"
    assert next_call_dates.recalculated == {"opp-1"}


@pytest.mark.asyncio
async def test_incremental_run_uses_stored_sync_token(
    service, calendar_client, events, sync_states
):
    sync_states.states[("user-123", "google")] = SyncState("user-123", "google", sync_token="sync-1")
    events.add("user-123", "g-1", ["buyer@acme.com"], account_id="acc-acme", opportunity_id="opp-1")
    calendar_client.add_page(
        [google_event("g-1", ["rep@seller.io", "buyer@acme.com"], summary="Renamed")],
        sync_token="sync-1",
        next_sync_token="sync-2",
    )

    result = await service.sync("user-123")

    assert (result.created, result.updated) == (0, 1)
    assert calendar_client.requests[0]["time_min"] is None
    assert events.find("user-123", "g-1")["title"] == "Renamed"
    assert sync_states.states[("user-123", "google")].sync_token == "sync-2"


@pytest.mark.asyncio
async def test_rejected_sync_token_falls_back_to_full_sync(service, calendar_client, sync_states):
    sync_states.states[("user-123", "google")] = SyncState("user-123", "google", sync_token="expired")
    calendar_client.add_error(SyncTokenInvalidError(), sync_token="expired")
    calendar_client.add_page([google_event("g-1", ["buyer@acme.com"])], next_sync_token="fresh")

    result = await service.sync("user-123")

    assert result.created == 1
    assert [r["sync_token"] for r in calendar_client.requests] == ["expired", None]
    assert calendar_client.requests[1]["time_min"] is not None
    assert sync_states.states[("user-123", "google")].sync_token == "fresh"


@pytest.mark.asyncio
async def test_cancelled_event_is_deleted(
    service, calendar_client, events, sync_states, next_call_dates
):
    sync_states.states[("user-123", "google")] = SyncState("user-123", "google", sync_token="sync-1")
    events.add("user-123", "g-1", ["buyer@acme.com"], account_id="acc-acme", opportunity_id="opp-1")
    calendar_client.add_page(
        [{"id": "g-1", "status": "cancelled"}], sync_token="sync-1", next_sync_token="sync-2"
    )

    result = await service.sync("user-123")

    assert result.deleted == 1
    assert events.find("user-123", "g-1") is None
    assert next_call_dates.recalculated == {"opp-1"}


@pytest.mark.asyncio
async def test_per_event_failure_is_collected_and_run_continues(
    service, calendar_client, events, sync_states
):
    events.fail_external_ids.add("g-bad")
    calendar_client.add_page(
        [
            google_event("g-bad", ["buyer@acme.com"]),
            google_event("g-good", ["buyer@acme.com"]),
        ],
        next_sync_token="sync-1",
    )

    result = await service.sync("user-123")

    assert result.created == 1
    assert len(result.errors) == 1
    assert result.errors[0]["event_id"] == "g-bad"
    assert events.find("user-123", "g-good") is not None
    assert sync_states.states[("user-123", "google")].last_status == "success"


@pytest.mark.asyncio
async def test_existing_links_are_never_replaced(service, calendar_client, events, sync_states):
    sync_states.states[("user-123", "google")] = SyncState("user-123", "google", sync_token="sync-1")
    events.add(
        "user-123", "g-1", ["buyer@acme.com"], account_id="acc-manual", opportunity_id="opp-manual"
    )
    calendar_client.add_page(
        [google_event("g-1", ["buyer@acme.com"])], sync_token="sync-1", next_sync_token="sync-2"
    )

    await service.sync("user-123")

    row = events.find("user-123", "g-1")
    assert (row["account_id"], row["opportunity_id"]) == ("acc-manual", "opp-manual")


@pytest.mark.asyncio
async def test_auth_failure_aborts_and_keeps_checkpoint(service, tokens, sync_states):
    sync_states.states[("user-123", "google")] = SyncState("user-123", "google", sync_token="sync-1")
    tokens.tokens.clear()

    with pytest.raises(ProviderAuthError):
        await service.sync("user-123")

    state = sync_states.states[("user-123", "google")]
    assert state.last_status == "error"
    assert state.last_error
    assert state.sync_token == "sync-1"


@pytest.mark.asyncio
async def test_transient_failure_aborts_run(service, calendar_client, sync_states):
    calendar_client.add_error(ProviderTransientError("Calendar provider unreachable"))

    with pytest.raises(ProviderTransientError):
        await service.sync("user-123")

    assert sync_states.states[("user-123", "google")].last_status == "error"


@pytest.mark.asyncio
async def test_unknown_user_raises(service):
    with pytest.raises(UserNotFoundError):
        await service.sync("nobody")


@pytest.mark.asyncio
async def test_full_sync_removes_events_no_longer_listed(
    service, calendar_client, events, next_call_dates
):
    events.add("user-123", "g-gone", ["buyer@acme.com"], account_id="acc-acme", opportunity_id="opp-1")
    events.add("user-123", "g-manual", ["buyer@acme.com"], source="manual")
    events.add("user-123", "g-old", ["buyer@acme.com"], start_time=NOW - timedelta(days=400))
    calendar_client.add_page([google_event("g-1", ["buyer@acme.com"])], next_sync_token="sync-1")

    result = await service.sync("user-123")

    assert result.deleted == 1
    assert events.find("user-123", "g-gone") is None
    assert events.find("user-123", "g-manual") is not None
    assert events.find("user-123", "g-old") is not None
    assert "opp-1" in next_call_dates.recalculated


@pytest.mark.asyncio
async def test_page_cap_saves_page_token_and_next_run_resumes(
    service, calendar_client, events, sync_states, monkeypatch
):
    monkeypatch.setattr(settings, "SYNC_MAX_PAGES", 1)
    events.add("user-123", "g-gone", ["buyer@acme.com"])
    calendar_client.add_page([google_event("g-1", ["buyer@acme.com"])], next_page_token="p2")
    calendar_client.add_page(
        [google_event("g-2", ["buyer@acme.com"])], page_token="p2", next_sync_token="sync-1"
    )

    first = await service.sync("user-123")

    state = sync_states.states[("user-123", "google")]
    assert first.created == 1
    assert state.page_token == "p2"
    assert state.sync_token is None

    second = await service.sync("user-123")

    state = sync_states.states[("user-123", "google")]
    assert second.created == 1
    assert calendar_client.requests[-1]["page_token"] == "p2"
    assert state.page_token is None
    assert state.sync_token == "sync-1"
    # A resumed run has not seen the whole window
    assert events.find("user-123", "g-gone") is not None


@pytest.mark.asyncio
async def test_sync_all_users_isolates_failures(service, tokens, users, calendar_client):
    users.add_user("user-456", "other@seller.io", "org-1")
    tokens.tokens["user-456"] = "token-456"
    calendar_client.add_page([], next_sync_token="sync-1")

    original = service.tokens.get_valid_access_token

    async def flaky_token(user_id, provider):
        if user_id == "user-456":
            raise ProviderAuthError("revoked")
        return await original(user_id, provider)

    service.tokens.get_valid_access_token = flaky_token

    summary = await service.sync_all_users()

    assert summary == {"users": 2, "succeeded": 1, "failed": 1}
