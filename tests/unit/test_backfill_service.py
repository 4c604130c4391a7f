"""
Tests for account backfill after a website change.
"""

import pytest

from app.features.calendar_sync.services.backfill_service import AccountBackfillService
from app.models.domain.errors import AccountNotFoundError


@pytest.fixture
def service(events, accounts, next_call_dates):
    accounts.add("acc-acme", "org-1", None, [("opp-1", "Acme Renewal")], name="Acme")
    return AccountBackfillService(events=events, accounts=accounts, next_call_dates=next_call_dates)


@pytest.mark.asyncio
async def test_backfill_links_only_events_at_new_domain(service, events, next_call_dates):
    acme = events.add("user-123", "g-1", ["rep@seller.io", "buyer@acme.com"])
    other = events.add("user-123", "g-2", ["rep@seller.io", "someone@other.com"])

    account, linked = await service.update_account_website("acc-acme", "https://www.acme.com")

    assert linked == 1
    assert account.website == "https://www.acme.com"
    assert (acme["account_id"], acme["opportunity_id"]) == ("acc-acme", "opp-1")
    assert (other["account_id"], other["opportunity_id"]) == (None, None)
    assert next_call_dates.recalculated == {"opp-1"}


@pytest.mark.asyncio
async def test_backfill_is_idempotent(service, events):
    events.add("user-123", "g-1", ["buyer@acme.com"])
    await service.update_account_website("acc-acme", "acme.com")

    snapshot = {row_id: dict(row) for row_id, row in events.rows.items()}
    linked = await service.backfill("acc-acme", "acme.com", "org-1")

    assert linked == 0
    assert events.rows == snapshot


@pytest.mark.asyncio
async def test_same_domain_skips_backfill(service, events, accounts):
    accounts.accounts["acc-acme"].website = "acme.com"
    events.add("user-123", "g-1", ["buyer@acme.com"])

    _, linked = await service.update_account_website("acc-acme", "https://WWW.acme.com/")

    assert linked == 0
    assert events.find("user-123", "g-1")["account_id"] is None


@pytest.mark.asyncio
async def test_events_linked_elsewhere_are_untouched(service, events, accounts):
    accounts.add("acc-globex", "org-1", "globex.com", [("opp-9", "Globex")])
    elsewhere = events.add(
        "user-123", "g-1", ["buyer@acme.com"], account_id="acc-globex", opportunity_id=None
    )

    _, linked = await service.update_account_website("acc-acme", "acme.com")

    assert linked == 0
    assert elsewhere["account_id"] == "acc-globex"
    assert elsewhere["opportunity_id"] is None


@pytest.mark.asyncio
async def test_missing_opportunity_is_filled_for_same_account(service, events):
    partial = events.add("user-123", "g-1", ["buyer@acme.com"], account_id="acc-acme")

    _, linked = await service.update_account_website("acc-acme", "acme.com")

    assert linked == 1
    assert partial["opportunity_id"] == "opp-1"


@pytest.mark.asyncio
async def test_other_organizations_events_are_ignored(service, events, users):
    users.add_organization("org-2", "rival.io")
    users.add_user("user-999", "rep@rival.io", "org-2")
    foreign = events.add("user-999", "g-1", ["buyer@acme.com"])

    _, linked = await service.update_account_website("acc-acme", "acme.com")

    assert linked == 0
    assert foreign["account_id"] is None


@pytest.mark.asyncio
async def test_unknown_account_raises(service):
    with pytest.raises(AccountNotFoundError):
        await service.update_account_website("missing", "acme.com")


@pytest.mark.asyncio
async def test_backfill_failure_reports_zero_and_keeps_website(service, events, accounts):
    async def broken(organization_id):
        raise RuntimeError("database unavailable")

    events.list_unlinked_for_organization = broken

    account, linked = await service.update_account_website("acc-acme", "acme.com")

    assert linked == 0
    assert accounts.accounts["acc-acme"].website == "acme.com"
    assert account.id == "acc-acme"
