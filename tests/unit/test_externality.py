"""
Tests for recomputing is_external after an organization's domain changes.
"""

import pytest

from app.features.calendar_sync.services.externality_service import ExternalityService
from app.models.domain.errors import OrganizationNotFoundError


@pytest.mark.asyncio
async def test_recalculate_updates_only_changed_flags(events, users, next_call_dates):
    internal_now = events.add(
        "user-123", "g-1", ["rep@seller.io", "cfo@seller.io"], is_external=True, opportunity_id="opp-1"
    )
    still_external = events.add("user-123", "g-2", ["rep@seller.io", "buyer@acme.com"], is_external=True)
    unchanged = events.add("user-123", "g-3", ["rep@seller.io"], is_external=False)

    service = ExternalityService(events=events, users=users, next_call_dates=next_call_dates)
    summary = await service.recalculate_external_flags("org-1")

    assert summary == {"processed": 3, "updated": 1}
    assert internal_now["is_external"] is False
    assert still_external["is_external"] is True
    assert unchanged["is_external"] is False
    assert next_call_dates.recalculated == {"opp-1"}


@pytest.mark.asyncio
async def test_unknown_organization_raises(events, users, next_call_dates):
    service = ExternalityService(events=events, users=users, next_call_dates=next_call_dates)

    with pytest.raises(OrganizationNotFoundError):
        await service.recalculate_external_flags("missing")
