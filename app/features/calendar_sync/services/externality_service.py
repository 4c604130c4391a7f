"""
Recomputes the is_external flag of an organization's events, e.g. after the
organization's email domain was corrected.
"""

import time

from app.features.calendar_sync.domain import is_external_event
from app.features.calendar_sync.repository.event_repository import CalendarEventRepository
from app.features.next_call_date.services.next_call_date_service import (
    NextCallDateService,
    next_call_date_service,
)
from app.infrastructure.observability.logging import get_logger, log_run_summary
from app.models.domain.errors import OrganizationNotFoundError
from app.repositories.user_repository import UserRepository

logger = get_logger(__name__)


class ExternalityService:
    def __init__(
        self,
        events=CalendarEventRepository,
        users=UserRepository,
        next_call_dates: NextCallDateService | None = None,
    ):
        self.events = events
        self.users = users
        self.next_call_dates = next_call_dates or next_call_date_service

    async def recalculate_external_flags(self, organization_id: str) -> dict[str, int]:
        """Only rows whose flag changes are written. Returns processed/updated counts."""
        started = time.perf_counter()

        organization = await self.users.get_organization(organization_id)
        if organization is None:
            raise OrganizationNotFoundError(organization_id)

        events = await self.events.list_for_organization(organization_id)
        updated = 0
        opportunity_ids: set[str] = set()

        for event in events:
            flag = is_external_event(event.attendee_emails, organization.get("domain"), event.owner_email)
            if flag == event.is_external:
                continue
            if await self.events.update_external_flag(event.id, flag):
                updated += 1
                if event.opportunity_id:
                    opportunity_ids.add(event.opportunity_id)

        # Externality decides whether a calendar event counts as a next call
        await self.next_call_dates.recalculate_many(opportunity_ids)

        summary = {"processed": len(events), "updated": updated}
        log_run_summary(
            "externality_recalculation",
            ok=True,
            duration_ms=(time.perf_counter() - started) * 1000,
            organization_id=organization_id,
            **summary,
        )
        return summary


externality_service = ExternalityService()
