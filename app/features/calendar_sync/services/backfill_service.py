"""
Account backfill engine.

When an account's website changes, events already stored for the
organization are re-matched against the new domain. Only unset links are
filled; events linked elsewhere are never touched.
"""

import time

from app.features.calendar_sync.domain import (
    AccountRecord,
    build_domain_index,
    extract_domain,
    has_attendee_at_domain,
    match_event,
)
from app.features.calendar_sync.repository.event_repository import CalendarEventRepository
from app.features.next_call_date.services.next_call_date_service import (
    NextCallDateService,
    next_call_date_service,
)
from app.infrastructure.observability.logging import get_logger, log_run_summary
from app.models.domain.errors import AccountNotFoundError
from app.repositories.account_repository import AccountRepository

logger = get_logger(__name__)


class AccountBackfillService:
    def __init__(
        self,
        events=CalendarEventRepository,
        accounts=AccountRepository,
        next_call_dates: NextCallDateService | None = None,
    ):
        self.events = events
        self.accounts = accounts
        self.next_call_dates = next_call_dates or next_call_date_service

    async def update_account_website(
        self, account_id: str, website: str | None
    ) -> tuple[AccountRecord, int]:
        """
        Save the account's new website, then backfill if its domain changed.

        The website update is committed first and is never undone by a backfill
        failure. Returns the updated account and the number of events linked.

        Raises:
            AccountNotFoundError: unknown account
        """
        updated = await self.accounts.update_website(account_id, website)
        if updated is None:
            raise AccountNotFoundError(account_id)

        account, previous_website = updated
        linked = await self.handle_website_change(account, previous_website, account.website)
        return account, linked

    async def handle_website_change(
        self, account: AccountRecord, old_website: str | None, new_website: str | None
    ) -> int:
        """Run the backfill only when the derived domain actually changed."""
        old_domain = extract_domain(old_website)
        new_domain = extract_domain(new_website)

        if new_domain is None or new_domain == old_domain:
            logger.debug(
                "Account domain unchanged, skipping backfill",
                account_id=account.id,
                domain=new_domain,
            )
            return 0

        return await self.backfill(account.id, new_website, account.organization_id)

    async def backfill(self, account_id: str, new_website: str | None, organization_id: str) -> int:
        """
        Link the organization's unlinked events that have an attendee at the
        account's new domain. Returns the number of events changed; errors are
        logged and reported as 0.
        """
        started = time.perf_counter()
        domain = extract_domain(new_website)
        if not domain:
            return 0

        try:
            linked, opportunity_ids = await self._link_events(account_id, domain, organization_id)
        except Exception as e:
            log_run_summary(
                "account_backfill",
                ok=False,
                duration_ms=(time.perf_counter() - started) * 1000,
                account_id=account_id,
                organization_id=organization_id,
                domain=domain,
                error=str(e),
                error_type=type(e).__name__,
            )
            return 0

        recalculated = await self.next_call_dates.recalculate_many(opportunity_ids)

        log_run_summary(
            "account_backfill",
            ok=True,
            duration_ms=(time.perf_counter() - started) * 1000,
            account_id=account_id,
            organization_id=organization_id,
            domain=domain,
            linked=linked,
            opportunities_recalculated=recalculated,
        )
        return linked

    async def _link_events(
        self, account_id: str, domain: str, organization_id: str
    ) -> tuple[int, set[str]]:
        accounts = await self.accounts.list_with_opportunities(organization_id)
        index = build_domain_index(accounts)

        candidates = await self.events.list_unlinked_for_organization(organization_id)
        linked = 0
        opportunity_ids: set[str] = set()

        for event in candidates:
            if not has_attendee_at_domain(event.attendee_emails, domain, event.owner_email):
                continue

            match = match_event(index, event.attendee_emails, event.title, event.owner_email)
            if match.account_id != account_id:
                # Another account's domain appears earlier in the attendee list
                continue
            if event.account_id is not None and event.account_id != account_id:
                continue

            updated = await self.events.fill_missing_links(
                event.id, match.account_id, match.opportunity_id
            )
            if updated is None:
                continue

            linked += 1
            if updated.opportunity_id and updated.opportunity_id != event.opportunity_id:
                opportunity_ids.add(updated.opportunity_id)

        return linked, opportunity_ids


account_backfill_service = AccountBackfillService()
