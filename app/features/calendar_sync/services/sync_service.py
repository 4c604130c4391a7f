"""
Calendar sync engine.

Pulls a user's calendar from the provider page by page, normalizes each event,
resolves it to an account/opportunity and upserts it. Incremental runs use the
provider's sync token; without one (or when the provider rejects it) the run
lists a fixed window around today. The checkpoint is only advanced once a run
finishes, so an aborted run is simply repeated by the next one.
"""

import time
from datetime import UTC, datetime, timedelta
from typing import Any

from app.config import settings
from app.features.calendar_sync.domain import (
    EventUpsert,
    SyncResult,
    SyncState,
    UserContext,
    build_domain_index,
    is_external_event,
    match_event,
)
from app.features.calendar_sync.domain.matching import DomainIndex
from app.features.calendar_sync.domain.models import PROVIDER_GOOGLE
from app.features.calendar_sync.repository.event_repository import CalendarEventRepository
from app.features.calendar_sync.repository.sync_state_repository import SyncStateRepository
from app.features.calendar_sync.repository.token_repository import TokenRepository
from app.features.next_call_date.services.next_call_date_service import (
    NextCallDateService,
    next_call_date_service,
)
from app.infrastructure.observability.logging import get_logger, log_run_summary
from app.models.domain.calendar_domain import CalendarEvent
from app.models.domain.errors import UserNotFoundError
from app.repositories.account_repository import AccountRepository
from app.repositories.user_repository import UserRepository
from app.services.calendar.google_client import (
    CalendarProviderError,
    SyncTokenInvalidError,
    google_calendar_service,
)

logger = get_logger(__name__)


class _RunCursor:
    """Mutable position of one sync run."""

    def __init__(
        self,
        sync_token: str | None,
        page_token: str | None,
        window_start: datetime | None,
        window_end: datetime | None,
    ):
        self.sync_token = sync_token
        self.page_token = page_token
        self.window_start = window_start
        self.window_end = window_end
        self.full = sync_token is None
        self.resumed = page_token is not None
        self.fell_back = False
        self.seen_external_ids: list[str] = []

    @property
    def incremental(self) -> bool:
        return self.sync_token is not None


class CalendarSyncService:
    """
    Orchestrates one user's calendar sync.

    Collaborators are injected so tests can run the engine against in-memory
    repositories and a stubbed provider client.
    """

    def __init__(
        self,
        provider_clients: dict[str, Any] | None = None,
        users=UserRepository,
        tokens=TokenRepository,
        sync_states=SyncStateRepository,
        events=CalendarEventRepository,
        accounts=AccountRepository,
        next_call_dates: NextCallDateService | None = None,
        clock=None,
    ):
        self.provider_clients = provider_clients or {PROVIDER_GOOGLE: google_calendar_service}
        self.users = users
        self.tokens = tokens
        self.sync_states = sync_states
        self.events = events
        self.accounts = accounts
        self.next_call_dates = next_call_dates or next_call_date_service
        self._clock = clock or (lambda: datetime.now(UTC))

    def _client_for(self, provider: str):
        client = self.provider_clients.get(provider)
        if client is None:
            raise CalendarProviderError(f"Unsupported calendar provider '{provider}'")
        return client

    def _full_sync_window(self, now: datetime) -> tuple[datetime, datetime]:
        return (
            now - timedelta(days=settings.SYNC_WINDOW_PAST_DAYS),
            now + timedelta(days=settings.SYNC_WINDOW_FUTURE_DAYS),
        )

    def _initial_cursor(self, state: SyncState | None, now: datetime) -> _RunCursor:
        if state and state.sync_token:
            return _RunCursor(state.sync_token, state.page_token, state.window_start, state.window_end)

        if state and state.page_token and state.window_start and state.window_end:
            # Resume an interrupted full sync over the same window
            return _RunCursor(None, state.page_token, state.window_start, state.window_end)

        window_start, window_end = self._full_sync_window(now)
        return _RunCursor(None, None, window_start, window_end)

    async def sync(self, user_id: str, provider: str = PROVIDER_GOOGLE) -> SyncResult:
        """
        Run one sync for a user.

        Returns:
            SyncResult with created/updated/deleted/matched counters and
            per-event errors.

        Raises:
            UserNotFoundError: unknown user
            ProviderAuthError / ProviderTransientError: run aborted, state
                marked `error`, checkpoint untouched
        """
        started = time.perf_counter()
        client = self._client_for(provider)

        user = await self.users.get_context(user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        await self.sync_states.mark_in_progress(user_id, provider)

        try:
            access_token = await self.tokens.get_valid_access_token(user_id, provider)
            state = await self.sync_states.get(user_id, provider)
            now = self._clock()
            cursor = self._initial_cursor(state, now)

            accounts = []
            if user.organization_id:
                accounts = await self.accounts.list_with_opportunities(user.organization_id)
            index = build_domain_index(accounts)

            result = SyncResult()
            next_page_token = await self._fetch_pages(client, access_token, user, index, cursor, result)
            completed = next_page_token is None

            if completed and cursor.full and not cursor.resumed:
                removed = await self.events.delete_stale_events(
                    user_id,
                    cursor.window_start,
                    cursor.window_end,
                    cursor.seen_external_ids,
                    now - timedelta(seconds=settings.STALE_EVENT_GRACE_SECONDS),
                )
                result.deleted += len(removed)
                result.affected_opportunity_ids.update(oid for oid in removed if oid)

        except Exception as e:
            message = e.message if isinstance(e, CalendarProviderError) else str(e)
            await self.sync_states.mark_failed(user_id, provider, message)
            log_run_summary(
                "calendar_sync",
                ok=False,
                duration_ms=(time.perf_counter() - started) * 1000,
                user_id=user_id,
                provider=provider,
                error=message,
                error_type=type(e).__name__,
            )
            raise

        await self.sync_states.save_checkpoint(
            user_id,
            provider,
            sync_token=cursor.sync_token,
            page_token=next_page_token,
            window_start=cursor.window_start,
            window_end=cursor.window_end,
            last_run_at=now,
        )

        recalculated = await self.next_call_dates.recalculate_many(result.affected_opportunity_ids)

        log_run_summary(
            "calendar_sync",
            ok=True,
            duration_ms=(time.perf_counter() - started) * 1000,
            user_id=user_id,
            provider=provider,
            mode="full" if cursor.full else "incremental",
            fell_back=cursor.fell_back,
            complete=next_page_token is None,
            opportunities_recalculated=recalculated,
            created=result.created,
            updated=result.updated,
            deleted=result.deleted,
            matched=result.matched,
            errors=len(result.errors),
        )
        return result

    async def _fetch_pages(
        self,
        client,
        access_token: str,
        user: UserContext,
        index: DomainIndex,
        cursor: _RunCursor,
        result: SyncResult,
    ) -> str | None:
        """
        Fetch and persist pages until the provider is exhausted or the page cap
        is hit. Returns the page token to resume from, or None when complete.

        On completion cursor.sync_token holds the provider's new sync token.
        """
        pages = 0
        while True:
            try:
                page = await client.list_events(
                    access_token,
                    calendar_id=settings.GOOGLE_CALENDAR_ID,
                    time_min=None if cursor.incremental else cursor.window_start,
                    time_max=None if cursor.incremental else cursor.window_end,
                    page_token=cursor.page_token,
                    sync_token=cursor.sync_token,
                    max_results=settings.SYNC_PAGE_SIZE,
                )
            except SyncTokenInvalidError:
                if cursor.fell_back:
                    raise
                logger.warning(
                    "Sync token rejected, falling back to full sync",
                    user_id=user.user_id,
                    had_sync_token=cursor.incremental,
                )
                window_start, window_end = self._full_sync_window(self._clock())
                cursor.sync_token = None
                cursor.page_token = None
                cursor.window_start = window_start
                cursor.window_end = window_end
                cursor.full = True
                cursor.resumed = False
                cursor.fell_back = True
                cursor.seen_external_ids = []
                pages = 0
                continue

            pages += 1
            for event in page.events:
                await self._apply_event(user, index, event, cursor, result)

            if page.next_page_token:
                cursor.page_token = page.next_page_token
                if pages >= settings.SYNC_MAX_PAGES:
                    logger.info(
                        "Sync page limit reached, resuming next run",
                        user_id=user.user_id,
                        pages=pages,
                    )
                    return page.next_page_token
                continue

            cursor.page_token = None
            if page.next_sync_token:
                cursor.sync_token = page.next_sync_token
            return None

    async def _apply_event(
        self,
        user: UserContext,
        index: DomainIndex,
        event: CalendarEvent,
        cursor: _RunCursor,
        result: SyncResult,
    ) -> None:
        """Persist one provider event. Failures are recorded, never raised."""
        if not event.id:
            result.record_error(None, "Event has no id")
            return

        try:
            if event.is_cancelled():
                removed = await self.events.delete_by_external_id(user.user_id, event.id)
                result.deleted += len(removed)
                result.affected_opportunity_ids.update(oid for oid in removed if oid)
                return

            cursor.seen_external_ids.append(event.id)

            if event.start_time is None:
                result.record_error(event.id, "Event has no start time")
                return

            match = match_event(index, event.attendee_emails, event.summary, user.email)
            outcome = await self.events.upsert_synced_event(
                user.user_id,
                EventUpsert(
                    external_id=event.id,
                    title=event.summary,
                    description=event.description,
                    location=event.location,
                    start_time=event.start_time,
                    end_time=event.end_time,
                    attendee_emails=event.attendee_emails,
                    organizer_email=event.organizer_email,
                    meeting_url=event.meeting_url,
                    is_external=is_external_event(
                        event.attendee_emails, user.organization_domain, user.email
                    ),
                    account_id=match.account_id,
                    opportunity_id=match.opportunity_id,
                ),
            )
        except Exception as e:
            logger.warning(
                "Failed to sync calendar event",
                user_id=user.user_id,
                event_id=event.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            result.record_error(event.id, str(e))
            return

        if outcome.created:
            result.created += 1
        else:
            result.updated += 1
        if match.matched:
            result.matched += 1
        if outcome.affects_next_call_date:
            result.affected_opportunity_ids.add(outcome.opportunity_id)

    async def get_status(self, user_id: str, provider: str = PROVIDER_GOOGLE) -> SyncState | None:
        return await self.sync_states.get(user_id, provider)

    async def sync_all_users(self, provider: str = PROVIDER_GOOGLE) -> dict[str, Any]:
        """Sync every user with a connected provider; failures are isolated per user."""
        started = time.perf_counter()
        user_ids = await self.tokens.list_connected_user_ids(provider)

        succeeded = 0
        failed = 0
        for user_id in user_ids:
            try:
                await self.sync(user_id, provider)
                succeeded += 1
            except Exception as e:
                failed += 1
                logger.warning(
                    "Calendar sync failed for user",
                    user_id=user_id,
                    provider=provider,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        summary = {"users": len(user_ids), "succeeded": succeeded, "failed": failed}
        log_run_summary(
            "calendar_sync_all",
            ok=failed == 0,
            duration_ms=(time.perf_counter() - started) * 1000,
            provider=provider,
            **summary,
        )
        return summary


calendar_sync_service = CalendarSyncService()
