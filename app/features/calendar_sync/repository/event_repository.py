"""
Persistence layer for calendar_events.

Every write is a single statement with upsert or COALESCE semantics so that
concurrent sync and backfill passes never clear each other's links.
"""

from datetime import datetime

from app.db.helpers import execute_query, fetch_all, fetch_one
from app.features.calendar_sync.domain import EventUpsert, StoredEvent, UpsertOutcome
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class CalendarEventRepository:
    """Persistence helpers for synced calendar events."""

    EVENT_SELECT_COLUMNS = """
        e.id, e.user_id, e.external_id, e.title, e.start_time, e.attendees,
        e.is_external, e.account_id, e.opportunity_id
    """

    @classmethod
    async def upsert_synced_event(cls, user_id: str, event: EventUpsert) -> UpsertOutcome:
        """
        Insert or update one provider event keyed by (user_id, external_id).

        Existing account/opportunity links are never replaced; a new match only
        fills unset fields, and an opportunity is only filled when it belongs
        to the account the row ends up with.
        """
        query = """
            WITH previous AS (
                SELECT start_time, end_time, is_external, opportunity_id
                FROM calendar_events
                WHERE user_id = %s AND external_id = %s
            )
            INSERT INTO calendar_events (
                user_id, external_id, title, description, location, start_time, end_time,
                attendees, organizer_email, meeting_url, is_external,
                account_id, opportunity_id, source
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s::uuid, %s::uuid, 'synced')
            ON CONFLICT (user_id, external_id)
            DO UPDATE SET
                title = EXCLUDED.title,
                description = EXCLUDED.description,
                location = EXCLUDED.location,
                start_time = EXCLUDED.start_time,
                end_time = EXCLUDED.end_time,
                attendees = EXCLUDED.attendees,
                organizer_email = EXCLUDED.organizer_email,
                meeting_url = EXCLUDED.meeting_url,
                is_external = EXCLUDED.is_external,
                account_id = COALESCE(calendar_events.account_id, EXCLUDED.account_id),
                opportunity_id = CASE
                    WHEN calendar_events.opportunity_id IS NOT NULL
                        THEN calendar_events.opportunity_id
                    WHEN COALESCE(calendar_events.account_id, EXCLUDED.account_id)
                        IS NOT DISTINCT FROM EXCLUDED.account_id
                        THEN EXCLUDED.opportunity_id
                    ELSE NULL
                END,
                updated_at = NOW()
            RETURNING
                id,
                (xmax = 0) AS inserted,
                opportunity_id,
                (SELECT opportunity_id FROM previous) AS previous_opportunity_id,
                (
                    (SELECT start_time FROM previous) IS DISTINCT FROM start_time
                    OR (SELECT end_time FROM previous) IS DISTINCT FROM end_time
                    OR (SELECT is_external FROM previous) IS DISTINCT FROM is_external
                ) AS schedule_changed
        """
        params = (
            user_id,
            event.external_id,
            user_id,
            event.external_id,
            event.title,
            event.description,
            event.location,
            event.start_time,
            event.end_time,
            event.attendee_emails,
            event.organizer_email,
            event.meeting_url,
            event.is_external,
            event.account_id,
            event.opportunity_id,
        )
        row = await fetch_one(query, params)

        opportunity_id = str(row["opportunity_id"]) if row["opportunity_id"] else None
        previous_opportunity_id = (
            str(row["previous_opportunity_id"]) if row["previous_opportunity_id"] else None
        )
        return UpsertOutcome(
            event_id=str(row["id"]),
            created=bool(row["inserted"]),
            opportunity_id=opportunity_id,
            link_changed=opportunity_id != previous_opportunity_id,
            schedule_changed=bool(row["schedule_changed"]),
        )

    @classmethod
    async def delete_by_external_id(cls, user_id: str, external_id: str) -> list[str | None]:
        """Delete a cancelled event. Returns the opportunity id of each removed row."""
        query = """
            DELETE FROM calendar_events
            WHERE user_id = %s AND external_id = %s
            RETURNING opportunity_id
        """
        rows = await fetch_all(query, (user_id, external_id))
        return [str(row["opportunity_id"]) if row["opportunity_id"] else None for row in rows]

    @classmethod
    async def delete_stale_events(
        cls,
        user_id: str,
        window_start: datetime,
        window_end: datetime,
        seen_external_ids: list[str],
        created_before: datetime,
    ) -> list[str | None]:
        """
        Delete synced events inside the window that the provider no longer returns.

        Rows created after `created_before` are kept so an event inserted by a
        concurrent run is not removed before the provider lists it.
        """
        query = """
            DELETE FROM calendar_events
            WHERE user_id = %s
              AND source = 'synced'
              AND start_time >= %s
              AND start_time <= %s
              AND created_at < %s
              AND NOT (external_id = ANY(%s::text[]))
            RETURNING opportunity_id
        """
        rows = await fetch_all(
            query, (user_id, window_start, window_end, created_before, seen_external_ids)
        )
        if rows:
            logger.info("Stale calendar events removed", user_id=user_id, count=len(rows))
        return [str(row["opportunity_id"]) if row["opportunity_id"] else None for row in rows]

    @classmethod
    async def list_unlinked_for_organization(cls, organization_id: str) -> list[StoredEvent]:
        """Events owned by the organization's users that miss an account or opportunity."""
        query = f"""
            SELECT {cls.EVENT_SELECT_COLUMNS}, u.email AS owner_email
            FROM calendar_events e
            JOIN users u ON u.id = e.user_id
            WHERE u.organization_id = %s
              AND (e.account_id IS NULL OR e.opportunity_id IS NULL)
            ORDER BY e.start_time, e.id
        """
        rows = await fetch_all(query, (organization_id,))
        return [StoredEvent.from_row(row) for row in rows]

    @classmethod
    async def list_for_organization(cls, organization_id: str) -> list[StoredEvent]:
        query = f"""
            SELECT {cls.EVENT_SELECT_COLUMNS}, u.email AS owner_email
            FROM calendar_events e
            JOIN users u ON u.id = e.user_id
            WHERE u.organization_id = %s
            ORDER BY e.start_time, e.id
        """
        rows = await fetch_all(query, (organization_id,))
        return [StoredEvent.from_row(row) for row in rows]

    @classmethod
    async def fill_missing_links(
        cls, event_id: str, account_id: str, opportunity_id: str | None
    ) -> StoredEvent | None:
        """
        Fill account/opportunity only where unset.

        Returns the updated event, or None when nothing changed (already linked,
        linked to another account, or no new opportunity to add).
        """
        query = f"""
            UPDATE calendar_events e
            SET account_id = COALESCE(e.account_id, %s::uuid),
                opportunity_id = CASE
                    WHEN e.opportunity_id IS NULL
                         AND COALESCE(e.account_id, %s::uuid) = %s::uuid
                        THEN %s::uuid
                    ELSE e.opportunity_id
                END,
                updated_at = NOW()
            WHERE e.id = %s
              AND (
                  e.account_id IS NULL
                  OR (e.account_id = %s::uuid AND e.opportunity_id IS NULL AND %s::uuid IS NOT NULL)
              )
            RETURNING {cls.EVENT_SELECT_COLUMNS}
        """
        params = (
            account_id,
            account_id,
            account_id,
            opportunity_id,
            event_id,
            account_id,
            opportunity_id,
        )
        row = await fetch_one(query, params)
        return StoredEvent.from_row(row) if row else None

    @classmethod
    async def update_external_flag(cls, event_id: str, is_external: bool) -> bool:
        query = """
            UPDATE calendar_events
            SET is_external = %s, updated_at = NOW()
            WHERE id = %s AND is_external IS DISTINCT FROM %s
        """
        return await execute_query(query, (is_external, event_id, is_external)) > 0
