"""
Loads next-call candidates for an opportunity from all three meeting sources.

Calendar events only count when they are external; recordings and notes count
by their meeting date. Every source maps onto MeetingCandidate so the resolver
never knows where a meeting came from.
"""

from datetime import datetime

from app.db.helpers import fetch_all
from app.features.next_call_date.domain import (
    SOURCE_CALENDAR,
    SOURCE_CALL_RECORDING,
    SOURCE_MEETING_NOTE,
    MeetingCandidate,
)

SOURCE_QUERIES: dict[str, str] = {
    SOURCE_CALENDAR: """
        SELECT id, start_time AS meeting_date
        FROM calendar_events
        WHERE opportunity_id = %s AND is_external = TRUE AND start_time > %s
    """,
    SOURCE_CALL_RECORDING: """
        SELECT id, meeting_date
        FROM call_recordings
        WHERE opportunity_id = %s AND meeting_date > %s
    """,
    SOURCE_MEETING_NOTE: """
        SELECT id, meeting_date
        FROM meeting_notes
        WHERE opportunity_id = %s AND meeting_date > %s
    """,
}


class MeetingCandidateRepository:
    @classmethod
    async def list_upcoming(cls, opportunity_id: str, after: datetime) -> list[MeetingCandidate]:
        candidates: list[MeetingCandidate] = []
        for kind, query in SOURCE_QUERIES.items():
            rows = await fetch_all(query, (opportunity_id, after))
            candidates.extend(
                MeetingCandidate(
                    kind=kind,
                    id=str(row["id"]),
                    date=row["meeting_date"],
                    opportunity_id=opportunity_id,
                )
                for row in rows
            )
        return candidates
