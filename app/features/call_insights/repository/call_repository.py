"""
Persistence layer for call recordings and meeting notes.

Both kinds share one column layout; `kind` only selects the table. Parse
results are written with a `parse_generation` guard so a result produced for
a superseded submission is discarded by the database, not by the caller.
"""

from datetime import UTC, datetime

from psycopg.types.json import Jsonb

from app.db.helpers import DatabaseError, execute_query, fetch_all, fetch_one, fetch_val
from app.features.call_insights.domain import (
    CALL_KIND_MEETING_NOTE,
    CALL_KIND_RECORDING,
    INSIGHT_FIELDS,
    CallRecord,
    CallSummary,
    ExtractedInsights,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CALL_TABLES: dict[str, str] = {
    CALL_KIND_RECORDING: "call_recordings",
    CALL_KIND_MEETING_NOTE: "meeting_notes",
}

_EPOCH = datetime.min.replace(tzinfo=UTC)


class CallRepositoryError(DatabaseError):
    """Raised for an unknown call kind."""


class CallRepository:
    SELECT_COLUMNS = f"""
        id, opportunity_id, title, meeting_date, transcript_text,
        parsing_status, parsed_at, parsing_error, parse_generation,
        {", ".join(INSIGHT_FIELDS)}, risk_assessment
    """

    @classmethod
    def _table(cls, kind: str) -> str:
        try:
            return CALL_TABLES[kind]
        except KeyError:
            raise CallRepositoryError(
                f"Unknown call kind '{kind}'", operation="resolve_table", recoverable=False
            ) from None

    @classmethod
    async def get(cls, kind: str, call_id: str) -> CallRecord | None:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM {cls._table(kind)} WHERE id = %s"
        row = await fetch_one(query, (call_id,))
        return CallRecord.from_row(kind, row) if row else None

    @classmethod
    async def submit_transcript(cls, kind: str, call_id: str, transcript_text: str) -> CallRecord | None:
        """
        Store the transcript, move to `parsing`, clear the error and bump the
        generation. Returns the updated call, or None if it does not exist.
        """
        query = f"""
            UPDATE {cls._table(kind)}
            SET transcript_text = %s,
                parsing_status = 'parsing',
                parsing_error = NULL,
                parse_generation = parse_generation + 1,
                updated_at = NOW()
            WHERE id = %s
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(query, (transcript_text, call_id))
        return CallRecord.from_row(kind, row) if row else None

    @classmethod
    async def complete_parse(
        cls,
        kind: str,
        call_id: str,
        generation: int,
        insights: ExtractedInsights,
        parsed_at: datetime,
    ) -> bool:
        """Persist a successful parse. False when the generation was superseded."""
        assignments = ", ".join(f"{name} = %s" for name in INSIGHT_FIELDS)
        query = f"""
            UPDATE {cls._table(kind)}
            SET {assignments},
                parsed_at = %s,
                parsing_status = 'completed',
                parsing_error = NULL,
                updated_at = NOW()
            WHERE id = %s AND parse_generation = %s AND parsing_status = 'parsing'
        """
        values = [Jsonb(getattr(insights, name)) for name in INSIGHT_FIELDS]
        params = (*values, parsed_at, call_id, generation)
        return await execute_query(query, params) > 0

    @classmethod
    async def fail_parse(cls, kind: str, call_id: str, generation: int, error_message: str) -> bool:
        """Persist a failed parse and drop any payload. Same generation guard."""
        cleared = ", ".join(f"{name} = NULL" for name in INSIGHT_FIELDS)
        query = f"""
            UPDATE {cls._table(kind)}
            SET {cleared},
                parsed_at = NULL,
                parsing_status = 'failed',
                parsing_error = %s,
                updated_at = NOW()
            WHERE id = %s AND parse_generation = %s AND parsing_status = 'parsing'
        """
        truncated_error = (error_message or "Transcript parsing failed")[:500]
        return await execute_query(query, (truncated_error, call_id, generation)) > 0

    @classmethod
    async def count_completed_for_opportunity(cls, opportunity_id: str) -> int:
        query = """
            SELECT
                (SELECT COUNT(*) FROM call_recordings
                 WHERE opportunity_id = %s AND parsing_status = 'completed')
              + (SELECT COUNT(*) FROM meeting_notes
                 WHERE opportunity_id = %s AND parsing_status = 'completed') AS completed
        """
        return int(await fetch_val(query, (opportunity_id, opportunity_id)) or 0)

    @classmethod
    async def list_completed_for_opportunity(cls, opportunity_id: str) -> list[CallRecord]:
        """Completed calls of both kinds, oldest meeting first. Undated calls sort first."""
        calls: list[CallRecord] = []
        for kind, table in CALL_TABLES.items():
            query = f"""
                SELECT {cls.SELECT_COLUMNS}
                FROM {table}
                WHERE opportunity_id = %s AND parsing_status = 'completed'
            """
            rows = await fetch_all(query, (opportunity_id,))
            calls.extend(CallRecord.from_row(kind, row) for row in rows)

        calls.sort(key=lambda call: (call.meeting_date or _EPOCH, call.kind, call.id))
        return calls

    @classmethod
    async def list_summaries_for_opportunity(cls, opportunity_id: str) -> list[CallSummary]:
        summaries: list[CallSummary] = []
        for table in CALL_TABLES.values():
            query = f"""
                SELECT id, parsing_status, parsed_at
                FROM {table}
                WHERE opportunity_id = %s
            """
            rows = await fetch_all(query, (opportunity_id,))
            summaries.extend(
                CallSummary(
                    id=str(row["id"]),
                    parsing_status=row["parsing_status"],
                    parsed_at=row.get("parsed_at"),
                )
                for row in rows
            )
        return summaries
