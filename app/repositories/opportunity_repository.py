"""
Opportunity persistence for the derived fields this backend owns.

Next-call-date columns are written by the resolver; consolidation columns by
the consolidation engine. Nothing here edits user-managed opportunity data.
"""

from datetime import datetime

from psycopg.types.json import Jsonb

from app.db.helpers import execute_query, fetch_one
from app.features.call_insights.domain import ConsolidatedInsights
from app.features.next_call_date.domain import NextCallDate
from app.infrastructure.observability.logging import get_logger
from app.models.domain.opportunity_domain import OpportunityRecord

logger = get_logger(__name__)


class OpportunityRepository:
    SELECT_COLUMNS = """
        id, account_id, name,
        next_call_date, next_call_date_source, next_call_date_event_id,
        next_call_date_last_calculated, next_call_date_manually_set,
        consolidation_status, last_consolidated_at, consolidation_call_count
    """

    @classmethod
    async def get(cls, opportunity_id: str) -> OpportunityRecord | None:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM opportunities WHERE id = %s"
        row = await fetch_one(query, (opportunity_id,))
        return OpportunityRecord.from_row(row) if row else None

    @classmethod
    async def save_next_call_date(
        cls, opportunity_id: str, next_call: NextCallDate, calculated_at: datetime
    ) -> bool:
        """Overwrite the next call fields, including over a manually set date."""
        query = """
            UPDATE opportunities
            SET next_call_date = %s,
                next_call_date_source = %s,
                next_call_date_event_id = %s,
                next_call_date_last_calculated = %s,
                updated_at = NOW()
            WHERE id = %s
        """
        params = (
            next_call.date,
            next_call.source,
            next_call.event_id,
            calculated_at,
            opportunity_id,
        )
        return await execute_query(query, params) > 0

    @classmethod
    async def mark_consolidation_processing(cls, opportunity_id: str) -> bool:
        query = """
            UPDATE opportunities
            SET consolidation_status = 'processing',
                consolidation_error = NULL,
                updated_at = NOW()
            WHERE id = %s
        """
        return await execute_query(query, (opportunity_id,)) > 0

    @classmethod
    async def save_consolidation(
        cls,
        opportunity_id: str,
        insights: ConsolidatedInsights,
        call_count: int,
        consolidated_at: datetime,
    ) -> bool:
        query = """
            UPDATE opportunities
            SET consolidated_pain_points = %s,
                consolidated_goals = %s,
                consolidated_why_and_why_now = %s,
                consolidated_metrics = %s,
                consolidated_risk_assessment = %s,
                last_consolidated_at = %s,
                consolidation_call_count = %s,
                consolidation_status = 'completed',
                consolidation_error = NULL,
                updated_at = NOW()
            WHERE id = %s
        """
        params = (
            Jsonb(insights.pain_points),
            Jsonb(insights.goals),
            Jsonb(insights.why_and_why_now),
            Jsonb(insights.metrics),
            Jsonb(insights.risk_assessment) if insights.risk_assessment is not None else None,
            consolidated_at,
            call_count,
            opportunity_id,
        )
        return await execute_query(query, params) > 0

    @classmethod
    async def mark_consolidation_failed(cls, opportunity_id: str, error_message: str) -> None:
        """Set status=failed; previously consolidated data stays as it was."""
        truncated_error = (error_message or "")[:500]
        query = """
            UPDATE opportunities
            SET consolidation_status = 'failed',
                consolidation_error = %s,
                updated_at = NOW()
            WHERE id = %s
        """
        await execute_query(query, (truncated_error, opportunity_id))
        logger.warning(
            "Consolidation marked failed", opportunity_id=opportunity_id, error=truncated_error
        )
