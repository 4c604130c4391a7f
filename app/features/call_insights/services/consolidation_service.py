"""
Insight consolidation engine.

Merges the parsed insights of every completed call on an opportunity into the
opportunity's consolidated fields. Requests are accepted synchronously and
processed by the `consolidate_insights` task.
"""

import time
from datetime import UTC, datetime
from typing import Any

from app.features.call_insights.domain import (
    MIN_CALLS_FOR_CONSOLIDATION,
    InsightsStatus,
    get_insights_status,
    merge_call_insights,
)
from app.features.call_insights.repository.call_repository import CallRepository
from app.infrastructure.observability.logging import get_logger, log_run_summary
from app.jobs.task_queue import TaskQueue, TaskQueueError, task_queue
from app.models.domain.errors import ConsolidationPreconditionError, OpportunityNotFoundError
from app.repositories.opportunity_repository import OpportunityRepository

logger = get_logger(__name__)

CONSOLIDATE_INSIGHTS_TASK = "consolidate_insights"


class InsightConsolidationService:
    def __init__(
        self,
        calls=CallRepository,
        opportunities=OpportunityRepository,
        queue: TaskQueue | None = None,
        clock=None,
    ):
        self.calls = calls
        self.opportunities = opportunities
        self.queue = queue or task_queue
        self._clock = clock or (lambda: datetime.now(UTC))

    async def request_consolidation(self, opportunity_id: str) -> int:
        """
        Accept a consolidation request and queue the work.

        Returns the number of completed calls found.

        Raises:
            OpportunityNotFoundError: unknown opportunity
            ConsolidationPreconditionError: fewer than two completed calls;
                nothing is written
            TaskQueueError: the task could not be queued; the status is left
                `failed` and consolidated data is untouched
        """
        if await self.opportunities.get(opportunity_id) is None:
            raise OpportunityNotFoundError(opportunity_id)

        completed = await self.calls.count_completed_for_opportunity(opportunity_id)
        if completed < MIN_CALLS_FOR_CONSOLIDATION:
            raise ConsolidationPreconditionError(
                opportunity_id, completed, MIN_CALLS_FOR_CONSOLIDATION
            )

        await self.opportunities.mark_consolidation_processing(opportunity_id)
        try:
            await self.queue.enqueue(CONSOLIDATE_INSIGHTS_TASK, {"opportunity_id": opportunity_id})
        except TaskQueueError:
            await self.opportunities.mark_consolidation_failed(
                opportunity_id, "Could not queue consolidation"
            )
            raise

        logger.info(
            "Consolidation requested", opportunity_id=opportunity_id, completed_calls=completed
        )
        return completed

    async def run_consolidation_task(self, payload: dict[str, Any]) -> bool:
        """Handle one `consolidate_insights` task. Returns True when consolidated."""
        started = time.perf_counter()
        opportunity_id = payload.get("opportunity_id")
        if not opportunity_id:
            logger.error("Invalid consolidation task payload", payload=payload)
            return False

        try:
            calls = await self.calls.list_completed_for_opportunity(opportunity_id)
            if len(calls) < MIN_CALLS_FOR_CONSOLIDATION:
                error = (
                    f"Consolidation requires at least {MIN_CALLS_FOR_CONSOLIDATION} "
                    f"parsed calls; found {len(calls)}"
                )
                await self.opportunities.mark_consolidation_failed(opportunity_id, error)
                log_run_summary(
                    "insight_consolidation",
                    ok=False,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    opportunity_id=opportunity_id,
                    error=error,
                )
                return False

            merged = merge_call_insights(calls)
            await self.opportunities.save_consolidation(
                opportunity_id, merged, len(calls), self._clock()
            )

        except Exception as e:
            await self.opportunities.mark_consolidation_failed(
                opportunity_id, f"Consolidation failed: {e}"
            )
            log_run_summary(
                "insight_consolidation",
                ok=False,
                duration_ms=(time.perf_counter() - started) * 1000,
                opportunity_id=opportunity_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        log_run_summary(
            "insight_consolidation",
            ok=True,
            duration_ms=(time.perf_counter() - started) * 1000,
            opportunity_id=opportunity_id,
            calls=len(calls),
            pain_points=len(merged.pain_points),
            goals=len(merged.goals),
            metrics=len(merged.metrics),
        )
        return True

    async def get_insights_status(self, opportunity_id: str) -> InsightsStatus:
        opportunity = await self.opportunities.get(opportunity_id)
        if opportunity is None:
            raise OpportunityNotFoundError(opportunity_id)

        calls = await self.calls.list_summaries_for_opportunity(opportunity_id)
        return get_insights_status(
            opportunity.last_consolidated_at, opportunity.consolidation_call_count, calls
        )


insight_consolidation_service = InsightConsolidationService()
