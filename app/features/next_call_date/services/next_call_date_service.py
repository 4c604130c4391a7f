"""
Next-call-date service.

Recomputes an opportunity's next call from calendar events, call recordings
and meeting notes, then persists the winner with its provenance.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from app.features.next_call_date.domain import NextCallDate, resolve_next_call_date
from app.features.next_call_date.repository.meeting_repository import MeetingCandidateRepository
from app.infrastructure.observability.logging import get_logger
from app.models.domain.errors import OpportunityNotFoundError
from app.repositories.opportunity_repository import OpportunityRepository

logger = get_logger(__name__)


class NextCallDateService:
    def __init__(
        self,
        meetings=MeetingCandidateRepository,
        opportunities=OpportunityRepository,
        clock=None,
    ):
        self.meetings = meetings
        self.opportunities = opportunities
        self._clock = clock or (lambda: datetime.now(UTC))

    async def recalculate(self, opportunity_id: str) -> NextCallDate:
        """
        Resolve and persist the next call for one opportunity.

        The result always overwrites the stored value; when no meeting is in
        the future all three fields are cleared.

        Raises:
            OpportunityNotFoundError: unknown opportunity
        """
        opportunity = await self.opportunities.get(opportunity_id)
        if opportunity is None:
            raise OpportunityNotFoundError(opportunity_id)

        now = self._clock()
        candidates = await self.meetings.list_upcoming(opportunity_id, now)
        next_call = resolve_next_call_date(candidates, now)

        if opportunity.next_call_date_manually_set:
            logger.info(
                "Overwriting manually set next call date",
                opportunity_id=opportunity_id,
                previous_date=(
                    opportunity.next_call_date.isoformat() if opportunity.next_call_date else None
                ),
            )

        await self.opportunities.save_next_call_date(opportunity_id, next_call, now)

        logger.info(
            "Next call date recalculated",
            opportunity_id=opportunity_id,
            candidate_count=len(candidates),
            source=next_call.source,
            next_call_date=next_call.date.isoformat() if next_call.date else None,
        )
        return next_call

    async def recalculate_many(self, opportunity_ids: Iterable[str | None]) -> int:
        """
        Recalculate each distinct opportunity; one failure does not stop the rest.

        Returns the number of opportunities recalculated.
        """
        recalculated = 0
        for opportunity_id in sorted({oid for oid in opportunity_ids if oid}):
            try:
                await self.recalculate(opportunity_id)
                recalculated += 1
            except OpportunityNotFoundError:
                logger.warning("Skipping recalculation for missing opportunity", opportunity_id=opportunity_id)
            except Exception as e:
                logger.error(
                    "Next call date recalculation failed",
                    opportunity_id=opportunity_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return recalculated


next_call_date_service = NextCallDateService()
