"""
Next-call-date routes.
"""

from fastapi import APIRouter, Depends

from app.auth.identity import auth_dependency
from app.features.next_call_date.services.next_call_date_service import next_call_date_service
from app.infrastructure.observability.logging import get_logger
from app.models.api.opportunity_response import NextCallDateResponse
from app.routes.errors import http_error_for

logger = get_logger(__name__)

router = APIRouter(prefix="/opportunities", tags=["next-call-date"])


@router.post("/{opportunity_id}/next-call-date/recalculate", response_model=NextCallDateResponse)
async def recalculate_next_call_date(opportunity_id: str, claims: dict = Depends(auth_dependency)):
    """Recompute and store the opportunity's next call from all meeting sources."""
    try:
        next_call = await next_call_date_service.recalculate(opportunity_id)
    except Exception as e:
        logger.error(
            "Next call date recalculation failed",
            opportunity_id=opportunity_id,
            user_id=claims["sub"],
            error=str(e),
            error_type=type(e).__name__,
        )
        raise http_error_for(e) from e

    return NextCallDateResponse(
        opportunity_id=opportunity_id,
        next_call_date=next_call.date,
        source=next_call.source,
        event_id=next_call.event_id,
    )
