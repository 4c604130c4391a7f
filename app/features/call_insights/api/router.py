"""
Call insights routes: transcript submission, parsing status, consolidation
requests and insights freshness.
"""

from fastapi import APIRouter, Depends, status

from app.auth.identity import auth_dependency
from app.features.call_insights.domain import CONSOLIDATION_PROCESSING
from app.features.call_insights.services.consolidation_service import (
    insight_consolidation_service,
)
from app.features.call_insights.services.parsing_service import transcript_parsing_service
from app.infrastructure.observability.logging import get_logger
from app.models.api.call_insights_request import SubmitTranscriptRequest
from app.models.api.call_insights_response import (
    ConsolidationAcceptedResponse,
    InsightsStatusResponse,
    ParsingStatusResponse,
    TranscriptAcceptedResponse,
)
from app.routes.errors import http_error_for

logger = get_logger(__name__)

router = APIRouter(tags=["call-insights"])


@router.post(
    "/calls/{kind}/{call_id}/transcript",
    response_model=TranscriptAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_transcript(
    kind: str,
    call_id: str,
    request: SubmitTranscriptRequest,
    claims: dict = Depends(auth_dependency),
):
    """Store a transcript and queue it for parsing. Returns before parsing starts."""
    try:
        call = await transcript_parsing_service.submit(kind, call_id, request.transcript_text)
    except Exception as e:
        logger.error(
            "Transcript submission failed",
            call_id=call_id,
            kind=kind,
            user_id=claims["sub"],
            error=str(e),
            error_type=type(e).__name__,
        )
        raise http_error_for(e) from e

    return TranscriptAcceptedResponse(call_id=call.id, kind=call.kind, status=call.parsing_status)


@router.get("/calls/{kind}/{call_id}/parsing-status", response_model=ParsingStatusResponse)
async def get_parsing_status(kind: str, call_id: str, claims: dict = Depends(auth_dependency)):
    try:
        call = await transcript_parsing_service.get_parsing_status(kind, call_id)
    except Exception as e:
        logger.error("Error getting parsing status", call_id=call_id, kind=kind, error=str(e))
        raise http_error_for(e) from e

    return ParsingStatusResponse(**call.parsing_status_dict())


@router.post(
    "/opportunities/{opportunity_id}/consolidate",
    response_model=ConsolidationAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def consolidate_insights(opportunity_id: str, claims: dict = Depends(auth_dependency)):
    """Queue consolidation; 400 when fewer than two calls have been parsed."""
    try:
        completed = await insight_consolidation_service.request_consolidation(opportunity_id)
    except Exception as e:
        logger.warning(
            "Consolidation request rejected",
            opportunity_id=opportunity_id,
            user_id=claims["sub"],
            error=str(e),
            error_type=type(e).__name__,
        )
        raise http_error_for(e) from e

    return ConsolidationAcceptedResponse(
        opportunity_id=opportunity_id,
        status=CONSOLIDATION_PROCESSING,
        completed_calls=completed,
    )


@router.get(
    "/opportunities/{opportunity_id}/insights-status", response_model=InsightsStatusResponse
)
async def get_insights_status(opportunity_id: str, claims: dict = Depends(auth_dependency)):
    try:
        insights_status = await insight_consolidation_service.get_insights_status(opportunity_id)
    except Exception as e:
        logger.error(
            "Error getting insights status", opportunity_id=opportunity_id, error=str(e)
        )
        raise http_error_for(e) from e

    return InsightsStatusResponse(**insights_status.to_dict())
