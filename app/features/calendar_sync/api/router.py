"""
Calendar sync routes.

Trigger a sync for the caller, read the sync checkpoint, change an account's
website (which backfills links) and recompute event externality.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.identity import auth_dependency
from app.features.calendar_sync.services.backfill_service import account_backfill_service
from app.features.calendar_sync.services.externality_service import externality_service
from app.features.calendar_sync.services.sync_service import calendar_sync_service
from app.infrastructure.observability.logging import get_logger
from app.models.api.calendar_request import (
    CalendarProvider,
    SyncRequest,
    UpdateAccountWebsiteRequest,
)
from app.models.api.calendar_response import (
    AccountResponse,
    BackfillSummary,
    ExternalFlagsResponse,
    SyncRunResponse,
    SyncStatusResponse,
)
from app.routes.errors import http_error_for

logger = get_logger(__name__)

router = APIRouter(tags=["calendar-sync"])


@router.post("/calendar/sync", response_model=SyncRunResponse)
async def trigger_calendar_sync(
    request: SyncRequest | None = None, claims: dict = Depends(auth_dependency)
):
    """Run a calendar sync for the authenticated user and return its counters."""
    user_id = claims["sub"]
    provider = request.provider if request else "google"

    try:
        result = await calendar_sync_service.sync(user_id, provider)
    except Exception as e:
        logger.error(
            "Calendar sync request failed",
            user_id=user_id,
            provider=provider,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise http_error_for(e) from e

    return SyncRunResponse(**result.to_dict())


@router.get("/calendar/sync/status", response_model=SyncStatusResponse)
async def get_calendar_sync_status(
    provider: CalendarProvider = "google", claims: dict = Depends(auth_dependency)
):
    user_id = claims["sub"]

    try:
        state = await calendar_sync_service.get_status(user_id, provider)
    except Exception as e:
        logger.error("Error getting sync status", user_id=user_id, error=str(e))
        raise http_error_for(e) from e

    if state is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Calendar has never been synced"
        )
    return SyncStatusResponse(**state.to_dict())


@router.patch("/accounts/{account_id}/website", response_model=AccountResponse)
async def update_account_website(
    account_id: str,
    request: UpdateAccountWebsiteRequest,
    claims: dict = Depends(auth_dependency),
):
    """Change an account's website and link existing events to its new domain."""
    try:
        account, linked = await account_backfill_service.update_account_website(
            account_id, request.website
        )
    except Exception as e:
        logger.error(
            "Account website update failed",
            account_id=account_id,
            user_id=claims["sub"],
            error=str(e),
            error_type=type(e).__name__,
        )
        raise http_error_for(e) from e

    return AccountResponse(**account.to_dict(), backfill=BackfillSummary(linked=linked))


@router.post(
    "/organizations/{organization_id}/external-flags/recalculate",
    response_model=ExternalFlagsResponse,
)
async def recalculate_external_flags(
    organization_id: str, claims: dict = Depends(auth_dependency)
):
    try:
        summary = await externality_service.recalculate_external_flags(organization_id)
    except Exception as e:
        logger.error(
            "External flag recalculation failed",
            organization_id=organization_id,
            user_id=claims["sub"],
            error=str(e),
            error_type=type(e).__name__,
        )
        raise http_error_for(e) from e

    return ExternalFlagsResponse(**summary)
