# app/models/api/calendar_response.py
"""
Calendar sync and account API response models.
Used by routes for output formatting.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SyncErrorResponse(BaseModel):
    """One event that could not be synced."""

    event_id: str = Field(..., description="Provider event ID")
    error: str = Field(..., description="Why the event was skipped")


class SyncRunResponse(BaseModel):
    """Response for a completed sync run."""

    created: int = Field(..., description="Events inserted")
    updated: int = Field(..., description="Events updated")
    deleted: int = Field(..., description="Events removed")
    matched: int = Field(..., description="Events linked to an account")
    errors: list[SyncErrorResponse] = Field(default_factory=list, description="Per-event errors")


class SyncStatusResponse(BaseModel):
    """Response for the caller's sync checkpoint."""

    provider: str = Field(..., description="Calendar provider")
    has_sync_token: bool = Field(..., description="Whether the next run is incremental")
    resuming: bool = Field(..., description="Whether the next run resumes a partial run")
    window_start: datetime | None = Field(None, description="Full sync window start")
    window_end: datetime | None = Field(None, description="Full sync window end")
    last_run_at: datetime | None = Field(None, description="When the last run finished")
    last_status: str | None = Field(None, description="idle, in_progress or error")
    last_error: str | None = Field(None, description="Error of the last failed run")


class BackfillSummary(BaseModel):
    linked: int = Field(..., description="Events linked by the backfill")


class AccountResponse(BaseModel):
    """Response for an account after a website change."""

    id: str = Field(..., description="Account ID")
    organization_id: str = Field(..., description="Owning organization ID")
    name: str = Field(..., description="Account name")
    website: str | None = Field(None, description="Account website")
    backfill: BackfillSummary = Field(..., description="Backfill outcome")


class ExternalFlagsResponse(BaseModel):
    """Response for an externality recalculation."""

    processed: int = Field(..., description="Events examined")
    updated: int = Field(..., description="Events whose flag changed")
