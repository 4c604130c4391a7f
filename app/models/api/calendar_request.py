# app/models/api/calendar_request.py
"""
Calendar sync and account API request models.
Used by routes for input validation.
"""

from typing import Literal

from pydantic import BaseModel, Field

CalendarProvider = Literal["google"]


class SyncRequest(BaseModel):
    """Request for running a calendar sync for the caller."""

    provider: CalendarProvider = Field(default="google", description="Calendar provider to sync")


class UpdateAccountWebsiteRequest(BaseModel):
    """Request for changing an account's website."""

    website: str | None = Field(
        default=None, max_length=500, description="Account website or bare domain"
    )
