# app/models/api/opportunity_response.py
"""
Opportunity API response models.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class NextCallDateResponse(BaseModel):
    """Response for a recalculated next call date."""

    opportunity_id: str = Field(..., description="Opportunity ID")
    next_call_date: datetime | None = Field(None, description="Earliest future meeting")
    source: str | None = Field(None, description="auto_calendar, auto_call_recording or auto_meeting_note")
    event_id: str | None = Field(None, description="ID of the winning meeting")
