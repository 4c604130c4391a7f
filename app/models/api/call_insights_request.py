# app/models/api/call_insights_request.py
"""
Call insights API request models.
"""

from pydantic import BaseModel, Field


class SubmitTranscriptRequest(BaseModel):
    """Request for submitting a call transcript for parsing."""

    transcript_text: str = Field(..., description="Full transcript text")
