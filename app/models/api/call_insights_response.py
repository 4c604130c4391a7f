# app/models/api/call_insights_response.py
"""
Call insights API response models.
Used by routes for output formatting.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TranscriptAcceptedResponse(BaseModel):
    """Response for an accepted transcript submission."""

    call_id: str = Field(..., description="Call ID")
    kind: str = Field(..., description="call_recording or meeting_note")
    status: str = Field(..., description="Parsing status after submission")


class ExtractedInsightsResponse(BaseModel):
    pain_points: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    people_mentioned: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    why_and_why_now: list[str] = Field(default_factory=list)
    quantifiable_metrics: list[str] = Field(default_factory=list)


class ParsingStatusResponse(BaseModel):
    """Response for a call's parsing status."""

    call_id: str = Field(..., description="Call ID")
    kind: str = Field(..., description="call_recording or meeting_note")
    status: str = Field(..., description="none, parsing, completed or failed")
    parsed_at: datetime | None = Field(None, description="When parsing completed")
    error: str | None = Field(None, description="Human-readable parsing error")
    insights: ExtractedInsightsResponse | None = Field(None, description="Extracted insights")


class ConsolidationAcceptedResponse(BaseModel):
    """Response for an accepted consolidation request."""

    opportunity_id: str = Field(..., description="Opportunity ID")
    status: str = Field(..., description="Consolidation status after the request")
    completed_calls: int = Field(..., description="Parsed calls that will be consolidated")


class InsightsStatusResponse(BaseModel):
    """Response describing how fresh an opportunity's consolidated insights are."""

    state: str = Field(..., description="none, pending, ready, applied or applied_with_new")
    last_consolidated_at: datetime | None = Field(None, description="Last consolidation time")
    consolidated_count: int = Field(..., description="Calls covered by the last consolidation")
    new_parsed_calls: list[str] = Field(default_factory=list, description="Parsed since then")
    pending_calls: list[str] = Field(default_factory=list, description="Not yet parsed")
    total_parsed_count: int = Field(..., description="Parsed calls")
    total_call_count: int = Field(..., description="All calls")
