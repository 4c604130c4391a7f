"""
Domain subpackage for call parsing and insight consolidation.
"""

from .consolidation import MIN_CALLS_FOR_CONSOLIDATION, merge_call_insights
from .insights_status import InsightsStatus, get_insights_status
from .models import (
    CALL_KIND_MEETING_NOTE,
    CALL_KIND_RECORDING,
    CALL_KINDS,
    CONSOLIDATION_COMPLETED,
    CONSOLIDATION_FAILED,
    CONSOLIDATION_NONE,
    CONSOLIDATION_PROCESSING,
    INSIGHT_FIELDS,
    PARSING_COMPLETED,
    PARSING_FAILED,
    PARSING_IN_PROGRESS,
    PARSING_NONE,
    CallRecord,
    CallSummary,
    ConsolidatedInsights,
    ExtractedInsights,
)

__all__ = [
    "CALL_KIND_MEETING_NOTE",
    "CALL_KIND_RECORDING",
    "CALL_KINDS",
    "CONSOLIDATION_COMPLETED",
    "CONSOLIDATION_FAILED",
    "CONSOLIDATION_NONE",
    "CONSOLIDATION_PROCESSING",
    "INSIGHT_FIELDS",
    "MIN_CALLS_FOR_CONSOLIDATION",
    "PARSING_COMPLETED",
    "PARSING_FAILED",
    "PARSING_IN_PROGRESS",
    "PARSING_NONE",
    "CallRecord",
    "CallSummary",
    "ConsolidatedInsights",
    "ExtractedInsights",
    "InsightsStatus",
    "get_insights_status",
    "merge_call_insights",
]
