"""
Call insights feature package.

Transcript parsing for call recordings and meeting notes, consolidation of
parsed insights onto the opportunity, and insights freshness status.
"""

from .domain import (  # noqa: F401
    CALL_KINDS,
    ExtractedInsights,
    get_insights_status,
    merge_call_insights,
)
