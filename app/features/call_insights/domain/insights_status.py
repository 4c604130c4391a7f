"""
Classifies how fresh an opportunity's consolidated insights are.

States:
    none              no calls or notes at all
    pending           calls exist but none has been parsed
    ready             parsed calls exist, never consolidated
    applied           consolidation covers every parsed call
    applied_with_new  calls were parsed after the last consolidation
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .models import PARSING_COMPLETED, CallSummary

STATE_NONE = "none"
STATE_PENDING = "pending"
STATE_READY = "ready"
STATE_APPLIED = "applied"
STATE_APPLIED_WITH_NEW = "applied_with_new"


@dataclass(slots=True)
class InsightsStatus:
    state: str
    last_consolidated_at: datetime | None
    consolidated_count: int
    new_parsed_calls: list[str] = field(default_factory=list)
    pending_calls: list[str] = field(default_factory=list)
    total_parsed_count: int = 0
    total_call_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "last_consolidated_at": (
                self.last_consolidated_at.isoformat() if self.last_consolidated_at else None
            ),
            "consolidated_count": self.consolidated_count,
            "new_parsed_calls": list(self.new_parsed_calls),
            "pending_calls": list(self.pending_calls),
            "total_parsed_count": self.total_parsed_count,
            "total_call_count": self.total_call_count,
        }


def _is_parsed(call: CallSummary) -> bool:
    return call.parsing_status == PARSING_COMPLETED and call.parsed_at is not None


def get_insights_status(
    last_consolidated_at: datetime | None,
    consolidation_call_count: int | None,
    calls: Iterable[CallSummary],
) -> InsightsStatus:
    calls = list(calls)
    parsed = [call for call in calls if _is_parsed(call)]
    pending = [call for call in calls if not _is_parsed(call)]

    if last_consolidated_at is None:
        new_parsed = parsed
    else:
        new_parsed = [call for call in parsed if call.parsed_at > last_consolidated_at]

    if not calls:
        state = STATE_NONE
    elif not parsed:
        state = STATE_PENDING
    elif last_consolidated_at is None:
        state = STATE_READY
    elif new_parsed:
        state = STATE_APPLIED_WITH_NEW
    else:
        state = STATE_APPLIED

    return InsightsStatus(
        state=state,
        last_consolidated_at=last_consolidated_at,
        consolidated_count=consolidation_call_count or 0,
        new_parsed_calls=[call.id for call in new_parsed],
        pending_calls=[call.id for call in pending],
        total_parsed_count=len(parsed),
        total_call_count=len(calls),
    )
