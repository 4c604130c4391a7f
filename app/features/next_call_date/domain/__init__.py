from .models import (
    MEETING_KINDS,
    SOURCE_CALENDAR,
    SOURCE_CALL_RECORDING,
    SOURCE_MANUAL,
    SOURCE_MEETING_NOTE,
    MeetingCandidate,
    NextCallDate,
)
from .resolver import resolve_next_call_date

__all__ = [
    "MEETING_KINDS",
    "SOURCE_CALENDAR",
    "SOURCE_CALL_RECORDING",
    "SOURCE_MANUAL",
    "SOURCE_MEETING_NOTE",
    "MeetingCandidate",
    "NextCallDate",
    "resolve_next_call_date",
]
