"""
Domain models for next-call-date resolution.

Meetings from every upstream source are reduced to one MeetingCandidate shape
tagged with the source that produced it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

SOURCE_CALENDAR = "auto_calendar"
SOURCE_CALL_RECORDING = "auto_call_recording"
SOURCE_MEETING_NOTE = "auto_meeting_note"
SOURCE_MANUAL = "manual"

MeetingKind = Literal["auto_calendar", "auto_call_recording", "auto_meeting_note"]

MEETING_KINDS: tuple[str, ...] = (SOURCE_CALENDAR, SOURCE_CALL_RECORDING, SOURCE_MEETING_NOTE)


@dataclass(frozen=True, slots=True)
class MeetingCandidate:
    """A meeting that could become an opportunity's next call."""

    kind: MeetingKind
    id: str
    date: datetime
    opportunity_id: str


@dataclass(frozen=True, slots=True)
class NextCallDate:
    """Resolved next call with provenance. All fields are None when nothing is scheduled."""

    date: datetime | None = None
    source: str | None = None
    event_id: str | None = None

    @classmethod
    def from_candidate(cls, candidate: MeetingCandidate) -> "NextCallDate":
        return cls(date=candidate.date, source=candidate.kind, event_id=candidate.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat() if self.date else None,
            "source": self.source,
            "event_id": self.event_id,
        }
