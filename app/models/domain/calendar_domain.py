# app/models/domain/calendar_domain.py
"""
Calendar Domain Models
Provider-side calendar event shapes consumed by the sync engine.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

CANCELLED_STATUS = "cancelled"


class CalendarEvent:
    """Domain model for an event as returned by the calendar provider."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.summary = data.get("summary", "") or ""
        self.description = data.get("description")
        self.location = data.get("location")
        self.status = data.get("status", "confirmed")
        self.start_time = self._parse_datetime(data.get("start", {}))
        self.end_time = self._parse_datetime(data.get("end", {}))
        self.attendee_emails = self._parse_attendees(data.get("attendees") or [])
        self.organizer_email = self._normalize_email((data.get("organizer") or {}).get("email"))
        self.meeting_url = self._parse_meeting_url(data)

    def _parse_datetime(self, dt_data: dict) -> datetime | None:
        """Parse datetime from Google Calendar format."""
        if not dt_data:
            return None

        # All-day events carry a date only
        if "date" in dt_data:
            try:
                return datetime.strptime(dt_data["date"], "%Y-%m-%d").replace(tzinfo=UTC)
            except ValueError:
                return None

        if "dateTime" in dt_data:
            return self._parse_datetime_iso(dt_data["dateTime"])

        return None

    def _parse_datetime_iso(self, dt_str: str | None) -> datetime | None:
        """Parse ISO datetime string."""
        if not dt_str:
            return None
        try:
            parsed = datetime.fromisoformat(dt_str.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed

    @staticmethod
    def _normalize_email(email: str | None) -> str | None:
        if not email or "@" not in email:
            return None
        return email.strip().lower()

    def _parse_attendees(self, attendees: list[dict]) -> list[str]:
        """Attendee emails in provider order, lowercased, without duplicates."""
        emails: list[str] = []
        for attendee in attendees:
            email = self._normalize_email(attendee.get("email"))
            if email and email not in emails:
                emails.append(email)
        return emails

    @staticmethod
    def _parse_meeting_url(data: dict) -> str | None:
        """Prefer the Meet link, then the first video entry point from conferenceData."""
        if data.get("hangoutLink"):
            return data["hangoutLink"]

        entry_points = (data.get("conferenceData") or {}).get("entryPoints") or []
        for entry in entry_points:
            if entry.get("entryPointType") == "video" and entry.get("uri"):
                return entry["uri"]
        return None

    def is_cancelled(self) -> bool:
        return self.status == CANCELLED_STATUS


@dataclass(slots=True)
class CalendarEventPage:
    """One page of an events.list response."""

    events: list[CalendarEvent] = field(default_factory=list)
    next_page_token: str | None = None
    next_sync_token: str | None = None

    @classmethod
    def from_response(cls, data: dict) -> "CalendarEventPage":
        return cls(
            events=[CalendarEvent(item) for item in data.get("items", [])],
            next_page_token=data.get("nextPageToken"),
            next_sync_token=data.get("nextSyncToken"),
        )
