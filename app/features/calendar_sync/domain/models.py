"""
Domain models for the calendar sync feature.

Plain dataclasses shared by the repositories, the sync/backfill services and
the API layer. Rows coming back from Postgres are converted here so the
services never handle raw dicts.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

PROVIDER_GOOGLE = "google"

SYNC_STATUS_SUCCESS = "success"
SYNC_STATUS_ERROR = "error"
SYNC_STATUS_IN_PROGRESS = "in_progress"

EVENT_SOURCE_SYNCED = "synced"
EVENT_SOURCE_MANUAL = "manual"


@dataclass(slots=True)
class SyncState:
    """Checkpoint for one (user, provider) pair."""

    user_id: str
    provider: str
    sync_token: str | None = None
    page_token: str | None = None
    window_start: datetime | None = None
    window_end: datetime | None = None
    last_run_at: datetime | None = None
    last_status: str | None = None
    last_error: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SyncState":
        return cls(
            user_id=str(row["user_id"]),
            provider=row["provider"],
            sync_token=row.get("sync_token"),
            page_token=row.get("page_token"),
            window_start=row.get("window_start"),
            window_end=row.get("window_end"),
            last_run_at=row.get("last_run_at"),
            last_status=row.get("last_status"),
            last_error=row.get("last_error"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "has_sync_token": bool(self.sync_token),
            "resuming": bool(self.page_token),
            "window_start": self.window_start.isoformat() if self.window_start else None,
            "window_end": self.window_end.isoformat() if self.window_end else None,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_status": self.last_status,
            "last_error": self.last_error,
        }


@dataclass(slots=True)
class UserContext:
    """The syncing user plus the organization facts matching depends on."""

    user_id: str
    email: str
    organization_id: str | None
    organization_domain: str | None


@dataclass(slots=True)
class OpportunityRef:
    id: str
    name: str


@dataclass(slots=True)
class AccountRecord:
    """An account with its website and the opportunities under it."""

    id: str
    organization_id: str
    name: str
    website: str | None
    opportunities: list[OpportunityRef] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "website": self.website,
        }


@dataclass(slots=True)
class MatchResult:
    """Account/opportunity resolved for an event. Both empty means no match."""

    account_id: str | None = None
    opportunity_id: str | None = None

    @property
    def matched(self) -> bool:
        return self.account_id is not None


@dataclass(slots=True)
class EventUpsert:
    """A normalized provider event ready to be written for one user."""

    external_id: str
    title: str
    start_time: datetime
    end_time: datetime | None
    attendee_emails: list[str]
    is_external: bool
    description: str | None = None
    location: str | None = None
    organizer_email: str | None = None
    meeting_url: str | None = None
    account_id: str | None = None
    opportunity_id: str | None = None


@dataclass(slots=True)
class UpsertOutcome:
    """What a single upsert changed, as reported by the database."""

    event_id: str
    created: bool
    opportunity_id: str | None
    link_changed: bool
    schedule_changed: bool

    @property
    def affects_next_call_date(self) -> bool:
        return self.opportunity_id is not None and (
            self.created or self.link_changed or self.schedule_changed
        )


@dataclass(slots=True)
class StoredEvent:
    """A calendar_events row as the backfill and externality passes see it."""

    id: str
    user_id: str
    external_id: str
    title: str
    start_time: datetime | None
    attendee_emails: list[str]
    is_external: bool
    account_id: str | None
    opportunity_id: str | None
    owner_email: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "StoredEvent":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            external_id=row["external_id"],
            title=row.get("title") or "",
            start_time=row.get("start_time"),
            attendee_emails=list(row.get("attendees") or []),
            is_external=bool(row.get("is_external")),
            account_id=str(row["account_id"]) if row.get("account_id") else None,
            opportunity_id=str(row["opportunity_id"]) if row.get("opportunity_id") else None,
            owner_email=row.get("owner_email"),
        )


@dataclass(slots=True)
class SyncResult:
    """Counters and per-event errors for one sync run."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    matched: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)
    affected_opportunity_ids: set[str] = field(default_factory=set)

    def record_error(self, external_id: str | None, error: str) -> None:
        self.errors.append({"event_id": external_id or "unknown", "error": error})

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "matched": self.matched,
            "errors": list(self.errors),
        }
