"""
Domain subpackage for the calendar sync feature.
"""

from .matching import (
    build_domain_index,
    email_domain,
    extract_domain,
    has_attendee_at_domain,
    is_external_event,
    match_event,
)
from .models import (
    AccountRecord,
    EventUpsert,
    MatchResult,
    OpportunityRef,
    StoredEvent,
    SyncResult,
    SyncState,
    UpsertOutcome,
    UserContext,
)

__all__ = [
    "AccountRecord",
    "EventUpsert",
    "MatchResult",
    "OpportunityRef",
    "StoredEvent",
    "SyncResult",
    "SyncState",
    "UpsertOutcome",
    "UserContext",
    "build_domain_index",
    "email_domain",
    "extract_domain",
    "has_attendee_at_domain",
    "is_external_event",
    "match_event",
]
