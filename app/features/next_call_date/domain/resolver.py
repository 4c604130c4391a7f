from collections.abc import Iterable
from datetime import datetime

from .models import MeetingCandidate, NextCallDate


def resolve_next_call_date(candidates: Iterable[MeetingCandidate], now: datetime) -> NextCallDate:
    """
    Pick the earliest candidate strictly after `now`.

    Ties keep input order (sorted() is stable). No future candidate yields an
    empty NextCallDate.
    """
    upcoming = sorted((c for c in candidates if c.date > now), key=lambda c: c.date)
    if not upcoming:
        return NextCallDate()
    return NextCallDate.from_candidate(upcoming[0])
