"""
Tests for next-call-date resolution and the recalculation service.
"""

from datetime import timedelta

import pytest

from app.features.next_call_date.domain import (
    SOURCE_CALENDAR,
    SOURCE_CALL_RECORDING,
    SOURCE_MEETING_NOTE,
    MeetingCandidate,
    NextCallDate,
    resolve_next_call_date,
)
from app.features.next_call_date.services.next_call_date_service import NextCallDateService
from app.models.domain.errors import OpportunityNotFoundError
from tests.fakes import NOW, fixed_clock


def _candidate(kind, candidate_id, days):
    return MeetingCandidate(
        kind=kind, id=candidate_id, date=NOW + timedelta(days=days), opportunity_id="opp-1"
    )


class StaticMeetings:
    def __init__(self, candidates):
        self.candidates = candidates
        self.queries = []

    async def list_upcoming(self, opportunity_id, after):
        self.queries.append((opportunity_id, after))
        return [c for c in self.candidates if c.opportunity_id == opportunity_id]


def test_no_candidates_resolves_to_empty():
    assert resolve_next_call_date([], NOW) == NextCallDate(None, None, None)


def test_past_and_present_meetings_are_ignored():
    candidates = [_candidate(SOURCE_CALENDAR, "evt-past", -1), _candidate(SOURCE_CALENDAR, "evt-now", 0)]
    assert resolve_next_call_date(candidates, NOW) == NextCallDate()


def test_earliest_future_meeting_wins_across_sources():
    candidates = [
        _candidate(SOURCE_MEETING_NOTE, "note-1", 5),
        _candidate(SOURCE_CALENDAR, "evt-1", 3),
        _candidate(SOURCE_CALL_RECORDING, "rec-1", 1),
    ]

    result = resolve_next_call_date(candidates, NOW)

    assert result.date == NOW + timedelta(days=1)
    assert result.source == "auto_call_recording"
    assert result.event_id == "rec-1"


def test_ties_keep_source_order():
    candidates = [_candidate(SOURCE_CALENDAR, "evt-1", 2), _candidate(SOURCE_MEETING_NOTE, "note-1", 2)]
    assert resolve_next_call_date(candidates, NOW).event_id == "evt-1"


@pytest.mark.asyncio
async def test_recalculate_persists_winner(opportunities):
    opportunities.add("opp-1")
    meetings = StaticMeetings(
        [_candidate(SOURCE_CALENDAR, "evt-1", 3), _candidate(SOURCE_CALL_RECORDING, "rec-1", 1)]
    )
    service = NextCallDateService(meetings=meetings, opportunities=opportunities, clock=fixed_clock())

    result = await service.recalculate("opp-1")

    record = opportunities.opportunities["opp-1"]
    assert result.source == SOURCE_CALL_RECORDING
    assert record.next_call_date == NOW + timedelta(days=1)
    assert record.next_call_date_source == SOURCE_CALL_RECORDING
    assert record.next_call_date_event_id == "rec-1"
    assert record.next_call_date_last_calculated == NOW
    assert meetings.queries == [("opp-1", NOW)]


@pytest.mark.asyncio
async def test_recalculate_clears_fields_when_nothing_upcoming(opportunities):
    opportunities.add(
        "opp-1",
        next_call_date=NOW - timedelta(days=2),
        next_call_date_source=SOURCE_CALENDAR,
        next_call_date_event_id="evt-old",
    )
    service = NextCallDateService(
        meetings=StaticMeetings([]), opportunities=opportunities, clock=fixed_clock()
    )

    await service.recalculate("opp-1")

    record = opportunities.opportunities["opp-1"]
    assert (record.next_call_date, record.next_call_date_source, record.next_call_date_event_id) == (
        None,
        None,
        None,
    )


@pytest.mark.asyncio
async def test_recalculate_overwrites_manual_value(opportunities):
    opportunities.add(
        "opp-1", next_call_date=NOW + timedelta(days=10), next_call_date_manually_set=True
    )
    meetings = StaticMeetings([_candidate(SOURCE_CALENDAR, "evt-1", 3)])
    service = NextCallDateService(meetings=meetings, opportunities=opportunities, clock=fixed_clock())

    await service.recalculate("opp-1")

    assert opportunities.opportunities["opp-1"].next_call_date == NOW + timedelta(days=3)


@pytest.mark.asyncio
async def test_recalculate_unknown_opportunity_raises(opportunities):
    service = NextCallDateService(
        meetings=StaticMeetings([]), opportunities=opportunities, clock=fixed_clock()
    )

    with pytest.raises(OpportunityNotFoundError):
        await service.recalculate("missing")


@pytest.mark.asyncio
async def test_recalculate_many_skips_missing_and_duplicates(opportunities):
    opportunities.add("opp-1")
    opportunities.add("opp-2")
    service = NextCallDateService(
        meetings=StaticMeetings([]), opportunities=opportunities, clock=fixed_clock()
    )

    count = await service.recalculate_many(["opp-1", "opp-1", None, "opp-2", "missing"])

    assert count == 2
    assert set(opportunities.next_calls) == {"opp-1", "opp-2"}
