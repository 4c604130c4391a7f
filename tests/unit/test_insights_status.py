from datetime import UTC, datetime, timedelta

from app.features.call_insights.domain import CallSummary, get_insights_status

T0 = datetime(2025, 1, 1, tzinfo=UTC)


def _call(call_id, status="completed", parsed_offset_hours=None):
    parsed_at = T0 + timedelta(hours=parsed_offset_hours) if parsed_offset_hours is not None else None
    return CallSummary(id=call_id, parsing_status=status, parsed_at=parsed_at)


def test_no_calls_is_none():
    assert get_insights_status(None, 0, []).state == "none"


def test_nothing_parsed_is_pending():
    status = get_insights_status(None, 0, [_call("c1", "parsing"), _call("c2", "failed")])

    assert status.state == "pending"
    assert status.pending_calls == ["c1", "c2"]
    assert status.total_call_count == 2


def test_parsed_but_never_consolidated_is_ready():
    status = get_insights_status(None, None, [_call("c1", parsed_offset_hours=1), _call("c2", "none")])

    assert status.state == "ready"
    assert status.new_parsed_calls == ["c1"]
    assert status.consolidated_count == 0


def test_consolidation_covering_every_call_is_applied():
    calls = [_call("c1", parsed_offset_hours=1), _call("c2", parsed_offset_hours=2)]

    status = get_insights_status(T0 + timedelta(hours=3), 2, calls)

    assert status.state == "applied"
    assert status.new_parsed_calls == []
    assert status.total_parsed_count == 2


def test_call_parsed_after_consolidation_is_applied_with_new():
    calls = [_call("c1", parsed_offset_hours=1), _call("c2", parsed_offset_hours=5)]

    status = get_insights_status(T0 + timedelta(hours=3), 1, calls)

    assert status.state == "applied_with_new"
    assert status.new_parsed_calls == ["c2"]


def test_completed_without_parsed_at_counts_as_pending():
    status = get_insights_status(None, 0, [_call("c1", "completed")])

    assert status.state == "pending"
    assert status.to_dict()["pending_calls"] == ["c1"]
