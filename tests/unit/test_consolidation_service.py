"""
Tests for insight consolidation and insights status.
"""

import json
from datetime import timedelta

import pytest

from app.features.call_insights.domain import (
    CALL_KIND_MEETING_NOTE,
    CALL_KIND_RECORDING,
    ExtractedInsights,
)
from app.features.call_insights.services.consolidation_service import (
    CONSOLIDATE_INSIGHTS_TASK,
    InsightConsolidationService,
)
from app.jobs.task_queue import TaskQueue, TaskQueueError
from app.models.domain.errors import ConsolidationPreconditionError, OpportunityNotFoundError
from tests.fakes import NOW, fixed_clock

QUEUE = "test:tasks"


@pytest.fixture
def service(calls, opportunities, fake_redis):
    opportunities.add("opp-1")
    return InsightConsolidationService(
        calls=calls,
        opportunities=opportunities,
        queue=TaskQueue(redis_client=fake_redis, queue_name=QUEUE),
        clock=fixed_clock(),
    )


def _parsed(calls, kind, call_id, days_ago, risk=None, **insights):
    return calls.add(
        kind,
        call_id,
        meeting_date=NOW - timedelta(days=days_ago),
        parsing_status="completed",
        parsed_at=NOW - timedelta(days=days_ago) + timedelta(hours=1),
        insights=ExtractedInsights(**insights),
        risk_assessment=risk,
    )


@pytest.mark.asyncio
async def test_one_completed_call_fails_precondition_without_writes(
    service, calls, opportunities, fake_redis
):
    _parsed(calls, CALL_KIND_RECORDING, "rec-1", 3, pain_points=["Slow onboarding"])
    calls.add(CALL_KIND_MEETING_NOTE, "note-1", parsing_status="parsing")

    with pytest.raises(ConsolidationPreconditionError) as exc:
        await service.request_consolidation("opp-1")

    assert exc.value.completed_calls == 1
    assert opportunities.opportunities["opp-1"].consolidation_status == "none"
    assert QUEUE not in fake_redis.lists


@pytest.mark.asyncio
async def test_two_completed_calls_accepted_and_enqueued(service, calls, opportunities, fake_redis):
    _parsed(calls, CALL_KIND_RECORDING, "rec-1", 3)
    _parsed(calls, CALL_KIND_MEETING_NOTE, "note-1", 1)

    completed = await service.request_consolidation("opp-1")

    assert completed == 2
    assert opportunities.opportunities["opp-1"].consolidation_status == "processing"
    message = json.loads(fake_redis.lists[QUEUE][0])
    assert message["name"] == CONSOLIDATE_INSIGHTS_TASK
    assert message["payload"] == {"opportunity_id": "opp-1"}


@pytest.mark.asyncio
async def test_queue_failure_marks_consolidation_failed(service, calls, opportunities, fake_redis):
    _parsed(calls, CALL_KIND_RECORDING, "rec-1", 3)
    _parsed(calls, CALL_KIND_MEETING_NOTE, "note-1", 1)
    opportunities.consolidations["opp-1"] = {"pain_points": ["kept"]}
    fake_redis.lpush_error = ConnectionError("Redis unavailable")

    with pytest.raises(TaskQueueError):
        await service.request_consolidation("opp-1")

    assert opportunities.opportunities["opp-1"].consolidation_status == "failed"
    assert opportunities.consolidation_errors["opp-1"] == "Could not queue consolidation"
    assert opportunities.consolidations["opp-1"] == {"pain_points": ["kept"]}


@pytest.mark.asyncio
async def test_unknown_opportunity_raises(service):
    with pytest.raises(OpportunityNotFoundError):
        await service.request_consolidation("missing")


@pytest.mark.asyncio
async def test_task_merges_calls_in_meeting_order(service, calls, opportunities):
    _parsed(
        calls,
        CALL_KIND_MEETING_NOTE,
        "note-new",
        1,
        risk={"level": "low"},
        pain_points=["Budget freeze"],
        quantifiable_metrics=["$40k budget"],
    )
    _parsed(
        calls,
        CALL_KIND_RECORDING,
        "rec-old",
        10,
        risk={"level": "high"},
        pain_points=["Manual reporting"],
        goals=["Automate QBRs"],
        why_and_why_now=["Board review in Q3"],
        quantifiable_metrics=["12 reps"],
    )
    _parsed(calls, CALL_KIND_RECORDING, "rec-mid", 5, pain_points=["Manual reporting"])

    assert await service.run_consolidation_task({"opportunity_id": "opp-1"}) is True

    merged = opportunities.consolidations["opp-1"]
    assert merged["pain_points"] == ["Manual reporting", "Manual reporting", "Budget freeze"]
    assert merged["goals"] == ["Automate QBRs"]
    assert merged["why_and_why_now"] == ["Board review in Q3"]
    assert merged["metrics"] == ["12 reps", "$40k budget"]
    assert merged["risk_assessment"] == {"level": "low"}

    record = opportunities.opportunities["opp-1"]
    assert record.consolidation_status == "completed"
    assert record.consolidation_call_count == 3
    assert record.last_consolidated_at == NOW


@pytest.mark.asyncio
async def test_task_fails_when_calls_dropped_below_minimum(service, calls, opportunities):
    _parsed(calls, CALL_KIND_RECORDING, "rec-1", 3)
    opportunities.consolidations["opp-1"] = {"pain_points": ["kept"]}

    assert await service.run_consolidation_task({"opportunity_id": "opp-1"}) is False

    assert opportunities.opportunities["opp-1"].consolidation_status == "failed"
    assert opportunities.consolidations["opp-1"] == {"pain_points": ["kept"]}
    assert "at least 2" in opportunities.consolidation_errors["opp-1"]


@pytest.mark.asyncio
async def test_task_failure_marks_failed(service, calls, opportunities):
    _parsed(calls, CALL_KIND_RECORDING, "rec-1", 3)
    _parsed(calls, CALL_KIND_RECORDING, "rec-2", 2)

    async def broken(*args, **kwargs):
        raise RuntimeError("write conflict")

    opportunities.save_consolidation = broken

    assert await service.run_consolidation_task({"opportunity_id": "opp-1"}) is False
    assert opportunities.opportunities["opp-1"].consolidation_status == "failed"
    assert "write conflict" in opportunities.consolidation_errors["opp-1"]


@pytest.mark.asyncio
async def test_insights_status_reports_new_calls_after_consolidation(service, calls, opportunities):
    _parsed(calls, CALL_KIND_RECORDING, "rec-1", 3)
    _parsed(calls, CALL_KIND_RECORDING, "rec-2", 2)
    await service.run_consolidation_task({"opportunity_id": "opp-1"})

    late = _parsed(calls, CALL_KIND_MEETING_NOTE, "note-1", 0)
    late.parsed_at = NOW + timedelta(minutes=5)

    status = await service.get_insights_status("opp-1")

    assert status.state == "applied_with_new"
    assert status.new_parsed_calls == ["note-1"]
    assert status.consolidated_count == 2
