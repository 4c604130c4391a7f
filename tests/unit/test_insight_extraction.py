import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.models.domain.errors import InsightExtractionError
from app.services.insight_extraction_service import InsightExtractionService


def _completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=42),
    )


def _service(*contents):
    client = SimpleNamespace(
        chat=SimpleNamespace(
            completions=SimpleNamespace(
                create=AsyncMock(side_effect=[_completion(c) for c in contents])
            )
        )
    )
    return InsightExtractionService(client=client), client.chat.completions.create


@pytest.mark.asyncio
async def test_extract_parses_snake_case_payload():
    payload = {
        "pain_points": ["Manual CRM updates take 5 hours a week"],
        "goals": ["Automate call notes"],
        "people_mentioned": ["Dana Lee (Acme, VP Sales)"],
        "next_steps": ["Send pricing by Friday"],
        "why_and_why_now": ["Board mandate for Q3"],
        "quantifiable_metrics": ["40 reps"],
    }
    service, create = _service(json.dumps(payload))

    insights = await service.extract("Rep: how do you track calls today?")

    assert insights.to_dict() == payload
    kwargs = create.await_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["messages"][1]["content"].startswith("### Transcript\n")


@pytest.mark.asyncio
async def test_extract_accepts_camel_case_and_missing_fields():
    service, _ = _service(json.dumps({"painPoints": ["Slow onboarding"], "nextSteps": "Demo"}))

    insights = await service.extract("transcript")

    assert insights.pain_points == ["Slow onboarding"]
    assert insights.goals == []
    assert insights.quantifiable_metrics == []


@pytest.mark.asyncio
async def test_invalid_json_raises_extraction_error():
    service, _ = _service("not json at all")

    with pytest.raises(InsightExtractionError) as exc:
        await service.extract("transcript")

    assert "invalid JSON" in exc.value.message


@pytest.mark.asyncio
async def test_empty_content_is_retried():
    service, create = _service("", json.dumps({"goals": ["Cut churn"]}))

    insights = await service.extract("transcript")

    assert insights.goals == ["Cut churn"]
    assert create.await_count == 2


@pytest.mark.asyncio
async def test_empty_transcript_is_rejected_without_calling_openai():
    service, create = _service()

    with pytest.raises(InsightExtractionError):
        await service.extract("   ")

    create.assert_not_awaited()
