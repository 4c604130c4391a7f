"""
Domain models for call parsing and insight consolidation.

Recordings and meeting notes share one CallRecord shape; `kind` says which
table a record lives in.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

CALL_KIND_RECORDING = "call_recording"
CALL_KIND_MEETING_NOTE = "meeting_note"
CALL_KINDS: tuple[str, ...] = (CALL_KIND_RECORDING, CALL_KIND_MEETING_NOTE)

CallKind = Literal["call_recording", "meeting_note"]

PARSING_NONE = "none"
PARSING_IN_PROGRESS = "parsing"
PARSING_COMPLETED = "completed"
PARSING_FAILED = "failed"

CONSOLIDATION_NONE = "none"
CONSOLIDATION_PROCESSING = "processing"
CONSOLIDATION_COMPLETED = "completed"
CONSOLIDATION_FAILED = "failed"

# Extracted list fields, in the order they are stored
INSIGHT_FIELDS: tuple[str, ...] = (
    "pain_points",
    "goals",
    "people_mentioned",
    "next_steps",
    "why_and_why_now",
    "quantifiable_metrics",
)


def _string_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


@dataclass(slots=True)
class ExtractedInsights:
    """Structured output of the extraction collaborator for one transcript."""

    pain_points: list[str] = field(default_factory=list)
    goals: list[str] = field(default_factory=list)
    people_mentioned: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    why_and_why_now: list[str] = field(default_factory=list)
    quantifiable_metrics: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ExtractedInsights":
        """Accepts snake_case or camelCase keys; anything missing becomes an empty list."""
        camel = {
            "pain_points": "painPoints",
            "people_mentioned": "peopleMentioned",
            "next_steps": "nextSteps",
            "why_and_why_now": "whyAndWhyNow",
            "quantifiable_metrics": "quantifiableMetrics",
        }
        values = {}
        for name in INSIGHT_FIELDS:
            raw = payload.get(name)
            if raw is None and name in camel:
                raw = payload.get(camel[name])
            values[name] = _string_list(raw)
        return cls(**values)

    def to_dict(self) -> dict[str, list[str]]:
        return {name: list(getattr(self, name)) for name in INSIGHT_FIELDS}


@dataclass(slots=True)
class CallRecord:
    id: str
    kind: str
    opportunity_id: str | None
    title: str
    meeting_date: datetime | None
    parsing_status: str
    parse_generation: int
    parsed_at: datetime | None = None
    parsing_error: str | None = None
    transcript_text: str | None = None
    insights: ExtractedInsights | None = None
    risk_assessment: dict[str, Any] | None = None

    @classmethod
    def from_row(cls, kind: str, row: dict[str, Any]) -> "CallRecord":
        has_payload = any(row.get(name) is not None for name in INSIGHT_FIELDS)
        return cls(
            id=str(row["id"]),
            kind=kind,
            opportunity_id=str(row["opportunity_id"]) if row.get("opportunity_id") else None,
            title=row.get("title") or "",
            meeting_date=row.get("meeting_date"),
            parsing_status=row.get("parsing_status") or PARSING_NONE,
            parse_generation=row.get("parse_generation") or 0,
            parsed_at=row.get("parsed_at"),
            parsing_error=row.get("parsing_error"),
            transcript_text=row.get("transcript_text"),
            insights=ExtractedInsights.from_payload(row) if has_payload else None,
            risk_assessment=row.get("risk_assessment"),
        )

    def parsing_status_dict(self) -> dict[str, Any]:
        return {
            "call_id": self.id,
            "kind": self.kind,
            "status": self.parsing_status,
            "parsed_at": self.parsed_at.isoformat() if self.parsed_at else None,
            "error": self.parsing_error,
            "insights": self.insights.to_dict() if self.insights else None,
        }


@dataclass(slots=True)
class ConsolidatedInsights:
    pain_points: list[str] = field(default_factory=list)
    goals: list[str] = field(default_factory=list)
    why_and_why_now: list[str] = field(default_factory=list)
    metrics: list[str] = field(default_factory=list)
    risk_assessment: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pain_points": list(self.pain_points),
            "goals": list(self.goals),
            "why_and_why_now": list(self.why_and_why_now),
            "metrics": list(self.metrics),
            "risk_assessment": self.risk_assessment,
        }


@dataclass(slots=True)
class CallSummary:
    """Minimal view of a call used for insights-status classification."""

    id: str
    parsing_status: str
    parsed_at: datetime | None
