# app/models/domain/opportunity_domain.py
"""
Opportunity Domain Model
The derived fields this backend maintains on an opportunity: next call date
with provenance and consolidated insights.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(slots=True)
class OpportunityRecord:
    id: str
    account_id: str
    name: str
    next_call_date: datetime | None = None
    next_call_date_source: str | None = None
    next_call_date_event_id: str | None = None
    next_call_date_last_calculated: datetime | None = None
    next_call_date_manually_set: bool = False
    consolidation_status: str = "none"
    last_consolidated_at: datetime | None = None
    consolidation_call_count: int = 0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "OpportunityRecord":
        return cls(
            id=str(row["id"]),
            account_id=str(row["account_id"]),
            name=row.get("name") or "",
            next_call_date=row.get("next_call_date"),
            next_call_date_source=row.get("next_call_date_source"),
            next_call_date_event_id=row.get("next_call_date_event_id"),
            next_call_date_last_calculated=row.get("next_call_date_last_calculated"),
            next_call_date_manually_set=bool(row.get("next_call_date_manually_set")),
            consolidation_status=row.get("consolidation_status") or "none",
            last_consolidated_at=row.get("last_consolidated_at"),
            consolidation_call_count=row.get("consolidation_call_count") or 0,
        )
