from collections.abc import Sequence

from .models import ConsolidatedInsights, CallRecord

MIN_CALLS_FOR_CONSOLIDATION = 2


def merge_call_insights(calls: Sequence[CallRecord]) -> ConsolidatedInsights:
    """
    Collect per-call insights into one opportunity-level summary.

    `calls` must be ordered oldest meeting first. List fields are concatenated
    in that order; the risk assessment is the newest call's non-null one.
    """
    merged = ConsolidatedInsights()
    for call in calls:
        if call.insights is None:
            continue
        merged.pain_points.extend(call.insights.pain_points)
        merged.goals.extend(call.insights.goals)
        merged.why_and_why_now.extend(call.insights.why_and_why_now)
        merged.metrics.extend(call.insights.quantifiable_metrics)

    for call in reversed(calls):
        if call.risk_assessment is not None:
            merged.risk_assessment = call.risk_assessment
            break

    return merged
