from datetime import datetime

from .records import CapacityProfile, WorkloadSummary
from .workload import parse_week_key, summarize, trend


def utilization(profile: CapacityProfile | None, summary: WorkloadSummary | None) -> float:
    """Utilization as the tighter of two ratios, in percent.

    Mixes a daily hour ratio with a weekly session ratio on purpose and
    takes the max, so whichever limit is closer to breaking wins. No clamp:
    values above 100 are expected for long windows.
    """
    if profile is None or summary is None:
        return 0
    daily_utilization = summary.total_hours / profile.max_hours_per_day * 100
    weekly_utilization = summary.total_sessions / profile.max_sessions_per_week * 100
    return max(daily_utilization, weekly_utilization)


def trend_direction(percentage: float) -> str:
    if percentage > 0:
        return "increasing"
    if percentage < 0:
        return "decreasing"
    return "stable"


def order_weekly(weekly_buckets: dict) -> dict:
    return {key: weekly_buckets[key] for key in sorted(weekly_buckets, key=parse_week_key)}


def analyze_trend(weekly_buckets: dict) -> dict:
    ordered = order_weekly(weekly_buckets)
    percentage = trend(bucket["sessions"] for bucket in ordered.values())
    return {
        "weekly": ordered,
        "direction": trend_direction(percentage),
        "percentage": percentage,
    }


def workload_trends(store, therapist_id: int, date_from: datetime, date_to: datetime) -> dict:
    summary = summarize(store, therapist_id, date_from, date_to)
    return analyze_trend(summary.weekly_workload)
