"""Dashboard payloads built by fanning the engine out over therapists.

Per-therapist work runs on a bounded thread pool and is joined in the
order the therapist list was fetched. A data store failure for one
therapist drops that therapist from the result; the call still succeeds.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime

import structlog

from .alerts import list_rules
from .analytics import utilization
from .capacity import get_capacity
from .config import settings
from .errors import DependencyFailure
from .recommendations import (
    OVERLOADED_UTILIZATION,
    UNDERUTILIZED_UTILIZATION,
    project_workload,
    recommend,
)
from .records import SessionRecord, TherapistRef
from .workload import summarize

logger = structlog.get_logger("clinicops.reporting")

PERIOD_GROUPS = ("day", "week", "month", "quarter", "year")
# period-over-period changes within this many percent are "stable"
PERIOD_TREND_TOLERANCE = 5
COMPARISON_METRICS = (
    "totalSessions",
    "completedSessions",
    "cancelledSessions",
    "noShowSessions",
    "completionRate",
    "cancellationRate",
    "noShowRate",
)


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0


def _rate(part: int, total: int) -> float:
    return part / total * 100 if total > 0 else 0


def fan_out(therapists: list[TherapistRef], worker) -> list:
    if not therapists:
        return []
    max_workers = max(1, min(int(settings.ANALYTICS_MAX_WORKERS), len(therapists)))
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(worker, therapist) for therapist in therapists]

    results = []
    for therapist, future in zip(therapists, futures):
        try:
            results.append(future.result())
        except DependencyFailure as exc:
            logger.warning("therapist_aggregation_failed", therapist_id=therapist.id, error=str(exc))
    return results


def _load(store, therapist: TherapistRef, date_from: datetime, date_to: datetime):
    capacity = get_capacity(store, therapist.id)
    workload = summarize(store, therapist.id, date_from, date_to)
    return capacity, workload, utilization(capacity, workload)


def overview(store, date_from: datetime, date_to: datetime, therapist_id: int | None = None) -> dict:
    therapists = store.find_active_therapists(therapist_id)

    def build(therapist: TherapistRef) -> dict:
        capacity, workload, value = _load(store, therapist, date_from, date_to)
        try:
            alerts = [rule.to_dict() for rule in list_rules(store, therapist_id=therapist.id, is_active=True)]
        except DependencyFailure as exc:
            logger.warning("therapist_alerts_unavailable", therapist_id=therapist.id, error=str(exc))
            alerts = []
        return {
            "therapist": therapist.to_dict(),
            "capacity": capacity.to_dict(),
            "workload": workload.to_dict(),
            "alerts": alerts,
            "utilization": value,
        }

    rows = fan_out(therapists, build)
    return {
        "overview": rows,
        "summary": {
            "totalTherapists": len(therapists),
            "averageUtilization": _mean([row["utilization"] for row in rows]),
            "totalAlerts": sum(len(row["alerts"]) for row in rows),
        },
    }


def analytics(store, date_from: datetime, date_to: datetime) -> dict:
    therapists = store.find_active_therapists()

    def build(therapist: TherapistRef) -> dict:
        capacity, workload, value = _load(store, therapist, date_from, date_to)
        return {
            "therapistId": therapist.id,
            "therapistName": therapist.full_name,
            "capacity": capacity.to_dict(),
            "workload": workload.to_dict(),
            "utilization": value,
        }

    rows = fan_out(therapists, build)
    values = [row["utilization"] for row in rows]
    return {
        "therapists": rows,
        "summary": {
            "averageUtilization": _mean(values),
            "maxUtilization": max(values) if values else 0,
            "minUtilization": min(values) if values else 0,
            "totalSessions": sum(row["workload"]["totalSessions"] for row in rows),
            "totalHours": sum(row["workload"]["totalHours"] for row in rows),
        },
    }


def workload_analysis(
    store,
    date_from: datetime,
    date_to: datetime,
    therapist_id: int | None = None,
    include_projections: bool = True,
) -> dict:
    therapists = store.find_active_therapists(therapist_id)

    def build(therapist: TherapistRef) -> dict:
        capacity, workload, value = _load(store, therapist, date_from, date_to)
        return {
            "therapist": therapist.to_dict(),
            "capacity": capacity.to_dict(),
            "workload": workload.to_dict(),
            "utilization": value,
            "projections": project_workload(capacity, workload) if include_projections else None,
            "recommendations": recommend(capacity, workload, value),
        }

    rows = fan_out(therapists, build)
    return {
        "analysis": rows,
        "summary": {
            "totalTherapists": len(therapists),
            "averageUtilization": _mean([row["utilization"] for row in rows]),
            "overloadedTherapists": sum(1 for row in rows if row["utilization"] > OVERLOADED_UTILIZATION),
            "underutilizedTherapists": sum(1 for row in rows if row["utilization"] < UNDERUTILIZED_UTILIZATION),
        },
    }


def scheduling_performance(sessions: list[SessionRecord]) -> dict:
    total = len(sessions)
    completed = sum(1 for s in sessions if s.status == "COMPLETED")
    cancelled = sum(1 for s in sessions if s.status == "CANCELLED")
    no_show = sum(1 for s in sessions if s.status == "NO_SHOW")
    rescheduled = sum(1 for s in sessions if s.status == "RESCHEDULE_REQUESTED")
    return {
        "totalSessions": total,
        "completedSessions": completed,
        "cancelledSessions": cancelled,
        "noShowSessions": no_show,
        "rescheduledSessions": rescheduled,
        "completionRate": _rate(completed, total),
        "cancellationRate": _rate(cancelled, total),
        "noShowRate": _rate(no_show, total),
        "rescheduleRate": _rate(rescheduled, total),
    }


def period_key(value: datetime, group_by: str) -> str:
    if group_by == "week":
        # weeks start on Sunday
        start = value.date().toordinal() - (value.weekday() + 1) % 7
        return date.fromordinal(start).isoformat()
    if group_by == "month":
        return f"{value.year}-{value.month:02d}"
    if group_by == "quarter":
        return f"{value.year}-Q{(value.month - 1) // 3 + 1}"
    if group_by == "year":
        return str(value.year)
    return value.date().isoformat()


def performance_by_period(sessions: list[SessionRecord], group_by: str = "day") -> dict:
    performance = []
    for key, items in group_by_period(sessions, group_by):
        metrics = scheduling_performance(items)
        performance.append(
            {
                "period": key,
                "totalSessions": metrics["totalSessions"],
                "completedSessions": metrics["completedSessions"],
                "cancelledSessions": metrics["cancelledSessions"],
                "noShowSessions": metrics["noShowSessions"],
                "completionRate": metrics["completionRate"],
                "cancellationRate": metrics["cancellationRate"],
                "noShowRate": metrics["noShowRate"],
            }
        )

    summary = {}
    if performance:
        total = sum(p["totalSessions"] for p in performance)
        completed = sum(p["completedSessions"] for p in performance)
        cancelled = sum(p["cancelledSessions"] for p in performance)
        no_show = sum(p["noShowSessions"] for p in performance)
        summary = {
            "totalSessions": total,
            "totalCompleted": completed,
            "totalCancelled": cancelled,
            "totalNoShow": no_show,
            "averageCompletionRate": _rate(completed, total),
            "averageCancellationRate": _rate(cancelled, total),
            "averageNoShowRate": _rate(no_show, total),
        }
    return {"groupBy": group_by, "performance": performance, "summary": summary}


def group_by_period(sessions: list[SessionRecord], group_by: str) -> list[tuple[str, list[SessionRecord]]]:
    groups: dict[str, list[SessionRecord]] = {}
    for session in sessions:
        groups.setdefault(period_key(session.scheduled_date, group_by), []).append(session)
    return [(key, groups[key]) for key in sorted(groups)]


def period_trend(counts: list[int]) -> dict:
    """Direction and size of the change from the first to the last period.

    Changes within the tolerance band count as stable. The percentage is
    reported unsigned; ``direction`` carries the sign.
    """
    if len(counts) < 2:
        return {"direction": "stable", "percentage": 0}
    first, last = counts[0], counts[-1]
    percentage = (last - first) / first * 100 if first > 0 else 0
    if percentage > PERIOD_TREND_TOLERANCE:
        direction = "increasing"
    elif percentage < -PERIOD_TREND_TOLERANCE:
        direction = "decreasing"
    else:
        direction = "stable"
    return {"direction": direction, "percentage": abs(percentage)}


def trend_by_period(sessions: list[SessionRecord], group_by: str = "week") -> dict:
    grouped = group_by_period(sessions, group_by)
    data = [
        {"period": key, "totalSessions": len(items), "sessions": [s.to_dict() for s in items]}
        for key, items in grouped
    ]
    return {
        "groupBy": group_by,
        "trends": period_trend([len(items) for _, items in grouped]),
        "data": data,
    }


def period_trends(
    store,
    date_from: datetime,
    date_to: datetime,
    therapist_id: int | None = None,
    group_by: str = "week",
) -> dict:
    result = trend_by_period(store.find_sessions(therapist_id, date_from, date_to), group_by)
    result["dateRange"] = {"from": date_from.isoformat(), "to": date_to.isoformat()}
    return result


def therapist_period_utilization(
    sessions: list[SessionRecord],
    therapists: dict[int, TherapistRef],
    group_by: str = "day",
) -> list[dict]:
    rows: dict[int, dict] = {}
    for session in sessions:
        row = rows.get(session.therapist_id)
        if row is None:
            therapist = therapists.get(session.therapist_id) or TherapistRef(id=session.therapist_id)
            row = {
                "therapistId": session.therapist_id,
                "therapistName": therapist.full_name,
                "totalSessions": 0,
                "totalHours": 0.0,
                "periods": {},
            }
            rows[session.therapist_id] = row
        hours = session.duration / 60
        row["totalSessions"] += 1
        row["totalHours"] += hours

        key = period_key(session.scheduled_date, group_by)
        period = row["periods"].setdefault(key, {"period": key, "sessions": 0, "hours": 0.0})
        period["sessions"] += 1
        period["hours"] += hours

    for row in rows.values():
        row["periods"] = [row["periods"][key] for key in sorted(row["periods"])]
    return list(rows.values())


def utilization_summary(rows: list[dict]) -> dict:
    if not rows:
        return {}
    total_sessions = sum(row["totalSessions"] for row in rows)
    total_hours = sum(row["totalHours"] for row in rows)
    return {
        "totalSessions": total_sessions,
        "totalHours": total_hours,
        "averageSessionsPerTherapist": total_sessions / len(rows),
        "averageHoursPerTherapist": total_hours / len(rows),
        "totalTherapists": len(rows),
    }


def utilization_by_period(
    store,
    date_from: datetime,
    date_to: datetime,
    therapist_id: int | None = None,
    group_by: str = "day",
) -> dict:
    sessions = store.find_sessions(therapist_id, date_from, date_to)
    therapists = {}
    for tid in sorted({s.therapist_id for s in sessions}):
        therapists[tid] = store.find_therapist(tid) or TherapistRef(id=tid)

    rows = therapist_period_utilization(sessions, therapists, group_by)
    return {
        "groupBy": group_by,
        "dateRange": {"from": date_from.isoformat(), "to": date_to.isoformat()},
        "utilization": rows,
        "summary": utilization_summary(rows),
    }


def _shift_year(value: datetime, years: int) -> datetime:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # 29 February
        return value.replace(year=value.year + years, day=28)


def comparison_window(date_from: datetime, date_to: datetime, compare_with: str) -> tuple[datetime, datetime]:
    if compare_with == "same-period-last-year":
        return _shift_year(date_from, -1), _shift_year(date_to, -1)
    length = date_to - date_from
    return date_from - length, date_to - length


def compare_metrics(current: dict, previous: dict) -> dict:
    comparison = {}
    for metric in COMPARISON_METRICS:
        current_value = current.get(metric) or 0
        previous_value = previous.get(metric) or 0
        change = current_value - previous_value
        if change > 0:
            direction = "increase"
        elif change < 0:
            direction = "decrease"
        else:
            direction = "stable"
        comparison[metric] = {
            "current": current_value,
            "comparison": previous_value,
            "change": change,
            "percentageChange": change / previous_value * 100 if previous_value > 0 else 0,
            "direction": direction,
        }
    return comparison


def compare_periods(store, date_from: datetime, date_to: datetime, compare_with: str = "previous-period") -> dict:
    previous_from, previous_to = comparison_window(date_from, date_to, compare_with)
    current = scheduling_performance(store.find_sessions(None, date_from, date_to))
    previous = scheduling_performance(store.find_sessions(None, previous_from, previous_to))
    return {
        "currentPeriod": {"from": date_from.isoformat(), "to": date_to.isoformat(), "data": current},
        "comparisonPeriod": {"from": previous_from.isoformat(), "to": previous_to.isoformat(), "data": previous},
        "comparison": compare_metrics(current, previous),
    }
