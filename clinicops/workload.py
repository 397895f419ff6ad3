"""Workload aggregation over a therapist's sessions in a date window.

Bucketing rules:

* daily key: ``scheduled_date.date().isoformat()``; no timezone conversion
  beyond what the stored value already encodes.
* weekly key: ``"{year}-W{n}"`` with
  ``n = ceil((days_since_jan1 + jan1_weekday + 1) / 7)``, where
  ``days_since_jan1`` is zero-based and ``jan1_weekday`` counts from
  Sunday=0. Weeks therefore start on Sunday and week 1 is the (possibly
  partial) week containing January 1st. This is not ISO-8601.
* weekday key: 0=Sunday .. 6=Saturday.
"""

import math
from datetime import date, datetime

from .records import COUNTED_STATUSES, SessionRecord, WorkloadSummary


def weekday_index(value: datetime) -> int:
    return (value.weekday() + 1) % 7


def week_key(value: datetime) -> str:
    start_of_year = date(value.year, 1, 1)
    days = (value.date() - start_of_year).days
    week_number = math.ceil((days + weekday_index(start_of_year) + 1) / 7)
    return f"{value.year}-W{week_number}"


def parse_week_key(key: str) -> tuple[int, int]:
    year, _, week = key.partition("-W")
    return int(year), int(week)


def _add(buckets: dict, key, hours: float) -> None:
    bucket = buckets.get(key)
    if bucket is None:
        bucket = {"sessions": 0, "hours": 0.0}
        buckets[key] = bucket
    bucket["sessions"] += 1
    bucket["hours"] += hours


def summarize_sessions(sessions: list[SessionRecord]) -> WorkloadSummary:
    summary = WorkloadSummary(sessions=list(sessions))
    total_minutes = 0
    for session in sessions:
        hours = session.duration / 60
        total_minutes += session.duration
        _add(summary.daily_workload, session.scheduled_date.date().isoformat(), hours)
        _add(summary.weekly_workload, week_key(session.scheduled_date), hours)
        _add(summary.by_service, session.service_name, hours)
        _add(summary.by_day_of_week, weekday_index(session.scheduled_date), hours)

    summary.total_sessions = len(sessions)
    summary.total_hours = total_minutes / 60
    if summary.total_sessions:
        summary.average_session_duration = summary.total_hours / summary.total_sessions
    return summary


def summarize(store, therapist_id: int, date_from: datetime, date_to: datetime) -> WorkloadSummary:
    sessions = store.find_sessions(therapist_id, date_from, date_to, COUNTED_STATUSES)
    return summarize_sessions(sessions)


def trend(values) -> float:
    """Percentage change between the first and last value.

    Intermediate points are ignored; this is not a regression slope.
    """
    values = list(values)
    if len(values) < 2:
        return 0
    first = values[0]
    last = values[-1]
    if not first:
        return 0
    return (last - first) / first * 100
