from datetime import datetime

import pytest

from clinicops.alerts import create_rule
from clinicops.capacity import set_capacity
from clinicops.errors import DependencyFailure
from clinicops.records import SessionRecord
from clinicops.reporting import (
    analytics,
    compare_periods,
    comparison_window,
    overview,
    performance_by_period,
    period_trend,
    period_trends,
    scheduling_performance,
    utilization_by_period,
    workload_analysis,
)

WINDOW = (datetime(2026, 3, 1), datetime(2026, 3, 31, 23, 59))


class FailingSessionsStore:
    def __init__(self, inner, failing_id: int):
        self.inner = inner
        self.failing_id = failing_id

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def find_sessions(self, therapist_id, *args, **kwargs):
        if therapist_id == self.failing_id:
            raise DependencyFailure("find_sessions failed")
        return self.inner.find_sessions(therapist_id, *args, **kwargs)


class FailingRulesStore:
    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def find_alert_rules(self, *args, **kwargs):
        raise DependencyFailure("find_alert_rules failed")


def _record(day: int, status: str, month: int = 3) -> SessionRecord:
    return SessionRecord(
        id=day,
        therapist_id=1,
        scheduled_date=datetime(2026, month, day, 10, 0),
        duration=60,
        status=status,
        service_name="Physiotherapy",
    )


def _seed_team(seed):
    light_id = seed.therapist("Light")
    broken_id = seed.therapist("Broken")
    busy_id = seed.therapist("Busy")
    seed.therapist("Gone", is_active=False)
    for day in (2, 3):
        seed.session(light_id, datetime(2026, 3, day, 9, 0), duration=60)
    for day in (2, 3, 4, 5):
        seed.session(busy_id, datetime(2026, 3, day, 9, 0), duration=90)
    seed.session(broken_id, datetime(2026, 3, 2, 9, 0), duration=60)
    return light_id, broken_id, busy_id


def test_analytics_survives_one_failing_therapist(store, seed):
    light_id, broken_id, busy_id = _seed_team(seed)

    result = analytics(FailingSessionsStore(store, broken_id), *WINDOW)

    assert [row["therapistId"] for row in result["therapists"]] == [light_id, busy_id]
    assert [row["utilization"] for row in result["therapists"]] == [25, 75]
    assert result["summary"] == {
        "averageUtilization": 50,
        "maxUtilization": 75,
        "minUtilization": 25,
        "totalSessions": 6,
        "totalHours": 8,
    }


def test_analytics_with_no_therapists_has_zero_summary(store):
    result = analytics(store, *WINDOW)

    assert result["therapists"] == []
    assert result["summary"] == {
        "averageUtilization": 0,
        "maxUtilization": 0,
        "minUtilization": 0,
        "totalSessions": 0,
        "totalHours": 0,
    }


def test_overview_keeps_therapist_order_and_counts_rules(store, seed):
    light_id, broken_id, busy_id = _seed_team(seed)
    create_rule(store, busy_id, "WORKLOAD_HIGH", 80)
    create_rule(store, busy_id, "CAPACITY_EXCEEDED", 90)
    create_rule(store, light_id, "OVERTIME_WARNING", 70, is_active=False)

    result = overview(store, *WINDOW)

    assert [row["therapist"]["id"] for row in result["overview"]] == [light_id, broken_id, busy_id]
    assert result["overview"][0]["therapist"] == {
        "id": light_id,
        "firstName": "Light",
        "lastName": "Nowak",
        "email": "light@clinic.local",
    }
    assert [len(row["alerts"]) for row in result["overview"]] == [0, 0, 2]
    assert result["summary"]["totalTherapists"] == 3
    assert result["summary"]["totalAlerts"] == 2
    assert result["summary"]["averageUtilization"] == pytest.approx((25 + 12.5 + 75) / 3)


def test_overview_for_one_therapist_uses_stored_capacity(store, seed):
    light_id, _, _ = _seed_team(seed)
    set_capacity(
        store,
        {
            "therapist_id": light_id,
            "max_sessions_per_day": 4,
            "max_sessions_per_week": 10,
            "max_sessions_per_month": 40,
            "max_hours_per_day": 4,
            "max_hours_per_week": 20,
            "preferred_session_duration": 60,
        },
    )

    result = overview(store, *WINDOW, therapist_id=light_id)

    assert len(result["overview"]) == 1
    assert result["overview"][0]["capacity"]["maxHoursPerDay"] == 4
    assert result["overview"][0]["utilization"] == 50


def test_overview_with_no_therapists_is_zero_not_nan(store):
    result = overview(store, *WINDOW)
    assert result["summary"] == {"totalTherapists": 0, "averageUtilization": 0, "totalAlerts": 0}


def test_workload_analysis_flags_over_and_under_utilization(store, seed):
    light_id, _, busy_id = _seed_team(seed)
    for day in (9, 10, 11):
        seed.session(busy_id, datetime(2026, 3, day, 9, 0), duration=60)

    result = workload_analysis(store, *WINDOW)

    rows = {row["therapist"]["id"]: row for row in result["analysis"]}
    assert rows[busy_id]["utilization"] == 112.5
    assert rows[busy_id]["recommendations"][0] == "Consider reducing session load or increasing capacity limits"
    assert rows[light_id]["projections"]["nextWeek"]["projectedSessions"] == pytest.approx(2.2)
    assert result["summary"]["overloadedTherapists"] == 1
    assert result["summary"]["underutilizedTherapists"] == 2


def test_workload_analysis_without_projections(store, seed):
    light_id, _, _ = _seed_team(seed)

    result = workload_analysis(store, *WINDOW, therapist_id=light_id, include_projections=False)

    assert result["analysis"][0]["projections"] is None
    assert result["summary"]["totalTherapists"] == 1


def test_scheduling_performance_rates():
    sessions = [
        _record(2, "COMPLETED"),
        _record(3, "COMPLETED"),
        _record(4, "CANCELLED"),
        _record(5, "NO_SHOW"),
        _record(6, "RESCHEDULE_REQUESTED"),
        _record(7, "SCHEDULED"),
        _record(8, "COMPLETED"),
        _record(9, "CONFIRMED"),
    ]

    metrics = scheduling_performance(sessions)

    assert metrics["totalSessions"] == 8
    assert metrics["completionRate"] == 37.5
    assert metrics["cancellationRate"] == 12.5
    assert metrics["noShowRate"] == 12.5
    assert metrics["rescheduleRate"] == 12.5


def test_scheduling_performance_empty():
    metrics = scheduling_performance([])
    assert metrics["completionRate"] == 0
    assert metrics["cancellationRate"] == 0
    assert metrics["noShowRate"] == 0
    assert metrics["rescheduleRate"] == 0


def test_performance_by_period_groups_and_sorts():
    sessions = [
        _record(10, "COMPLETED", month=4),
        _record(2, "COMPLETED"),
        _record(4, "NO_SHOW"),
        _record(15, "CANCELLED"),
    ]

    weekly = performance_by_period(sessions, "week")
    monthly = performance_by_period(sessions, "month")
    quarterly = performance_by_period(sessions, "quarter")

    # weeks are keyed by their Sunday
    assert [p["period"] for p in weekly["performance"]] == ["2026-03-01", "2026-03-15", "2026-04-05"]
    assert weekly["performance"][0]["totalSessions"] == 2
    assert weekly["performance"][0]["noShowRate"] == 50
    assert [p["period"] for p in monthly["performance"]] == ["2026-03", "2026-04"]
    assert [p["period"] for p in quarterly["performance"]] == ["2026-Q1", "2026-Q2"]
    assert monthly["summary"]["totalSessions"] == 4
    assert monthly["summary"]["averageCompletionRate"] == 50


def test_performance_by_period_empty_summary():
    assert performance_by_period([], "day") == {"groupBy": "day", "performance": [], "summary": {}}


def test_comparison_windows():
    start, end = datetime(2026, 3, 1), datetime(2026, 3, 31)

    assert comparison_window(start, end, "previous-period") == (datetime(2026, 1, 30), datetime(2026, 3, 1))
    assert comparison_window(start, end, "same-period-last-year") == (datetime(2025, 3, 1), datetime(2025, 3, 31))
    assert comparison_window(datetime(2028, 2, 29), datetime(2028, 3, 1), "same-period-last-year")[0] == datetime(
        2027, 2, 28
    )


def test_compare_periods_against_previous_window(store, seed):
    therapist_id = seed.therapist()
    seed.session(therapist_id, datetime(2026, 3, 5, 9, 0), status="COMPLETED")
    seed.session(therapist_id, datetime(2026, 3, 6, 9, 0), status="COMPLETED")
    seed.session(therapist_id, datetime(2026, 2, 5, 9, 0), status="CANCELLED")

    result = compare_periods(store, datetime(2026, 3, 1), datetime(2026, 3, 31))

    completed = result["comparison"]["completedSessions"]
    assert completed == {"current": 2, "comparison": 0, "change": 2, "percentageChange": 0, "direction": "increase"}
    total = result["comparison"]["totalSessions"]
    assert total["percentageChange"] == 100
    assert result["comparison"]["cancelledSessions"]["direction"] == "decrease"
    assert result["comparisonPeriod"]["from"] == "2026-01-30T00:00:00"


def test_overview_drops_failed_therapist_but_counts_it(store, seed):
    light_id, broken_id, busy_id = _seed_team(seed)

    result = overview(FailingSessionsStore(store, broken_id), *WINDOW)

    assert [row["therapist"]["id"] for row in result["overview"]] == [light_id, busy_id]
    assert result["summary"]["totalTherapists"] == 3
    assert result["summary"]["averageUtilization"] == 50


def test_overview_falls_back_to_no_alerts_when_rules_unavailable(store, seed):
    light_id, broken_id, busy_id = _seed_team(seed)
    create_rule(store, busy_id, "WORKLOAD_HIGH", 80)

    result = overview(FailingRulesStore(store), *WINDOW)

    assert [row["therapist"]["id"] for row in result["overview"]] == [light_id, broken_id, busy_id]
    assert [row["alerts"] for row in result["overview"]] == [[], [], []]
    assert result["summary"]["totalAlerts"] == 0


def test_workload_analysis_drops_failed_therapist(store, seed):
    light_id, broken_id, busy_id = _seed_team(seed)

    result = workload_analysis(FailingSessionsStore(store, broken_id), *WINDOW)

    assert [row["therapist"]["id"] for row in result["analysis"]] == [light_id, busy_id]
    assert result["summary"]["totalTherapists"] == 3
    assert result["summary"]["averageUtilization"] == 50
    assert result["summary"]["overloadedTherapists"] == 0
    assert result["summary"]["underutilizedTherapists"] == 1


def test_period_trend_tolerance_band():
    assert period_trend([50, 52])["direction"] == "stable"
    assert period_trend([50, 48]) == {"direction": "stable", "percentage": pytest.approx(4)}
    assert period_trend([50, 53])["direction"] == "increasing"
    assert period_trend([10, 12]) == {"direction": "increasing", "percentage": pytest.approx(20)}
    assert period_trend([10, 5]) == {"direction": "decreasing", "percentage": 50}


def test_period_trend_degenerate_inputs():
    assert period_trend([]) == {"direction": "stable", "percentage": 0}
    assert period_trend([7]) == {"direction": "stable", "percentage": 0}
    assert period_trend([0, 4]) == {"direction": "stable", "percentage": 0}


def test_period_trends_counts_every_status_per_week(store, seed):
    therapist_id = seed.therapist()
    seed.session(therapist_id, datetime(2026, 3, 2, 9, 0))
    seed.session(therapist_id, datetime(2026, 3, 3, 9, 0), status="CANCELLED")
    seed.session(therapist_id, datetime(2026, 3, 9, 9, 0))

    result = period_trends(store, *WINDOW)

    assert result["groupBy"] == "week"
    assert [(p["period"], p["totalSessions"]) for p in result["data"]] == [("2026-03-01", 2), ("2026-03-08", 1)]
    assert result["trends"] == {"direction": "decreasing", "percentage": 50}
    assert result["dateRange"]["from"] == "2026-03-01T00:00:00"


def test_utilization_by_period_groups_per_therapist(store, seed):
    ada_id = seed.therapist()
    ola_id = seed.therapist("Ola")
    seed.session(ada_id, datetime(2026, 3, 2, 9, 0), duration=60)
    seed.session(ada_id, datetime(2026, 3, 2, 11, 0), duration=30)
    seed.session(ada_id, datetime(2026, 3, 3, 9, 0), duration=60)
    seed.session(ola_id, datetime(2026, 3, 2, 10, 0), duration=120)

    result = utilization_by_period(store, *WINDOW)

    ada, ola = result["utilization"]
    assert (ada["therapistId"], ada["therapistName"]) == (ada_id, "Ada Nowak")
    assert ada["totalSessions"] == 3
    assert ada["totalHours"] == 2.5
    assert ada["periods"] == [
        {"period": "2026-03-02", "sessions": 2, "hours": 1.5},
        {"period": "2026-03-03", "sessions": 1, "hours": 1.0},
    ]
    assert (ola["therapistName"], ola["totalHours"]) == ("Ola Nowak", 2.0)
    assert result["summary"] == {
        "totalSessions": 4,
        "totalHours": 4.5,
        "averageSessionsPerTherapist": 2,
        "averageHoursPerTherapist": 2.25,
        "totalTherapists": 2,
    }


def test_utilization_by_period_empty_window(store):
    result = utilization_by_period(store, *WINDOW, group_by="month")
    assert result["utilization"] == []
    assert result["summary"] == {}
