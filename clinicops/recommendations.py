from .errors import InvalidOptimizationType, ValidationError
from .records import CapacityProfile, WorkloadSummary

OVERLOADED_UTILIZATION = 90
UNDERUTILIZED_UTILIZATION = 50
DURATION_TOLERANCE = 1.2

# Placeholder growth multipliers, not a forecasting model.
NEXT_WEEK_FACTOR = 1.1
NEXT_MONTH_FACTOR = 4.2

OPTIMIZATION_PLANS = {
    "BALANCE_WORKLOAD": {
        "recommendations": [
            "Redistribute sessions across available time slots",
            "Adjust break times to optimize schedule",
            "Consider session duration standardization",
        ],
        "projectedImprovement": "15-20% better workload distribution",
    },
    "MAXIMIZE_CAPACITY": {
        "recommendations": [
            "Increase daily session capacity",
            "Optimize working hours",
            "Reduce break time between sessions",
        ],
        "projectedImprovement": "25-30% capacity increase",
    },
    "REDUCE_OVERTIME": {
        "recommendations": [
            "Redistribute sessions to avoid overtime",
            "Increase break time between sessions",
            "Consider session rescheduling",
        ],
        "projectedImprovement": "Eliminate overtime while maintaining service quality",
    },
}


def recommend(profile: CapacityProfile, summary: WorkloadSummary, utilization: float) -> list[str]:
    recommendations = []

    if utilization > OVERLOADED_UTILIZATION:
        recommendations.append("Consider reducing session load or increasing capacity limits")
        recommendations.append("Schedule additional break time between sessions")
    elif utilization < UNDERUTILIZED_UTILIZATION:
        recommendations.append("Consider taking on additional sessions to improve utilization")
        recommendations.append("Review and optimize schedule gaps")

    # average duration is kept in hours, the preference in minutes
    average_minutes = summary.average_session_duration * 60
    if average_minutes > profile.preferred_session_duration * DURATION_TOLERANCE:
        recommendations.append("Consider standardizing session durations")

    return recommendations


def project_workload(profile: CapacityProfile, summary: WorkloadSummary) -> dict:
    return {
        "nextWeek": {
            "projectedSessions": min(summary.total_sessions * NEXT_WEEK_FACTOR, profile.max_sessions_per_week),
            "projectedHours": min(summary.total_hours * NEXT_WEEK_FACTOR, profile.max_hours_per_week),
        },
        "nextMonth": {
            "projectedSessions": min(summary.total_sessions * NEXT_MONTH_FACTOR, profile.max_sessions_per_month),
            "projectedHours": min(
                summary.total_hours * NEXT_MONTH_FACTOR,
                profile.max_hours_per_week * NEXT_MONTH_FACTOR,
            ),
        },
    }


def optimize(therapist_id: int | None, strategy: str | None, constraints: dict | None = None) -> dict:
    """Return the canned improvement plan for ``strategy``.

    ``constraints`` is accepted for forward compatibility and currently
    ignored: plans are fixed templates, not computed.
    """
    errors = []
    if therapist_id is None:
        errors.append({"field": "therapist_id", "message": "therapist_id is required"})
    if not strategy:
        errors.append({"field": "optimization_type", "message": "optimization_type is required"})
    if errors:
        raise ValidationError(errors)

    plan = OPTIMIZATION_PLANS.get(strategy)
    if plan is None:
        raise InvalidOptimizationType(strategy)
    return {
        "type": strategy,
        "therapistId": therapist_id,
        "recommendations": list(plan["recommendations"]),
        "projectedImprovement": plan["projectedImprovement"],
    }
