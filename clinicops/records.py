from dataclasses import dataclass, field
from datetime import datetime

COUNTED_STATUSES = ("SCHEDULED", "CONFIRMED", "IN_PROGRESS", "COMPLETED")
SESSION_STATUSES = COUNTED_STATUSES + ("CANCELLED", "NO_SHOW", "RESCHEDULE_REQUESTED")

ALERT_TYPES = ("CAPACITY_EXCEEDED", "WORKLOAD_HIGH", "BREAK_TIME_VIOLATION", "OVERTIME_WARNING")


@dataclass(frozen=True)
class CapacityProfile:
    therapist_id: int | None = None
    max_sessions_per_day: int = 8
    max_sessions_per_week: int = 40
    max_sessions_per_month: int = 160
    max_hours_per_day: float = 8
    max_hours_per_week: float = 40
    preferred_session_duration: int = 60
    break_time_between_sessions: int = 15
    working_days: tuple[int, ...] = (1, 2, 3, 4, 5)
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "therapistId": self.therapist_id,
            "maxSessionsPerDay": self.max_sessions_per_day,
            "maxSessionsPerWeek": self.max_sessions_per_week,
            "maxSessionsPerMonth": self.max_sessions_per_month,
            "maxHoursPerDay": self.max_hours_per_day,
            "maxHoursPerWeek": self.max_hours_per_week,
            "preferredSessionDuration": self.preferred_session_duration,
            "breakTimeBetweenSessions": self.break_time_between_sessions,
            "workingDays": list(self.working_days),
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class SessionRecord:
    id: int
    therapist_id: int
    scheduled_date: datetime
    duration: int
    status: str
    service_name: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.scheduled_date.isoformat(),
            "duration": self.duration,
            "status": self.status,
            "service": self.service_name,
        }


@dataclass(frozen=True)
class TherapistRef:
    id: int
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or 'Unknown'} {self.last_name or 'Therapist'}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "firstName": self.first_name or "Unknown",
            "lastName": self.last_name or "Therapist",
            "email": self.email or "No email",
        }


@dataclass(frozen=True)
class AlertRule:
    id: int
    therapist_id: int
    alert_type: str
    threshold: float
    is_active: bool
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "therapistId": self.therapist_id,
            "alertType": self.alert_type,
            "threshold": self.threshold,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class WorkloadSummary:
    total_sessions: int = 0
    total_hours: float = 0.0
    average_session_duration: float = 0.0
    daily_workload: dict[str, dict] = field(default_factory=dict)
    weekly_workload: dict[str, dict] = field(default_factory=dict)
    by_service: dict[str, dict] = field(default_factory=dict)
    by_day_of_week: dict[int, dict] = field(default_factory=dict)
    sessions: list[SessionRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalSessions": self.total_sessions,
            "totalHours": self.total_hours,
            "averageSessionDuration": self.average_session_duration,
            "dailyWorkload": self.daily_workload,
            "weeklyWorkload": self.weekly_workload,
            "byService": self.by_service,
            "byDayOfWeek": self.by_day_of_week,
            "sessions": [s.to_dict() for s in self.sessions],
        }
