from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CapacityConfigIn(CamelModel):
    # ranges are checked by the capacity registry so every failing field is reported together
    therapist_id: int | None = Field(default=None, alias="therapistId")
    max_sessions_per_day: float | None = Field(default=None, alias="maxSessionsPerDay")
    max_sessions_per_week: float | None = Field(default=None, alias="maxSessionsPerWeek")
    max_sessions_per_month: float | None = Field(default=None, alias="maxSessionsPerMonth")
    max_hours_per_day: float | None = Field(default=None, alias="maxHoursPerDay")
    max_hours_per_week: float | None = Field(default=None, alias="maxHoursPerWeek")
    preferred_session_duration: float | None = Field(default=None, alias="preferredSessionDuration")
    break_time_between_sessions: float | None = Field(default=None, alias="breakTimeBetweenSessions")
    working_days: list[int] | None = Field(default=None, alias="workingDays")
    is_active: bool | None = Field(default=None, alias="isActive")


class WorkloadAnalysisIn(CamelModel):
    therapist_id: int | None = Field(default=None, alias="therapistId")
    date_from: datetime = Field(alias="dateFrom")
    date_to: datetime = Field(alias="dateTo")
    include_projections: bool = Field(default=True, alias="includeProjections")


class AlertRuleIn(CamelModel):
    therapist_id: int | None = Field(default=None, alias="therapistId")
    alert_type: str | None = Field(default=None, alias="alertType")
    threshold: float | None = None
    is_active: bool = Field(default=True, alias="isActive")


class OptimizeIn(CamelModel):
    therapist_id: int | None = Field(default=None, alias="therapistId")
    optimization_type: str | None = Field(default=None, alias="optimizationType")
    constraints: dict[str, Any] = Field(default_factory=dict)

