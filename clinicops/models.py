from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Therapist(Base):
    __tablename__ = "therapists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    first_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)


class PatientSession(Base):
    __tablename__ = "patient_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    therapist_id: Mapped[int] = mapped_column(ForeignKey("therapists.id"), index=True)
    scheduled_date: Mapped[datetime] = mapped_column(DateTime, index=True)
    duration: Mapped[int] = mapped_column(Integer, default=60)
    status: Mapped[str] = mapped_column(String(32), default="SCHEDULED", index=True)
    service_name: Mapped[str] = mapped_column(String(120), default="General")


class CapacityConfig(Base):
    __tablename__ = "capacity_configs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    therapist_id: Mapped[int] = mapped_column(ForeignKey("therapists.id"), unique=True, index=True)
    max_sessions_per_day: Mapped[int] = mapped_column(Integer, default=8)
    max_sessions_per_week: Mapped[int] = mapped_column(Integer, default=40)
    max_sessions_per_month: Mapped[int] = mapped_column(Integer, default=160)
    max_hours_per_day: Mapped[float] = mapped_column(Float, default=8)
    max_hours_per_week: Mapped[float] = mapped_column(Float, default=40)
    preferred_session_duration: Mapped[int] = mapped_column(Integer, default=60)
    break_time_between_sessions: Mapped[int] = mapped_column(Integer, default=15)
    working_days_json: Mapped[str] = mapped_column(Text, default="[1, 2, 3, 4, 5]")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)


class CapacityAlert(Base):
    __tablename__ = "capacity_alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    therapist_id: Mapped[int] = mapped_column(ForeignKey("therapists.id"), index=True)
    alert_type: Mapped[str] = mapped_column(String(40), index=True)
    threshold: Mapped[float] = mapped_column(Float)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, index=True)
