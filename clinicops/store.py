import json
from contextlib import contextmanager
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .errors import DependencyFailure
from .models import CapacityAlert, CapacityConfig, PatientSession, Therapist, utc_now_naive
from .records import AlertRule, CapacityProfile, SessionRecord, TherapistRef

logger = structlog.get_logger("clinicops.store")


def _to_profile(row: CapacityConfig) -> CapacityProfile:
    try:
        working_days = tuple(int(d) for d in json.loads(row.working_days_json or "[]"))
    except (TypeError, ValueError):
        working_days = ()
    return CapacityProfile(
        therapist_id=row.therapist_id,
        max_sessions_per_day=int(row.max_sessions_per_day),
        max_sessions_per_week=int(row.max_sessions_per_week),
        max_sessions_per_month=int(row.max_sessions_per_month),
        max_hours_per_day=float(row.max_hours_per_day),
        max_hours_per_week=float(row.max_hours_per_week),
        preferred_session_duration=int(row.preferred_session_duration),
        break_time_between_sessions=int(row.break_time_between_sessions),
        working_days=working_days,
        is_active=bool(row.is_active),
    )


def _apply_profile(row: CapacityConfig, profile: CapacityProfile) -> None:
    row.max_sessions_per_day = profile.max_sessions_per_day
    row.max_sessions_per_week = profile.max_sessions_per_week
    row.max_sessions_per_month = profile.max_sessions_per_month
    row.max_hours_per_day = profile.max_hours_per_day
    row.max_hours_per_week = profile.max_hours_per_week
    row.preferred_session_duration = profile.preferred_session_duration
    row.break_time_between_sessions = profile.break_time_between_sessions
    row.working_days_json = json.dumps(list(profile.working_days))
    row.is_active = profile.is_active
    row.updated_at = utc_now_naive()


def _to_session(row: PatientSession) -> SessionRecord:
    return SessionRecord(
        id=row.id,
        therapist_id=row.therapist_id,
        scheduled_date=row.scheduled_date,
        duration=int(row.duration),
        status=row.status,
        service_name=row.service_name,
    )


def _to_therapist(row: Therapist) -> TherapistRef:
    return TherapistRef(id=row.id, first_name=row.first_name, last_name=row.last_name, email=row.email)


def _to_rule(row: CapacityAlert) -> AlertRule:
    return AlertRule(
        id=row.id,
        therapist_id=row.therapist_id,
        alert_type=row.alert_type,
        threshold=float(row.threshold),
        is_active=bool(row.is_active),
        created_at=row.created_at,
    )


class SqlDataStore:
    """Data store backed by SQLAlchemy.

    Every call opens its own session, so one instance can be shared by the
    analytics worker threads.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str):
        try:
            with self._session_factory() as db:
                yield db
        except SQLAlchemyError as exc:
            logger.error("data_store_failed", operation=operation, error=str(exc))
            raise DependencyFailure(f"{operation} failed") from exc

    def find_therapist(self, therapist_id: int) -> TherapistRef | None:
        with self._session("find_therapist") as db:
            row = db.get(Therapist, therapist_id)
            return _to_therapist(row) if row else None

    def find_active_therapists(self, therapist_id: int | None = None) -> list[TherapistRef]:
        with self._session("find_active_therapists") as db:
            stmt = select(Therapist)
            if therapist_id is not None:
                stmt = stmt.where(Therapist.id == therapist_id)
            else:
                stmt = stmt.where(Therapist.is_active.is_(True))
            rows = db.execute(stmt.order_by(Therapist.id.asc())).scalars().all()
            return [_to_therapist(r) for r in rows]

    def find_capacity_profile(self, therapist_id: int) -> CapacityProfile | None:
        with self._session("find_capacity_profile") as db:
            row = db.execute(
                select(CapacityConfig).where(CapacityConfig.therapist_id == therapist_id)
            ).scalar_one_or_none()
            return _to_profile(row) if row else None

    def upsert_capacity_profile(self, profile: CapacityProfile) -> CapacityProfile:
        with self._session("upsert_capacity_profile") as db:
            row = self._upsert(db, profile)
            return _to_profile(row)

    def _upsert(self, db: Session, profile: CapacityProfile) -> CapacityConfig:
        stmt = select(CapacityConfig).where(CapacityConfig.therapist_id == profile.therapist_id)
        row = db.execute(stmt).scalar_one_or_none()
        if row is None:
            row = CapacityConfig(therapist_id=profile.therapist_id)
            _apply_profile(row, profile)
            db.add(row)
            try:
                db.commit()
            except IntegrityError:
                # concurrent insert for the same therapist; fall through to update
                db.rollback()
                row = db.execute(stmt).scalar_one()
                _apply_profile(row, profile)
                db.commit()
        else:
            _apply_profile(row, profile)
            db.commit()
        db.refresh(row)
        return row

    def find_sessions(
        self,
        therapist_id: int | None,
        date_from: datetime,
        date_to: datetime,
        status_in: tuple[str, ...] | None = None,
    ) -> list[SessionRecord]:
        with self._session("find_sessions") as db:
            stmt = select(PatientSession).where(
                PatientSession.scheduled_date >= date_from,
                PatientSession.scheduled_date <= date_to,
            )
            if therapist_id is not None:
                stmt = stmt.where(PatientSession.therapist_id == therapist_id)
            if status_in:
                stmt = stmt.where(PatientSession.status.in_(list(status_in)))
            stmt = stmt.order_by(PatientSession.scheduled_date.asc(), PatientSession.id.asc())
            return [_to_session(r) for r in db.execute(stmt).scalars().all()]

    def insert_alert_rule(
        self, therapist_id: int, alert_type: str, threshold: float, is_active: bool = True
    ) -> AlertRule:
        with self._session("insert_alert_rule") as db:
            row = CapacityAlert(
                therapist_id=therapist_id,
                alert_type=alert_type,
                threshold=float(threshold),
                is_active=bool(is_active),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return _to_rule(row)

    def find_alert_rules(
        self,
        therapist_id: int | None = None,
        alert_type: str | None = None,
        is_active: bool | None = None,
    ) -> list[AlertRule]:
        with self._session("find_alert_rules") as db:
            stmt = select(CapacityAlert)
            if therapist_id is not None:
                stmt = stmt.where(CapacityAlert.therapist_id == therapist_id)
            if alert_type:
                stmt = stmt.where(CapacityAlert.alert_type == alert_type)
            if is_active is not None:
                stmt = stmt.where(CapacityAlert.is_active.is_(bool(is_active)))
            stmt = stmt.order_by(CapacityAlert.created_at.desc(), CapacityAlert.id.desc())
            return [_to_rule(r) for r in db.execute(stmt).scalars().all()]
