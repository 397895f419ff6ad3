from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from .alerts import create_rule, current_alerts, list_rules
from .analytics import analyze_trend
from .capacity import capacity_history, get_capacity, set_capacity
from .config import settings
from .db import SessionLocal
from .errors import ClinicOpsError, DependencyFailure, InvalidOptimizationType, NotFoundError, ValidationError
from .models import utc_now_naive
from .recommendations import optimize
from .reporting import (
    PERIOD_GROUPS,
    analytics,
    compare_periods,
    overview,
    performance_by_period,
    period_trends,
    scheduling_performance,
    utilization_by_period,
    workload_analysis,
)
from .schemas import AlertRuleIn, CapacityConfigIn, OptimizeIn, WorkloadAnalysisIn
from .store import SqlDataStore
from .workload import summarize

logger = structlog.get_logger("clinicops.api")

router = APIRouter(prefix="/api/capacity", tags=["capacity"])


def get_store() -> SqlDataStore:
    return SqlDataStore(SessionLocal)


def to_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _upcoming_window(date_from: Optional[datetime], date_to: Optional[datetime]) -> tuple[datetime, datetime]:
    now = utc_now_naive()
    start = to_naive(date_from) if date_from else now
    end = to_naive(date_to) if date_to else now + timedelta(days=settings.DEFAULT_LOOKAHEAD_DAYS)
    return start, end


def _recent_window(
    date_from: Optional[datetime],
    date_to: Optional[datetime],
    lookback_days: Optional[int] = None,
) -> tuple[datetime, datetime]:
    now = utc_now_naive()
    days = settings.DEFAULT_LOOKBACK_DAYS if lookback_days is None else lookback_days
    start = to_naive(date_from) if date_from else now - timedelta(days=days)
    end = to_naive(date_to) if date_to else now
    return start, end


def _http_error(exc: ClinicOpsError, action: str) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid request data", "details": exc.errors},
        )
    if isinstance(exc, InvalidOptimizationType):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(exc)})
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"error": str(exc)})
    logger.error("capacity_request_failed", action=action, error=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": f"Failed to {action}"},
    )


def _check_group_by(group_by: str) -> None:
    if group_by not in PERIOD_GROUPS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": f"groupBy must be one of {', '.join(PERIOD_GROUPS)}"},
        )


@router.get("/overview")
def get_overview(
    therapist_id: Optional[int] = Query(default=None, alias="therapistId"),
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    store: SqlDataStore = Depends(get_store),
):
    start, end = _upcoming_window(date_from, date_to)
    try:
        data = overview(store, start, end, therapist_id=therapist_id)
    except ClinicOpsError as exc:
        raise _http_error(exc, "get overview") from exc
    return {"success": True, "data": data}


@router.get("/therapists/{therapist_id}/capacity")
def get_therapist_capacity(therapist_id: int, store: SqlDataStore = Depends(get_store)):
    try:
        capacity = get_capacity(store, therapist_id)
        history = capacity_history(store, therapist_id)
    except ClinicOpsError as exc:
        raise _http_error(exc, "get capacity data") from exc
    return {"success": True, "data": {"capacity": capacity.to_dict(), "history": history}}


@router.get("/therapists/{therapist_id}/workload")
def get_therapist_workload(
    therapist_id: int,
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    store: SqlDataStore = Depends(get_store),
):
    start, end = _upcoming_window(date_from, date_to)
    try:
        workload = summarize(store, therapist_id, start, end)
    except ClinicOpsError as exc:
        raise _http_error(exc, "get workload data") from exc
    return {
        "success": True,
        "data": {
            "workload": workload.to_dict(),
            "trends": analyze_trend(workload.weekly_workload),
            "distribution": {
                "byService": workload.by_service,
                "byDayOfWeek": workload.by_day_of_week,
            },
        },
    }


@router.get("/alerts")
def get_alerts(
    therapist_id: Optional[int] = Query(default=None, alias="therapistId"),
    alert_type: Optional[str] = Query(default=None, alias="alertType"),
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    store: SqlDataStore = Depends(get_store),
):
    try:
        rules = list_rules(store, therapist_id=therapist_id, alert_type=alert_type, is_active=is_active)
    except ClinicOpsError as exc:
        raise _http_error(exc, "get alerts") from exc

    try:
        live = current_alerts(store, therapist_id, now=utc_now_naive())
    except DependencyFailure as exc:
        logger.warning("current_alerts_unavailable", therapist_id=therapist_id, error=str(exc))
        live = []
    return {
        "success": True,
        "data": {"alerts": [r.to_dict() for r in rules], "currentAlerts": live},
    }


@router.get("/analytics")
def get_analytics(
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    store: SqlDataStore = Depends(get_store),
):
    start, end = _recent_window(date_from, date_to)
    try:
        data = analytics(store, start, end)
    except ClinicOpsError as exc:
        raise _http_error(exc, "get analytics") from exc
    return {"success": True, "data": data}


@router.get("/scheduling-performance")
def get_scheduling_performance(
    therapist_id: Optional[int] = Query(default=None, alias="therapistId"),
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    group_by: Optional[str] = Query(default=None, alias="groupBy"),
    store: SqlDataStore = Depends(get_store),
):
    if group_by is not None:
        _check_group_by(group_by)
    start, end = _recent_window(date_from, date_to)
    try:
        sessions = store.find_sessions(therapist_id, start, end)
    except ClinicOpsError as exc:
        raise _http_error(exc, "get scheduling performance") from exc

    data = {
        "dateRange": {"from": start.isoformat(), "to": end.isoformat()},
        "metrics": scheduling_performance(sessions),
    }
    if group_by:
        data["byPeriod"] = performance_by_period(sessions, group_by)
    return {"success": True, "data": data}


@router.get("/utilization")
def get_utilization(
    therapist_id: Optional[int] = Query(default=None, alias="therapistId"),
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    group_by: str = Query(default="day", alias="groupBy"),
    store: SqlDataStore = Depends(get_store),
):
    _check_group_by(group_by)
    start, end = _recent_window(date_from, date_to)
    try:
        data = utilization_by_period(store, start, end, therapist_id=therapist_id, group_by=group_by)
    except ClinicOpsError as exc:
        raise _http_error(exc, "get utilization") from exc
    return {"success": True, "data": data}


@router.get("/trends")
def get_trends(
    therapist_id: Optional[int] = Query(default=None, alias="therapistId"),
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    group_by: str = Query(default="week", alias="groupBy"),
    store: SqlDataStore = Depends(get_store),
):
    _check_group_by(group_by)
    start, end = _recent_window(date_from, date_to, lookback_days=settings.DEFAULT_TREND_LOOKBACK_DAYS)
    try:
        data = period_trends(store, start, end, therapist_id=therapist_id, group_by=group_by)
    except ClinicOpsError as exc:
        raise _http_error(exc, "get trends") from exc
    return {"success": True, "data": data}


@router.get("/comparative")
def get_comparative(
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    compare_with: str = Query(default="previous-period", alias="compareWith"),
    store: SqlDataStore = Depends(get_store),
):
    start, end = _recent_window(date_from, date_to)
    try:
        data = compare_periods(store, start, end, compare_with)
    except ClinicOpsError as exc:
        raise _http_error(exc, "get comparative analysis") from exc
    return {"success": True, "data": data}


@router.post("/config")
def post_capacity_config(payload: CapacityConfigIn, store: SqlDataStore = Depends(get_store)):
    try:
        saved = set_capacity(store, payload.model_dump())
    except ClinicOpsError as exc:
        raise _http_error(exc, "set capacity configuration") from exc
    return {
        "success": True,
        "message": "Capacity configuration updated successfully",
        "data": {"config": saved.to_dict()},
    }


@router.post("/analyze")
def post_analyze(payload: WorkloadAnalysisIn, store: SqlDataStore = Depends(get_store)):
    try:
        data = workload_analysis(
            store,
            to_naive(payload.date_from),
            to_naive(payload.date_to),
            therapist_id=payload.therapist_id,
            include_projections=payload.include_projections,
        )
    except ClinicOpsError as exc:
        raise _http_error(exc, "analyze workload") from exc
    return {"success": True, "data": data}


@router.post("/alerts")
def post_alert_rule(payload: AlertRuleIn, store: SqlDataStore = Depends(get_store)):
    try:
        rule = create_rule(
            store,
            therapist_id=payload.therapist_id,
            alert_type=payload.alert_type,
            threshold=payload.threshold,
            is_active=payload.is_active,
        )
    except ClinicOpsError as exc:
        raise _http_error(exc, "set capacity alert") from exc
    return {
        "success": True,
        "message": "Capacity alert created successfully",
        "data": {"alert": rule.to_dict()},
    }


@router.post("/optimize")
def post_optimize(payload: OptimizeIn):
    try:
        plan = optimize(payload.therapist_id, payload.optimization_type, payload.constraints)
    except ClinicOpsError as exc:
        raise _http_error(exc, "optimize capacity") from exc
    return {"success": True, "data": plan}
