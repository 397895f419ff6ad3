"""Capacity alerts.

Two independent mechanisms live here:

* live evaluation of today's utilization against the fixed 80/90 thresholds,
  producing transient alerts that are never stored;
* stored alert rules, which are descriptive records only. Their
  ``threshold`` is not evaluated anywhere; callers that want rule-driven
  alerting combine ``list_rules`` with ``current_alerts`` themselves.
"""

from datetime import datetime

import structlog

from .analytics import utilization
from .capacity import get_capacity, is_number
from .errors import DependencyFailure, ValidationError
from .models import utc_now_naive
from .records import ALERT_TYPES, AlertRule
from .workload import summarize

logger = structlog.get_logger("clinicops.alerts")

CAPACITY_EXCEEDED_THRESHOLD = 90
WORKLOAD_HIGH_THRESHOLD = 80


def evaluate_utilization(value: float) -> list[dict]:
    if value > CAPACITY_EXCEEDED_THRESHOLD:
        return [
            {
                "type": "CAPACITY_EXCEEDED",
                "message": f"Capacity utilization is at {value:.1f}%",
                "severity": "HIGH",
            }
        ]
    if value > WORKLOAD_HIGH_THRESHOLD:
        return [
            {
                "type": "WORKLOAD_HIGH",
                "message": f"Workload is high at {value:.1f}%",
                "severity": "MEDIUM",
            }
        ]
    return []


def current_alerts(store, therapist_id: int | None, now: datetime | None = None) -> list[dict]:
    if therapist_id is None:
        return []
    now = now or utc_now_naive()
    capacity = get_capacity(store, therapist_id)
    workload = summarize(store, therapist_id, now, now)
    return evaluate_utilization(utilization(capacity, workload))


def current_alerts_batch(store, therapist_ids, now: datetime | None = None) -> dict[int, list[dict]]:
    now = now or utc_now_naive()
    results = {}
    for therapist_id in therapist_ids:
        try:
            results[therapist_id] = current_alerts(store, therapist_id, now=now)
        except DependencyFailure as exc:
            logger.warning("alert_evaluation_skipped", therapist_id=therapist_id, error=str(exc))
            results[therapist_id] = []
    return results


def create_rule(
    store,
    therapist_id: int | None,
    alert_type: str | None,
    threshold: float | None,
    is_active: bool = True,
) -> AlertRule:
    errors = []
    if not is_number(therapist_id) or int(therapist_id) <= 0:
        errors.append({"field": "therapist_id", "message": "therapist_id is required"})
    if alert_type not in ALERT_TYPES:
        errors.append({"field": "alert_type", "message": f"alert_type must be one of {', '.join(ALERT_TYPES)}"})
    if not is_number(threshold) or not 0 <= threshold <= 100:
        errors.append({"field": "threshold", "message": "threshold must be between 0 and 100"})
    if errors:
        raise ValidationError(errors)

    rule = store.insert_alert_rule(int(therapist_id), alert_type, float(threshold), bool(is_active))
    logger.info(
        "capacity_alert_rule_created",
        rule_id=rule.id,
        therapist_id=rule.therapist_id,
        alert_type=rule.alert_type,
        threshold=rule.threshold,
    )
    return rule


def list_rules(
    store,
    therapist_id: int | None = None,
    alert_type: str | None = None,
    is_active: bool | None = None,
) -> list[AlertRule]:
    return store.find_alert_rules(therapist_id=therapist_id, alert_type=alert_type, is_active=is_active)
