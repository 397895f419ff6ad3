"""Capacity registry: per-therapist limits with a fixed fallback profile."""

import math
from dataclasses import replace

import structlog

from .errors import NotFoundError, ValidationError
from .records import CapacityProfile

logger = structlog.get_logger("clinicops.capacity")

DEFAULT_CAPACITY = CapacityProfile()

# field -> (min, max), both inclusive
CAPACITY_LIMITS = {
    "max_sessions_per_day": (1, 20),
    "max_sessions_per_week": (1, 50),
    "max_sessions_per_month": (1, 200),
    "max_hours_per_day": (1, 12),
    "max_hours_per_week": (1, 60),
    "preferred_session_duration": (15, 480),
    "break_time_between_sessions": (0, 60),
}
_INTEGER_FIELDS = {
    "max_sessions_per_day",
    "max_sessions_per_week",
    "max_sessions_per_month",
    "preferred_session_duration",
    "break_time_between_sessions",
}
_OPTIONAL_DEFAULTS = {
    "break_time_between_sessions": DEFAULT_CAPACITY.break_time_between_sessions,
    "working_days": DEFAULT_CAPACITY.working_days,
    "is_active": DEFAULT_CAPACITY.is_active,
}


def default_capacity(therapist_id: int | None = None) -> CapacityProfile:
    return replace(DEFAULT_CAPACITY, therapist_id=therapist_id)


def get_capacity(store, therapist_id: int) -> CapacityProfile:
    profile = store.find_capacity_profile(therapist_id)
    if profile is None:
        return default_capacity(therapist_id)
    return profile


def capacity_history(store, therapist_id: int) -> list:
    # Config changes are upserted in place, so there is no history to return yet.
    return []


def is_number(value) -> bool:
    # NaN and infinity are rejected as non-numbers
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def validate_capacity_config(config: dict) -> list[dict]:
    errors = []
    therapist_id = config.get("therapist_id")
    if therapist_id is None or not is_number(therapist_id) or int(therapist_id) <= 0:
        errors.append({"field": "therapist_id", "message": "therapist_id is required"})

    for name, (low, high) in CAPACITY_LIMITS.items():
        value = config.get(name)
        if value is None:
            errors.append({"field": name, "message": f"{name} is required"})
        elif not is_number(value):
            errors.append({"field": name, "message": f"{name} must be a number"})
        elif name in _INTEGER_FIELDS and float(value) != int(value):
            errors.append({"field": name, "message": f"{name} must be a whole number"})
        elif not low <= value <= high:
            errors.append({"field": name, "message": f"{name} must be between {low} and {high}"})

    working_days = config.get("working_days")
    if not isinstance(working_days, (list, tuple)):
        errors.append({"field": "working_days", "message": "working_days must be a list"})
    else:
        for day in working_days:
            if not is_number(day) or float(day) != int(day) or not 0 <= day <= 6:
                errors.append({"field": "working_days", "message": "working_days must be between 0 and 6"})
                break

    if not isinstance(config.get("is_active"), bool):
        errors.append({"field": "is_active", "message": "is_active must be a boolean"})
    return errors


def build_capacity_profile(config: dict) -> CapacityProfile:
    """Default-fill optional fields, validate every range and build the profile.

    Raises ValidationError listing all failing fields at once.
    """
    merged = dict(config)
    for name, default in _OPTIONAL_DEFAULTS.items():
        if merged.get(name) is None:
            merged[name] = default

    errors = validate_capacity_config(merged)
    if errors:
        raise ValidationError(errors)

    return CapacityProfile(
        therapist_id=int(merged["therapist_id"]),
        max_sessions_per_day=int(merged["max_sessions_per_day"]),
        max_sessions_per_week=int(merged["max_sessions_per_week"]),
        max_sessions_per_month=int(merged["max_sessions_per_month"]),
        max_hours_per_day=float(merged["max_hours_per_day"]),
        max_hours_per_week=float(merged["max_hours_per_week"]),
        preferred_session_duration=int(merged["preferred_session_duration"]),
        break_time_between_sessions=int(merged["break_time_between_sessions"]),
        working_days=tuple(sorted({int(d) for d in merged["working_days"]})),
        is_active=bool(merged["is_active"]),
    )


def set_capacity(store, config: dict) -> CapacityProfile:
    profile = build_capacity_profile(config)
    if store.find_therapist(profile.therapist_id) is None:
        raise NotFoundError("Therapist not found")

    saved = store.upsert_capacity_profile(profile)
    logger.info(
        "capacity_config_saved",
        therapist_id=saved.therapist_id,
        max_sessions_per_week=saved.max_sessions_per_week,
        max_hours_per_day=saved.max_hours_per_day,
    )
    return saved
