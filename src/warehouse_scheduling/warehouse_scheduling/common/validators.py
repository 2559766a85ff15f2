from __future__ import annotations

from typing import Any, Iterable, Optional

from ..core.enums import WEEKDAYS
from ..core.exceptions import ValidationError
from .datetime_utils import parse_hhmm


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_int(value: Any, field_name: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def require_time(value: Optional[str], field_name: str) -> str:
    """Normalize a HH:MM value; 'H:MM' and 'HH:MM:SS' are accepted."""

    value = require_non_empty(value, field_name)
    return parse_hhmm(value if len(value) >= 5 else value.zfill(5)).strftime("%H:%M")


def require_weekdays(values: Any, field_name: str = "days") -> list[str]:
    if not isinstance(values, (list, tuple)) or not values:
        raise ValidationError(f"{field_name} array is required and must not be empty")
    return normalize_weekdays(values, field_name)


def normalize_weekdays(values: Iterable[Any], field_name: str = "days") -> list[str]:
    """Validate weekday names and return them deduplicated in input order."""

    out: list[str] = []
    for v in values:
        name = str(v or "").strip().capitalize()
        if name not in WEEKDAYS:
            raise ValidationError(f"{field_name} contains an invalid weekday: {v!r}")
        if name not in out:
            out.append(name)
    return out


def optional_positive_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if n < 1:
        raise ValidationError(f"{field_name} must be at least 1")
    return n


def normalize_day_limits(value: Any) -> Optional[dict[str, int]]:
    if value is None or value == {}:
        return None
    if not isinstance(value, dict):
        raise ValidationError("day_limits must be an object of weekday -> limit")

    out: dict[str, int] = {}
    for day, limit in value.items():
        (name,) = normalize_weekdays([day], "day_limits")
        n = optional_positive_int(limit, f"day_limits.{name}")
        if n is not None:
            out[name] = n
    return out or None
