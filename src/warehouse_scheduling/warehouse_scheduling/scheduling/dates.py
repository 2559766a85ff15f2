"""Expansion of weekday-based assignments into concrete calendar dates.

Assignments recur by weekday name. `schedule_dates` stores only the current
rolling week of occurrences; the weekly regeneration job moves the window
forward once every stored date has lapsed.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Iterable, Mapping, Optional

from ..common.datetime_utils import Clock, DateLike, format_iso_date, weekday_name
from ..core.constants import ROLLING_WINDOW_DAYS
from ..core.enums import WEEKDAYS
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def generate_schedule_dates(
    days: Any,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
    *,
    clock: Clock,
) -> dict[str, list[str]]:
    """Map each requested weekday to its YYYY-MM-DD dates inside the window.

    The window starts at `start_date` (today in the clock's timezone when
    omitted) and ends at `end_date` (start + 6 days when omitted), inclusive.
    At most one rolling week is materialized: dates past the 7th day of an
    explicit longer range are not generated here, regeneration produces them
    once the current week has lapsed.

    Empty or malformed `days` yield `{}` rather than an error. Every valid
    requested day is present in the result, with an empty list when the window
    holds no such weekday.
    """

    if not days or not isinstance(days, (list, tuple, set, frozenset)):
        logger.debug("generate_schedule_dates called with invalid days: %r", days)
        return {}

    wanted = [d for d in days if isinstance(d, str) and d in WEEKDAYS]
    if not wanted:
        logger.debug("generate_schedule_dates got no valid weekday names: %r", days)
        return {}

    try:
        start = clock.to_local_date(start_date) if start_date is not None else clock.today()
        end = clock.to_local_date(end_date) if end_date is not None else start + timedelta(days=ROLLING_WINDOW_DAYS - 1)
    except ValidationError:
        logger.debug("generate_schedule_dates got malformed window %r..%r", start_date, end_date)
        return {}

    last = min(end, start + timedelta(days=ROLLING_WINDOW_DAYS - 1))
    if last < end:
        logger.debug("Window %s..%s truncated to one week (%s)", start, end, last)

    out: dict[str, list[str]] = {d: [] for d in wanted}
    current = start
    while current <= last:
        name = weekday_name(current)
        if name in out:
            out[name].append(format_iso_date(current))
        current += timedelta(days=1)

    return out


def all_dates(schedule_dates: Optional[Mapping[str, Iterable[str]]]) -> list[str]:
    return sorted(d for dates in (schedule_dates or {}).values() for d in (dates or []))


def has_lapsed(schedule_dates: Optional[Mapping[str, Iterable[str]]], *, today_iso: str) -> bool:
    """True when every stored date is strictly before today.

    ISO dates compare correctly as strings. A mapping with no dates at all
    counts as lapsed so it is refilled.
    """

    return all(d < today_iso for d in all_dates(schedule_dates))


def todays_schedule(schedule_dates: Optional[Mapping[str, Iterable[str]]], *, clock: Clock) -> Optional[dict]:
    """Return {date, day} when today's date is materialized under today's weekday."""

    today = clock.today()
    today_iso = format_iso_date(today)
    day = weekday_name(today)
    if today_iso in list((schedule_dates or {}).get(day) or []):
        return {"date": today_iso, "day": day}
    return None
