from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.constants import DEFAULT_TIMEZONE, ISO_DATE_FORMAT, TIME_FORMAT
from ..core.enums import WEEKDAYS
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, ISO_DATE_FORMAT).date()


def format_iso_date(value: date) -> str:
    return value.strftime(ISO_DATE_FORMAT)


def parse_hhmm(value: str) -> time:
    try:
        return datetime.strptime((value or "").strip()[:5], TIME_FORMAT).time()
    except ValueError:
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")


def weekday_name(value: date) -> str:
    return WEEKDAYS[value.isoweekday() % 7]


@dataclass(frozen=True)
class Clock:
    """Timezone-aware source of "now" and "today".

    Built once from settings and passed to whatever needs the current date, so
    no code reads the timezone from ambient state.
    Note: Wrapped so tests can subclass it with a fixed instant.
    """

    timezone: str = DEFAULT_TIMEZONE

    @classmethod
    def from_name(cls, name: str | None) -> "Clock":
        name = (name or DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, falling back to %s", name, DEFAULT_TIMEZONE)
            name = DEFAULT_TIMEZONE
        return cls(timezone=name)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def now(self) -> datetime:
        return datetime.now(self.tzinfo)

    def today(self) -> date:
        return self.now().date()

    def wall_time(self) -> datetime:
        """Local now without tzinfo, for DATETIME columns."""
        return self.now().replace(tzinfo=None, microsecond=0)

    def to_local_date(self, value: DateLike) -> date:
        """Build a calendar date from local components, never from UTC parsing.

        Strings are read as YYYY-MM-DD (a longer ISO timestamp is cut to its date
        part); aware datetimes are converted to this clock's timezone first.
        """

        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(self.tzinfo)
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return parse_iso_date(value.strip()[:10])
            except ValueError:
                raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")
        raise ValidationError(f"Unsupported date value: {value!r}")
