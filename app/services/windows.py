"""
Date windows used by the export workflow.

The data window says which day the report covers; the job-search window
says when the matching job was created. They differ because the platform
stamps a job with the time it was triggered, not the date of its data.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import settings


@dataclass(frozen=True)
class DateWindow:
    """Inclusive [start, end] range of timezone-aware datetimes."""
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def duration(self) -> timedelta:
        # Subtract in UTC: same-zone subtraction ignores DST shifts
        return self.end.astimezone(timezone.utc) - self.start.astimezone(timezone.utc)

    def iso_bounds(self) -> tuple[str, str]:
        """Bounds as UTC ISO-8601 strings with millisecond precision."""
        return _iso_utc(self.start), _iso_utc(self.end)


def local_now() -> datetime:
    """
    Current time in the report timezone.

    With TIMEZONE set this carries the named zone and its DST rules.
    Otherwise it falls back to the host's current UTC offset, which is
    fixed: on a DST changeover day yesterday's midnight is then off by
    the shift.
    """
    if settings.TIMEZONE:
        return datetime.now(ZoneInfo(settings.TIMEZONE))
    return datetime.now().astimezone()


def yesterday_window(now: Optional[datetime] = None) -> DateWindow:
    """
    Previous local calendar day, starting at 00:00:00.000.

    The span is always 24h minus 1ms of elapsed time. On a DST changeover
    day the end therefore reads 22:59:59.999 or 00:59:59.999 on the wall
    clock instead of 23:59:59.999.
    """
    now = now or local_now()
    day = (now - timedelta(days=1)).date()
    start = datetime(day.year, day.month, day.day, tzinfo=now.tzinfo)
    elapsed = timedelta(days=1) - timedelta(milliseconds=1)
    end = (start.astimezone(timezone.utc) + elapsed).astimezone(now.tzinfo)
    return DateWindow(start=start, end=end)


def recent_creation_window(
    now: Optional[datetime] = None,
    lookback: timedelta = timedelta(hours=2),
    lookahead: timedelta = timedelta(minutes=5),
) -> DateWindow:
    """
    Sliding window for job creation times around ``now``.

    The lookahead absorbs clock skew between this host and the platform.
    """
    now = now or local_now()
    return DateWindow(start=now - lookback, end=now + lookahead)


def _iso_utc(moment: datetime) -> str:
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")
