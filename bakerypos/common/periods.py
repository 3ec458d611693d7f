"""
Calendar windows in a store's timezone.

Reports and list filters talk in local calendar days; the database stores UTC
instants. A window ``[start_date, end_date]`` (inclusive days) becomes the
half-open UTC interval ``[start_date 00:00 local, (end_date + 1) 00:00 local)``.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of local calendar days"""
    start_date: date
    end_date: date

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def previous(self) -> "DateRange":
        """Window of the same length ending the day before this one starts."""
        end = self.start_date - timedelta(days=1)
        return DateRange(end - timedelta(days=self.days - 1), end)

    def utc_bounds(self, zone: ZoneInfo) -> Tuple[datetime, datetime]:
        return local_midnight(self.start_date, zone), local_midnight(self.end_date + timedelta(days=1), zone)


def local_midnight(day: date, zone: ZoneInfo) -> datetime:
    """UTC instant of 00:00 on ``day`` in ``zone``."""
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def local_today(zone: ZoneInfo, now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(zone).date()


def local_date_of(instant: datetime, zone: ZoneInfo) -> date:
    """Calendar day of a stored timestamp; naive values are treated as UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(zone).date()


def trailing_days(days: int, zone: ZoneInfo, now: Optional[datetime] = None) -> DateRange:
    """The last ``days`` calendar days, today included."""
    today = local_today(zone, now)
    return DateRange(today - timedelta(days=days - 1), today)
