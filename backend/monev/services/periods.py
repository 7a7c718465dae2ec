"""Calendar helpers: month bounds in the app timezone, month arithmetic."""

from datetime import date, datetime, time, timezone, tzinfo
from zoneinfo import ZoneInfo

from monev.config import settings


def app_timezone() -> ZoneInfo:
    return ZoneInfo(settings.app_timezone)


def validate_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    if not 1 <= year <= 9999:
        raise ValueError(f"year out of range: {year}")


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by ``delta`` months, rolling the year over."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def months_ago(today: date, months: int) -> date:
    """Same day ``months`` months earlier, clamped to the end of shorter months."""
    year, month = shift_month(today.year, today.month, -months)
    next_year, next_month = shift_month(year, month, 1)
    last_day = (date(next_year, next_month, 1) - date(year, month, 1)).days
    return date(year, month, min(today.day, last_day))


def local_date(value: datetime | date, tz: tzinfo | None = None) -> date:
    """Calendar date of a timestamp in ``tz``. Naive datetimes are taken as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(tz or app_timezone()).date()
    return value


def day_bounds(day: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar day, as aware UTC datetimes."""
    tz = tz or app_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(date.fromordinal(day.toordinal() + 1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def month_bounds(year: int, month: int, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar month, as aware UTC datetimes."""
    validate_month(year, month)
    tz = tz or app_timezone()
    next_year, next_month = shift_month(year, month, 1)
    start = datetime(year, month, 1, tzinfo=tz)
    end = datetime(next_year, next_month, 1, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def in_month(value: datetime | date, year: int, month: int, tz: tzinfo | None = None) -> bool:
    d = local_date(value, tz)
    return d.year == year and d.month == month
