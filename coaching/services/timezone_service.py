from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from coaching.config import settings


def get_app_timezone() -> ZoneInfo:
    try:
        return ZoneInfo(settings.APP_TIMEZONE)
    except ZoneInfoNotFoundError:
        return ZoneInfo("UTC")


def now_in_app_tz() -> datetime:
    return datetime.now(get_app_timezone())


def today_in_app_tz() -> date:
    return now_in_app_tz().date()


def _as_utc(value: datetime) -> datetime:
    # Naive values come back from drivers that drop tzinfo; they are stored as UTC.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def to_local_date(value: datetime | date) -> date:
    """Calendar date of an instant in the app timezone (time of day stripped)."""
    if not isinstance(value, datetime):
        return value
    return _as_utc(value).astimezone(get_app_timezone()).date()


def to_utc_date(value: datetime | date) -> date:
    """Calendar date of an instant in UTC."""
    if not isinstance(value, datetime):
        return value
    return _as_utc(value).astimezone(timezone.utc).date()
