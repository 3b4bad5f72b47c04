"""
Clock and time-window helpers.

Timestamps are stored as naive UTC. "Today" is bounded by local midnight in
``settings.LOCAL_TIMEZONE``. Services read the clock through ``utcnow`` on
this module so tests can freeze it.
"""
from datetime import datetime, date, timedelta, timezone
from zoneinfo import ZoneInfo

from tortilla_watch.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.LOCAL_TIMEZONE)


def minutes_before(now: datetime, minutes: int) -> datetime:
    return now - timedelta(minutes=minutes)


def to_local(moment: datetime) -> datetime:
    """Convert a naive UTC timestamp to an aware local one."""
    return moment.replace(tzinfo=timezone.utc).astimezone(local_zone())


def local_date(moment: datetime) -> date:
    return to_local(moment).date()


def local_day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """
    Return ``(start, end)`` of the local calendar day containing ``now``
    as naive UTC timestamps, end exclusive.
    """
    zone = local_zone()
    today = to_local(now).date()
    start_local = datetime(today.year, today.month, today.day, tzinfo=zone)
    tomorrow = today + timedelta(days=1)
    end_local = datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=zone)
    return (
        start_local.astimezone(timezone.utc).replace(tzinfo=None),
        end_local.astimezone(timezone.utc).replace(tzinfo=None),
    )


def local_days_ago_start(now: datetime, days: int) -> datetime:
    """Naive UTC start of the local day ``days`` days before today."""
    start, _ = local_day_bounds(now - timedelta(days=days))
    return start


def isoformat(moment: datetime) -> str:
    """Serialize a stored timestamp as ISO 8601 with an explicit UTC offset."""
    return moment.replace(tzinfo=timezone.utc).isoformat()
