from datetime import date, datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo


# Returns the current time as an aware datetime. Services take one so
# financial-year boundaries and overdue checks can be pinned in tests.
Clock = Callable[[], datetime]

# Invoice dates and the financial year follow Indian Standard Time
BUSINESS_TIMEZONE = ZoneInfo("Asia/Kolkata")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_business_time(moment: datetime) -> datetime:
    """Aware datetimes are converted to IST; naive ones are taken as already local."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(BUSINESS_TIMEZONE)


def business_today(clock: Clock) -> date:
    return to_business_time(clock()).date()
