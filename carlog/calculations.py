"""Helper functions for service due calculations."""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from .status import Status

MS_PER_DAY = 24 * 60 * 60 * 1000
DAYS_SOON_THRESHOLD = 60
MILEAGE_SOON_THRESHOLD = 5000


def is_finite_number(value: Any) -> bool:
    """True for int/float values that are not bool, NaN or infinite."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse an ISO date or timestamp into an aware UTC datetime.

    Date-only and naive values are taken as UTC. Returns None for
    missing or unparsable values.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            moment = date_parser.isoparse(value)
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_iso_date(moment: datetime) -> str:
    """Format as YYYY-MM-DD."""
    return moment.date().isoformat()


def add_months(moment: datetime, months: float) -> Optional[datetime]:
    """
    Add calendar months by incrementing the month field.

    The day of month is kept and overflows into the following month when
    the target month is shorter: 2023-01-31 + 1 month = 2023-03-03.
    Fractional months are truncated toward zero.
    """
    if not is_finite_number(months):
        return None
    try:
        first = moment.replace(day=1) + relativedelta(months=int(months))
        return first + timedelta(days=moment.day - 1)
    except (ValueError, OverflowError):
        return None


def registration_date(year: Any) -> Optional[datetime]:
    """January 1st (UTC) of the vehicle's year, used as an inspection base."""
    if not year:
        return None
    try:
        value = float(year)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    try:
        return datetime(int(value), 1, 1, tzinfo=timezone.utc)
    except ValueError:
        return None


def calc_due_date(
    interval_months: Any, last_date: Any, fallback_date: Optional[datetime] = None
) -> Optional[str]:
    """Calculate next due date: base date + interval months, as YYYY-MM-DD."""
    if not is_finite_number(interval_months):
        return None
    base = parse_date(last_date) or fallback_date
    if base is None:
        return None
    due = add_months(base, interval_months)
    return format_iso_date(due) if due else None


def calc_due_mileage(last_mileage: Any, interval_mileage: Any) -> Optional[float]:
    """Calculate next due mileage: last mileage + interval."""
    if not is_finite_number(interval_mileage) or not is_finite_number(last_mileage):
        return None
    return last_mileage + interval_mileage


def difference_in_days(target: Any, now: Optional[datetime]) -> Optional[float]:
    """Fractional days from now until target (negative when target has passed)."""
    target_date = parse_date(target)
    if target_date is None or now is None:
        return None
    delta = target_date - now
    millis = delta.days * MS_PER_DAY + delta.seconds * 1000 + delta.microseconds / 1000
    return millis / MS_PER_DAY


def check_status(day_diff: Optional[float], mileage_diff: Optional[float]) -> Status:
    """
    Classify urgency from the remaining days and remaining mileage.

    Overdue on either axis wins over due-soon on the other.
    """
    date_overdue = day_diff is not None and day_diff < 0
    mileage_overdue = mileage_diff is not None and mileage_diff <= 0
    if date_overdue or mileage_overdue:
        return Status.OVERDUE

    date_soon = day_diff is not None and 0 <= day_diff <= DAYS_SOON_THRESHOLD
    mileage_soon = mileage_diff is not None and 0 < mileage_diff <= MILEAGE_SOON_THRESHOLD
    if date_soon or mileage_soon:
        return Status.DUE_SOON
    return Status.OK
