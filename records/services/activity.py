"""
Decide whether a prescription is still in effect.

The decision only depends on the parsed duration, the date the medication
was prescribed (the visit date), the reference time ``now`` and the fallback
window used when the duration could not be read.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Optional

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.utils import timezone

from records.services.durations import (
    CONTINUOUS,
    DAYS,
    MONTHS,
    WEEKS,
    DurationSpec,
    parse_duration,
)

SECONDS_PER_DAY = 24 * 60 * 60

# End of a course too long to represent as a date
END_OF_TIME = datetime.max.replace(tzinfo=dt_timezone.utc)


def expires_at(spec: DurationSpec, origination: datetime) -> Optional[datetime]:
    """End of the prescribed course, or ``None`` when it has no fixed end.

    Courses ending past year 9999 (``"99999999 days"``) end at
    :data:`END_OF_TIME`.
    """
    try:
        if spec.kind == DAYS:
            return origination + timedelta(days=spec.amount)
        if spec.kind == WEEKS:
            return origination + timedelta(days=spec.amount * 7)
        if spec.kind == MONTHS:
            # Calendar months; Jan 31 + 1 month is Feb 28/29
            return origination + relativedelta(months=spec.amount)
    except (OverflowError, ValueError):
        return END_OF_TIME
    return None


def is_active(spec: DurationSpec, origination: datetime, now: datetime, fallback_window_days: float) -> bool:
    if spec.kind == CONTINUOUS:
        return True
    end = expires_at(spec, origination)
    if end is not None:
        return now <= end
    days_since = (now - origination).total_seconds() / SECONDS_PER_DAY
    return days_since <= fallback_window_days


def is_prescription_active(duration_text: Optional[str], origination: datetime,
                           now: Optional[datetime] = None,
                           fallback_window_days: Optional[float] = None) -> bool:
    if fallback_window_days is None:
        fallback_window_days = settings.MEDICATION_HISTORY_FALLBACK_DAYS
    return is_active(parse_duration(duration_text), origination, now or timezone.now(), fallback_window_days)
