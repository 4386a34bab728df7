"""UTC time helpers (timezone-aware calculation, naive storage)."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone, date


def utc_now() -> datetime:
    """Return a UTC timestamp without tzinfo for DB columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_timestamp(value) -> datetime:
    """Convert a JWT numeric timestamp into a naive UTC datetime."""
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def parse_iso_date(value, field_name: str):
    """Parse an ISO date or datetime query value; empty values return None."""
    from apps.dpis.utils.validators import ValidationError

    if value in (None, ''):
        return None
    if isinstance(value, (datetime, date)):
        return value
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(field_name, f'Invalid {field_name} date format')


def parse_upper_date_bound(value, field_name: str):
    """Parse an inclusive upper bound; a plain date covers that whole day.

    ``2026-10-19`` becomes midnight starting 2026-10-20, while a value with
    a time part is used as given.
    """
    if isinstance(value, str):
        try:
            day = date.fromisoformat(value.strip())
        except ValueError:
            day = None
        if day is not None:
            return datetime.combine(day + timedelta(days=1), datetime.min.time())
    return parse_iso_date(value, field_name)
