from __future__ import annotations

import math
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: Any, field_name: str) -> datetime:
    """Parse an ISO-8601 timestamp into a naive UTC-or-local datetime.

    Aware values are converted to UTC and stored naive (MySQL DATETIME has no zone).
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Valid {field_name} is required")
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(f"Valid {field_name} is required")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_range_bound(value: Optional[str], *, end: bool = False) -> Optional[datetime]:
    """Parse a report range bound. A date-only end bound covers its whole day."""
    if not value:
        return None
    raw = value.strip()
    try:
        if len(raw) == 10:
            day = parse_iso_date(raw)
            return datetime.combine(day, time.max if end else time.min)
        return parse_iso_datetime(raw, "date")
    except (ValueError, ValidationError):
        return None


def duration_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between start and end, rounded half-up."""
    seconds = (end - start).total_seconds()
    return int(math.floor(seconds / 60 + 0.5))


def now_utc() -> datetime:
    """Current UTC time as a naive datetime (matches how timestamps are stored).

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
