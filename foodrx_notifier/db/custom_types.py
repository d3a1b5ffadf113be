from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil.parser import isoparse
from sqlalchemy import DateTime, TypeDecorator


def normalize_datetime(value: Any) -> Optional[datetime]:
    """
    Normalize the mixed timestamp representations found in client-written
    documents into an aware UTC datetime.

    Accepted inputs:
    - ``None`` (returned unchanged)
    - ISO-8601 strings, with or without offset or ``Z`` suffix, date-only allowed
      ("2025-06-24", "2025-06-24T10:00:00Z", "2025-06-24 10:00:00+02:00")
    - ``datetime`` objects, naive values are taken to be UTC
    - ``date`` objects, interpreted as midnight UTC

    Raises:
        ValueError: if the value cannot be interpreted as a timestamp
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty timestamp string")
        try:
            parsed = isoparse(text)
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Unrecognized timestamp: {value!r}") from e
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class FlexibleDateTime(TypeDecorator):
    """
    Timestamp column that accepts strings, dates and naive or aware datetimes,
    stores naive UTC and always hands back aware UTC datetimes.

    Comparisons in queries go through the same conversion, so filters may be
    written with aware datetimes regardless of the dialect.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        """Convert Python value to database value."""
        normalized = normalize_datetime(value)
        if normalized is None:
            return None
        return normalized.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        """Convert database value to Python value (always aware UTC)."""
        return normalize_datetime(value)
