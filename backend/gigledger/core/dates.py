"""
Timestamp normalization.

Every date-like value written to Supabase goes through to_canonical_timestamp,
which produces ISO-8601 UTC strings with millisecond precision
(e.g. 2024-03-15T12:00:00.000Z).
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, Callable, Optional

import pandas as pd

from gigledger.core.exceptions import InvalidTimestampError

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime as YYYY-MM-DDTHH:MM:SS.mmmZ in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def to_canonical_timestamp(value: Any, now: Optional[Clock] = None) -> str:
    """
    Convert a source date value to the canonical timestamp string.

    Resolution order:
        1. Falsy values (None, "", 0) become the current time.
        2. datetime/date values (Firestore returns DatetimeWithNanoseconds,
           a datetime subclass) are converted to UTC. Naive values are UTC.
        3. Strings are returned unchanged, without validation.
        4. Numbers are epoch milliseconds; anything else is parsed by pandas.

    Raises:
        InvalidTimestampError: If step 4 cannot build a timestamp
    """
    if not value:
        return format_timestamp((now or utc_now)())

    if isinstance(value, datetime):
        return format_timestamp(value)

    if isinstance(value, date):
        return format_timestamp(datetime.combine(value, time.min, tzinfo=timezone.utc))

    # Malformed strings are propagated as-is.
    if isinstance(value, str):
        return value

    if isinstance(value, (int, float)):
        try:
            return format_timestamp(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidTimestampError(f"Epoch value out of range: {value!r}", value=value) from e

    try:
        parsed = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise InvalidTimestampError(f"Cannot convert {type(value).__name__} to a timestamp", value=value) from e

    if pd.isna(parsed):
        raise InvalidTimestampError(f"Cannot convert {value!r} to a timestamp", value=value)

    if parsed.tzinfo is None:
        parsed = parsed.tz_localize("UTC")
    return format_timestamp(parsed.to_pydatetime())
