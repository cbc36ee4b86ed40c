"""Numeric coercion for loosely typed Firestore documents."""

from __future__ import annotations

import math
from typing import Any, Optional, Union

Number = Union[int, float]


def _parse(value: Any) -> Optional[Number]:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    if parsed.is_integer():
        return int(parsed)
    return parsed


def coerce_number(value: Any, default: Number) -> Number:
    """Coerce to a number, using default for missing, unparsable or zero values."""
    parsed = _parse(value)
    return parsed if parsed else default


def coerce_optional_number(value: Any) -> Optional[Number]:
    """Coerce to a number; falsy or unparsable input yields None."""
    if not value:
        return None
    return _parse(value)
