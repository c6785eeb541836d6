"""
Response value helpers shared by the validation and logic layers.

Response maps hold untrusted data coming from the rendering layer.
Nothing in this module raises on an unexpected type: every helper
degrades to "empty", "not a number" or "not equal".
"""

from __future__ import annotations

import math
from datetime import date, datetime, time
from typing import Any, Optional, Union


def is_empty(value: Any) -> bool:
    """Absent, blank/whitespace-only string, or empty list."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def coerce_number(value: Any) -> Optional[float]:
    """
    Coerce a response value to a float.

    Returns None when the value has no sensible numeric reading:
    absent values, booleans, blank strings, non-numeric strings,
    lists, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        if value.strip() == "":
            return None
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_temporal(value: Any) -> Optional[Union[date, time]]:
    """
    Read an ISO-8601 calendar date ("2026-11-20") or time of day
    ("09:30") out of a response value.

    Returns None for anything else, including full datetimes.
    """
    if isinstance(value, datetime):
        return None
    if isinstance(value, (date, time)):
        return None if getattr(value, "tzinfo", None) is not None else value
    if not isinstance(value, str):
        return None
    for parse in (date.fromisoformat, time.fromisoformat):
        try:
            parsed = parse(value.strip())
        except ValueError:
            continue
        # Offsets would make naive and aware times incomparable
        return None if getattr(parsed, "tzinfo", None) is not None else parsed
    return None


def as_text(value: Any) -> str:
    """Render a scalar the way a respondent would type it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def strict_equals(left: Any, right: Any) -> bool:
    """
    Equality without type coercion.

    Ints and floats compare numerically (they are the same "number"
    type for a respondent); otherwise both sides must share a type.
    "18" never equals 18 and True never equals 1.
    """
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(
            strict_equals(a, b) for a, b in zip(left, right)
        )
    if type(left) is not type(right):
        return False
    return left == right
