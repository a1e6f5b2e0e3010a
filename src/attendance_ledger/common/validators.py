from __future__ import annotations

import math
from typing import Any

from ..core.exceptions import ReasonTooShortError, ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: str, min_len: int) -> str:
    length = len(value or "")
    if length < min_len:
        raise ReasonTooShortError(min_length=min_len, actual=length)
    return value


def require_int(value: Any, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def require_float(value: Any, field_name: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if math.isnan(result) or math.isinf(result):
        raise ValidationError(f"{field_name} must be a number")
    return result


def require_non_negative_int(value: Any, field_name: str) -> int:
    result = require_int(value, field_name)
    if result < 0:
        raise ValidationError(f"{field_name} must be a non-negative number")
    return result
