"""Coercion helpers for loosely-typed payloads and catalog rows.

Numbers accept int/float or numeric strings; anything else falls back.
Lists reject non-sequences. Booleans are never treated as numbers. Sums
of user-supplied amounts go through finite_sum so huge values cannot
overflow to infinity downstream.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any


def as_number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else default
    if isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return default
        return number if math.isfinite(number) else default
    return default


def as_optional_number(value: Any) -> float | None:
    """Positive number or None; zero and junk both mean 'not specified'."""
    number = as_number(value, 0.0)
    return number if number > 0 else None


def as_string(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    return default


def as_string_list(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [s for s in (as_string(item).strip() for item in value) if s]


def as_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    return default


def as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def finite_or(value: float, default: float = 0.0) -> float:
    return value if math.isfinite(value) else default


def finite_sum(values: Iterable[float], default: float = 0.0) -> float:
    """Sum of `values`, or `default` when the total overflows."""
    return finite_or(sum(values, 0.0), default)
