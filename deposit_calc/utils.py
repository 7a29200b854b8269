"""Utility functions for the deposit calculator.

This module provides helpers for parsing user input into Python data types,
for counting days and walking calendar months, and for building the decimal
context every calculation runs under. Nothing here touches the process-wide
decimal context.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP
import calendar
from typing import List, Optional, Tuple

DEFAULT_PRECISION = 50


def make_context(precision: int = DEFAULT_PRECISION, rounding: str = ROUND_HALF_UP) -> Context:
    """Return a decimal context for financial calculations.

    The context is handed to the engine explicitly and applied with
    ``decimal.localcontext``, so two calculations with different precision
    can run side by side.
    """
    if precision <= 0:
        raise ValueError("Precision must be positive")
    return Context(prec=precision, rounding=rounding)


DEFAULT_CONTEXT = make_context()


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_year(year: int) -> int:
    return 366 if is_leap_year(year) else 365


def inclusive_day_count(start: date, end: date) -> int:
    """Return the number of calendar days from ``start`` to ``end``, both
    included.

    A single day counts as 1. The range is not checked: a reversed range
    gives zero or a negative number, so callers validate ordering first.
    """
    return (end - start).days + 1


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``.

    Raises
    ------
    ValueError
        If the string is not a valid ISO date.
    """
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid date: {value}") from exc


def month_end(dt: date) -> date:
    """Return the last day of the month containing ``dt``."""
    return date(dt.year, dt.month, calendar.monthrange(dt.year, dt.month)[1])


def month_segments(start: date, end: date) -> List[Tuple[date, date]]:
    """Split ``start``..``end`` into calendar-month pieces.

    The first piece begins at ``start`` and the last one stops at ``end``;
    every piece in between covers a whole month.
    """
    segments: List[Tuple[date, date]] = []
    current = start
    while current <= end:
        segment_end = min(month_end(current), end)
        segments.append((current, segment_end))
        current = segment_end + timedelta(days=1)
    return segments


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and surrounding whitespace. It raises
    ``ValueError`` if conversion fails or the value is not finite.
    """
    try:
        cleaned = value.replace(",", "").strip()
        result = Decimal(cleaned)
    except (AttributeError, InvalidOperation) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def optional_decimal(value) -> Optional[Decimal]:
    """Return ``value`` as a ``Decimal`` or ``None`` when it is empty or
    not a number."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    text = str(value)
    if not text.strip():
        return None
    try:
        return decimal_from_str(text)
    except ValueError:
        return None
