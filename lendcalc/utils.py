"""Utility functions for the loan calculator.

This module provides helpers for converting user input into ``Decimal`` and
``date`` values, for currency rounding and for calendar month arithmetic.
It uses Python's ``datetime`` and ``calendar`` modules to calculate month
offsets.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Optional, Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def round2(value: Number) -> Decimal:
    """Round a value to two decimal places, halves away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Number) -> Decimal:
    """Convert a number or numeric string into a ``Decimal``.

    Floats go through ``str`` first so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion. Commas are stripped from strings.

    Raises
    ------
    ValueError
        If the value is not numeric, or is NaN or infinite.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip().replace(",", ""))
        except InvalidOperation as exc:
            raise ValueError(f"Invalid numeric value: {value}") from exc
    else:
        raise ValueError(f"Invalid numeric value: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_date(value: Union[date, datetime, str, None], default: Optional[date] = None) -> date:
    """Normalize ``value`` into a ``date``.

    Accepts ``date`` and ``datetime`` objects and ISO strings (``YYYY-MM-DD``,
    optionally followed by a time part). ``None`` yields ``default`` or today.
    """
    if value is None or value == "":
        return default if default is not None else date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def parse_amount(value: str) -> Decimal:
    """Parse an amount string with optional ``k``/``m`` suffixes.

    ``"500k"`` means 500 000 and ``"1.2m"`` means 1 200 000. Thousands
    separators are ignored.
    """
    cleaned = value.strip().lower().replace(",", "").replace("_", "")
    factor = Decimal(1)
    if cleaned.endswith("k"):
        factor = Decimal(1_000)
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal(1_000_000)
        cleaned = cleaned[:-1]
    return to_decimal(cleaned) * factor
