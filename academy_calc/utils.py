"""Utility functions for the academy calculators.

This module provides helpers for parsing user input into Python data types and
for handling dates, including adding calendar months, converting between ISO
(``YYYY-MM-DD``) and display (``DD/MM/YYYY``) representations, and normalizing
the many ways a weekday can be written in a batch schedule.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, getcontext
from typing import Optional, Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")

DAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

_WEEKDAY_LOOKUP = {}
for _index, _name in enumerate(DAY_NAMES):
    _WEEKDAY_LOOKUP[_name.lower()] = _index
    _WEEKDAY_LOOKUP[_name[:3].lower()] = _index

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def round_money(value: Decimal) -> Decimal:
    """Round a monetary value to two decimal places, halves rounding up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def decimal_from_str(value: Union[str, int, float, Decimal]) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. Floats are converted through ``str`` so ``0.1`` stays ``0.1``.
    It raises ``ValueError`` if conversion fails.
    """
    if isinstance(value, Decimal):
        return value
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``.

    A trailing time component (``2024-01-01T00:00:00``) is ignored, the way
    dates come back from the enrollment API.

    Raises
    ------
    ValueError
        If the string is not a valid ISO date.
    """
    try:
        return date.fromisoformat(value.strip().split("T")[0])
    except Exception as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def format_ddmmyyyy(value: Union[str, date, None]) -> str:
    """Format an ISO date string or ``date`` as ``DD/MM/YYYY`` for display.

    Returns an empty string for empty input. Display strings must never be
    sent back to the API; use :func:`ddmmyyyy_to_iso` for that direction.
    """
    if not value:
        return ""
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    parts = value.split("T")[0].split("-")
    if len(parts) != 3 or not all(parts):
        return ""
    year, month, day = parts
    return f"{day}/{month}/{year}"


def ddmmyyyy_to_iso(value: Optional[str]) -> str:
    """Convert ``DD/MM/YYYY`` to ``YYYY-MM-DD``; empty string when invalid."""
    if not value:
        return ""
    parts = value.strip().split("/")
    if len(parts) != 3:
        return ""
    try:
        day, month, year = (int(p) for p in parts)
    except ValueError:
        return ""
    if 1 <= day <= 31 and 1 <= month <= 12 and 1900 <= year <= 2100:
        return f"{year}-{month:02d}-{day:02d}"
    return ""


def is_valid_ddmmyyyy(value: Optional[str]) -> bool:
    """Return True if ``value`` is a real calendar date in ``DD/MM/YYYY``.

    Unlike :func:`ddmmyyyy_to_iso` this also rejects impossible dates such as
    ``31/02/2024``.
    """
    iso = ddmmyyyy_to_iso(value)
    if not iso:
        return False
    try:
        date.fromisoformat(iso)
    except ValueError:
        return False
    return True


def parse_user_date(value: str) -> date:
    """Parse a date typed by a user, either ``YYYY-MM-DD`` or ``DD/MM/YYYY``."""
    if value and "/" in value:
        if not is_valid_ddmmyyyy(value):
            raise ValueError(f"Invalid date string: {value}")
        return date.fromisoformat(ddmmyyyy_to_iso(value))
    return parse_iso_date(value or "")


def normalize_weekday(key: Union[str, int]) -> Optional[int]:
    """Map a schedule day key onto a Python weekday (Monday=0 .. Sunday=6).

    Accepted spellings are full English day names and three letter
    abbreviations in any case, ``0``-``6`` with Sunday as 0 and ``1``-``7``
    with Monday as 1. Both numeric schemes agree on 1-6 and use 0 or 7 for
    Sunday. Returns ``None`` for anything else.
    """
    text = str(key).strip()
    if text.isdigit():
        number = int(text)
        if number in (0, 7):
            return 6
        if 1 <= number <= 6:
            return number - 1
        return None
    return _WEEKDAY_LOOKUP.get(text.lower())


def parse_flag(value: Union[str, int, bool, None]) -> bool:
    """Convert a JSON or form checkbox value into a ``bool``.

    Real booleans pass through. ``None`` and ``""`` are false, and the
    strings ``"true"``/``"false"``, ``"1"``/``"0"``, ``"yes"``/``"no"`` and
    ``"on"``/``"off"`` are accepted in any case. Anything else raises
    ``ValueError``.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"Invalid flag value: {value!r}")
