"""Normalizers turning ambiguous statement text into typed values.

Amounts and dates in bank exports can be read two different correct ways: ``1.234,56`` and ``1,234.56``
are the same amount, and ``06/07/2025`` is either 6 July or 7 June. The functions here never raise; they
resolve the unambiguous shapes first and fall back to a fixed convention otherwise.
"""

import re
from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")
MAX_MONTH = 12

_CURRENCY_CHARS = re.compile(r"[\"$€£]")
_EUROPEAN_GROUPED = re.compile(r"^([+-]?)(\d{1,3}(?:\.\d{3})*),(\d{1,2})$")
_EUROPEAN_SIMPLE = re.compile(r"^([+-]?)(\d+),(\d{1,2})$")

_DAY_MONTH_PATTERNS = (
    re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})(?!\d)"),
    re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})(?!\d)"),
    re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})(?!\d)"),
)
_ISO_PATTERN = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)")


def normalize_amount(raw: str | None) -> Decimal:
    """Convert a raw amount string to a signed Decimal, returning 0 when it cannot be parsed."""
    if not raw:
        return ZERO
    cleaned = _CURRENCY_CHARS.sub("", raw).strip()
    match = _EUROPEAN_GROUPED.match(cleaned)
    if match:
        sign, integer, fraction = match.groups()
        cleaned = f"{sign}{integer.replace('.', '')}.{fraction}"
    elif "," in cleaned and "." not in cleaned and (match := _EUROPEAN_SIMPLE.match(cleaned)):
        sign, integer, fraction = match.groups()
        cleaned = f"{sign}{integer}.{fraction}"
    else:
        cleaned = cleaned.replace(",", "")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return ZERO
    if not value.is_finite():
        return ZERO
    return value


def _day_and_month(first: int, second: int, *, day_first: bool) -> tuple[int, int]:
    """Assign two numeric date components to day and month under a convention."""
    day, month = (first, second) if day_first else (second, first)
    # A component above 12 cannot be the month, whatever the convention says.
    if month > MAX_MONTH and day <= MAX_MONTH:
        day, month = month, day
    return day, month


def parse_date(raw: str | None, *, day_first: bool = True) -> date | None:
    """Parse a raw statement date, or return None when no known shape matches."""
    if not raw:
        return None
    cleaned = raw.replace('"', "").strip()
    for pattern in _DAY_MONTH_PATTERNS:
        match = pattern.match(cleaned)
        if not match:
            continue
        first, second, year = (int(part) for part in match.groups())
        day, month = _day_and_month(first, second, day_first=day_first)
        try:
            return date(year, month, day)
        except ValueError:
            continue
    match = _ISO_PATTERN.match(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            pass
    try:
        return datetime.fromisoformat(cleaned).date()
    except ValueError:
        return None


def normalize_date(
    raw: str | None,
    *,
    day_first: bool = True,
    today: Callable[[], date] = date.today,
) -> date:
    """Parse a raw statement date, defaulting to today when nothing matches."""
    parsed = parse_date(raw, day_first=day_first)
    if parsed is None:
        return today()
    return parsed
