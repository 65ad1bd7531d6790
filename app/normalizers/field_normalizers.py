"""
app/normalizers/field_normalizers.py

Cell-level normalizers that turn one raw spreadsheet value into one canonical
field value.

Every function here is total: malformed-but-plausible input never raises.
Normalizers either return the canonical form or hand the input back so the
record validator can reject it with the exact offending value.
"""

from __future__ import annotations

import math
import re
from typing import Any

MONTH_NAMES: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

MIN_WEEK = 1
MAX_WEEK = 53

_MONTH_PREFIX_MIN_LENGTH = 3
# Fraction rescaling keeps float noise out of stored values (0.85 * 100).
_SCALE_PRECISION = 10
_NUMERIC_NOISE = re.compile(r"[%\s,]")
_WHITESPACE = re.compile(r"\s+")
_WEEK_TOKEN = re.compile(r"week[^0-9]*(\d+)")
_BARE_NUMBER = re.compile(r"(\d+)")
_INTEGRAL_NUMBER = re.compile(r"\d+(?:\.0+)?")


def is_blank(value: Any) -> bool:
    """
    Return True for None, empty strings and whitespace-only strings.
    """

    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def cell_text(value: Any) -> str:
    """
    Render one cell as trimmed text.

    Spreadsheet engines hand integral numbers back as floats (``1234.0``);
    those are rendered without the trailing fraction.
    """

    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def parse_number(value: Any) -> float | None:
    """
    Parse a numeric cell after stripping ``%``, whitespace and thousands separators.

    Returns None when the value is not a finite number.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = _NUMERIC_NOISE.sub("", str(value))
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def normalize_month(value: Any) -> Any:
    """
    Map 1-12 or an English month name/prefix (3+ letters) to the full month name.
    """

    text = cell_text(value)
    if not text:
        return value

    if _INTEGRAL_NUMBER.fullmatch(text):
        number = int(text.split(".", 1)[0])
        if 1 <= number <= 12:
            return MONTH_NAMES[number - 1]
        return value

    lowered = text.casefold()
    if len(lowered) < _MONTH_PREFIX_MIN_LENGTH:
        return value
    for month in MONTH_NAMES:
        if month.casefold().startswith(lowered):
            return month
    return value


def month_number(month_name: Any) -> int | None:
    """
    Return the 1-based month number for a canonical month name.
    """

    if not isinstance(month_name, str):
        return None
    try:
        return MONTH_NAMES.index(month_name) + 1
    except ValueError:
        return None


def normalize_period_label(value: Any) -> Any:
    """
    Normalize week labels such as ``12``, ``week12``, ``Week-12`` or ``WEEK_12``
    to ``"Week 12"``. Weeks outside 1-53 are returned unchanged.
    """

    text = cell_text(value)
    if not text:
        return value

    compact = _WHITESPACE.sub("", text).casefold()
    match = _WEEK_TOKEN.search(compact) or _BARE_NUMBER.fullmatch(compact)
    if match is None:
        return value

    week = int(match.group(1))
    if MIN_WEEK <= week <= MAX_WEEK:
        return f"Week {week}"
    return value


def week_number(period_label: Any) -> int | None:
    """
    Extract the week number from a canonical ``"Week N"`` label.
    """

    if not isinstance(period_label, str):
        return None
    match = re.fullmatch(r"Week (\d+)", period_label)
    if match is None:
        return None
    return int(match.group(1))


def normalize_percentage(value: Any) -> float:
    """
    Parse a percentage-like cell.

    Values in (0, 1] are read as fractions and scaled by 100, so both ``1.0``
    and ``100`` become 100. A genuine score of 1% or less cannot be told apart
    from a fraction-formatted cell and is scaled as well.
    """

    number = parse_number(value)
    if number is None:
        return 0.0
    if 0 < number <= 1:
        return round(number * 100, _SCALE_PRECISION)
    return number


def normalize_count(value: Any) -> float:
    """
    Parse a count-like cell without fractional rescaling.
    """

    number = parse_number(value)
    if number is None:
        return 0.0
    return number


def normalize_identifier(value: Any) -> str:
    """
    Trim an identifier or display name; case is preserved.
    """

    return cell_text(value)


def identifier_key(value: Any) -> str:
    """
    Comparison key for identifiers and names.
    """

    return normalize_identifier(value).casefold()
