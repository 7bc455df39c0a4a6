"""
Tolerant date resolution for BOQ/KPI fields.

KPI exports mix ISO strings, US-style 'MM/DD/YYYY', '6-Jan-25' and raw
spreadsheet serial numbers (44927) in the same column. Everything resolves
to an ISO 'YYYY-MM-DD' string or None; nothing here raises.
"""
import logging
import math
import re
import warnings
from datetime import date, datetime, timedelta
from typing import Optional, Union

import pandas as pd

from ..config import get_config

logger = logging.getLogger(__name__)


# Serial 1 is 1900-01-01; serial 60 is the non-existent 1900-02-29 that
# spreadsheet engines inherited from Lotus 1-2-3.
SERIAL_EPOCH = date(1899, 12, 31)
SERIAL_LEAP_BUG_CUTOFF = 59

_COMPACT_DATE_RE = re.compile(r'^\d{8}$')

# pandas maps these to the wall clock
_RELATIVE_WORDS = frozenset({'now', 'today'})

DateInput = Union[str, int, float, date, datetime, None]


def _year_in_range(value: date) -> bool:
    config = get_config()
    return config.min_year <= value.year <= config.max_year


def serial_to_date(serial: float) -> Optional[date]:
    """
    Decode a spreadsheet serial day number.

    Fractional parts (time of day) are dropped. Serials after 59 are shifted
    back one day to undo the phantom 1900 leap day.
    """
    days = math.floor(serial)
    if days > SERIAL_LEAP_BUG_CUTOFF:
        days -= 1
    try:
        return SERIAL_EPOCH + timedelta(days=days)
    except OverflowError:
        return None


def _looks_like_serial(text: str, number: float) -> bool:
    if not (0 < number < get_config().serial_max):
        return False
    return '/' not in text and '-' not in text and 'T' not in text


def _parse_calendar(text: str) -> Optional[date]:
    """Generic calendar parse via pandas; None on failure."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(text, errors='coerce')
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date()


def to_date(value: DateInput) -> Optional[date]:
    """
    Resolve a freeform date value to a datetime.date.

    Algorithm:
    1. Empty / null tokens ('N/A', '#DIV/0!', ...) and 'now'/'today' -> None
    2. Pure number in (0, serial_max) without '/', '-' or 'T' -> serial date
    3. Otherwise a generic calendar parse
    4. Year must fall inside [min_year, max_year]
    """
    if value is None or value is pd.NaT or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        candidate = value.date()
        return candidate if _year_in_range(candidate) else None
    if isinstance(value, date):
        return value if _year_in_range(value) else None

    if isinstance(value, float) and not math.isfinite(value):
        return None

    text = str(value).strip()
    if text in get_config().date_null_tokens or text.lower() in _RELATIVE_WORDS:
        return None

    try:
        number = float(text)
    except ValueError:
        number = None

    if number is not None and not _COMPACT_DATE_RE.match(text):
        # Bare numbers are serial dates or nothing (YYYYMMDD aside)
        if not math.isfinite(number) or not _looks_like_serial(text, number):
            return None
        candidate = serial_to_date(number)
        if candidate is None or not _year_in_range(candidate):
            return None
        return candidate

    candidate = _parse_calendar(text)
    if candidate is None or not _year_in_range(candidate):
        return None
    return candidate


def resolve_date(value: DateInput) -> Optional[str]:
    """Resolve a freeform date value to 'YYYY-MM-DD', or None."""
    try:
        resolved = to_date(value)
    except Exception as e:
        logger.debug(f"Unresolvable date {value!r}: {e}")
        return None
    return resolved.isoformat() if resolved else None
