"""
Field mapping helpers shared by every record reader.

Source rows come from spreadsheet imports and database exports whose column
names vary in case and spacing ('Activity Name' vs 'activity_name'). Every
logical field is read through an ordered alias list: the first non-empty
column wins. Numeric columns are parsed permissively (thousands separators
stripped, garbage -> 0.0) so a single dirty cell never aborts a report.
"""
import math
import re
from typing import Any, Iterable, Mapping, Optional, Union

import pandas as pd


_THOUSANDS_RE = re.compile(r'[,\s]')


def is_blank(value: Any) -> bool:
    """True for None, NA/NaN/NaT and whitespace-only strings."""
    if value is None or value is pd.NA:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, (float, int)) or value is pd.NaT:
        try:
            return bool(pd.isna(value))
        except (TypeError, ValueError):
            return False
    return False


def first_present(row: Optional[Mapping], aliases: Iterable[str]) -> Any:
    """
    Return the first non-empty value among the given column aliases.

    Looks at the row itself first, then at a nested ``raw`` mapping (rows
    loaded from the store keep the original spreadsheet row there).

    Args:
        row: Source mapping (dict, pandas Series, ...)
        aliases: Ordered column names to try

    Returns:
        The first non-blank value, or None
    """
    if row is None:
        return None

    aliases = list(aliases)
    sources = [row]
    nested = row.get('raw') if hasattr(row, 'get') else None
    if isinstance(nested, Mapping):
        sources.append(nested)

    for source in sources:
        for alias in aliases:
            try:
                value = source.get(alias)
            except (AttributeError, TypeError):
                continue
            if not is_blank(value):
                return value
    return None


def parse_number(value: Union[str, float, int, None]) -> float:
    """
    Parse a loosely formatted number.

    Handles:
        "1,234.50"  -> 1234.5
        " 42 "      -> 42.0
        12          -> 12.0
        None, NaN   -> 0.0
        "abc"       -> 0.0

    Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0

    s = _THOUSANDS_RE.sub('', str(value))
    if s == '':
        return 0.0
    try:
        number = float(s)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def as_text(value: Any) -> str:
    """Coerce a cell to a stripped string ('' for blanks)."""
    if is_blank(value):
        return ''
    if isinstance(value, float) and value.is_integer():
        # Spreadsheet readers turn zone "3" into 3.0
        return str(int(value))
    return str(value).strip()


def read_text(row: Optional[Mapping], aliases: Iterable[str]) -> str:
    """First non-empty alias as a stripped string."""
    return as_text(first_present(row, aliases))


def read_number(row: Optional[Mapping], aliases: Iterable[str]) -> float:
    """First non-empty alias parsed as a number (0.0 when absent)."""
    return parse_number(first_present(row, aliases))


def read_optional_number(row: Optional[Mapping], aliases: Iterable[str]) -> Optional[float]:
    """Like read_number, but None when no alias is populated."""
    value = first_present(row, aliases)
    if value is None:
        return None
    return parse_number(value)
