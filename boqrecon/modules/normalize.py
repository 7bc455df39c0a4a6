"""
Key normalization for activity/KPI matching.

Names are compared lower-cased and trimmed. Zones are compared by the number
they carry: 'P5066 - Zone 2', 'zone-2' and '2' all reduce to '2'.
"""
import re

from ..config import get_config


_ZONE_PATTERN_RE = re.compile(r'zone\s*[-_]?\s*(\d+)', re.IGNORECASE)
_TRAILING_DIGITS_RE = re.compile(r'(\d+)\s*$')
_ANY_DIGITS_RE = re.compile(r'\d+')


def normalize_name(name) -> str:
    """Lower-case and trim an activity name."""
    if name is None:
        return ''
    return str(name).strip().lower()


def normalize_code(code) -> str:
    """Project codes compare case-insensitively: trim and upper-case."""
    if code is None:
        return ''
    return str(code).strip().upper()


def normalize_zone(zone, project_code) -> str:
    """
    Strip a project-code prefix from a zone label and lower-case it.

    E.g. ('P5066 - Zone 2', 'P5066') -> 'zone 2'
         ('P5066-3', 'p5066')       -> '3'
    """
    if zone is None:
        return ''
    normalized = str(zone).strip()
    code = str(project_code or '').strip()
    if normalized and code:
        escaped = re.escape(code)
        for pattern in (rf'^{escaped}\s*-\s*', rf'^{escaped}\s+', rf'^{escaped}-'):
            normalized = re.sub(pattern, '', normalized, flags=re.IGNORECASE).strip()
    normalized = re.sub(r'\s+', ' ', normalized)

    if normalized.lower() in get_config().no_zone_labels:
        return ''
    return normalized.lower()


def extract_zone_number(zone) -> str:
    """
    Extract the canonical zone number used for exact zone matching.

    Priority:
    1. Digits after a 'zone', 'zone-', 'zone_' or 'zone ' marker
    2. Digits at the end of the string
    3. First digit run anywhere
    4. The normalized label itself (zones named without numbers)
    """
    if zone is None:
        return ''
    normalized = str(zone).strip().lower()
    if not normalized:
        return ''

    match = _ZONE_PATTERN_RE.search(normalized)
    if match:
        return match.group(1)

    match = _TRAILING_DIGITS_RE.search(normalized)
    if match:
        return match.group(1)

    match = _ANY_DIGITS_RE.search(normalized)
    if match:
        return match.group(0)

    return normalized


def zones_match(activity_zone: str, kpi_zone: str) -> bool:
    """
    Zone rule for matching a KPI record to an activity.

    An activity without a zone accepts any record. An activity with a zone
    only accepts records that carry a zone with the same extracted number;
    a record with no zone never matches a zoned activity.
    """
    if not activity_zone:
        return True
    if not kpi_zone:
        return False
    activity_number = extract_zone_number(activity_zone)
    kpi_number = extract_zone_number(kpi_zone)
    return bool(activity_number) and bool(kpi_number) and activity_number == kpi_number
