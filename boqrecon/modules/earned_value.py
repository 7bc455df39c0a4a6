"""
Actual quantities and earned value per BOQ activity.

Only Actual-kind matches count. Earned value is priced record by record with
a strict fallback chain; the first tier that yields a positive amount wins
and lower tiers are not consulted for that record:

    1. rate x quantity   (rate = total value / total units, else contract rate)
    2. the record's own Value
    3. the record's Actual Value

When the KPI collection is empty overall (not merely unmatched for this
activity), the activity's cached upstream figures are reported instead.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from ..domain.entities import Activity, InputType, KPIRecord
from .fields import parse_number
from .matching import MatchCache, resolve_cache

logger = logging.getLogger(__name__)


class PricingTier(Enum):
    """Which rule priced a KPI record."""
    RATE_X_QUANTITY = "rate_x_quantity"
    KPI_VALUE = "kpi_value"
    ACTUAL_VALUE = "actual_value"
    UNPRICED = "unpriced"


@dataclass(frozen=True)
class EVContribution:
    """Earned value contributed by one Actual KPI record."""
    record: KPIRecord
    amount: float
    tier: PricingTier


def activity_rate(activity: Activity) -> float:
    """
    Unit rate used for pricing.

    Derived rate (total value / total units) when both are positive,
    otherwise the contract rate on the activity.
    """
    if activity.total_value > 0 and activity.total_units > 0:
        return activity.total_value / activity.total_units
    return activity.rate


def record_contribution(
    activity: Activity,
    record: KPIRecord,
    rate: Optional[float] = None,
) -> EVContribution:
    """Price a single Actual KPI record against its activity."""
    if rate is None:
        rate = activity_rate(activity)

    if rate > 0 and record.quantity > 0:
        return EVContribution(record, rate * record.quantity, PricingTier.RATE_X_QUANTITY)

    kpi_value = parse_number(record.value)
    if kpi_value > 0:
        return EVContribution(record, kpi_value, PricingTier.KPI_VALUE)

    actual_value = parse_number(record.actual_value)
    if actual_value > 0:
        return EVContribution(record, actual_value, PricingTier.ACTUAL_VALUE)

    return EVContribution(record, 0.0, PricingTier.UNPRICED)


def actual_units(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
) -> float:
    """Sum of quantities over the activity's Actual-kind matches."""
    if len(kpis) == 0:
        return activity.cached_actual_units

    try:
        records = resolve_cache(kpis, cache).matches(activity, InputType.ACTUAL)
        return sum((record.quantity for record in records), 0.0)
    except Exception as e:
        logger.error(f"Error calculating actual units for '{activity.name}': {e}")
        return activity.cached_actual_units


def earned_value_breakdown(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
) -> List[EVContribution]:
    """Per-record pricing detail for the activity's Actual-kind matches."""
    records = resolve_cache(kpis, cache).matches(activity, InputType.ACTUAL)
    rate = activity_rate(activity)
    return [record_contribution(activity, record, rate) for record in records]


def earned_value(
    activity: Activity,
    kpis: Sequence[KPIRecord],
    cache: Optional[MatchCache] = None,
) -> float:
    """Earned value of an activity: sum of per-record contributions."""
    if len(kpis) == 0:
        return activity.cached_earned_value

    try:
        contributions = earned_value_breakdown(activity, kpis, cache)
        return sum((c.amount for c in contributions), 0.0)
    except Exception as e:
        logger.error(f"Error calculating earned value for '{activity.name}': {e}")
        return activity.cached_earned_value
