# core/pricing.py
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, Optional

from .logger import get_logger
from .models import CatalogTotals, ReportRow

logger = get_logger(__name__)


def round_price(value: float) -> float:
    """Round to 2 decimals, halves away from zero (1.005 -> 1.01)."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def average_price(
    suggestions: Dict[str, Any], include_conditions: Iterable[str]
) -> Optional[float]:
    """
    Average market price for a release.
    - suggestions: condition label -> {"value": float, "currency": str}
    - include_conditions: labels whose value counts toward the sum
    The sum of included values is divided by the number of ALL suggestions
    returned, not just the included ones. Returns None when there are no
    suggestions at all.
    """
    if not suggestions:
        return None

    included = set(include_conditions)
    total = 0.0
    for condition, suggestion in suggestions.items():
        if condition not in included:
            continue
        value = suggestion.get("value") if isinstance(suggestion, dict) else None
        if value is None:
            logger.debug("Price suggestion for %r has no value; counting as 0.", condition)
            continue
        total += float(value)

    return round_price(total / len(suggestions))


def add_to_totals(totals: CatalogTotals, row: ReportRow, from_cache: bool) -> None:
    """Accumulate one processed row; rows without a price add nothing."""
    if row.average_price_suggestion is not None:
        totals.average_price += row.average_price_suggestion
    if row.lowest_price is not None:
        totals.lowest_price += row.lowest_price
    totals.processed += 1
    if from_cache:
        totals.from_cache += 1
    else:
        totals.fetched += 1
