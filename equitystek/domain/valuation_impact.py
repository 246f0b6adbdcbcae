# equitystek/domain/valuation_impact.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .pricing import to_money

# Share of money spent on a category that shows up in the property's value.
ROI_FACTORS: dict[str, Decimal] = {
    "structural": Decimal("1.1"),
    "renovation": Decimal("1.2"),
    "plumbing": Decimal("0.8"),
    "electrical": Decimal("0.85"),
    "hvac": Decimal("0.9"),
    "roofing": Decimal("0.7"),
    "appliance": Decimal("0.5"),
    "cosmetic": Decimal("0.5"),
    "landscaping": Decimal("0.3"),
    "other": Decimal("0.4"),
}

DEFAULT_ROI_FACTOR = Decimal("0.5")

DEFAULT_COST_THRESHOLD = Decimal("1000")
DEFAULT_MATERIALITY = Decimal("100")


def roi_factor(category: Optional[str]) -> Decimal:
    key = (category or "").strip().lower()
    return ROI_FACTORS.get(key, DEFAULT_ROI_FACTOR)


def _as_decimal(v: Any) -> Decimal:
    if isinstance(v, Decimal):
        return v
    try:
        return Decimal(str(v if v is not None else 0))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def maintenance_impact(category: Optional[str], cost: Any) -> Decimal:
    """cost x ROI factor, in cents. Unknown categories use the default factor."""
    return to_money(_as_decimal(cost) * roi_factor(category))


def creation_adjustment(category: Optional[str], cost: Any, cost_threshold: Any = DEFAULT_COST_THRESHOLD) -> Optional[Decimal]:
    """
    Valuation delta for a newly created record, or None when the cost is
    at or under the threshold.
    """
    if _as_decimal(cost) <= _as_decimal(cost_threshold):
        return None
    return maintenance_impact(category, cost)


def update_adjustment(
    old_category: Optional[str],
    old_cost: Any,
    new_category: Optional[str],
    new_cost: Any,
    cost_threshold: Any = DEFAULT_COST_THRESHOLD,
    materiality: Any = DEFAULT_MATERIALITY,
) -> Optional[Decimal]:
    """
    Valuation delta for an edited record: impact(new) - impact(old).

    None when neither cost nor category changed, when the new cost is at or
    under the threshold, or when |delta| does not exceed the materiality bound.
    The old values must be read before the record is mutated.
    """
    old_c = _as_decimal(old_cost)
    new_c = _as_decimal(new_cost)
    old_cat = (old_category or "").strip().lower()
    new_cat = (new_category or "").strip().lower()

    if old_c == new_c and old_cat == new_cat:
        return None
    if new_c <= _as_decimal(cost_threshold):
        return None

    delta = maintenance_impact(new_cat, new_c) - maintenance_impact(old_cat, old_c)
    if abs(delta) <= _as_decimal(materiality):
        return None
    return delta
