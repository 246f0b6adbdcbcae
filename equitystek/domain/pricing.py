# equitystek/domain/pricing.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

CENT = Decimal("0.01")


def to_money(v: Any) -> Decimal:
    d = v if isinstance(v, Decimal) else Decimal(str(v if v is not None else 0))
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(v: Any) -> int:
    return int(to_money(v) * 100)


def from_cents(cents: int) -> Decimal:
    return to_money(Decimal(int(cents)) / 100)


@dataclass(frozen=True)
class PlanTerms:
    base_price: Decimal
    price_per_property: Decimal
    max_properties: Optional[int] = None


def billable_additional_properties(property_count: int) -> int:
    # the first property is included in the base price
    return max(0, int(property_count or 0) - 1)


def subscription_price(plan: Any, property_count: int) -> Decimal:
    """
    base_price + max(0, property_count - 1) * price_per_property.

    Works on any object exposing base_price / price_per_property (ORM plan or
    PlanTerms). Summed in integer cents so repeated calls cannot drift.
    """
    base = to_cents(getattr(plan, "base_price", 0))
    per = to_cents(getattr(plan, "price_per_property", 0))
    total = base + billable_additional_properties(property_count) * per
    return from_cents(total)


def within_allowance(plan: Any, property_count: int) -> bool:
    cap = getattr(plan, "max_properties", None)
    if cap is None:
        return True
    return int(property_count or 0) <= int(cap)
