# equitystek/domain/stats.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Iterable

from .pricing import to_money


@dataclass(frozen=True)
class AdminStats:
    total_users: int
    users_by_role: dict[str, int]
    total_properties: int
    active_properties: int
    total_maintenance_records: int
    total_maintenance_cost: float
    total_portfolio_value: float
    active_subscriptions: int
    subscriptions_by_status: dict[str, int]
    monthly_recurring_revenue: float
    total_revenue: float

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _count_by(rows: Iterable[Any], attr: str) -> dict[str, int]:
    out: dict[str, int] = {}
    for r in rows:
        k = str(getattr(r, attr, None) or "unknown")
        out[k] = out.get(k, 0) + 1
    return out


def _money_sum(values: Iterable[Any]) -> Decimal:
    total = Decimal("0")
    for v in values:
        total += to_money(v or 0)
    return total


def admin_rollup(
    *,
    users: list[Any],
    properties: list[Any],
    maintenance_records: list[Any],
    subscriptions: list[Any],
    receipts: list[Any],
) -> AdminStats:
    active_props = [p for p in properties if getattr(p, "is_active", True)]
    live_records = [m for m in maintenance_records if getattr(m, "is_active", True)]
    active_subs = [s for s in subscriptions if getattr(s, "status", None) == "active"]
    paid = [r for r in receipts if getattr(r, "payment_status", None) == "paid"]

    return AdminStats(
        total_users=len(users),
        users_by_role=_count_by(users, "role"),
        total_properties=len(properties),
        active_properties=len(active_props),
        total_maintenance_records=len(live_records),
        total_maintenance_cost=float(_money_sum(m.cost for m in live_records)),
        total_portfolio_value=float(_money_sum(p.current_value for p in active_props)),
        active_subscriptions=len(active_subs),
        subscriptions_by_status=_count_by(subscriptions, "status"),
        monthly_recurring_revenue=float(_money_sum(s.current_price for s in active_subs)),
        total_revenue=float(_money_sum(r.amount for r in paid)),
    )
