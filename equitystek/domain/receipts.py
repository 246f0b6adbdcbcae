# equitystek/domain/receipts.py
from __future__ import annotations

import html
from datetime import date, datetime
from typing import Any, Iterable

from .pricing import to_money

RECEIPT_PREFIX = "INV"


def receipt_date_prefix(day: date | datetime) -> str:
    return f"{RECEIPT_PREFIX}-{day.strftime('%y%m%d')}"


def format_receipt_number(day: date | datetime, sequence: int) -> str:
    """INV-YYMMDD-NNNN, sequence restarting at 1 each day."""
    return f"{receipt_date_prefix(day)}-{int(sequence):04d}"


def next_receipt_number(day: date | datetime, existing: Iterable[str]) -> str:
    prefix = receipt_date_prefix(day) + "-"
    highest = 0
    for n in existing:
        if not n or not n.startswith(prefix):
            continue
        tail = n[len(prefix):]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return format_receipt_number(day, highest + 1)


def subscription_line_items(*, plan_name: str, base_price: Any, price_per_property: Any, property_count: int) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = [
        {
            "description": f"{plan_name} plan (includes 1 property)",
            "quantity": 1,
            "unit_price": float(to_money(base_price)),
            "amount": float(to_money(base_price)),
        }
    ]
    extra = max(0, int(property_count or 0) - 1)
    if extra:
        per = to_money(price_per_property)
        items.append(
            {
                "description": "Additional properties",
                "quantity": extra,
                "unit_price": float(per),
                "amount": float(to_money(per * extra)),
            }
        )
    return items


def _money_str(v: Any, currency: str) -> str:
    sym = "$" if (currency or "usd").lower() == "usd" else ""
    suffix = "" if sym else f" {currency.upper()}"
    return f"{sym}{to_money(v):,.2f}{suffix}"


def render_receipt_html(receipt: Any, *, customer_email: str | None = None) -> str:
    """
    Printable receipt. Accepts the ORM Receipt or anything with the same
    attributes; every value is HTML-escaped.
    """
    e = html.escape
    currency = str(getattr(receipt, "currency", "usd") or "usd")
    created = getattr(receipt, "created_at", None) or datetime.utcnow()
    items = list(getattr(receipt, "items", None) or [])

    rows = []
    for it in items:
        rows.append(
            "<tr>"
            f"<td>{e(str(it.get('description', '')))}</td>"
            f"<td class=\"num\">{e(str(it.get('quantity', 1)))}</td>"
            f"<td class=\"num\">{e(_money_str(it.get('unit_price', 0), currency))}</td>"
            f"<td class=\"num\">{e(_money_str(it.get('amount', 0), currency))}</td>"
            "</tr>"
        )
    if not rows:
        rows.append(
            "<tr>"
            f"<td>{e(str(receipt.description))}</td>"
            "<td class=\"num\">1</td>"
            f"<td class=\"num\">{e(_money_str(receipt.amount, currency))}</td>"
            f"<td class=\"num\">{e(_money_str(receipt.amount, currency))}</td>"
            "</tr>"
        )

    billed_to = f"<p>Billed to: {e(customer_email)}</p>" if customer_email else ""

    return (
        "<!DOCTYPE html>\n"
        "<html><head><meta charset=\"utf-8\">"
        f"<title>Receipt {e(str(receipt.receipt_number))}</title>"
        "<style>body{font-family:sans-serif;max-width:720px;margin:2em auto}"
        "table{width:100%;border-collapse:collapse}td,th{border-bottom:1px solid #ddd;padding:6px}"
        ".num{text-align:right}</style></head><body>"
        "<h1>EquityStek</h1>"
        f"<h2>Receipt {e(str(receipt.receipt_number))}</h2>"
        f"<p>Date: {e(created.strftime('%Y-%m-%d'))}</p>"
        f"{billed_to}"
        f"<p>Status: {e(str(receipt.payment_status))}</p>"
        f"<p>Payment method: {e(str(receipt.payment_method))}</p>"
        "<table><thead><tr><th>Description</th><th class=\"num\">Qty</th>"
        "<th class=\"num\">Unit price</th><th class=\"num\">Amount</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        f"<tfoot><tr><th colspan=\"3\">Total</th><th class=\"num\">{e(_money_str(receipt.amount, currency))}</th></tr></tfoot>"
        "</table></body></html>\n"
    )
