from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional

from onboarding.catalog.line_items import LineItemCard
from onboarding.catalog.quote import addon_quantity, billable_quantity, card_amounts, q2
from onboarding.core.errors import ValidationIssue
from onboarding.core.settings import settings

D = Decimal


def format_money(amount: D, currency: Optional[str] = None) -> str:
    return f"{q2(amount):.2f} {currency or settings.CURRENCY}"


def _clean_line(s: str) -> str:
    return str(s).replace("\r", "").replace("\n", " ").replace("\t", " ").strip()


def card_breakdown_lines(card: LineItemCard, currency: Optional[str] = None) -> List[str]:
    """
    Cost summary of one card, one line per step:

      Main item: POS terminal (2 pcs × 25.00 EUR) = 50.00 EUR
      • Insurance (2 pcs × 3.00 EUR) = 6.00 EUR
      Customer pays: 56.00 EUR
      Company cost: 30.00 EUR
      Margin: 26.00 EUR
    """
    def money(x: D) -> str:
        return format_money(x, currency)

    qty = billable_quantity(card)

    lines = [
        f"Main item: {card.name} ({qty} pcs × {money(card.monthly_fee)}) = {money(card.monthly_fee * qty)}"
    ]
    for addon in card.addons:
        aq = addon_quantity(card, addon)
        lines.append(
            f"• {addon.name} ({aq} pcs × {money(addon.monthly_fee)}) = {money(addon.monthly_fee * aq)}"
        )

    fee, cost = card_amounts(card)
    lines.append(f"Customer pays: {money(fee)}")
    lines.append(f"Company cost: {money(cost)}")
    lines.append(f"Margin: {money(fee - cost)}")
    return lines


def format_lines_newlines(lines: Iterable[str]) -> str:
    """One Excel cell, newline joined."""
    return "\n".join(_clean_line(s) for s in lines if str(s).strip())


def format_issues_header(title: str, issues: Iterable[ValidationIssue], bullet: str = "•") -> str:
    """Title plus one bullet per issue; empty string when there is nothing to report."""
    items = list(issues)
    if not items:
        return ""
    lines = [title]
    for i in items:
        msg = _clean_line(i.message)
        lines.append(f"{bullet} [{i.code}] {msg}" if msg else f"{bullet} [{i.code}]")
    return "\n".join(lines)
