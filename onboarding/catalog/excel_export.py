from __future__ import annotations

from typing import Optional, Sequence

from openpyxl import Workbook

from onboarding.catalog.breakdown import card_breakdown_lines, format_issues_header, format_lines_newlines
from onboarding.catalog.line_items import LineItemCard
from onboarding.catalog.quote import QuoteFinalization, card_amounts, compute_totals, q2


def export_quote_to_excel(
    cards: Sequence[LineItemCard],
    path: str,
    currency: Optional[str] = None,
    finalization: Optional[QuoteFinalization] = None,
) -> None:
    """
    One row per card on "Quote" (breakdown in the last cell), totals
    underneath, per-category sums on "Categories".
    Breakdown text comes from catalog.breakdown only.
    """
    totals = finalization.totals if finalization is not None else compute_totals(cards, currency)

    wb = Workbook()
    ws = wb.active
    ws.title = "Quote"

    ws.append(
        [
            "Card ID",
            "Name",
            "Kind",
            "Category",
            "Location",
            "Qty",
            "Monthly fee",
            "Internal cost",
            "Margin",
            "Cost breakdown",
        ]
    )

    for card in cards:
        fee, cost = card_amounts(card)
        ws.append(
            [
                card.id,
                card.name,
                card.kind.value,
                card.category,
                card.location_id or "",
                card.quantity,
                float(q2(fee)),
                float(q2(cost)),
                float(q2(fee - cost)),
                format_lines_newlines(card_breakdown_lines(card, totals.currency)),
            ]
        )

    ws.append([])
    ws.append(["Total monthly fee", float(totals.total_monthly_fee)])
    ws.append(["Total internal cost", float(totals.total_internal_cost)])
    ws.append(["Total margin", float(totals.total_margin)])
    ws.append(["Total yearly fee", float(totals.total_yearly_fee)])
    ws.append(["Currency", totals.currency])

    if finalization is not None and finalization.blocks:
        ws.append([format_issues_header("Blocked:", finalization.blocks)])

    cat_ws = wb.create_sheet("Categories")
    cat_ws.append(["Category", "Monthly fee", "Internal cost", "Margin"])
    for name, cat in sorted(totals.per_category.items()):
        cat_ws.append([name, float(cat.monthly_fee), float(cat.internal_cost), float(cat.margin)])

    wb.save(path)
