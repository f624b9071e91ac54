# onboarding/catalog/__init__.py
from __future__ import annotations

from .line_items import LineItemCard, instantiate
from .models import BusinessLocation, CatalogItem, ItemKind, Solution
from .quote import Quote, QuoteFinalization, QuoteTotals, compute_totals, finalize

__all__ = [
    "BusinessLocation",
    "CatalogItem",
    "ItemKind",
    "LineItemCard",
    "Quote",
    "QuoteFinalization",
    "QuoteTotals",
    "Solution",
    "compute_totals",
    "finalize",
    "instantiate",
]
