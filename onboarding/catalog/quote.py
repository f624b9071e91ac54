from __future__ import annotations

import copy
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Literal, Optional, Sequence, Tuple, Union

from onboarding.catalog import line_items as li
from onboarding.catalog.line_items import LineItemCard
from onboarding.catalog.models import BusinessLocation, CatalogItem, ItemKind
from onboarding.core.errors import (
    EMPTY_QUOTE,
    INVALID_ADDON_NESTING,
    INVALID_QUANTITY,
    UNKNOWN_LOCATION,
    NotFoundError,
    ValidationIssue,
)
from onboarding.core.logging_config import logger
from onboarding.core.settings import settings

if TYPE_CHECKING:
    from onboarding.storage.contracts import Ack, QuoteSnapshotStore

D = Decimal
CENT = D("0.01")
ZERO = D("0")

QuoteStatus = Literal["OK", "BLOCKED"]


def q2(x: D) -> D:
    return x.quantize(CENT, rounding=ROUND_HALF_UP)


# -----------------------------
# Totals
# -----------------------------


@dataclass(frozen=True)
class CategoryTotals:
    monthly_fee: D
    internal_cost: D

    @property
    def margin(self) -> D:
        return self.monthly_fee - self.internal_cost


@dataclass(frozen=True)
class QuoteTotals:
    per_category: Dict[str, CategoryTotals]
    total_monthly_fee: D
    total_internal_cost: D
    total_device_units: int
    total_service_units: int
    total_purchase_price: D = D("0.00")
    currency: str = "EUR"

    @property
    def total_margin(self) -> D:
        return self.total_monthly_fee - self.total_internal_cost

    @property
    def total_yearly_fee(self) -> D:
        return self.total_monthly_fee * 12

    def as_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "perCategory": {
                k: {
                    "monthlyFee": str(v.monthly_fee),
                    "internalCost": str(v.internal_cost),
                    "margin": str(v.margin),
                }
                for k, v in sorted(self.per_category.items())
            },
            "totalMonthlyFee": str(self.total_monthly_fee),
            "totalInternalCost": str(self.total_internal_cost),
            "totalMargin": str(self.total_margin),
            "totalYearlyFee": str(self.total_yearly_fee),
            "totalDeviceUnits": self.total_device_units,
            "totalServiceUnits": self.total_service_units,
            "totalPurchasePrice": str(self.total_purchase_price),
        }


def billable_quantity(card: LineItemCard) -> int:
    # quantity <= 0 should be impossible, it contributes nothing
    return card.quantity if card.quantity > 0 else 0


def addon_quantity(parent: LineItemCard, addon: LineItemCard) -> int:
    if addon.is_per_device:
        return billable_quantity(parent)
    return billable_quantity(addon)


def card_amounts(card: LineItemCard) -> Tuple[D, D]:
    """(monthly fee, internal cost) of one card including its add-ons, unrounded."""
    qty = billable_quantity(card)
    fee = card.monthly_fee * qty
    cost = card.internal_cost * qty
    for addon in card.addons:
        aq = addon_quantity(card, addon)
        fee += addon.monthly_fee * aq
        cost += addon.internal_cost * aq
    return fee, cost


def card_purchase_total(card: LineItemCard) -> D:
    total = ZERO
    if card.purchase_price is not None:
        total += card.purchase_price * billable_quantity(card)
    for addon in card.addons:
        if addon.purchase_price is not None:
            total += addon.purchase_price * addon_quantity(card, addon)
    return total


def compute_totals(cards: Iterable[LineItemCard], currency: Optional[str] = None) -> QuoteTotals:
    """
    Recompute everything from the card list. Add-ons roll into their parent's
    category. Sums are exact Decimals and only rounded at the end, so the
    result does not depend on card order.
    """
    fees: Dict[str, D] = {}
    costs: Dict[str, D] = {}
    device_units = 0
    service_units = 0
    purchase = ZERO

    for card in cards:
        fee, cost = card_amounts(card)
        fees[card.category] = fees.get(card.category, ZERO) + fee
        costs[card.category] = costs.get(card.category, ZERO) + cost
        purchase += card_purchase_total(card)

        if card.kind == ItemKind.DEVICE:
            device_units += billable_quantity(card)
        elif card.kind == ItemKind.SERVICE:
            service_units += billable_quantity(card)

    per_category = {
        cat: CategoryTotals(monthly_fee=q2(fees[cat]), internal_cost=q2(costs[cat]))
        for cat in fees
    }
    return QuoteTotals(
        per_category=per_category,
        total_monthly_fee=q2(sum(fees.values(), ZERO)),
        total_internal_cost=q2(sum(costs.values(), ZERO)),
        total_device_units=device_units,
        total_service_units=service_units,
        total_purchase_price=q2(purchase),
        currency=currency or settings.CURRENCY,
    )


def clear_all(cards: Sequence[LineItemCard]) -> List[LineItemCard]:
    return []


# -----------------------------
# Finalize
# -----------------------------


@dataclass
class QuoteFinalization:
    status: QuoteStatus
    totals: QuoteTotals
    blocks: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "OK"


LocationRef = Union[BusinessLocation, str]


def _location_ids(locations: Sequence[LocationRef]) -> List[str]:
    return [loc.id if isinstance(loc, BusinessLocation) else str(loc) for loc in locations]


def _card_blocks(card: LineItemCard, location_ids: Sequence[str]) -> List[ValidationIssue]:
    blocks: List[ValidationIssue] = []

    if card.quantity < 1:
        blocks.append(
            ValidationIssue(
                INVALID_QUANTITY,
                f"{card.name} has quantity {card.quantity}.",
                {"cardId": card.id, "quantity": card.quantity},
            )
        )

    for addon in card.addons:
        if card.kind == ItemKind.ADDON or addon.kind != ItemKind.ADDON or addon.addons:
            blocks.append(
                ValidationIssue(
                    INVALID_ADDON_NESTING,
                    f"{addon.name} cannot be nested under {card.name}.",
                    {"cardId": card.id, "addonId": addon.id},
                )
            )
        elif not addon.is_per_device and addon.quantity < 1:
            blocks.append(
                ValidationIssue(
                    INVALID_QUANTITY,
                    f"Add-on {addon.name} has quantity {addon.quantity}.",
                    {"cardId": card.id, "addonId": addon.id, "quantity": addon.quantity},
                )
            )

    blocks.extend(li.completeness_issues(card, location_ids))
    return blocks


def finalize(
    cards: Sequence[LineItemCard],
    locations: Sequence[LocationRef] = (),
    currency: Optional[str] = None,
) -> QuoteFinalization:
    """
    Accept the quote or list every reason it cannot be accepted.
    Totals are always returned so the UI can keep showing them.
    """
    location_ids = _location_ids(locations)
    blocks: List[ValidationIssue] = []

    if not cards:
        blocks.append(ValidationIssue(EMPTY_QUOTE, "Quote has no line items."))

    for card in cards:
        blocks.extend(_card_blocks(card, location_ids))

    totals = compute_totals(cards, currency)
    return QuoteFinalization(status="BLOCKED" if blocks else "OK", totals=totals, blocks=blocks)


# -----------------------------
# Session
# -----------------------------


class Quote:
    """
    The cart of one onboarding session: a list of cards plus the business
    locations they can be assigned to. Totals are always derived, never kept.
    """

    def __init__(
        self,
        context_id: Optional[str] = None,
        locations: Sequence[BusinessLocation] = (),
        cards: Optional[List[LineItemCard]] = None,
        currency: Optional[str] = None,
    ):
        self.context_id = context_id
        self.locations = list(locations)
        self._cards: List[LineItemCard] = list(cards or [])
        self.currency = currency or settings.CURRENCY

    @property
    def cards(self) -> Tuple[LineItemCard, ...]:
        return tuple(self._cards)

    @property
    def location_ids(self) -> List[str]:
        return [loc.id for loc in self.locations]

    def _log(self, **fields: Any):
        return logger.bind(context_id=self.context_id, **fields)

    def card(self, card_id: str) -> LineItemCard:
        for c in self._cards:
            if c.id == card_id:
                return c
        self._log(card_id=card_id).warning("card_not_found")
        raise NotFoundError(f"Unknown card id: {card_id}", {"cardId": card_id})

    # --- edits ---

    def _location_issue(self, location_id: Optional[str], **meta: Any) -> Optional[ValidationIssue]:
        if location_id is None or location_id in self.location_ids:
            return None
        return ValidationIssue(
            UNKNOWN_LOCATION,
            f"Unknown business location: {location_id}",
            {**meta, "locationId": location_id},
        )

    def add(
        self, item: CatalogItem, quantity: int = 1, location_id: Optional[str] = None
    ) -> Union[LineItemCard, ValidationIssue]:
        issue = li.quantity_issue(quantity, catalogRef=item.id) or self._location_issue(
            location_id, catalogRef=item.id
        )
        if issue is not None:
            self._log(catalog_ref=item.id, code=issue.code).info("card_rejected")
            return issue
        # same catalog item twice = two cards (cards are per location)
        card = li.instantiate(item, quantity)
        li.assign_location(card, location_id)
        self._cards.append(card)
        self._log(card_id=card.id, catalog_ref=item.id).info("card_added")
        return card

    def add_addon(
        self, card_id: str, item: CatalogItem, quantity: int = 1
    ) -> Union[LineItemCard, ValidationIssue]:
        parent = self.card(card_id)
        issue = li.quantity_issue(quantity, cardId=card_id, catalogRef=item.id)
        if issue is not None:
            return issue
        addon = li.instantiate(item, quantity)
        issue = li.attach_addon(parent, addon)
        return issue if issue is not None else addon

    def remove_addon(self, card_id: str, addon_id: str) -> LineItemCard:
        return li.detach_addon(self.card(card_id), addon_id)

    def remove(self, card_id: str) -> LineItemCard:
        card = self.card(card_id)
        self._cards = [c for c in self._cards if c.id != card_id]
        self._log(card_id=card_id).info("card_removed")
        return card

    def update_quantity(self, card_id: str, quantity: int) -> Optional[ValidationIssue]:
        return li.set_quantity(self.card(card_id), quantity)

    def assign_location(self, card_id: str, location_id: Optional[str]) -> Optional[ValidationIssue]:
        card = self.card(card_id)
        issue = self._location_issue(location_id, cardId=card_id)
        if issue is not None:
            return issue
        li.assign_location(card, location_id)
        return None

    def clear_all(self) -> None:
        self._cards = clear_all(self._cards)
        self._log().info("quote_cleared")

    # --- derived ---

    def totals(self) -> QuoteTotals:
        return compute_totals(self._cards, self.currency)

    def cards_for_location(self, location_id: Optional[str]) -> List[LineItemCard]:
        return [c for c in self._cards if c.location_id == location_id]

    def finalize(self) -> QuoteFinalization:
        result = finalize(self._cards, self.locations, self.currency)
        self._log(
            status=result.status,
            blocks=[b.code for b in result.blocks],
            total_monthly_fee=str(result.totals.total_monthly_fee),
        ).info("quote_finalized")
        return result

    def snapshot(self) -> List[LineItemCard]:
        return copy.deepcopy(self._cards)

    def save(self, store: "QuoteSnapshotStore") -> "Ack":
        return store.save_quote_snapshot(self.snapshot(), self.context_id or "")
