from __future__ import annotations

import copy
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Sequence
from uuid import uuid4

from onboarding.catalog.models import CatalogItem, ItemKind
from onboarding.core.errors import (
    INVALID_ADDON_NESTING,
    INVALID_PRICE,
    INVALID_QUANTITY,
    MISSING_LOCATION,
    UNKNOWN_LOCATION,
    NotFoundError,
    ValidationIssue,
)

D = Decimal


@dataclass
class LineItemCard:
    # Identity
    id: str
    catalog_ref: str
    kind: ItemKind
    category: str
    name: str
    description: str = ""

    # Pricing snapshot (copied from the catalog at creation, may be overridden)
    quantity: int = 1
    monthly_fee: D = D("0.00")
    internal_cost: D = D("0.00")
    purchase_price: Optional[D] = None
    is_per_device: bool = False

    # Placement
    location_id: Optional[str] = None
    custom_text: Optional[str] = None

    # ADDON cards only, one level deep
    addons: List["LineItemCard"] = field(default_factory=list)

    def copy(self) -> "LineItemCard":
        return copy.deepcopy(self)

    def addon(self, addon_id: str) -> "LineItemCard":
        for a in self.addons:
            if a.id == addon_id:
                return a
        raise NotFoundError(f"Unknown addon id: {addon_id}", {"cardId": self.id, "addonId": addon_id})


def new_card_id() -> str:
    return f"card_{uuid4().hex}"


def instantiate(item: CatalogItem, quantity: int = 1) -> LineItemCard:
    """Bind a catalog item into a quote. Prices are snapshotted, not referenced."""
    if not _valid_quantity(quantity):
        raise ValueError(f"quantity must be an int >= 1, got {quantity!r}")
    return LineItemCard(
        id=new_card_id(),
        catalog_ref=item.id,
        kind=item.kind,
        category=item.category,
        name=item.name,
        description=item.description,
        quantity=quantity,
        monthly_fee=item.per_unit_monthly_fee,
        internal_cost=item.per_unit_internal_cost,
        purchase_price=item.per_unit_purchase_price,
        is_per_device=item.is_per_device,
    )


def _valid_quantity(n: Any) -> bool:
    return isinstance(n, int) and not isinstance(n, bool) and n >= 1


# -----------------------------
# Edits (validation issues are returned, the card is left unchanged)
# -----------------------------


def attach_addon(card: LineItemCard, addon: LineItemCard) -> Optional[ValidationIssue]:
    if card.kind == ItemKind.ADDON:
        return ValidationIssue(
            INVALID_ADDON_NESTING,
            f"Add-on card {card.name} cannot carry add-ons.",
            {"cardId": card.id, "addonId": addon.id},
        )
    if addon.kind != ItemKind.ADDON or addon.addons:
        return ValidationIssue(
            INVALID_ADDON_NESTING,
            f"{addon.name} is not an add-on and cannot be attached to {card.name}.",
            {"cardId": card.id, "addonId": addon.id, "addonKind": addon.kind.value},
        )
    card.addons.append(addon)
    return None


def detach_addon(card: LineItemCard, addon_id: str) -> LineItemCard:
    removed = card.addon(addon_id)
    card.addons = [a for a in card.addons if a.id != addon_id]
    return removed


def quantity_issue(quantity: Any, **meta: Any) -> Optional[ValidationIssue]:
    if _valid_quantity(quantity):
        return None
    return ValidationIssue(
        INVALID_QUANTITY,
        f"Quantity must be a whole number of at least 1 (got {quantity!r}).",
        {**meta, "quantity": quantity},
    )


def set_quantity(card: LineItemCard, quantity: int) -> Optional[ValidationIssue]:
    issue = quantity_issue(quantity, cardId=card.id)
    if issue is not None:
        return issue
    card.quantity = quantity
    return None


def _price_issue(card: LineItemCard, name: str, value: Any) -> Optional[ValidationIssue]:
    try:
        amount = D(str(value))
    except ArithmeticError:
        amount = None
    if amount is None or not amount.is_finite() or amount < 0:
        return ValidationIssue(
            INVALID_PRICE,
            f"{name} must be a number >= 0 (got {value!r}).",
            {"cardId": card.id, "field": name},
        )
    return None


def set_monthly_fee(card: LineItemCard, fee: Any) -> Optional[ValidationIssue]:
    issue = _price_issue(card, "monthly_fee", fee)
    if issue is None:
        card.monthly_fee = D(str(fee))
    return issue


def set_internal_cost(card: LineItemCard, cost: Any) -> Optional[ValidationIssue]:
    issue = _price_issue(card, "internal_cost", cost)
    if issue is None:
        card.internal_cost = D(str(cost))
    return issue


def assign_location(card: LineItemCard, location_id: Optional[str]) -> None:
    # add-ons ride along with their parent's location
    card.location_id = location_id


def set_custom_text(card: LineItemCard, text: Optional[str]) -> None:
    card.custom_text = text or None


# -----------------------------
# Completeness
# -----------------------------


def completeness_issues(card: LineItemCard, location_ids: Sequence[str]) -> List[ValidationIssue]:
    """
    A card is incomplete when the quote has more than one business location
    and the card is not assigned to one of them.
    """
    issues: List[ValidationIssue] = []
    if card.location_id is None:
        if len(location_ids) > 1:
            issues.append(
                ValidationIssue(
                    MISSING_LOCATION,
                    f"{card.name} must be assigned to a business location.",
                    {"cardId": card.id},
                )
            )
    elif location_ids and card.location_id not in location_ids:
        issues.append(
            ValidationIssue(
                UNKNOWN_LOCATION,
                f"{card.name} is assigned to an unknown location.",
                {"cardId": card.id, "locationId": card.location_id},
            )
        )
    return issues


def is_complete(card: LineItemCard, location_ids: Sequence[str]) -> bool:
    return not completeness_issues(card, location_ids)
