from __future__ import annotations

from decimal import Decimal

import pytest

from onboarding.catalog import line_items as li
from onboarding.catalog.models import CatalogItem, ItemKind
from onboarding.core.errors import (
    INVALID_ADDON_NESTING,
    INVALID_PRICE,
    INVALID_QUANTITY,
    MISSING_LOCATION,
    UNKNOWN_LOCATION,
    NotFoundError,
)


def test_instantiate_snapshots_pricing(terminal):
    card = li.instantiate(terminal, quantity=2)

    assert card.catalog_ref == "pax-a920"
    assert card.kind == ItemKind.DEVICE
    assert card.quantity == 2
    assert card.monthly_fee == Decimal("25.00")
    assert card.internal_cost == Decimal("14.00")
    assert card.purchase_price == Decimal("399.00")
    assert card.addons == []


def test_card_edits_do_not_touch_catalog_item(terminal):
    card = li.instantiate(terminal)

    li.set_monthly_fee(card, "19.99")
    li.set_quantity(card, 5)

    assert terminal.per_unit_monthly_fee == Decimal("25.00")
    assert card.monthly_fee == Decimal("19.99")


def test_cards_get_unique_ids(terminal):
    assert li.instantiate(terminal).id != li.instantiate(terminal).id


def test_instantiate_rejects_zero_quantity(terminal):
    with pytest.raises(ValueError):
        li.instantiate(terminal, quantity=0)


def test_catalog_item_rejects_negative_fee():
    with pytest.raises(ValueError):
        CatalogItem(id="x", kind="device", category="c", name="X", per_unit_monthly_fee=Decimal("-1"))


def test_catalog_item_from_dict():
    item = CatalogItem.from_dict(
        {
            "id": "sim",
            "kind": "addon",
            "category": "Terminals",
            "name": "SIM",
            "monthlyFee": 5,
            "companyCost": "2.5",
            "isPerDevice": True,
        }
    )

    assert item.kind == ItemKind.ADDON
    assert item.per_unit_monthly_fee == Decimal("5")
    assert item.per_unit_internal_cost == Decimal("2.5")
    assert item.per_unit_purchase_price is None
    assert item.is_per_device


def test_attach_addon(terminal, insurance):
    card = li.instantiate(terminal)
    addon = li.instantiate(insurance)

    assert li.attach_addon(card, addon) is None
    assert card.addons == [addon]


def test_attach_non_addon_is_rejected(terminal, countertop):
    card = li.instantiate(terminal)

    issue = li.attach_addon(card, li.instantiate(countertop))

    assert issue.code == INVALID_ADDON_NESTING
    assert card.addons == []


def test_addon_cannot_carry_addons(insurance, sim_card):
    addon = li.instantiate(insurance)

    issue = li.attach_addon(addon, li.instantiate(sim_card))

    assert issue.code == INVALID_ADDON_NESTING
    assert addon.addons == []


def test_detach_addon(terminal, insurance):
    card = li.instantiate(terminal)
    addon = li.instantiate(insurance)
    li.attach_addon(card, addon)

    assert li.detach_addon(card, addon.id) is addon
    assert card.addons == []
    with pytest.raises(NotFoundError):
        li.detach_addon(card, addon.id)


@pytest.mark.parametrize("bad", [0, -3, 1.5, True, "2"])
def test_set_quantity_rejects_invalid(terminal, bad):
    card = li.instantiate(terminal, quantity=3)

    issue = li.set_quantity(card, bad)

    assert issue.code == INVALID_QUANTITY
    assert card.quantity == 3


def test_set_fee_rejects_negative_and_garbage(terminal):
    card = li.instantiate(terminal)

    assert li.set_monthly_fee(card, "-1").code == INVALID_PRICE
    assert li.set_internal_cost(card, "abc").code == INVALID_PRICE
    assert card.monthly_fee == Decimal("25.00")
    assert card.internal_cost == Decimal("14.00")


def test_completeness_depends_on_location_count(terminal):
    card = li.instantiate(terminal)

    assert li.is_complete(card, [])
    assert li.is_complete(card, ["loc1"])
    assert [i.code for i in li.completeness_issues(card, ["loc1", "loc2"])] == [MISSING_LOCATION]

    li.assign_location(card, "loc9")
    assert [i.code for i in li.completeness_issues(card, ["loc1", "loc2"])] == [UNKNOWN_LOCATION]

    li.assign_location(card, "loc2")
    assert li.is_complete(card, ["loc1", "loc2"])


def test_custom_text_blank_is_none(terminal):
    card = li.instantiate(terminal)

    li.set_custom_text(card, "")
    assert card.custom_text is None

    li.set_custom_text(card, "Black color")
    assert card.custom_text == "Black color"
