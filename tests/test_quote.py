from __future__ import annotations

import itertools
from decimal import Decimal

import pytest

from onboarding.catalog import line_items as li
from onboarding.catalog import quote as q
from onboarding.core.errors import (
    EMPTY_QUOTE,
    INVALID_QUANTITY,
    MISSING_LOCATION,
    UNKNOWN_LOCATION,
    NotFoundError,
)


@pytest.fixture
def scenario_cards(terminal, countertop, insurance):
    a = li.instantiate(terminal, quantity=2)
    b = li.instantiate(countertop, quantity=1)
    li.attach_addon(a, li.instantiate(insurance, quantity=1))
    return [a, b]


def test_total_monthly_fee_with_addon(scenario_cards):
    totals = q.compute_totals(scenario_cards)

    assert totals.total_monthly_fee == Decimal("75.00")
    # 2*14 + 11.50 + 1
    assert totals.total_internal_cost == Decimal("40.50")
    assert totals.total_margin == Decimal("34.50")
    assert totals.total_yearly_fee == Decimal("900.00")
    assert totals.total_device_units == 3
    assert totals.total_service_units == 0


def test_totals_are_order_independent(scenario_cards, hosting):
    cards = scenario_cards + [li.instantiate(hosting, quantity=3)]
    expected = q.compute_totals(cards)

    for perm in itertools.permutations(cards):
        assert q.compute_totals(list(perm)) == expected


def test_per_category_breakdown(scenario_cards, hosting):
    cards = scenario_cards + [li.instantiate(hosting, quantity=3)]

    totals = q.compute_totals(cards)

    assert set(totals.per_category) == {"Terminals", "Services"}
    services = totals.per_category["Services"]
    assert services.monthly_fee == Decimal("30.00")
    assert services.internal_cost == Decimal("12.00")
    assert services.margin == Decimal("18.00")
    assert totals.total_service_units == 3


def test_per_device_addon_follows_parent_quantity(terminal, sim_card):
    card = li.instantiate(terminal, quantity=4)
    li.attach_addon(card, li.instantiate(sim_card))

    totals = q.compute_totals([card])

    assert totals.total_monthly_fee == Decimal("120.00")  # 4*25 + 4*5


def test_zero_quantity_contributes_nothing(terminal, countertop):
    broken = li.instantiate(terminal)
    broken.quantity = 0

    totals = q.compute_totals([broken, li.instantiate(countertop)])

    assert totals.total_monthly_fee == Decimal("20.00")
    assert totals.total_device_units == 1


def test_purchase_price_total(terminal, countertop):
    totals = q.compute_totals([li.instantiate(terminal, quantity=2), li.instantiate(countertop)])

    assert totals.total_purchase_price == Decimal("798.00")


def test_empty_quote_totals_are_zero():
    totals = q.compute_totals([])

    assert totals.total_monthly_fee == Decimal("0.00")
    assert totals.per_category == {}
    assert totals.as_dict()["totalYearlyFee"] == "0.00"


def test_clear_all_returns_empty_list(scenario_cards):
    assert q.clear_all(scenario_cards) == []


def test_finalize_blocks_card_without_location(terminal, two_locations):
    quote = q.Quote(context_id="ctx1", locations=two_locations)
    card = quote.add(terminal)

    result = quote.finalize()
    assert result.status == "BLOCKED"
    assert [b.code for b in result.blocks] == [MISSING_LOCATION]
    assert result.totals.total_monthly_fee == Decimal("25.00")

    assert quote.assign_location(card.id, "loc1") is None
    assert quote.finalize().status == "OK"


def test_single_location_does_not_require_assignment(terminal, two_locations):
    result = q.finalize([li.instantiate(terminal)], two_locations[:1])

    assert result.ok


def test_finalize_blocks_unknown_location_and_bad_quantity(terminal, two_locations):
    card = li.instantiate(terminal)
    card.location_id = "elsewhere"
    card.quantity = 0

    result = q.finalize([card], two_locations)

    assert {b.code for b in result.blocks} == {INVALID_QUANTITY, UNKNOWN_LOCATION}


def test_finalize_empty_quote():
    result = q.finalize([], [])

    assert result.status == "BLOCKED"
    assert [b.code for b in result.blocks] == [EMPTY_QUOTE]


def test_quote_session_edits(terminal, insurance, two_locations):
    quote = q.Quote(locations=two_locations)
    a = quote.add(terminal, location_id="loc1")
    b = quote.add(terminal, location_id="loc2")

    assert a.id != b.id
    addon = quote.add_addon(a.id, insurance)
    assert addon in quote.card(a.id).addons

    assert quote.update_quantity(b.id, 0).code == INVALID_QUANTITY
    assert quote.update_quantity(b.id, 3) is None
    assert quote.assign_location(a.id, "nowhere").code == UNKNOWN_LOCATION

    assert quote.totals().total_monthly_fee == Decimal("105.00")  # 25 + 5 + 3*25
    assert [c.id for c in quote.cards_for_location("loc2")] == [b.id]

    quote.remove(b.id)
    assert [c.id for c in quote.cards] == [a.id]
    with pytest.raises(NotFoundError):
        quote.remove(b.id)

    quote.clear_all()
    assert quote.cards == ()


def test_snapshot_is_a_deep_copy(terminal, insurance):
    quote = q.Quote()
    card = quote.add(terminal)
    quote.add_addon(card.id, insurance)

    snap = quote.snapshot()
    quote.update_quantity(card.id, 9)
    quote.card(card.id).addons[0].monthly_fee = Decimal("99")

    assert snap[0].quantity == 1
    assert snap[0].addons[0].monthly_fee == Decimal("5.00")


def test_session_add_with_bad_quantity_is_an_issue(terminal, insurance):
    quote = q.Quote()

    issue = quote.add(terminal, quantity=0)

    assert issue.code == INVALID_QUANTITY
    assert issue.meta["quantity"] == 0
    assert quote.cards == ()

    card = quote.add(terminal)
    assert quote.add_addon(card.id, insurance, quantity=-1).code == INVALID_QUANTITY
    assert quote.card(card.id).addons == []


def test_session_add_rejects_unknown_location(terminal, two_locations):
    quote = q.Quote(locations=two_locations)

    issue = quote.add(terminal, location_id="nowhere")

    assert issue.code == UNKNOWN_LOCATION
    assert issue.meta["locationId"] == "nowhere"
    assert quote.cards == ()
    assert quote.add(terminal, location_id="loc2").location_id == "loc2"
