from __future__ import annotations

from decimal import Decimal

import pytest

from onboarding.catalog.models import BusinessLocation, CatalogItem, ItemKind, Solution
from onboarding.documents import grid as g
from onboarding.documents.fields import FieldSpec
from onboarding.documents.sections import Section, SectionKind
from onboarding.documents.table_layout import IdAllocator, TableLayoutEngine
from onboarding.documents.template_model import Template


# -----------------------------
# Catalog
# -----------------------------


@pytest.fixture
def terminal():
    return CatalogItem(
        id="pax-a920",
        kind=ItemKind.DEVICE,
        category="Terminals",
        name="PAX A920 Pro",
        per_unit_monthly_fee=Decimal("25.00"),
        per_unit_internal_cost=Decimal("14.00"),
        per_unit_purchase_price=Decimal("399.00"),
        solution_ids=frozenset({"terminal", "pos"}),
    )


@pytest.fixture
def countertop():
    return CatalogItem(
        id="pax-a80",
        kind=ItemKind.DEVICE,
        category="Terminals",
        name="PAX A80",
        per_unit_monthly_fee=Decimal("20.00"),
        per_unit_internal_cost=Decimal("11.50"),
        solution_ids=frozenset({"terminal", "pos"}),
    )


@pytest.fixture
def insurance():
    return CatalogItem(
        id="insurance",
        kind=ItemKind.ADDON,
        category="Terminals",
        name="Device insurance",
        per_unit_monthly_fee=Decimal("5.00"),
        per_unit_internal_cost=Decimal("1.00"),
    )


@pytest.fixture
def sim_card():
    return CatalogItem(
        id="sim-card",
        kind=ItemKind.ADDON,
        category="Terminals",
        name="SIM card",
        per_unit_monthly_fee=Decimal("5.00"),
        per_unit_internal_cost=Decimal("2.00"),
        is_per_device=True,
    )


@pytest.fixture
def hosting():
    return CatalogItem(
        id="hosting",
        kind=ItemKind.SERVICE,
        category="Services",
        name="Hosting",
        per_unit_monthly_fee=Decimal("10.00"),
        per_unit_internal_cost=Decimal("4.00"),
    )


@pytest.fixture
def two_locations():
    return [
        BusinessLocation(id="loc1", name="Main", estimated_monthly_turnover=Decimal("10000")),
        BusinessLocation(id="loc2", name="Branch", estimated_monthly_turnover=Decimal("5000")),
    ]


@pytest.fixture
def pos_solution():
    return Solution(
        id="pos",
        name="Cash register",
        requires_modules=True,
        module_category="Modules",
        system_category="Cash register system",
    )


@pytest.fixture
def terminal_solution():
    return Solution(id="terminal", name="Payment terminal")


@pytest.fixture
def pos_catalog(terminal):
    return [
        terminal,
        CatalogItem(
            id="mod-tables",
            kind=ItemKind.SERVICE,
            category="Modules",
            name="Table management",
            per_unit_monthly_fee=Decimal("9.90"),
            per_unit_internal_cost=Decimal("3.00"),
            solution_ids=frozenset({"pos"}),
        ),
        CatalogItem(
            id="mod-stock",
            kind=ItemKind.SERVICE,
            category="Modules",
            name="Stock management",
            per_unit_monthly_fee=Decimal("14.90"),
            per_unit_internal_cost=Decimal("5.00"),
            solution_ids=frozenset({"pos"}),
        ),
        CatalogItem(
            id="sys-cloud",
            kind=ItemKind.SERVICE,
            category="Cash register system",
            name="ONEPOS Cloud",
            per_unit_monthly_fee=Decimal("19.90"),
            per_unit_internal_cost=Decimal("8.00"),
            solution_ids=frozenset({"pos"}),
        ),
    ]


# -----------------------------
# Documents
# -----------------------------


@pytest.fixture
def engine():
    return TableLayoutEngine(new_id=IdAllocator(token="test"))


@pytest.fixture
def table_section():
    return Section(
        id="s_table",
        title="Terminals",
        kind=SectionKind.TABLE_LAYOUT,
        table=g.create_empty_grid(3, 3),
    )


@pytest.fixture
def four_section_template():
    sections = [
        Section(
            id=f"s{i}",
            title=f"Section {i}",
            fields=(FieldSpec(key=f"k{i}", label=f"Field {i}"),),
        )
        for i in range(3)
    ]
    sections.append(
        Section(
            id="s3",
            title="Section 3",
            kind=SectionKind.TABLE_LAYOUT,
            table=g.create_empty_grid(2, 2),
        )
    )
    return Template(name="Contract", sections=tuple(sections))


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "onboarding.db")
