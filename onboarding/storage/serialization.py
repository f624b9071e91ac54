# onboarding/storage/serialization.py
"""
Stored document shapes (v1).

The domain owns the structure; these models only flatten it for a store.
Grid geometry is re-checked when a stored document is turned back into a
Template, so a hand-edited row cannot smuggle in an overlapping table.
"""

from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from onboarding.catalog.line_items import LineItemCard
from onboarding.catalog.models import ItemKind
from onboarding.documents import template_model as tm
from onboarding.documents.fields import FieldSpec, FieldType
from onboarding.documents.grid import CellKind, Grid, GridCell
from onboarding.documents.sections import Section, SectionKind


# -----------------------------
# Template
# -----------------------------


class FieldSpecV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: str = Field(min_length=1)
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    options: List[str] = Field(default_factory=list)

    @staticmethod
    def from_domain(f: FieldSpec) -> "FieldSpecV1":
        return FieldSpecV1(
            key=f.key, label=f.label, type=f.type, required=f.required, options=list(f.options)
        )

    def to_domain(self) -> FieldSpec:
        return FieldSpec(
            key=self.key,
            label=self.label,
            type=self.type,
            required=self.required,
            options=tuple(self.options),
        )


class GridCellV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    row: int = Field(ge=0)
    col: int = Field(ge=0)
    colspan: int = Field(default=1, ge=1)
    rowspan: int = Field(default=1, ge=1)
    kind: CellKind = CellKind.EMPTY
    label: Optional[str] = None
    field: Optional[FieldSpecV1] = None


class GridV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rows: int = Field(ge=1)
    cols: int = Field(ge=1)
    cells: List[GridCellV1]

    @staticmethod
    def from_domain(grid: Grid) -> "GridV1":
        return GridV1(
            rows=grid.rows,
            cols=grid.cols,
            cells=[
                GridCellV1(
                    id=c.id,
                    row=c.row,
                    col=c.col,
                    colspan=c.colspan,
                    rowspan=c.rowspan,
                    kind=c.kind,
                    label=c.label,
                    field=FieldSpecV1.from_domain(c.field) if c.field is not None else None,
                )
                for c in grid.cells
            ],
        )

    def to_domain(self) -> Grid:
        return Grid(
            rows=self.rows,
            cols=self.cols,
            cells=tuple(
                GridCell(
                    id=c.id,
                    row=c.row,
                    col=c.col,
                    colspan=c.colspan,
                    rowspan=c.rowspan,
                    kind=c.kind,
                    label=c.label,
                    field=c.field.to_domain() if c.field is not None else None,
                )
                for c in self.cells
            ),
        )


class SectionV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    title: str
    kind: SectionKind = SectionKind.FORM
    fields: List[FieldSpecV1] = Field(default_factory=list)
    table: Optional[GridV1] = None

    @staticmethod
    def from_domain(s: Section) -> "SectionV1":
        return SectionV1(
            id=s.id,
            title=s.title,
            kind=s.kind,
            fields=[FieldSpecV1.from_domain(f) for f in s.fields],
            table=GridV1.from_domain(s.table) if s.table is not None else None,
        )

    def to_domain(self) -> Section:
        # Section.__post_init__ re-checks the grid partition
        return Section(
            id=self.id,
            title=self.title,
            kind=self.kind,
            fields=tuple(f.to_domain() for f in self.fields),
            table=self.table.to_domain() if self.table is not None else None,
        )


class HeaderV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = ""
    logo_ref: Optional[str] = None
    second_logo_ref: Optional[str] = None
    background_color: str = "#1E90FF"


class FooterV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    branding_text: str = "ONEPOS"
    page_number_format: str = "Strana {page}/{totalPages}"


class StylingV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    primary_color: str = "#1E90FF"
    font_family: str = "Arial, sans-serif"
    font_size: str = "12px"
    margin: str = "20px"
    page_format: str = "A4"


class TemplateDocumentV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: Literal["v1"] = "v1"
    template_id: Optional[str] = None
    name: str = ""
    description: str = ""
    is_active: bool = True
    document_type: tm.DocumentType = tm.DocumentType.G1
    header: HeaderV1 = Field(default_factory=HeaderV1)
    sections: List[SectionV1] = Field(default_factory=list)
    footer: FooterV1 = Field(default_factory=FooterV1)
    styling: StylingV1 = Field(default_factory=StylingV1)

    @staticmethod
    def from_domain(t: tm.Template) -> "TemplateDocumentV1":
        return TemplateDocumentV1(
            template_id=t.template_id,
            name=t.name,
            description=t.description,
            is_active=t.is_active,
            document_type=t.document_type,
            header=HeaderV1(**asdict(t.header)),
            sections=[SectionV1.from_domain(s) for s in t.sections],
            footer=FooterV1(**asdict(t.footer)),
            styling=StylingV1(**asdict(t.styling)),
        )

    def to_domain(self) -> tm.Template:
        return tm.Template(
            template_id=self.template_id,
            name=self.name,
            description=self.description,
            is_active=self.is_active,
            document_type=self.document_type,
            header=tm.Header(**self.header.model_dump()),
            sections=tuple(s.to_domain() for s in self.sections),
            footer=tm.Footer(**self.footer.model_dump()),
            styling=tm.Styling(**self.styling.model_dump()),
        )


# -----------------------------
# Quote snapshot
# -----------------------------


class LineItemCardV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    catalog_ref: str
    kind: ItemKind
    category: str = ""
    name: str
    description: str = ""
    quantity: int
    monthly_fee: Decimal = Field(ge=0)
    internal_cost: Decimal = Field(ge=0)
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)
    is_per_device: bool = False
    location_id: Optional[str] = None
    custom_text: Optional[str] = None
    addons: List["LineItemCardV1"] = Field(default_factory=list)

    @staticmethod
    def from_domain(card: LineItemCard) -> "LineItemCardV1":
        return LineItemCardV1(
            id=card.id,
            catalog_ref=card.catalog_ref,
            kind=card.kind,
            category=card.category,
            name=card.name,
            description=card.description,
            quantity=card.quantity,
            monthly_fee=card.monthly_fee,
            internal_cost=card.internal_cost,
            purchase_price=card.purchase_price,
            is_per_device=card.is_per_device,
            location_id=card.location_id,
            custom_text=card.custom_text,
            addons=[LineItemCardV1.from_domain(a) for a in card.addons],
        )

    def to_domain(self) -> LineItemCard:
        return LineItemCard(
            id=self.id,
            catalog_ref=self.catalog_ref,
            kind=self.kind,
            category=self.category,
            name=self.name,
            description=self.description,
            quantity=self.quantity,
            monthly_fee=self.monthly_fee,
            internal_cost=self.internal_cost,
            purchase_price=self.purchase_price,
            is_per_device=self.is_per_device,
            location_id=self.location_id,
            custom_text=self.custom_text,
            addons=[a.to_domain() for a in self.addons],
        )


LineItemCardV1.model_rebuild()


class QuoteSnapshotV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: Literal["v1"] = "v1"
    snapshot_id: str
    context_id: str
    created_at: str
    cards: List[LineItemCardV1]

    def to_domain(self) -> List[LineItemCard]:
        return [c.to_domain() for c in self.cards]


def cards_to_documents(cards: Sequence[LineItemCard]) -> List[LineItemCardV1]:
    return [LineItemCardV1.from_domain(c) for c in cards]
