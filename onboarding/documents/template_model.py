"""
Template document model.

A Template is a frozen value. Every edit is a typed function that returns a
new Template, so a template handed to persistence can never be observed
half-edited.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Tuple
from uuid import uuid4

from onboarding.core.errors import SECTIONS_NOT_EMPTY, NotFoundError, StructuralError, ValidationIssue
from onboarding.core.settings import settings
from onboarding.documents import grid as g
from onboarding.documents.defaults import default_sections_for
from onboarding.documents.fields import duplicate_keys
from onboarding.documents.sections import Section, SectionKind


class DocumentType(str, Enum):
    G1 = "G1"  # merchant acceptance request
    G2 = "G2"  # beneficial owner declaration


@dataclass(frozen=True)
class Header:
    title: str = ""
    logo_ref: Optional[str] = "assets/onepos-logo.png"
    second_logo_ref: Optional[str] = "assets/global-payments-logo.png"
    background_color: str = "#1E90FF"


@dataclass(frozen=True)
class Footer:
    branding_text: str = "ONEPOS"
    page_number_format: str = "Strana {page}/{totalPages}"


@dataclass(frozen=True)
class Styling:
    primary_color: str = "#1E90FF"
    font_family: str = "Arial, sans-serif"
    font_size: str = "12px"
    margin: str = "20px"
    page_format: str = "A4"


class DuplicateSectionId(StructuralError):
    code = "DUPLICATE_SECTION_ID"


@dataclass(frozen=True)
class Template:
    name: str = ""
    description: str = ""
    is_active: bool = True
    document_type: DocumentType = DocumentType.G1
    header: Header = field(default_factory=Header)
    sections: Tuple[Section, ...] = ()
    footer: Footer = field(default_factory=Footer)
    styling: Styling = field(default_factory=Styling)
    template_id: Optional[str] = None  # set by the store on first save

    def __post_init__(self) -> None:
        object.__setattr__(self, "document_type", DocumentType(self.document_type))
        object.__setattr__(self, "sections", tuple(self.sections or ()))
        dups = duplicate_keys(s.id for s in self.sections)
        if dups:
            raise DuplicateSectionId(f"Section ids used more than once: {dups}", {"ids": dups})

    def section(self, section_id: str) -> Section:
        for s in self.sections:
            if s.id == section_id:
                return s
        raise NotFoundError(f"Unknown section id: {section_id}", {"sectionId": section_id})

    def index_of(self, section_id: str) -> int:
        for i, s in enumerate(self.sections):
            if s.id == section_id:
                return i
        raise NotFoundError(f"Unknown section id: {section_id}", {"sectionId": section_id})

    @property
    def section_ids(self) -> list[str]:
        return [s.id for s in self.sections]


def new_section_id() -> str:
    return f"section_{uuid4().hex[:12]}"


def default_table() -> g.Grid:
    return g.create_empty_grid(settings.DEFAULT_TABLE_ROWS, settings.DEFAULT_TABLE_COLS)


# -----------------------------
# Section list edits
# -----------------------------


def add_section(template: Template, section: Optional[Section] = None) -> Template:
    if section is None:
        section = Section(id=new_section_id(), title="New section")
    return replace(template, sections=template.sections + (section,))


def remove_section(template: Template, section_id: str) -> Template:
    template.index_of(section_id)  # raises NotFoundError
    return replace(template, sections=tuple(s for s in template.sections if s.id != section_id))


def reorder_sections(template: Template, from_index: int, to_index: int) -> Template:
    """Move one section; ids and contents are untouched, only order changes."""
    n = len(template.sections)
    if not (0 <= from_index < n and 0 <= to_index < n):
        raise IndexError(f"reorder {from_index} -> {to_index} outside 0..{n - 1}")
    items = list(template.sections)
    items.insert(to_index, items.pop(from_index))
    return replace(template, sections=tuple(items))


def replace_section(template: Template, section: Section) -> Template:
    idx = template.index_of(section.id)
    items = list(template.sections)
    items[idx] = section
    return replace(template, sections=tuple(items))


_SECTION_PATCH_KEYS = {"title", "kind", "fields", "table"}


def update_section(
    template: Template,
    section_id: str,
    table_factory: Callable[[], g.Grid] = default_table,
    **patch: Any,
) -> Template:
    """
    Patch title/kind/fields/table of one section.

    Changing the kind swaps the active payload: switching to TABLE_LAYOUT
    starts from an empty default grid, switching away drops the table.
    """
    unknown = set(patch) - _SECTION_PATCH_KEYS
    if unknown:
        raise TypeError(f"update_section got unknown keys: {sorted(unknown)}")

    current = template.section(section_id)
    kind = SectionKind(patch.get("kind", current.kind))
    fields = tuple(patch.get("fields", current.fields))
    table = patch.get("table", current.table)

    if kind != current.kind:
        if kind == SectionKind.TABLE_LAYOUT:
            fields = ()
            table = patch.get("table") or table_factory()
        elif current.kind == SectionKind.TABLE_LAYOUT:
            table = None

    updated = Section(
        id=current.id,
        title=patch.get("title", current.title),
        kind=kind,
        fields=fields,
        table=table,
    )
    return replace_section(template, updated)


def with_sections(template: Template, sections: Iterable[Section]) -> Template:
    return replace(template, sections=tuple(sections))


# -----------------------------
# Header / footer / styling / basics
# -----------------------------


def update_header(template: Template, **changes: Any) -> Template:
    return replace(template, header=replace(template.header, **changes))


def update_footer(template: Template, **changes: Any) -> Template:
    return replace(template, footer=replace(template.footer, **changes))


def update_styling(template: Template, **changes: Any) -> Template:
    return replace(template, styling=replace(template.styling, **changes))


def update_template_id(template: Template, template_id: str) -> Template:
    return replace(template, template_id=template_id)


def update_basics(
    template: Template,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    is_active: Optional[bool] = None,
    document_type: Optional[DocumentType] = None,
) -> Template:
    return replace(
        template,
        name=template.name if name is None else name,
        description=template.description if description is None else description,
        is_active=template.is_active if is_active is None else is_active,
        document_type=template.document_type if document_type is None else document_type,
    )


def apply_default_sections(
    template: Template,
    document_type: Optional[DocumentType] = None,
    *,
    confirm: bool = False,
    path: Optional[str] = None,
) -> Tuple[Template, Optional[ValidationIssue]]:
    """
    Populate sections with the default set for a document type.

    One-shot: if the template already has sections the original template is
    returned with SECTIONS_NOT_EMPTY unless confirm=True.
    """
    doc_type = DocumentType(document_type or template.document_type)
    if template.sections and not confirm:
        return template, ValidationIssue(
            SECTIONS_NOT_EMPTY,
            "Template already has sections; confirm to replace them with the defaults.",
            {"sections": len(template.sections), "documentType": doc_type.value},
        )
    updated = replace(
        template,
        document_type=doc_type,
        sections=default_sections_for(doc_type.value, path),
    )
    return updated, None
