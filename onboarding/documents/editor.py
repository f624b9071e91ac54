from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

from onboarding.core.errors import NotFoundError, ValidationIssue
from onboarding.core.logging_config import logger
from onboarding.documents import grid as g
from onboarding.documents import template_model as tm
from onboarding.documents.sections import Section, SectionKind
from onboarding.documents.table_layout import TableLayoutEngine

if TYPE_CHECKING:
    from onboarding.storage.contracts import TemplateStore


# -----------------------------
# View state
# -----------------------------


@dataclass(frozen=True)
class SectionListView:
    pass


@dataclass(frozen=True)
class SectionView:
    section_id: str


EditorView = Union[SectionListView, SectionView]


class TemplateEditor:
    """
    One template editing session.

    Owns the working Template (a frozen value, replaced on every edit), the
    table engine whose id allocator lives as long as the session, and which
    view is open. Nothing is persisted until save().
    """

    def __init__(
        self,
        template: Optional[tm.Template] = None,
        *,
        table_engine: Optional[TableLayoutEngine] = None,
        defaults_path: Optional[str] = None,
    ):
        self._template = template or tm.Template()
        self.tables = table_engine or TableLayoutEngine()
        self.defaults_path = defaults_path
        self._view: EditorView = SectionListView()

    @property
    def template(self) -> tm.Template:
        return self._template

    @property
    def view(self) -> EditorView:
        return self._view

    def snapshot(self) -> tm.Template:
        # frozen all the way down, so the value itself is the snapshot
        return self._template

    def _log(self, **fields: Any):
        return logger.bind(template_id=self._template.template_id, **fields)

    def _section(self, section_id: str) -> Section:
        try:
            return self._template.section(section_id)
        except NotFoundError:
            self._log(section_id=section_id).warning("section_not_found")
            raise

    # --- navigation ---

    def open_section(self, section_id: str) -> Section:
        section = self._section(section_id)
        self._view = SectionView(section_id)
        return section

    def close_section(self) -> None:
        self._view = SectionListView()

    # --- section list ---

    def add_section(
        self, title: str = "New section", kind: SectionKind = SectionKind.FORM
    ) -> Section:
        kind = SectionKind(kind)
        section = Section(
            id=tm.new_section_id(),
            title=title,
            kind=kind,
            table=self.tables.new_table() if kind == SectionKind.TABLE_LAYOUT else None,
        )
        self._template = tm.add_section(self._template, section)
        self._view = SectionView(section.id)
        return section

    def remove_section(self, section_id: str) -> None:
        self._section(section_id)
        self._template = tm.remove_section(self._template, section_id)
        if isinstance(self._view, SectionView) and self._view.section_id == section_id:
            self._view = SectionListView()

    def reorder_sections(self, from_index: int, to_index: int) -> None:
        self._template = tm.reorder_sections(self._template, from_index, to_index)

    def update_section(self, section_id: str, **patch: Any) -> Section:
        self._section(section_id)
        self._template = tm.update_section(
            self._template, section_id, table_factory=self.tables.new_table, **patch
        )
        return self._template.section(section_id)

    # --- header / footer / styling / basics ---

    def update_header(self, **changes: Any) -> None:
        self._template = tm.update_header(self._template, **changes)

    def update_footer(self, **changes: Any) -> None:
        self._template = tm.update_footer(self._template, **changes)

    def update_styling(self, **changes: Any) -> None:
        self._template = tm.update_styling(self._template, **changes)

    def update_basics(self, **changes: Any) -> None:
        self._template = tm.update_basics(self._template, **changes)

    # --- default sections ---

    def load_default_sections(self, *, confirm: bool = False) -> Optional[ValidationIssue]:
        """
        Fill sections with the default set of the current document type.
        Existing sections are only replaced when confirm=True.
        """
        template, issue = tm.apply_default_sections(
            self._template, confirm=confirm, path=self.defaults_path
        )
        if issue is not None:
            self._log(code=issue.code).info("default_sections_refused")
            return issue
        self._template = template
        self._view = SectionListView()
        self._log(
            document_type=template.document_type.value, sections=len(template.sections)
        ).info("default_sections_loaded")
        return None

    def change_document_type(
        self, document_type: tm.DocumentType, *, populate: bool = True, confirm: bool = False
    ) -> Optional[ValidationIssue]:
        self._template = tm.update_basics(
            self._template, document_type=tm.DocumentType(document_type)
        )
        if not populate:
            return None
        return self.load_default_sections(confirm=confirm)

    # --- table layout ---

    def _table_edit(self, section: Section) -> Section:
        self._template = tm.replace_section(self._template, section)
        return section

    def add_table_row(self, section_id: str) -> Section:
        return self._table_edit(self.tables.add_row(self._section(section_id)))

    def add_table_column(self, section_id: str) -> Section:
        return self._table_edit(self.tables.add_column(self._section(section_id)))

    def merge_cells(self, section_id: str, cell_ids: Iterable[str]) -> Section:
        return self._table_edit(self.tables.merge_cells(self._section(section_id), cell_ids))

    def split_cell(self, section_id: str, cell_id: str) -> Section:
        return self._table_edit(self.tables.split_cell(self._section(section_id), cell_id))

    def set_cell_content(
        self,
        section_id: str,
        cell_id: str,
        kind: Union[g.CellKind, str],
        payload: g.CellPayload = None,
    ) -> Section:
        return self._table_edit(
            self.tables.set_cell_content(self._section(section_id), cell_id, kind, payload)
        )

    # --- persistence ---

    def save(self, store: "TemplateStore") -> str:
        snapshot = self.snapshot()
        template_id = store.save(snapshot)
        if snapshot.template_id != template_id:
            self._template = tm.update_template_id(self._template, template_id)
        self._log().info("template_saved", sections=len(snapshot.sections))
        return template_id

    @classmethod
    def load(cls, store: "TemplateStore", template_id: str, **kwargs: Any) -> "TemplateEditor":
        return cls(store.load(template_id), **kwargs)
