from __future__ import annotations

import itertools
from dataclasses import replace
from typing import Callable, Iterable, Optional, Union
from uuid import uuid4

from onboarding.core.errors import StructuralError
from onboarding.core.logging_config import logger
from onboarding.core.settings import settings
from onboarding.documents import grid as g
from onboarding.documents.sections import Section


class IdAllocator:
    """
    Cell ids for one editing session: random session token + monotonic counter.
    An id handed out once is never handed out again, even after the cell is
    deleted by a merge.
    """

    def __init__(self, prefix: str = "cell", token: Optional[str] = None):
        self.prefix = prefix
        self.token = token or uuid4().hex[:8]
        self._counter = itertools.count(1)

    def __call__(self, row: int, col: int) -> str:
        return f"{self.prefix}_{self.token}_{next(self._counter)}"


class TableEditError(StructuralError):
    """A table edit was rejected; the section's table is unchanged."""

    code = "TABLE_EDIT_ERROR"

    def __init__(self, section_id: str, operation: str, cause: StructuralError):
        self.section_id = section_id
        self.operation = operation
        self.cause = cause
        super().__init__(
            f"{operation} rejected on section {section_id}: {cause.message}",
            {"sectionId": section_id, "operation": operation, "cause": cause.code, **cause.meta},
        )


class TableLayoutEngine:
    """
    Grid operations scoped to a TABLE_LAYOUT section.
    Every call returns a new Section or raises TableEditError; a rejected edit
    never produces a partially mutated table.
    """

    def __init__(
        self,
        new_id: Optional[g.IdFactory] = None,
        default_rows: Optional[int] = None,
        default_cols: Optional[int] = None,
    ):
        self.new_id = new_id or IdAllocator()
        self.default_rows = default_rows or settings.DEFAULT_TABLE_ROWS
        self.default_cols = default_cols or settings.DEFAULT_TABLE_COLS

    def new_table(self, rows: Optional[int] = None, cols: Optional[int] = None) -> g.Grid:
        return g.create_empty_grid(
            rows or self.default_rows, cols or self.default_cols, new_id=self.new_id
        )

    def add_row(self, section: Section) -> Section:
        return self._apply(section, "add_row", lambda t: g.add_row(t, new_id=self.new_id))

    def add_column(self, section: Section) -> Section:
        return self._apply(section, "add_column", lambda t: g.add_column(t, new_id=self.new_id))

    def merge_cells(self, section: Section, cell_ids: Iterable[str]) -> Section:
        ids = list(cell_ids)
        return self._apply(section, "merge_cells", lambda t: g.merge_cells(t, ids))

    def split_cell(self, section: Section, cell_id: str) -> Section:
        return self._apply(
            section, "split_cell", lambda t: g.split_cell(t, cell_id, new_id=self.new_id)
        )

    def set_cell_content(
        self,
        section: Section,
        cell_id: str,
        kind: Union[g.CellKind, str],
        payload: g.CellPayload = None,
    ) -> Section:
        return self._apply(
            section, "set_cell_content", lambda t: g.set_cell_content(t, cell_id, kind, payload)
        )

    def _apply(
        self, section: Section, operation: str, fn: Callable[[g.Grid], g.Grid]
    ) -> Section:
        try:
            if section.table is None:
                raise StructuralError(
                    f"Section {section.id} is not a table layout", {"kind": section.kind.value}
                )
            # Section re-checks field-key uniqueness over the new grid
            return replace(section, table=fn(section.table))
        except StructuralError as e:
            logger.bind(
                section_id=section.id, operation=operation, code=e.code, meta=e.meta
            ).warning("table_edit_rejected")
            raise TableEditError(section.id, operation, e) from e
