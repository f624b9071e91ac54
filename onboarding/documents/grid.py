"""
Grid model for table-layout sections.

A grid of R rows x C cols is a flat tuple of cells; every cell occupies the
rectangle row..row+rowspan-1 x col..col+colspan-1. The cells partition the
R x C rectangle exactly once. All operations here are pure: they return a new
Grid or raise a GridError before anything is built.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from onboarding.core.errors import NotFoundError, StructuralError
from onboarding.documents.fields import FieldSpec

IdFactory = Callable[[int, int], str]


def positional_id(row: int, col: int) -> str:
    return f"cell_{row}_{col}"


# -----------------------------
# Model
# -----------------------------


class CellKind(str, Enum):
    EMPTY = "empty"
    LABEL = "label"
    FIELD = "field"


@dataclass(frozen=True)
class GridCell:
    id: str
    row: int
    col: int
    colspan: int = 1
    rowspan: int = 1
    kind: CellKind = CellKind.EMPTY
    label: Optional[str] = None
    field: Optional[FieldSpec] = None

    @property
    def is_spanning(self) -> bool:
        return self.colspan > 1 or self.rowspan > 1

    def positions(self) -> Iterator[Tuple[int, int]]:
        for r in range(self.row, self.row + self.rowspan):
            for c in range(self.col, self.col + self.colspan):
                yield r, c


@dataclass(frozen=True)
class Grid:
    rows: int
    cols: int
    cells: Tuple[GridCell, ...] = ()

    def cell(self, cell_id: str) -> GridCell:
        for c in self.cells:
            if c.id == cell_id:
                return c
        raise NotFoundError(f"Unknown cell id: {cell_id}", {"cellId": cell_id})

    def has_cell(self, cell_id: str) -> bool:
        return any(c.id == cell_id for c in self.cells)

    @property
    def cell_ids(self) -> List[str]:
        return [c.id for c in self.cells]


# -----------------------------
# Errors
# -----------------------------


class GridError(StructuralError):
    code = "GRID_ERROR"


class OverlapAt(GridError):
    code = "GRID_OVERLAP"

    def __init__(self, row: int, col: int):
        self.row, self.col = row, col
        super().__init__(f"More than one cell covers ({row}, {col})", {"row": row, "col": col})


class GapAt(GridError):
    code = "GRID_GAP"

    def __init__(self, row: int, col: int):
        self.row, self.col = row, col
        super().__init__(f"No cell covers ({row}, {col})", {"row": row, "col": col})


class OutOfBounds(GridError):
    code = "GRID_OUT_OF_BOUNDS"

    def __init__(self, cell_id: str):
        self.cell_id = cell_id
        super().__init__(f"Cell {cell_id} extends past the grid", {"cellId": cell_id})


class InvalidSpan(GridError):
    code = "GRID_INVALID_SPAN"

    def __init__(self, cell_id: str):
        self.cell_id = cell_id
        super().__init__(f"Cell {cell_id} has a span below 1", {"cellId": cell_id})


class DuplicateCellId(GridError):
    code = "GRID_DUPLICATE_CELL_ID"

    def __init__(self, cell_id: str):
        self.cell_id = cell_id
        super().__init__(f"Cell id used twice: {cell_id}", {"cellId": cell_id})


class NotRectangular(GridError):
    code = "GRID_NOT_RECTANGULAR"

    def __init__(self, cell_ids: Iterable[str], reason: str):
        self.cell_ids = list(cell_ids)
        super().__init__(
            f"Cells do not form one rectangle: {reason}", {"cellIds": self.cell_ids}
        )


class NotSplittable(GridError):
    code = "GRID_NOT_SPLITTABLE"

    def __init__(self, cell_id: str):
        self.cell_id = cell_id
        super().__init__(f"Cell {cell_id} spans a single position", {"cellId": cell_id})


# -----------------------------
# Validation
# -----------------------------


def validate(grid: Grid) -> Optional[GridError]:
    """
    Returns None when the cells partition rows x cols exactly once,
    otherwise the first problem found (row-major for overlaps and gaps).
    """
    seen_ids = set()
    for c in grid.cells:
        if c.id in seen_ids:
            return DuplicateCellId(c.id)
        seen_ids.add(c.id)
        if c.colspan < 1 or c.rowspan < 1:
            return InvalidSpan(c.id)
        if (
            c.row < 0
            or c.col < 0
            or c.row + c.rowspan > grid.rows
            or c.col + c.colspan > grid.cols
        ):
            return OutOfBounds(c.id)

    occupied: Dict[Tuple[int, int], str] = {}
    for c in sorted(grid.cells, key=lambda x: (x.row, x.col)):
        for pos in c.positions():
            if pos in occupied:
                return OverlapAt(*pos)
            occupied[pos] = c.id

    for r in range(grid.rows):
        for col in range(grid.cols):
            if (r, col) not in occupied:
                return GapAt(r, col)

    return None


def check(grid: Grid) -> Grid:
    err = validate(grid)
    if err is not None:
        raise err
    return grid


def _rebuild(grid: Grid, cells: Iterable[GridCell], **changes: int) -> Grid:
    # canonical order = row-major by anchor
    ordered = tuple(sorted(cells, key=lambda c: (c.row, c.col)))
    return check(replace(grid, cells=ordered, **changes))


# -----------------------------
# Operations
# -----------------------------


def create_empty_grid(rows: int, cols: int, new_id: IdFactory = positional_id) -> Grid:
    if rows < 1 or cols < 1:
        raise ValueError(f"grid needs at least 1x1, got {rows}x{cols}")
    cells = [GridCell(id=new_id(r, c), row=r, col=c) for r in range(rows) for c in range(cols)]
    return _rebuild(Grid(rows=rows, cols=cols), cells)


def add_row(grid: Grid, new_id: IdFactory = positional_id) -> Grid:
    r = grid.rows
    added = [GridCell(id=new_id(r, c), row=r, col=c) for c in range(grid.cols)]
    return _rebuild(grid, list(grid.cells) + added, rows=grid.rows + 1)


def add_column(grid: Grid, new_id: IdFactory = positional_id) -> Grid:
    c = grid.cols
    added = [GridCell(id=new_id(r, c), row=r, col=c) for r in range(grid.rows)]
    return _rebuild(grid, list(grid.cells) + added, cols=grid.cols + 1)


def merge_cells(grid: Grid, cell_ids: Iterable[str]) -> Grid:
    """
    The selected cells must tile one axis-aligned rectangle. The top-left
    cell survives (keeping its id and content) with spans covering the
    rectangle; the other selected cells are removed.
    """
    ids = list(dict.fromkeys(cell_ids))
    if len(ids) < 2:
        raise NotRectangular(ids, "at least two cells are required")

    selected = [grid.cell(i) for i in ids]

    top = min(c.row for c in selected)
    left = min(c.col for c in selected)
    bottom = max(c.row + c.rowspan for c in selected)
    right = max(c.col + c.colspan for c in selected)

    # cells never overlap in a valid grid, so equal area means exact tiling
    area = sum(c.rowspan * c.colspan for c in selected)
    if area != (bottom - top) * (right - left):
        raise NotRectangular(ids, "selection leaves gaps inside its bounding box")

    anchor = next(c for c in selected if c.row == top and c.col == left)
    merged = replace(anchor, rowspan=bottom - top, colspan=right - left)

    drop = set(ids) - {anchor.id}
    cells = [merged if c.id == anchor.id else c for c in grid.cells if c.id not in drop]
    return _rebuild(grid, cells)


def split_cell(grid: Grid, cell_id: str, new_id: IdFactory = positional_id) -> Grid:
    """
    Replace a spanning cell with rowspan*colspan empty 1x1 cells.
    The top-left piece keeps the original id.
    """
    target = grid.cell(cell_id)
    if not target.is_spanning:
        raise NotSplittable(cell_id)

    pieces = [
        GridCell(id=target.id if (r, c) == (target.row, target.col) else new_id(r, c), row=r, col=c)
        for r, c in target.positions()
    ]
    cells = [c for c in grid.cells if c.id != cell_id] + pieces
    return _rebuild(grid, cells)


CellPayload = Union[None, str, FieldSpec]


def set_cell_content(
    grid: Grid, cell_id: str, kind: Union[CellKind, str], payload: CellPayload = None
) -> Grid:
    """Swap a cell's content. Span and position are untouched."""
    kind = CellKind(kind)
    target = grid.cell(cell_id)

    if kind == CellKind.EMPTY:
        updated = replace(target, kind=kind, label=None, field=None)
    elif kind == CellKind.LABEL:
        if not isinstance(payload, str):
            raise TypeError("label cells need a str payload")
        updated = replace(target, kind=kind, label=payload, field=None)
    else:
        if not isinstance(payload, FieldSpec):
            raise TypeError("field cells need a FieldSpec payload")
        updated = replace(target, kind=kind, label=None, field=payload)

    return _rebuild(grid, [updated if c.id == cell_id else c for c in grid.cells])


# -----------------------------
# Read helpers (preview / renderer)
# -----------------------------


def cell_at(grid: Grid, row: int, col: int) -> GridCell:
    for c in grid.cells:
        if c.row <= row < c.row + c.rowspan and c.col <= col < c.col + c.colspan:
            return c
    raise NotFoundError(f"No cell at ({row}, {col})", {"row": row, "col": col})


def rows_of(grid: Grid) -> List[List[GridCell]]:
    """Anchor cells per row, left to right: one <tr> each, spans carried by the cells."""
    out: List[List[GridCell]] = [[] for _ in range(grid.rows)]
    for c in sorted(grid.cells, key=lambda x: (x.row, x.col)):
        out[c.row].append(c)
    return out


def field_keys(grid: Grid) -> List[str]:
    return [c.field.key for c in grid.cells if c.kind == CellKind.FIELD and c.field is not None]
