from __future__ import annotations

import random

import pytest

from onboarding.core.errors import NotFoundError
from onboarding.documents import grid as g
from onboarding.documents.fields import FieldSpec


def _positions(grid):
    return sorted(pos for c in grid.cells for pos in c.positions())


def test_create_empty_grid_is_all_single_empty_cells():
    grid = g.create_empty_grid(2, 3)

    assert (grid.rows, grid.cols) == (2, 3)
    assert len(grid.cells) == 6
    assert all(c.colspan == 1 and c.rowspan == 1 for c in grid.cells)
    assert all(c.kind == g.CellKind.EMPTY for c in grid.cells)
    assert grid.cell_ids == [f"cell_{r}_{c}" for r in range(2) for c in range(3)]
    assert g.validate(grid) is None


def test_create_empty_grid_rejects_zero_size():
    with pytest.raises(ValueError):
        g.create_empty_grid(0, 3)


def test_scenario_merge_top_left_block():
    grid = g.create_empty_grid(3, 3)

    merged = g.merge_cells(grid, ["cell_0_0", "cell_0_1", "cell_1_0", "cell_1_1"])

    assert len(merged.cells) == 6
    big = merged.cell("cell_0_0")
    assert (big.colspan, big.rowspan) == (2, 2)
    singles = [c for c in merged.cells if c.id != "cell_0_0"]
    assert len(singles) == 5
    assert all(not c.is_spanning for c in singles)
    assert {c.id for c in singles} == {"cell_0_2", "cell_1_2", "cell_2_0", "cell_2_1", "cell_2_2"}
    assert g.validate(merged) is None


def test_merge_keeps_anchor_content():
    grid = g.create_empty_grid(2, 2)
    grid = g.set_cell_content(grid, "cell_0_0", g.CellKind.LABEL, "Name")

    merged = g.merge_cells(grid, ["cell_0_1", "cell_0_0"])

    anchor = merged.cell("cell_0_0")
    assert anchor.label == "Name"
    assert anchor.colspan == 2


def test_merge_rejects_l_shape():
    grid = g.create_empty_grid(3, 3)

    with pytest.raises(g.NotRectangular):
        g.merge_cells(grid, ["cell_0_0", "cell_0_1", "cell_1_0"])


def test_merge_rejects_disjoint_cells():
    grid = g.create_empty_grid(3, 3)

    with pytest.raises(g.NotRectangular):
        g.merge_cells(grid, ["cell_0_0", "cell_2_2"])


def test_merge_rejects_single_cell():
    grid = g.create_empty_grid(2, 2)

    with pytest.raises(g.NotRectangular):
        g.merge_cells(grid, ["cell_0_0"])


def test_merge_unknown_id_is_not_found():
    grid = g.create_empty_grid(2, 2)

    with pytest.raises(NotFoundError):
        g.merge_cells(grid, ["cell_0_0", "nope"])


def test_merge_can_absorb_an_already_merged_cell():
    grid = g.create_empty_grid(3, 3)
    grid = g.merge_cells(grid, ["cell_0_0", "cell_0_1"])

    grid = g.merge_cells(grid, ["cell_0_0", "cell_1_0", "cell_1_1"])

    anchor = grid.cell("cell_0_0")
    assert (anchor.rowspan, anchor.colspan) == (2, 2)
    assert g.validate(grid) is None


def test_split_single_cell_is_not_splittable():
    grid = g.create_empty_grid(2, 2)

    with pytest.raises(g.NotSplittable):
        g.split_cell(grid, "cell_1_1")


def test_merge_then_split_restores_original_cells():
    grid = g.create_empty_grid(3, 3)
    ids = ["cell_1_1", "cell_1_2", "cell_2_1", "cell_2_2"]

    restored = g.split_cell(g.merge_cells(grid, ids), "cell_1_1")

    assert restored == grid


def test_split_pieces_are_empty():
    grid = g.create_empty_grid(2, 2)
    grid = g.set_cell_content(grid, "cell_0_0", "label", "Title")
    grid = g.merge_cells(grid, ["cell_0_0", "cell_0_1"])

    split = g.split_cell(grid, "cell_0_0")

    assert split.cell("cell_0_0").kind == g.CellKind.EMPTY
    assert split.cell("cell_0_0").label is None


def test_add_row_and_column_append_empty_cells():
    grid = g.create_empty_grid(2, 2)
    grid = g.merge_cells(grid, ["cell_0_0", "cell_1_0"])

    grid = g.add_row(grid)
    grid = g.add_column(grid)

    assert (grid.rows, grid.cols) == (3, 3)
    assert grid.has_cell("cell_2_0")
    assert grid.has_cell("cell_0_2")
    assert g.validate(grid) is None


def test_set_cell_content_does_not_move_span():
    grid = g.create_empty_grid(2, 2)
    grid = g.merge_cells(grid, ["cell_0_0", "cell_0_1"])
    field = FieldSpec(key="company_name", label="Company")

    grid = g.set_cell_content(grid, "cell_0_0", g.CellKind.FIELD, field)

    cell = grid.cell("cell_0_0")
    assert cell.field == field
    assert (cell.row, cell.col, cell.colspan, cell.rowspan) == (0, 0, 2, 1)
    assert g.field_keys(grid) == ["company_name"]

    grid = g.set_cell_content(grid, "cell_0_0", g.CellKind.EMPTY)
    assert grid.cell("cell_0_0").field is None


def test_set_cell_content_checks_payload_type():
    grid = g.create_empty_grid(1, 1)

    with pytest.raises(TypeError):
        g.set_cell_content(grid, "cell_0_0", g.CellKind.FIELD, "not a field")


@pytest.mark.parametrize(
    "cells, expected",
    [
        (
            (g.GridCell("a", 0, 0, colspan=2), g.GridCell("b", 0, 1)),
            g.OverlapAt,
        ),
        ((g.GridCell("a", 0, 0),), g.GapAt),
        ((g.GridCell("a", 0, 0, colspan=3), g.GridCell("b", 1, 0)), g.OutOfBounds),
        ((g.GridCell("a", 0, 0, rowspan=0),), g.InvalidSpan),
        ((g.GridCell("a", 0, 0), g.GridCell("a", 0, 1)), g.DuplicateCellId),
    ],
)
def test_validate_reports_broken_partitions(cells, expected):
    grid = g.Grid(rows=2, cols=2, cells=cells)

    err = g.validate(grid)

    assert isinstance(err, expected)
    with pytest.raises(expected):
        g.check(grid)


def test_overlap_reports_position():
    grid = g.Grid(rows=1, cols=2, cells=(g.GridCell("a", 0, 0, colspan=2), g.GridCell("b", 0, 1)))

    err = g.validate(grid)

    assert (err.row, err.col) == (0, 1)


def test_rows_of_and_cell_at_follow_spans():
    grid = g.merge_cells(g.create_empty_grid(2, 2), ["cell_0_0", "cell_1_0"])

    rows = g.rows_of(grid)

    assert [[c.id for c in row] for row in rows] == [["cell_0_0", "cell_0_1"], ["cell_1_1"]]
    assert g.cell_at(grid, 1, 0).id == "cell_0_0"


def test_partition_invariant_holds_for_random_edit_sequences():
    rng = random.Random(7)
    counter = iter(range(10_000))

    def new_id(r, c):
        return f"n{next(counter)}"

    for _ in range(30):
        grid = g.create_empty_grid(rng.randint(1, 4), rng.randint(1, 4), new_id=new_id)
        for _ in range(25):
            op = rng.choice(["row", "col", "merge", "split"])
            if op == "row":
                grid = g.add_row(grid, new_id=new_id)
            elif op == "col":
                grid = g.add_column(grid, new_id=new_id)
            elif op == "merge":
                r0, c0 = rng.randrange(grid.rows), rng.randrange(grid.cols)
                r1, c1 = rng.randrange(r0, grid.rows), rng.randrange(c0, grid.cols)
                ids = {
                    g.cell_at(grid, r, c).id
                    for r in range(r0, r1 + 1)
                    for c in range(c0, c1 + 1)
                }
                try:
                    grid = g.merge_cells(grid, ids)
                except g.NotRectangular:
                    pass
            else:
                spanning = [c for c in grid.cells if c.is_spanning]
                if spanning:
                    grid = g.split_cell(grid, rng.choice(spanning).id, new_id=new_id)

            assert g.validate(grid) is None
            assert _positions(grid) == [(r, c) for r in range(grid.rows) for c in range(grid.cols)]
