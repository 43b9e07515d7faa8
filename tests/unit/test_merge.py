from __future__ import annotations

import logging

import pytest

from excelfo.errors import MergeOverlapError, StyleResolutionError
from excelfo.layout.merge import apply_merges
from excelfo.model import (
    BorderEdge,
    BorderInfo,
    CellStyle,
    Grid,
    MergeRegion,
    RowData,
    SheetCell,
    SheetData,
    StyleSheet,
)


def _styles() -> StyleSheet:
    return StyleSheet(
        cell_styles=[
            CellStyle(index=0),
            CellStyle(index=1, border=BorderInfo(top=BorderEdge(style="thin"))),
            CellStyle(index=2, border=BorderInfo(bottom=BorderEdge(style="thick"), right=BorderEdge(style="medium"))),
        ]
    )


def _sheet(merges: list[MergeRegion], cells: list[tuple[int, int, int]]) -> SheetData:
    sheet = SheetData(index=0, name="Sheet1", path="xl/worksheets/sheet1.xml", merges=merges)
    for row, col, style in cells:
        row_data = sheet.rows.setdefault(row, RowData(index=row))
        row_data.cells[col] = SheetCell(row=row, col=col, data_type="n", raw=None, style_index=style)
    return sheet


def test_merge_hides_all_but_anchor() -> None:
    grid = Grid.empty(4, 4)
    sheet = _sheet([MergeRegion(1, 1, 2, 3)], [(1, 1, 1), (2, 3, 2)])

    apply_merges(grid, sheet, _styles())

    visible = [(c.row, c.col) for c in grid.iter_cells() if not c.hidden]
    assert (1, 1) in visible
    for row in (1, 2):
        for col in (1, 2, 3):
            if (row, col) != (1, 1):
                assert grid.cell(row, col).hidden
    anchor = grid.cell(1, 1)
    assert (anchor.row_span, anchor.col_span) == (2, 3)
    assert anchor.is_merge_anchor
    assert anchor.bottom_right_style is not None
    assert anchor.bottom_right_style.index == 2


def test_missing_corner_cell_leaves_bottom_right_unset() -> None:
    grid = Grid.empty(2, 2)
    sheet = _sheet([MergeRegion(0, 0, 1, 1)], [(0, 0, 1)])

    apply_merges(grid, sheet, _styles())

    anchor = grid.cell(0, 0)
    assert (anchor.row_span, anchor.col_span) == (2, 2)
    assert anchor.bottom_right_style is None


def test_single_cell_region_does_not_borrow_style() -> None:
    grid = Grid.empty(1, 1)
    sheet = _sheet([MergeRegion(0, 0, 0, 0)], [(0, 0, 1)])

    apply_merges(grid, sheet, _styles())

    anchor = grid.cell(0, 0)
    assert not anchor.hidden
    assert (anchor.row_span, anchor.col_span) == (1, 1)
    assert anchor.bottom_right_style is None


def test_region_past_the_grid_is_clipped(caplog: pytest.LogCaptureFixture) -> None:
    grid = Grid.empty(2, 2)
    sheet = _sheet([MergeRegion(0, 0, 4, 1)], [])

    with caplog.at_level(logging.WARNING, logger="excelfo.layout.merge"):
        apply_merges(grid, sheet, _styles())

    assert (grid.cell(0, 0).row_span, grid.cell(0, 0).col_span) == (2, 2)
    assert grid.cell(1, 1).hidden
    assert "clipped" in caplog.text


def test_region_outside_the_grid_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    grid = Grid.empty(2, 2)
    sheet = _sheet([MergeRegion(3, 0, 4, 1)], [])

    with caplog.at_level(logging.WARNING, logger="excelfo.layout.merge"):
        apply_merges(grid, sheet, _styles())

    assert not any(cell.hidden for cell in grid.iter_cells())
    assert "skipped" in caplog.text


def test_unknown_corner_style_index_fails() -> None:
    grid = Grid.empty(2, 2)
    sheet = _sheet([MergeRegion(0, 0, 1, 1)], [(1, 1, 9)])

    with pytest.raises(StyleResolutionError):
        apply_merges(grid, sheet, _styles())


def test_overlapping_regions_fail() -> None:
    grid = Grid.empty(3, 3)
    sheet = _sheet([MergeRegion(0, 0, 1, 1), MergeRegion(1, 1, 2, 2)], [])

    with pytest.raises(MergeOverlapError, match="overlaps"):
        apply_merges(grid, sheet, _styles())


def test_adjacent_regions_are_independent() -> None:
    grid = Grid.empty(2, 4)
    sheet = _sheet([MergeRegion(0, 0, 1, 1), MergeRegion(0, 2, 1, 3)], [])

    apply_merges(grid, sheet, _styles())

    visible = [(c.row, c.col) for c in grid.iter_cells() if not c.hidden]
    assert visible == [(0, 0), (0, 2)]
