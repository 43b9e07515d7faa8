from __future__ import annotations

import logging

from ..errors import InvalidSheetIndex
from ..model import CellRecord, Grid, SheetCell, SheetData, SheetGeometry, WorkbookData
from .values import CellValueFormatter

logger = logging.getLogger(__name__)

CHAR_WIDTH_UNITS = 256
# rough ratio between a character cell and the default font's point size
WIDTH_FACTOR = 0.56


def column_width_points(raw_units: int, base_font_points: float) -> float:
    """Approximate a column width given in 1/256 character units as points."""
    return raw_units / CHAR_WIDTH_UNITS * base_font_points * WIDTH_FACTOR


class GridModelBuilder:
    def __init__(self, workbook: WorkbookData, formatter: CellValueFormatter | None = None) -> None:
        self.workbook = workbook
        self.formatter = formatter or CellValueFormatter(date1904=workbook.date1904)

    def sheet(self, sheet_index: int) -> SheetData:
        if not 0 <= sheet_index < len(self.workbook.sheets):
            raise InvalidSheetIndex(sheet_index, len(self.workbook.sheets))
        return self.workbook.sheets[sheet_index]

    def build(self, sheet_index: int) -> tuple[Grid, SheetGeometry]:
        sheet = self.sheet(sheet_index)
        rows = sheet.last_row_num + 1
        columns = max((row.last_cell_num for row in sheet.rows.values()), default=0)
        logger.debug("Sheet %r: %d row(s) x %d column(s)", sheet.name, rows, columns)

        grid = Grid.empty(rows, columns)
        for row_data in sheet.rows.values():
            for col, cell in row_data.cells.items():
                self._fill_record(grid.cell(row_data.index, col), cell)
        return grid, self.build_geometry(sheet, rows, columns)

    def _fill_record(self, record: CellRecord, cell: SheetCell) -> None:
        style_index = cell.style_index if cell.style_index is not None else 0
        record.style = self.workbook.styles.style_at(style_index)
        record.kind, record.value = self.formatter.resolve(cell, record.style)

    def build_geometry(self, sheet: SheetData, rows: int, columns: int) -> SheetGeometry:
        base_points = self.workbook.styles.default_font.size
        row_heights = tuple(self._row_height(sheet, r) for r in range(rows))
        column_widths = tuple(
            column_width_points(self._raw_column_width(sheet, c), base_points) for c in range(columns)
        )
        default_width = column_width_points(self._raw_default_width(sheet), base_points)
        return SheetGeometry(
            row_heights=row_heights,
            column_widths=column_widths,
            default_row_height=sheet.default_row_height,
            default_column_width=default_width,
        )

    def _row_height(self, sheet: SheetData, row: int) -> float:
        row_data = sheet.rows.get(row)
        if row_data is not None and row_data.height is not None:
            return row_data.height
        return sheet.default_row_height

    def _raw_column_width(self, sheet: SheetData, col: int) -> int:
        width = sheet.col_widths.get(col)
        if width is None:
            return self._raw_default_width(sheet)
        return int(width * CHAR_WIDTH_UNITS)

    def _raw_default_width(self, sheet: SheetData) -> int:
        if sheet.default_col_width is not None:
            return int(sheet.default_col_width * CHAR_WIDTH_UNITS)
        return sheet.base_col_width * CHAR_WIDTH_UNITS
