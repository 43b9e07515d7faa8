from __future__ import annotations

import logging

from ..errors import MergeOverlapError
from ..model import Grid, MergeRegion, SheetData, StyleSheet

logger = logging.getLogger(__name__)


def apply_merges(grid: Grid, sheet: SheetData, styles: StyleSheet) -> None:
    """Collapse every merge region of ``sheet`` onto its top-left anchor.

    Cells inside a region are hidden; the anchor is made visible again and
    carries the span counts. Multi-cell anchors also borrow the style of
    the region's bottom-right cell so their outer bottom/right borders
    match what the spreadsheet draws.
    """
    seen: list[MergeRegion] = []
    for region in sheet.merges:
        if region.first_row >= grid.rows or region.first_col >= grid.columns:
            logger.warning("Merge region %s starts outside the %dx%d grid; skipped", region, grid.rows, grid.columns)
            continue
        region = _clip(region, grid)
        for other in seen:
            if _overlaps(region, other):
                raise MergeOverlapError(f"Merge region {region} overlaps {other} on sheet {sheet.name!r}")
        seen.append(region)

        for row in range(region.first_row, region.last_row + 1):
            for col in range(region.first_col, region.last_col + 1):
                grid.cell(row, col).hidden = True

        anchor = grid.cell(region.first_row, region.first_col)
        anchor.hidden = False
        anchor.row_span = region.row_count
        anchor.col_span = region.col_count

        if region.row_count * region.col_count > 1:
            corner = sheet.cell(region.last_row, region.last_col)
            if corner is not None:
                style_index = corner.style_index if corner.style_index is not None else 0
                anchor.bottom_right_style = styles.style_at(style_index)

    logger.debug("Applied %d merge region(s) on sheet %r", len(seen), sheet.name)


def _clip(region: MergeRegion, grid: Grid) -> MergeRegion:
    if region.last_row < grid.rows and region.last_col < grid.columns:
        return region
    clipped = MergeRegion(
        first_row=region.first_row,
        first_col=region.first_col,
        last_row=min(region.last_row, grid.rows - 1),
        last_col=min(region.last_col, grid.columns - 1),
    )
    logger.warning("Merge region %s extends past the %dx%d grid; clipped to %s", region, grid.rows, grid.columns, clipped)
    return clipped


def _overlaps(a: MergeRegion, b: MergeRegion) -> bool:
    return not (
        a.last_row < b.first_row
        or b.last_row < a.first_row
        or a.last_col < b.first_col
        or b.last_col < a.first_col
    )
