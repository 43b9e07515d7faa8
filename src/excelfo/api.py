from __future__ import annotations

import logging
from pathlib import Path

from .errors import ResourceError
from .layout.grid import GridModelBuilder
from .layout.images import place_images
from .layout.merge import apply_merges
from .layout.page import resolve_page
from .layout.styles import StyleAttributeResolver
from .layout.values import CellValueFormatter
from .model import ConvertOptions, SheetLayout, WorkbookData
from .parser.ooxml import OOXMLWorkbookParser
from .render_fo import render_sheet_fo

logger = logging.getLogger(__name__)


def load_workbook_data(path: str | Path) -> WorkbookData:
    return OOXMLWorkbookParser(path).parse()


def build_sheet_layout(workbook: WorkbookData, options: ConvertOptions | None = None) -> SheetLayout:
    """Resolve grid, merges, images, page and cell attributes for one sheet."""
    opts = options or ConvertOptions()
    builder = GridModelBuilder(workbook, CellValueFormatter(date1904=workbook.date1904))
    sheet = builder.sheet(opts.sheet_index)
    grid, geometry = builder.build(opts.sheet_index)
    apply_merges(grid, sheet, workbook.styles)
    images = place_images(grid, geometry, sheet)
    page = resolve_page(sheet)

    resolver = StyleAttributeResolver(workbook.styles)
    cell_attributes = {
        (record.row, record.col): resolver.resolve(record) for record in grid.iter_cells() if not record.hidden
    }
    logger.debug(
        "Sheet %r laid out: %dx%d grid, %d image(s), page %s",
        sheet.name,
        grid.rows,
        grid.columns,
        len(images.images),
        page.paper,
    )
    return SheetLayout(
        options=opts,
        sheet_name=sheet.name,
        default_font=workbook.styles.default_font,
        grid=grid,
        geometry=geometry,
        images=images,
        page=page,
        cell_attributes=cell_attributes,
    )


def convert_xlsx_to_fo(path: str | Path, *, options: ConvertOptions | None = None) -> str:
    workbook = load_workbook_data(path)
    return render_sheet_fo(build_sheet_layout(workbook, options))


def write_xlsx_as_fo(path: str | Path, output: str | Path, *, options: ConvertOptions | None = None) -> str:
    """Convert ``path`` and write the document to ``output``.

    The document is rendered completely before the output file is opened,
    so a failed conversion never leaves a partial file behind.
    """
    document = convert_xlsx_to_fo(path, options=options)
    output_path = Path(output)
    try:
        output_path.write_text(document, encoding="utf-8")
    except OSError as exc:
        raise ResourceError(f"Cannot write {output_path}: {exc}") from exc
    logger.debug("Wrote %d character(s) to %s", len(document), output_path)
    return document
