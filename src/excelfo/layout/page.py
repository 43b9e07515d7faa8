from __future__ import annotations

import logging

from ..model import PageGeometry, SheetData
from ..units import POINTS_PER_INCH

logger = logging.getLogger(__name__)

# OOXML paperSize code -> (name, short edge mm, long edge mm)
PAPER_SIZES: dict[int, tuple[str, float, float]] = {
    1: ("Letter", 215.9, 279.4),
    3: ("Tabloid", 279.4, 431.8),
    5: ("Legal", 215.9, 355.6),
    6: ("Statement", 139.7, 215.9),
    7: ("Executive", 184.1, 266.7),
    8: ("A3", 297.0, 420.0),
    9: ("A4", 210.0, 297.0),
    11: ("A5", 148.0, 210.0),
    12: ("B4", 250.0, 354.0),
    13: ("B5", 182.0, 257.0),
}
DEFAULT_PAPER_CODE = 9


def resolve_page(sheet: SheetData) -> PageGeometry:
    """Resolve paper size, orientation and region-body margins (points) for a sheet."""
    code = sheet.page_setup.paper_size
    if code not in PAPER_SIZES:
        if code is not None:
            logger.debug("Unrecognised paper size %s on sheet %r; using A4", code, sheet.name)
        code = DEFAULT_PAPER_CODE
    paper, short_edge, long_edge = PAPER_SIZES[code]

    landscape = sheet.page_setup.orientation == "landscape"
    width, height = (long_edge, short_edge) if landscape else (short_edge, long_edge)
    logger.debug("Sheet %r: paper=%s landscape=%s", sheet.name, paper, landscape)

    margins = sheet.page_margins
    return PageGeometry(
        paper=paper,
        width_mm=width,
        height_mm=height,
        margin_top=margins.top * POINTS_PER_INCH,
        margin_bottom=margins.bottom * POINTS_PER_INCH,
        margin_left=margins.left * POINTS_PER_INCH,
        margin_right=margins.right * POINTS_PER_INCH,
        orientation="landscape" if landscape else "portrait",
    )
