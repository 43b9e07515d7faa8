from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from ..errors import ImageParameterError
from ..model import CellRecord, EmbeddedPicture, Grid, ImageLayout, ImageRecord, SheetData, SheetGeometry
from ..units import EMU_PER_POINT

logger = logging.getLogger(__name__)

INLINE_TAG_RE = re.compile(r"(\$\{.+?\})\{", re.DOTALL)

OFFSET_FIELDS = ("dx1", "dy1", "dx2", "dy2")


def _reject_constant(name: str) -> float:
    raise ValueError(f"{name} is not a JSON number")


PARAMETER_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


def place_images(grid: Grid, geometry: SheetGeometry, sheet: SheetData) -> ImageLayout:
    """Position every image of a sheet in points relative to the table origin.

    Embedded drawing pictures come first, in drawing order, followed by
    inline-tag images found while scanning visible cells row by row.
    """
    layout = ImageLayout()
    for picture in sheet.pictures:
        record = _place_embedded(picture, geometry)
        if record is None:
            continue
        logger.debug(
            "Embedded picture %r at top=%.2f left=%.2f (%.2fx%.2f)",
            picture.name or picture.media_path,
            record.top,
            record.left,
            record.width,
            record.height,
        )
        layout.images.append(record)

    for record in grid.iter_cells():
        if record.hidden or not record.value:
            continue
        match = INLINE_TAG_RE.search(record.value)
        if match is None:
            continue
        image = _place_inline(record, match.group(1), match.end(1), geometry)
        logger.debug("Inline image %s at row=%d col=%d", image.reference, record.row, record.col)
        layout.images.append(image)
        layout.consumed_cells.add((record.row, record.col))
    return layout


def _place_embedded(picture: EmbeddedPicture, geometry: SheetGeometry) -> ImageRecord | None:
    if picture.anchor_type == "absoluteAnchor":
        x, y = picture.position
        cx, cy = picture.extent
        top, left = y / EMU_PER_POINT, x / EMU_PER_POINT
        height, width = cy / EMU_PER_POINT, cx / EMU_PER_POINT
    else:
        start = picture.anchor_from
        if start is None:
            logger.warning("Picture %r has no start anchor; skipped", picture.name or picture.media_path)
            return None
        top = geometry.top(start.row) + start.row_off / EMU_PER_POINT
        left = geometry.left(start.col) + start.col_off / EMU_PER_POINT
        end = picture.anchor_to
        if picture.anchor_type == "twoCellAnchor" and end is not None:
            bottom = geometry.top(end.row) + end.row_off / EMU_PER_POINT
            right = geometry.left(end.col) + end.col_off / EMU_PER_POINT
            height = bottom - top + 1
            width = right - left + 1
        else:
            cx, cy = picture.extent
            height, width = cy / EMU_PER_POINT, cx / EMU_PER_POINT

    return ImageRecord(
        top=top,
        left=left,
        height=height,
        width=width,
        scaling="non-uniform",
        source="embedded",
        data=picture.data,
        mime_type=picture.content_type,
    )


def _place_inline(record: CellRecord, reference: str, start: int, geometry: SheetGeometry) -> ImageRecord:
    params = _parse_parameters(record.value, start, record)
    rows = _span(params, "rows", record)
    columns = _span(params, "columns", record)
    dx1, dy1, dx2, dy2 = (_offset(params, name, record) for name in OFFSET_FIELDS)

    top = geometry.top(record.row) + dy1
    left = geometry.left(record.col) + dx1
    bottom = geometry.top(record.row + rows) + dy2
    right = geometry.left(record.col + columns) + dx2

    return ImageRecord(
        top=top,
        left=left,
        height=bottom - top + 1,
        width=right - left + 1,
        scaling="uniform" if params.get("aspect") == "image" else "non-uniform",
        source="inline-tag",
        reference=reference,
    )


def _parse_parameters(value: str, start: int, record: CellRecord) -> dict[str, Any]:
    """Decode the JSON object at ``start``; text after it is ignored."""
    payload = value[start:]
    try:
        params, _ = PARAMETER_DECODER.raw_decode(value, start)
    except json.JSONDecodeError as exc:
        raise ImageParameterError(f"Malformed image parameters {payload!r}: {exc.msg}", row=record.row, col=record.col) from exc
    except ValueError as exc:
        raise ImageParameterError(f"Malformed image parameters {payload!r}: {exc}", row=record.row, col=record.col) from exc
    if not isinstance(params, dict):
        raise ImageParameterError(f"Image parameters must be a JSON object: {payload!r}", row=record.row, col=record.col)
    return params


def _number(params: dict[str, Any], name: str, record: CellRecord) -> float | None:
    value = params.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ImageParameterError(f"Image parameter {name!r} must be a number, got {value!r}", row=record.row, col=record.col)
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise ImageParameterError(f"Image parameter {name!r} must be finite, got {value!r}", row=record.row, col=record.col)
    return value


def _span(params: dict[str, Any], name: str, record: CellRecord) -> int:
    value = _number(params, name, record)
    if value is None:
        return 1
    span = int(value)
    if span < 1:
        raise ImageParameterError(f"Image parameter {name!r} must be at least 1, got {value!r}", row=record.row, col=record.col)
    return span


def _offset(params: dict[str, Any], name: str, record: CellRecord) -> float:
    value = _number(params, name, record)
    return 0.0 if value is None else float(value)
