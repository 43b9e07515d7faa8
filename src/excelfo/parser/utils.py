from __future__ import annotations

import posixpath
import re

from ..model import MergeRegion, RangeRef

CELL_RE = re.compile(r"^\$?([A-Z]+)\$?(\d+)$")
RANGE_RE = re.compile(r"^\$?([A-Z]+)\$?(\d+):\$?([A-Z]+)\$?(\d+)$")


def local_name(tag: str) -> str:
    if "}" in tag:
        return tag.rsplit("}", 1)[1]
    return tag


def col_to_index(col: str) -> int:
    value = 0
    for char in col.upper():
        value = value * 26 + (ord(char) - 64)
    return value


def coord_to_rowcol(coord: str) -> tuple[int, int]:
    match = CELL_RE.match(coord)
    if not match:
        raise ValueError(f"Invalid coordinate: {coord}")
    col = col_to_index(match.group(1))
    row = int(match.group(2))
    return row, col


def parse_range_ref(ref: str) -> RangeRef:
    normalized = ref.replace("$", "")
    range_match = RANGE_RE.match(normalized)
    if range_match:
        sc = col_to_index(range_match.group(1))
        sr = int(range_match.group(2))
        ec = col_to_index(range_match.group(3))
        er = int(range_match.group(4))
        return RangeRef(
            ref=normalized,
            start_row=min(sr, er),
            start_col=min(sc, ec),
            end_row=max(sr, er),
            end_col=max(sc, ec),
        )

    cell_match = CELL_RE.match(normalized)
    if not cell_match:
        raise ValueError(f"Invalid range reference: {ref}")

    col = col_to_index(cell_match.group(1))
    row = int(cell_match.group(2))
    return RangeRef(ref=normalized, start_row=row, start_col=col, end_row=row, end_col=col)


def range_to_merge_region(rng: RangeRef) -> MergeRegion:
    """Convert a 1-based A1 range into a 0-based inclusive merge region."""
    return MergeRegion(
        first_row=rng.start_row - 1,
        first_col=rng.start_col - 1,
        last_row=rng.end_row - 1,
        last_col=rng.end_col - 1,
    )


def resolve_target(base_path: str, target: str) -> str:
    if target.startswith("/"):
        return target[1:]
    joined = posixpath.normpath(posixpath.join(posixpath.dirname(base_path), target))
    if joined.startswith("/"):
        joined = joined[1:]
    return joined


def rels_path_for(part_path: str) -> str:
    prefix, file_name = part_path.rsplit("/", 1)
    return f"{prefix}/_rels/{file_name}.rels"


def parse_float(value: str | None, default: float | None = None) -> float | None:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def parse_int(value: str | None, default: int | None = None) -> int | None:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default
