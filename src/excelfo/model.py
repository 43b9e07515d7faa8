from __future__ import annotations

import base64
from dataclasses import dataclass, field
from itertools import accumulate
from pathlib import Path
from typing import Iterator, Literal

from .errors import StyleResolutionError

CellKind = Literal["blank", "string", "numeric", "formula", "boolean", "error"]
ScalingMode = Literal["uniform", "non-uniform"]
ImageSource = Literal["embedded", "inline-tag"]


@dataclass(slots=True)
class ConvertOptions:
    sheet_index: int = 0
    language: str = "ja"
    cell_margin_left: str = "1mm"


@dataclass(slots=True)
class RangeRef:
    ref: str
    start_row: int
    start_col: int
    end_row: int
    end_col: int


@dataclass(slots=True)
class ColorRef:
    rgb: str | None = None
    theme: int | None = None
    tint: float = 0.0
    indexed: int | None = None
    auto: bool = False


@dataclass(slots=True)
class FontInfo:
    name: str = "Calibri"
    size: float = 11.0
    color: ColorRef | None = None
    bold: bool = False
    italic: bool = False
    underline: str | None = None


@dataclass(slots=True)
class FillInfo:
    pattern_type: str | None = None
    fg_color: ColorRef | None = None


@dataclass(slots=True)
class BorderEdge:
    style: str | None = None
    color: ColorRef | None = None


@dataclass(slots=True)
class BorderInfo:
    left: BorderEdge = field(default_factory=BorderEdge)
    right: BorderEdge = field(default_factory=BorderEdge)
    top: BorderEdge = field(default_factory=BorderEdge)
    bottom: BorderEdge = field(default_factory=BorderEdge)


@dataclass(slots=True)
class CellStyle:
    index: int
    font_id: int = 0
    fill: FillInfo = field(default_factory=FillInfo)
    border: BorderInfo = field(default_factory=BorderInfo)
    horizontal: str | None = None
    vertical: str = "bottom"
    num_fmt_code: str = "General"


@dataclass(slots=True)
class StyleSheet:
    """Workbook-owned style tables, queried by index."""

    fonts: list[FontInfo] = field(default_factory=lambda: [FontInfo()])
    cell_styles: list[CellStyle] = field(default_factory=lambda: [CellStyle(index=0)])
    theme_colors: list[str] = field(default_factory=list)
    indexed_colors: list[str] = field(default_factory=list)

    @property
    def default_font(self) -> FontInfo:
        return self.fonts[0] if self.fonts else FontInfo()

    def font_at(self, index: int) -> FontInfo:
        if not 0 <= index < len(self.fonts):
            raise StyleResolutionError(f"Font index {index} is not defined (font table has {len(self.fonts)})")
        return self.fonts[index]

    def style_at(self, index: int) -> CellStyle:
        if not 0 <= index < len(self.cell_styles):
            raise StyleResolutionError(
                f"Cell style index {index} is not defined (cellXfs has {len(self.cell_styles)})"
            )
        return self.cell_styles[index]


@dataclass(slots=True)
class SheetCell:
    row: int
    col: int
    data_type: str
    raw: str | None
    formula: str | None = None
    style_index: int | None = None


@dataclass(slots=True)
class RowData:
    index: int
    height: float | None = None
    cells: dict[int, SheetCell] = field(default_factory=dict)

    @property
    def last_cell_num(self) -> int:
        return max(self.cells) + 1 if self.cells else 0


@dataclass(slots=True)
class MergeRegion:
    first_row: int
    first_col: int
    last_row: int
    last_col: int

    @property
    def row_count(self) -> int:
        return self.last_row - self.first_row + 1

    @property
    def col_count(self) -> int:
        return self.last_col - self.first_col + 1


@dataclass(slots=True)
class PageSetup:
    paper_size: int | None = None
    orientation: str | None = None


@dataclass(slots=True)
class PageMargins:
    left: float = 0.7
    right: float = 0.7
    top: float = 0.75
    bottom: float = 0.75


@dataclass(slots=True)
class AnchorPoint:
    col: int
    row: int
    col_off: int
    row_off: int


@dataclass(slots=True)
class EmbeddedPicture:
    name: str
    anchor_type: str
    anchor_from: AnchorPoint | None
    anchor_to: AnchorPoint | None
    media_path: str
    content_type: str
    data: bytes
    # EMU; absoluteAnchor position and one/absolute anchor extent
    position: tuple[int, int] = (0, 0)
    extent: tuple[int, int] = (0, 0)


@dataclass(slots=True)
class SheetData:
    index: int
    name: str
    path: str
    rows: dict[int, RowData] = field(default_factory=dict)
    col_widths: dict[int, float] = field(default_factory=dict)
    default_row_height: float = 15.0
    default_col_width: float | None = None
    base_col_width: int = 8
    merges: list[MergeRegion] = field(default_factory=list)
    page_setup: PageSetup = field(default_factory=PageSetup)
    page_margins: PageMargins = field(default_factory=PageMargins)
    pictures: list[EmbeddedPicture] = field(default_factory=list)

    @property
    def last_row_num(self) -> int:
        return max(self.rows) if self.rows else -1

    def cell(self, row: int, col: int) -> SheetCell | None:
        row_data = self.rows.get(row)
        if row_data is None:
            return None
        return row_data.cells.get(col)


@dataclass(slots=True)
class WorkbookData:
    source_path: Path
    sheets: list[SheetData] = field(default_factory=list)
    styles: StyleSheet = field(default_factory=StyleSheet)
    date1904: bool = False


@dataclass(slots=True)
class CellRecord:
    row: int
    col: int
    style: CellStyle | None = None
    value: str = ""
    kind: CellKind = "blank"
    bottom_right_style: CellStyle | None = None
    hidden: bool = False
    row_span: int = -1
    col_span: int = -1

    @property
    def is_merge_anchor(self) -> bool:
        return self.col_span >= 0


@dataclass(slots=True)
class Grid:
    rows: int
    columns: int
    cells: list[list[CellRecord]]

    @classmethod
    def empty(cls, rows: int, columns: int) -> "Grid":
        return cls(
            rows=rows,
            columns=columns,
            cells=[[CellRecord(row=r, col=c) for c in range(columns)] for r in range(rows)],
        )

    def cell(self, row: int, col: int) -> CellRecord:
        return self.cells[row][col]

    def iter_cells(self) -> Iterator[CellRecord]:
        for row in self.cells:
            yield from row


@dataclass(slots=True)
class SheetGeometry:
    row_heights: tuple[float, ...]
    column_widths: tuple[float, ...]
    default_row_height: float
    default_column_width: float
    _row_prefix: tuple[float, ...] = field(init=False, repr=False)
    _col_prefix: tuple[float, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._row_prefix = (0.0, *accumulate(self.row_heights))
        self._col_prefix = (0.0, *accumulate(self.column_widths))

    @property
    def table_width(self) -> float:
        return self._col_prefix[-1]

    def top(self, row: int) -> float:
        return _prefix_at(self._row_prefix, row, self.default_row_height)

    def left(self, col: int) -> float:
        return _prefix_at(self._col_prefix, col, self.default_column_width)


def _prefix_at(prefix: tuple[float, ...], index: int, default_step: float) -> float:
    if index <= 0:
        return 0.0
    last = len(prefix) - 1
    if index <= last:
        return prefix[index]
    return prefix[last] + (index - last) * default_step


@dataclass(slots=True)
class ImageRecord:
    top: float
    left: float
    height: float
    width: float
    scaling: ScalingMode
    source: ImageSource
    data: bytes | None = None
    mime_type: str | None = None
    reference: str | None = None

    @property
    def src(self) -> str:
        if self.data is None:
            return self.reference or ""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type or 'application/octet-stream'};base64,{encoded}"


@dataclass(slots=True)
class ImageLayout:
    images: list[ImageRecord] = field(default_factory=list)
    consumed_cells: set[tuple[int, int]] = field(default_factory=set)


@dataclass(slots=True)
class PageGeometry:
    paper: str
    width_mm: float
    height_mm: float
    margin_top: float
    margin_bottom: float
    margin_left: float
    margin_right: float
    orientation: Literal["portrait", "landscape"] = "portrait"


@dataclass(slots=True)
class SheetLayout:
    options: ConvertOptions
    sheet_name: str
    default_font: FontInfo
    grid: Grid
    geometry: SheetGeometry
    images: ImageLayout
    page: PageGeometry
    cell_attributes: dict[tuple[int, int], list[tuple[str, str]]] = field(default_factory=dict)

    def cell_text(self, record: CellRecord) -> str:
        if (record.row, record.col) in self.images.consumed_cells:
            return ""
        return record.value
