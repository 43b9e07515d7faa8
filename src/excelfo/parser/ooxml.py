from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from xml.etree import ElementTree as ET
from zipfile import BadZipFile, ZipFile

from ..errors import ResourceError, StyleResolutionError
from ..model import (
    BorderEdge,
    BorderInfo,
    CellStyle,
    ColorRef,
    FillInfo,
    FontInfo,
    PageMargins,
    PageSetup,
    RowData,
    SheetCell,
    SheetData,
    StyleSheet,
    WorkbookData,
)
from .drawing import parse_pictures_for_drawing
from .namespaces import DOCUMENT_REL_NS, DRAWING_MAIN_NS, NS, PACKAGE_REL_NS, SPREADSHEET_NS
from .utils import (
    coord_to_rowcol,
    local_name,
    parse_float,
    parse_int,
    parse_range_ref,
    range_to_merge_region,
    rels_path_for,
    resolve_target,
)

logger = logging.getLogger(__name__)

BUILTIN_NUMFMTS: dict[int, str] = {
    0: "General",
    1: "0",
    2: "0.00",
    3: "#,##0",
    4: "#,##0.00",
    9: "0%",
    10: "0.00%",
    11: "0.00E+00",
    12: "# ?/?",
    13: "# ??/??",
    14: "m/d/yyyy",
    15: "d-mmm-yy",
    16: "d-mmm",
    17: "mmm-yy",
    18: "h:mm AM/PM",
    19: "h:mm:ss AM/PM",
    20: "h:mm",
    21: "h:mm:ss",
    22: "m/d/yyyy h:mm",
    37: "#,##0 ;(#,##0)",
    38: "#,##0 ;[Red](#,##0)",
    39: "#,##0.00;(#,##0.00)",
    40: "#,##0.00;[Red](#,##0.00)",
    45: "mm:ss",
    46: "[h]:mm:ss",
    47: "mmss.0",
    48: "##0.0E+0",
    49: "@",
}

BORDER_SIDES = ("left", "right", "top", "bottom")


@dataclass(slots=True)
class _SheetRef:
    index: int
    name: str
    path: str


class OOXMLWorkbookParser:
    """Reads the parts of an .xlsx package that the layout engine needs."""

    def __init__(self, source_path: str | Path) -> None:
        self.source_path = Path(source_path)

    def parse(self) -> WorkbookData:
        if self.source_path.suffix.lower() != ".xlsx":
            raise ResourceError(f"Only .xlsx workbooks are supported: {self.source_path}")
        if not self.source_path.is_file():
            raise ResourceError(f"Input workbook not found: {self.source_path}")

        try:
            with ZipFile(self.source_path) as zip_file:
                return self._parse_package(zip_file)
        except BadZipFile as exc:
            raise ResourceError(f"Not a valid .xlsx package: {self.source_path}") from exc
        except ET.ParseError as exc:
            raise ResourceError(f"Malformed XML part in {self.source_path}: {exc}") from exc
        except OSError as exc:
            raise ResourceError(f"Cannot read {self.source_path}: {exc}") from exc

    def _parse_package(self, zip_file: ZipFile) -> WorkbookData:
        names = set(zip_file.namelist())
        if "xl/workbook.xml" not in names:
            raise ResourceError(f"Missing xl/workbook.xml in {self.source_path}")

        content_types = self._parse_content_types(zip_file)
        shared_strings = self._parse_shared_strings(zip_file)
        styles = self._parse_styles(zip_file)
        styles.theme_colors = self._parse_theme_colors(zip_file)

        wb_root = ET.fromstring(zip_file.read("xl/workbook.xml"))
        wb_rels = self._load_relationships(zip_file, "xl/_rels/workbook.xml.rels")
        workbook_pr = wb_root.find("a:workbookPr", NS)
        date1904 = workbook_pr is not None and workbook_pr.attrib.get("date1904") in {"1", "true"}

        workbook = WorkbookData(source_path=self.source_path, styles=styles, date1904=date1904)
        for sheet_ref in self._parse_sheet_refs(wb_root, wb_rels):
            if sheet_ref.path not in names:
                raise ResourceError(f"Missing worksheet part: {sheet_ref.path}")
            workbook.sheets.append(
                self._parse_sheet(
                    zip_file=zip_file,
                    content_types=content_types,
                    shared_strings=shared_strings,
                    sheet_ref=sheet_ref,
                )
            )

        logger.debug(
            "Parsed %s: %d sheet(s), %d font(s), %d cell style(s)",
            self.source_path.name,
            len(workbook.sheets),
            len(styles.fonts),
            len(styles.cell_styles),
        )
        return workbook

    def _parse_content_types(self, zip_file: ZipFile) -> dict[str, str]:
        if "[Content_Types].xml" not in zip_file.namelist():
            return {}

        root = ET.fromstring(zip_file.read("[Content_Types].xml"))
        types: dict[str, str] = {}
        defaults: dict[str, str] = {}

        for child in list(root):
            tag = local_name(child.tag)
            if tag == "Default":
                ext = child.attrib.get("Extension", "").lower()
                ctype = child.attrib.get("ContentType", "")
                if ext and ctype:
                    defaults[ext] = ctype
            elif tag == "Override":
                part_name = child.attrib.get("PartName", "")
                ctype = child.attrib.get("ContentType", "")
                if part_name and ctype:
                    types[part_name] = ctype

        for path in zip_file.namelist():
            with_slash = "/" + path if not path.startswith("/") else path
            if with_slash in types:
                continue
            ext = Path(path).suffix.lower().lstrip(".")
            if ext in defaults:
                types[with_slash] = defaults[ext]

        return types

    def _parse_theme_colors(self, zip_file: ZipFile) -> list[str]:
        theme_path = "xl/theme/theme1.xml"
        if theme_path not in zip_file.namelist():
            return []

        root = ET.fromstring(zip_file.read(theme_path))
        clr_scheme = root.find(f".//{{{DRAWING_MAIN_NS}}}clrScheme")
        if clr_scheme is None:
            return []

        color_list: list[str] = []
        for child in list(clr_scheme):
            srgb = child.find(f"{{{DRAWING_MAIN_NS}}}srgbClr")
            if srgb is not None and srgb.attrib.get("val"):
                color_list.append(srgb.attrib["val"].upper())
                continue
            sys_clr = child.find(f"{{{DRAWING_MAIN_NS}}}sysClr")
            if sys_clr is not None and sys_clr.attrib.get("lastClr"):
                color_list.append(sys_clr.attrib["lastClr"].upper())
        return color_list

    def _parse_styles(self, zip_file: ZipFile) -> StyleSheet:
        if "xl/styles.xml" not in zip_file.namelist():
            return StyleSheet()

        root = ET.fromstring(zip_file.read("xl/styles.xml"))
        fonts = [self._parse_font(font) for font in root.findall("a:fonts/a:font", NS)]
        fills = [self._parse_fill(fill) for fill in root.findall("a:fills/a:fill", NS)]
        borders = [self._parse_border(border) for border in root.findall("a:borders/a:border", NS)]
        custom_numfmts = self._parse_custom_numfmts(root)

        cell_styles: list[CellStyle] = []
        for idx, xf in enumerate(root.findall("a:cellXfs/a:xf", NS)):
            fill_id = parse_int(xf.attrib.get("fillId"), 0)
            border_id = parse_int(xf.attrib.get("borderId"), 0)
            num_fmt_id = parse_int(xf.attrib.get("numFmtId"), 0)
            if fills and not 0 <= fill_id < len(fills):
                raise StyleResolutionError(f"Cell style {idx} references undefined fill {fill_id}")
            if borders and not 0 <= border_id < len(borders):
                raise StyleResolutionError(f"Cell style {idx} references undefined border {border_id}")

            style = CellStyle(
                index=idx,
                font_id=parse_int(xf.attrib.get("fontId"), 0),
                fill=fills[fill_id] if fills else FillInfo(),
                border=borders[border_id] if borders else BorderInfo(),
                num_fmt_code=custom_numfmts.get(num_fmt_id) or BUILTIN_NUMFMTS.get(num_fmt_id, "General"),
            )
            alignment = xf.find("a:alignment", NS)
            if alignment is not None:
                style.horizontal = alignment.attrib.get("horizontal")
                style.vertical = alignment.attrib.get("vertical", "bottom")
            cell_styles.append(style)

        indexed_colors = [
            (rgb.attrib.get("rgb") or "")[-6:].upper()
            for rgb in root.findall("a:colors/a:indexedColors/a:rgbColor", NS)
        ]

        return StyleSheet(
            fonts=fonts or [FontInfo()],
            cell_styles=cell_styles or [CellStyle(index=0)],
            indexed_colors=indexed_colors,
        )

    def _parse_custom_numfmts(self, styles_root: ET.Element) -> dict[int, str]:
        result: dict[int, str] = {}
        for num_fmt in styles_root.findall("a:numFmts/a:numFmt", NS):
            fmt_id = parse_int(num_fmt.attrib.get("numFmtId"))
            code = num_fmt.attrib.get("formatCode")
            if fmt_id is None or code is None:
                continue
            result[fmt_id] = code
        return result

    def _parse_font(self, font: ET.Element) -> FontInfo:
        info = FontInfo()
        name = font.find("a:name", NS)
        if name is not None and name.attrib.get("val"):
            info.name = name.attrib["val"]
        size = font.find("a:sz", NS)
        if size is not None:
            info.size = parse_float(size.attrib.get("val"), 11.0)
        info.bold = self._flag(font.find("a:b", NS))
        info.italic = self._flag(font.find("a:i", NS))
        underline = font.find("a:u", NS)
        if underline is not None:
            kind = underline.attrib.get("val", "single")
            info.underline = None if kind == "none" else kind
        info.color = self._parse_color(font.find("a:color", NS))
        return info

    def _flag(self, elem: ET.Element | None) -> bool:
        if elem is None:
            return False
        return elem.attrib.get("val", "1") not in {"0", "false"}

    def _parse_fill(self, fill: ET.Element) -> FillInfo:
        pattern = fill.find("a:patternFill", NS)
        if pattern is not None:
            return FillInfo(
                pattern_type=pattern.attrib.get("patternType"),
                fg_color=self._parse_color(pattern.find("a:fgColor", NS)),
            )
        gradient = fill.find("a:gradientFill", NS)
        if gradient is not None:
            first_stop = gradient.find("a:stop/a:color", NS)
            return FillInfo(pattern_type="gradient", fg_color=self._parse_color(first_stop))
        return FillInfo()

    def _parse_border(self, border: ET.Element) -> BorderInfo:
        info = BorderInfo()
        for side in BORDER_SIDES:
            elem = border.find(f"a:{side}", NS)
            if elem is None:
                continue
            style = elem.attrib.get("style")
            setattr(
                info,
                side,
                BorderEdge(
                    style=None if style in {None, "none"} else style,
                    color=self._parse_color(elem.find("a:color", NS)),
                ),
            )
        return info

    def _parse_color(self, color_elem: ET.Element | None) -> ColorRef | None:
        if color_elem is None:
            return None
        return ColorRef(
            rgb=color_elem.attrib.get("rgb"),
            theme=parse_int(color_elem.attrib.get("theme")),
            tint=parse_float(color_elem.attrib.get("tint"), 0.0),
            indexed=parse_int(color_elem.attrib.get("indexed")),
            auto=color_elem.attrib.get("auto") in {"1", "true"},
        )

    def _parse_shared_strings(self, zip_file: ZipFile) -> list[str]:
        if "xl/sharedStrings.xml" not in zip_file.namelist():
            return []

        root = ET.fromstring(zip_file.read("xl/sharedStrings.xml"))
        values: list[str] = []
        for si in root.findall(f"{{{SPREADSHEET_NS}}}si"):
            direct = si.find(f"{{{SPREADSHEET_NS}}}t")
            if direct is not None:
                values.append(direct.text or "")
                continue
            texts: list[str] = []
            for run in si.findall(f"{{{SPREADSHEET_NS}}}r"):
                texts.extend(txt.text or "" for txt in run.findall(f"{{{SPREADSHEET_NS}}}t"))
            values.append("".join(texts))
        return values

    def _load_relationships(self, zip_file: ZipFile, path: str) -> dict[str, str]:
        if path not in zip_file.namelist():
            return {}
        root = ET.fromstring(zip_file.read(path))
        rels: dict[str, str] = {}
        for rel in root.findall(f"{{{PACKAGE_REL_NS}}}Relationship"):
            rel_id = rel.attrib.get("Id")
            target = rel.attrib.get("Target")
            if rel_id and target:
                rels[rel_id] = target
        return rels

    def _parse_sheet_refs(self, wb_root: ET.Element, wb_rels: dict[str, str]) -> list[_SheetRef]:
        sheet_refs: list[_SheetRef] = []
        for sheet in wb_root.findall("a:sheets/a:sheet", NS):
            rid = sheet.attrib.get(f"{{{DOCUMENT_REL_NS}}}id", "")
            target = wb_rels.get(rid)
            if not target:
                continue
            index = len(sheet_refs)
            sheet_refs.append(
                _SheetRef(
                    index=index,
                    name=sheet.attrib.get("name", f"Sheet{index + 1}"),
                    path=resolve_target("xl/workbook.xml", target),
                )
            )
        return sheet_refs

    def _parse_sheet(
        self,
        zip_file: ZipFile,
        content_types: dict[str, str],
        shared_strings: list[str],
        sheet_ref: _SheetRef,
    ) -> SheetData:
        root = ET.fromstring(zip_file.read(sheet_ref.path))
        sheet = SheetData(index=sheet_ref.index, name=sheet_ref.name, path=sheet_ref.path)

        self._parse_sheet_format(root, sheet)
        self._parse_rows_cells(root, shared_strings, sheet)
        self._parse_cols(root, sheet)
        self._parse_merges(root, sheet)
        self._parse_sheet_print_metadata(root, sheet)
        self._parse_sheet_drawings(zip_file, content_types, sheet)
        return sheet

    def _parse_sheet_format(self, root: ET.Element, sheet: SheetData) -> None:
        fmt = root.find("a:sheetFormatPr", NS)
        if fmt is None:
            return
        sheet.default_row_height = parse_float(fmt.attrib.get("defaultRowHeight"), sheet.default_row_height)
        sheet.default_col_width = parse_float(fmt.attrib.get("defaultColWidth"))
        sheet.base_col_width = parse_int(fmt.attrib.get("baseColWidth"), sheet.base_col_width)

    def _parse_rows_cells(self, root: ET.Element, shared_strings: list[str], sheet: SheetData) -> None:
        row_idx = -1
        for row_elem in root.findall("a:sheetData/a:row", NS):
            explicit = parse_int(row_elem.attrib.get("r"))
            row_idx = explicit - 1 if explicit is not None else row_idx + 1
            row = RowData(index=row_idx, height=parse_float(row_elem.attrib.get("ht")))
            sheet.rows[row_idx] = row

            col_idx = -1
            for cell_elem in row_elem.findall("a:c", NS):
                coord = cell_elem.attrib.get("r")
                if coord:
                    _, col = coord_to_rowcol(coord)
                    col_idx = col - 1
                else:
                    col_idx += 1
                row.cells[col_idx] = self._parse_cell(cell_elem, row_idx, col_idx, shared_strings)

    def _parse_cell(
        self,
        cell_elem: ET.Element,
        row: int,
        col: int,
        shared_strings: list[str],
    ) -> SheetCell:
        data_type = cell_elem.attrib.get("t", "n")
        formula_elem = cell_elem.find("a:f", NS)
        formula = (formula_elem.text or "") if formula_elem is not None else None
        value_elem = cell_elem.find("a:v", NS)
        raw = value_elem.text if value_elem is not None else None

        if data_type == "s" and raw is not None:
            idx = parse_int(raw, -1)
            raw = shared_strings[idx] if 0 <= idx < len(shared_strings) else ""
        elif data_type == "inlineStr":
            inline = cell_elem.find("a:is", NS)
            raw = "" if inline is None else "".join((node.text or "") for node in inline.iter(f"{{{SPREADSHEET_NS}}}t"))

        return SheetCell(
            row=row,
            col=col,
            data_type=data_type,
            raw=raw,
            formula=formula,
            style_index=parse_int(cell_elem.attrib.get("s")),
        )

    def _parse_cols(self, root: ET.Element, sheet: SheetData) -> None:
        for col_elem in root.findall("a:cols/a:col", NS):
            start = parse_int(col_elem.attrib.get("min"), 0)
            end = parse_int(col_elem.attrib.get("max"), start)
            width = parse_float(col_elem.attrib.get("width"))
            if width is None or start < 1:
                continue
            for idx in range(start, end + 1):
                sheet.col_widths[idx - 1] = width

    def _parse_merges(self, root: ET.Element, sheet: SheetData) -> None:
        for merge in root.findall("a:mergeCells/a:mergeCell", NS):
            ref = merge.attrib.get("ref")
            if not ref:
                continue
            try:
                rng = parse_range_ref(ref)
            except ValueError as exc:
                raise ResourceError(f"Invalid merge reference {ref!r} in {sheet.path}") from exc
            sheet.merges.append(range_to_merge_region(rng))

    def _parse_sheet_print_metadata(self, root: ET.Element, sheet: SheetData) -> None:
        page_margins = root.find("a:pageMargins", NS)
        if page_margins is not None:
            defaults = PageMargins()
            sheet.page_margins = PageMargins(
                left=parse_float(page_margins.attrib.get("left"), defaults.left),
                right=parse_float(page_margins.attrib.get("right"), defaults.right),
                top=parse_float(page_margins.attrib.get("top"), defaults.top),
                bottom=parse_float(page_margins.attrib.get("bottom"), defaults.bottom),
            )

        page_setup = root.find("a:pageSetup", NS)
        if page_setup is not None:
            sheet.page_setup = PageSetup(
                paper_size=parse_int(page_setup.attrib.get("paperSize")),
                orientation=page_setup.attrib.get("orientation"),
            )

    def _parse_sheet_drawings(
        self,
        zip_file: ZipFile,
        content_types: dict[str, str],
        sheet: SheetData,
    ) -> None:
        rels_path = rels_path_for(sheet.path)
        if rels_path not in zip_file.namelist():
            return

        root = ET.fromstring(zip_file.read(rels_path))
        for rel in root.findall(f"{{{PACKAGE_REL_NS}}}Relationship"):
            rel_type = rel.attrib.get("Type", "")
            target = rel.attrib.get("Target", "")
            if not rel_type.endswith("/drawing") or not target:
                continue
            drawing_path = resolve_target(sheet.path, target)
            if drawing_path not in zip_file.namelist():
                logger.warning("Missing drawing part: %s", drawing_path)
                continue
            sheet.pictures.extend(parse_pictures_for_drawing(zip_file, drawing_path, content_types))
