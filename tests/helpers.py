from __future__ import annotations

from pathlib import Path
from xml.sax.saxutils import escape
from zipfile import ZipFile

SPREADSHEET_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
DOCUMENT_REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PACKAGE_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
SHEET_DRAWING_NS = "http://schemas.openxmlformats.org/drawingml/2006/spreadsheetDrawing"
DRAWING_MAIN_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"

WORKSHEET_REL = f"{DOCUMENT_REL_NS}/worksheet"
DRAWING_REL = f"{DOCUMENT_REL_NS}/drawing"
IMAGE_REL = f"{DOCUMENT_REL_NS}/image"

# only the bytes matter; nothing decodes the image
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16

DEFAULT_STYLES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<styleSheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main">
  <fonts count="1"><font><sz val="11"/><name val="Calibri"/></font></fonts>
  <fills count="2"><fill><patternFill patternType="none"/></fill><fill><patternFill patternType="gray125"/></fill></fills>
  <borders count="1"><border><left/><right/><top/><bottom/></border></borders>
  <cellXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0"/></cellXfs>
</styleSheet>
"""


def styles_xml(
    *,
    fonts: list[str] | None = None,
    fills: list[str] | None = None,
    borders: list[str] | None = None,
    cell_xfs: list[str] | None = None,
    num_fmts: list[str] | None = None,
    extra: str = "",
) -> str:
    fonts = fonts or ['<font><sz val="11"/><name val="Calibri"/></font>']
    fills = fills or ['<fill><patternFill patternType="none"/></fill>', '<fill><patternFill patternType="gray125"/></fill>']
    borders = borders or ["<border><left/><right/><top/><bottom/></border>"]
    cell_xfs = cell_xfs or ['<xf numFmtId="0" fontId="0" fillId="0" borderId="0"/>']
    num_fmt_xml = f'<numFmts count="{len(num_fmts)}">{"".join(num_fmts)}</numFmts>' if num_fmts else ""
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<styleSheet xmlns="{SPREADSHEET_NS}">'
        f"{num_fmt_xml}"
        f'<fonts count="{len(fonts)}">{"".join(fonts)}</fonts>'
        f'<fills count="{len(fills)}">{"".join(fills)}</fills>'
        f'<borders count="{len(borders)}">{"".join(borders)}</borders>'
        f'<cellXfs count="{len(cell_xfs)}">{"".join(cell_xfs)}</cellXfs>'
        f"{extra}"
        "</styleSheet>\n"
    )


def sheet_xml(rows: str, *, head: str = "", tail: str = "") -> str:
    """Wrap ``<row>`` elements into a worksheet part.

    ``head`` goes before sheetData (sheetFormatPr, cols) and ``tail`` after
    it (mergeCells, pageMargins, pageSetup, drawing).
    """
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<worksheet xmlns="{SPREADSHEET_NS}" xmlns:r="{DOCUMENT_REL_NS}">'
        f"{head}<sheetData>{rows}</sheetData>{tail}"
        "</worksheet>\n"
    )


def inline_cell(ref: str, text: str, *, style: int | None = None) -> str:
    s_attr = f' s="{style}"' if style is not None else ""
    return f'<c r="{ref}" t="inlineStr"{s_attr}><is><t>{escape(text)}</t></is></c>'


def number_cell(ref: str, value: str, *, style: int | None = None) -> str:
    s_attr = f' s="{style}"' if style is not None else ""
    return f'<c r="{ref}"{s_attr}><v>{value}</v></c>'


def two_cell_picture(
    from_cell: tuple[int, int],
    to_cell: tuple[int, int],
    *,
    from_off: tuple[int, int] = (0, 0),
    to_off: tuple[int, int] = (0, 0),
    rel_id: str = "rId1",
    name: str = "Picture 1",
) -> str:
    """A twoCellAnchor picture; cells are 0-based (col, row), offsets EMU (col_off, row_off)."""
    return (
        "<xdr:twoCellAnchor>"
        f"{_marker('from', from_cell, from_off)}{_marker('to', to_cell, to_off)}"
        f"{_pic(rel_id, name)}<xdr:clientData/>"
        "</xdr:twoCellAnchor>"
    )


def one_cell_picture(
    from_cell: tuple[int, int],
    extent: tuple[int, int],
    *,
    rel_id: str = "rId1",
    name: str = "Picture 1",
) -> str:
    return (
        "<xdr:oneCellAnchor>"
        f"{_marker('from', from_cell, (0, 0))}"
        f'<xdr:ext cx="{extent[0]}" cy="{extent[1]}"/>'
        f"{_pic(rel_id, name)}<xdr:clientData/>"
        "</xdr:oneCellAnchor>"
    )


def drawing_xml(*anchors: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<xdr:wsDr xmlns:xdr="{SHEET_DRAWING_NS}" xmlns:a="{DRAWING_MAIN_NS}" xmlns:r="{DOCUMENT_REL_NS}">'
        f"{''.join(anchors)}"
        "</xdr:wsDr>\n"
    )


def _marker(tag: str, cell: tuple[int, int], offset: tuple[int, int]) -> str:
    col, row = cell
    col_off, row_off = offset
    return (
        f"<xdr:{tag}><xdr:col>{col}</xdr:col><xdr:colOff>{col_off}</xdr:colOff>"
        f"<xdr:row>{row}</xdr:row><xdr:rowOff>{row_off}</xdr:rowOff></xdr:{tag}>"
    )


def _pic(rel_id: str, name: str) -> str:
    return (
        f'<xdr:pic><xdr:nvPicPr><xdr:cNvPr id="2" name="{name}"/><xdr:cNvPicPr/></xdr:nvPicPr>'
        f'<xdr:blipFill><a:blip r:embed="{rel_id}"/></xdr:blipFill><xdr:spPr/></xdr:pic>'
    )


def rels_xml(entries: list[tuple[str, str, str]]) -> str:
    body = "".join(f'<Relationship Id="{rid}" Type="{rtype}" Target="{target}"/>' for rid, rtype, target in entries)
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<Relationships xmlns="{PACKAGE_REL_NS}">{body}</Relationships>\n'
    )


def build_xlsx(
    path: Path,
    sheets: list[str],
    *,
    sheet_names: list[str] | None = None,
    styles: str | None = DEFAULT_STYLES,
    shared_strings: list[str] | None = None,
    drawings: dict[int, str] | None = None,
    media: dict[str, bytes] | None = None,
    date1904: bool = False,
) -> Path:
    """Write a minimal .xlsx package.

    ``drawings`` maps a 0-based sheet index to its drawing XML; every media
    file in ``media`` is linked from each drawing as rId1, rId2, ... in order.
    """
    sheet_names = sheet_names or [f"Sheet{i + 1}" for i in range(len(sheets))]
    drawings = drawings or {}
    media = media or {}

    with ZipFile(path, "w") as zf:
        zf.writestr(
            "[Content_Types].xml",
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
            '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
            '<Default Extension="xml" ContentType="application/xml"/>'
            '<Default Extension="png" ContentType="image/png"/>'
            '<Default Extension="jpeg" ContentType="image/jpeg"/>'
            "</Types>\n",
        )

        workbook_pr = '<workbookPr date1904="1"/>' if date1904 else ""
        sheet_entries = "".join(
            f'<sheet name="{escape(name)}" sheetId="{i + 1}" r:id="rId{i + 1}"/>' for i, name in enumerate(sheet_names)
        )
        zf.writestr(
            "xl/workbook.xml",
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<workbook xmlns="{SPREADSHEET_NS}" xmlns:r="{DOCUMENT_REL_NS}">'
            f"{workbook_pr}<sheets>{sheet_entries}</sheets></workbook>\n",
        )
        zf.writestr(
            "xl/_rels/workbook.xml.rels",
            rels_xml([(f"rId{i + 1}", WORKSHEET_REL, f"worksheets/sheet{i + 1}.xml") for i in range(len(sheets))]),
        )

        if styles is not None:
            zf.writestr("xl/styles.xml", styles)
        if shared_strings is not None:
            items = "".join(f"<si><t>{escape(text)}</t></si>" for text in shared_strings)
            zf.writestr(
                "xl/sharedStrings.xml",
                '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
                f'<sst xmlns="{SPREADSHEET_NS}" count="{len(shared_strings)}">{items}</sst>\n',
            )

        for i, body in enumerate(sheets):
            zf.writestr(f"xl/worksheets/sheet{i + 1}.xml", body)

        media_names = list(media)
        for name in media_names:
            zf.writestr(f"xl/media/{name}", media[name])

        for sheet_index, drawing in drawings.items():
            number = sheet_index + 1
            zf.writestr(f"xl/drawings/drawing{number}.xml", drawing)
            zf.writestr(
                f"xl/worksheets/_rels/sheet{number}.xml.rels",
                rels_xml([("rId1", DRAWING_REL, f"../drawings/drawing{number}.xml")]),
            )
            zf.writestr(
                f"xl/drawings/_rels/drawing{number}.xml.rels",
                rels_xml([(f"rId{j + 1}", IMAGE_REL, f"../media/{name}") for j, name in enumerate(media_names)]),
            )

    return path
