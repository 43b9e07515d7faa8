from __future__ import annotations

from html import escape as html_escape

from .model import ImageRecord, PageGeometry, SheetLayout
from .units import format_number

FO_NS = "http://www.w3.org/1999/XSL/Format"
PAGE_MASTER_NAME = "PageMaster"


def render_sheet_fo(layout: SheetLayout) -> str:
    parts: list[str] = []

    parts.append('<?xml version="1.0" encoding="UTF-8"?>')
    parts.append(f'<fo:root xmlns:fo="{FO_NS}" xml:lang="{_attr(layout.options.language)}">')
    parts.extend(_page_master(layout.page))

    font = layout.default_font
    parts.append(
        f'\t<fo:page-sequence initial-page-number="1" master-reference="{PAGE_MASTER_NAME}" '
        f'font-family="{_attr(font.name)}" font-size="{format_number(font.size)}pt">'
    )
    parts.append('\t\t<fo:flow flow-name="xsl-region-body">')
    parts.append('\t\t\t<fo:block space-before="1em">')
    parts.extend(_table(layout))
    for image in layout.images.images:
        parts.extend(_image_block(image))
    parts.append("\t\t\t</fo:block>")
    parts.append("\t\t</fo:flow>")
    parts.append("\t</fo:page-sequence>")
    parts.append("</fo:root>")

    return "\n".join(parts) + "\n"


def _page_master(page: PageGeometry) -> list[str]:
    return [
        "\t<fo:layout-master-set>",
        f'\t\t<fo:simple-page-master page-height="{format_number(page.height_mm)}mm" '
        f'page-width="{format_number(page.width_mm)}mm" margin-top="0mm" margin-left="0mm" '
        f'margin-right="0mm" margin-bottom="0mm" master-name="{PAGE_MASTER_NAME}">',
        f'\t\t\t<fo:region-body margin-top="{format_number(page.margin_top)}pt" '
        f'margin-left="{format_number(page.margin_left)}pt" '
        f'margin-right="{format_number(page.margin_right)}pt" '
        f'margin-bottom="{format_number(page.margin_bottom)}pt"/>',
        "\t\t</fo:simple-page-master>",
        "\t</fo:layout-master-set>",
    ]


def _table(layout: SheetLayout) -> list[str]:
    geometry = layout.geometry
    grid = layout.grid
    margin_left = _attr(layout.options.cell_margin_left)

    out: list[str] = []
    out.append(
        f'\t\t\t\t<fo:table inline-progression-dimension="{format_number(geometry.table_width)}pt" '
        'table-layout="fixed">'
    )
    for col, width in enumerate(geometry.column_widths, start=1):
        out.append(f'\t\t\t\t\t<fo:table-column column-number="{col}" column-width="{format_number(width)}pt"/>')
    out.append("\t\t\t\t\t<fo:table-body>")

    for row, height in zip(grid.cells, geometry.row_heights):
        out.append(f'\t\t\t\t\t\t<fo:table-row height="{format_number(height)}pt">')
        for record in row:
            if record.hidden:
                continue
            attrs = layout.cell_attributes.get((record.row, record.col), [])
            out.append(f"\t\t\t\t\t\t\t<fo:table-cell{_attr_list(attrs)}>")
            out.append(
                f'\t\t\t\t\t\t\t\t<fo:block margin-left="{margin_left}">'
                f"{html_escape(layout.cell_text(record), quote=False)}</fo:block>"
            )
            out.append("\t\t\t\t\t\t\t</fo:table-cell>")
        out.append("\t\t\t\t\t\t</fo:table-row>")

    out.append("\t\t\t\t\t</fo:table-body>")
    out.append("\t\t\t\t</fo:table>")
    return out


def _image_block(image: ImageRecord) -> list[str]:
    top = format_number(image.top)
    left = format_number(image.left)
    width = format_number(image.width)
    height = format_number(image.height)
    return [
        f'\t\t\t\t<fo:block-container position="absolute" top="{top}pt" left="{left}pt" '
        f'width="{width}pt" height="{height}pt">',
        f'\t\t\t\t\t<fo:block><fo:external-graphic src="{_attr(image.src)}" '
        f'width="{width}pt" height="{height}pt" content-width="{width}pt" content-height="{height}pt" '
        f'scaling="{image.scaling}"/></fo:block>',
        "\t\t\t\t</fo:block-container>",
    ]


def _attr_list(attrs: list[tuple[str, str]]) -> str:
    return "".join(f' {name}="{_attr(value)}"' for name, value in attrs)


def _attr(value: str) -> str:
    return html_escape(value, quote=True)
