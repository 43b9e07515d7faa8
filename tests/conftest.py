from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import (
    PNG_BYTES,
    build_xlsx,
    drawing_xml,
    inline_cell,
    number_cell,
    sheet_xml,
    styles_xml,
    two_cell_picture,
)

INLINE_TAG = '${photo.png}{"rows":2,"columns":3,"aspect":"image"}'

SAMPLE_STYLES = styles_xml(
    fonts=[
        '<font><sz val="11"/><name val="Calibri"/></font>',
        '<font><b/><sz val="12"/><color rgb="FFFF0000"/><name val="Arial"/></font>',
    ],
    fills=[
        '<fill><patternFill patternType="none"/></fill>',
        '<fill><patternFill patternType="gray125"/></fill>',
        '<fill><patternFill patternType="solid"><fgColor rgb="FFFFFF00"/><bgColor indexed="64"/></patternFill></fill>',
    ],
    borders=[
        "<border><left/><right/><top/><bottom/></border>",
        '<border><left/><right/><top style="thin"><color rgb="FF000000"/></top><bottom/></border>',
        '<border><left/><right/><top/><bottom style="thick"/></border>',
    ],
    cell_xfs=[
        '<xf numFmtId="0" fontId="0" fillId="0" borderId="0"/>',
        '<xf numFmtId="0" fontId="1" fillId="2" borderId="1" applyFont="1"/>',
        '<xf numFmtId="0" fontId="0" fillId="0" borderId="2"/>',
        '<xf numFmtId="4" fontId="0" fillId="0" borderId="0" applyNumberFormat="1"/>',
        '<xf numFmtId="14" fontId="0" fillId="0" borderId="0" applyNumberFormat="1"/>',
    ],
)

SAMPLE_SHEET = sheet_xml(
    '<row r="1" ht="20" customHeight="1">'
    f'{inline_cell("A1", "Title & <Co>", style=1)}{number_cell("C1", "1234.5", style=3)}'
    "</row>"
    f'<row r="2"><c r="B2" s="2"/>{number_cell("C2", "45000", style=4)}</row>'
    f'<row r="3">{inline_cell("A3", INLINE_TAG)}</row>'
    f'<row r="4">{number_cell("A4", "42")}</row>',
    head='<cols><col min="1" max="1" width="10" customWidth="1"/></cols>',
    tail=(
        '<mergeCells count="1"><mergeCell ref="A1:B2"/></mergeCells>'
        '<pageMargins left="1" right="1" top="1" bottom="1" header="0.3" footer="0.3"/>'
        '<pageSetup paperSize="9" orientation="portrait"/>'
        '<drawing r:id="rId1"/>'
    ),
)


@pytest.fixture
def sample_xlsx(tmp_path: Path) -> Path:
    """A one-sheet workbook exercising styles, merges, both image kinds and page setup."""
    return build_xlsx(
        tmp_path / "sample.xlsx",
        [SAMPLE_SHEET],
        sheet_names=["Report"],
        styles=SAMPLE_STYLES,
        drawings={0: drawing_xml(two_cell_picture((2, 3), (3, 5)))},
        media={"image1.png": PNG_BYTES},
    )
