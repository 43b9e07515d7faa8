from __future__ import annotations

import logging

from ..errors import StyleResolutionError
from ..model import BorderEdge, CellRecord, CellStyle, ColorRef, StyleSheet
from ..units import format_number

logger = logging.getLogger(__name__)

Attributes = list[tuple[str, str]]

# spreadsheet border style -> (fo border-style, fo border-width)
BORDER_STYLE_MAP: dict[str, tuple[str, str]] = {
    "hair": ("dotted", "0.12mm"),
    "dotted": ("dotted", "thin"),
    "dashDotDot": ("dashed", "thin"),
    "dashDot": ("dashed", "thin"),
    "dashed": ("dashed", "thin"),
    "thin": ("solid", "thin"),
    "mediumDashDotDot": ("dashed", "medium"),
    "slantDashDot": ("dashed", "medium"),
    "mediumDashDot": ("dashed", "medium"),
    "mediumDashed": ("dashed", "medium"),
    "medium": ("solid", "medium"),
    "thick": ("solid", "thick"),
    "double": ("double", "1.2mm"),
}

VERTICAL_ALIGN_MAP = {"top": "before", "center": "center", "bottom": "after"}
HORIZONTAL_ALIGN_MAP = {"left": "left", "center": "center", "right": "right"}
HEX_DIGITS = frozenset("0123456789ABCDEF")

DEFAULT_INDEXED_COLORS = (
    "000000", "FFFFFF", "FF0000", "00FF00", "0000FF", "FFFF00", "FF00FF", "00FFFF",
    "000000", "FFFFFF", "FF0000", "00FF00", "0000FF", "FFFF00", "FF00FF", "00FFFF",
    "800000", "008000", "000080", "808000", "800080", "008080", "C0C0C0", "808080",
    "9999FF", "993366", "FFFFCC", "CCFFFF", "660066", "FF8080", "0066CC", "CCCCFF",
    "000080", "FF00FF", "FFFF00", "00FFFF", "800080", "800000", "008080", "0000FF",
    "00CCFF", "CCFFFF", "CCFFCC", "FFFF99", "99CCFF", "FF99CC", "CC99FF", "FFCC99",
    "3366FF", "33CCCC", "99CC00", "FFCC00", "FF9900", "FF6600", "666699", "969696",
    "003366", "339966", "003300", "333300", "993300", "993366", "333399", "333333",
)


def border_attributes(style_name: str | None) -> tuple[str, str] | None:
    """Map a spreadsheet border style to its (border-style, border-width) pair."""
    if style_name in {None, "none"}:
        return None
    try:
        return BORDER_STYLE_MAP[style_name]
    except KeyError:
        raise StyleResolutionError(f"Unknown border style: {style_name}") from None


class StyleAttributeResolver:
    """Translates resolved cell records into ordered XSL-FO attributes."""

    def __init__(self, styles: StyleSheet) -> None:
        self.styles = styles

    def resolve(self, record: CellRecord) -> Attributes:
        attrs: Attributes = []
        if record.row_span > 1:
            attrs.append(("number-rows-spanned", str(record.row_span)))
        if record.col_span >= 0:
            attrs.append(("number-columns-spanned", str(record.col_span)))

        style = record.style
        if style is None:
            return attrs

        self._alignment(attrs, style, record)
        self._font(attrs, style)
        self._background(attrs, style, record)
        self._borders(attrs, style, record.bottom_right_style)
        return attrs

    def _alignment(self, attrs: Attributes, style: CellStyle, record: CellRecord) -> None:
        display_align = VERTICAL_ALIGN_MAP.get(style.vertical)
        if display_align:
            attrs.append(("display-align", display_align))

        text_align = HORIZONTAL_ALIGN_MAP.get(style.horizontal or "")
        if text_align:
            attrs.append(("text-align", text_align))
        elif record.kind == "numeric":
            attrs.append(("text-align", "right"))

    def _font(self, attrs: Attributes, style: CellStyle) -> None:
        if style.font_id <= 0:
            return
        font = self.styles.font_at(style.font_id)
        attrs.append(("font-family", font.name))
        attrs.append(("font-size", f"{format_number(font.size)}pt"))
        color = self.resolve_color(font.color)
        if color:
            attrs.append(("color", color))
        if font.bold:
            attrs.append(("font-weight", "bold"))
        if font.italic:
            attrs.append(("font-style", "italic"))
        if font.underline == "single":
            attrs.append(("text-decoration", "underline"))

    def _background(self, attrs: Attributes, style: CellStyle, record: CellRecord) -> None:
        fill = style.fill
        if fill.pattern_type in {None, "none"}:
            return
        color = self.resolve_color(fill.fg_color)
        if color:
            logger.debug("row,col=(%d,%d) background-color=%s", record.row, record.col, color)
            attrs.append(("background-color", color))

    def _borders(self, attrs: Attributes, style: CellStyle, bottom_right: CellStyle | None) -> None:
        outer = bottom_right or style
        edges: list[tuple[str, BorderEdge]] = [
            ("top", style.border.top),
            ("left", style.border.left),
            ("bottom", outer.border.bottom),
            ("right", outer.border.right),
        ]
        for side, edge in edges:
            mapped = border_attributes(edge.style)
            if mapped is None:
                continue
            attrs.append((f"border-{side}-style", mapped[0]))
            attrs.append((f"border-{side}-width", mapped[1]))
        for side, edge in edges:
            if edge.style is None:
                continue
            color = self.resolve_color(edge.color)
            if color:
                attrs.append((f"border-{side}-color", color))

    def resolve_color(self, color: ColorRef | None) -> str | None:
        """Return ``#RRGGBB`` for a color reference, or None when it has no concrete value."""
        if color is None or color.auto:
            return None

        hex_rgb: str | None = None
        if color.rgb:
            candidate = color.rgb[-6:].upper()
            hex_rgb = candidate if len(candidate) == 6 and all(ch in HEX_DIGITS for ch in candidate) else None
        elif color.theme is not None:
            hex_rgb = self._theme_color(color.theme)
        elif color.indexed is not None:
            hex_rgb = self._indexed_color(color.indexed)

        if hex_rgb is None:
            return None
        if color.tint:
            hex_rgb = apply_tint(hex_rgb, color.tint)
        return f"#{hex_rgb}"

    def _theme_color(self, index: int) -> str | None:
        # clrScheme lists dk1, lt1, dk2, lt2 but themed cell colors index lt1, dk1, lt2, dk2
        if index in (0, 1, 2, 3):
            index ^= 1
        theme = self.styles.theme_colors
        return theme[index] if 0 <= index < len(theme) else None

    def _indexed_color(self, index: int) -> str | None:
        palette = self.styles.indexed_colors or DEFAULT_INDEXED_COLORS
        if 0 <= index < len(palette) and palette[index]:
            return palette[index]
        return None


def apply_tint(hex_rgb: str, tint: float) -> str:
    r = int(hex_rgb[0:2], 16)
    g = int(hex_rgb[2:4], 16)
    b = int(hex_rgb[4:6], 16)

    if tint < 0:
        factor = 1.0 + tint
        r = int(r * factor)
        g = int(g * factor)
        b = int(b * factor)
    else:
        r = int(r * (1.0 - tint) + 255 * tint)
        g = int(g * (1.0 - tint) + 255 * tint)
        b = int(b * (1.0 - tint) + 255 * tint)

    r = min(255, max(0, r))
    g = min(255, max(0, g))
    b = min(255, max(0, b))
    return f"{r:02X}{g:02X}{b:02X}"
