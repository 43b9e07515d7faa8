from __future__ import annotations

EMU_PER_POINT = 12700
POINTS_PER_INCH = 72.0


def format_number(value: float) -> str:
    """Render a length without float noise: at most four decimals, no trailing zeros."""
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in {"", "-0"} else text
