from __future__ import annotations

import math
import re
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from ..model import CellKind, CellStyle, SheetCell

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

DATE_TOKEN_RE = re.compile(
    r'"[^"]*"|\\.|_.|\*.|\[[^\]]*\]|yyyy|yy|mmmmm|mmmm|mmm|mm|m|dddd|ddd|dd|d|hh|h|ss|s|AM/PM|A/P|\.0+|.',
    re.IGNORECASE,
)
DATE_CODE_RE = re.compile(r"[ymdhs]|AM/PM", re.IGNORECASE)
SCIENTIFIC_RE = re.compile(r"([0#?.]+)E([+-])(0+)", re.IGNORECASE)


class CellValueFormatter:
    """Turns raw cell content into its displayed text.

    One instance is created per conversion; it carries the workbook's date
    system and nothing else.
    """

    def __init__(self, *, date1904: bool = False) -> None:
        self.date1904 = date1904

    def resolve(self, cell: SheetCell, style: CellStyle | None) -> tuple[CellKind, str]:
        fmt = style.num_fmt_code if style is not None else "General"
        data_type = cell.data_type

        if cell.formula is not None:
            # the cached <v> is the evaluated result; its t= is the result type
            if cell.raw is None:
                return "formula", ""
            return self._resolve_typed(data_type, cell.raw, fmt)

        if data_type in {"s", "inlineStr", "str"}:
            return "string", cell.raw or ""
        if cell.raw is None or cell.raw == "":
            return "blank", ""
        return self._resolve_typed(data_type, cell.raw, fmt)

    def _resolve_typed(self, data_type: str, raw: str, fmt: str) -> tuple[CellKind, str]:
        if data_type in {"s", "inlineStr", "str"}:
            return "string", raw
        if data_type == "b":
            return "boolean", "TRUE" if raw.strip() in {"1", "true", "TRUE"} else "FALSE"
        if data_type == "e":
            return "error", raw
        if data_type == "d":
            return "numeric", raw
        return "numeric", self.format_number(raw, fmt)

    def format_number(self, value: str, fmt: str) -> str:
        raw = value.strip()
        if raw == "":
            return ""
        try:
            number = float(raw)
        except ValueError:
            return raw
        if not math.isfinite(number):
            return raw

        if not fmt or fmt.lower() == "general" or fmt == "@":
            return self._normalize_general_number(number)

        sections = fmt.split(";")
        section = sections[0]
        signed = True
        if number < 0 and len(sections) > 1 and sections[1].strip():
            section, signed = sections[1], False
            number = abs(number)
        elif number == 0 and len(sections) > 2 and sections[2].strip():
            section = sections[2]

        if self._is_date_format(section):
            return self.format_date(number, section)
        if section.strip().lower() == "general":
            return self._normalize_general_number(number)
        return self._format_numeric_section(number, section, signed=signed)

    def _normalize_general_number(self, number: float) -> str:
        if abs(number - round(number)) < 1e-11 and abs(number) < 1e15:
            return str(int(round(number)))
        text = f"{number:.15g}"
        if "e" in text:
            mantissa, exponent = text.split("e")
            return f"{mantissa}E{exponent[0]}{exponent[1:].zfill(2)}"
        return text

    def _is_date_format(self, fmt: str) -> bool:
        cleaned = re.sub(r'"[^"]*"|\\.|\[[^\]]*\]', "", fmt)
        if "0" in cleaned or "#" in cleaned:
            return False
        return bool(DATE_CODE_RE.search(cleaned))

    def to_datetime(self, serial: float) -> datetime:
        if self.date1904:
            base = datetime(1904, 1, 1)
        elif serial < 61:
            # serials before the phantom 1900-02-29
            base = datetime(1899, 12, 31)
        else:
            base = datetime(1899, 12, 30)
        return base + timedelta(seconds=round(serial * 86400))

    def format_date(self, serial: float, fmt: str) -> str:
        try:
            dt = self.to_datetime(serial)
        except OverflowError:
            # serial lies outside the datetime range
            return self._normalize_general_number(serial)
        tokens = DATE_TOKEN_RE.findall(fmt)
        twelve_hour = any(tok.upper() in {"AM/PM", "A/P"} for tok in tokens)
        kinds = [_date_token_kind(tok) for tok in tokens]

        out: list[str] = []
        for idx, tok in enumerate(tokens):
            lower = tok.lower()
            kind = kinds[idx]
            if kind == "literal":
                out.append(_literal_text(tok))
            elif kind == "elapsed":
                if lower in {"[h]", "[hh]"}:
                    out.append(str(int(serial * 24)))
                elif lower in {"[m]", "[mm]"}:
                    out.append(str(int(serial * 1440)))
                elif lower in {"[s]", "[ss]"}:
                    out.append(str(int(serial * 86400)))
            elif lower == "yyyy":
                out.append(f"{dt.year:04d}")
            elif lower == "yy":
                out.append(f"{dt.year % 100:02d}")
            elif lower in {"m", "mm"} and _is_minute(kinds, idx):
                out.append(f"{dt.minute:02d}" if lower == "mm" else str(dt.minute))
            elif lower == "mmmmm":
                out.append(MONTH_NAMES[dt.month - 1][0])
            elif lower == "mmmm":
                out.append(MONTH_NAMES[dt.month - 1])
            elif lower == "mmm":
                out.append(MONTH_NAMES[dt.month - 1][:3])
            elif lower == "mm":
                out.append(f"{dt.month:02d}")
            elif lower == "m":
                out.append(str(dt.month))
            elif lower == "dddd":
                out.append(DAY_NAMES[dt.weekday()])
            elif lower == "ddd":
                out.append(DAY_NAMES[dt.weekday()][:3])
            elif lower == "dd":
                out.append(f"{dt.day:02d}")
            elif lower == "d":
                out.append(str(dt.day))
            elif lower in {"h", "hh"}:
                hour = (dt.hour % 12 or 12) if twelve_hour else dt.hour
                out.append(f"{hour:02d}" if lower == "hh" else str(hour))
            elif lower in {"s", "ss"}:
                out.append(f"{dt.second:02d}" if lower == "ss" else str(dt.second))
            elif lower == "am/pm":
                out.append("AM" if dt.hour < 12 else "PM")
            elif lower == "a/p":
                out.append("A" if dt.hour < 12 else "P")
            elif lower.startswith(".0"):
                digits = len(tok) - 1
                fraction = (serial * 86400) % 1
                out.append("." + f"{fraction:.{digits}f}"[2:])
        return "".join(out)

    def _format_numeric_section(self, number: float, section: str, *, signed: bool) -> str:
        prefix, pattern, suffix = _split_numeric_section(section)
        if not pattern:
            return "".join(prefix) + "".join(suffix) or self._normalize_general_number(number)

        if "%" in "".join(prefix) + "".join(suffix):
            number *= 100

        sci = SCIENTIFIC_RE.search(pattern)
        if sci:
            mantissa_pattern = sci.group(1)
            decimals = len(mantissa_pattern.split(".", 1)[1]) if "." in mantissa_pattern else 0
            text = f"{abs(number):.{decimals}E}"
            mantissa, exponent = text.split("E")
            exp_value = int(exponent)
            exp_sign = "-" if exp_value < 0 else ("+" if sci.group(2) == "+" else "")
            body = f"{mantissa}E{exp_sign}{str(abs(exp_value)).zfill(len(sci.group(3)))}"
        else:
            body = _format_fixed(abs(number), pattern)

        sign = "-" if signed and number < 0 and body.strip("0.,") else ""
        return f"{sign}{''.join(prefix)}{body}{''.join(suffix)}"


def _date_token_kind(tok: str) -> str:
    lower = tok.lower()
    if lower in {"[h]", "[hh]", "[m]", "[mm]", "[s]", "[ss]"}:
        return "elapsed"
    if lower[0] in "ymdhs" and set(lower) <= set("ymdhs"):
        return lower[0]
    if lower in {"am/pm", "a/p"} or lower.startswith(".0"):
        return "time"
    return "literal"


def _is_minute(kinds: list[str], idx: int) -> bool:
    for prev in reversed(kinds[:idx]):
        if prev == "literal":
            continue
        if prev in {"h", "elapsed"}:
            return True
        break
    for nxt in kinds[idx + 1 :]:
        if nxt == "literal":
            continue
        return nxt == "s"
    return False


def _literal_text(tok: str) -> str:
    if tok.startswith('"'):
        return tok[1:-1]
    if tok.startswith("\\"):
        return tok[1:]
    if tok.startswith("_"):
        return " "
    if tok.startswith("*") or tok.startswith("["):
        return ""
    return tok


def _split_numeric_section(section: str) -> tuple[list[str], str, list[str]]:
    prefix: list[str] = []
    pattern: list[str] = []
    suffix: list[str] = []
    state = 0
    i = 0
    while i < len(section):
        ch = section[i]
        literal: str | None = None
        if ch == '"':
            end = section.find('"', i + 1)
            end = len(section) if end < 0 else end
            literal = section[i + 1 : end]
            i = end + 1
        elif ch == "\\" and i + 1 < len(section):
            literal = section[i + 1]
            i += 2
        elif ch == "_" and i + 1 < len(section):
            literal = " "
            i += 2
        elif ch == "*" and i + 1 < len(section):
            i += 2
            continue
        elif ch == "[":
            end = section.find("]", i)
            i = len(section) if end < 0 else end + 1
            continue
        elif ch in "0#?" or (state == 1 and ch in ".,") or (ch in "Ee" and state == 1):
            pattern.append(ch)
            state = 1
            i += 1
            if ch in "Ee" and i < len(section) and section[i] in "+-":
                pattern.append(section[i])
                i += 1
            continue
        elif ch == "." and state == 0 and i + 1 < len(section) and section[i + 1] in "0#?":
            pattern.append(ch)
            state = 1
            i += 1
            continue
        else:
            literal = ch
            i += 1

        if state == 0:
            prefix.append(literal)
        else:
            state = 2
            suffix.append(literal)
    return prefix, "".join(pattern), suffix


def _format_fixed(number: float, pattern: str) -> str:
    int_part, _, frac_part = pattern.partition(".")
    grouping = "," in int_part
    int_zeros = int_part.count("0")
    required = frac_part.count("0")
    optional = frac_part.count("#") + frac_part.count("?")
    decimals = required + optional

    whole, _, fraction = _round_half_up(number, decimals).partition(".")
    if optional and fraction:
        fraction = fraction[: required + len(fraction[required:].rstrip("0"))]

    whole = whole.lstrip("0").zfill(int_zeros) if whole != "0" or int_zeros else ""
    if grouping and whole:
        whole = f"{int(whole):,}".rjust(len(whole), "0") if whole.isdigit() else whole
    if fraction:
        return f"{whole}.{fraction}"
    return whole or ("0" if not frac_part else "")


def _round_half_up(number: float, decimals: int) -> str:
    quantum = Decimal(1).scaleb(-decimals)
    return f"{Decimal(repr(number)).quantize(quantum, rounding=ROUND_HALF_UP):f}"
