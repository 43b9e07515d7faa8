from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

from .api import write_xlsx_as_fo
from .errors import ExcelFoError, UsageError
from .model import ConvertOptions

logger = logging.getLogger(__name__)

USAGE = "usage: excelfo [-s sheetIndex] [-v] <input.xlsx> <output.fo>"


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog="excelfo", description="Convert one .xlsx sheet into an XSL-FO draft", add_help=False)
    parser.add_argument("input", type=Path, help="Input .xlsx file")
    parser.add_argument("output", type=Path, help="Output XSL-FO path")
    parser.add_argument("-s", "--sheet", type=int, default=0, dest="sheet_index", help="0-based sheet index")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        print(USAGE, file=sys.stderr)
        print(f"excelfo: error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    options = ConvertOptions(sheet_index=args.sheet_index)
    try:
        write_xlsx_as_fo(args.input, args.output, options=options)
    except ExcelFoError as exc:
        logger.error("Conversion of %s failed: %s", args.input, exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
