from __future__ import annotations


class ExcelFoError(Exception):
    """Base class for every error that aborts a conversion."""


class UsageError(ExcelFoError):
    pass


class ResourceError(ExcelFoError):
    pass


class InvalidSheetIndex(ExcelFoError):
    def __init__(self, index: int, sheet_count: int) -> None:
        super().__init__(f"Sheet index {index} is out of range (workbook has {sheet_count} sheet(s))")
        self.index = index
        self.sheet_count = sheet_count


class StyleResolutionError(ExcelFoError):
    pass


class ImageParameterError(ExcelFoError):
    def __init__(self, message: str, *, row: int | None = None, col: int | None = None) -> None:
        if row is not None and col is not None:
            message = f"{message} (row={row}, col={col})"
        super().__init__(message)
        self.row = row
        self.col = col


class MergeOverlapError(ExcelFoError):
    pass
