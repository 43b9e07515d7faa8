from .api import build_sheet_layout, convert_xlsx_to_fo, load_workbook_data, write_xlsx_as_fo
from .errors import (
    ExcelFoError,
    ImageParameterError,
    InvalidSheetIndex,
    MergeOverlapError,
    ResourceError,
    StyleResolutionError,
    UsageError,
)
from .model import ConvertOptions, SheetLayout, WorkbookData

__all__ = [
    "ConvertOptions",
    "SheetLayout",
    "WorkbookData",
    "ExcelFoError",
    "UsageError",
    "ResourceError",
    "InvalidSheetIndex",
    "StyleResolutionError",
    "ImageParameterError",
    "MergeOverlapError",
    "load_workbook_data",
    "build_sheet_layout",
    "convert_xlsx_to_fo",
    "write_xlsx_as_fo",
]
