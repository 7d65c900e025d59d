from __future__ import annotations

"""Blocking parse errors.

The parsers raise these; services.pipeline turns them into ErrorRecord entries so
nothing escapes the library boundary as an exception. No parser ever returns a
partially built table.
"""

__all__ = [
    "TableParseError",
    "EmptyFileError",
    "UnsupportedFileTypeError",
    "EmptyWorkbookError",
    "SheetHeaderError",
    "WorkbookReadError",
]


class TableParseError(Exception):
    """Base class for errors that prevent any RawTable from being produced."""
    error_type = "PARSE_ERROR"


class EmptyFileError(TableParseError):
    """Raised when the file has no non-blank content."""
    error_type = "EMPTY_FILE"


class UnsupportedFileTypeError(TableParseError):
    """Raised when the file extension is neither .csv nor .xlsx."""
    error_type = "UNSUPPORTED_FILE_TYPE"


class EmptyWorkbookError(TableParseError):
    """Raised when a workbook contains no sheets."""
    error_type = "EMPTY_WORKBOOK"


class SheetHeaderError(TableParseError):
    """Raised when a sheet has no row that could become the header."""
    error_type = "SHEET_HEADER_ERROR"

    def __init__(self, message: str, sheet_name: str | None = None) -> None:
        super().__init__(message)
        self.sheet_name = sheet_name


class WorkbookReadError(TableParseError):
    """Raised when the XLSX bytes cannot be opened as a workbook."""
    error_type = "WORKBOOK_READ_ERROR"
