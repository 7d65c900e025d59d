from __future__ import annotations

import logging
from pathlib import PurePath

from kinetic_import.models.raw_table import ParsedFile, RawTable

from .cells import coerce_cell, synthesize_headers
from .csv_text import parse_csv_text
from .errors import EmptyFileError, UnsupportedFileTypeError, WorkbookReadError
from .workbook import parse_xlsx_bytes

"""File-type dispatch for the tabular parsers.

The extension alone selects the parser (.csv or .xlsx, case-insensitive); other
extensions are rejected before the content is looked at.
"""

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "file_extension",
    "parse_file",
    "apply_header_choice",
]

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "xlsx")


def file_extension(file_name: str) -> str:
    return PurePath(file_name).suffix.lstrip(".").lower()


def _decode_text(content: str | bytes) -> str:
    if isinstance(content, str):
        return content
    # utf-8-sig で BOM を除去、壊れたバイトは置換して読み進める
    return content.decode("utf-8-sig", errors="replace")


def parse_file(file_name: str, content: str | bytes, has_header: bool = True) -> ParsedFile:
    """Parse file content into one RawTable (CSV) or one per sheet (XLSX).

    Parameters
    ----------
    file_name: used only for its extension and for labelling
    content: decoded text or raw bytes for CSV, raw bytes for XLSX
    has_header: CSV only. False synthesizes 'Column N' headers.

    Raises
    ------
    UnsupportedFileTypeError, EmptyFileError, and for XLSX WorkbookReadError,
    EmptyWorkbookError or SheetHeaderError. No partial result is returned.
    """
    extension = file_extension(file_name)
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(
            f"Unsupported file type '{extension or file_name}'. Please upload a .csv or .xlsx file."
        )
    if len(content) == 0:
        raise EmptyFileError(f"file '{file_name}' is empty")

    if extension == "csv":
        table = parse_csv_text(_decode_text(content), has_header=has_header)
        logger.debug("csv parsed file=%s columns=%d rows=%d", file_name, table.column_count, len(table.rows))
        return ParsedFile(file_name=file_name, file_type="csv", tables=[table], sheet_names=[])

    if isinstance(content, str):
        raise WorkbookReadError(f"file '{file_name}' must be supplied as bytes")
    tables = parse_xlsx_bytes(content)
    sheet_names = [t.sheet_name or "Sheet" for t in tables]
    logger.debug("xlsx parsed file=%s sheets=%s", file_name, sheet_names)
    return ParsedFile(file_name=file_name, file_type="xlsx", tables=tables, sheet_names=sheet_names)


def apply_header_choice(table: RawTable, use_header_row: bool) -> RawTable:
    """Demote the header row to data when the first row is not a header.

    Synthesized 'Column N' labels (blank original headers) become empty cells.
    A table parsed without a header row is returned unchanged.
    """
    if use_header_row or not table.header_from_file:
        return table
    synthesized = synthesize_headers(len(table.headers))
    first_row = [
        None if header == placeholder else coerce_cell(header)
        for header, placeholder in zip(table.headers, synthesized, strict=True)
    ]
    return RawTable(
        headers=synthesized,
        rows=[first_row, *[list(r) for r in table.rows]],
        sheet_name=table.sheet_name,
        header_from_file=False,
    )
