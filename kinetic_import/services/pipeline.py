from __future__ import annotations

import logging
from pathlib import Path

from ..logging.init import log_summary
from ..models.config_models import IngestSettings
from ..models.error_record import ErrorRecord
from ..models.mapping import MappingSelection
from ..models.processing_result import ImportOutcome, ImportStage, ParseOutcome
from ..tabular.errors import SheetHeaderError, TableParseError
from ..tabular.reader import file_extension, parse_file
from .mapping import apply_mapping
from .summary import render_summary_line
from .validation import build_validation_report

"""Ingestion pipeline: file -> RawTable -> Dataset -> ValidationReport.

This is the library boundary. Parse exceptions and blocking mapping errors are
turned into ErrorRecord lists here and never propagate to the caller. Each stage
takes the previous stage's immutable output; nothing is shared between runs, so a
retry is simply another call.
"""

__all__ = [
    "FILE_LEVEL",
    "ProcessingError",
    "read_source",
    "parse_source",
    "run_import",
]

logger = logging.getLogger(__name__)

FILE_LEVEL = "<FILE_LEVEL>"


class ProcessingError(Exception):
    """Raised when the source file itself cannot be read from disk."""


def read_source(path: Path) -> tuple[str, str | bytes]:
    """Read a source file once: CSV as text (BOM tolerant), XLSX and others as bytes.

    Raises:
        ProcessingError: path missing, not a file, or unreadable
    """
    if not path.exists():
        raise ProcessingError(f"File not found: {path}")
    if not path.is_file():
        raise ProcessingError(f"Path is not a file: {path}")
    try:
        if file_extension(path.name) == "csv":
            return path.name, path.read_text(encoding="utf-8-sig", errors="replace")
        return path.name, path.read_bytes()
    except OSError as e:
        raise ProcessingError(f"Error reading file {path}: {e}") from e


def parse_source(file_name: str, content: str | bytes, has_header: bool = True) -> ParseOutcome:
    """Parse file content, converting parse failures into ErrorRecord entries."""
    try:
        parsed = parse_file(file_name, content, has_header=has_header)
    except TableParseError as e:
        sheet = e.sheet_name if isinstance(e, SheetHeaderError) and e.sheet_name else FILE_LEVEL
        record = ErrorRecord.create(
            file=file_name,
            sheet=sheet,
            row=-1,
            error_type=e.error_type,
            message=str(e),
        )
        logger.error("parse failed file=%s type=%s: %s", file_name, e.error_type, e)
        return ParseOutcome(file_name=file_name, parsed=None, errors=[record])
    logger.info("parsed file=%s type=%s tables=%d", file_name, parsed.file_type, len(parsed.tables))
    return ParseOutcome(file_name=file_name, parsed=parsed)


def _finish(outcome: ImportOutcome) -> ImportOutcome:
    summary_line = render_summary_line(outcome)
    # ラベルはフォーマッタ側で付くので "SUMMARY " を除く
    log_summary(summary_line[len("SUMMARY "):], logger)
    return outcome


def run_import(
    file_name: str,
    content: str | bytes,
    selection: MappingSelection,
    *,
    sheet_name: str | None = None,
    settings: IngestSettings | None = None,
    dataset_id: str | None = None,
    created_at: str | None = None,
) -> ImportOutcome:
    """Run parse, mapping and validation for one file.

    Stops at the first stage that yields blocking errors and returns them.
    ``sheet_name`` picks an XLSX sheet; the active (first) table is used otherwise.
    """
    settings = settings or IngestSettings()

    parse_outcome = parse_source(file_name, content, has_header=selection.use_header_row)
    if parse_outcome.parsed is None:
        return _finish(
            ImportOutcome(file_name=file_name, stage=ImportStage.PARSE, errors=parse_outcome.errors)
        )
    parsed = parse_outcome.parsed

    table = parsed.active_table
    if sheet_name is not None:
        found = parsed.table_for_sheet(sheet_name)
        if found is None:
            record = ErrorRecord.create(
                file=file_name,
                sheet=sheet_name,
                row=-1,
                error_type="SHEET_NOT_FOUND",
                message=f"sheet '{sheet_name}' not found; available: {parsed.sheet_names}",
            )
            return _finish(
                ImportOutcome(
                    file_name=file_name, stage=ImportStage.PARSE, parsed=parsed, errors=[record]
                )
            )
        table = found

    mapping = apply_mapping(
        table,
        selection,
        file_name,
        dataset_id=dataset_id,
        created_at=created_at,
        settings=settings,
    )
    if mapping.dataset is None:
        records = [
            ErrorRecord.create(
                file=file_name,
                sheet=table.sheet_name or FILE_LEVEL,
                row=e.row,
                error_type=e.error_type,
                message=e.message,
            )
            for e in mapping.errors
        ]
        return _finish(
            ImportOutcome(
                file_name=file_name,
                stage=ImportStage.MAPPING,
                parsed=parsed,
                table=table,
                mapping=mapping,
                errors=records,
            )
        )

    report = build_validation_report(mapping.dataset, settings.validation)
    return _finish(
        ImportOutcome(
            file_name=file_name,
            stage=ImportStage.VALIDATED,
            parsed=parsed,
            table=table,
            mapping=mapping,
            report=report,
        )
    )
