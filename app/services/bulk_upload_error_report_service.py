from __future__ import annotations

import json
import logging
from collections import Counter, defaultdict
from io import BytesIO
from pathlib import Path

from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from app.crud import bulk_upload as crud
from app.models.bulk_upload import BulkUploadBatch, BulkUploadFinding
from app.services.bulk_upload_cells import from_json, to_excel
from app.services.bulk_upload_registry import get_entity_schema
from app.services.bulk_upload_schema import EntitySchema, SheetSpec
from app.services.bulk_upload_template_service import XLSX_MEDIA_TYPE

logger = logging.getLogger(__name__)

SUMMARY_SHEET = "Error Summary"
ERRORS_COLUMN = "Errors"

_ERROR_FILL = PatternFill("solid", fgColor="FFC7CE")
_ERROR_FONT = Font(color="9C0006")
_HEADER_FILL = PatternFill("solid", fgColor="C00000")
_HEADER_FONT = Font(bold=True, color="FFFFFF")
_TITLE_FONT = Font(bold=True, size=14)
_SECTION_FONT = Font(bold=True, size=12)
_TERMINAL_STATUSES = {"completed", "validation_errors"}


class NothingToReport(Exception):
    """No error report exists for the batch (unknown, unfinished, failed or clean)."""


def _format_finding(finding: BulkUploadFinding) -> str:
    prefix = f"[{finding.severity.upper()}]"
    if finding.field_name:
        return f"{prefix} {finding.field_name}: {finding.message}"
    return f"{prefix} {finding.message}"


def _build_summary_sheet(wb: Workbook, batch: BulkUploadBatch, findings: list[BulkUploadFinding]) -> None:
    ws = wb.create_sheet(SUMMARY_SHEET)
    ws.append(["Bulk Upload Error Report"])
    ws.cell(row=1, column=1).font = _TITLE_FONT
    ws.append([])
    for label, value in (
        ("Batch ID", batch.id),
        ("Entity Type", batch.entity_type),
        ("File Name", batch.file_name),
        ("Uploaded By", batch.uploaded_by),
        ("Status", batch.status),
        ("Total Rows", batch.total_rows),
        ("Valid", batch.valid_count),
        ("Invalid", batch.invalid_count),
        ("Created", batch.created_count),
        ("Creation Failed", batch.creation_failed_count),
        ("Total Findings", len(findings)),
    ):
        ws.append([label, value])
        ws.cell(row=ws.max_row, column=1).font = Font(bold=True)

    ws.append([])
    ws.append(["Findings by Rule"])
    ws.cell(row=ws.max_row, column=1).font = _SECTION_FONT
    for rule, count in sorted(Counter(f.rule for f in findings).items()):
        ws.append([rule, count])

    ws.append([])
    ws.append(["Findings by Severity"])
    ws.cell(row=ws.max_row, column=1).font = _SECTION_FONT
    for severity in ("critical", "high", "medium", "low"):
        count = sum(1 for f in findings if f.severity == severity)
        if count:
            ws.append([severity, count])

    ws.append([])
    ws.append(["Findings by Sheet"])
    ws.cell(row=ws.max_row, column=1).font = _SECTION_FONT
    for sheet_name, count in sorted(Counter(f.sheet_name for f in findings).items()):
        ws.append([sheet_name, count])

    ws.append([])
    ws.append(["How to fix"])
    ws.cell(row=ws.max_row, column=1).font = _SECTION_FONT
    for line in (
        "Each sheet below lists only the rows that have findings.",
        "Cells with a red fill caused a finding; the Errors column lists every message for the row.",
        "CRITICAL and HIGH findings stopped the record from being created.",
        "MEDIUM and LOW findings are advisory; those records were created.",
        "Fix the rows, remove the Errors column if you like, and upload the corrected rows as a new file.",
    ):
        ws.append([line])

    ws.column_dimensions["A"].width = 28
    ws.column_dimensions["B"].width = 48


def _build_sheet(
    wb: Workbook,
    sheet: SheetSpec,
    rows_by_number: dict[int, dict],
    findings_by_row: dict[int, list[BulkUploadFinding]],
) -> None:
    ws = wb.create_sheet(sheet.name)
    columns = sheet.columns + [ERRORS_COLUMN]
    ws.append(columns)
    ws.freeze_panes = "A2"
    for idx, name in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=idx)
        cell.fill = _HEADER_FILL
        cell.font = _HEADER_FONT
        width = 70 if name == ERRORS_COLUMN else max(14, min(36, len(name) + 5))
        ws.column_dimensions[get_column_letter(idx)].width = width

    for row_number in sorted(findings_by_row):
        values = rows_by_number.get(row_number, {})
        row_findings = findings_by_row[row_number]
        line = [to_excel(from_json(values.get(column))) for column in sheet.columns]
        line.append("\n".join(_format_finding(f) for f in row_findings))
        ws.append(line)
        out_row = ws.max_row

        flagged = {f.field_name for f in row_findings if f.field_name}
        for idx, column in enumerate(sheet.columns, start=1):
            if column in flagged:
                cell = ws.cell(row=out_row, column=idx)
                cell.fill = _ERROR_FILL
                cell.font = _ERROR_FONT
        ws.cell(row=out_row, column=len(columns)).alignment = Alignment(wrap_text=True, vertical="top")


def build_error_report_workbook(db: Session, batch_id: str) -> Workbook:
    batch = crud.get_batch(db, batch_id)
    if batch is None:
        raise NothingToReport(f"Batch '{batch_id}' not found")
    if batch.status not in _TERMINAL_STATUSES:
        raise NothingToReport(f"Batch '{batch_id}' has no error report (status {batch.status})")
    schema: EntitySchema | None = get_entity_schema(batch.entity_type)
    if schema is None:
        raise NothingToReport(f"Entity type '{batch.entity_type}' is not available")
    findings = crud.all_findings(db, batch_id)
    if not findings:
        raise NothingToReport(f"Batch '{batch_id}' has no findings to report")

    rows_by_sheet: dict[str, dict[int, dict]] = defaultdict(dict)
    for row in crud.list_rows(db, batch_id):
        rows_by_sheet[row.sheet_name][row.row_number] = json.loads(row.values_json)

    findings_by_sheet: dict[str, dict[int, list[BulkUploadFinding]]] = defaultdict(lambda: defaultdict(list))
    for finding in findings:
        if finding.row_number is None:
            continue
        findings_by_sheet[finding.sheet_name][finding.row_number].append(finding)

    wb = Workbook()
    wb.remove(wb.active)
    _build_summary_sheet(wb, batch, findings)
    # Every data sheet is kept, even without findings, so the report can be
    # corrected and uploaded again.
    for sheet in schema.sheets:
        _build_sheet(wb, sheet, rows_by_sheet.get(sheet.name, {}), findings_by_sheet.get(sheet.name, {}))
    return wb


def build_error_report_bytes(db: Session, batch_id: str) -> bytes:
    wb = build_error_report_workbook(db, batch_id)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_error_report_response(db: Session, batch_id: str) -> StreamingResponse:
    content = build_error_report_bytes(db, batch_id)
    return StreamingResponse(
        BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="bulk_upload_errors_{batch_id}.xlsx"'},
    )


def archive_error_report(db: Session, batch_id: str, report_dir: str) -> str | None:
    """Write the report under report_dir and return its path; None when there is nothing to archive."""
    if not report_dir:
        return None
    try:
        content = build_error_report_bytes(db, batch_id)
    except NothingToReport:
        return None
    target_dir = Path(report_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / f"{batch_id}.xlsx"
    target.write_bytes(content)
    logger.info("bulk_upload_error_report_archived batch_id=%s path=%s", batch_id, target)
    return str(target)
