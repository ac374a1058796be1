from __future__ import annotations

import logging
from io import BytesIO

from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation

from app.services.bulk_upload_master_data import master_label
from app.services.bulk_upload_schema import ENUM, FLAG, EntitySchema, SheetSpec

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_HEADER_FONT = Font(bold=True, color="FFFFFF")
_MANDATORY_FONT = Font(bold=True, color="FFFF00", underline="single")
_INSTRUCTION_HEADER_FILL = PatternFill("solid", fgColor="D9D9D9")
_SECTION_FONT = Font(bold=True, size=12)
_DATA_ROWS_LIMIT = 5000


class TemplateGenerationError(Exception):
    """The template workbook could not be produced."""


def _append_header(ws, sheet: SheetSpec) -> None:
    ws.append(sheet.columns)
    ws.freeze_panes = "A2"
    fill = PatternFill("solid", fgColor=sheet.header_color)
    for idx, spec in enumerate(sheet.fields, start=1):
        cell = ws.cell(row=1, column=idx)
        cell.fill = fill
        cell.font = _MANDATORY_FONT if spec.required else _HEADER_FONT
        cell.alignment = Alignment(vertical="center")
        ws.column_dimensions[get_column_letter(idx)].width = max(14, min(36, len(spec.name) + 5))


def _add_choice_dropdowns(ws, sheet: SheetSpec) -> None:
    for idx, spec in enumerate(sheet.fields, start=1):
        if spec.kind == FLAG:
            options = ("Y", "N")
        elif spec.kind == ENUM and spec.choices:
            options = spec.choices
        else:
            continue
        col_letter = get_column_letter(idx)
        validation = DataValidation(
            type="list",
            formula1='"' + ",".join(options) + '"',
            allow_blank=True,
        )
        validation.promptTitle = "Allowed Value"
        validation.prompt = f"{spec.name}: {', '.join(options)}"
        ws.add_data_validation(validation)
        validation.add(f"{col_letter}2:{col_letter}{_DATA_ROWS_LIMIT}")


def _build_data_sheet(workbook: Workbook, sheet: SheetSpec) -> None:
    ws = workbook.create_sheet(sheet.name)
    _append_header(ws, sheet)
    for sample in sheet.samples:
        ws.append([sample.get(column) for column in sheet.columns])
    _add_choice_dropdowns(ws, sheet)


def _build_instructions_sheet(workbook: Workbook, schema: EntitySchema) -> None:
    ws = workbook.create_sheet(schema.instructions_sheet)
    ws.append(["Sheet", "Field", "Required", "Format/Values", "Master Data", "Description"])
    for idx in range(1, 7):
        cell = ws.cell(row=1, column=idx)
        cell.font = Font(bold=True)
        cell.fill = _INSTRUCTION_HEADER_FILL
    ws.freeze_panes = "A2"

    for sheet in schema.sheets:
        for spec in sheet.fields:
            ws.append(
                [
                    sheet.name,
                    spec.name,
                    "Y" if spec.required else "N",
                    spec.format_hint(),
                    master_label(spec.master) if spec.master else "",
                    spec.description,
                ]
            )

    ws.append([])
    ws.append(["Critical Rules"])
    ws.cell(row=ws.max_row, column=1).font = _SECTION_FONT
    for rule in schema.critical_rules:
        ws.append(["", rule])

    ws.append([])
    ws.append(["Upload Steps"])
    ws.cell(row=ws.max_row, column=1).font = _SECTION_FONT
    for step_no, step in enumerate(schema.upload_steps, start=1):
        ws.append([str(step_no), step])

    for letter, width in zip("ABCDEF", (26, 30, 10, 28, 18, 70)):
        ws.column_dimensions[letter].width = width
    ws.protection.sheet = True


def build_template_workbook(schema: EntitySchema) -> Workbook:
    wb = Workbook()
    wb.remove(wb.active)
    for sheet in schema.sheets:
        _build_data_sheet(wb, sheet)
    _build_instructions_sheet(wb, schema)
    return wb


def build_template_bytes(schema: EntitySchema) -> bytes:
    try:
        wb = build_template_workbook(schema)
        buffer = BytesIO()
        wb.save(buffer)
    except Exception as exc:
        logger.exception("bulk_upload_template_failed entity_type=%s", schema.key)
        raise TemplateGenerationError("Template generation failed") from exc
    return buffer.getvalue()


def build_template_response(schema: EntitySchema) -> StreamingResponse:
    content = build_template_bytes(schema)
    filename = f"{schema.key}_bulk_upload_template.xlsx"
    return StreamingResponse(
        BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
