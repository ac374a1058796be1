from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any

from openpyxl import load_workbook

from app.services.bulk_upload_cells import EMPTY, Cell, from_native, is_empty
from app.services.bulk_upload_schema import EntitySchema, SheetSpec

logger = logging.getLogger(__name__)


class WorkbookParseError(Exception):
    """The upload cannot be read as the expected workbook. Fatal to the batch."""


@dataclass(frozen=True)
class SheetRow:
    sheet: str
    row_number: int
    values: dict[str, Cell]

    def cell(self, column: str) -> Cell:
        return self.values.get(column, EMPTY)


@dataclass
class ParsedWorkbook:
    entity_type: str
    sheets: dict[str, list[SheetRow]] = field(default_factory=dict)

    def rows(self, sheet_name: str) -> list[SheetRow]:
        return self.sheets.get(sheet_name, [])

    @property
    def row_count(self) -> int:
        return sum(len(rows) for rows in self.sheets.values())


def _normalize_header(value: Any) -> str:
    text = str(value or "").strip().lower()
    return re.sub(r"[\s\-]+", "_", text)


def _open_workbook(content: bytes):
    if not content:
        raise WorkbookParseError("Uploaded file is empty.")
    try:
        return load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:
        # openpyxl surfaces corrupt archives as zipfile/KeyError/ValueError variants.
        raise WorkbookParseError(f"Unable to read workbook: {exc}") from exc


def _find_sheet(workbook, sheet_name: str):
    if sheet_name in workbook.sheetnames:
        return workbook[sheet_name]
    wanted = sheet_name.strip().lower()
    for name in workbook.sheetnames:
        if name.strip().lower() == wanted:
            return workbook[name]
    return None


def _read_sheet(ws, spec: SheetSpec) -> list[SheetRow]:
    rows_iter = ws.iter_rows(values_only=True)
    header = next(rows_iter, None)
    if header is None:
        # Header-less sheet: nothing to map, treat as present but empty.
        return []

    positions: dict[str, int] = {}
    normalized = [_normalize_header(value) for value in header]
    for column in spec.columns:
        key = _normalize_header(column)
        if key in normalized:
            positions[column] = normalized.index(key)

    missing = [column for column in spec.columns if column not in positions]
    if missing:
        raise WorkbookParseError(
            f"Sheet '{spec.name}' is missing column(s): {', '.join(missing)}"
        )

    out: list[SheetRow] = []
    for offset, raw in enumerate(rows_iter, start=2):
        values: dict[str, Cell] = {}
        for column, idx in positions.items():
            values[column] = from_native(raw[idx] if idx < len(raw) else None)
        if all(is_empty(cell) for cell in values.values()):
            continue
        out.append(SheetRow(sheet=spec.name, row_number=offset, values=values))
    return out


def parse_workbook(content: bytes, schema: EntitySchema) -> ParsedWorkbook:
    """
    Read every data sheet of the schema into ordered SheetRows.

    Row numbers are the 1-based spreadsheet rows (first data row is 2).
    Blank rows are skipped, unknown columns and extra sheets are ignored.
    """
    workbook = _open_workbook(content)
    try:
        parsed = ParsedWorkbook(entity_type=schema.key)
        for spec in schema.sheets:
            ws = _find_sheet(workbook, spec.name)
            if ws is None:
                if spec.required:
                    raise WorkbookParseError(f"Required sheet '{spec.name}' is missing.")
                parsed.sheets[spec.name] = []
                continue
            parsed.sheets[spec.name] = _read_sheet(ws, spec)
    finally:
        workbook.close()

    logger.info(
        "bulk_upload_workbook_parsed entity_type=%s rows=%s",
        schema.key,
        parsed.row_count,
    )
    return parsed


def _data_row_count(ws, limit: int | None) -> int:
    # Counts non-blank rows under the header, stopping once `limit` is passed.
    # Stored sheet dimensions are not trusted: some writers omit them.
    count = 0
    rows_iter = ws.iter_rows(values_only=True)
    next(rows_iter, None)
    for raw in rows_iter:
        if all(value is None or str(value).strip() == "" for value in raw):
            continue
        count += 1
        if limit is not None and count > limit:
            break
    return count


def count_sheet_rows(content: bytes, schema: EntitySchema, limit: int | None = None) -> dict[str, int]:
    """
    Data rows per schema sheet, for the row ceiling at the upload boundary.

    With `limit`, counting stops at limit + 1 so oversized sheets are
    rejected without reading them to the end. Unreadable files return an
    empty dict; they are accepted and fail later as a parse error so the
    batch records why.
    """
    try:
        workbook = _open_workbook(content)
    except WorkbookParseError:
        return {}
    try:
        counts: dict[str, int] = {}
        for spec in schema.sheets:
            ws = _find_sheet(workbook, spec.name)
            if ws is None:
                continue
            counts[spec.name] = _data_row_count(ws, limit)
        return counts
    finally:
        workbook.close()
