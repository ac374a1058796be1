from __future__ import annotations

from io import BytesIO

import pytest
from openpyxl import Workbook

from app.services.bulk_upload_cells import Number, Text
from app.services.bulk_upload_orchestrator import BulkUploadOrchestrator, get_bulk_upload_orchestrator
from app.services.bulk_upload_parser import WorkbookParseError, count_sheet_rows, parse_workbook
from app.services.bulk_upload_resolver import resolve_references
from app.services.bulk_upload_vehicle_schema import (
    BASIC_SHEET,
    CAPACITY_SHEET,
    DOCUMENTS_SHEET,
    SPEC_SHEET,
    VEHICLE_SCHEMA,
)


def test_parse_keeps_row_numbers_and_skips_blank_rows(make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    content = make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: [basic[0], {"Make_Brand": "   "}, basic[1]]})

    parsed = parse_workbook(content, VEHICLE_SCHEMA)

    rows = parsed.rows(BASIC_SHEET)
    assert [row.row_number for row in rows] == [2, 4]
    assert rows[0].cell("Vehicle_Ref_ID") == Text("VR001")
    assert rows[0].cell("Taxes_And_Fees") == Number(15000)
    # Header row and blank row are not data.
    assert parsed.row_count == 2 + 2 + 2 + 2 + 3


def test_parse_rejects_unreadable_bytes():
    with pytest.raises(WorkbookParseError):
        parse_workbook(b"this is not a spreadsheet", VEHICLE_SCHEMA)


def test_parse_names_the_missing_required_sheet(make_workbook):
    content = make_workbook(VEHICLE_SCHEMA, omit=(SPEC_SHEET,))
    with pytest.raises(WorkbookParseError) as exc:
        parse_workbook(content, VEHICLE_SCHEMA)
    assert SPEC_SHEET in str(exc.value)


def test_optional_sheet_may_be_missing(make_workbook):
    content = make_workbook(VEHICLE_SCHEMA, omit=(DOCUMENTS_SHEET,))
    parsed = parse_workbook(content, VEHICLE_SCHEMA)
    assert parsed.rows(DOCUMENTS_SHEET) == []


def test_parse_reports_missing_columns():
    wb = Workbook()
    ws = wb.active
    ws.title = BASIC_SHEET
    ws.append(["Vehicle_Ref_ID", "Make_Brand"])
    ws.append(["VR001", "Tata"])
    buffer = BytesIO()
    wb.save(buffer)

    with pytest.raises(WorkbookParseError) as exc:
        parse_workbook(buffer.getvalue(), VEHICLE_SCHEMA)
    assert "VIN_Chassis_Number" in str(exc.value)


def test_headers_match_case_and_spacing_insensitively(samples):
    wb = Workbook()
    wb.remove(wb.active)
    for sheet in VEHICLE_SCHEMA.sheets:
        ws = wb.create_sheet(sheet.name.upper())
        ws.append([column.lower().replace("_", " ") for column in sheet.columns])
        for row in samples(VEHICLE_SCHEMA, sheet.name):
            ws.append([row.get(column) for column in sheet.columns])
    buffer = BytesIO()
    wb.save(buffer)

    parsed = parse_workbook(buffer.getvalue(), VEHICLE_SCHEMA)
    assert len(parsed.rows(BASIC_SHEET)) == 2


def test_count_sheet_rows_counts_data_rows(make_workbook):
    counts = count_sheet_rows(make_workbook(VEHICLE_SCHEMA), VEHICLE_SCHEMA)
    assert counts[BASIC_SHEET] == 2
    assert counts[DOCUMENTS_SHEET] == 3
    assert count_sheet_rows(b"garbage", VEHICLE_SCHEMA) == {}


def _write_only_workbook(basic_rows: int) -> bytes:
    # Write-only workbooks carry no stored sheet dimensions.
    wb = Workbook(write_only=True)
    sample = VEHICLE_SCHEMA.basic_sheet.samples[0]
    for sheet in VEHICLE_SCHEMA.sheets:
        ws = wb.create_sheet(sheet.name)
        ws.append(sheet.columns)
        if sheet is VEHICLE_SCHEMA.basic_sheet:
            for idx in range(basic_rows):
                ws.append([f"VR{idx:03d}" if c == "Vehicle_Ref_ID" else sample.get(c) for c in sheet.columns])
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_count_sheet_rows_without_stored_dimensions():
    content = _write_only_workbook(50)

    counts = count_sheet_rows(content, VEHICLE_SCHEMA)
    assert counts[BASIC_SHEET] == 50
    assert counts[SPEC_SHEET] == 0

    # Counting stops one past the limit.
    assert count_sheet_rows(content, VEHICLE_SCHEMA, limit=10)[BASIC_SHEET] == 11


def test_row_limit_applies_to_workbooks_without_dimensions(client, session_factory, broadcaster):
    limited = BulkUploadOrchestrator(session_factory=session_factory, broadcaster=broadcaster, max_rows=20)
    client.app.dependency_overrides[get_bulk_upload_orchestrator] = lambda: limited
    res = client.post(
        "/bulk-upload/vehicle/upload",
        params={"filename": "vehicles.xlsx"},
        content=_write_only_workbook(50),
        headers={"Content-Type": "application/octet-stream"},
    )
    assert res.status_code == 413
    assert "Basic Information" in res.json()["detail"]


def test_resolver_groups_children_under_their_reference(make_workbook):
    parsed = parse_workbook(make_workbook(VEHICLE_SCHEMA), VEHICLE_SCHEMA)
    resolved = resolve_references(parsed, VEHICLE_SCHEMA)

    assert [draft.reference_id for draft in resolved.drafts] == ["VR001", "VR002"]
    first = resolved.drafts[0]
    assert len(first.child_rows(DOCUMENTS_SHEET)) == 2
    assert len(first.child_rows(CAPACITY_SHEET)) == 1
    assert resolved.unlinked_rows == []


def test_resolver_keeps_dangling_children_and_duplicate_references(make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    spec_rows = samples(VEHICLE_SCHEMA, SPEC_SHEET)
    duplicate = dict(basic[0], VIN_Chassis_Number="MAT000000000ZZZZZ", GPS_IMEI_Number="111111111111111")
    content = make_workbook(
        VEHICLE_SCHEMA,
        {
            BASIC_SHEET: [basic[0], duplicate],
            SPEC_SHEET: spec_rows,
            CAPACITY_SHEET: [],
            "Ownership Details": [],
            DOCUMENTS_SHEET: [],
        },
    )

    resolved = resolve_references(parse_workbook(content, VEHICLE_SCHEMA), VEHICLE_SCHEMA)

    assert len(resolved.drafts) == 2
    assert resolved.drafts[1].duplicate_of_row == 2
    # Children attach to the first holder of the reference only.
    assert len(resolved.drafts[0].child_rows(SPEC_SHEET)) == 1
    assert resolved.drafts[1].child_rows(SPEC_SHEET) == []
    assert [row.row_number for row in resolved.unlinked_rows] == [3]
