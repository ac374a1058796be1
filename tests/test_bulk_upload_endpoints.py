from __future__ import annotations

import os
from io import BytesIO

import pytest
from fastapi import WebSocketDisconnect
from openpyxl import load_workbook
from sqlalchemy import select

from app.core.config import settings
from app.models.vehicle import VehicleBasicInformation
from app.services.bulk_upload_orchestrator import (
    BulkUploadOrchestrator,
    get_bulk_upload_orchestrator,
)
from app.services.bulk_upload_vehicle_schema import BASIC_SHEET, VEHICLE_SCHEMA

ALICE = {"X-User-Email": "Alice@Example.com"}
BOB = {"X-User-Email": "bob@example.com"}


def _upload(client, content, *, entity_type="vehicle", filename="vehicles.xlsx", headers=None):
    return client.post(
        f"/bulk-upload/{entity_type}/upload",
        params={"filename": filename},
        content=content,
        headers={"Content-Type": "application/octet-stream", **(headers or ALICE)},
    )


def _batch(client, batch_id):
    res = client.get(f"/bulk-upload/batches/{batch_id}")
    assert res.status_code == 200
    return res.json()


def _sheet_values(content: bytes) -> dict[str, list[tuple]]:
    wb = load_workbook(BytesIO(content))
    return {ws.title: list(ws.iter_rows(values_only=True)) for ws in wb.worksheets}


def test_entity_types_lists_shipped_schemas(client):
    res = client.get("/bulk-upload/entity-types")
    assert res.status_code == 200
    body = {item["key"]: item for item in res.json()}
    assert set(body) == {"driver", "transporter", "vehicle", "warehouse"}
    assert body["vehicle"]["reference_column"] == "Vehicle_Ref_ID"
    assert body["vehicle"]["sheets"][-1] == "Instructions"
    assert body["transporter"]["reference_column"] == "Transporter_Ref_ID"
    assert body["driver"]["sheets"][0] == "Basic Information"


def test_template_download_has_data_sheets_and_instructions(client):
    res = client.get("/bulk-upload/vehicle/template.xlsx")
    assert res.status_code == 200
    assert "vehicle_bulk_upload_template.xlsx" in res.headers["content-disposition"]
    sheets = _sheet_values(res.content)
    assert list(sheets) == VEHICLE_SCHEMA.sheet_names + ["Instructions"]
    assert sheets[BASIC_SHEET][0] == tuple(VEHICLE_SCHEMA.basic_sheet.columns)

    assert client.get("/bulk-upload/spaceship/template.xlsx").status_code == 404


def test_template_round_trip_creates_every_record(client):
    template = client.get("/bulk-upload/vehicle/template.xlsx").content

    res = _upload(client, template)
    assert res.status_code == 202
    accepted = res.json()
    assert accepted["status"] == "received"
    assert accepted["entity_type"] == "vehicle"

    batch = _batch(client, accepted["batch_id"])
    assert batch["status"] == "completed"
    assert batch["is_terminal"] is True
    assert batch["uploaded_by"] == "alice@example.com"
    assert batch["total_rows"] == 2
    assert batch["valid_count"] == 2
    assert batch["invalid_count"] == 0
    assert batch["created_count"] == 2
    assert batch["creation_failed_count"] == 0
    assert batch["finding_count"] == 0
    assert batch["error_report_available"] is False
    assert batch["error_report_path"] is None
    assert batch["completed_at"] is not None

    assert client.get(f"/bulk-upload/batches/{accepted['batch_id']}/error-report").status_code == 404


def test_unreadable_workbook_fails_the_batch(client):
    res = _upload(client, b"definitely not a zip archive")
    assert res.status_code == 202
    batch_id = res.json()["batch_id"]

    batch = _batch(client, batch_id)
    assert batch["status"] == "failed"
    assert batch["finding_count"] == 0
    assert batch["processing_notes"].startswith("WorkbookParseError")
    assert client.get(f"/bulk-upload/batches/{batch_id}/error-report").status_code == 404


def test_missing_required_sheet_fails_the_batch(client, make_workbook):
    res = _upload(client, make_workbook(VEHICLE_SCHEMA, omit=(BASIC_SHEET,)))
    batch = _batch(client, res.json()["batch_id"])
    assert batch["status"] == "failed"
    assert BASIC_SHEET in batch["processing_notes"]


def test_second_upload_of_same_file_hits_store_duplicates(client, make_workbook, orchestrator):
    content = make_workbook(VEHICLE_SCHEMA)
    first = _upload(client, content).json()["batch_id"]
    second = _upload(client, content).json()["batch_id"]

    assert _batch(client, first)["status"] == "completed"
    batch = _batch(client, second)
    assert batch["status"] == "validation_errors"
    assert batch["valid_count"] == 0
    assert batch["invalid_count"] == 2
    assert batch["created_count"] == 0
    assert batch["error_report_available"] is True
    # Archived at finalization under the orchestrator's report directory.
    assert batch["error_report_path"] == os.path.join(orchestrator._report_dir, f"{second}.xlsx")
    assert os.path.exists(batch["error_report_path"])

    findings = client.get(f"/bulk-upload/batches/{second}/findings").json()
    assert findings["total"] == 6
    assert {item["rule"] for item in findings["items"]} == {"DUPLICATE_IN_STORE"}
    assert {item["field_name"] for item in findings["items"]} == {
        "VIN_Chassis_Number",
        "GPS_IMEI_Number",
        "Registration_Number",
    }


def test_store_duplicates_ignore_case(client, make_workbook, samples, seeded_session):
    assert _batch(client, _upload(client, make_workbook(VEHICLE_SCHEMA)).json()["batch_id"])["status"] == "completed"

    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    for row, imei in zip(basic, ("111111111111111", "222222222222222")):
        row["VIN_Chassis_Number"] = row["VIN_Chassis_Number"].lower()
        row["Registration_Number"] = row["Registration_Number"].lower()
        row["GPS_IMEI_Number"] = imei
    second = _upload(client, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic})).json()["batch_id"]

    batch = _batch(client, second)
    assert batch["status"] == "validation_errors"
    assert batch["created_count"] == 0
    findings = client.get(f"/bulk-upload/batches/{second}/findings").json()["items"]
    assert {(f["field_name"], f["rule"]) for f in findings} == {
        ("VIN_Chassis_Number", "DUPLICATE_IN_STORE"),
        ("Registration_Number", "DUPLICATE_IN_STORE"),
    }

    seeded_session.expire_all()
    stored = seeded_session.execute(select(VehicleBasicInformation.vin_chassis_number)).scalars().all()
    assert sorted(stored) == ["AL9876543210WXYZA", "MAT123456789ABCDE"]


def test_identifiers_are_stored_upper_case(client, make_workbook, samples, seeded_session):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    basic[0]["VIN_Chassis_Number"] = "mat123456789abcde"
    basic[0]["Registration_Number"] = "mh12ab1234"

    batch = _batch(client, _upload(client, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic})).json()["batch_id"])
    assert batch["created_count"] == 2

    seeded_session.expire_all()
    vehicle = seeded_session.execute(
        select(VehicleBasicInformation).where(VehicleBasicInformation.gps_imei_number == "123456789012345")
    ).scalar_one()
    assert vehicle.vin_chassis_number == "MAT123456789ABCDE"
    assert vehicle.registration_number == "MH12AB1234"


def test_findings_filters_and_paging(client, make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    basic[0]["GPS_IMEI_Number"] = 123456789012345
    basic[1]["Vehicle_Type_ID"] = "VT999"
    batch_id = _upload(client, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic})).json()["batch_id"]

    batch = _batch(client, batch_id)
    assert batch["status"] == "completed"
    assert batch["created_count"] == 1
    assert batch["invalid_count"] == 1

    url = f"/bulk-upload/batches/{batch_id}/findings"
    low = client.get(url, params={"severity": "LOW"}).json()
    assert [item["rule"] for item in low["items"]] == ["NUMERIC_IDENTIFIER"]
    high = client.get(url, params={"severity": "high", "sheet": BASIC_SHEET}).json()
    assert [(item["rule"], item["row_number"]) for item in high["items"]] == [("MASTER_DATA", 3)]
    page = client.get(url, params={"limit": 1, "skip": 1}).json()
    assert page["total"] == 2
    assert len(page["items"]) == 1

    assert client.get(url, params={"severity": "urgent"}).status_code == 400
    assert client.get("/bulk-upload/batches/nope/findings").status_code == 404


def test_error_report_lists_only_rows_with_findings(client, make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    basic[1]["Vehicle_Type_ID"] = "VT999"
    batch_id = _upload(client, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic})).json()["batch_id"]

    url = f"/bulk-upload/batches/{batch_id}/error-report"
    first = client.get(url)
    second = client.get(url)
    assert first.status_code == 200
    assert f"bulk_upload_errors_{batch_id}.xlsx" in first.headers["content-disposition"]

    sheets = _sheet_values(first.content)
    assert sheets == _sheet_values(second.content)
    assert list(sheets) == ["Error Summary"] + VEHICLE_SCHEMA.sheet_names

    basic_rows = sheets[BASIC_SHEET]
    assert basic_rows[0][-1] == "Errors"
    assert len(basic_rows) == 2
    assert basic_rows[1][0] == "VR002"
    assert basic_rows[1][-1].startswith("[HIGH] Vehicle_Type_ID:")
    # Sheets without findings keep only their header.
    assert len(sheets["Specifications"]) == 1

    wb = load_workbook(BytesIO(first.content))
    type_col = VEHICLE_SCHEMA.basic_sheet.columns.index("Vehicle_Type_ID") + 1
    assert wb[BASIC_SHEET].cell(row=2, column=type_col).fill.fgColor.rgb.endswith("FFC7CE")


def test_upload_boundary_rejections(client, make_workbook, session_factory, broadcaster, tmp_path):
    content = make_workbook(VEHICLE_SCHEMA)

    assert _upload(client, content, filename="vehicles.csv").status_code == 400
    assert _upload(client, b"").status_code == 400
    assert _upload(client, content, entity_type="spaceship").status_code == 404

    tiny = BulkUploadOrchestrator(
        session_factory=session_factory,
        broadcaster=broadcaster,
        max_file_bytes=100,
        max_rows=1,
        report_dir=str(tmp_path),
    )
    client.app.dependency_overrides[get_bulk_upload_orchestrator] = lambda: tiny
    res = _upload(client, content)
    assert res.status_code == 413
    assert "limit" in res.json()["detail"]

    tiny._max_file_bytes = len(content) + 1
    res = _upload(client, content)
    assert res.status_code == 413
    assert "rows" in res.json()["detail"]

    history = client.get("/bulk-upload/batches", headers=ALICE).json()
    assert history["total"] == 0


def test_history_is_scoped_to_uploader_and_newest_first(client, make_workbook):
    content = make_workbook(VEHICLE_SCHEMA)
    older = _upload(client, content, filename="first.xlsx").json()["batch_id"]
    newer = _upload(client, b"junk", filename="second.xlsx").json()["batch_id"]
    _upload(client, content, filename="bobs.xlsx", headers=BOB)

    alice = client.get("/bulk-upload/batches", headers=ALICE).json()
    assert alice["total"] == 2
    assert [item["id"] for item in alice["items"]] == [newer, older]

    bob = client.get("/bulk-upload/batches", headers=BOB).json()
    assert [item["file_name"] for item in bob["items"]] == ["bobs.xlsx"]

    filtered = client.get("/bulk-upload/batches", params={"entity_type": "warehouse"}, headers=ALICE).json()
    assert filtered["total"] == 0


def test_unknown_batch_is_404(client):
    assert client.get("/bulk-upload/batches/does-not-exist").status_code == 404
    assert client.get("/bulk-upload/batches/does-not-exist/error-report").status_code == 404


def test_disabled_feature_hides_every_endpoint(client, monkeypatch, make_workbook):
    monkeypatch.setattr(settings, "BULK_UPLOAD_ENABLED", False)

    assert client.get("/bulk-upload/entity-types").status_code == 404
    assert client.get("/bulk-upload/vehicle/template.xlsx").status_code == 404
    assert _upload(client, make_workbook(VEHICLE_SCHEMA)).status_code == 404
    assert client.get("/bulk-upload/batches").status_code == 404

    with client.websocket_connect("/bulk-upload/batches/any/progress") as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    assert exc.value.code == 1008


def test_entity_type_allow_list(client, monkeypatch):
    monkeypatch.setattr(settings, "BULK_UPLOAD_ENTITY_TYPES", "warehouse")
    keys = [item["key"] for item in client.get("/bulk-upload/entity-types").json()]
    assert keys == ["warehouse"]
    assert client.get("/bulk-upload/vehicle/template.xlsx").status_code == 404


def test_progress_socket_sends_snapshot_for_finished_batch(client, make_workbook):
    batch_id = _upload(client, make_workbook(VEHICLE_SCHEMA)).json()["batch_id"]

    with client.websocket_connect(f"/bulk-upload/batches/{batch_id}/progress") as ws:
        message = ws.receive_json()
        assert message["event"] == "snapshot"
        assert message["batch"]["id"] == batch_id
        assert message["batch"]["status"] == "completed"
        assert message["batch"]["is_terminal"] is True
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()


def test_progress_socket_rejects_unknown_batch(client):
    with client.websocket_connect("/bulk-upload/batches/missing/progress") as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    assert exc.value.code == 1008


def test_health(client):
    assert client.get("/health").json() == {"status": "up"}
