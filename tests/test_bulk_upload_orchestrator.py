from __future__ import annotations

from io import BytesIO

import pytest
from openpyxl import load_workbook
from sqlalchemy import select

from app.crud import bulk_upload as crud
from app.models.bulk_upload import BulkUploadRow
from app.services import bulk_upload_orchestrator as orchestrator_module
from app.services.bulk_upload_orchestrator import (
    STATUS_COMPLETED,
    STATUS_CREATING,
    STATUS_PARSING,
    STATUS_VALIDATING,
    InvalidBatchTransition,
)
from app.services.bulk_upload_vehicle_schema import BASIC_SHEET, OWNERSHIP_SHEET, VEHICLE_SCHEMA

HEADERS = {"X-User-Email": "ops@example.com", "Content-Type": "application/octet-stream"}


def _upload(client, content):
    res = client.post(
        "/bulk-upload/vehicle/upload",
        params={"filename": "vehicles.xlsx"},
        content=content,
        headers=HEADERS,
    )
    assert res.status_code == 202
    return res.json()["batch_id"]


def _new_batch(db):
    return crud.create_batch(db, entity_type="vehicle", file_name="vehicles.xlsx", uploaded_by="ops@example.com")


def test_database_rejection_is_reported_per_record(client, make_workbook, samples, monkeypatch, seeded_session):
    _upload(client, make_workbook(VEHICLE_SCHEMA))

    # Store lookups miss, so VR001 only collides when it is inserted.
    monkeypatch.setattr(crud, "existing_values", lambda *args, **kwargs: set())
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    basic[1].update(
        VIN_Chassis_Number="AL0000000000NEWVN",
        GPS_IMEI_Number="555555555555555",
        Registration_Number="DL02EF9999",
    )
    ownership = samples(VEHICLE_SCHEMA, OWNERSHIP_SHEET)
    ownership[1]["Registration_Number"] = "DL02EF9999"

    batch_id = _upload(client, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic, OWNERSHIP_SHEET: ownership}))

    batch = client.get(f"/bulk-upload/batches/{batch_id}").json()
    assert batch["status"] == "completed"
    assert batch["valid_count"] == 2
    assert batch["created_count"] == 1
    assert batch["creation_failed_count"] == 1
    assert batch["error_report_available"] is True

    seeded_session.expire_all()
    statuses = dict(
        seeded_session.execute(
            select(BulkUploadRow.reference_id, BulkUploadRow.status).where(BulkUploadRow.batch_id == batch_id)
        ).all()
    )
    assert statuses == {"VR001": "creation_failed", "VR002": "created"}

    findings = client.get(f"/bulk-upload/batches/{batch_id}/findings").json()["items"]
    assert [(f["rule"], f["sheet_name"], f["row_number"], f["severity"]) for f in findings] == [
        ("CREATION_FAILED", BASIC_SHEET, 2, "high")
    ]
    assert findings[0]["message"].startswith("Rejected by the database")

    report = load_workbook(BytesIO(client.get(f"/bulk-upload/batches/{batch_id}/error-report").content))
    rows = list(report[BASIC_SHEET].iter_rows(values_only=True))
    assert len(rows) == 2
    assert rows[1][0] == "VR001"
    assert rows[1][-1].startswith("[HIGH] Rejected by the database")


def test_unexpected_error_fails_the_batch_with_notes(orchestrator, seeded_session, make_workbook, monkeypatch):
    def _explode(*args, **kwargs):
        raise RuntimeError("resolver exploded")

    monkeypatch.setattr(orchestrator_module, "resolve_references", _explode)
    batch = _new_batch(seeded_session)

    with orchestrator.broadcaster.subscribe(batch.id) as sub:
        orchestrator.run_batch(batch.id, make_workbook(VEHICLE_SCHEMA))
        events = sub.drain()

    seeded_session.expire_all()
    stored = crud.get_batch(seeded_session, batch.id)
    assert stored.status == "failed"
    assert stored.processing_notes == "RuntimeError: resolver exploded"
    assert stored.completed_at is not None
    assert crud.count_findings(seeded_session, batch.id) == 0

    last = events[-1]
    assert (last.phase, last.percentage, last.type) == ("failed", 100, "error")
    assert last.message == "RuntimeError: resolver exploded"
    assert not orchestrator.broadcaster.has_topic(batch.id)


def test_terminal_batches_reject_further_transitions(orchestrator, seeded_session):
    batch = _new_batch(seeded_session)
    for status in (STATUS_PARSING, STATUS_VALIDATING, STATUS_CREATING, STATUS_COMPLETED):
        orchestrator.transition(seeded_session, batch, status)
    assert batch.completed_at is not None

    with pytest.raises(InvalidBatchTransition) as exc:
        orchestrator.transition(seeded_session, batch, STATUS_CREATING)
    assert (exc.value.current, exc.value.target) == (STATUS_COMPLETED, STATUS_CREATING)

    seeded_session.expire_all()
    assert crud.get_batch(seeded_session, batch.id).status == STATUS_COMPLETED


def test_phases_cannot_be_skipped(orchestrator, seeded_session):
    batch = _new_batch(seeded_session)
    with pytest.raises(InvalidBatchTransition):
        orchestrator.transition(seeded_session, batch, STATUS_CREATING)
    assert batch.status == "received"


def test_progress_events_from_a_real_run(orchestrator, seeded_session, make_workbook):
    batch = _new_batch(seeded_session)

    with orchestrator.broadcaster.subscribe(batch.id) as sub:
        orchestrator.run_batch(batch.id, make_workbook(VEHICLE_SCHEMA))
        events = sub.drain()
        assert sub.closed

    phases: list[str] = []
    for event in events:
        if not phases or phases[-1] != event.phase:
            phases.append(event.phase)
    assert phases == [STATUS_PARSING, STATUS_VALIDATING, STATUS_CREATING, STATUS_COMPLETED]

    percentages = [event.percentage for event in events]
    assert percentages == sorted(percentages)
    assert percentages[0] == 10

    final = events[-1]
    assert final.percentage == 100
    assert final.type == "success"
    assert final.counters == {
        "total_rows": 2,
        "valid_count": 2,
        "invalid_count": 0,
        "created_count": 2,
        "creation_failed_count": 0,
    }
