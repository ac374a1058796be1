from __future__ import annotations

from datetime import date

from sqlalchemy import select

from app.models.driver import (
    DriverAddress,
    DriverBasicInformation,
    DriverDocument,
    DriverEmploymentHistory,
    DriverIncident,
)
from app.services.bulk_upload_driver_schema import (
    ADDRESS_SHEET,
    BASIC_SHEET,
    DOCUMENTS_SHEET,
    DRIVER_SCHEMA,
    HISTORY_SHEET,
    age_on,
)

HEADERS = {"X-User-Email": "fleet.hr@example.com", "Content-Type": "application/octet-stream"}


def _upload(client, content):
    res = client.post(
        "/bulk-upload/driver/upload",
        params={"filename": "drivers.xlsx"},
        content=content,
        headers=HEADERS,
    )
    assert res.status_code == 202
    return res.json()["batch_id"]


def _findings(client, batch_id):
    items = client.get(f"/bulk-upload/batches/{batch_id}/findings", params={"limit": 200}).json()["items"]
    return {(f["reference_id"], f["sheet_name"], f["row_number"], f["field_name"], f["rule"]) for f in items}


def test_driver_samples_create_all_records(client, make_workbook, seeded_session):
    batch_id = _upload(client, make_workbook(DRIVER_SCHEMA))

    batch = client.get(f"/bulk-upload/batches/{batch_id}").json()
    assert batch["status"] == "completed"
    assert batch["created_count"] == 2

    seeded_session.expire_all()
    suresh = seeded_session.execute(
        select(DriverBasicInformation).where(DriverBasicInformation.phone_number == "9123456780")
    ).scalar_one()
    assert suresh.driver_code == f"DRV{suresh.id:04d}"
    assert suresh.gender == "MALE"
    assert suresh.date_of_birth == date(1985, 11, 20)
    primaries = seeded_session.execute(
        select(DriverAddress.is_primary).where(DriverAddress.driver_id == suresh.id)
    ).scalars().all()
    assert sorted(primaries) == [False, True]
    incident = seeded_session.execute(
        select(DriverIncident).where(DriverIncident.driver_id == suresh.id)
    ).scalar_one()
    assert incident.incident_type == "VIOLATION"

    assert seeded_session.execute(select(DriverDocument)).scalars().all()
    assert len(seeded_session.execute(select(DriverEmploymentHistory)).scalars().all()) == 1


def test_phone_and_email_duplicates_against_store(client, make_workbook, samples):
    _upload(client, make_workbook(DRIVER_SCHEMA))

    basic = samples(DRIVER_SCHEMA, BASIC_SHEET)
    basic[0]["Phone_Number"] = "9000000001"
    basic[0]["Email_ID"] = "Rajesh.Kumar@Example.com"
    basic[1]["Email_ID"] = "suresh.p@example.com"

    batch_id = _upload(client, make_workbook(DRIVER_SCHEMA, {BASIC_SHEET: basic}))

    assert _findings(client, batch_id) == {
        ("DR001", BASIC_SHEET, 2, "Email_ID", "DUPLICATE_IN_STORE"),
        ("DR002", BASIC_SHEET, 3, "Phone_Number", "DUPLICATE_IN_STORE"),
    }


def test_age_address_and_document_rules(client, make_workbook, samples):
    basic = samples(DRIVER_SCHEMA, BASIC_SHEET)
    basic[0]["Date_Of_Birth"] = "2015-01-01"
    basic[1]["Phone_Number"] = "5123456780"
    addresses = samples(DRIVER_SCHEMA, ADDRESS_SHEET)
    addresses[1]["Is_Primary"] = "N"  # DR002 left without a primary
    addresses[2]["Postal_Code"] = "4400"
    documents = samples(DRIVER_SCHEMA, DOCUMENTS_SHEET)
    documents.append(dict(documents[1], Document_Number="mh1220150067890"))

    batch_id = _upload(
        client,
        make_workbook(DRIVER_SCHEMA, {BASIC_SHEET: basic, ADDRESS_SHEET: addresses, DOCUMENTS_SHEET: documents}),
    )

    batch = client.get(f"/bulk-upload/batches/{batch_id}").json()
    assert batch["created_count"] == 0
    assert _findings(client, batch_id) == {
        ("DR001", BASIC_SHEET, 2, "Date_Of_Birth", "CONSISTENCY"),
        ("DR002", BASIC_SHEET, 3, "Phone_Number", "FORMAT"),
        ("DR002", BASIC_SHEET, 3, "Is_Primary", "CONSISTENCY"),
        ("DR002", ADDRESS_SHEET, 4, "Postal_Code", "FORMAT"),
        ("DR002", DOCUMENTS_SHEET, 4, "Document_Number", "CONSISTENCY"),
    }


def test_employment_dates_and_optional_sheets(client, make_workbook, samples):
    history = samples(DRIVER_SCHEMA, HISTORY_SHEET)
    history[0]["To_Date"] = "2014-12-31"

    batch_id = _upload(
        client,
        make_workbook(DRIVER_SCHEMA, {HISTORY_SHEET: history}, omit=("Accident & Violation",)),
    )

    batch = client.get(f"/bulk-upload/batches/{batch_id}").json()
    assert batch["created_count"] == 1
    assert _findings(client, batch_id) == {("DR001", HISTORY_SHEET, 2, "To_Date", "DATE_ORDER")}


def test_age_on_counts_birthdays():
    assert age_on(date(2000, 6, 15), date(2018, 6, 14)) == 17
    assert age_on(date(2000, 6, 15), date(2018, 6, 15)) == 18
