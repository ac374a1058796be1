from __future__ import annotations

from sqlalchemy import select

from app.models.transporter import (
    TransporterAddress,
    TransporterContact,
    TransporterDocument,
    TransporterGeneralInfo,
    TransporterServiceArea,
    TransporterServiceAreaState,
)
from app.services.bulk_upload_transporter_schema import (
    ADDRESS_SHEET,
    CONTACT_SHEET,
    DOCUMENTS_SHEET,
    GENERAL_SHEET,
    SERVICE_AREA_SHEET,
    TRANSPORTER_SCHEMA,
)

HEADERS = {"X-User-Email": "carrier.desk@example.com", "Content-Type": "application/octet-stream"}


def _upload(client, content):
    res = client.post(
        "/bulk-upload/transporter/upload",
        params={"filename": "transporters.xlsx"},
        content=content,
        headers=HEADERS,
    )
    assert res.status_code == 202
    return res.json()["batch_id"]


def _findings(client, batch_id):
    items = client.get(f"/bulk-upload/batches/{batch_id}/findings", params={"limit": 200}).json()["items"]
    return {(f["reference_id"], f["sheet_name"], f["row_number"], f["field_name"], f["rule"]) for f in items}


def test_transporter_samples_create_every_child(client, make_workbook, seeded_session):
    batch_id = _upload(client, make_workbook(TRANSPORTER_SCHEMA))

    batch = client.get(f"/bulk-upload/batches/{batch_id}").json()
    assert batch["status"] == "completed"
    assert batch["created_count"] == 2
    assert batch["finding_count"] == 0

    seeded_session.expire_all()
    abc = seeded_session.execute(
        select(TransporterGeneralInfo).where(TransporterGeneralInfo.business_name == "ABC Transport Pvt Ltd")
    ).scalar_one()
    assert abc.transporter_code == f"TR{abc.id:04d}"
    assert abc.trans_mode_road is True
    assert abc.trans_mode_sea is False
    assert abc.created_by == "carrier.desk@example.com"

    addresses = {
        a.address_type: a
        for a in seeded_session.execute(
            select(TransporterAddress).where(TransporterAddress.transporter_id == abc.id)
        ).scalars()
    }
    assert set(addresses) == {"Head Office", "Branch"}
    assert addresses["Head Office"].is_primary is True

    contacts = seeded_session.execute(
        select(TransporterContact).where(TransporterContact.transporter_id == abc.id)
    ).scalars().all()
    assert {c.email: c.address_id for c in contacts} == {
        "rajesh@abctransport.com": addresses["Head Office"].id,
        "priya@abctransport.com": addresses["Branch"].id,
    }

    area = seeded_session.execute(
        select(TransporterServiceArea).where(TransporterServiceArea.transporter_id == abc.id)
    ).scalar_one()
    assert area.service_frequency == "DAILY"
    states = seeded_session.execute(
        select(TransporterServiceAreaState.state_code).where(TransporterServiceAreaState.service_area_id == area.id)
    ).scalars().all()
    assert sorted(states) == ["GJ", "KA", "MH"]

    document = seeded_session.execute(
        select(TransporterDocument).where(TransporterDocument.transporter_id == abc.id)
    ).scalar_one()
    assert document.document_type_code == "DN010"
    assert document.is_verified is True


def test_business_name_and_email_are_unique_ignoring_case(client, make_workbook, samples):
    assert client.get(f"/bulk-upload/batches/{_upload(client, make_workbook(TRANSPORTER_SCHEMA))}").json()[
        "created_count"
    ] == 2

    general = samples(TRANSPORTER_SCHEMA, GENERAL_SHEET)
    general[0]["Business_Name"] = "abc transport pvt ltd"
    general[1]["Business_Name"] = "Swift Cargo Movers South"
    contacts = samples(TRANSPORTER_SCHEMA, CONTACT_SHEET)
    contacts[0]["Email_ID"] = "ops@abctransport.com"
    contacts[1]["Email_ID"] = "ops2@abctransport.com"
    contacts[2]["Email_ID"] = "Arun@SwiftCargo.in"

    batch_id = _upload(
        client,
        make_workbook(TRANSPORTER_SCHEMA, {GENERAL_SHEET: general, CONTACT_SHEET: contacts}),
    )

    batch = client.get(f"/bulk-upload/batches/{batch_id}").json()
    assert batch["status"] == "validation_errors"
    assert batch["created_count"] == 0
    assert _findings(client, batch_id) == {
        ("TR001", GENERAL_SHEET, 2, "Business_Name", "DUPLICATE_IN_STORE"),
        ("TR002", CONTACT_SHEET, 4, "Email_ID", "DUPLICATE_IN_STORE"),
    }


def test_duplicate_contact_email_within_file(client, make_workbook, samples):
    contacts = samples(TRANSPORTER_SCHEMA, CONTACT_SHEET)
    contacts[2]["Email_ID"] = "RAJESH@abctransport.com"

    batch_id = _upload(client, make_workbook(TRANSPORTER_SCHEMA, {CONTACT_SHEET: contacts}))

    batch = client.get(f"/bulk-upload/batches/{batch_id}").json()
    assert batch["created_count"] == 1
    assert _findings(client, batch_id) == {("TR002", CONTACT_SHEET, 4, "Email_ID", "DUPLICATE_IN_BATCH")}


def test_address_and_contact_linkage_rules(client, make_workbook, samples):
    addresses = samples(TRANSPORTER_SCHEMA, ADDRESS_SHEET)
    addresses[1]["Is_Primary"] = "Y"  # TR001 now has two primaries
    addresses = addresses[:2]  # TR002 has no address
    contacts = samples(TRANSPORTER_SCHEMA, CONTACT_SHEET)
    contacts[1]["Address_Type"] = "Warehouse"

    batch_id = _upload(
        client,
        make_workbook(TRANSPORTER_SCHEMA, {ADDRESS_SHEET: addresses, CONTACT_SHEET: contacts}),
    )

    batch = client.get(f"/bulk-upload/batches/{batch_id}").json()
    assert batch["created_count"] == 0
    assert batch["invalid_count"] == 2
    assert _findings(client, batch_id) == {
        ("TR001", ADDRESS_SHEET, 3, "Is_Primary", "CONSISTENCY"),
        ("TR001", CONTACT_SHEET, 3, "Address_Type", "CONSISTENCY"),
        ("TR002", GENERAL_SHEET, 3, None, "CONSISTENCY"),
        # The contact's Head Office has no address to match either.
        ("TR002", CONTACT_SHEET, 4, "Address_Type", "CONSISTENCY"),
    }


def test_transport_mode_dates_and_service_areas(client, make_workbook, samples):
    general = samples(TRANSPORTER_SCHEMA, GENERAL_SHEET)
    for mode in ("Transport_Mode_Road", "Transport_Mode_Rail"):
        general[1][mode] = "N"
    general[0]["To_Date"] = general[0]["From_Date"]
    areas = samples(TRANSPORTER_SCHEMA, SERVICE_AREA_SHEET)
    areas.append({"Transporter_Ref_ID": "TR002", "Service_Country": "in", "Service_States": "AP"})

    batch_id = _upload(
        client,
        make_workbook(TRANSPORTER_SCHEMA, {GENERAL_SHEET: general, SERVICE_AREA_SHEET: areas}),
    )

    assert _findings(client, batch_id) == {
        ("TR001", GENERAL_SHEET, 2, "To_Date", "DATE_ORDER"),
        ("TR002", GENERAL_SHEET, 3, "Transport_Mode_Road", "CONSISTENCY"),
        ("TR002", SERVICE_AREA_SHEET, 4, "Service_Country", "CONSISTENCY"),
    }


def test_document_expiry_may_equal_issue_date(client, make_workbook, samples):
    documents = samples(TRANSPORTER_SCHEMA, DOCUMENTS_SHEET)
    documents[1]["Expiry_Date"] = documents[1]["Issue_Date"]
    documents[0]["Document_Type"] = "DN404"

    batch_id = _upload(client, make_workbook(TRANSPORTER_SCHEMA, {DOCUMENTS_SHEET: documents}))

    batch = client.get(f"/bulk-upload/batches/{batch_id}").json()
    assert batch["created_count"] == 1
    assert _findings(client, batch_id) == {("TR001", DOCUMENTS_SHEET, 2, "Document_Type", "MASTER_DATA")}
