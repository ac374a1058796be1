from __future__ import annotations

from datetime import date

from app.crud import bulk_upload as crud
from app.models.vehicle import VehicleBasicInformation
from app.services.bulk_upload_findings import Severity
from app.services.bulk_upload_master_data import MasterDataCache
from app.services.bulk_upload_parser import parse_workbook
from app.services.bulk_upload_resolver import resolve_references
from app.services.bulk_upload_validation_service import ValidationEngine
from app.services.bulk_upload_vehicle_schema import (
    BASIC_SHEET,
    CAPACITY_SHEET,
    DOCUMENTS_SHEET,
    OWNERSHIP_SHEET,
    SPEC_SHEET,
    VEHICLE_SCHEMA,
)


def _validate(db, content, workers=2):
    resolved = resolve_references(parse_workbook(content, VEHICLE_SCHEMA), VEHICLE_SCHEMA)
    lookups = []

    def _store_lookup(model, column, values):
        lookups.append((model.__tablename__, column))
        return crud.existing_values(db, model, column, values)

    engine = ValidationEngine(
        VEHICLE_SCHEMA,
        master_data=MasterDataCache(db),
        store_lookup=_store_lookup,
        workers=workers,
    )
    result = engine.validate(resolved)
    result.lookups = lookups
    return result


def _only_ref(rows, ref):
    return [row for row in rows if row["Vehicle_Ref_ID"] == ref]


def _verdict(result, ref):
    return next(v for v in result.verdicts if v.draft.reference_id == ref)


def test_bundled_samples_are_clean(seeded_session, make_workbook):
    result = _validate(seeded_session, make_workbook(VEHICLE_SCHEMA))

    assert result.all_findings() == []
    assert result.valid_count == 2
    assert result.invalid_count == 0


def test_dangling_child_reference_yields_one_structural_finding(seeded_session, make_workbook, samples):
    rows = {sheet.name: _only_ref(samples(VEHICLE_SCHEMA, sheet.name), "VR001") for sheet in VEHICLE_SCHEMA.sheets}
    rows[SPEC_SHEET] = samples(VEHICLE_SCHEMA, SPEC_SHEET)  # VR001 and VR002

    result = _validate(seeded_session, make_workbook(VEHICLE_SCHEMA, rows))

    findings = result.all_findings()
    assert len(findings) == 1
    finding = findings[0]
    assert finding.sheet == SPEC_SHEET
    assert finding.row_number == 3
    assert finding.rule == "DANGLING_REFERENCE"
    assert finding.severity == Severity.CRITICAL
    assert "VR002" in finding.message
    assert _verdict(result, "VR001").creatable
    assert result.valid_count == 1


def test_duplicate_vin_flags_second_occurrence_only(seeded_session, make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    basic[1]["VIN_Chassis_Number"] = "MAT123456789ABCDE"

    result = _validate(seeded_session, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic}))

    assert _verdict(result, "VR001").findings == []
    second = _verdict(result, "VR002")
    assert [(f.rule, f.field, f.row_number, f.severity) for f in second.findings] == [
        ("DUPLICATE_IN_BATCH", "VIN_Chassis_Number", 3, Severity.HIGH)
    ]
    assert "already exists in row 2" in second.findings[0].message
    assert not second.creatable


def test_numeric_text_passes_and_numeric_imei_is_advisory(seeded_session, make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    basic[0]["Taxes_And_Fees"] = "15,000"
    basic[0]["GPS_IMEI_Number"] = 123456789012345

    result = _validate(seeded_session, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic}))

    verdict = _verdict(result, "VR001")
    assert [(f.rule, f.severity) for f in verdict.findings] == [("NUMERIC_IDENTIFIER", Severity.LOW)]
    assert verdict.creatable


def test_field_level_rules(seeded_session, make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    basic[0]["Make_Brand"] = None
    basic[0]["Manufacturing_Month_Year"] = "15/06/2023"
    basic[0]["Road_Tax"] = -5
    basic[0]["GPS_Active_Flag"] = "maybe"
    basic[1]["Taxes_And_Fees"] = "a lot"
    basic[1]["VIN_Chassis_Number"] = "SHORT"

    result = _validate(seeded_session, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic}))

    first = {(f.field, f.rule) for f in _verdict(result, "VR001").findings}
    assert first == {
        ("Make_Brand", "REQUIRED"),
        ("Manufacturing_Month_Year", "FORMAT"),
        ("Road_Tax", "RANGE"),
        ("GPS_Active_Flag", "ENUM"),
    }
    second = {(f.field, f.rule) for f in _verdict(result, "VR002").findings}
    assert second == {("Taxes_And_Fees", "TYPE"), ("VIN_Chassis_Number", "FORMAT")}
    assert result.valid_count == 0


def test_master_data_codes_must_exist(seeded_session, make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    basic[1]["Vehicle_Type_ID"] = "VT999"

    result = _validate(seeded_session, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic}))

    findings = _verdict(result, "VR002").findings
    assert [(f.rule, f.field, f.received) for f in findings] == [("MASTER_DATA", "Vehicle_Type_ID", "VT999")]
    assert "vehicle type" in findings[0].message


def test_store_duplicates_use_one_lookup_per_unique_field(seeded_session, make_workbook):
    seeded_session.add(
        VehicleBasicInformation(
            make_brand="Tata",
            model="Existing",
            vin_chassis_number="MAT123456789ABCDE",
            vehicle_type_code="VT001",
            manufacturing_date=date(2020, 1, 1),
            gps_imei_number="555555555555555",
            usage_type_code="UT001",
        )
    )
    seeded_session.commit()

    result = _validate(seeded_session, make_workbook(VEHICLE_SCHEMA))

    findings = _verdict(result, "VR001").findings
    assert [(f.rule, f.field) for f in findings] == [("DUPLICATE_IN_STORE", "VIN_Chassis_Number")]
    assert _verdict(result, "VR002").creatable
    assert sorted(result.lookups) == [
        ("vehicle_basic_information", "gps_imei_number"),
        ("vehicle_basic_information", "registration_number"),
        ("vehicle_basic_information", "vin_chassis_number"),
    ]


def test_store_lookup_skips_drafts_already_blocked(seeded_session, make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    for row in basic:
        row["Make_Brand"] = None

    result = _validate(seeded_session, make_workbook(VEHICLE_SCHEMA, {BASIC_SHEET: basic}))

    assert result.lookups == []
    assert result.invalid_count == 2


def test_consistency_and_cardinality_rules(seeded_session, make_workbook, samples):
    capacity = samples(VEHICLE_SCHEMA, CAPACITY_SHEET)
    capacity[0]["Gross_Vehicle_Weight_KG"] = 5000  # below unladen 7500
    capacity[1]["Payload_Capacity_KG"] = 9000  # GVW - unladen = 7000
    specs = samples(VEHICLE_SCHEMA, SPEC_SHEET)
    specs.append(dict(specs[1]))
    ownership = samples(VEHICLE_SCHEMA, OWNERSHIP_SHEET)
    ownership[1]["Valid_To"] = "2020-01-01"
    ownership[0]["Registration_Number"] = "MH12ZZ9999"

    result = _validate(
        seeded_session,
        make_workbook(
            VEHICLE_SCHEMA,
            {CAPACITY_SHEET: capacity, SPEC_SHEET: specs, OWNERSHIP_SHEET: ownership},
        ),
    )

    first = {(f.sheet, f.rule, f.severity) for f in _verdict(result, "VR001").findings}
    assert first == {
        (CAPACITY_SHEET, "CONSISTENCY", Severity.HIGH),
        (OWNERSHIP_SHEET, "CONSISTENCY", Severity.MEDIUM),
    }
    second = {(f.sheet, f.rule, f.severity, f.row_number) for f in _verdict(result, "VR002").findings}
    assert second == {
        (CAPACITY_SHEET, "CONSISTENCY", Severity.MEDIUM, 3),
        (SPEC_SHEET, "EXTRA_CHILD_ROW", Severity.HIGH, 4),
        (OWNERSHIP_SHEET, "DATE_ORDER", Severity.HIGH, 3),
    }
    assert result.valid_count == 0


def test_duplicate_reference_is_critical(seeded_session, make_workbook, samples):
    basic = samples(VEHICLE_SCHEMA, BASIC_SHEET)
    basic[1]["Vehicle_Ref_ID"] = "VR001"
    rows = {
        BASIC_SHEET: basic,
        SPEC_SHEET: _only_ref(samples(VEHICLE_SCHEMA, SPEC_SHEET), "VR001"),
        CAPACITY_SHEET: _only_ref(samples(VEHICLE_SCHEMA, CAPACITY_SHEET), "VR001"),
        OWNERSHIP_SHEET: _only_ref(samples(VEHICLE_SCHEMA, OWNERSHIP_SHEET), "VR001"),
        DOCUMENTS_SHEET: _only_ref(samples(VEHICLE_SCHEMA, DOCUMENTS_SHEET), "VR001"),
    }

    result = _validate(seeded_session, make_workbook(VEHICLE_SCHEMA, rows), workers=1)

    assert result.verdicts[0].creatable
    duplicate = result.verdicts[1]
    assert [(f.rule, f.severity, f.row_number) for f in duplicate.findings] == [
        ("DUPLICATE_REFERENCE", Severity.CRITICAL, 3)
    ]
