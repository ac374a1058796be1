from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.warehouse import (
    WarehouseBasicInformation,
    WarehouseSubLocation,
    WarehouseSubLocationCoordinate,
)
from app.services.bulk_upload_cells import display, flag_of, try_number
from app.services.bulk_upload_findings import RULE_CONSISTENCY, Finding, Severity
from app.services.bulk_upload_schema import (
    CARDINALITY_BASIC,
    CARDINALITY_MANY,
    CASE_UPPER,
    FLAG,
    IDENTIFIER,
    INTEGER,
    NUMBER,
    EntitySchema,
    FieldSpec,
    SheetSpec,
    WriteContext,
    insert_sheet_row,
)

REF = "Warehouse_Ref_ID"
BASIC_SHEET = "Warehouse Basic Information"
HEADER_SHEET = "Sub Location Header"
ITEM_SHEET = "Sub Location Item"

_REF_FIELD = FieldSpec(REF, required=True, description="Links rows across all sheets (WR001, WR002, ...)")


BASIC_INFORMATION = SheetSpec(
    name=BASIC_SHEET,
    cardinality=CARDINALITY_BASIC,
    header_color="4472C4",
    model=WarehouseBasicInformation,
    fields=(
        _REF_FIELD,
        FieldSpec("Warehouse_Name1", required=True, column="warehouse_name1", min_length=2, max_length=30,
                  unique=True, description="Warehouse name, unique across all warehouses"),
        FieldSpec("Warehouse_Name2", column="warehouse_name2", max_length=30),
        FieldSpec("Warehouse_Type_ID", required=True, column="warehouse_type_code", master="warehouse_type"),
        FieldSpec("Language", column="language", max_length=5),
        FieldSpec("Vehicle_Capacity", kind=INTEGER, column="vehicle_capacity", min_value=0,
                  description="Vehicles the yard can hold at once"),
        FieldSpec("Virtual_Yard_In", kind=FLAG, column="virtual_yard_in"),
        FieldSpec("Radius_Virtual_Yard_In", kind=NUMBER, column="radius_virtual_yard_in", min_value=0,
                  description="Required (> 0) when Virtual_Yard_In is Y"),
        FieldSpec("Speed_Limit", kind=INTEGER, column="speed_limit", min_value=1, max_value=200),
        FieldSpec("Weigh_Bridge_Availability", kind=FLAG, column="weigh_bridge_available"),
        FieldSpec("Gatepass_System_Available", kind=FLAG, column="gatepass_system_available"),
        FieldSpec("Fuel_Availability", kind=FLAG, column="fuel_available"),
        FieldSpec("Country", required=True, column="country", pattern=r"[A-Za-z]{2}",
                  pattern_hint="2-letter country code"),
        FieldSpec("State", required=True, column="state", max_length=10),
        FieldSpec("City", required=True, column="city", max_length=100),
        FieldSpec("District", column="district", max_length=100),
        FieldSpec("Street_1", required=True, column="street_1", max_length=255),
        FieldSpec("Street_2", column="street_2", max_length=255),
        FieldSpec("Postal_Code", kind=IDENTIFIER, column="postal_code", pattern=r"\d{6}",
                  pattern_hint="6 digits"),
        FieldSpec("VAT_Number", required=True, column="vat_number", max_length=30, unique=True, case=CASE_UPPER),
        FieldSpec("TIN_PAN", column="tin_pan", pattern=r"[A-Za-z]{5}[0-9]{4}[A-Za-z]",
                  pattern_hint="ABCDE1234F", unique=True, case=CASE_UPPER),
        FieldSpec("TAN", column="tan", pattern=r"[A-Za-z]{4}[0-9]{5}[A-Za-z]",
                  pattern_hint="ABCD12345E", unique=True, case=CASE_UPPER),
        FieldSpec("Material_Type_ID", column="material_type_code", master="material_type"),
    ),
    samples=(
        {
            REF: "WR001", "Warehouse_Name1": "Central Warehouse", "Warehouse_Name2": "Main DC",
            "Warehouse_Type_ID": "WT001", "Language": "EN", "Vehicle_Capacity": 50,
            "Virtual_Yard_In": "Y", "Radius_Virtual_Yard_In": 5, "Speed_Limit": 20,
            "Weigh_Bridge_Availability": "Y", "Gatepass_System_Available": "Y",
            "Fuel_Availability": "N", "Country": "IN", "State": "MH", "City": "Mumbai",
            "District": "Mumbai Suburban", "Street_1": "123 Industrial Area",
            "Street_2": "Near Highway Exit 5", "Postal_Code": "400001", "VAT_Number": "VAT12345678",
            "TIN_PAN": "ABCDE1234F", "TAN": "ABCD12345E", "Material_Type_ID": "MT001",
        },
        {
            REF: "WR002", "Warehouse_Name1": "North Hub", "Warehouse_Type_ID": "WT002",
            "Language": "EN", "Vehicle_Capacity": 20, "Virtual_Yard_In": "N", "Speed_Limit": 15,
            "Weigh_Bridge_Availability": "N", "Gatepass_System_Available": "Y",
            "Fuel_Availability": "Y", "Country": "IN", "State": "DL", "City": "New Delhi",
            "Street_1": "Plot 7, Okhla Phase II", "Postal_Code": "110020",
            "VAT_Number": "VAT87654321", "TIN_PAN": "PQRST6789K", "TAN": "DELP54321B",
            "Material_Type_ID": "MT002",
        },
    ),
)

SUB_LOCATION_HEADER = SheetSpec(
    name=HEADER_SHEET,
    cardinality=CARDINALITY_MANY,
    header_color="70AD47",
    model=WarehouseSubLocation,
    fields=(
        _REF_FIELD,
        FieldSpec("Sub_Location_Name", required=True, column="sub_location_name", max_length=100,
                  description="Unique within its warehouse"),
        FieldSpec("Sub_Location_Type", required=True, column="sub_location_type", max_length=50),
        FieldSpec("Description", column="description", max_length=500),
    ),
    samples=(
        {REF: "WR001", "Sub_Location_Name": "Zone A", "Sub_Location_Type": "Loading Zone",
         "Description": "Primary loading area for heavy vehicles"},
        {REF: "WR002", "Sub_Location_Name": "Dock 1", "Sub_Location_Type": "Parking"},
    ),
)

SUB_LOCATION_ITEM = SheetSpec(
    name=ITEM_SHEET,
    cardinality=CARDINALITY_MANY,
    required=False,
    header_color="FFC000",
    model=WarehouseSubLocationCoordinate,
    fields=(
        _REF_FIELD,
        FieldSpec("Sub_Location_Name", required=True, max_length=100,
                  description="Must match a Sub Location Header row of the same warehouse"),
        FieldSpec("Latitude", kind=NUMBER, required=True, column="latitude", min_value=-90, max_value=90),
        FieldSpec("Longitude", kind=NUMBER, required=True, column="longitude", min_value=-180, max_value=180),
        FieldSpec("Sequence", kind=INTEGER, required=True, column="sequence", min_value=1),
    ),
    samples=(
        {REF: "WR001", "Sub_Location_Name": "Zone A", "Latitude": 19.076, "Longitude": 72.8777, "Sequence": 1},
        {REF: "WR001", "Sub_Location_Name": "Zone A", "Latitude": 19.0765, "Longitude": 72.878, "Sequence": 2},
        {REF: "WR001", "Sub_Location_Name": "Zone A", "Latitude": 19.077, "Longitude": 72.8785, "Sequence": 3},
        {REF: "WR002", "Sub_Location_Name": "Dock 1", "Latitude": 28.5355, "Longitude": 77.291, "Sequence": 1},
    ),
)


def _consistency(row, field: str, message: str, severity: Severity, ref, **extra) -> Finding:
    return Finding(
        sheet=row.sheet,
        row_number=row.row_number,
        field=field,
        message=message,
        severity=severity,
        rule=RULE_CONSISTENCY,
        reference_id=ref,
        **extra,
    )


def _name_key(row) -> str | None:
    name = display(row.cell("Sub_Location_Name"))
    return name.strip().upper() if name and name.strip() else None


def check_sub_locations(draft) -> list[Finding]:
    out: list[Finding] = []
    declared: dict[str, int] = {}
    for row in draft.child_rows(HEADER_SHEET):
        key = _name_key(row)
        if key is None:
            continue
        if key in declared:
            out.append(
                _consistency(
                    row,
                    "Sub_Location_Name",
                    f"Sub_Location_Name is already declared in row {declared[key]} for this warehouse",
                    Severity.HIGH,
                    draft.reference_id,
                    received=display(row.cell("Sub_Location_Name")),
                )
            )
            continue
        declared[key] = row.row_number

    sequences: dict[tuple[str, int], int] = {}
    for row in draft.child_rows(ITEM_SHEET):
        key = _name_key(row)
        if key is None:
            continue
        if key not in declared:
            out.append(
                _consistency(
                    row,
                    "Sub_Location_Name",
                    f"Sub_Location_Name has no matching {HEADER_SHEET} row for this warehouse",
                    Severity.HIGH,
                    draft.reference_id,
                    received=display(row.cell("Sub_Location_Name")),
                )
            )
            continue
        sequence = try_number(row.cell("Sequence"))
        if sequence is None:
            continue
        seq_key = (key, int(sequence))
        if seq_key in sequences:
            out.append(
                _consistency(
                    row,
                    "Sequence",
                    f"Sequence {int(sequence)} repeats row {sequences[seq_key]} of the same sub-location",
                    Severity.MEDIUM,
                    draft.reference_id,
                )
            )
        else:
            sequences[seq_key] = row.row_number
    return out


def check_virtual_yard(draft) -> list[Finding]:
    row = draft.basic
    try:
        enabled = flag_of(row.cell("Virtual_Yard_In"))
    except ValueError:
        return []
    if not enabled:
        return []
    radius = try_number(row.cell("Radius_Virtual_Yard_In"))
    if radius is not None and radius > 0:
        return []
    return [
        _consistency(
            row,
            "Radius_Virtual_Yard_In",
            "Radius_Virtual_Yard_In must be greater than 0 when Virtual_Yard_In is Y",
            Severity.HIGH,
            draft.reference_id,
            expected="> 0",
            received=display(row.cell("Radius_Virtual_Yard_In")),
        )
    ]


def write_warehouse(db: Session, draft, ctx: WriteContext) -> str:
    warehouse = insert_sheet_row(
        db,
        BASIC_INFORMATION,
        draft.basic.values,
        created_by=ctx.created_by,
        source_batch_id=ctx.batch_id,
    )
    warehouse.warehouse_code = f"WH{warehouse.id:04d}"

    sub_location_ids: dict[str, int] = {}
    for row in draft.child_rows(HEADER_SHEET):
        sub_location = insert_sheet_row(db, SUB_LOCATION_HEADER, row.values, warehouse_id=warehouse.id)
        sub_location_ids[_name_key(row)] = sub_location.id

    for row in draft.child_rows(ITEM_SHEET):
        parent_id = sub_location_ids.get(_name_key(row))
        if parent_id is None:
            raise ValueError(f"{ITEM_SHEET} row {row.row_number} has no sub-location to attach to")
        insert_sheet_row(db, SUB_LOCATION_ITEM, row.values, sub_location_id=parent_id)
    db.flush()
    return warehouse.warehouse_code


WAREHOUSE_SCHEMA = EntitySchema(
    key="warehouse",
    display_name="Warehouse",
    reference_column=REF,
    sheets=(BASIC_INFORMATION, SUB_LOCATION_HEADER, SUB_LOCATION_ITEM),
    writer=write_warehouse,
    consistency_checks=(check_sub_locations, check_virtual_yard),
    critical_rules=(
        "Warehouse_Name1, VAT_Number, TIN_PAN and TAN must be unique in the file and in the system.",
        "Sub Location rows must use a Warehouse_Ref_ID from Warehouse Basic Information.",
        "Every Sub Location Item must name a Sub Location Header of the same warehouse.",
        "Latitude is between -90 and 90, Longitude between -180 and 180.",
        "Warehouse_Type_ID and Material_Type_ID must exist in master data.",
    ),
    upload_steps=(
        "Fill Warehouse Basic Information first; give each warehouse a Warehouse_Ref_ID (WR001, ...).",
        "Declare sub-locations on Sub Location Header using the same Warehouse_Ref_ID.",
        "Add boundary coordinates on Sub Location Item, ordered by Sequence.",
        "Flags use Y or N. Postal_Code is 6 digits; format the column as text.",
        "Upload the file; valid warehouses are created even if other rows have errors.",
        "Download the error report, fix the flagged rows and upload only those rows again.",
    ),
)
