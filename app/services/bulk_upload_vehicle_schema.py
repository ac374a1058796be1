from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.vehicle import (
    VehicleBasicInformation,
    VehicleCapacity,
    VehicleDocument,
    VehicleOwnershipDetail,
    VehicleSpecification,
)
from app.services.bulk_upload_cells import display, try_number
from app.services.bulk_upload_findings import RULE_CONSISTENCY, Finding, Severity
from app.services.bulk_upload_schema import (
    CARDINALITY_BASIC,
    CARDINALITY_MANY,
    CARDINALITY_ONE,
    CASE_UPPER,
    DATE,
    ENUM,
    FLAG,
    IDENTIFIER,
    INTEGER,
    NUMBER,
    DateOrder,
    EntitySchema,
    FieldSpec,
    SheetSpec,
    WriteContext,
    insert_sheet_row,
)

REF = "Vehicle_Ref_ID"
BASIC_SHEET = "Basic Information"
SPEC_SHEET = "Specifications"
CAPACITY_SHEET = "Capacity Details"
OWNERSHIP_SHEET = "Ownership Details"
DOCUMENTS_SHEET = "Documents"

TRANSMISSION_TYPES = ("MANUAL", "AUTOMATIC", "AMT", "CVT", "DCT")
SUSPENSION_TYPES = ("LEAF_SPRING", "AIR_SUSPENSION", "COIL_SPRING", "TORSION_BAR")
VEHICLE_CONDITIONS = ("EXCELLENT", "GOOD", "FAIR", "POOR")
VEHICLE_STATUSES = ("ACTIVE", "INACTIVE", "MAINTENANCE")
VEHICLE_CATEGORIES = ("HCV", "MCV", "LCV", "SCV")

# Relative slack allowed between payload and GVW minus unladen weight.
PAYLOAD_TOLERANCE = 0.05

_REF_FIELD = FieldSpec(REF, required=True, description="Links rows across all sheets (VR001, VR002, ...)")


BASIC_INFORMATION = SheetSpec(
    name=BASIC_SHEET,
    cardinality=CARDINALITY_BASIC,
    header_color="4472C4",
    model=VehicleBasicInformation,
    fields=(
        _REF_FIELD,
        FieldSpec("Make_Brand", required=True, column="make_brand", min_length=2, max_length=100,
                  description="Manufacturer or brand"),
        FieldSpec("Model", required=True, column="model", min_length=2, max_length=100),
        FieldSpec("VIN_Chassis_Number", required=True, column="vin_chassis_number",
                  pattern=r"[A-Za-z0-9]{17}", pattern_hint="17 letters/digits", unique=True, case=CASE_UPPER,
                  description="Vehicle identification number, unique per vehicle"),
        FieldSpec("Vehicle_Type_ID", required=True, column="vehicle_type_code", master="vehicle_type"),
        FieldSpec("Vehicle_Category", kind=ENUM, column="vehicle_category", choices=VEHICLE_CATEGORIES),
        FieldSpec("Manufacturing_Month_Year", kind=DATE, required=True, column="manufacturing_date"),
        FieldSpec("GPS_IMEI_Number", kind=IDENTIFIER, required=True, column="gps_imei_number",
                  pattern=r"\d{15}", pattern_hint="15 digits", unique=True,
                  description="GPS device IMEI, unique per vehicle; format the column as text"),
        FieldSpec("GPS_Active_Flag", kind=FLAG, column="gps_active"),
        FieldSpec("Leasing_Flag", kind=FLAG, column="leasing"),
        FieldSpec("Usage_Type_ID", required=True, column="usage_type_code", master="usage_type"),
        FieldSpec("Registration_Number", column="registration_number", min_length=4, max_length=20,
                  unique=True, case=CASE_UPPER, description="Registration plate, unique when given"),
        FieldSpec("Vehicle_Color", column="vehicle_color", max_length=40),
        FieldSpec("Body_Type_Description", column="body_type_description", max_length=255),
        FieldSpec("Safety_Inspection_Date", kind=DATE, column="safety_inspection_date"),
        FieldSpec("Taxes_And_Fees", kind=NUMBER, column="taxes_and_fees", min_value=0),
        FieldSpec("Road_Tax", kind=NUMBER, column="road_tax", min_value=0),
        FieldSpec("Avg_Running_Speed", kind=NUMBER, column="avg_running_speed", min_value=0, max_value=200),
        FieldSpec("Max_Running_Speed", kind=NUMBER, column="max_running_speed", min_value=0, max_value=200),
        FieldSpec("Status", kind=ENUM, column="status", choices=VEHICLE_STATUSES),
    ),
    samples=(
        {
            REF: "VR001", "Make_Brand": "Tata", "Model": "LPT 1918",
            "VIN_Chassis_Number": "MAT123456789ABCDE", "Vehicle_Type_ID": "VT001",
            "Vehicle_Category": "HCV", "Manufacturing_Month_Year": "2023-06-15",
            "GPS_IMEI_Number": "123456789012345", "GPS_Active_Flag": "Y", "Leasing_Flag": "N",
            "Usage_Type_ID": "UT001", "Registration_Number": "MH12AB1234", "Vehicle_Color": "White",
            "Body_Type_Description": "Closed body container", "Safety_Inspection_Date": "2024-06-15",
            "Taxes_And_Fees": 15000, "Road_Tax": 12000, "Avg_Running_Speed": 50,
            "Max_Running_Speed": 80, "Status": "ACTIVE",
        },
        {
            REF: "VR002", "Make_Brand": "Ashok Leyland", "Model": "Partner",
            "VIN_Chassis_Number": "AL9876543210WXYZA", "Vehicle_Type_ID": "VT002",
            "Vehicle_Category": "LCV", "Manufacturing_Month_Year": "2022-03-10",
            "GPS_IMEI_Number": "987654321098765", "GPS_Active_Flag": "Y", "Leasing_Flag": "Y",
            "Usage_Type_ID": "UT001", "Registration_Number": "DL01CD5678", "Vehicle_Color": "Blue",
            "Body_Type_Description": "Open body", "Safety_Inspection_Date": "2024-03-10",
            "Taxes_And_Fees": 9000, "Road_Tax": 7000, "Avg_Running_Speed": 45,
            "Max_Running_Speed": 70, "Status": "ACTIVE",
        },
    ),
)

SPECIFICATIONS = SheetSpec(
    name=SPEC_SHEET,
    cardinality=CARDINALITY_ONE,
    header_color="70AD47",
    model=VehicleSpecification,
    fields=(
        _REF_FIELD,
        FieldSpec("Engine_Type_ID", required=True, column="engine_type_code", master="engine_type"),
        FieldSpec("Engine_Number", required=True, column="engine_number", min_length=5, max_length=50),
        FieldSpec("Fuel_Type_ID", required=True, column="fuel_type_code", master="fuel_type"),
        FieldSpec("Transmission_Type", kind=ENUM, column="transmission_type", choices=TRANSMISSION_TYPES),
        FieldSpec("Emission_Standard", column="emission_standard", max_length=20),
        FieldSpec("Financer", column="financer", min_length=2, max_length=100),
        FieldSpec("Suspension_Type", kind=ENUM, column="suspension_type", choices=SUSPENSION_TYPES),
        FieldSpec("Weight_Dimensions", column="weight_dimensions", max_length=255),
    ),
    samples=(
        {
            REF: "VR001", "Engine_Type_ID": "ET001", "Engine_Number": "ENG123456",
            "Fuel_Type_ID": "FT001", "Transmission_Type": "MANUAL", "Emission_Standard": "BS6",
            "Financer": "HDFC Bank", "Suspension_Type": "LEAF_SPRING",
            "Weight_Dimensions": "8.5m x 2.5m x 3.2m",
        },
        {
            REF: "VR002", "Engine_Type_ID": "ET002", "Engine_Number": "ENG654321",
            "Fuel_Type_ID": "FT001", "Transmission_Type": "MANUAL", "Emission_Standard": "BS4",
            "Financer": "SBI", "Suspension_Type": "LEAF_SPRING",
            "Weight_Dimensions": "6.2m x 2.2m x 2.8m",
        },
    ),
)

CAPACITY_DETAILS = SheetSpec(
    name=CAPACITY_SHEET,
    cardinality=CARDINALITY_ONE,
    header_color="FFC000",
    model=VehicleCapacity,
    fields=(
        _REF_FIELD,
        FieldSpec("Unloading_Weight_KG", kind=NUMBER, column="unloading_weight_kg", min_value=0,
                  description="Unladen (kerb) weight"),
        FieldSpec("Gross_Vehicle_Weight_KG", kind=NUMBER, column="gross_vehicle_weight_kg", min_value=0,
                  description="Must not be below Unloading_Weight_KG"),
        FieldSpec("Payload_Capacity_KG", kind=NUMBER, column="payload_capacity_kg", min_value=0,
                  description="Expected to equal GVW minus unladen weight"),
        FieldSpec("Volume_Capacity_CBM", kind=NUMBER, column="volume_capacity_cbm", min_value=0),
        FieldSpec("Cargo_Width_M", kind=NUMBER, column="cargo_width_m", min_value=0),
        FieldSpec("Cargo_Height_M", kind=NUMBER, column="cargo_height_m", min_value=0),
        FieldSpec("Cargo_Length_M", kind=NUMBER, column="cargo_length_m", min_value=0),
        FieldSpec("Towing_Capacity_KG", kind=NUMBER, column="towing_capacity_kg", min_value=0),
        FieldSpec("Tire_Load_Rating", column="tire_load_rating", max_length=20),
        FieldSpec("Vehicle_Condition", kind=ENUM, column="vehicle_condition", choices=VEHICLE_CONDITIONS),
        FieldSpec("Fuel_Tank_Capacity_L", kind=NUMBER, column="fuel_tank_capacity_l", min_value=0),
        FieldSpec("Seating_Capacity", kind=INTEGER, column="seating_capacity", min_value=0),
        FieldSpec("Load_Capacity_TON", kind=NUMBER, column="load_capacity_ton", min_value=0),
    ),
    samples=(
        {
            REF: "VR001", "Unloading_Weight_KG": 7500, "Gross_Vehicle_Weight_KG": 18000,
            "Payload_Capacity_KG": 10500, "Volume_Capacity_CBM": 45, "Cargo_Width_M": 2.5,
            "Cargo_Height_M": 3.2, "Cargo_Length_M": 8.5, "Towing_Capacity_KG": 0,
            "Tire_Load_Rating": "16PR", "Vehicle_Condition": "GOOD", "Fuel_Tank_Capacity_L": 350,
            "Seating_Capacity": 2, "Load_Capacity_TON": 10.5,
        },
        {
            REF: "VR002", "Unloading_Weight_KG": 5000, "Gross_Vehicle_Weight_KG": 12000,
            "Payload_Capacity_KG": 7000, "Volume_Capacity_CBM": 30, "Cargo_Width_M": 2.2,
            "Cargo_Height_M": 2.8, "Cargo_Length_M": 6.2, "Towing_Capacity_KG": 0,
            "Tire_Load_Rating": "14PR", "Vehicle_Condition": "EXCELLENT", "Fuel_Tank_Capacity_L": 200,
            "Seating_Capacity": 2, "Load_Capacity_TON": 7,
        },
    ),
)

OWNERSHIP_DETAILS = SheetSpec(
    name=OWNERSHIP_SHEET,
    cardinality=CARDINALITY_ONE,
    header_color="5B9BD5",
    model=VehicleOwnershipDetail,
    date_orders=(
        DateOrder("Valid_From", "Valid_To"),
        DateOrder("Registration_Date", "Registration_Upto"),
    ),
    fields=(
        _REF_FIELD,
        FieldSpec("Ownership_Name", required=True, column="ownership_name", min_length=2, max_length=150),
        FieldSpec("Valid_From", kind=DATE, column="valid_from"),
        FieldSpec("Valid_To", kind=DATE, column="valid_to", description="Not before Valid_From"),
        FieldSpec("Registration_Number", column="registration_number", max_length=20, case=CASE_UPPER,
                  description="Should match Basic Information registration"),
        FieldSpec("Registration_Date", kind=DATE, column="registration_date"),
        FieldSpec("Registration_Upto", kind=DATE, column="registration_upto",
                  description="Not before Registration_Date"),
        FieldSpec("Purchase_Date", kind=DATE, column="purchase_date"),
        FieldSpec("Owner_Sr_Number", kind=INTEGER, column="owner_sr_number", min_value=1),
        FieldSpec("State_Code", column="state_code", max_length=10),
        FieldSpec("RTO_Code", column="rto_code", max_length=20),
        FieldSpec("Sale_Amount", kind=NUMBER, column="sale_amount", min_value=0),
    ),
    samples=(
        {
            REF: "VR001", "Ownership_Name": "ABC Logistics Pvt Ltd", "Valid_From": "2023-07-01",
            "Valid_To": "2028-06-30", "Registration_Number": "MH12AB1234",
            "Registration_Date": "2023-07-01", "Registration_Upto": "2038-06-30",
            "Purchase_Date": "2023-06-20", "Owner_Sr_Number": 1, "State_Code": "MH",
            "RTO_Code": "MH12", "Sale_Amount": 3500000,
        },
        {
            REF: "VR002", "Ownership_Name": "XYZ Transport Co", "Valid_From": "2022-04-01",
            "Valid_To": "2027-03-31", "Registration_Number": "DL01CD5678",
            "Registration_Date": "2022-04-01", "Registration_Upto": "2037-03-31",
            "Purchase_Date": "2022-03-20", "Owner_Sr_Number": 1, "State_Code": "DL",
            "RTO_Code": "DL01", "Sale_Amount": 2200000,
        },
    ),
)

DOCUMENTS = SheetSpec(
    name=DOCUMENTS_SHEET,
    cardinality=CARDINALITY_MANY,
    required=False,
    header_color="843C0C",
    model=VehicleDocument,
    date_orders=(DateOrder("Valid_From", "Valid_To"),),
    fields=(
        _REF_FIELD,
        FieldSpec("Document_Type_ID", required=True, column="document_type_code", master="document_type"),
        FieldSpec("Document_Type_Name", required=True, column="document_type_name", max_length=100),
        FieldSpec("Reference_Number", required=True, column="reference_number", max_length=100),
        FieldSpec("Document_Provider", column="document_provider", max_length=150),
        FieldSpec("Coverage_Type_ID", column="coverage_type_code", master="coverage_type"),
        FieldSpec("Premium_Amount", kind=NUMBER, column="premium_amount", min_value=0),
        FieldSpec("Valid_From", kind=DATE, column="valid_from"),
        FieldSpec("Valid_To", kind=DATE, column="valid_to"),
        FieldSpec("Remarks", column="remarks", max_length=500),
    ),
    samples=(
        {
            REF: "VR001", "Document_Type_ID": "DN001", "Document_Type_Name": "Registration Certificate",
            "Reference_Number": "RC-MH12AB1234", "Document_Provider": "RTO Pune",
            "Valid_From": "2023-07-01", "Valid_To": "2038-06-30", "Remarks": "Original RC",
        },
        {
            REF: "VR001", "Document_Type_ID": "DN009", "Document_Type_Name": "Insurance Policy",
            "Reference_Number": "INS-2024-00123", "Document_Provider": "ICICI Lombard",
            "Coverage_Type_ID": "CT001", "Premium_Amount": 25000, "Valid_From": "2024-06-01",
            "Valid_To": "2025-05-31", "Remarks": "Comprehensive cover",
        },
        {
            REF: "VR002", "Document_Type_ID": "DN001", "Document_Type_Name": "Registration Certificate",
            "Reference_Number": "RC-DL01CD5678", "Document_Provider": "RTO Delhi",
            "Valid_From": "2022-04-01", "Valid_To": "2037-03-31",
        },
    ),
)


def _capacity_finding(row, field: str, message: str, severity: Severity, ref, **extra) -> Finding:
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


def check_weights(draft) -> list[Finding]:
    out: list[Finding] = []
    for row in draft.child_rows(CAPACITY_SHEET)[:1]:
        unladen = try_number(row.cell("Unloading_Weight_KG"))
        gross = try_number(row.cell("Gross_Vehicle_Weight_KG"))
        payload = try_number(row.cell("Payload_Capacity_KG"))
        if unladen is None or gross is None:
            continue
        if gross < unladen:
            out.append(
                _capacity_finding(
                    row,
                    "Gross_Vehicle_Weight_KG",
                    "Gross_Vehicle_Weight_KG cannot be less than Unloading_Weight_KG",
                    Severity.HIGH,
                    draft.reference_id,
                    expected=f">= {unladen:g}",
                    received=f"{gross:g}",
                )
            )
            continue
        if payload is None:
            continue
        implied = gross - unladen
        if abs(payload - implied) > max(1.0, implied * PAYLOAD_TOLERANCE):
            out.append(
                _capacity_finding(
                    row,
                    "Payload_Capacity_KG",
                    f"Payload_Capacity_KG differs from gross minus unladen weight ({implied:g})",
                    Severity.MEDIUM,
                    draft.reference_id,
                    expected=f"{implied:g}",
                    received=f"{payload:g}",
                )
            )
    return out


def check_speeds(draft) -> list[Finding]:
    row = draft.basic
    avg = try_number(row.cell("Avg_Running_Speed"))
    top = try_number(row.cell("Max_Running_Speed"))
    if avg is None or top is None or avg <= top:
        return []
    return [
        _capacity_finding(
            row,
            "Avg_Running_Speed",
            "Avg_Running_Speed is higher than Max_Running_Speed",
            Severity.MEDIUM,
            draft.reference_id,
            expected=f"<= {top:g}",
            received=f"{avg:g}",
        )
    ]


def check_registration_matches(draft) -> list[Finding]:
    declared = display(draft.basic.cell("Registration_Number"))
    if not declared:
        return []
    out: list[Finding] = []
    for row in draft.child_rows(OWNERSHIP_SHEET):
        owned = display(row.cell("Registration_Number"))
        if owned and owned.strip().upper() != declared.strip().upper():
            out.append(
                _capacity_finding(
                    row,
                    "Registration_Number",
                    f"Registration_Number does not match {BASIC_SHEET} ({declared})",
                    Severity.MEDIUM,
                    draft.reference_id,
                    expected=declared,
                    received=owned,
                )
            )
    return out


def write_vehicle(db: Session, draft, ctx: WriteContext) -> str:
    vehicle = insert_sheet_row(
        db,
        BASIC_INFORMATION,
        draft.basic.values,
        created_by=ctx.created_by,
        source_batch_id=ctx.batch_id,
    )
    vehicle.vehicle_code = f"VEH{vehicle.id:04d}"
    for sheet in (SPECIFICATIONS, CAPACITY_DETAILS, OWNERSHIP_DETAILS, DOCUMENTS):
        for row in draft.child_rows(sheet.name):
            insert_sheet_row(db, sheet, row.values, vehicle_id=vehicle.id)
    db.flush()
    return vehicle.vehicle_code


VEHICLE_SCHEMA = EntitySchema(
    key="vehicle",
    display_name="Vehicle",
    reference_column=REF,
    sheets=(BASIC_INFORMATION, SPECIFICATIONS, CAPACITY_DETAILS, OWNERSHIP_DETAILS, DOCUMENTS),
    writer=write_vehicle,
    consistency_checks=(check_weights, check_speeds, check_registration_matches),
    critical_rules=(
        "VIN_Chassis_Number, GPS_IMEI_Number and Registration_Number must be unique in the file and in the system.",
        "Every row on Specifications, Capacity Details, Ownership Details and Documents must use a Vehicle_Ref_ID from Basic Information.",
        "At most one Specifications, Capacity Details and Ownership Details row per vehicle.",
        "Gross_Vehicle_Weight_KG must not be below Unloading_Weight_KG.",
        "Type IDs must exist in master data (vehicle, usage, engine, fuel, document, coverage type).",
    ),
    upload_steps=(
        "Fill Basic Information first; give each vehicle a Vehicle_Ref_ID (VR001, VR002, ...).",
        "Use the same Vehicle_Ref_ID on the other sheets to attach details to that vehicle.",
        "Dates use YYYY-MM-DD. Flags use Y or N.",
        "Mandatory columns are highlighted in the header row.",
        "Upload the file; valid vehicles are created even if other rows have errors.",
        "Download the error report, fix the flagged rows and upload only those rows again.",
    ),
)
