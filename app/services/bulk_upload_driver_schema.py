from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from app.models.driver import (
    DriverAddress,
    DriverBasicInformation,
    DriverDocument,
    DriverEmploymentHistory,
    DriverIncident,
)
from app.services.bulk_upload_cells import try_date
from app.services.bulk_upload_checks import consistency_finding, primary_address_findings, text_key
from app.services.bulk_upload_findings import Finding
from app.services.bulk_upload_schema import (
    CARDINALITY_BASIC,
    CARDINALITY_MANY,
    CASE_LOWER,
    CASE_UPPER,
    DATE,
    ENUM,
    FLAG,
    IDENTIFIER,
    DateOrder,
    EntitySchema,
    FieldSpec,
    SheetSpec,
    WriteContext,
    insert_sheet_row,
)

REF = "Driver_Ref_ID"
BASIC_SHEET = "Basic Information"
ADDRESS_SHEET = "Addresses"
DOCUMENTS_SHEET = "Documents"
HISTORY_SHEET = "Employment History"
INCIDENT_SHEET = "Accident & Violation"

MIN_AGE = 18
MAX_AGE = 65

_MOBILE = r"[6-9]\d{9}"
_MOBILE_HINT = "10 digits starting with 6-9"

_REF_FIELD = FieldSpec(REF, required=True, description="Links rows across all sheets (DR001, DR002, ...)")


BASIC_INFORMATION = SheetSpec(
    name=BASIC_SHEET,
    cardinality=CARDINALITY_BASIC,
    header_color="4472C4",
    model=DriverBasicInformation,
    fields=(
        _REF_FIELD,
        FieldSpec("Full_Name", required=True, column="full_name", min_length=2, max_length=200),
        FieldSpec("Date_Of_Birth", kind=DATE, required=True, column="date_of_birth",
                  description=f"Driver must be {MIN_AGE} to {MAX_AGE} years old"),
        FieldSpec("Gender", kind=ENUM, column="gender", choices=("MALE", "FEMALE", "OTHER")),
        FieldSpec("Blood_Group", kind=ENUM, column="blood_group",
                  choices=("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")),
        FieldSpec("Phone_Number", kind=IDENTIFIER, required=True, column="phone_number", pattern=_MOBILE,
                  pattern_hint=_MOBILE_HINT, unique=True, description="Unique across all drivers"),
        FieldSpec("Email_ID", column="email_id", max_length=150, pattern=r"[^@\s]+@[^@\s]+\.[^@\s]+",
                  pattern_hint="name@domain.com", unique=True, case=CASE_LOWER,
                  description="Unique across all drivers when given"),
        FieldSpec("Emergency_Contact", kind=IDENTIFIER, required=True, column="emergency_contact",
                  pattern=_MOBILE, pattern_hint=_MOBILE_HINT),
        FieldSpec("Alternate_Phone_Number", kind=IDENTIFIER, column="alternate_phone_number",
                  pattern=_MOBILE, pattern_hint=_MOBILE_HINT),
    ),
    samples=(
        {
            REF: "DR001", "Full_Name": "Rajesh Kumar", "Date_Of_Birth": "1990-05-15", "Gender": "Male",
            "Blood_Group": "B+", "Phone_Number": "9876543210", "Email_ID": "rajesh.kumar@example.com",
            "Emergency_Contact": "9876543211", "Alternate_Phone_Number": "9876543212",
        },
        {
            REF: "DR002", "Full_Name": "Suresh Patil", "Date_Of_Birth": "1985-11-20", "Gender": "Male",
            "Blood_Group": "O+", "Phone_Number": "9123456780", "Email_ID": "suresh.patil@example.com",
            "Emergency_Contact": "9123456781",
        },
    ),
)

ADDRESSES = SheetSpec(
    name=ADDRESS_SHEET,
    cardinality=CARDINALITY_MANY,
    header_color="70AD47",
    model=DriverAddress,
    fields=(
        _REF_FIELD,
        FieldSpec("Address_Type_ID", required=True, column="address_type_code", master="address_type"),
        FieldSpec("Street_1", column="street_1", max_length=255),
        FieldSpec("Street_2", column="street_2", max_length=255),
        FieldSpec("City", required=True, column="city", max_length=100),
        FieldSpec("District", column="district", max_length=100),
        FieldSpec("State", required=True, column="state", max_length=100),
        FieldSpec("Country", required=True, column="country", pattern=r"[A-Za-z]{2}",
                  pattern_hint="2-letter country code", case=CASE_UPPER),
        FieldSpec("Postal_Code", kind=IDENTIFIER, required=True, column="postal_code", pattern=r"\d{6}",
                  pattern_hint="6 digits"),
        FieldSpec("Is_Primary", kind=FLAG, column="is_primary", description="Exactly one address per driver is Y"),
    ),
    samples=(
        {REF: "DR001", "Address_Type_ID": "AT001", "Street_1": "123 Main Street", "Street_2": "Near Central Park",
         "City": "Mumbai", "District": "Mumbai Suburban", "State": "MH", "Country": "IN",
         "Postal_Code": "400001", "Is_Primary": "Y"},
        {REF: "DR002", "Address_Type_ID": "AT001", "Street_1": "18 FC Road", "City": "Pune", "State": "MH",
         "Country": "IN", "Postal_Code": "411004", "Is_Primary": "Y"},
        {REF: "DR002", "Address_Type_ID": "AT002", "Street_1": "Transport Nagar Hostel", "City": "Nagpur",
         "State": "MH", "Country": "IN", "Postal_Code": "440013", "Is_Primary": "N"},
    ),
)

DOCUMENTS = SheetSpec(
    name=DOCUMENTS_SHEET,
    cardinality=CARDINALITY_MANY,
    required=False,
    header_color="FFC000",
    model=DriverDocument,
    date_orders=(DateOrder("Valid_From", "Valid_To"),),
    fields=(
        _REF_FIELD,
        FieldSpec("Document_Type", required=True, column="document_type_code", master="document_type"),
        FieldSpec("Document_Number", required=True, column="document_number", max_length=50, case=CASE_UPPER),
        FieldSpec("Issuing_Country", column="issuing_country", pattern=r"[A-Za-z]{2}",
                  pattern_hint="2-letter country code", case=CASE_UPPER),
        FieldSpec("Issuing_State", column="issuing_state", max_length=20),
        FieldSpec("Valid_From", kind=DATE, column="valid_from"),
        FieldSpec("Valid_To", kind=DATE, column="valid_to"),
        FieldSpec("Remarks", column="remarks", max_length=500),
        FieldSpec("Active_Flag", kind=FLAG, column="active_flag"),
    ),
    samples=(
        {REF: "DR001", "Document_Type": "DN002", "Document_Number": "MH0120200012345", "Issuing_Country": "IN",
         "Issuing_State": "MH", "Valid_From": "2020-01-01", "Valid_To": "2040-01-01",
         "Remarks": "Heavy Vehicle License", "Active_Flag": "Y"},
        {REF: "DR002", "Document_Type": "DN002", "Document_Number": "MH1220150067890", "Issuing_Country": "IN",
         "Issuing_State": "MH", "Valid_From": "2015-03-01", "Valid_To": "2035-03-01", "Active_Flag": "Y"},
    ),
)

EMPLOYMENT_HISTORY = SheetSpec(
    name=HISTORY_SHEET,
    cardinality=CARDINALITY_MANY,
    required=False,
    header_color="5B9BD5",
    model=DriverEmploymentHistory,
    date_orders=(DateOrder("From_Date", "To_Date"),),
    fields=(
        _REF_FIELD,
        FieldSpec("Employer", required=True, column="employer", max_length=150),
        FieldSpec("Employment_Status", column="employment_status", max_length=30),
        FieldSpec("From_Date", kind=DATE, required=True, column="from_date"),
        FieldSpec("To_Date", kind=DATE, column="to_date", description="Blank for the current employer"),
        FieldSpec("Job_Title", column="job_title", max_length=100),
    ),
    samples=(
        {REF: "DR001", "Employer": "ABC Transport Ltd", "Employment_Status": "Full-time",
         "From_Date": "2015-01-01", "To_Date": "2020-12-31", "Job_Title": "Heavy Vehicle Driver"},
    ),
)

ACCIDENTS_AND_VIOLATIONS = SheetSpec(
    name=INCIDENT_SHEET,
    cardinality=CARDINALITY_MANY,
    required=False,
    header_color="FF0000",
    model=DriverIncident,
    fields=(
        _REF_FIELD,
        FieldSpec("Type", kind=ENUM, required=True, column="incident_type", choices=("ACCIDENT", "VIOLATION")),
        FieldSpec("Description", column="description", max_length=500),
        FieldSpec("Date", kind=DATE, required=True, column="incident_date"),
        FieldSpec("Vehicle_Registration_Number", column="vehicle_registration_number", max_length=20,
                  case=CASE_UPPER),
    ),
    samples=(
        {REF: "DR002", "Type": "Violation", "Description": "Overspeeding on NH48", "Date": "2023-08-14",
         "Vehicle_Registration_Number": "MH12AB1234"},
    ),
)


def age_on(born: date, today: date) -> int:
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def check_age(draft, today: date | None = None) -> list[Finding]:
    born = try_date(draft.basic.cell("Date_Of_Birth"))
    if born is None:
        return []
    today = today or date.today()
    if born >= today:
        message = "Date_Of_Birth must be in the past"
    elif not MIN_AGE <= age_on(born, today) <= MAX_AGE:
        message = f"Driver must be between {MIN_AGE} and {MAX_AGE} years old"
    else:
        return []
    return [
        consistency_finding(
            draft.basic,
            "Date_Of_Birth",
            message,
            draft.reference_id,
            expected=f"Age {MIN_AGE}-{MAX_AGE}",
            received=born.isoformat(),
        )
    ]


def check_addresses(draft) -> list[Finding]:
    return primary_address_findings(draft, ADDRESS_SHEET, "Driver")


def check_documents(draft) -> list[Finding]:
    out: list[Finding] = []
    seen: dict[tuple[str, str], int] = {}
    for row in draft.child_rows(DOCUMENTS_SHEET):
        doc_type = text_key(row, "Document_Type")
        number = text_key(row, "Document_Number")
        if doc_type is None or number is None:
            continue
        key = (doc_type, number)
        if key in seen:
            out.append(
                consistency_finding(
                    row,
                    "Document_Number",
                    f"Document {number} of type {doc_type} is already listed in row {seen[key]}",
                    draft.reference_id,
                    received=number,
                )
            )
            continue
        seen[key] = row.row_number
    return out


def write_driver(db: Session, draft, ctx: WriteContext) -> str:
    driver = insert_sheet_row(
        db,
        BASIC_INFORMATION,
        draft.basic.values,
        created_by=ctx.created_by,
        source_batch_id=ctx.batch_id,
    )
    driver.driver_code = f"DRV{driver.id:04d}"
    for sheet in (ADDRESSES, DOCUMENTS, EMPLOYMENT_HISTORY, ACCIDENTS_AND_VIOLATIONS):
        for row in draft.child_rows(sheet.name):
            insert_sheet_row(db, sheet, row.values, driver_id=driver.id)
    db.flush()
    return driver.driver_code


DRIVER_SCHEMA = EntitySchema(
    key="driver",
    display_name="Driver",
    reference_column=REF,
    sheets=(BASIC_INFORMATION, ADDRESSES, DOCUMENTS, EMPLOYMENT_HISTORY, ACCIDENTS_AND_VIOLATIONS),
    writer=write_driver,
    consistency_checks=(check_age, check_addresses, check_documents),
    critical_rules=(
        "Phone_Number and Email_ID must be unique in the file and in the system.",
        f"Drivers must be between {MIN_AGE} and {MAX_AGE} years old on the upload date.",
        "Each driver needs at least one address and exactly one primary address.",
        "A Document_Type and Document_Number pair may appear once per driver.",
        "Address_Type_ID and Document_Type must exist in master data.",
    ),
    upload_steps=(
        "Fill Basic Information first; give each driver a Driver_Ref_ID (DR001, DR002, ...).",
        "Add addresses with the same Driver_Ref_ID; mark one address Is_Primary = Y.",
        "Documents, Employment History and Accident & Violation are optional.",
        "Dates use YYYY-MM-DD. Phone numbers are 10 digits; format those columns as text.",
        "Upload the file; valid drivers are created even if other rows have errors.",
        "Download the error report, fix the flagged rows and upload only those rows again.",
    ),
)
