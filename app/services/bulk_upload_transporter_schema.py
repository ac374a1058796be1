from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.transporter import (
    TransporterAddress,
    TransporterContact,
    TransporterDocument,
    TransporterGeneralInfo,
    TransporterServiceArea,
    TransporterServiceAreaState,
)
from app.services.bulk_upload_cells import display
from app.services.bulk_upload_checks import (
    consistency_finding,
    is_flagged,
    primary_address_findings,
    text_key,
)
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

REF = "Transporter_Ref_ID"
GENERAL_SHEET = "General Details"
ADDRESS_SHEET = "Addresses"
CONTACT_SHEET = "Contacts"
SERVICE_AREA_SHEET = "Serviceable Areas"
DOCUMENTS_SHEET = "Documents"

TRANSPORT_MODES = (
    "Transport_Mode_Road",
    "Transport_Mode_Rail",
    "Transport_Mode_Air",
    "Transport_Mode_Sea",
)
SERVICE_FREQUENCIES = ("DAILY", "WEEKLY", "FORTNIGHTLY", "MONTHLY", "ON_DEMAND")

_EMAIL = r"[^@\s]+@[^@\s]+\.[^@\s]+"
_PHONE = r"\+\d{10,15}"
_COUNTRY = r"[A-Za-z]{2}"

_REF_FIELD = FieldSpec(REF, required=True, description="Links rows across all sheets (TR001, TR002, ...)")


GENERAL_DETAILS = SheetSpec(
    name=GENERAL_SHEET,
    cardinality=CARDINALITY_BASIC,
    header_color="4472C4",
    model=TransporterGeneralInfo,
    fields=(
        _REF_FIELD,
        FieldSpec("Business_Name", required=True, column="business_name", min_length=2, max_length=200,
                  unique=True, description="Registered business name, unique regardless of case"),
        FieldSpec("Transport_Mode_Road", kind=FLAG, column="trans_mode_road"),
        FieldSpec("Transport_Mode_Rail", kind=FLAG, column="trans_mode_rail"),
        FieldSpec("Transport_Mode_Air", kind=FLAG, column="trans_mode_air"),
        FieldSpec("Transport_Mode_Sea", kind=FLAG, column="trans_mode_sea"),
        FieldSpec("From_Date", kind=DATE, required=True, column="from_date",
                  description="Start of the business relationship"),
        FieldSpec("To_Date", kind=DATE, column="to_date", description="Must be after From_Date when given"),
        FieldSpec("Active_Flag", kind=FLAG, column="active_flag"),
    ),
    date_orders=(DateOrder("From_Date", "To_Date", strict=True),),
    samples=(
        {
            REF: "TR001", "Business_Name": "ABC Transport Pvt Ltd", "Transport_Mode_Road": "Y",
            "Transport_Mode_Rail": "N", "Transport_Mode_Air": "N", "Transport_Mode_Sea": "N",
            "From_Date": "2024-01-01", "To_Date": "2029-12-31", "Active_Flag": "Y",
        },
        {
            REF: "TR002", "Business_Name": "Swift Cargo Movers", "Transport_Mode_Road": "Y",
            "Transport_Mode_Rail": "Y", "Transport_Mode_Air": "N", "Transport_Mode_Sea": "N",
            "From_Date": "2023-04-01", "Active_Flag": "Y",
        },
    ),
)

ADDRESSES = SheetSpec(
    name=ADDRESS_SHEET,
    cardinality=CARDINALITY_MANY,
    header_color="70AD47",
    model=TransporterAddress,
    fields=(
        _REF_FIELD,
        FieldSpec("Address_Type", required=True, column="address_type", max_length=50,
                  description="Head Office, Branch, Billing, ..."),
        FieldSpec("Street_1", required=True, column="street_1", max_length=255),
        FieldSpec("Street_2", column="street_2", max_length=255),
        FieldSpec("City", required=True, column="city", max_length=100),
        FieldSpec("District", column="district", max_length=100),
        FieldSpec("State", required=True, column="state", max_length=100),
        FieldSpec("Country", required=True, column="country", pattern=_COUNTRY,
                  pattern_hint="2-letter country code", case=CASE_UPPER),
        FieldSpec("Postal_Code", kind=IDENTIFIER, required=True, column="postal_code",
                  pattern=r"[A-Za-z0-9 -]{3,10}", pattern_hint="3 to 10 letters or digits"),
        FieldSpec("VAT_GST_Number", column="vat_gst_number", max_length=30, case=CASE_UPPER),
        FieldSpec("TIN_PAN", column="tin_pan", pattern=r"[A-Za-z]{5}[0-9]{4}[A-Za-z]",
                  pattern_hint="ABCDE1234F", case=CASE_UPPER),
        FieldSpec("TAN", column="tan", pattern=r"[A-Za-z]{4}[0-9]{5}[A-Za-z]",
                  pattern_hint="ABCD12345E", case=CASE_UPPER),
        FieldSpec("Is_Primary", kind=FLAG, column="is_primary",
                  description="Exactly one address per transporter is Y"),
    ),
    samples=(
        {REF: "TR001", "Address_Type": "Head Office", "Street_1": "12 MG Road", "Street_2": "Andheri East",
         "City": "Mumbai", "District": "Mumbai Suburban", "State": "MH", "Country": "IN",
         "Postal_Code": "400069", "VAT_GST_Number": "27AABCA1234F1Z5", "TIN_PAN": "AABCA1234F",
         "TAN": "MUMA12345B", "Is_Primary": "Y"},
        {REF: "TR001", "Address_Type": "Branch", "Street_1": "Plot 44, Sector 18", "City": "Gurugram",
         "District": "Gurugram", "State": "HR", "Country": "IN", "Postal_Code": "122015",
         "Is_Primary": "N"},
        {REF: "TR002", "Address_Type": "Head Office", "Street_1": "5 Anna Salai", "City": "Chennai",
         "State": "TN", "Country": "IN", "Postal_Code": "600002", "VAT_GST_Number": "33AAFCS5678K1Z2",
         "TIN_PAN": "AAFCS5678K", "Is_Primary": "Y"},
    ),
)

CONTACTS = SheetSpec(
    name=CONTACT_SHEET,
    cardinality=CARDINALITY_MANY,
    header_color="FFC000",
    model=TransporterContact,
    fields=(
        _REF_FIELD,
        FieldSpec("Address_Type", required=True, max_length=50,
                  description="Must match an Address_Type of the same transporter"),
        FieldSpec("Contact_Person_Name", required=True, column="contact_person_name", min_length=2,
                  max_length=100),
        FieldSpec("Designation", column="designation", max_length=100),
        FieldSpec("Phone_Number", kind=IDENTIFIER, required=True, column="phone_number", pattern=_PHONE,
                  pattern_hint="+ and 10 to 15 digits"),
        FieldSpec("Alt_Phone_Number", kind=IDENTIFIER, column="alt_phone_number", pattern=_PHONE,
                  pattern_hint="+ and 10 to 15 digits"),
        FieldSpec("WhatsApp_Number", kind=IDENTIFIER, column="whatsapp_number", pattern=_PHONE,
                  pattern_hint="+ and 10 to 15 digits"),
        FieldSpec("Email_ID", required=True, column="email", max_length=150, pattern=_EMAIL,
                  pattern_hint="name@domain.com", unique=True, case=CASE_LOWER,
                  description="Unique across all transporter contacts"),
        FieldSpec("Alt_Email_ID", column="alt_email", max_length=150, pattern=_EMAIL,
                  pattern_hint="name@domain.com", case=CASE_LOWER),
    ),
    samples=(
        {REF: "TR001", "Address_Type": "Head Office", "Contact_Person_Name": "Rajesh Kumar",
         "Designation": "Operations Manager", "Phone_Number": "+919876543210",
         "WhatsApp_Number": "+919876543210", "Email_ID": "rajesh@abctransport.com"},
        {REF: "TR001", "Address_Type": "Branch", "Contact_Person_Name": "Priya Sharma",
         "Designation": "Branch Head", "Phone_Number": "+919812345678",
         "Email_ID": "priya@abctransport.com", "Alt_Email_ID": "gurugram@abctransport.com"},
        {REF: "TR002", "Address_Type": "Head Office", "Contact_Person_Name": "Arun Prakash",
         "Designation": "Director", "Phone_Number": "+919840012345", "Email_ID": "arun@swiftcargo.in"},
    ),
)

SERVICEABLE_AREAS = SheetSpec(
    name=SERVICE_AREA_SHEET,
    cardinality=CARDINALITY_MANY,
    required=False,
    header_color="5B9BD5",
    model=TransporterServiceArea,
    fields=(
        _REF_FIELD,
        FieldSpec("Service_Country", required=True, column="service_country", pattern=_COUNTRY,
                  pattern_hint="2-letter country code", case=CASE_UPPER,
                  description="One row per country"),
        FieldSpec("Service_States", required=True, max_length=500,
                  description="Comma separated state codes served in that country"),
        FieldSpec("Service_Frequency", kind=ENUM, column="service_frequency", choices=SERVICE_FREQUENCIES),
    ),
    samples=(
        {REF: "TR001", "Service_Country": "IN", "Service_States": "MH, GJ, KA", "Service_Frequency": "DAILY"},
        {REF: "TR002", "Service_Country": "IN", "Service_States": "TN, KA, KL", "Service_Frequency": "WEEKLY"},
    ),
)

DOCUMENTS = SheetSpec(
    name=DOCUMENTS_SHEET,
    cardinality=CARDINALITY_MANY,
    required=False,
    header_color="ED7D31",
    model=TransporterDocument,
    date_orders=(DateOrder("Issue_Date", "Expiry_Date"),),
    fields=(
        _REF_FIELD,
        FieldSpec("Document_Type", required=True, column="document_type_code", master="document_type"),
        FieldSpec("Document_Name", required=True, column="document_name", max_length=100),
        FieldSpec("Document_Number", required=True, column="document_number", max_length=100, case=CASE_UPPER),
        FieldSpec("Issue_Date", kind=DATE, required=True, column="issue_date"),
        FieldSpec("Expiry_Date", kind=DATE, column="expiry_date"),
        FieldSpec("Issuing_Country", column="issuing_country", pattern=_COUNTRY,
                  pattern_hint="2-letter country code", case=CASE_UPPER),
        FieldSpec("Is_Verified", kind=FLAG, column="is_verified"),
    ),
    samples=(
        {REF: "TR001", "Document_Type": "DN010", "Document_Name": "PAN Card", "Document_Number": "AABCA1234F",
         "Issue_Date": "2015-06-01", "Issuing_Country": "IN", "Is_Verified": "Y"},
        {REF: "TR002", "Document_Type": "DN011", "Document_Name": "GST Certificate",
         "Document_Number": "33AAFCS5678K1Z2", "Issue_Date": "2019-07-01", "Expiry_Date": "2029-06-30",
         "Issuing_Country": "IN", "Is_Verified": "N"},
    ),
)


def check_transport_modes(draft) -> list[Finding]:
    if any(is_flagged(draft.basic, mode) for mode in TRANSPORT_MODES):
        return []
    return [
        consistency_finding(
            draft.basic,
            TRANSPORT_MODES[0],
            "At least one transport mode must be Y",
            draft.reference_id,
            expected="Y in Road, Rail, Air or Sea",
        )
    ]


def check_addresses(draft) -> list[Finding]:
    return primary_address_findings(draft, ADDRESS_SHEET, "Transporter")


def check_contacts(draft) -> list[Finding]:
    contacts = draft.child_rows(CONTACT_SHEET)
    if not contacts:
        return [
            consistency_finding(
                draft.basic,
                None,
                f"Transporter {draft.reference_id} must have at least one row on {CONTACT_SHEET}",
                draft.reference_id,
            )
        ]
    address_types = {text_key(row, "Address_Type") for row in draft.child_rows(ADDRESS_SHEET)}
    out: list[Finding] = []
    for row in contacts:
        key = text_key(row, "Address_Type")
        if key is None or key in address_types:
            continue
        out.append(
            consistency_finding(
                row,
                "Address_Type",
                f"Address_Type has no matching {ADDRESS_SHEET} row for this transporter",
                draft.reference_id,
                received=display(row.cell("Address_Type")),
            )
        )
    return out


def check_service_areas(draft) -> list[Finding]:
    out: list[Finding] = []
    seen: dict[str, int] = {}
    for row in draft.child_rows(SERVICE_AREA_SHEET):
        key = text_key(row, "Service_Country")
        if key is None:
            continue
        if key in seen:
            out.append(
                consistency_finding(
                    row,
                    "Service_Country",
                    f"Service_Country {key} is already listed in row {seen[key]}; list all its states in one row",
                    draft.reference_id,
                    received=key,
                )
            )
            continue
        seen[key] = row.row_number
    return out


def service_states(row) -> list[str]:
    raw = display(row.cell("Service_States")) or ""
    states: list[str] = []
    for part in raw.split(","):
        state = part.strip().upper()
        if state and state not in states:
            states.append(state)
    return states


def write_transporter(db: Session, draft, ctx: WriteContext) -> str:
    transporter = insert_sheet_row(
        db,
        GENERAL_DETAILS,
        draft.basic.values,
        created_by=ctx.created_by,
        source_batch_id=ctx.batch_id,
    )
    transporter.transporter_code = f"TR{transporter.id:04d}"

    address_ids: dict[str, int] = {}
    for row in draft.child_rows(ADDRESS_SHEET):
        address = insert_sheet_row(db, ADDRESSES, row.values, transporter_id=transporter.id)
        # Contacts attach to the first address of their type.
        address_ids.setdefault(text_key(row, "Address_Type"), address.id)

    for row in draft.child_rows(CONTACT_SHEET):
        address_id = address_ids.get(text_key(row, "Address_Type"))
        if address_id is None:
            raise ValueError(f"{CONTACT_SHEET} row {row.row_number} has no address to attach to")
        insert_sheet_row(db, CONTACTS, row.values, transporter_id=transporter.id, address_id=address_id)

    for row in draft.child_rows(SERVICE_AREA_SHEET):
        area = insert_sheet_row(db, SERVICEABLE_AREAS, row.values, transporter_id=transporter.id)
        for state in service_states(row):
            db.add(TransporterServiceAreaState(service_area_id=area.id, state_code=state))

    for row in draft.child_rows(DOCUMENTS_SHEET):
        insert_sheet_row(db, DOCUMENTS, row.values, transporter_id=transporter.id)
    db.flush()
    return transporter.transporter_code


TRANSPORTER_SCHEMA = EntitySchema(
    key="transporter",
    display_name="Transporter",
    reference_column=REF,
    sheets=(GENERAL_DETAILS, ADDRESSES, CONTACTS, SERVICEABLE_AREAS, DOCUMENTS),
    writer=write_transporter,
    consistency_checks=(check_transport_modes, check_addresses, check_contacts, check_service_areas),
    critical_rules=(
        "Business_Name must be unique in the file and in the system, ignoring case.",
        "Every contact Email_ID must be unique in the file and in the system.",
        "Each transporter needs at least one address, exactly one primary address and at least one contact.",
        "A contact's Address_Type must match one of the same transporter's addresses.",
        "At least one transport mode (Road, Rail, Air, Sea) must be Y.",
        "Document_Type must exist in master data.",
    ),
    upload_steps=(
        "Fill General Details first; give each transporter a Transporter_Ref_ID (TR001, TR002, ...).",
        "Add addresses and contacts with the same Transporter_Ref_ID; mark one address Is_Primary = Y.",
        "Serviceable Areas take one row per country with a comma separated list of states.",
        "Dates use YYYY-MM-DD. Flags use Y or N. Phone numbers start with + and the country code.",
        "Upload the file; valid transporters are created even if other rows have errors.",
        "Download the error report, fix the flagged rows and upload only those rows again.",
    ),
)
