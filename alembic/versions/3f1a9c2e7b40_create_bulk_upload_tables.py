"""create bulk upload, master lookup and target tables

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1a9c2e7b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


LOOKUP_TABLES = (
    "vehicle_type_lookup",
    "usage_type_lookup",
    "engine_type_lookup",
    "fuel_type_lookup",
    "document_type_lookup",
    "coverage_type_lookup",
    "warehouse_type_lookup",
    "material_type_lookup",
    "address_type_lookup",
)


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column(
            "created_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
        sa.Column("source_batch_id", sa.String(length=36), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "bulk_upload_batch",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("uploaded_by", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("valid_count", sa.Integer(), nullable=False),
        sa.Column("invalid_count", sa.Integer(), nullable=False),
        sa.Column("created_count", sa.Integer(), nullable=False),
        sa.Column("creation_failed_count", sa.Integer(), nullable=False),
        sa.Column("error_report_path", sa.String(length=500), nullable=True),
        sa.Column("processing_notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bulk_upload_batch_entity_type", "bulk_upload_batch", ["entity_type"], unique=False)
    op.create_index("ix_bulk_upload_batch_uploaded_by", "bulk_upload_batch", ["uploaded_by"], unique=False)
    op.create_index("ix_bulk_upload_batch_created_at", "bulk_upload_batch", ["created_at"], unique=False)

    op.create_table(
        "bulk_upload_row",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("batch_id", sa.String(length=36), nullable=False),
        sa.Column("sheet_name", sa.String(length=80), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False),
        sa.Column("reference_id", sa.String(length=120), nullable=True),
        sa.Column("values_json", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_entity_code", sa.String(length=40), nullable=True),
        sa.ForeignKeyConstraint(["batch_id"], ["bulk_upload_batch.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bulk_upload_row_batch_id", "bulk_upload_row", ["batch_id"], unique=False)

    op.create_table(
        "bulk_upload_finding",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("batch_id", sa.String(length=36), nullable=False),
        sa.Column("reference_id", sa.String(length=120), nullable=True),
        sa.Column("sheet_name", sa.String(length=80), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=True),
        sa.Column("field_name", sa.String(length=80), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(length=10), nullable=False),
        sa.Column("rule", sa.String(length=40), nullable=False),
        sa.Column("expected_value", sa.String(length=255), nullable=True),
        sa.Column("received_value", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(["batch_id"], ["bulk_upload_batch.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bulk_upload_finding_batch_id", "bulk_upload_finding", ["batch_id"], unique=False)
    op.create_index("ix_bulk_upload_finding_sheet_name", "bulk_upload_finding", ["sheet_name"], unique=False)
    op.create_index("ix_bulk_upload_finding_severity", "bulk_upload_finding", ["severity"], unique=False)

    for table_name in LOOKUP_TABLES:
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("code", sa.String(length=20), nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table_name}_code", table_name, ["code"], unique=True)

    op.create_table(
        "vehicle_basic_information",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("vehicle_code", sa.String(length=20), nullable=True),
        sa.Column("make_brand", sa.String(length=100), nullable=False),
        sa.Column("model", sa.String(length=100), nullable=False),
        sa.Column("vin_chassis_number", sa.String(length=17), nullable=False),
        sa.Column("vehicle_type_code", sa.String(length=20), nullable=False),
        sa.Column("vehicle_category", sa.String(length=20), nullable=True),
        sa.Column("manufacturing_date", sa.Date(), nullable=False),
        sa.Column("gps_imei_number", sa.String(length=15), nullable=False),
        sa.Column("gps_active", sa.Boolean(), nullable=False),
        sa.Column("leasing", sa.Boolean(), nullable=False),
        sa.Column("usage_type_code", sa.String(length=20), nullable=False),
        sa.Column("registration_number", sa.String(length=20), nullable=True),
        sa.Column("vehicle_color", sa.String(length=40), nullable=True),
        sa.Column("body_type_description", sa.String(length=255), nullable=True),
        sa.Column("safety_inspection_date", sa.Date(), nullable=True),
        sa.Column("taxes_and_fees", sa.Numeric(15, 2), nullable=True),
        sa.Column("road_tax", sa.Numeric(15, 2), nullable=True),
        sa.Column("avg_running_speed", sa.Float(), nullable=True),
        sa.Column("max_running_speed", sa.Float(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vehicle_code"),
        sa.UniqueConstraint("vin_chassis_number"),
        sa.UniqueConstraint("gps_imei_number"),
        sa.UniqueConstraint("registration_number"),
    )
    op.create_index(
        "ix_vehicle_basic_information_source_batch_id",
        "vehicle_basic_information",
        ["source_batch_id"],
        unique=False,
    )

    op.create_table(
        "vehicle_specification",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("engine_type_code", sa.String(length=20), nullable=False),
        sa.Column("engine_number", sa.String(length=50), nullable=False),
        sa.Column("fuel_type_code", sa.String(length=20), nullable=False),
        sa.Column("transmission_type", sa.String(length=20), nullable=True),
        sa.Column("emission_standard", sa.String(length=20), nullable=True),
        sa.Column("financer", sa.String(length=100), nullable=True),
        sa.Column("suspension_type", sa.String(length=30), nullable=True),
        sa.Column("weight_dimensions", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicle_basic_information.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vehicle_id"),
    )

    op.create_table(
        "vehicle_capacity",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("unloading_weight_kg", sa.Float(), nullable=True),
        sa.Column("gross_vehicle_weight_kg", sa.Float(), nullable=True),
        sa.Column("payload_capacity_kg", sa.Float(), nullable=True),
        sa.Column("volume_capacity_cbm", sa.Float(), nullable=True),
        sa.Column("cargo_width_m", sa.Float(), nullable=True),
        sa.Column("cargo_height_m", sa.Float(), nullable=True),
        sa.Column("cargo_length_m", sa.Float(), nullable=True),
        sa.Column("towing_capacity_kg", sa.Float(), nullable=True),
        sa.Column("tire_load_rating", sa.String(length=20), nullable=True),
        sa.Column("vehicle_condition", sa.String(length=20), nullable=True),
        sa.Column("fuel_tank_capacity_l", sa.Float(), nullable=True),
        sa.Column("seating_capacity", sa.Integer(), nullable=True),
        sa.Column("load_capacity_ton", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicle_basic_information.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vehicle_id"),
    )

    op.create_table(
        "vehicle_ownership_detail",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("ownership_name", sa.String(length=150), nullable=False),
        sa.Column("valid_from", sa.Date(), nullable=True),
        sa.Column("valid_to", sa.Date(), nullable=True),
        sa.Column("registration_number", sa.String(length=20), nullable=True),
        sa.Column("registration_date", sa.Date(), nullable=True),
        sa.Column("registration_upto", sa.Date(), nullable=True),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("owner_sr_number", sa.Integer(), nullable=True),
        sa.Column("state_code", sa.String(length=10), nullable=True),
        sa.Column("rto_code", sa.String(length=20), nullable=True),
        sa.Column("sale_amount", sa.Numeric(15, 2), nullable=True),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicle_basic_information.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_vehicle_ownership_detail_vehicle_id",
        "vehicle_ownership_detail",
        ["vehicle_id"],
        unique=False,
    )

    op.create_table(
        "vehicle_document",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("document_type_code", sa.String(length=20), nullable=False),
        sa.Column("document_type_name", sa.String(length=100), nullable=False),
        sa.Column("reference_number", sa.String(length=100), nullable=False),
        sa.Column("document_provider", sa.String(length=150), nullable=True),
        sa.Column("coverage_type_code", sa.String(length=20), nullable=True),
        sa.Column("premium_amount", sa.Numeric(15, 2), nullable=True),
        sa.Column("valid_from", sa.Date(), nullable=True),
        sa.Column("valid_to", sa.Date(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicle_basic_information.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vehicle_document_vehicle_id", "vehicle_document", ["vehicle_id"], unique=False)

    op.create_table(
        "warehouse_basic_information",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("warehouse_code", sa.String(length=20), nullable=True),
        sa.Column("warehouse_name1", sa.String(length=30), nullable=False),
        sa.Column("warehouse_name2", sa.String(length=30), nullable=True),
        sa.Column("warehouse_type_code", sa.String(length=20), nullable=False),
        sa.Column("language", sa.String(length=5), nullable=True),
        sa.Column("vehicle_capacity", sa.Integer(), nullable=True),
        sa.Column("virtual_yard_in", sa.Boolean(), nullable=False),
        sa.Column("radius_virtual_yard_in", sa.Float(), nullable=True),
        sa.Column("speed_limit", sa.Integer(), nullable=True),
        sa.Column("weigh_bridge_available", sa.Boolean(), nullable=False),
        sa.Column("gatepass_system_available", sa.Boolean(), nullable=False),
        sa.Column("fuel_available", sa.Boolean(), nullable=False),
        sa.Column("country", sa.String(length=5), nullable=False),
        sa.Column("state", sa.String(length=10), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("district", sa.String(length=100), nullable=True),
        sa.Column("street_1", sa.String(length=255), nullable=False),
        sa.Column("street_2", sa.String(length=255), nullable=True),
        sa.Column("postal_code", sa.String(length=10), nullable=True),
        sa.Column("vat_number", sa.String(length=30), nullable=False),
        sa.Column("tin_pan", sa.String(length=20), nullable=True),
        sa.Column("tan", sa.String(length=20), nullable=True),
        sa.Column("material_type_code", sa.String(length=20), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("warehouse_code"),
        sa.UniqueConstraint("vat_number"),
        sa.UniqueConstraint("tin_pan"),
        sa.UniqueConstraint("tan"),
    )
    op.create_index(
        "ix_warehouse_basic_information_source_batch_id",
        "warehouse_basic_information",
        ["source_batch_id"],
        unique=False,
    )
    op.create_index(
        "uq_warehouse_basic_information_name1_lower",
        "warehouse_basic_information",
        [sa.text("lower(warehouse_name1)")],
        unique=True,
    )

    op.create_table(
        "warehouse_sub_location",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("sub_location_name", sa.String(length=100), nullable=False),
        sa.Column("sub_location_type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouse_basic_information.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("warehouse_id", "sub_location_name", name="uq_warehouse_sub_location_name"),
    )
    op.create_index(
        "ix_warehouse_sub_location_warehouse_id",
        "warehouse_sub_location",
        ["warehouse_id"],
        unique=False,
    )

    op.create_table(
        "warehouse_sub_location_coordinate",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("sub_location_id", sa.Integer(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["sub_location_id"], ["warehouse_sub_location.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_warehouse_sub_location_coordinate_sub_location_id",
        "warehouse_sub_location_coordinate",
        ["sub_location_id"],
        unique=False,
    )

    op.create_table(
        "transporter_general_info",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("transporter_code", sa.String(length=20), nullable=True),
        sa.Column("business_name", sa.String(length=200), nullable=False),
        sa.Column("trans_mode_road", sa.Boolean(), nullable=False),
        sa.Column("trans_mode_rail", sa.Boolean(), nullable=False),
        sa.Column("trans_mode_air", sa.Boolean(), nullable=False),
        sa.Column("trans_mode_sea", sa.Boolean(), nullable=False),
        sa.Column("from_date", sa.Date(), nullable=False),
        sa.Column("to_date", sa.Date(), nullable=True),
        sa.Column("active_flag", sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transporter_code"),
    )
    op.create_index(
        "ix_transporter_general_info_source_batch_id",
        "transporter_general_info",
        ["source_batch_id"],
        unique=False,
    )
    op.create_index(
        "uq_transporter_general_info_business_name_lower",
        "transporter_general_info",
        [sa.text("lower(business_name)")],
        unique=True,
    )

    op.create_table(
        "transporter_address",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("transporter_id", sa.Integer(), nullable=False),
        sa.Column("address_type", sa.String(length=50), nullable=False),
        sa.Column("street_1", sa.String(length=255), nullable=False),
        sa.Column("street_2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("district", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=False),
        sa.Column("country", sa.String(length=5), nullable=False),
        sa.Column("postal_code", sa.String(length=10), nullable=False),
        sa.Column("vat_gst_number", sa.String(length=30), nullable=True),
        sa.Column("tin_pan", sa.String(length=20), nullable=True),
        sa.Column("tan", sa.String(length=20), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["transporter_id"], ["transporter_general_info.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transporter_address_transporter_id", "transporter_address", ["transporter_id"], unique=False)

    op.create_table(
        "transporter_contact",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("transporter_id", sa.Integer(), nullable=False),
        sa.Column("address_id", sa.Integer(), nullable=False),
        sa.Column("contact_person_name", sa.String(length=100), nullable=False),
        sa.Column("designation", sa.String(length=100), nullable=True),
        sa.Column("phone_number", sa.String(length=20), nullable=False),
        sa.Column("alt_phone_number", sa.String(length=20), nullable=True),
        sa.Column("whatsapp_number", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=150), nullable=False),
        sa.Column("alt_email", sa.String(length=150), nullable=True),
        sa.ForeignKeyConstraint(["transporter_id"], ["transporter_general_info.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["address_id"], ["transporter_address.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_transporter_contact_transporter_id", "transporter_contact", ["transporter_id"], unique=False)
    op.create_index("ix_transporter_contact_address_id", "transporter_contact", ["address_id"], unique=False)

    op.create_table(
        "transporter_service_area",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("transporter_id", sa.Integer(), nullable=False),
        sa.Column("service_country", sa.String(length=5), nullable=False),
        sa.Column("service_frequency", sa.String(length=20), nullable=True),
        sa.ForeignKeyConstraint(["transporter_id"], ["transporter_general_info.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transporter_id", "service_country", name="uq_transporter_service_area_country"),
    )
    op.create_index(
        "ix_transporter_service_area_transporter_id",
        "transporter_service_area",
        ["transporter_id"],
        unique=False,
    )

    op.create_table(
        "transporter_service_area_state",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("service_area_id", sa.Integer(), nullable=False),
        sa.Column("state_code", sa.String(length=50), nullable=False),
        sa.ForeignKeyConstraint(["service_area_id"], ["transporter_service_area.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_transporter_service_area_state_service_area_id",
        "transporter_service_area_state",
        ["service_area_id"],
        unique=False,
    )

    op.create_table(
        "transporter_document",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("transporter_id", sa.Integer(), nullable=False),
        sa.Column("document_type_code", sa.String(length=20), nullable=False),
        sa.Column("document_name", sa.String(length=100), nullable=False),
        sa.Column("document_number", sa.String(length=100), nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("issuing_country", sa.String(length=5), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["transporter_id"], ["transporter_general_info.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transporter_document_transporter_id", "transporter_document", ["transporter_id"], unique=False)

    op.create_table(
        "driver_basic_information",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("driver_code", sa.String(length=20), nullable=True),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("gender", sa.String(length=10), nullable=True),
        sa.Column("blood_group", sa.String(length=5), nullable=True),
        sa.Column("phone_number", sa.String(length=15), nullable=False),
        sa.Column("email_id", sa.String(length=150), nullable=True),
        sa.Column("emergency_contact", sa.String(length=15), nullable=False),
        sa.Column("alternate_phone_number", sa.String(length=15), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("driver_code"),
        sa.UniqueConstraint("phone_number"),
        sa.UniqueConstraint("email_id"),
    )
    op.create_index(
        "ix_driver_basic_information_source_batch_id",
        "driver_basic_information",
        ["source_batch_id"],
        unique=False,
    )

    op.create_table(
        "driver_address",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("driver_id", sa.Integer(), nullable=False),
        sa.Column("address_type_code", sa.String(length=20), nullable=False),
        sa.Column("street_1", sa.String(length=255), nullable=True),
        sa.Column("street_2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("district", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=False),
        sa.Column("country", sa.String(length=5), nullable=False),
        sa.Column("postal_code", sa.String(length=10), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["driver_id"], ["driver_basic_information.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_driver_address_driver_id", "driver_address", ["driver_id"], unique=False)

    op.create_table(
        "driver_document",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("driver_id", sa.Integer(), nullable=False),
        sa.Column("document_type_code", sa.String(length=20), nullable=False),
        sa.Column("document_number", sa.String(length=50), nullable=False),
        sa.Column("issuing_country", sa.String(length=5), nullable=True),
        sa.Column("issuing_state", sa.String(length=20), nullable=True),
        sa.Column("valid_from", sa.Date(), nullable=True),
        sa.Column("valid_to", sa.Date(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("active_flag", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["driver_id"], ["driver_basic_information.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_driver_document_driver_id", "driver_document", ["driver_id"], unique=False)

    op.create_table(
        "driver_employment_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("driver_id", sa.Integer(), nullable=False),
        sa.Column("employer", sa.String(length=150), nullable=False),
        sa.Column("employment_status", sa.String(length=30), nullable=True),
        sa.Column("from_date", sa.Date(), nullable=False),
        sa.Column("to_date", sa.Date(), nullable=True),
        sa.Column("job_title", sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(["driver_id"], ["driver_basic_information.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_driver_employment_history_driver_id",
        "driver_employment_history",
        ["driver_id"],
        unique=False,
    )

    op.create_table(
        "driver_incident",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("driver_id", sa.Integer(), nullable=False),
        sa.Column("incident_type", sa.String(length=20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("incident_date", sa.Date(), nullable=False),
        sa.Column("vehicle_registration_number", sa.String(length=20), nullable=True),
        sa.ForeignKeyConstraint(["driver_id"], ["driver_basic_information.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_driver_incident_driver_id", "driver_incident", ["driver_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_driver_incident_driver_id", table_name="driver_incident")
    op.drop_table("driver_incident")
    op.drop_index("ix_driver_employment_history_driver_id", table_name="driver_employment_history")
    op.drop_table("driver_employment_history")
    op.drop_index("ix_driver_document_driver_id", table_name="driver_document")
    op.drop_table("driver_document")
    op.drop_index("ix_driver_address_driver_id", table_name="driver_address")
    op.drop_table("driver_address")
    op.drop_index("ix_driver_basic_information_source_batch_id", table_name="driver_basic_information")
    op.drop_table("driver_basic_information")

    op.drop_index("ix_transporter_document_transporter_id", table_name="transporter_document")
    op.drop_table("transporter_document")
    op.drop_index(
        "ix_transporter_service_area_state_service_area_id",
        table_name="transporter_service_area_state",
    )
    op.drop_table("transporter_service_area_state")
    op.drop_index("ix_transporter_service_area_transporter_id", table_name="transporter_service_area")
    op.drop_table("transporter_service_area")
    op.drop_index("ix_transporter_contact_address_id", table_name="transporter_contact")
    op.drop_index("ix_transporter_contact_transporter_id", table_name="transporter_contact")
    op.drop_table("transporter_contact")
    op.drop_index("ix_transporter_address_transporter_id", table_name="transporter_address")
    op.drop_table("transporter_address")
    op.drop_index(
        "uq_transporter_general_info_business_name_lower",
        table_name="transporter_general_info",
    )
    op.drop_index(
        "ix_transporter_general_info_source_batch_id",
        table_name="transporter_general_info",
    )
    op.drop_table("transporter_general_info")

    op.drop_index(
        "ix_warehouse_sub_location_coordinate_sub_location_id",
        table_name="warehouse_sub_location_coordinate",
    )
    op.drop_table("warehouse_sub_location_coordinate")
    op.drop_index("ix_warehouse_sub_location_warehouse_id", table_name="warehouse_sub_location")
    op.drop_table("warehouse_sub_location")
    op.drop_index(
        "uq_warehouse_basic_information_name1_lower",
        table_name="warehouse_basic_information",
    )
    op.drop_index(
        "ix_warehouse_basic_information_source_batch_id",
        table_name="warehouse_basic_information",
    )
    op.drop_table("warehouse_basic_information")

    op.drop_index("ix_vehicle_document_vehicle_id", table_name="vehicle_document")
    op.drop_table("vehicle_document")
    op.drop_index("ix_vehicle_ownership_detail_vehicle_id", table_name="vehicle_ownership_detail")
    op.drop_table("vehicle_ownership_detail")
    op.drop_table("vehicle_capacity")
    op.drop_table("vehicle_specification")
    op.drop_index(
        "ix_vehicle_basic_information_source_batch_id",
        table_name="vehicle_basic_information",
    )
    op.drop_table("vehicle_basic_information")

    for table_name in reversed(LOOKUP_TABLES):
        op.drop_index(f"ix_{table_name}_code", table_name=table_name)
        op.drop_table(table_name)

    op.drop_index("ix_bulk_upload_finding_severity", table_name="bulk_upload_finding")
    op.drop_index("ix_bulk_upload_finding_sheet_name", table_name="bulk_upload_finding")
    op.drop_index("ix_bulk_upload_finding_batch_id", table_name="bulk_upload_finding")
    op.drop_table("bulk_upload_finding")
    op.drop_index("ix_bulk_upload_row_batch_id", table_name="bulk_upload_row")
    op.drop_table("bulk_upload_row")
    op.drop_index("ix_bulk_upload_batch_created_at", table_name="bulk_upload_batch")
    op.drop_index("ix_bulk_upload_batch_uploaded_by", table_name="bulk_upload_batch")
    op.drop_index("ix_bulk_upload_batch_entity_type", table_name="bulk_upload_batch")
    op.drop_table("bulk_upload_batch")
