from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import BulkCreatedMixin


class VehicleBasicInformation(BulkCreatedMixin, Base):
    __tablename__ = "vehicle_basic_information"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Human readable code (VEH0001), assigned from the primary key after insert.
    vehicle_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    make_brand: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    vin_chassis_number: Mapped[str] = mapped_column(String(17), unique=True, nullable=False)
    vehicle_type_code: Mapped[str] = mapped_column(String(20), nullable=False)
    vehicle_category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    manufacturing_date: Mapped[date] = mapped_column(Date, nullable=False)
    gps_imei_number: Mapped[str] = mapped_column(String(15), unique=True, nullable=False)
    gps_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    leasing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    usage_type_code: Mapped[str] = mapped_column(String(20), nullable=False)
    registration_number: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    vehicle_color: Mapped[str | None] = mapped_column(String(40), nullable=True)
    body_type_description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    safety_inspection_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    taxes_and_fees: Mapped[float | None] = mapped_column(Numeric(15, 2), nullable=True)
    road_tax: Mapped[float | None] = mapped_column(Numeric(15, 2), nullable=True)
    avg_running_speed: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_running_speed: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")


class VehicleSpecification(Base):
    __tablename__ = "vehicle_specification"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicle_basic_information.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    engine_type_code: Mapped[str] = mapped_column(String(20), nullable=False)
    engine_number: Mapped[str] = mapped_column(String(50), nullable=False)
    fuel_type_code: Mapped[str] = mapped_column(String(20), nullable=False)
    transmission_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    emission_standard: Mapped[str | None] = mapped_column(String(20), nullable=True)
    financer: Mapped[str | None] = mapped_column(String(100), nullable=True)
    suspension_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    weight_dimensions: Mapped[str | None] = mapped_column(String(255), nullable=True)


class VehicleCapacity(Base):
    __tablename__ = "vehicle_capacity"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicle_basic_information.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    unloading_weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    gross_vehicle_weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    payload_capacity_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    volume_capacity_cbm: Mapped[float | None] = mapped_column(Float, nullable=True)
    cargo_width_m: Mapped[float | None] = mapped_column(Float, nullable=True)
    cargo_height_m: Mapped[float | None] = mapped_column(Float, nullable=True)
    cargo_length_m: Mapped[float | None] = mapped_column(Float, nullable=True)
    towing_capacity_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    tire_load_rating: Mapped[str | None] = mapped_column(String(20), nullable=True)
    vehicle_condition: Mapped[str | None] = mapped_column(String(20), nullable=True)
    fuel_tank_capacity_l: Mapped[float | None] = mapped_column(Float, nullable=True)
    seating_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    load_capacity_ton: Mapped[float | None] = mapped_column(Float, nullable=True)


class VehicleOwnershipDetail(Base):
    __tablename__ = "vehicle_ownership_detail"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicle_basic_information.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ownership_name: Mapped[str] = mapped_column(String(150), nullable=False)
    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    registration_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    registration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    registration_upto: Mapped[date | None] = mapped_column(Date, nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    owner_sr_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    state_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    rto_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    sale_amount: Mapped[float | None] = mapped_column(Numeric(15, 2), nullable=True)


class VehicleDocument(Base):
    __tablename__ = "vehicle_document"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicle_basic_information.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document_type_code: Mapped[str] = mapped_column(String(20), nullable=False)
    document_type_name: Mapped[str] = mapped_column(String(100), nullable=False)
    reference_number: Mapped[str] = mapped_column(String(100), nullable=False)
    document_provider: Mapped[str | None] = mapped_column(String(150), nullable=True)
    coverage_type_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    premium_amount: Mapped[float | None] = mapped_column(Numeric(15, 2), nullable=True)
    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
