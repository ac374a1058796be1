from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import BulkCreatedMixin


class DriverBasicInformation(BulkCreatedMixin, Base):
    __tablename__ = "driver_basic_information"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Human readable code (DRV0001), assigned from the primary key after insert.
    driver_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str | None] = mapped_column(String(10), nullable=True)
    blood_group: Mapped[str | None] = mapped_column(String(5), nullable=True)
    phone_number: Mapped[str] = mapped_column(String(15), unique=True, nullable=False)
    email_id: Mapped[str | None] = mapped_column(String(150), unique=True, nullable=True)
    emergency_contact: Mapped[str] = mapped_column(String(15), nullable=False)
    alternate_phone_number: Mapped[str | None] = mapped_column(String(15), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")


class DriverAddress(Base):
    __tablename__ = "driver_address"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    driver_id: Mapped[int] = mapped_column(
        ForeignKey("driver_basic_information.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    address_type_code: Mapped[str] = mapped_column(String(20), nullable=False)
    street_1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    street_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    district: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(5), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(10), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class DriverDocument(Base):
    __tablename__ = "driver_document"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    driver_id: Mapped[int] = mapped_column(
        ForeignKey("driver_basic_information.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document_type_code: Mapped[str] = mapped_column(String(20), nullable=False)
    document_number: Mapped[str] = mapped_column(String(50), nullable=False)
    issuing_country: Mapped[str | None] = mapped_column(String(5), nullable=True)
    issuing_state: Mapped[str | None] = mapped_column(String(20), nullable=True)
    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    active_flag: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class DriverEmploymentHistory(Base):
    __tablename__ = "driver_employment_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    driver_id: Mapped[int] = mapped_column(
        ForeignKey("driver_basic_information.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employer: Mapped[str] = mapped_column(String(150), nullable=False)
    employment_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    from_date: Mapped[date] = mapped_column(Date, nullable=False)
    to_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(100), nullable=True)


class DriverIncident(Base):
    """Accident and violation records."""

    __tablename__ = "driver_incident"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    driver_id: Mapped[int] = mapped_column(
        ForeignKey("driver_basic_information.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    incident_type: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    incident_date: Mapped[date] = mapped_column(Date, nullable=False)
    vehicle_registration_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
