from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import BulkCreatedMixin


class TransporterGeneralInfo(BulkCreatedMixin, Base):
    __tablename__ = "transporter_general_info"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Human readable code (TR0001), assigned from the primary key after insert.
    transporter_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    trans_mode_road: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    trans_mode_rail: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    trans_mode_air: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    trans_mode_sea: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    from_date: Mapped[date] = mapped_column(Date, nullable=False)
    to_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    active_flag: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


Index(
    "uq_transporter_general_info_business_name_lower",
    func.lower(TransporterGeneralInfo.business_name),
    unique=True,
)


class TransporterAddress(Base):
    __tablename__ = "transporter_address"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    transporter_id: Mapped[int] = mapped_column(
        ForeignKey("transporter_general_info.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    address_type: Mapped[str] = mapped_column(String(50), nullable=False)
    street_1: Mapped[str] = mapped_column(String(255), nullable=False)
    street_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    district: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(5), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(10), nullable=False)
    vat_gst_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    tin_pan: Mapped[str | None] = mapped_column(String(20), nullable=True)
    tan: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class TransporterContact(Base):
    __tablename__ = "transporter_contact"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    transporter_id: Mapped[int] = mapped_column(
        ForeignKey("transporter_general_info.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    address_id: Mapped[int] = mapped_column(
        ForeignKey("transporter_address.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contact_person_name: Mapped[str] = mapped_column(String(100), nullable=False)
    designation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    alt_phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    whatsapp_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    alt_email: Mapped[str | None] = mapped_column(String(150), nullable=True)


class TransporterServiceArea(Base):
    __tablename__ = "transporter_service_area"
    __table_args__ = (
        UniqueConstraint("transporter_id", "service_country", name="uq_transporter_service_area_country"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    transporter_id: Mapped[int] = mapped_column(
        ForeignKey("transporter_general_info.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    service_country: Mapped[str] = mapped_column(String(5), nullable=False)
    service_frequency: Mapped[str | None] = mapped_column(String(20), nullable=True)


class TransporterServiceAreaState(Base):
    __tablename__ = "transporter_service_area_state"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    service_area_id: Mapped[int] = mapped_column(
        ForeignKey("transporter_service_area.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    state_code: Mapped[str] = mapped_column(String(50), nullable=False)


class TransporterDocument(Base):
    __tablename__ = "transporter_document"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    transporter_id: Mapped[int] = mapped_column(
        ForeignKey("transporter_general_info.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document_type_code: Mapped[str] = mapped_column(String(20), nullable=False)
    document_name: Mapped[str] = mapped_column(String(100), nullable=False)
    document_number: Mapped[str] = mapped_column(String(100), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    issuing_country: Mapped[str | None] = mapped_column(String(5), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
