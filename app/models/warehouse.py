from __future__ import annotations

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import BulkCreatedMixin


class WarehouseBasicInformation(BulkCreatedMixin, Base):
    __tablename__ = "warehouse_basic_information"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Human readable code (WH0001), assigned from the primary key after insert.
    warehouse_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    warehouse_name1: Mapped[str] = mapped_column(String(30), nullable=False)
    warehouse_name2: Mapped[str | None] = mapped_column(String(30), nullable=True)
    warehouse_type_code: Mapped[str] = mapped_column(String(20), nullable=False)
    language: Mapped[str | None] = mapped_column(String(5), nullable=True)
    vehicle_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    virtual_yard_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    radius_virtual_yard_in: Mapped[float | None] = mapped_column(Float, nullable=True)
    speed_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weigh_bridge_available: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    gatepass_system_available: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fuel_available: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    country: Mapped[str] = mapped_column(String(5), nullable=False)
    state: Mapped[str] = mapped_column(String(10), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    district: Mapped[str | None] = mapped_column(String(100), nullable=True)
    street_1: Mapped[str] = mapped_column(String(255), nullable=False)
    street_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    vat_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    tin_pan: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    tan: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    material_type_code: Mapped[str | None] = mapped_column(String(20), nullable=True)


class WarehouseSubLocation(Base):
    __tablename__ = "warehouse_sub_location"
    __table_args__ = (
        UniqueConstraint("warehouse_id", "sub_location_name", name="uq_warehouse_sub_location_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_basic_information.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sub_location_name: Mapped[str] = mapped_column(String(100), nullable=False)
    sub_location_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class WarehouseSubLocationCoordinate(Base):
    __tablename__ = "warehouse_sub_location_coordinate"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    sub_location_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_sub_location.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)


# Names are unique regardless of case, matching the upload checks.
Index(
    "uq_warehouse_basic_information_name1_lower",
    func.lower(WarehouseBasicInformation.warehouse_name1),
    unique=True,
)
