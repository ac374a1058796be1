from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class _CodeLookupColumns:
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, server_default=func.now())


class VehicleTypeLookup(_CodeLookupColumns, Base):
    """Examples: 'VT001' (Heavy truck), 'VT002' (Light commercial)."""
    __tablename__ = "vehicle_type_lookup"


class UsageTypeLookup(_CodeLookupColumns, Base):
    """Examples: 'UT001' (Commercial), 'UT002' (Private)."""
    __tablename__ = "usage_type_lookup"


class EngineTypeLookup(_CodeLookupColumns, Base):
    __tablename__ = "engine_type_lookup"


class FuelTypeLookup(_CodeLookupColumns, Base):
    """Examples: 'FT001' (Diesel), 'FT002' (Petrol), 'FT003' (CNG)."""
    __tablename__ = "fuel_type_lookup"


class DocumentTypeLookup(_CodeLookupColumns, Base):
    """Examples: 'DN001' (Registration certificate), 'DN009' (Insurance)."""
    __tablename__ = "document_type_lookup"


class CoverageTypeLookup(_CodeLookupColumns, Base):
    __tablename__ = "coverage_type_lookup"


class WarehouseTypeLookup(_CodeLookupColumns, Base):
    __tablename__ = "warehouse_type_lookup"


class MaterialTypeLookup(_CodeLookupColumns, Base):
    __tablename__ = "material_type_lookup"


class AddressTypeLookup(_CodeLookupColumns, Base):
    """Examples: 'AT001' (Permanent), 'AT002' (Temporary)."""
    __tablename__ = "address_type_lookup"
