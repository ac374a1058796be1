from __future__ import annotations

import logging
import threading

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.master_lookups import (
    AddressTypeLookup,
    CoverageTypeLookup,
    DocumentTypeLookup,
    EngineTypeLookup,
    FuelTypeLookup,
    MaterialTypeLookup,
    UsageTypeLookup,
    VehicleTypeLookup,
    WarehouseTypeLookup,
)

logger = logging.getLogger(__name__)

# Lookup key referenced by FieldSpec.master -> (model, label used in messages)
MASTER_LOOKUPS = {
    "vehicle_type": (VehicleTypeLookup, "vehicle type"),
    "usage_type": (UsageTypeLookup, "usage type"),
    "engine_type": (EngineTypeLookup, "engine type"),
    "fuel_type": (FuelTypeLookup, "fuel type"),
    "document_type": (DocumentTypeLookup, "document type"),
    "coverage_type": (CoverageTypeLookup, "coverage type"),
    "warehouse_type": (WarehouseTypeLookup, "warehouse type"),
    "material_type": (MaterialTypeLookup, "material type"),
    "address_type": (AddressTypeLookup, "address type"),
}


def master_label(key: str) -> str:
    entry = MASTER_LOOKUPS.get(key)
    return entry[1] if entry else key.replace("_", " ")


def fetch_active_codes(db: Session, key: str) -> frozenset[str]:
    entry = MASTER_LOOKUPS.get(key)
    if entry is None:
        raise KeyError(f"Unknown master data lookup '{key}'")
    model = entry[0]
    rows = db.execute(select(model.code).where(model.is_active.is_(True))).scalars().all()
    return frozenset(str(code).strip().upper() for code in rows if code)


class MasterDataCache:
    """
    Valid master-data codes for the duration of one batch.

    Each lookup is fetched with a single query the first time it is needed.
    Reads after warm-up are lock-free, so validation workers can share it.
    """

    def __init__(self, db: Session):
        self._db = db
        self._codes: dict[str, frozenset[str]] = {}
        self._lock = threading.Lock()

    def warm(self, keys) -> None:
        for key in sorted(set(keys)):
            self.codes(key)

    def codes(self, key: str) -> frozenset[str]:
        cached = self._codes.get(key)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._codes.get(key)
            if cached is None:
                cached = fetch_active_codes(self._db, key)
                self._codes[key] = cached
                logger.debug("bulk_upload_master_codes_loaded lookup=%s count=%s", key, len(cached))
        return cached

    def contains(self, key: str, code: str) -> bool:
        return code.strip().upper() in self.codes(key)


# Codes referenced by the template sample rows; loaded by
# scripts/seed_bulk_upload_masters.py so a fresh install accepts the template.
SAMPLE_MASTER_CODES: dict[str, list[tuple[str, str]]] = {
    "vehicle_type": [("VT001", "Heavy Truck"), ("VT002", "Light Commercial Vehicle")],
    "usage_type": [("UT001", "Commercial"), ("UT002", "Private")],
    "engine_type": [("ET001", "Diesel Engine"), ("ET002", "Petrol Engine")],
    "fuel_type": [("FT001", "Diesel"), ("FT002", "Petrol"), ("FT003", "CNG")],
    "document_type": [
        ("DN001", "Registration Certificate"),
        ("DN002", "Driving License"),
        ("DN009", "Insurance Policy"),
        ("DN010", "PAN Card"),
        ("DN011", "GST Certificate"),
    ],
    "coverage_type": [("CT001", "Comprehensive"), ("CT002", "Third Party")],
    "warehouse_type": [("WT001", "Distribution Center"), ("WT002", "Cross Dock")],
    "material_type": [("MT001", "General Cargo"), ("MT002", "Perishables")],
    "address_type": [("AT001", "Permanent"), ("AT002", "Temporary")],
}


def seed_master_codes(db: Session, codes: dict[str, list[tuple[str, str]]] | None = None) -> int:
    """Insert missing codes and re-activate existing ones. Returns the number inserted."""
    inserted = 0
    for key, rows in (codes or SAMPLE_MASTER_CODES).items():
        model = MASTER_LOOKUPS[key][0]
        for code, name in rows:
            obj = db.execute(select(model).where(model.code == code)).scalar_one_or_none()
            if obj is not None:
                obj.name = name
                obj.is_active = True
                continue
            db.add(model(code=code, name=name, is_active=True))
            inserted += 1
    db.commit()
    return inserted
