"""
Seed the master-data lookup tables used by bulk upload validation.

Tables seeded:
  - vehicle_type_lookup, usage_type_lookup, engine_type_lookup,
    fuel_type_lookup, document_type_lookup, coverage_type_lookup
  - warehouse_type_lookup, material_type_lookup
  - address_type_lookup

Only the codes referenced by the downloadable template samples are loaded.
Existing codes are renamed and re-activated, never duplicated.
"""

from __future__ import annotations

import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.services.bulk_upload_master_data import seed_master_codes


def seed() -> None:
    db: Session = SessionLocal()
    try:
        inserted = seed_master_codes(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    print(f"Master data seeded ({inserted} new codes).")


if __name__ == "__main__":
    seed()
