from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.bulk_upload import BulkUploadBatch, BulkUploadFinding, BulkUploadRow
from app.services.bulk_upload_findings import Finding

_TEXT_LIMIT = 255


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clip(value: str | None, limit: int = _TEXT_LIMIT) -> str | None:
    if value is None:
        return None
    return value if len(value) <= limit else value[: limit - 3] + "..."


def create_batch(
    db: Session,
    *,
    entity_type: str,
    file_name: str,
    uploaded_by: str,
) -> BulkUploadBatch:
    obj = BulkUploadBatch(
        id=str(uuid4()),
        entity_type=entity_type,
        file_name=file_name,
        uploaded_by=uploaded_by,
        status="received",
        created_at=_utcnow(),
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def get_batch(db: Session, batch_id: str) -> BulkUploadBatch | None:
    return db.get(BulkUploadBatch, batch_id)


def list_batches(
    db: Session,
    *,
    uploaded_by: str | None = None,
    entity_type: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[int, list[BulkUploadBatch]]:
    stmt = select(BulkUploadBatch)
    count_stmt = select(func.count()).select_from(BulkUploadBatch)
    if uploaded_by is not None:
        stmt = stmt.where(BulkUploadBatch.uploaded_by == uploaded_by)
        count_stmt = count_stmt.where(BulkUploadBatch.uploaded_by == uploaded_by)
    if entity_type is not None:
        stmt = stmt.where(BulkUploadBatch.entity_type == entity_type)
        count_stmt = count_stmt.where(BulkUploadBatch.entity_type == entity_type)

    total = int(db.execute(count_stmt).scalar_one())
    stmt = stmt.order_by(BulkUploadBatch.created_at.desc(), BulkUploadBatch.id.desc())
    items = list(db.execute(stmt.offset(skip).limit(limit)).scalars().all())
    return total, items


def existing_values(db: Session, model: Any, column: str, values: Iterable[str]) -> set[str]:
    """
    One IN query returning the stored values of model.column that match any
    of `values`, compared case-insensitively.
    """
    candidates = sorted({v.strip().upper() for v in values if v and v.strip()})
    if not candidates:
        return set()
    col = getattr(model, column)
    rows = db.execute(select(col).where(func.upper(col).in_(candidates))).scalars().all()
    return {str(value) for value in rows if value is not None}


def add_rows(db: Session, batch_id: str, rows: Iterable[dict[str, Any]]) -> list[BulkUploadRow]:
    objs = [
        BulkUploadRow(
            batch_id=batch_id,
            sheet_name=row["sheet_name"],
            row_number=row["row_number"],
            reference_id=row.get("reference_id"),
            values_json=json.dumps(row["values"], default=str),
            status=row["status"],
            created_entity_code=row.get("created_entity_code"),
        )
        for row in rows
    ]
    db.add_all(objs)
    return objs


def list_rows(db: Session, batch_id: str) -> list[BulkUploadRow]:
    stmt = (
        select(BulkUploadRow)
        .where(BulkUploadRow.batch_id == batch_id)
        .order_by(BulkUploadRow.sheet_name, BulkUploadRow.row_number, BulkUploadRow.id)
    )
    return list(db.execute(stmt).scalars().all())


def add_findings(db: Session, batch_id: str, findings: Iterable[Finding]) -> int:
    count = 0
    for finding in findings:
        db.add(
            BulkUploadFinding(
                batch_id=batch_id,
                reference_id=_clip(finding.reference_id, 120),
                sheet_name=finding.sheet,
                row_number=finding.row_number,
                field_name=finding.field,
                message=finding.message,
                severity=finding.severity.value,
                rule=finding.rule,
                expected_value=_clip(finding.expected),
                received_value=_clip(finding.received),
            )
        )
        count += 1
    return count


def _findings_stmt(batch_id: str, sheet: str | None, severity: str | None):
    stmt = select(BulkUploadFinding).where(BulkUploadFinding.batch_id == batch_id)
    if sheet:
        stmt = stmt.where(BulkUploadFinding.sheet_name == sheet)
    if severity:
        stmt = stmt.where(BulkUploadFinding.severity == severity.strip().lower())
    return stmt


def list_findings(
    db: Session,
    batch_id: str,
    *,
    sheet: str | None = None,
    severity: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[int, list[BulkUploadFinding]]:
    stmt = _findings_stmt(batch_id, sheet, severity)
    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    stmt = stmt.order_by(
        BulkUploadFinding.sheet_name,
        BulkUploadFinding.row_number,
        BulkUploadFinding.id,
    )
    items = list(db.execute(stmt.offset(skip).limit(limit)).scalars().all())
    return total, items


def all_findings(db: Session, batch_id: str) -> list[BulkUploadFinding]:
    stmt = _findings_stmt(batch_id, None, None).order_by(BulkUploadFinding.id)
    return list(db.execute(stmt).scalars().all())


def count_findings(db: Session, batch_id: str) -> int:
    stmt = select(func.count()).select_from(BulkUploadFinding).where(
        BulkUploadFinding.batch_id == batch_id
    )
    return int(db.execute(stmt).scalar_one())
