"""
Batch lifecycle for bulk uploads.

The orchestrator accepts an upload synchronously (file checks, batch row,
batch ID) and runs everything else on a background executor:

    received -> parsing -> validating -> creating -> completed
                   |            |           |
                   +-> failed   +-> validation_errors / failed

It is the only writer of batch status. Validators and the creation engine
hand their results back here; each batch has a single in-process runner.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.flow_logging import flow_info
from app.crud import bulk_upload as crud
from app.models.bulk_upload import BulkUploadBatch, BulkUploadRow
from app.services.bulk_upload_cells import to_json
from app.services.bulk_upload_creation_service import CreationEngine, CreationOutcome
from app.services.bulk_upload_error_report_service import archive_error_report
from app.services.bulk_upload_master_data import MasterDataCache
from app.services.bulk_upload_parser import (
    SheetRow,
    WorkbookParseError,
    count_sheet_rows,
    parse_workbook,
)
from app.services.bulk_upload_progress import ProgressBroadcaster
from app.services.bulk_upload_registry import get_entity_schema
from app.services.bulk_upload_resolver import ResolvedBatch, reference_of, resolve_references
from app.services.bulk_upload_schema import EntitySchema, WriteContext
from app.services.bulk_upload_validation_service import ValidationEngine, ValidationResult

logger = logging.getLogger(__name__)

STATUS_RECEIVED = "received"
STATUS_PARSING = "parsing"
STATUS_VALIDATING = "validating"
STATUS_CREATING = "creating"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_VALIDATION_ERRORS = "validation_errors"

TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED, STATUS_VALIDATION_ERRORS})

_TRANSITIONS: dict[str, frozenset[str]] = {
    STATUS_RECEIVED: frozenset({STATUS_PARSING, STATUS_FAILED}),
    STATUS_PARSING: frozenset({STATUS_VALIDATING, STATUS_FAILED}),
    STATUS_VALIDATING: frozenset({STATUS_CREATING, STATUS_VALIDATION_ERRORS, STATUS_FAILED}),
    STATUS_CREATING: frozenset({STATUS_COMPLETED, STATUS_FAILED}),
}

ROW_VALID = "valid"
ROW_INVALID = "invalid"
ROW_CREATED = "created"
ROW_CREATION_FAILED = "creation_failed"
ROW_UNLINKED = "unlinked"

_NOTES_LIMIT = 2000


class InvalidBatchTransition(Exception):
    def __init__(self, batch_id: str, current: str, target: str):
        super().__init__(f"Batch {batch_id} cannot move from '{current}' to '{target}'")
        self.batch_id = batch_id
        self.current = current
        self.target = target


class UnknownEntityType(Exception):
    def __init__(self, entity_type: str):
        super().__init__(f"Unknown entity type '{entity_type}'")
        self.entity_type = entity_type


class UploadRejected(Exception):
    """Upload refused at the boundary; carries the HTTP status to answer with."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class BatchTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


def is_terminal(status: str | None) -> bool:
    return status in TERMINAL_STATUSES


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _scaled(done: int, total: int, low: int, high: int) -> int:
    if total <= 0:
        return high
    return low + int((high - low) * done / total)


def _row_record(row: SheetRow, reference_id: str | None, status: str) -> dict[str, Any]:
    return {
        "sheet_name": row.sheet,
        "row_number": row.row_number,
        "reference_id": reference_id,
        "values": {column: to_json(cell) for column, cell in row.values.items()},
        "status": status,
    }


def _counters(batch: BulkUploadBatch) -> dict[str, int]:
    return {
        "total_rows": batch.total_rows or 0,
        "valid_count": batch.valid_count or 0,
        "invalid_count": batch.invalid_count or 0,
        "created_count": batch.created_count or 0,
        "creation_failed_count": batch.creation_failed_count or 0,
    }


class BulkUploadOrchestrator:
    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        broadcaster: ProgressBroadcaster | None = None,
        validation_workers: int | None = None,
        creation_workers: int | None = None,
        max_file_bytes: int | None = None,
        max_rows: int | None = None,
        report_dir: str | None = None,
    ) -> None:
        if session_factory is None:
            from app.db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

        self.broadcaster = broadcaster or get_progress_broadcaster()
        self._validation_workers = validation_workers or settings.BULK_UPLOAD_VALIDATION_WORKERS
        self._creation_workers = creation_workers or settings.BULK_UPLOAD_CREATION_WORKERS
        self._max_file_bytes = max_file_bytes or settings.BULK_UPLOAD_MAX_FILE_BYTES
        self._max_rows = max_rows or settings.BULK_UPLOAD_MAX_ROWS
        self._report_dir = settings.BULK_UPLOAD_ERROR_REPORT_DIR if report_dir is None else report_dir

        self._running: set[str] = set()
        self._status_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    # Upload boundary

    def check_upload(self, schema: EntitySchema, file_name: str, content: bytes) -> None:
        if not (file_name or "").lower().endswith(".xlsx"):
            raise UploadRejected(400, "Only .xlsx files are supported")
        if not content:
            raise UploadRejected(400, "Uploaded file is empty")
        if len(content) > self._max_file_bytes:
            raise UploadRejected(
                413,
                f"File is {len(content)} bytes; the limit is {self._max_file_bytes} bytes",
            )
        for sheet_name, count in count_sheet_rows(content, schema, limit=self._max_rows).items():
            if count > self._max_rows:
                raise UploadRejected(
                    413,
                    f"Sheet '{sheet_name}' has more than {self._max_rows} rows; the limit is {self._max_rows} rows per sheet",
                )

    def trigger_upload(
        self,
        *,
        db: Session,
        executor: BatchTaskExecutor,
        entity_type: str,
        file_name: str,
        content: bytes,
        uploaded_by: str,
    ) -> BulkUploadBatch:
        schema = get_entity_schema(entity_type)
        if schema is None:
            raise UnknownEntityType(entity_type)
        self.check_upload(schema, file_name, content)

        batch = crud.create_batch(
            db,
            entity_type=schema.key,
            file_name=file_name,
            uploaded_by=uploaded_by,
        )
        logger.info(
            "bulk_upload_batch_received batch_id=%s entity_type=%s file=%s bytes=%s user=%s",
            batch.id,
            schema.key,
            file_name,
            len(content),
            uploaded_by,
        )
        executor.submit(self.run_batch, batch.id, content)
        return batch

    # State machine

    def _status_lock(self, batch_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._status_locks.setdefault(batch_id, threading.Lock())

    def _claim(self, batch_id: str) -> bool:
        with self._registry_lock:
            if batch_id in self._running:
                return False
            self._running.add(batch_id)
            return True

    def _release(self, batch_id: str) -> None:
        with self._registry_lock:
            self._running.discard(batch_id)
            self._status_locks.pop(batch_id, None)

    def transition(self, db: Session, batch: BulkUploadBatch, target: str) -> None:
        with self._status_lock(batch.id):
            current = batch.status
            if target not in _TRANSITIONS.get(current, frozenset()):
                raise InvalidBatchTransition(batch.id, current, target)
            batch.status = target
            batch.updated_at = _utcnow()
            if target in TERMINAL_STATUSES:
                batch.completed_at = batch.updated_at
            db.commit()
        flow_info(
            logger,
            "bulk_upload_batch_transition batch_id=%s from=%s to=%s",
            batch.id,
            current,
            target,
            category="bulk_upload",
        )

    # Pipeline

    def run_batch(self, batch_id: str, content: bytes) -> None:
        if not self._claim(batch_id):
            logger.warning("bulk_upload_batch_already_running batch_id=%s", batch_id)
            return
        try:
            with self._session_factory() as db:
                try:
                    self._run(db, batch_id, content)
                except WorkbookParseError as exc:
                    self._mark_batch_failed(db=db, batch_id=batch_id, exc=exc, expected=True)
                except Exception as exc:
                    self._mark_batch_failed(db=db, batch_id=batch_id, exc=exc)
        finally:
            self._release(batch_id)
            self.broadcaster.close_topic(batch_id)

    def _publish(self, batch_id: str, phase: str, percentage: int, message: str, **kwargs) -> None:
        self.broadcaster.publish(batch_id, phase, percentage, message, **kwargs)

    def _run(self, db: Session, batch_id: str, content: bytes) -> None:
        batch = crud.get_batch(db, batch_id)
        if batch is None:
            raise RuntimeError(f"Bulk upload batch not found: {batch_id}")
        schema = get_entity_schema(batch.entity_type)
        if schema is None:
            raise UnknownEntityType(batch.entity_type)

        self.transition(db, batch, STATUS_PARSING)
        self._publish(batch_id, STATUS_PARSING, 10, "Reading workbook")
        parsed = parse_workbook(content, schema)
        self._publish(batch_id, STATUS_PARSING, 25, f"Read {parsed.row_count} rows")

        resolved = resolve_references(parsed, schema)
        self._publish(
            batch_id,
            STATUS_PARSING,
            30,
            f"Assembled {len(resolved.drafts)} {schema.display_name.lower()} records",
        )

        self.transition(db, batch, STATUS_VALIDATING)
        self._publish(batch_id, STATUS_VALIDATING, 35, "Validating records")
        result = self._validate(db, batch_id, schema, resolved)
        rows_by_draft = self._persist_validation(db, batch, schema, result, resolved.unlinked_rows)

        flow_info(
            logger,
            "bulk_upload_batch_validated batch_id=%s total=%s valid=%s invalid=%s findings=%s",
            batch_id,
            batch.total_rows,
            batch.valid_count,
            batch.invalid_count,
            len(result.all_findings()),
            category="bulk_upload",
        )

        if not result.creatable_drafts:
            self.transition(db, batch, STATUS_VALIDATION_ERRORS)
            self._finish(db, batch, STATUS_VALIDATION_ERRORS, "No records can be created; see the error report")
            return

        self.transition(db, batch, STATUS_CREATING)
        self._publish(
            batch_id,
            STATUS_CREATING,
            75,
            f"Creating {len(result.creatable_drafts)} records",
            counters=_counters(batch),
        )
        outcomes = self._create(batch, schema, result)
        self._persist_creation(db, batch, outcomes, rows_by_draft)

        self.transition(db, batch, STATUS_COMPLETED)
        message = f"Created {batch.created_count} of {batch.total_rows} records"
        self._finish(db, batch, STATUS_COMPLETED, message)

    def _validate(self, db: Session, batch_id: str, schema: EntitySchema, resolved: ResolvedBatch) -> ValidationResult:
        last = {"pct": 35}

        def _on_progress(done: int, total: int) -> None:
            pct = _scaled(done, total, 40, 70)
            if pct > last["pct"]:
                last["pct"] = pct
                self._publish(batch_id, STATUS_VALIDATING, pct, f"Validated {done} of {total} records")

        engine = ValidationEngine(
            schema,
            master_data=MasterDataCache(db),
            store_lookup=lambda model, column, values: crud.existing_values(db, model, column, values),
            workers=self._validation_workers,
            on_progress=_on_progress,
        )
        result = engine.validate(resolved)
        self._publish(
            batch_id,
            STATUS_VALIDATING,
            70,
            f"{result.valid_count} valid, {result.invalid_count} invalid",
            type="warning" if result.invalid_count else "info",
        )
        return result

    def _persist_validation(
        self,
        db: Session,
        batch: BulkUploadBatch,
        schema: EntitySchema,
        result: ValidationResult,
        unlinked_rows: list[SheetRow],
    ) -> dict[int, list[BulkUploadRow]]:
        rows_by_draft: dict[int, list[BulkUploadRow]] = {}
        for verdict in result.verdicts:
            status = ROW_VALID if verdict.creatable else ROW_INVALID
            draft = verdict.draft
            rows_by_draft[draft.index] = crud.add_rows(
                db,
                batch.id,
                [_row_record(row, draft.reference_id, status) for row in draft.rows()],
            )
        crud.add_rows(
            db,
            batch.id,
            [_row_record(row, reference_of(row, schema.reference_column), ROW_UNLINKED) for row in unlinked_rows],
        )
        crud.add_findings(db, batch.id, result.all_findings())

        batch.total_rows = len(result.verdicts)
        batch.valid_count = result.valid_count
        batch.invalid_count = result.invalid_count
        batch.updated_at = _utcnow()
        db.commit()
        return rows_by_draft

    def _create(self, batch: BulkUploadBatch, schema: EntitySchema, result: ValidationResult) -> list[CreationOutcome]:
        batch_id = batch.id
        last = {"pct": 75}

        def _on_progress(done: int, total: int, outcome: CreationOutcome) -> None:
            pct = _scaled(done, total, 75, 95)
            if pct > last["pct"] or not outcome.created:
                last["pct"] = max(pct, last["pct"])
                self._publish(
                    batch_id,
                    STATUS_CREATING,
                    pct,
                    f"Created {done} of {total} records"
                    if outcome.created
                    else f"Record {outcome.draft.reference_id} could not be created",
                    type="info" if outcome.created else "warning",
                )

        engine = CreationEngine(
            schema,
            self._session_factory,
            context=WriteContext(batch_id=batch_id, created_by=batch.uploaded_by),
            workers=self._creation_workers,
            on_progress=_on_progress,
        )
        return engine.create_all(result.creatable_drafts)

    def _persist_creation(
        self,
        db: Session,
        batch: BulkUploadBatch,
        outcomes: list[CreationOutcome],
        rows_by_draft: dict[int, list[BulkUploadRow]],
    ) -> None:
        created = 0
        failed_findings = []
        for outcome in outcomes:
            rows = rows_by_draft.get(outcome.draft.index, [])
            if outcome.created:
                created += 1
                for row in rows:
                    row.status = ROW_CREATED
                if rows:
                    rows[0].created_entity_code = outcome.entity_code
            else:
                for row in rows:
                    row.status = ROW_CREATION_FAILED
                if outcome.finding is not None:
                    failed_findings.append(outcome.finding)
        crud.add_findings(db, batch.id, failed_findings)

        batch.created_count = created
        batch.creation_failed_count = len(outcomes) - created
        batch.updated_at = _utcnow()
        db.commit()

    def _finish(self, db: Session, batch: BulkUploadBatch, phase: str, message: str) -> None:
        if crud.count_findings(db, batch.id):
            try:
                batch.error_report_path = archive_error_report(db, batch.id, self._report_dir)
                db.commit()
            except OSError as exc:
                db.rollback()
                logger.warning("bulk_upload_error_report_archive_failed batch_id=%s error=%s", batch.id, exc)
                batch.processing_notes = f"Error report could not be archived: {exc}"[:_NOTES_LIMIT]
                db.commit()

        logger.info(
            "bulk_upload_batch_finished batch_id=%s status=%s total=%s valid=%s invalid=%s created=%s creation_failed=%s",
            batch.id,
            batch.status,
            batch.total_rows,
            batch.valid_count,
            batch.invalid_count,
            batch.created_count,
            batch.creation_failed_count,
        )
        clean = phase == STATUS_COMPLETED and not batch.invalid_count and not batch.creation_failed_count
        event_type = "success" if clean else "warning"
        self._publish(batch.id, phase, 100, message, type=event_type, counters=_counters(batch))

    def _mark_batch_failed(self, *, db: Session, batch_id: str, exc: Exception, expected: bool = False) -> None:
        error_message = f"{type(exc).__name__}: {exc}"[:_NOTES_LIMIT]
        if expected:
            logger.warning("bulk_upload_batch_failed batch_id=%s error=%s", batch_id, error_message)
        else:
            logger.exception("bulk_upload_batch_failed batch_id=%s error=%s", batch_id, error_message)
        try:
            db.rollback()
            batch = crud.get_batch(db, batch_id)
            if batch is None:
                logger.error("bulk_upload_batch_missing batch_id=%s", batch_id)
                return
            if batch.status not in TERMINAL_STATUSES:
                self.transition(db, batch, STATUS_FAILED)
            batch.processing_notes = error_message
            db.commit()
            self._publish(batch_id, STATUS_FAILED, 100, error_message, type="error", counters=_counters(batch))
        except Exception:
            db.rollback()
            logger.exception("bulk_upload_batch_failed_state_not_saved batch_id=%s", batch_id)


@lru_cache(maxsize=1)
def get_progress_broadcaster() -> ProgressBroadcaster:
    return ProgressBroadcaster(buffer_size=settings.BULK_UPLOAD_PROGRESS_BUFFER)


@lru_cache(maxsize=1)
def get_bulk_upload_orchestrator() -> BulkUploadOrchestrator:
    return BulkUploadOrchestrator()
