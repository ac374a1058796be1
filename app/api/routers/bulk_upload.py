from __future__ import annotations

import logging

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Body,
    Depends,
    HTTPException,
    Query,
    Request,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.api.deps.request_identity import get_request_email
from app.core.config import settings
from app.crud import bulk_upload as crud
from app.db.session import get_db
from app.models.bulk_upload import BulkUploadBatch
from app.schemas.bulk_upload import (
    BatchOut,
    BatchPageOut,
    BatchStatusOut,
    EntityTypeOut,
    FindingOut,
    FindingPageOut,
    UploadAcceptedOut,
)
from app.services.bulk_upload_error_report_service import (
    NothingToReport,
    build_error_report_response,
)
from app.services.bulk_upload_findings import Severity
from app.services.bulk_upload_orchestrator import (
    BulkUploadOrchestrator,
    FastAPIBackgroundTaskExecutor,
    UnknownEntityType,
    UploadRejected,
    get_bulk_upload_orchestrator,
    is_terminal,
)
from app.services.bulk_upload_registry import get_entity_schema, list_entity_types
from app.services.bulk_upload_template_service import (
    TemplateGenerationError,
    build_template_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bulk-upload", tags=["bulk-upload"])

_REPORTABLE_STATUSES = {"completed", "validation_errors"}


def _ensure_enabled() -> None:
    if not settings.BULK_UPLOAD_ENABLED:
        raise HTTPException(status_code=404, detail="Bulk upload is disabled")


def _require_batch(db: Session, batch_id: str) -> BulkUploadBatch:
    batch = crud.get_batch(db, batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail=f"Batch '{batch_id}' not found")
    return batch


def _status_out(db: Session, batch: BulkUploadBatch) -> BatchStatusOut:
    finding_count = crud.count_findings(db, batch.id)
    return BatchStatusOut.model_validate(batch).model_copy(
        update={
            "is_terminal": is_terminal(batch.status),
            "error_report_available": finding_count > 0 and batch.status in _REPORTABLE_STATUSES,
            "finding_count": finding_count,
        }
    )


@router.get("/entity-types", response_model=list[EntityTypeOut])
def get_entity_types():
    _ensure_enabled()
    return list_entity_types()


@router.get("/{entity_type}/template.xlsx")
def download_template(entity_type: str):
    _ensure_enabled()
    schema = get_entity_schema(entity_type)
    if schema is None:
        raise HTTPException(status_code=404, detail=f"Unknown entity type '{entity_type}'")
    try:
        return build_template_response(schema)
    except TemplateGenerationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.post("/{entity_type}/upload", response_model=UploadAcceptedOut, status_code=202)
def upload_workbook(
    entity_type: str,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: bytes = Body(b"", media_type="application/octet-stream"),
    filename: str = Query("upload.xlsx"),
    db: Session = Depends(get_db),
    orchestrator: BulkUploadOrchestrator = Depends(get_bulk_upload_orchestrator),
):
    _ensure_enabled()
    filename = (filename or "").strip()
    try:
        batch = orchestrator.trigger_upload(
            db=db,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            entity_type=entity_type,
            file_name=filename,
            content=payload,
            uploaded_by=get_request_email(request),
        )
    except UnknownEntityType as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except UploadRejected as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc

    return UploadAcceptedOut(
        batch_id=batch.id,
        status=batch.status,
        entity_type=batch.entity_type,
        file_name=batch.file_name,
    )


@router.get("/batches", response_model=BatchPageOut)
def list_batch_history(
    request: Request,
    entity_type: str | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1),
    db: Session = Depends(get_db),
):
    _ensure_enabled()
    limit = min(limit, settings.BULK_UPLOAD_PAGE_MAX)
    total, items = crud.list_batches(
        db,
        uploaded_by=get_request_email(request),
        entity_type=entity_type,
        skip=skip,
        limit=limit,
    )
    return BatchPageOut(
        total=total,
        skip=skip,
        limit=limit,
        items=[BatchOut.model_validate(item) for item in items],
    )


@router.get("/batches/{batch_id}", response_model=BatchStatusOut)
def get_batch_status(batch_id: str, db: Session = Depends(get_db)):
    _ensure_enabled()
    return _status_out(db, _require_batch(db, batch_id))


@router.get("/batches/{batch_id}/findings", response_model=FindingPageOut)
def list_batch_findings(
    batch_id: str,
    sheet: str | None = Query(None),
    severity: str | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    db: Session = Depends(get_db),
):
    _ensure_enabled()
    _require_batch(db, batch_id)
    if severity:
        try:
            severity = Severity(severity.strip().lower()).value
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Unknown severity '{severity}'") from exc
    limit = min(limit, settings.BULK_UPLOAD_PAGE_MAX)
    total, items = crud.list_findings(
        db,
        batch_id,
        sheet=(sheet or "").strip() or None,
        severity=severity,
        skip=skip,
        limit=limit,
    )
    return FindingPageOut(
        batch_id=batch_id,
        total=total,
        skip=skip,
        limit=limit,
        items=[FindingOut.model_validate(item) for item in items],
    )


@router.get("/batches/{batch_id}/error-report")
def download_error_report(batch_id: str, db: Session = Depends(get_db)):
    _ensure_enabled()
    try:
        return build_error_report_response(db, batch_id)
    except NothingToReport as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.websocket("/batches/{batch_id}/progress")
async def batch_progress(
    websocket: WebSocket,
    batch_id: str,
    db: Session = Depends(get_db),
    orchestrator: BulkUploadOrchestrator = Depends(get_bulk_upload_orchestrator),
):
    await websocket.accept()
    if not settings.BULK_UPLOAD_ENABLED:
        await websocket.close(code=1008, reason="Bulk upload is disabled")
        return
    batch = crud.get_batch(db, batch_id)
    if batch is None:
        await websocket.close(code=1008, reason="Batch not found")
        return

    snapshot = _status_out(db, batch)
    await websocket.send_json({"event": "snapshot", "batch": snapshot.model_dump(mode="json")})
    if snapshot.is_terminal:
        await websocket.close()
        return

    subscription = orchestrator.broadcaster.subscribe(batch_id)
    try:
        # The batch may have finished between the snapshot and the subscribe.
        db.rollback()
        batch = crud.get_batch(db, batch_id)
        if batch is None or is_terminal(batch.status):
            if batch is not None:
                snapshot = _status_out(db, batch)
                await websocket.send_json({"event": "snapshot", "batch": snapshot.model_dump(mode="json")})
            await websocket.close()
            return

        while True:
            event = await run_in_threadpool(subscription.get, settings.BULK_UPLOAD_PROGRESS_POLL_SECONDS)
            if event is not None:
                await websocket.send_json({"event": "progress", **event.to_dict()})
                if event.percentage >= 100:
                    break
                continue
            if subscription.closed:
                break
            db.rollback()
            batch = crud.get_batch(db, batch_id)
            if batch is None or is_terminal(batch.status):
                if batch is not None:
                    snapshot = _status_out(db, batch)
                    await websocket.send_json({"event": "snapshot", "batch": snapshot.model_dump(mode="json")})
                break
        await websocket.close()
    except WebSocketDisconnect:
        logger.info("bulk_upload_progress_client_left batch_id=%s", batch_id)
    finally:
        subscription.close()
