from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.flow_logging import flow_debug
from app.services.bulk_upload_findings import RULE_CREATION_FAILED, Finding, Severity
from app.services.bulk_upload_resolver import CompositeDraft
from app.services.bulk_upload_schema import EntitySchema, WriteContext

logger = logging.getLogger(__name__)

_MESSAGE_LIMIT = 400


@dataclass
class CreationOutcome:
    draft: CompositeDraft
    entity_code: str | None = None
    finding: Finding | None = None

    @property
    def created(self) -> bool:
        return self.entity_code is not None


def _summarize_error(exc: Exception) -> str:
    if isinstance(exc, IntegrityError):
        detail = str(exc.orig) if exc.orig is not None else str(exc)
        text = f"Rejected by the database: {detail}"
    elif isinstance(exc, SQLAlchemyError):
        text = f"Database error: {exc.__class__.__name__}"
    else:
        text = f"{exc.__class__.__name__}: {exc}"
    text = " ".join(text.split())
    return text if len(text) <= _MESSAGE_LIMIT else text[: _MESSAGE_LIMIT - 3] + "..."


class CreationEngine:
    """
    Inserts creatable drafts, one transaction per draft.

    A failure rolls back only that draft and is returned as a high finding,
    so store-level rejections show up in the same report as validation
    problems. Workers never share a session.
    """

    def __init__(
        self,
        schema: EntitySchema,
        session_factory: Callable[[], Session],
        *,
        context: WriteContext,
        workers: int = 4,
        on_progress: Callable[[int, int, CreationOutcome], None] | None = None,
    ):
        self.schema = schema
        self._session_factory = session_factory
        self._context = context
        self._workers = max(1, workers)
        self._on_progress = on_progress
        self._done = 0
        self._lock = threading.Lock()

    def create_all(self, drafts: list[CompositeDraft]) -> list[CreationOutcome]:
        self._done = 0
        total = len(drafts)

        def _run(draft: CompositeDraft) -> CreationOutcome:
            outcome = self._create_one(draft)
            if self._on_progress is not None:
                with self._lock:
                    self._done += 1
                    done = self._done
                self._on_progress(done, total, outcome)
            return outcome

        if self._workers == 1 or total <= 1:
            return [_run(draft) for draft in drafts]
        with ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="bulk-create") as pool:
            return list(pool.map(_run, drafts))

    def _create_one(self, draft: CompositeDraft) -> CreationOutcome:
        db = self._session_factory()
        try:
            code = self.schema.writer(db, draft, self._context)
            db.commit()
        except Exception as exc:
            db.rollback()
            message = _summarize_error(exc)
            logger.warning(
                "bulk_upload_draft_creation_failed batch_id=%s ref=%s error=%s",
                self._context.batch_id,
                draft.reference_id,
                message,
            )
            return CreationOutcome(
                draft=draft,
                finding=Finding(
                    sheet=draft.basic.sheet,
                    row_number=draft.basic.row_number,
                    field=None,
                    message=message,
                    severity=Severity.HIGH,
                    rule=RULE_CREATION_FAILED,
                    reference_id=draft.reference_id,
                ),
            )
        finally:
            db.close()

        flow_debug(
            logger,
            "bulk_upload_draft_created batch_id=%s ref=%s code=%s",
            self._context.batch_id,
            draft.reference_id,
            code,
            category="bulk_upload_rows",
        )
        return CreationOutcome(draft=draft, entity_code=code)
