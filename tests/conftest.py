from __future__ import annotations

import os
import sys
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import importlib

fastapi_app = importlib.import_module("app.main").app
from app.db.base import Base
from app.db.session import get_db
from app.services.bulk_upload_master_data import seed_master_codes
from app.services.bulk_upload_orchestrator import (
    BulkUploadOrchestrator,
    get_bulk_upload_orchestrator,
)
from app.services.bulk_upload_progress import ProgressBroadcaster

# Ensure all models are registered with SQLAlchemy metadata
import app.models  # noqa: F401


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(engine, session_factory):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def seeded_session(db_session):
    seed_master_codes(db_session)
    return db_session


@pytest.fixture(scope="function")
def broadcaster():
    return ProgressBroadcaster(buffer_size=50)


@pytest.fixture(scope="function")
def orchestrator(session_factory, broadcaster, tmp_path):
    # One creation worker: the in-memory engine shares a single connection.
    return BulkUploadOrchestrator(
        session_factory=session_factory,
        broadcaster=broadcaster,
        validation_workers=2,
        creation_workers=1,
        report_dir=str(tmp_path / "error-reports"),
    )


@pytest.fixture(scope="function")
def client(seeded_session, session_factory, orchestrator):
    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_bulk_upload_orchestrator] = lambda: orchestrator
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


def _workbook_bytes(schema, rows=None, omit=()) -> bytes:
    """Workbook with the schema's sheets; `rows` maps sheet name -> list of dicts (default: samples)."""
    rows = rows or {}
    wb = Workbook()
    wb.remove(wb.active)
    for sheet in schema.sheets:
        if sheet.name in omit:
            continue
        ws = wb.create_sheet(sheet.name)
        ws.append(sheet.columns)
        for row in rows.get(sheet.name, sheet.samples):
            ws.append([row.get(column) for column in sheet.columns])
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_workbook():
    return _workbook_bytes


def sample_rows(schema, sheet_name: str) -> list[dict]:
    return [dict(row) for row in schema.sheet(sheet_name).samples]


@pytest.fixture
def samples():
    return sample_rows
