from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EntityTypeOut(BaseModel):
    key: str
    display_name: str
    reference_column: str
    sheets: list[str]


class BatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_type: str
    file_name: str
    uploaded_by: str
    status: str
    total_rows: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    created_count: int = 0
    creation_failed_count: int = 0
    error_report_path: Optional[str] = None
    processing_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class BatchStatusOut(BatchOut):
    is_terminal: bool = False
    # True once findings exist and the batch reached a terminal state.
    error_report_available: bool = False
    finding_count: int = 0


class BatchPageOut(BaseModel):
    total: int
    skip: int
    limit: int
    items: list[BatchOut] = Field(default_factory=list)


class FindingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reference_id: Optional[str] = None
    sheet_name: str
    row_number: Optional[int] = None
    field_name: Optional[str] = None
    message: str
    severity: str
    rule: str
    expected_value: Optional[str] = None
    received_value: Optional[str] = None


class FindingPageOut(BaseModel):
    batch_id: str
    total: int
    skip: int
    limit: int
    items: list[FindingOut] = Field(default_factory=list)


class UploadAcceptedOut(BaseModel):
    batch_id: str
    status: str
    entity_type: str
    file_name: str
