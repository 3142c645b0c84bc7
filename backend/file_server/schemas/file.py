"""File response schemas."""
from datetime import datetime

from file_server.schemas.base import ORMModel


class FileRecordResponse(ORMModel):
    """Full persisted record, as returned after an upload."""
    id: str
    path: str
    name: str
    size: int
    storage_type: str
    is_private: bool
    created_at: datetime
    updated_at: datetime


class FileSummary(ORMModel):
    """Public view used by the listing endpoint (no storage locator)."""
    id: str
    name: str
    size: int
    storage_type: str
    created_at: datetime


class UploadResponse(ORMModel):
    file_path: str
    storage_type: str
    data: FileRecordResponse
