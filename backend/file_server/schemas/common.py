"""Shared Pydantic schemas."""
from typing import Optional

from pydantic import BaseModel


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"
    database: str = "connected"
    storage_type: Optional[str] = None
