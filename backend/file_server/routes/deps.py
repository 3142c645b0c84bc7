"""FastAPI dependencies: shared services from app.state, bearer auth for /upload."""
import logging
import secrets
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from file_server.config import Settings
from file_server.errors import UnauthorizedError
from file_server.services.file_storage import FileStorageService
from file_server.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> FileStorageService:
    return request.app.state.storage


def get_store(request: Request) -> MetadataStore:
    return request.app.state.store


async def require_upload_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> None:
    """Check ``Authorization: Bearer <token>`` when FILE_SERVER_AUTH_TOKEN is set."""
    if not settings.auth_enabled:
        return

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Unauthorized")

    if not secrets.compare_digest(
        credentials.credentials.encode(), settings.FILE_SERVER_AUTH_TOKEN.encode()
    ):
        logger.warning("Rejected upload with invalid bearer token")
        raise UnauthorizedError("Unauthorized")
