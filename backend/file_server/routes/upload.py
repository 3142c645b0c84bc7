"""Upload route."""
import logging

from fastapi import APIRouter, Depends, Request
from starlette.exceptions import HTTPException

from file_server.config import Settings
from file_server.errors import BadRequestError
from file_server.routes.deps import get_settings, get_storage, get_store, require_upload_token
from file_server.schemas.file import FileRecordResponse, UploadResponse
from file_server.services.file_storage import FileStorageService
from file_server.services.metadata_store import MetadataStore
from file_server.services.upload_pipeline import extract_upload, process_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])


@router.post(
    "/upload",
    response_model=UploadResponse,
    dependencies=[Depends(require_upload_token)],
)
async def upload_file(
    request: Request,
    settings: Settings = Depends(get_settings),
    storage: FileStorageService = Depends(get_storage),
    store: MetadataStore = Depends(get_store),
):
    """Accept a multipart ``file`` field, store it and record its metadata."""
    try:
        form = await request.form()
    except HTTPException as e:
        logger.warning("Invalid multipart data: %s", e.detail)
        raise BadRequestError("Invalid multipart data") from e

    upload = await extract_upload(form)
    record = await process_upload(upload, storage=storage, store=store, settings=settings)

    return UploadResponse(
        file_path=f"/files/uploads/{record.id}",
        storage_type=record.storage_type,
        data=FileRecordResponse.model_validate(record),
    )
