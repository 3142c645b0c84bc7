"""Files API routes: fetch, list and delete stored uploads."""
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from file_server.errors import InternalServerError, NotFoundError
from file_server.models.file_record import FileRecord
from file_server.routes.deps import get_storage, get_store
from file_server.schemas.common import MessageResponse
from file_server.schemas.file import FileSummary
from file_server.services.file_storage import FileStorageService, StorageError
from file_server.services.metadata_store import MetadataStore, StoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files/uploads", tags=["files"])

DEFAULT_LIST_LIMIT = 10
MAX_LIST_LIMIT = 500
# Records never change after upload, so responses can be cached for a year.
CACHE_CONTROL = "public, max-age=31536000"


async def _get_public_record(store: MetadataStore, file_id: str) -> FileRecord:
    try:
        record = await store.get_by_id(file_id)
    except StoreError as e:
        logger.error("Database error: %s", e)
        raise InternalServerError("Database error") from e

    if record is None or record.is_private:
        raise NotFoundError()
    return record


def _backend_for(record: FileRecord, storage: FileStorageService) -> FileStorageService:
    """Only the backend that wrote a record can read or delete it."""
    if record.storage_type != storage.storage_type:
        raise StorageError(
            f"File {record.id} lives in '{record.storage_type}' storage, "
            f"this server uses '{storage.storage_type}'"
        )
    return storage


@router.get("/{file_id}")
async def get_file(
    file_id: str,
    storage: FileStorageService = Depends(get_storage),
    store: MetadataStore = Depends(get_store),
):
    """Return the stored bytes. Any storage failure is reported as 404."""
    record = await _get_public_record(store, file_id)

    try:
        backend = _backend_for(record, storage)
        data = await backend.fetch(record.path)
    except StorageError as e:
        logger.error("Failed to retrieve file: %s", e)
        raise NotFoundError() from e

    return Response(
        content=data,
        media_type=backend.mime_type(record.path),
        headers={
            "Content-Length": str(record.size),
            "Cache-Control": CACHE_CONTROL,
            "Accept-Ranges": "bytes",
            "ETag": f'"{record.id}"',
        },
    )


@router.get("", response_model=list[FileSummary])
async def list_files(
    limit: int = Query(DEFAULT_LIST_LIMIT),
    store: MetadataStore = Depends(get_store),
):
    """List public files, newest first. ``limit`` is clamped to 0..500."""
    limit = max(0, min(limit, MAX_LIST_LIMIT))

    try:
        records = await store.list(limit)
    except StoreError as e:
        logger.error("Database error: %s", e)
        raise InternalServerError("Failed to fetch files") from e

    return [FileSummary.model_validate(r) for r in records]


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: str,
    storage: FileStorageService = Depends(get_storage),
    store: MetadataStore = Depends(get_store),
):
    """Delete the stored object, then its metadata row."""
    record = await _get_public_record(store, file_id)

    try:
        backend = _backend_for(record, storage)
        await backend.delete(record.path)
    except StorageError as e:
        logger.error("Failed to delete file from storage: %s", e)
        raise InternalServerError("Failed to delete file") from e

    try:
        deleted = await store.delete_by_id(file_id)
    except StoreError as e:
        logger.error("Database error: %s", e)
        raise InternalServerError("Database error") from e

    # Row vanished between lookup and delete (concurrent delete)
    if not deleted:
        raise NotFoundError()

    logger.info("Deleted file %s", file_id)
    return MessageResponse(message="File deleted successfully")
