"""Upload pipeline: multipart field -> validation -> storage write -> metadata row.

The storage write always happens before the metadata insert, so the row is the
commit point. If the insert fails after a successful write, the stored object
is left behind untracked; nothing here tries to clean it up.
"""
import logging
from dataclasses import dataclass

from starlette.datastructures import FormData, UploadFile

from file_server.config import Settings
from file_server.errors import BadRequestError, InternalServerError, PayloadTooLargeError
from file_server.models.file_record import FileRecord
from file_server.services.file_storage import FileStorageService, StorageError, guess_mime_type
from file_server.services.metadata_store import MetadataStore, StoreError

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "file"


@dataclass
class UploadedFile:
    filename: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


async def extract_upload(form: FormData) -> UploadedFile:
    """Read the first ``file`` field fully into memory."""
    fields = form.getlist(UPLOAD_FIELD)
    if not fields:
        raise BadRequestError("No file provided")

    field = fields[0]
    if not isinstance(field, UploadFile) or not field.filename:
        raise BadRequestError("No filename provided")

    try:
        data = await field.read()
    except OSError as e:
        logger.warning("Failed to read upload body: %s", e)
        raise BadRequestError("Failed to read file data") from e
    finally:
        await field.close()

    return UploadedFile(filename=field.filename, data=data)


def validate_upload(upload: UploadedFile, settings: Settings) -> None:
    """Size first, then the MIME allow-list (inferred from the filename)."""
    if upload.size > settings.FILE_SERVER_MAX_FILE_SIZE:
        raise PayloadTooLargeError("File too large")

    if not settings.allows_any_file_type:
        if guess_mime_type(upload.filename) not in settings.allowed_file_types:
            raise BadRequestError("File type not allowed")


async def process_upload(
    upload: UploadedFile,
    *,
    storage: FileStorageService,
    store: MetadataStore,
    settings: Settings,
) -> FileRecord:
    """Validate, write the bytes, then record the metadata row."""
    validate_upload(upload, settings)

    try:
        path = await storage.store(upload.filename, upload.data)
    except StorageError as e:
        logger.error("Failed to store file: %s", e)
        raise InternalServerError("Failed to upload file") from e

    record = FileRecord.new(
        path=path,
        name=upload.filename,
        size=upload.size,
        storage_type=storage.storage_type,
    )
    try:
        created = await store.create(record)
    except StoreError as e:
        logger.error("Failed to save file metadata (orphaned object at %s): %s", path, e)
        raise InternalServerError("Failed to save file metadata") from e

    logger.info(f"Uploaded {created.name} ({created.size} bytes) as {created.id} via {created.storage_type}")
    return created
