"""File storage abstraction. Local filesystem or S3-compatible object store.

Both backends share one contract: ``store`` picks a fresh, never-reused locator
for every write, ``fetch`` and ``delete`` take that locator back. The backend is
chosen once at startup from settings (see ``create_file_storage``).
"""
import asyncio
import logging
import mimetypes
import os
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Any, Optional

import aiofiles
import aiofiles.os
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from uuid6 import uuid7

from file_server.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
S3_KEY_PREFIX = "uploads"


class StorageError(Exception):
    """Base class for storage backend failures."""
    pass


class StorageWriteError(StorageError):
    pass


class StorageReadError(StorageError):
    pass


class StorageNotFoundError(StorageReadError):
    """The addressed object does not exist in the backend."""
    pass


class StorageDeleteError(StorageError):
    pass


def guess_mime_type(path_or_name: str) -> str:
    """Extension-based MIME lookup; never fails."""
    mime_type, _ = mimetypes.guess_type(path_or_name, strict=False)
    return mime_type or DEFAULT_MIME_TYPE


def unique_filename(filename: str) -> str:
    """Turn ``photo.png`` into ``photo-<uuid7>.png``.

    Only the last path component of ``filename`` is used. The token is a
    UUIDv7, so names never repeat and sort by creation time.
    """
    name = PurePosixPath(filename.replace("\\", "/")).name
    path = PurePosixPath(name)
    ext = path.suffix[1:] if path.suffix else ""
    stem = path.stem if ext else name
    stem = stem or "file"

    token = uuid7()
    if ext:
        return f"{stem}-{token}.{ext}"
    return f"{stem}-{token}"


class FileStorageService(ABC):
    """Durable byte storage keyed by backend-generated locators."""

    storage_type: str = ""

    @abstractmethod
    async def store(self, filename: str, data: bytes) -> str:
        """Write ``data`` under a new locator derived from ``filename``. Returns the locator."""

    @abstractmethod
    async def fetch(self, path: str) -> bytes:
        """Return the full content addressed by ``path``."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the object addressed by ``path``."""

    @abstractmethod
    async def prepare(self) -> None:
        """Startup check; raises if the backend is unusable."""

    def mime_type(self, path_or_name: str) -> str:
        return guess_mime_type(path_or_name)


class LocalFileStorage(FileStorageService):
    """Files on local disk under a root directory. Locators are absolute paths."""

    storage_type = "local"

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path).expanduser().resolve()

    async def prepare(self) -> None:
        await aiofiles.os.makedirs(self.base_path, exist_ok=True)
        if not os.access(self.base_path, os.W_OK):
            raise StorageWriteError(f"Storage path is not writable: {self.base_path}")
        logger.info("Local storage ready at %s", self.base_path)

    async def store(self, filename: str, data: bytes) -> str:
        file_path = self.base_path / unique_filename(filename)
        try:
            await aiofiles.os.makedirs(file_path.parent, exist_ok=True)
            # "x" refuses to clobber an existing file
            async with aiofiles.open(file_path, "xb") as f:
                await f.write(data)
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
        # ValueError: names the OS cannot represent, e.g. embedded NUL
        except (OSError, ValueError) as e:
            raise StorageWriteError(f"Failed to write {file_path}: {e}") from e

        logger.debug("Stored %d bytes at %s", len(data), file_path)
        return str(file_path)

    async def fetch(self, path: str) -> bytes:
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except FileNotFoundError as e:
            raise StorageNotFoundError(f"File not found: {path}") from e
        except OSError as e:
            raise StorageReadError(f"Failed to read {path}: {e}") from e

    async def delete(self, path: str) -> None:
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            raise StorageDeleteError(f"Failed to delete {path}: {e}") from e


class S3FileStorage(FileStorageService):
    """Objects in an S3 bucket under ``uploads/``.

    boto3 is synchronous, so every call runs in a worker thread.
    """

    storage_type = "s3"

    def __init__(self, client: Any, bucket: str):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3FileStorage":
        client_kwargs: dict[str, Any] = {"region_name": settings.AWS_S3_REGION}
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            client_kwargs["aws_access_key_id"] = settings.AWS_ACCESS_KEY_ID
            client_kwargs["aws_secret_access_key"] = settings.AWS_SECRET_ACCESS_KEY
        if settings.AWS_ENDPOINT_URL:
            # MinIO, R2 and friends want path-style addressing
            client_kwargs["endpoint_url"] = settings.AWS_ENDPOINT_URL
            client_kwargs["config"] = BotoConfig(s3={"addressing_style": "path"})

        client = boto3.client("s3", **client_kwargs)
        return cls(client, settings.AWS_S3_BUCKET)

    @staticmethod
    def _key(path: str) -> str:
        return path.lstrip("/")

    async def prepare(self) -> None:
        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=self.bucket)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"S3 bucket '{self.bucket}' is not reachable: {e}") from e
        logger.info("Using S3 bucket: %s", self.bucket)

    async def store(self, filename: str, data: bytes) -> str:
        key = f"{S3_KEY_PREFIX}/{unique_filename(filename)}"
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=guess_mime_type(filename),
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"Failed to upload {key} to S3: {e}") from e

        logger.debug(f"Uploaded {len(data)} bytes to s3://{self.bucket}/{key}")
        return key

    def _get_object_bytes(self, key: str) -> bytes:
        response = self.client.get_object(Bucket=self.bucket, Key=key)
        return response["Body"].read()

    async def fetch(self, path: str) -> bytes:
        key = self._key(path)
        try:
            return await asyncio.to_thread(self._get_object_bytes, key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404", "NotFound"):
                raise StorageNotFoundError(f"Object not found: {key}") from e
            raise StorageReadError(f"Failed to download {key} from S3: {e}") from e
        except BotoCoreError as e:
            raise StorageReadError(f"Failed to download {key} from S3: {e}") from e

    async def delete(self, path: str) -> None:
        key = self._key(path)
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageDeleteError(f"Failed to delete {key} from S3: {e}") from e


def create_file_storage(settings: Settings, s3_client: Optional[Any] = None) -> FileStorageService:
    """Pick the backend named by FILE_SERVER_STORAGE_TYPE."""
    if settings.FILE_SERVER_STORAGE_TYPE == "local":
        return LocalFileStorage(settings.FILE_SERVER_STORAGE_PATH)

    if settings.FILE_SERVER_STORAGE_TYPE == "s3":
        if s3_client is not None:
            return S3FileStorage(s3_client, settings.AWS_S3_BUCKET)
        return S3FileStorage.from_settings(settings)

    raise ValueError(f"Unknown storage type: {settings.FILE_SERVER_STORAGE_TYPE}")
