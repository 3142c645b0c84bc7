"""Relational persistence for file records.

One short-lived session per operation; the engine is shared across requests
and the database serializes concurrent writers itself.
"""
import logging
from typing import Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from file_server.models.file_record import FileRecord

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Metadata persistence failed."""
    pass


class DuplicateIdError(StoreError):
    pass


class MetadataStore:
    """create / get_by_id / list / delete_by_id over the ``files`` table."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def create(self, record: FileRecord) -> FileRecord:
        """Insert a fully populated record and return it as persisted."""
        async with self.session_factory() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateIdError(f"File id already exists: {record.id}") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError(f"Failed to insert file {record.id}: {e}") from e

            try:
                await session.refresh(record)
            except SQLAlchemyError as e:
                raise StoreError(f"Failed to reload file {record.id}: {e}") from e
            return record

    async def get_by_id(self, file_id: str) -> Optional[FileRecord]:
        """Look up a record regardless of visibility."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(FileRecord).where(FileRecord.id == file_id)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load file {file_id}: {e}") from e

    async def list(self, limit: int) -> list[FileRecord]:
        """Public records, newest first, at most ``limit`` rows."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(FileRecord)
                    .where(FileRecord.is_private.is_(False))
                    .order_by(desc(FileRecord.created_at), desc(FileRecord.id))
                    .limit(limit)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list files: {e}") from e

    async def delete_by_id(self, file_id: str) -> bool:
        """Delete a public record. Returns False when nothing was removed."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(FileRecord).where(
                        FileRecord.id == file_id,
                        FileRecord.is_private.is_(False),
                    )
                )
                await session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete file {file_id}: {e}") from e

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.exec_driver_sql("SELECT 1")
