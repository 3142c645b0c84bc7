"""FileRecord model - file metadata (actual bytes on local disk or S3)."""
from datetime import datetime, timezone

from sqlalchemy import String, BigInteger, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column
from uuid6 import uuid7

from file_server.models.base import Base, TimestampMixin


def new_file_id() -> str:
    """Time-ordered unique id (UUIDv7)."""
    return str(uuid7())


class FileRecord(Base, TimestampMixin):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    path: Mapped[str] = mapped_column(String(1000), nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    storage_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # No endpoint sets this yet; list/get/delete hide private rows.
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_files_created_at", "created_at"),
    )

    @classmethod
    def new(cls, path: str, name: str, size: int, storage_type: str) -> "FileRecord":
        """Build a fresh public record stamped with the current time."""
        now = datetime.now(timezone.utc)
        return cls(
            id=new_file_id(),
            path=path,
            name=name,
            size=size,
            storage_type=storage_type,
            is_private=False,
            created_at=now,
            updated_at=now,
        )

    def __repr__(self) -> str:
        return f"<FileRecord(id={self.id}, name='{self.name}', storage_type={self.storage_type})>"
