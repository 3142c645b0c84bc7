"""Import all models so SQLAlchemy metadata knows about them."""
from file_server.models.base import Base
from file_server.models.file_record import FileRecord

__all__ = ["Base", "FileRecord"]
