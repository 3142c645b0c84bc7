"""Application configuration from environment variables."""
from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All config comes from env vars or a .env file. Read once at startup."""

    DATABASE_URL: str = "sqlite+aiosqlite:///./files.db"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"

    # Upload limits
    FILE_SERVER_MAX_FILE_SIZE: int = 52428800  # 50 MiB
    FILE_SERVER_ALLOWED_FILE_TYPES: str = "*"

    # Storage
    FILE_SERVER_STORAGE_TYPE: Literal["local", "s3"] = "local"
    FILE_SERVER_STORAGE_PATH: str = "./files"

    # Auth on /upload (unset = disabled)
    FILE_SERVER_AUTH_TOKEN: Optional[str] = None
    FILE_SERVER_DISABLE_UPLOAD_PAGE: bool = False

    # S3 / S3-compatible object store
    AWS_S3_BUCKET: Optional[str] = None
    AWS_S3_REGION: Optional[str] = None
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_ENDPOINT_URL: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="after")
    def _check_s3(self) -> "Settings":
        if self.FILE_SERVER_STORAGE_TYPE == "s3":
            if not self.AWS_S3_BUCKET:
                raise ValueError("S3 bucket must be specified when using S3 storage")
            if not self.AWS_S3_REGION:
                raise ValueError("S3 region must be specified when using S3 storage")
        return self

    @property
    def allowed_file_types(self) -> list[str]:
        types = [t.strip() for t in self.FILE_SERVER_ALLOWED_FILE_TYPES.split(",") if t.strip()]
        return types or ["*"]

    @property
    def allows_any_file_type(self) -> bool:
        return "*" in self.allowed_file_types

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def auth_enabled(self) -> bool:
        return bool(self.FILE_SERVER_AUTH_TOKEN)
