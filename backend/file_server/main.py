"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from file_server import __version__
from file_server.config import Settings
from file_server.database import create_engine, init_db, masked_url
from file_server.errors import ApiError
from file_server.schemas.common import HealthResponse
from file_server.services.file_storage import FileStorageService, create_file_storage
from file_server.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

NOISY_LOGGERS = ("aiosqlite", "botocore", "boto3", "s3transfer", "urllib3")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and check the storage backend before serving."""
    settings: Settings = app.state.settings
    setup_logging(settings.LOG_LEVEL)

    logger.info("Starting file server v%s, database %s", __version__, masked_url(settings.DATABASE_URL))
    await init_db(app.state.engine)
    logger.info("Database connection established")

    await app.state.storage.prepare()
    logger.info("Storage initialized: %s", app.state.storage.storage_type)

    if settings.auth_enabled:
        logger.info("Auth at /upload is enabled. This is recommended for prod.")
    else:
        logger.warning("Auth at /upload is disabled. This is not recommended for prod.")
    if not settings.FILE_SERVER_DISABLE_UPLOAD_PAGE:
        logger.warning(
            "Running with upload page enabled, in prod you may wanna disable this. "
            "Set the env variable FILE_SERVER_DISABLE_UPLOAD_PAGE=true"
        )

    yield

    await app.state.engine.dispose()
    logger.info("File server shut down")


def _error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError):
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return _error_response(400, message)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[FileStorageService] = None,
) -> FastAPI:
    """Build the app. Settings and backends are fixed for the app's lifetime."""
    from file_server.routes.files import router as files_router
    from file_server.routes.frontend import router as upload_page_router
    from file_server.routes.frontend import style_router
    from file_server.routes.upload import router as upload_router

    settings = settings or Settings()
    engine = create_engine(settings)

    app = FastAPI(
        title="File Server",
        version=__version__,
        description="Upload, serve, list and delete files on local disk or S3.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.store = MetadataStore(engine)
    app.state.storage = storage or create_file_storage(settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Verify API and database connectivity."""
        try:
            await app.state.store.ping()
        except Exception as e:
            logger.error("Health check failed: %s", e)
            return HealthResponse(status="error", database=str(e))
        return HealthResponse(storage_type=app.state.storage.storage_type)

    app.include_router(upload_router)
    app.include_router(files_router)
    app.include_router(style_router)
    if not settings.FILE_SERVER_DISABLE_UPLOAD_PAGE:
        app.include_router(upload_page_router)

    return app


def run(**kwargs: Any) -> None:
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "file_server.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        **kwargs,
    )


if __name__ == "__main__":
    run()
