"""Test fixtures: per-test SQLite database, local storage root and ASGI test client."""

import boto3
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from moto import mock_aws

from file_server.config import Settings
from file_server.database import init_db
from file_server.main import create_app

TEST_BUCKET = "file-server-test"
TEST_REGION = "us-east-1"


@pytest.fixture
def make_settings(tmp_path):
    """Build Settings pointing at tmp_path, ignoring any .env file."""

    def _make(**overrides) -> Settings:
        values = {
            "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'files.db'}",
            "FILE_SERVER_STORAGE_TYPE": "local",
            "FILE_SERVER_STORAGE_PATH": str(tmp_path / "storage"),
            "FILE_SERVER_ALLOWED_FILE_TYPES": "*",
            "FILE_SERVER_AUTH_TOKEN": None,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest_asyncio.fixture
async def make_app():
    """Create apps with tables in place and storage prepared; engines disposed afterwards."""
    apps = []

    async def _make(settings: Settings, storage=None):
        app = create_app(settings, storage=storage)
        await init_db(app.state.engine)
        await app.state.storage.prepare()
        apps.append(app)
        return app

    yield _make

    for app in apps:
        await app.state.engine.dispose()


@pytest_asyncio.fixture
async def app(make_app, settings):
    return await make_app(settings)


@pytest_asyncio.fixture
async def client(app):
    """Async test client bound to the app fixture."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def s3_client():
    """Mocked S3 client with an empty test bucket."""
    with mock_aws():
        client = boto3.client("s3", region_name=TEST_REGION)
        client.create_bucket(Bucket=TEST_BUCKET)
        yield client
