"""GET/DELETE /files/uploads/{id} and GET /files/uploads."""

from datetime import datetime, timezone
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from file_server.main import create_app
from file_server.models.file_record import FileRecord, new_file_id
from file_server.services.file_storage import S3FileStorage, StorageDeleteError
from file_server.services.metadata_store import StoreError

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00"


async def _upload(client: AsyncClient, name: str = "photo.png", data: bytes = PNG_BYTES) -> dict:
    resp = await client.post("/upload", files={"file": (name, data, "application/octet-stream")})
    assert resp.status_code == 200
    return resp.json()["data"]


async def _create_private(app) -> FileRecord:
    path = await app.state.storage.store("secret.txt", b"hidden")
    now = datetime.now(timezone.utc)
    return await app.state.store.create(
        FileRecord(
            id=new_file_id(),
            path=path,
            name="secret.txt",
            size=6,
            storage_type="local",
            is_private=True,
            created_at=now,
            updated_at=now,
        )
    )


@pytest.mark.asyncio
async def test_upload_get_delete_scenario(client: AsyncClient):
    record = await _upload(client)

    resp = await client.get(f"/files/uploads/{record['id']}")
    assert resp.status_code == 200
    assert resp.content == PNG_BYTES
    assert resp.headers["content-type"] == "image/png"
    assert resp.headers["content-length"] == "10"
    assert resp.headers["cache-control"] == "public, max-age=31536000"
    assert resp.headers["accept-ranges"] == "bytes"
    assert resp.headers["etag"] == f'"{record["id"]}"'

    resp = await client.delete(f"/files/uploads/{record['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"message": "File deleted successfully"}
    assert not Path(record["path"]).exists()

    resp = await client.get(f"/files/uploads/{record['id']}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "File not found"}


@pytest.mark.asyncio
async def test_get_unknown_id(client: AsyncClient):
    resp = await client.get(f"/files/uploads/{new_file_id()}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "File not found"}


@pytest.mark.asyncio
async def test_missing_backend_object_is_404(client: AsyncClient):
    record = await _upload(client)
    Path(record["path"]).unlink()

    resp = await client.get(f"/files/uploads/{record['id']}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "File not found"}


@pytest.mark.asyncio
async def test_delete_twice(client: AsyncClient):
    record = await _upload(client)

    assert (await client.delete(f"/files/uploads/{record['id']}")).status_code == 200

    resp = await client.delete(f"/files/uploads/{record['id']}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "File not found"}


@pytest.mark.asyncio
async def test_delete_row_vanished_after_storage_delete(client: AsyncClient, app, monkeypatch):
    record = await _upload(client)

    async def _nothing_deleted(file_id):
        return False

    monkeypatch.setattr(app.state.store, "delete_by_id", _nothing_deleted)

    resp = await client.delete(f"/files/uploads/{record['id']}")
    assert resp.status_code == 404
    assert not Path(record["path"]).exists()


@pytest.mark.asyncio
async def test_private_record_is_unreachable(client: AsyncClient, app):
    private = await _create_private(app)
    public = await _upload(client)

    listed = (await client.get("/files/uploads")).json()
    assert [f["id"] for f in listed] == [public["id"]]

    resp = await client.get(f"/files/uploads/{private.id}")
    assert resp.status_code == 404

    resp = await client.delete(f"/files/uploads/{private.id}")
    assert resp.status_code == 404
    assert Path(private.path).exists()
    assert await app.state.store.get_by_id(private.id) is not None


@pytest.mark.asyncio
async def test_list_default_limit_newest_first(client: AsyncClient):
    uploaded = [await _upload(client, f"file-{i}.txt", str(i).encode()) for i in range(12)]

    resp = await client.get("/files/uploads")
    assert resp.status_code == 200
    listed = resp.json()

    assert len(listed) == 10
    assert [f["id"] for f in listed] == [u["id"] for u in reversed(uploaded)][:10]
    assert set(listed[0]) == {"id", "name", "size", "storage_type", "created_at"}
    assert all(f["created_at"].endswith(("Z", "+00:00")) for f in listed)


@pytest.mark.asyncio
async def test_list_explicit_limit(client: AsyncClient):
    for i in range(3):
        await _upload(client, f"file-{i}.txt", b"x")

    assert len((await client.get("/files/uploads", params={"limit": 2})).json()) == 2
    assert (await client.get("/files/uploads", params={"limit": -5})).json() == []


@pytest.mark.asyncio
async def test_list_limit_is_clamped(client: AsyncClient, app, monkeypatch):
    seen = []
    original = app.state.store.list

    async def _spy(limit):
        seen.append(limit)
        return await original(limit)

    monkeypatch.setattr(app.state.store, "list", _spy)

    await client.get("/files/uploads", params={"limit": 1000})
    await client.get("/files/uploads")
    assert seen == [500, 10]


@pytest.mark.asyncio
async def test_list_bad_limit(client: AsyncClient):
    resp = await client.get("/files/uploads", params={"limit": "lots"})
    assert resp.status_code == 400
    assert "error" in resp.json()


async def _store_down(*args):
    raise StoreError("database is locked")


@pytest.mark.asyncio
async def test_lookup_database_error(client: AsyncClient, app, monkeypatch):
    record = await _upload(client)
    monkeypatch.setattr(app.state.store, "get_by_id", _store_down)

    for method in ("GET", "DELETE"):
        resp = await client.request(method, f"/files/uploads/{record['id']}")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Database error"}
    assert Path(record["path"]).exists()


@pytest.mark.asyncio
async def test_delete_row_database_error(client: AsyncClient, app, monkeypatch):
    record = await _upload(client)
    monkeypatch.setattr(app.state.store, "delete_by_id", _store_down)

    resp = await client.delete(f"/files/uploads/{record['id']}")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Database error"}


@pytest.mark.asyncio
async def test_list_database_error(client: AsyncClient, app, monkeypatch):
    monkeypatch.setattr(app.state.store, "list", _store_down)

    resp = await client.get("/files/uploads")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch files"}


@pytest.mark.asyncio
async def test_storage_delete_failure_keeps_row(client: AsyncClient, app, monkeypatch):
    record = await _upload(client)

    async def _fail(path):
        raise StorageDeleteError("permission denied")

    monkeypatch.setattr(app.state.storage, "delete", _fail)

    resp = await client.delete(f"/files/uploads/{record['id']}")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to delete file"}
    assert await app.state.store.get_by_id(record["id"]) is not None
    assert (await client.get(f"/files/uploads/{record['id']}")).content == PNG_BYTES


@pytest.mark.asyncio
async def test_record_from_other_backend(client: AsyncClient, app):
    now = datetime.now(timezone.utc)
    record = await app.state.store.create(
        FileRecord(
            id=new_file_id(),
            path="uploads/elsewhere.txt",
            name="elsewhere.txt",
            size=3,
            storage_type="s3",
            is_private=False,
            created_at=now,
            updated_at=now,
        )
    )

    assert (await client.get(f"/files/uploads/{record.id}")).status_code == 404

    resp = await client.delete(f"/files/uploads/{record.id}")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to delete file"}


@pytest.mark.asyncio
async def test_s3_backend_round_trip(make_app, make_settings, s3_client):
    settings = make_settings(
        FILE_SERVER_STORAGE_TYPE="s3",
        AWS_S3_BUCKET="file-server-test",
        AWS_S3_REGION="us-east-1",
    )
    app = await make_app(settings, storage=S3FileStorage(s3_client, "file-server-test"))

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.post("/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})
        assert resp.status_code == 200
        body = resp.json()
        assert body["storage_type"] == "s3"
        assert body["data"]["path"].startswith("uploads/photo-")

        got = await c.get(body["file_path"])
        assert got.content == PNG_BYTES
        assert got.headers["content-type"] == "image/png"

        assert (await c.delete(body["file_path"])).status_code == 200
        assert (await c.get(body["file_path"])).status_code == 404

    assert s3_client.list_objects_v2(Bucket="file-server-test")["KeyCount"] == 0


def test_create_app_is_side_effect_free(make_settings, tmp_path):
    settings = make_settings(FILE_SERVER_STORAGE_PATH=str(tmp_path / "lazy"))
    app = create_app(settings)
    assert app.state.storage.storage_type == "local"
    assert not (tmp_path / "lazy").exists()
