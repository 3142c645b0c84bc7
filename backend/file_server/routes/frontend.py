"""Static upload page and stylesheet."""
import logging
from pathlib import Path

import aiofiles
from fastapi import APIRouter
from fastapi.responses import HTMLResponse, Response

from file_server.errors import InternalServerError

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

router = APIRouter(tags=["frontend"])
style_router = APIRouter(tags=["frontend"])


async def _read_static(name: str) -> str:
    try:
        async with aiofiles.open(STATIC_DIR / name, "r", encoding="utf-8") as f:
            return await f.read()
    except OSError as e:
        logger.error("Failed to read static asset %s: %s", name, e)
        raise InternalServerError("Failed to load page") from e


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def upload_page():
    """Browser upload form. Not registered when the upload page is disabled."""
    return HTMLResponse(await _read_static("upload.html"))


@style_router.get("/style.css", include_in_schema=False)
async def style_css():
    return Response(
        content=await _read_static("style.css"),
        media_type="text/css",
        headers={"Cache-Control": "public, max-age=3600"},
    )
