"""Plain pages: root banner, favicon and the log viewer."""
from __future__ import annotations

from pathlib import Path

from litestar import MediaType, get
from litestar.response import File
from litestar.status_codes import HTTP_204_NO_CONTENT

PUBLIC_DIR = Path(__file__).resolve().parents[2] / "public"


@get("/", media_type=MediaType.TEXT, include_in_schema=False)
async def index() -> str:
    return "App is running and connected to the database."


@get("/favicon.ico", status_code=HTTP_204_NO_CONTENT, include_in_schema=False)
async def favicon() -> None:
    """Answer browsers' favicon requests without a 404."""


@get("/logs", include_in_schema=False)
async def logs_page() -> File:
    """Serve the static log viewer, which reads from /api/logs."""
    return File(path=PUBLIC_DIR / "logs.html", content_disposition_type="inline")
