"""
Upload Server

HTTP transport for the image store, for callers that cannot touch the
filesystem themselves (the browser build of the UI).

Routes:
- POST /upload   multipart field ``file``      -> {"url": "/assets/uploads/<name>"}
- POST /delete   JSON {"url"} or {"filename"}  -> {"ok": true} | {"error": ...}
- GET  /assets/* static files

CORS is wide open; the server is meant to listen on localhost only.
"""

from typing import Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tallyboard import __version__
from tallyboard.audit import AuditLogger, get_logger
from tallyboard.config import get_settings
from tallyboard.services.image import (
    DELETE_FAILED,
    INVALID_FILENAME,
    INVALID_PAYLOAD,
    NOT_FOUND,
    LocalImageStore,
)


logger = get_logger(__name__)

MISSING_TARGET = "missing filename or url"
NO_FILE = "no file"
SERVER_ERROR = "server error"

_DELETE_STATUS = {
    INVALID_FILENAME: 400,
    NOT_FOUND: 404,
    DELETE_FAILED: 500,
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    local_store: Optional[LocalImageStore] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> FastAPI:
    """
    Build the upload server around a LocalImageStore.

    With no store given, one is created from the storage settings.
    """
    if local_store is None:
        storage = get_settings().storage
        local_store = LocalImageStore(
            storage.uploads_dir,
            assets_dir=storage.assets_dir,
            audit_logger=audit_logger or AuditLogger(),
        )

    app = FastAPI(title="Tallyboard Upload Server", version=__version__)
    app.state.image_store = local_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(Exception)
    async def exception_handler(request: Request, exc: Exception):
        logger.exception("upload_server_error", path=request.url.path)
        return _error(500, SERVER_ERROR)

    @app.post("/upload")
    async def upload(file: Optional[UploadFile] = File(None)):
        if file is None:
            return _error(400, NO_FILE)

        data = await file.read()
        result = local_store.save_image(file.filename or "", data)
        if not result.ok:
            status_code = 400 if result.error == INVALID_PAYLOAD else 500
            return _error(status_code, result.error or SERVER_ERROR)

        logger.info("image_uploaded", filename=result.filename, size=len(data))
        return {"url": result.url}

    @app.post("/delete")
    async def delete(request: Request):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        target = body.get("filename") or body.get("url")
        if not target or not isinstance(target, str):
            return _error(400, MISSING_TARGET)

        result = local_store.delete_image(target)
        if not result.ok:
            return _error(_DELETE_STATUS.get(result.error, 500), result.error or SERVER_ERROR)
        return {"ok": True}

    app.mount(
        "/assets",
        StaticFiles(directory=str(local_store.assets_dir)),
        name="assets",
    )

    return app
