# server/http_app.py
from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse

from panelfs.config import Settings
from panelfs.di import Container, build_container
from panelfs.errors import PanelFsError
from panelfs.logging import configure_logging, log_call
from panelfs.models import DownloadContent
from panelfs.services.paths import client_path

# Reuse the input models of the MCP tools so both transports validate alike
from server.tools.files import FsCreateIn, FsWriteIn
from server.tools.snapshots import SnapshotCreateIn, SnapshotLockIn, dump_snapshots

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PanelFsError)
    async def panelfs_error(request: Request, exc: PanelFsError):
        return _error(exc.status_code, exc.message, **exc.payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        # Missing or mistyped fields are a 400 here, not FastAPI's default 422
        return _error(400, "Invalid request.", details=jsonable_encoder(exc.errors()))

    @app.exception_handler(OSError)
    async def io_error(request: Request, exc: OSError):
        logger.exception("unexpected I/O failure on %s", request.url.path)
        return _error(500, "Unexpected I/O failure.")


def create_app(container: Container | None = None) -> FastAPI:
    container = container or build_container()
    configure_logging(container.settings.LOG_LEVEL)

    resolver = container.resolver
    files = container.file_service
    snapshots = container.snapshot_store

    app = FastAPI(title="Panel Files HTTP Server", version="0.1.0")
    app.state.container = container
    install_error_handlers(app)

    # ---------- File content ----------

    @app.get("/api/file")
    def read_file(path: Optional[str] = None, view: bool = False):
        if not path:
            return _error(400, "File path query parameter is required.")
        log_call(logger, "file.read", {"path": path, "view": view})

        result = files.read(resolver.resolve(path), for_viewing=view)
        if isinstance(result, DownloadContent):
            return FileResponse(result.path, media_type=result.mime_type, filename=result.filename)
        return {"content": result.content, "writable": result.writable, "path": client_path(path)}

    @app.post("/api/file")
    def write_file(body: FsWriteIn):
        log_call(logger, "file.write", body.model_dump())
        files.write(resolver.resolve(body.path), body.content)
        return {"success": True, "message": "File saved successfully."}

    # ---------- Directories ----------

    @app.get("/api/files")
    def list_files(path: str = "/"):
        log_call(logger, "files.list", {"path": path})
        entries = files.list_dir(resolver.resolve(path))
        return {"path": client_path(path), "files": [asdict(e) for e in entries]}

    @app.post("/api/create")
    def create_item(body: FsCreateIn):
        log_call(logger, "files.create", body.model_dump())
        files.create_item(resolver.resolve(body.path), body.name, body.type)
        label = "File" if body.type == "file" else "Folder"
        return {"success": True, "message": f'{label} "{body.name}" created successfully.'}

    # ---------- Snapshots ----------

    @app.get("/api/snapshots")
    def list_snapshots(filePath: Optional[str] = None):
        if not filePath:
            return _error(400, "filePath query parameter is required.")
        log_call(logger, "snapshots.list", {"filePath": filePath})
        return {"snapshots": dump_snapshots(snapshots.list(filePath))}

    @app.post("/api/snapshots")
    def create_snapshot(body: SnapshotCreateIn):
        log_call(logger, "snapshots.create", body.model_dump())
        created = snapshots.create(body.filePath, body.content, body.language)
        return {"success": True, "message": "Snapshot created.", "snapshots": dump_snapshots(created)}

    @app.post("/api/snapshots/lock")
    def lock_snapshot(body: SnapshotLockIn):
        log_call(logger, "snapshots.lock", body.model_dump())
        if body.lock is None:
            snap = snapshots.toggle_lock(body.filePath, body.snapshotId)
        else:
            snap = snapshots.set_lock(body.filePath, body.snapshotId, body.lock)
        return {
            "success": True,
            "message": f"Snapshot {'locked' if snap.isLocked else 'unlocked'} successfully.",
            "snapshots": dump_snapshots(snapshots.list(body.filePath)),
        }

    @app.delete("/api/snapshots")
    def delete_snapshot(filePath: Optional[str] = None, snapshotId: Optional[str] = None):
        if not filePath or not snapshotId:
            return _error(400, "filePath and snapshotId query parameters are required.")
        log_call(logger, "snapshots.delete", {"filePath": filePath, "snapshotId": snapshotId})
        remaining = snapshots.delete(filePath, snapshotId)
        return {"success": True, "message": "Snapshot deleted.", "snapshots": dump_snapshots(remaining)}

    return app


if __name__ == "__main__":
    import uvicorn
    settings = Settings()
    uvicorn.run(
        "server.http_app:create_app",
        factory=True,
        host=settings.HTTP_HOST,
        port=settings.HTTP_PORT,
        reload=False,
    )
