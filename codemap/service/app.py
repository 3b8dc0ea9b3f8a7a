"""FastAPI application entrypoint for codemap service mode."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..engine import full_scan, single_file_update
from ..errors import WorkspaceNotFoundError
from ..models import Report


class ScanRequest(BaseModel):
    path: str


class UpdateRequest(BaseModel):
    root: str
    path: str


class ReportResponse(BaseModel):
    status: str
    project: str
    output_path: Optional[str] = None
    scanned_at: str
    head: Optional[str] = None
    files: int
    groups: int
    skipped: int
    errors: List[str] = []


class HealthResponse(BaseModel):
    status: str


class ScanRunner:
    """Runs engine operations, one at a time per workspace root."""

    _locks: Dict[str, threading.Lock] = {}
    _locks_guard = threading.Lock()

    def scan(self, path: str) -> Report:
        with self._lock_for(path):
            return full_scan(path)

    def update(self, root: str, path: str) -> Report:
        with self._lock_for(root):
            return single_file_update(path, root=root)

    @classmethod
    def _lock_for(cls, root: str) -> threading.Lock:
        key = str(Path(root).expanduser().resolve())
        with cls._locks_guard:
            return cls._locks.setdefault(key, threading.Lock())


def _default_runner() -> ScanRunner:
    return ScanRunner()


def _to_response(report: Report) -> ReportResponse:
    return ReportResponse(
        status="ok" if report.ok else "partial",
        project=report.project,
        output_path=report.output_path,
        scanned_at=report.scanned_at,
        head=report.head,
        files=len(report.records),
        groups=len(report.groups),
        skipped=len(report.skipped),
        errors=list(report.errors),
    )


def create_app(
    runner_factory: Callable[[], ScanRunner] = _default_runner,
) -> FastAPI:
    """Create the FastAPI application exposing codemap operations."""

    app = FastAPI(title="CodeMap Service", version="1.0.0")

    async def get_runner() -> ScanRunner:
        return runner_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/scan", response_model=ReportResponse)
    async def scan_workspace(
        payload: ScanRequest,
        runner: ScanRunner = Depends(get_runner),
    ) -> ReportResponse:
        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, runner.scan, payload.path)
        return _to_response(report)

    @app.post("/update", response_model=ReportResponse)
    async def update_file(
        payload: UpdateRequest,
        runner: ScanRunner = Depends(get_runner),
    ) -> ReportResponse:
        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, runner.update, payload.root, payload.path)
        return _to_response(report)

    @app.exception_handler(WorkspaceNotFoundError)
    async def workspace_not_found_handler(_: Any, exc: WorkspaceNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)
