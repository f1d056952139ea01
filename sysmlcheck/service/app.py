"""FastAPI application entrypoint for sysmlcheck service mode."""

from __future__ import annotations

import asyncio
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..orchestrator import Auditor

T = TypeVar("T")


class PathRequest(BaseModel):
    path: str


class CoverageRequest(BaseModel):
    path: str
    cycle: str


class ManifestCoverageRequest(BaseModel):
    path: str
    threshold: Optional[int] = Field(default=None, ge=0, le=100)


class HealthResponse(BaseModel):
    status: str


class CoverageResponse(BaseModel):
    cycle: str
    expected_files: List[str]
    covered_files: List[str]
    missing_files: List[str]
    coverage_percent: int


class ManifestCoverageResponse(BaseModel):
    accepted: bool
    threshold: int
    coverage_percent: int
    discovered_files: List[str]
    not_covered_files: List[str]
    suggestions: List[str]
    message: str


class DiagramModel(BaseModel):
    kind: str
    title: str
    body: str
    source_files: List[str]


class DiagramsResponse(BaseModel):
    diagrams: List[DiagramModel]


def _default_auditor() -> Auditor:
    return Auditor()


async def _in_executor(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def create_app(
    auditor_factory: Callable[[], Auditor] = _default_auditor,
) -> FastAPI:
    """Create the FastAPI application exposing sysmlcheck operations."""

    app = FastAPI(title="sysmlcheck Service", version=__version__)

    async def get_auditor() -> Auditor:
        return auditor_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/validate")
    async def validate(
        payload: PathRequest,
        auditor: Auditor = Depends(get_auditor),
    ) -> Dict[str, Any]:
        result = await _in_executor(lambda: auditor.run_validate(payload.path))
        return result.to_dict()

    @app.post("/coverage", response_model=CoverageResponse)
    async def cycle_coverage(
        payload: CoverageRequest,
        auditor: Auditor = Depends(get_auditor),
    ) -> CoverageResponse:
        result = await _in_executor(lambda: auditor.run_cycle_coverage(payload.path, payload.cycle))
        return CoverageResponse(**asdict(result))

    @app.post("/manifest/coverage", response_model=ManifestCoverageResponse)
    async def manifest_coverage(
        payload: ManifestCoverageRequest,
        auditor: Auditor = Depends(get_auditor),
    ) -> ManifestCoverageResponse:
        gate = await _in_executor(
            lambda: auditor.run_manifest_check(payload.path, threshold=payload.threshold)
        )
        return ManifestCoverageResponse(
            accepted=gate.accepted,
            threshold=gate.threshold,
            coverage_percent=gate.coverage.coverage_percent,
            discovered_files=gate.coverage.discovered_files,
            not_covered_files=gate.coverage.not_covered_files,
            suggestions=gate.coverage.suggestions,
            message=gate.message,
        )

    @app.post("/diagrams", response_model=DiagramsResponse)
    async def diagrams(
        payload: PathRequest,
        auditor: Auditor = Depends(get_auditor),
    ) -> DiagramsResponse:
        run = await _in_executor(lambda: auditor.run_diagrams(payload.path, write=False))
        return DiagramsResponse(
            diagrams=[DiagramModel(**diagram.to_dict()) for diagram in run.diagrams]
        )

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(_: Any, exc: NotADirectoryError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
