"""FastAPI application entrypoint for codeindex service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ConfigError
from ..indexer import CodeIndexer, IndexResult
from ..runtime import RuntimeSnapshotError, RuntimeSource, load_runtime_snapshot

IndexerFactory = Callable[[Optional[RuntimeSource]], CodeIndexer]


class ExtractRequest(BaseModel):
    path: str
    kinds: Optional[List[str]] = None
    runtime_snapshot: Optional[str] = None


class ExtractResponse(BaseModel):
    units: List[Dict[str, Any]]
    failures: Dict[str, str]
    counts: Dict[str, int]


class HealthResponse(BaseModel):
    status: str


def _default_indexer(runtime: Optional[RuntimeSource]) -> CodeIndexer:
    return CodeIndexer(runtime=runtime)


def create_app(indexer_factory: IndexerFactory = _default_indexer) -> FastAPI:
    """Create the FastAPI application exposing extraction runs."""

    app = FastAPI(title="CodeIndex Service", version="1.0.0")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/extract", response_model=ExtractResponse)
    async def extract(payload: ExtractRequest) -> ExtractResponse:
        def _run_extract() -> IndexResult:
            root = Path(payload.path).expanduser().resolve()
            runtime = None
            if payload.runtime_snapshot:
                runtime = load_runtime_snapshot(Path(payload.runtime_snapshot).expanduser(), root)
            # Lazily build one indexer per request to keep state predictable.
            indexer = indexer_factory(runtime)
            return indexer.run(root, kinds=payload.kinds)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run_extract)
        return ExtractResponse(
            units=[unit.to_dict() for unit in result.units],
            failures=dict(result.failures),
            counts=result.counts(),
        )

    @app.exception_handler(FileNotFoundError)
    @app.exception_handler(NotADirectoryError)
    async def missing_root_handler(_: Any, exc: OSError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    @app.exception_handler(RuntimeSnapshotError)
    @app.exception_handler(ValueError)
    async def bad_request_handler(_: Any, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["ExtractRequest", "ExtractResponse", "create_app", "run_service"]
