"""FastAPI application exposing builds to development tooling."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..builder import Builder
from ..config import ConfigError, load_config
from ..models import BuildError, CompileError


class BuildRequest(BaseModel):
    path: str
    import_path: Optional[str] = None
    tags: Optional[str] = None
    run_mode: str = "dev"


class CompileErrorModel(BaseModel):
    source_type: str
    title: str
    description: str = ""
    path: str = ""
    line: int = 0
    source_lines: List[str] = []
    meta_error: str = ""

    @classmethod
    def from_error(cls, error: CompileError) -> "CompileErrorModel":
        return cls(**error.to_dict())


class BuildResponse(BaseModel):
    status: str
    binary_path: Optional[str] = None
    command: Optional[List[str]] = None
    error: Optional[CompileErrorModel] = None


class HealthResponse(BaseModel):
    status: str


BuilderFactory = Callable[[BuildRequest], Builder]


def _default_builder(request: BuildRequest) -> Builder:
    config = load_config(Path(request.path), import_path=request.import_path)
    if request.tags is not None:
        config.build.tags = request.tags
    return Builder(config)


def create_app(builder_factory: BuilderFactory = _default_builder) -> FastAPI:
    """Create the FastAPI application exposing harness builds."""

    app = FastAPI(title="Harness Build Service", version="1.0.0")
    # One build at a time: every attempt recreates the same scratch directory.
    build_lock = threading.Lock()

    async def get_factory() -> BuilderFactory:
        return builder_factory

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/build", response_model=BuildResponse)
    async def build(
        payload: BuildRequest,
        factory: BuilderFactory = Depends(get_factory),
    ) -> BuildResponse:
        def _run_build() -> BuildResponse:
            with build_lock:
                builder = factory(payload)
                try:
                    built = builder.build()
                except BuildError as exc:
                    return BuildResponse(
                        status="failed", error=CompileErrorModel.from_error(exc.error)
                    )
            return BuildResponse(
                status="built",
                binary_path=str(built.binary_path),
                command=built.command(run_mode=payload.run_mode),
            )

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _run_build)

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 9001) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["BuildRequest", "BuildResponse", "CompileErrorModel", "create_app", "run_service"]
