"""FastAPI application entrypoint for ngaudit service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..checks import TIER_HIERARCHY, discover_checks
from ..errors import CheckLoadError, ConfigError, RunnerError, UnknownCheckError
from ..models import AnalysisResult
from ..orchestrator import Orchestrator


class ScanRequest(BaseModel):
    path: str
    mode: Literal["components", "pages"] = "components"
    entries: List[str] = []
    tier: Optional[Literal["basic", "material", "full"]] = None
    workers: Optional[Union[int, Literal["auto"]]] = None
    checks: Optional[List[str]] = None
    optimize: Optional[bool] = None


class CheckInfo(BaseModel):
    name: str
    tier: str
    type: str
    weight: int
    ruleId: str
    description: str
    wcag: Optional[str] = None


class TierInfo(BaseModel):
    name: str
    includes: List[str]


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing ngaudit operations."""

    app = FastAPI(title="ngaudit Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/api/checks", response_model=List[CheckInfo])
    async def list_checks() -> List[CheckInfo]:
        return [CheckInfo(**check.to_dict()) for check in sorted(discover_checks(), key=lambda c: c.name)]

    @app.get("/api/tiers", response_model=List[TierInfo])
    async def list_tiers() -> List[TierInfo]:
        return [TierInfo(name=name, includes=list(includes)) for name, includes in TIER_HIERARCHY.items()]

    @app.post("/api/scan")
    async def scan(
        payload: ScanRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        root = Path(payload.path).expanduser()
        if not root.is_dir():
            raise FileNotFoundError(f"Project path not found: {payload.path}")

        def _run_scan() -> AnalysisResult:
            options: Dict[str, Any] = {
                "tier": payload.tier,
                "workers": payload.workers,
                "only": payload.checks,
            }
            if payload.mode == "pages":
                return orchestrator.analyze_pages(
                    root, payload.entries or None, optimize=payload.optimize, **options
                )
            return orchestrator.analyze_components(root, **options)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run_scan)
        return result.to_dict()

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(UnknownCheckError)
    async def unknown_check_handler(_: Any, exc: UnknownCheckError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(CheckLoadError)
    async def check_load_handler(_: Any, exc: CheckLoadError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(RunnerError)
    async def runner_error_handler(_: Any, exc: RunnerError) -> JSONResponse:
        content: Dict[str, Any] = {"detail": str(exc)}
        if exc.work_item is not None:
            content["workItem"] = {"source": exc.work_item[0], "check": exc.work_item[1]}
        return JSONResponse(status_code=500, content=content)

    return app


def run(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)
