"""FastAPI application factory for probekit."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from probekit import __version__
from probekit.api.schemas import ExecutionResponse, RunSummary, ServiceInfo
from probekit.capabilities import CapabilityFactory
from probekit.config.models import ProbekitConfig
from probekit.engine.catalog import ScenarioCatalog
from probekit.engine.manifest import load_catalog
from probekit.engine.service import ExecutionService

logger = logging.getLogger(__name__)

SERVICE_NAME = "probekit"

ENDPOINTS = [
    "/api/execute - Execute scenarios",
    "/api/features - List available scenarios",
    "/api/runs - Recent executions",
    "/api/health - Health check",
    "/api/info - Service information",
]


def _log_json(level: int, event: str, **fields: object) -> None:
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, "%s", json.dumps(payload, ensure_ascii=False, sort_keys=True))


def create_app(
    config: ProbekitConfig | None = None,
    *,
    catalog: ScenarioCatalog | None = None,
    capability_factory: CapabilityFactory | None = None,
    service: ExecutionService | None = None,
) -> FastAPI:
    """Create the FastAPI app around one execution service."""
    resolved_config = config or (service.config if service is not None else ProbekitConfig())
    if service is None:
        service = ExecutionService(
            catalog if catalog is not None else load_catalog(resolved_config.catalog),
            config=resolved_config,
            capability_factory=capability_factory,
        )

    app = FastAPI(
        title="probekit",
        version=__version__,
        description="Trigger tagged test scenarios on demand and collect their results.",
        root_path=resolved_config.server.root_path,
    )
    app.state.execution_service = service

    @app.middleware("http")
    async def request_logging(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled API exception: %s",
                json.dumps(
                    {"event": "api_request_error", "method": request.method, "path": request.url.path},
                    ensure_ascii=False,
                ),
            )
            raise
        _log_json(
            logging.INFO,
            "api_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000.0, 3),
        )
        return response

    @app.get("/api/health")
    def health() -> dict[str, object]:
        return {"status": "UP", "service": SERVICE_NAME, "timestamp": int(time.time() * 1000)}

    @app.get("/api/info", response_model=ServiceInfo)
    def info() -> ServiceInfo:
        return ServiceInfo(
            service=SERVICE_NAME,
            version=__version__,
            description="Tag-selected scenario execution service",
            endpoints=list(ENDPOINTS),
        )

    @app.get("/api/features")
    def list_features(request: Request) -> list[str]:
        return _service(request).catalog.paths()

    @app.post("/api/execute")
    async def execute(request: Request) -> JSONResponse:
        payload = await _read_json_body(request)
        report = await run_in_threadpool(_service(request).execute_payload, payload)
        body = ExecutionResponse.from_report(report).to_body()
        return JSONResponse(content=body, status_code=report.status_code)

    @app.get("/api/runs")
    def recent_runs(request: Request) -> list[dict[str, object]]:
        return [
            RunSummary.from_report(report).model_dump(by_alias=True)
            for report in _service(request).recent_runs()
        ]

    @app.get("/api/runs/{run_id}")
    def get_run(run_id: str, request: Request) -> dict[str, object]:
        report = _service(request).get_run(run_id)
        if report is None:
            raise HTTPException(status_code=404, detail="run not found")
        return ExecutionResponse.from_report(report).to_body()

    return app


def _service(request: Request) -> ExecutionService:
    return request.app.state.execution_service


async def _read_json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        # Undecodable bodies reach the service as a non-mapping and fault as malformed.
        return raw.decode("utf-8", errors="replace")
