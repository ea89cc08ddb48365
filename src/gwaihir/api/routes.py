"""FastAPI routes for the Gwaihir API."""

import logging
import os
import secrets
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from gwaihir import __version__
from gwaihir.api.models import (
    ErrorResponse,
    HealthResponse,
    MachineResponse,
    MessageResponse,
    VersionResponse,
    WakeRequest,
)
from gwaihir.config.loader import DEFAULT_CONFIG, Settings, load_settings
from gwaihir.core import metrics as m
from gwaihir.core.dispatch import Transmitter, WakeDispatcher
from gwaihir.core.errors import DispatchFailed, MachineNotFound
from gwaihir.core.metrics import MetricsSink, PrometheusMetrics
from gwaihir.core.registry import Machine, MachineRegistry, build_registry
from gwaihir.core.wol import BroadcastTransmitter

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
REQUEST_ID_HEADER = "X-Request-ID"

_PROTECTED_PREFIXES = ("/wol", "/machines")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id, time it, and echo the id in the response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - started

        sink = request.app.state.metrics
        if isinstance(sink, PrometheusMetrics):
            sink.observe_request(duration)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.debug(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration * 1000,
            extra={"request_id": request_id},
        )
        return response


class APIKeyAuthMiddleware(BaseHTTPMiddleware):
    """Require a matching X-API-Key header on the wake and machine endpoints."""

    def __init__(self, app: Callable, api_key: str) -> None:
        super().__init__(app)
        self.api_key = api_key

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if not any(request.url.path.startswith(p) for p in _PROTECTED_PREFIXES):
            return await call_next(request)

        supplied = request.headers.get(API_KEY_HEADER, "")
        if not supplied:
            return JSONResponse({"error": "Missing X-API-Key header"}, status_code=401)
        if not secrets.compare_digest(supplied.encode(), self.api_key.encode()):
            logger.warning("Rejected request with invalid API key for %s", request.url.path)
            return JSONResponse({"error": "Invalid API key"}, status_code=401)
        return await call_next(request)


def create_app(
    config_path: Optional[str] = None,
    *,
    settings: Optional[Settings] = None,
    registry: Optional[MachineRegistry] = None,
    transmitter: Optional[Transmitter] = None,
    metrics: Optional[MetricsSink] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config_path: Path to gwaihir.yaml. If None, uses the default location.
        settings: Pre-loaded settings; skips reading config_path when given
        registry: Pre-built registry; built from settings.machines when None
        transmitter: Packet sender; a BroadcastTransmitter when None
        metrics: Metrics sink; a fresh PrometheusMetrics when None

    Returns:
        FastAPI application instance

    Raises:
        ConfigError: If the config cannot be loaded
        RegistryError: If the machine allowlist is invalid
    """
    if settings is None:
        settings = load_settings(Path(config_path) if config_path else DEFAULT_CONFIG)
    if registry is None:
        registry = build_registry(settings.machines)
    if transmitter is None:
        transmitter = BroadcastTransmitter(timeout=settings.wol_timeout)
    if metrics is None:
        metrics = PrometheusMetrics()
    metrics.set_gauge(m.CONFIGURED_MACHINES, len(registry))

    app = FastAPI(
        title="Gwaihir",
        version=__version__,
        description="Wake-on-LAN messenger for allowlisted machines",
    )

    # ── App state ─────────────────────────────────────────────────────────────
    app.state.settings = settings
    app.state.registry = registry
    app.state.metrics = metrics
    app.state.dispatcher = WakeDispatcher(registry, transmitter, metrics)
    # Stamped into the environment by the image or package build.
    app.state.build_time = os.environ.get("GWAIHIR_BUILD_TIME") or None
    app.state.git_commit = os.environ.get("GWAIHIR_GIT_COMMIT") or None
    app.state.started_at = time.monotonic()

    if settings.api_key:
        app.add_middleware(APIKeyAuthMiddleware, api_key=settings.api_key)
    else:
        logger.warning("No API key configured - protected endpoints will not require authentication")
    app.add_middleware(RequestContextMiddleware)

    def _to_response(machine: Machine) -> MachineResponse:
        return MachineResponse(**machine.to_dict())

    def _request_id(request: Request) -> str:
        return getattr(request.state, "request_id", "")

    # ── Wake-on-LAN ───────────────────────────────────────────────────────────

    @app.post(
        "/wol",
        status_code=202,
        response_model=MessageResponse,
        responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    def post_wol(req: WakeRequest, request: Request) -> Response:
        dispatcher: WakeDispatcher = app.state.dispatcher
        try:
            dispatcher.dispatch(req.machine_id)
        except MachineNotFound:
            return JSONResponse({"error": "Machine not found or not allowed"}, status_code=404)
        except DispatchFailed as exc:
            logger.error(
                "WoL request failed: %s",
                exc,
                extra={"request_id": _request_id(request), "machine_id": req.machine_id},
            )
            return JSONResponse({"error": "Failed to send WoL packet"}, status_code=500)
        return JSONResponse({"message": "WoL packet sent successfully"}, status_code=202)

    # ── Machines ──────────────────────────────────────────────────────────────

    @app.get("/machines", response_model=list[MachineResponse])
    def get_machines() -> list[MachineResponse]:
        return [_to_response(machine) for machine in app.state.dispatcher.list_machines()]

    @app.get(
        "/machines/{machine_id}",
        response_model=MachineResponse,
        responses={404: {"model": ErrorResponse}},
    )
    def get_machine(machine_id: str) -> Response:
        try:
            machine = app.state.dispatcher.get_machine(machine_id)
        except MachineNotFound:
            return JSONResponse({"error": "Machine not found"}, status_code=404)
        return JSONResponse(_to_response(machine).model_dump())

    # ── Health ────────────────────────────────────────────────────────────────

    if settings.health_check_enabled:

        @app.get("/health", response_model=HealthResponse)
        async def get_health() -> HealthResponse:
            count = len(app.state.registry)
            return HealthResponse(
                status="healthy",
                version=__version__,
                build_time=app.state.build_time,
                git_commit=app.state.git_commit,
                timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                uptime_seconds=int(time.monotonic() - app.state.started_at),
                configured_machines=count,
                checks={"config_loaded": "ok", "machines": "ok" if count else "warning"},
            )

        @app.get("/live")
        async def get_live() -> JSONResponse:
            return JSONResponse({"status": "alive"})

        @app.get("/ready")
        async def get_ready() -> JSONResponse:
            count = len(app.state.registry)
            if not count:
                logger.warning("Readiness check: no machines configured")
                return JSONResponse(
                    {"status": "not ready", "error": "no machines configured"}, status_code=503
                )
            return JSONResponse({"status": "ready", "machines": count})

    # ── Metrics ───────────────────────────────────────────────────────────────

    if settings.metrics_enabled and isinstance(metrics, PrometheusMetrics):

        @app.get("/metrics")
        async def get_metrics() -> Response:
            payload, content_type = metrics.render()
            return Response(content=payload, media_type=content_type)

    @app.get("/version", response_model=VersionResponse)
    async def get_version() -> VersionResponse:
        return VersionResponse(
            version=__version__,
            build_time=app.state.build_time,
            git_commit=app.state.git_commit,
        )

    logger.info(
        "API ready with %d machine(s) (version %s, commit %s)",
        len(registry),
        __version__,
        app.state.git_commit or "unknown",
    )
    return app
