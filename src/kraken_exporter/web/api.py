"""FastAPI application factory for the exporter HTTP surface."""

from __future__ import annotations

import logging
import time
from typing import Callable
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware import Middleware
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from kraken_exporter import APP_VERSION
from kraken_exporter.context import ExporterContext
from kraken_exporter.metrics import EXPOSITION_CONTENT_TYPE, MetricsRegistry
from kraken_exporter.web.logging import build_request_log_extra

logger = logging.getLogger(__name__)

UNMATCHED_PATH = "unmatched"


def _route_path(request: Request) -> str:
    """Return the route template serving ``request`` to bound label cardinality."""

    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match in (Match.FULL, Match.PARTIAL):
            return getattr(route, "path", UNMATCHED_PATH)
    return UNMATCHED_PATH


class AuthMiddleware(BaseHTTPMiddleware):
    """Simple bearer-token middleware for the authenticated root endpoint."""

    def __init__(self, app, token: str):
        super().__init__(app)
        self._token = token

    async def dispatch(self, request: Request, call_next: Callable):  # type: ignore[override]
        if request.url.path == "/":
            auth_header = request.headers.get("Authorization")
            expected = f"Bearer {self._token}" if self._token else ""
            if not expected or auth_header != expected:
                return PlainTextResponse("Unauthorized", status_code=401)
        return await call_next(request)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request counts, latency and in-flight requests per route."""

    def __init__(self, app, registry: MetricsRegistry):
        super().__init__(app)
        self._registry = registry

    async def dispatch(self, request: Request, call_next: Callable):  # type: ignore[override]
        method = request.method
        path = _route_path(request)
        in_flight = self._registry.http_requests_in_flight.labels(method=method, path=path)

        in_flight.inc()
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start
            in_flight.dec()
            self._registry.record_request(method, path, status_code, duration)
            logger.debug(
                "%s %s -> %s",
                method,
                request.url.path,
                status_code,
                extra=build_request_log_extra(
                    request, event="http_access", status=status_code, duration=round(duration, 6)
                ),
            )


def create_api(context: ExporterContext) -> FastAPI:
    """Build the FastAPI app serving ``/``, ``/health`` and ``/metrics``."""

    middleware = [Middleware(MetricsMiddleware, registry=context.registry)]
    auth_config = context.config.auth
    if auth_config.enabled:
        middleware.append(Middleware(AuthMiddleware, token=auth_config.token))

    app = FastAPI(
        title="kraken-exporter",
        version=APP_VERSION,
        middleware=middleware,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.context = context

    @app.middleware("http")
    async def inject_request_id(request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    @app.exception_handler(StarletteHTTPException)
    async def plain_text_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return PlainTextResponse("Not Found", status_code=404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "kraken-exporter"

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        return "OK"

    # Sync handler: FastAPI runs it in the threadpool, so a lazy cycle's
    # blocking upstream calls never stall the event loop.
    @app.get("/metrics")
    def metrics(request: Request) -> Response:
        ctx: ExporterContext = request.app.state.context
        if ctx.config.mode == "lazy":
            ctx.runner.run_once()
        return Response(content=ctx.registry.render(), media_type=EXPOSITION_CONTENT_TYPE)

    logger.info(
        "HTTP API initialized",
        extra=build_request_log_extra(
            None, event="api_initialized", mode=context.config.mode, auth=auth_config.enabled
        ),
    )
    return app


__all__ = ["create_api"]
