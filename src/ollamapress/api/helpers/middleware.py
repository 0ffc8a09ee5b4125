"""
FastAPI Middleware Configuration

CORS for the configured origins and per-request timing logs.
"""
import time
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from ...gateway.config import GatewayConfig

logger = structlog.get_logger()


def configure_security_middleware(app: FastAPI, config: GatewayConfig) -> None:
    """
    Configure CORS

    Only installed when external access is enabled with an origin list; the
    access gate enforces the same list on every request.
    """
    origins = config.access.get_allowed_origins()
    if not (config.access.allow_external_access and origins):
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )


def add_request_middleware(app: FastAPI) -> None:
    """Time each request, expose it as ``X-Process-Time`` and log it"""
    @app.middleware("http")
    async def log_request(request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Process-Time"] = f"{duration_ms / 1000:.6f}"
        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
        )
        return response
