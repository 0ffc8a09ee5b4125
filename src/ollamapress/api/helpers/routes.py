"""
FastAPI Routes Configuration

Mounts the proxy and extension routers under the public namespace.
"""
from fastapi import FastAPI, Request
import structlog

from ...core.service import EXTENSION_NAMESPACE
from ..routes import extensions, health, ollama

logger = structlog.get_logger()

API_PREFIX = "/ollama/v1"


def include_api_routes(app: FastAPI) -> None:
    """Include API routes with prefix"""
    app.include_router(health.router, tags=["Health"])
    app.include_router(ollama.router, prefix=API_PREFIX, tags=["Ollama"])
    app.include_router(extensions.router, prefix=API_PREFIX, tags=["Extensions"])


def add_root_endpoint(app: FastAPI) -> None:
    """Add root endpoint"""
    @app.get("/", include_in_schema=False)
    async def root(request: Request):
        """API root endpoint"""
        return {
            "name": app.title,
            "version": app.version,
            "namespace": API_PREFIX,
            "extensions": EXTENSION_NAMESPACE,
            "registered_extensions": len(request.app.state.registry.list()),
            "docs": "/docs",
            "health": "/health",
        }
