"""
OllamaPress API Server

FastAPI application factory. ``create_app`` is the composition root: it owns
the service registry, the counter store, the trust policy and the settings
provider, and exposes them to the routes through ``app.state``.
"""
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import httpx
import structlog

from ..core.registry import ServiceRegistry
from ..gateway.config import GatewayConfig, get_config
from ..gateway.exceptions import GatewayError
from ..gateway.logging_config import setup_logging
from ..integration.redis_client import MemoryCounterStore
from .auth.trust import TrustPolicy
from .helpers.middleware import add_request_middleware, configure_security_middleware
from .helpers.routes import add_root_endpoint, include_api_routes
from .lifespan import lifespan

logger = structlog.get_logger()


def register_exception_handlers(app: FastAPI) -> None:
    """Render gateway errors as ``{"code", "message", "data": {"status", ...}}``"""

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        logger.info(
            "Request rejected",
            path=request.url.path,
            code=exc.code,
            status=exc.status_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        error = GatewayError(
            "Invalid parameter(s).",
            code="rest_invalid_param",
            status_code=400,
            details={"params": [".".join(str(part) for part in err["loc"]) for err in exc.errors()]},
        )
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(
    settings_provider: Optional[Callable[[], GatewayConfig]] = None,
    registry: Optional[ServiceRegistry] = None,
    upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
    counter_store=None,
    trust_policy: Optional[TrustPolicy] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application

    Every argument is optional; tests inject a fixed settings provider, a
    prepared registry, a mock upstream transport or a counter store.
    """
    settings_provider = settings_provider or get_config
    config = settings_provider()
    setup_logging(config.log_level, config.json_logs)

    app = FastAPI(
        title="OllamaPress Gateway",
        description="Authenticated REST gateway in front of an Ollama server",
        version=config.version,
        lifespan=lifespan,
    )

    app.state.settings_provider = settings_provider
    app.state.owns_registry = registry is None
    app.state.registry = registry if registry is not None else ServiceRegistry()
    app.state.upstream_transport = upstream_transport
    app.state.owns_counter_store = counter_store is None
    app.state.counter_store = counter_store if counter_store is not None else MemoryCounterStore()
    app.state.trust_policy = trust_policy

    configure_security_middleware(app, config)
    add_request_middleware(app)
    register_exception_handlers(app)
    include_api_routes(app)
    add_root_endpoint(app)

    logger.info("FastAPI application configured", title=app.title, version=app.version)
    return app
