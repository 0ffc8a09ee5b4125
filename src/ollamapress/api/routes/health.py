"""
Health Check Routes for OllamaPress

Unauthenticated liveness endpoint reporting upstream reachability and the
rate-limit store in use.
"""
from fastapi import APIRouter, Request
import time
import structlog

from ...integration.redis_client import RedisCounterStore
from ..dependencies import RegistryInterface, SettingsInterface, UpstreamInterface
from ..models.responses import HealthResponse

logger = structlog.get_logger()
router = APIRouter()

# Track service start time for uptime calculation
SERVICE_START_TIME = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    settings: SettingsInterface,
    registry: RegistryInterface,
    upstream: UpstreamInterface,
):
    """
    Gateway health

    Degraded when Ollama does not answer; the gateway itself still serves
    requests and reports upstream failures as data.
    """
    ollama_ok = await upstream.ping()
    store = request.app.state.counter_store
    dependencies = {
        "ollama": "healthy" if ollama_ok else "unreachable",
        "rate_limit_store": "redis" if isinstance(store, RedisCounterStore) else "memory",
    }
    if not ollama_ok:
        logger.warning("Ollama unreachable during health check", url=settings.ollama.url)

    return HealthResponse(
        version=settings.version,
        status="healthy" if ollama_ok else "degraded",
        uptime_seconds=int(time.time() - SERVICE_START_TIME),
        dependencies=dependencies,
        extensions=len(registry.list()),
    )
