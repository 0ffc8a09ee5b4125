"""
FastAPI Application Lifespan Management

Startup opens the rate-limit counter store and loads configured extensions,
shutdown closes the store.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
import structlog

from ..core.loader import load_extensions
from ..core.upstream import UpstreamClient
from ..integration.redis_client import create_counter_store

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management

    An unreachable Ollama is only logged; proxied calls report it per request.
    """
    logger.info("Starting OllamaPress gateway...")
    config = app.state.settings_provider()

    if app.state.owns_counter_store:
        app.state.counter_store = await create_counter_store(config.redis_url)

    load_extensions(app.state.registry, config.get_extension_modules(), use_entry_points=app.state.owns_registry)

    upstream = UpstreamClient(config.ollama, transport=app.state.upstream_transport)
    if await upstream.ping():
        logger.info("Ollama connection verified", url=config.ollama.url)
    else:
        logger.warning("Ollama not reachable at startup", url=config.ollama.url)

    logger.info("OllamaPress gateway started", extensions=len(app.state.registry.list()))

    yield

    logger.info("Shutting down OllamaPress gateway...")
    if app.state.owns_counter_store:
        await app.state.counter_store.close()
    logger.info("OllamaPress gateway shutdown complete")
