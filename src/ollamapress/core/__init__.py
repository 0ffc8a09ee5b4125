"""
OllamaPress Core
Service registry, request context, payload marshalling and the Ollama client
"""

from .context import ProxyRequest
from .registry import SERVICE_REGISTERED, SERVICE_UNREGISTERED, ServiceRegistry
from .service import ArgSpec, EndpointDefinition, Service, ServiceConfig
from .upstream import UpstreamClient

__all__ = [
    "ProxyRequest",
    "SERVICE_REGISTERED",
    "SERVICE_UNREGISTERED",
    "ServiceRegistry",
    "ArgSpec",
    "EndpointDefinition",
    "Service",
    "ServiceConfig",
    "UpstreamClient",
]
