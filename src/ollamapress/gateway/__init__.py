"""OllamaPress gateway settings, errors and logging"""

from .config import AccessConfig, GatewayConfig, OllamaConfig, get_config
from .exceptions import (
    AuthError,
    ExtensionError,
    GatewayError,
    OllamaPressError,
    RateLimitError,
    ServiceConfigurationError,
)

__all__ = [
    "AccessConfig",
    "GatewayConfig",
    "OllamaConfig",
    "get_config",
    "AuthError",
    "ExtensionError",
    "GatewayError",
    "OllamaPressError",
    "RateLimitError",
    "ServiceConfigurationError",
]
