# src/ollamapress/gateway/exceptions.py
"""
OllamaPress Exceptions
"""
from typing import Any, Dict, Optional


class OllamaPressError(Exception):
    """Base exception pour OllamaPress"""

    pass


class GatewayError(OllamaPressError):
    """Erreur rendue au client avec un code, un message et un statut HTTP"""

    status_code = 500
    code = "internal_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status_code}
        data.update(self.details)
        return {"code": self.code, "message": self.message, "data": data}


class AuthError(GatewayError):
    """Unauthenticated, unprivileged, disallowed origin or disallowed model"""

    status_code = 401
    code = "rest_forbidden"


class RateLimitError(GatewayError):
    """Too many requests in the current window"""

    status_code = 429
    code = "rate_limited"


class ExtensionError(GatewayError):
    """Custom endpoint missing, broken or failing"""

    status_code = 500
    code = "endpoint_error"


class ServiceConfigurationError(OllamaPressError):
    """Invalid service definition passed to the registry"""

    def __init__(self, message: str, service_id: Optional[str] = None):
        super().__init__(message)
        self.service_id = service_id


class UpstreamTransportError(OllamaPressError):
    """Ollama unreachable or timed out"""

    pass


class UpstreamDecodeError(OllamaPressError):
    """Ollama returned something that is not JSON"""

    pass
