"""
Common Response Models for the OllamaPress API

Error envelope and health payload shared by the routes.
"""
from typing import Any, Dict
from datetime import datetime, timezone
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every rejected request"""
    code: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)  # always carries "status"


class HealthResponse(BaseModel):
    """Health check response"""
    service_name: str = "OllamaPress Gateway"
    version: str
    status: str = "healthy"
    uptime_seconds: int
    dependencies: Dict[str, str] = Field(default_factory=dict)  # dependency -> status
    extensions: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Not allowed"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
}
