# src/core/service.py
"""
Service definitions contributed by extensions.

A service bundles custom endpoints, request middleware, lifecycle hooks and
value filters. Definitions are validated when they are registered, so a bad
permission tier or a non-callable middleware fails at registration time rather
than on the first request.
"""
import re
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .payloads import to_bool

SERVICE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
EXTENSION_NAMESPACE = "/ollama/v1/extensions"

PermissionTier = Literal["read", "manage"]
ArgType = Literal["string", "integer", "number", "boolean", "array", "object"]
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class ArgSpec(BaseModel):
    """Declared argument of a custom endpoint"""
    required: bool = False
    type: ArgType = "string"
    default: Any = None
    enum: Optional[List[Any]] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    description: str = ""

    def coerce(self, value: Any) -> Any:
        """Convert a raw parameter to the declared type and check constraints.

        Raises ValueError with a caller-facing message when the value does not
        fit.
        """
        converted = self._convert(value)
        if self.enum is not None and converted not in self.enum:
            raise ValueError(f"must be one of {', '.join(str(v) for v in self.enum)}")
        if self.type in ("integer", "number"):
            if self.minimum is not None and converted < self.minimum:
                raise ValueError(f"must be greater than or equal to {self.minimum:g}")
            if self.maximum is not None and converted > self.maximum:
                raise ValueError(f"must be less than or equal to {self.maximum:g}")
        return converted

    def _convert(self, value: Any) -> Any:
        if self.type == "string":
            if isinstance(value, (dict, list, bool)):
                raise ValueError("is not of type string")
            return str(value)
        if self.type == "integer":
            if isinstance(value, bool):
                raise ValueError("is not of type integer")
            if isinstance(value, float) and value.is_integer():
                return int(value)
            if isinstance(value, int):
                return value
            if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
                return int(value)
            raise ValueError("is not of type integer")
        if self.type == "number":
            if isinstance(value, bool):
                raise ValueError("is not of type number")
            if isinstance(value, (int, float)):
                return value
            try:
                return float(value)
            except (TypeError, ValueError):
                raise ValueError("is not of type number")
        if self.type == "boolean":
            try:
                return to_bool(value)
            except ValueError:
                raise ValueError("is not of type boolean")
        if self.type == "array":
            if isinstance(value, list):
                return value
            if isinstance(value, str):
                return [item.strip() for item in value.split(",") if item.strip()]
            raise ValueError("is not of type array")
        if not isinstance(value, dict):
            raise ValueError("is not of type object")
        return value


class EndpointDefinition(BaseModel):
    """One custom route owned by a service"""
    path: str
    methods: HttpMethod = "POST"
    callback: Optional[Callable[..., Any]] = None
    args: Dict[str, ArgSpec] = Field(default_factory=dict)

    @field_validator("path")
    @classmethod
    def _path_starts_with_slash(cls, value: str) -> str:
        if not value.startswith("/") or value == "/":
            raise ValueError("endpoint path must start with '/' and name a route")
        return value.rstrip("/")

    @field_validator("methods", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class ServiceConfig(BaseModel):
    """Caller-supplied service definition, defaults merged under given fields"""
    name: Optional[str] = None
    description: str = ""
    version: str = "1.0.0"
    author: str = ""
    permissions: PermissionTier = "read"
    priority: int = 10
    endpoints: List[EndpointDefinition] = Field(default_factory=list)
    middleware: List[Callable[..., Any]] = Field(default_factory=list)
    hooks: Dict[str, Callable[..., Any]] = Field(default_factory=dict)
    filters: Dict[str, Callable[..., Any]] = Field(default_factory=dict)

    @field_validator("endpoints", mode="before")
    @classmethod
    def _endpoints_from_mapping(cls, value: Any) -> Any:
        # {"/translate": {...}} is accepted alongside a list of definitions
        if isinstance(value, dict):
            return [{"path": path, **config} for path, config in value.items()]
        return value


class Service(ServiceConfig):
    """A registered service, frozen for the lifetime of its registration"""
    model_config = ConfigDict(frozen=True)

    service_id: str

    def route_for(self, endpoint: EndpointDefinition) -> str:
        return f"{EXTENSION_NAMESPACE}/{self.service_id}{endpoint.path}"

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.service_id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "author": self.author,
            "endpoints_count": len(self.endpoints),
            "middleware_count": len(self.middleware),
            "permissions": self.permissions,
        }

    def describe(self) -> Dict[str, Any]:
        """Full JSON-safe descriptor, callables rendered by qualified name"""
        return {
            **self.summary(),
            "priority": self.priority,
            "endpoints": [
                {
                    "route": self.route_for(endpoint),
                    "methods": endpoint.methods,
                    "callback": _callable_name(endpoint.callback),
                    "args": {name: spec.model_dump(exclude_none=True) for name, spec in endpoint.args.items()},
                }
                for endpoint in self.endpoints
            ],
            "middleware": [_callable_name(mw) for mw in self.middleware],
            "hooks": sorted(self.hooks),
            "filters": sorted(self.filters),
        }


def _callable_name(func: Optional[Callable[..., Any]]) -> Optional[str]:
    if func is None:
        return None
    return getattr(func, "__qualname__", None) or type(func).__name__
