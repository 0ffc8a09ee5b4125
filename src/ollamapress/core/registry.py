# src/core/registry.py
"""
Service Registry

In-process table of extension services. One instance is built by the
application factory and shared through ``app.state``; there is no module-level
registry.

Route, middleware and service tables are replaced wholesale on every change, so
a lookup running between two awaits always sees either the state before a
registration or the state after it.
"""
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError
import structlog

from ..gateway.exceptions import ServiceConfigurationError
from .context import ProxyRequest
from .service import SERVICE_ID_PATTERN, EndpointDefinition, Service, ServiceConfig

logger = structlog.get_logger()

SERVICE_REGISTERED = "service_registered"
SERVICE_UNREGISTERED = "service_unregistered"

RouteKey = Tuple[str, str]


@dataclass(frozen=True)
class MiddlewareEntry:
    service_id: str
    callback: Callable[..., Any]
    priority: int
    sequence: int


@dataclass(frozen=True)
class ResolvedEndpoint:
    service: Service
    endpoint: EndpointDefinition
    route: str


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ServiceRegistry:
    """
    Registry of extension services

    Single Responsibility - storage and ordering only, access checks live in the gate
    """

    def __init__(self):
        self._services: Dict[str, Service] = {}
        self._routes: Dict[RouteKey, ResolvedEndpoint] = {}
        self._middleware: List[MiddlewareEntry] = []
        self._listeners: Dict[str, List[Callable[..., Any]]] = {}
        self._sequence = 0

    def register(self, service_id: str, config: Union[ServiceConfig, Mapping[str, Any], None] = None) -> bool:
        """
        Register a service

        Returns False when the id is taken or one of the derived routes is
        already claimed by another service. Raises ServiceConfigurationError
        when the definition itself is invalid.
        """
        if service_id in self._services:
            logger.warning("Service already registered", service_id=service_id)
            return False

        service = self._build_service(service_id, config)

        routes = dict(self._routes)
        for endpoint in service.endpoints:
            route = service.route_for(endpoint)
            key = (endpoint.methods, route)
            if key in routes:
                owner = routes[key].service.service_id
                logger.warning("Route already claimed", service_id=service_id, route=route,
                               method=endpoint.methods, owner=owner)
                return False
            routes[key] = ResolvedEndpoint(service=service, endpoint=endpoint, route=route)

        middleware = list(self._middleware)
        for callback in service.middleware:
            self._sequence += 1
            middleware.append(MiddlewareEntry(service_id, callback, service.priority, self._sequence))
        middleware.sort(key=lambda entry: (entry.priority, entry.sequence))

        services = dict(self._services)
        services[service_id] = service

        self._services, self._routes, self._middleware = services, routes, middleware

        logger.info("Service registered", service_id=service_id,
                    endpoints=len(service.endpoints), middleware=len(service.middleware),
                    priority=service.priority)
        self._emit(SERVICE_REGISTERED, service_id, service)
        return True

    def unregister(self, service_id: str) -> bool:
        """Remove a service along with its routes and middleware"""
        if service_id not in self._services:
            return False

        services = {sid: svc for sid, svc in self._services.items() if sid != service_id}
        routes = {key: res for key, res in self._routes.items() if res.service.service_id != service_id}
        middleware = [entry for entry in self._middleware if entry.service_id != service_id]

        self._services, self._routes, self._middleware = services, routes, middleware

        logger.info("Service unregistered", service_id=service_id)
        self._emit(SERVICE_UNREGISTERED, service_id)
        return True

    def get(self, service_id: str) -> Optional[Service]:
        return self._services.get(service_id)

    def has(self, service_id: str) -> bool:
        return service_id in self._services

    def list(self) -> List[Service]:
        """Services in registration order"""
        return list(self._services.values())

    def routes(self) -> Dict[RouteKey, ResolvedEndpoint]:
        return dict(self._routes)

    def resolve(self, method: str, route: str) -> Optional[ResolvedEndpoint]:
        return self._routes.get((method.upper(), route.rstrip("/")))

    def middleware(self) -> List[MiddlewareEntry]:
        return list(self._middleware)

    async def process_middleware(self, request: ProxyRequest, route: str) -> ProxyRequest:
        """Thread the request through every middleware in priority order"""
        for entry in self._middleware:
            request = await _maybe_await(entry.callback(request, route))
        return request

    async def execute_hooks(self, hook_name: str, *args: Any) -> None:
        """
        Invoke every service hook registered under ``hook_name``

        Each hook runs in isolation: a failure is logged and the remaining
        hooks still run.
        """
        for service in self.list():
            hook = service.hooks.get(hook_name)
            if hook is None:
                continue
            try:
                await _maybe_await(hook(*args))
            except Exception as e:
                logger.error("Hook failed", hook=hook_name, service_id=service.service_id,
                             error=str(e), error_type=type(e).__name__)

    async def apply_filters(self, filter_name: str, value: Any, *args: Any) -> Any:
        """Pass ``value`` through each service filter in registration order"""
        for service in self.list():
            flt = service.filters.get(filter_name)
            if flt is not None:
                value = await _maybe_await(flt(value, *args))
        return value

    def subscribe(self, event: str, callback: Callable[..., Any]) -> None:
        """Listen for ``service_registered`` / ``service_unregistered``"""
        self._listeners.setdefault(event, []).append(callback)

    def _emit(self, event: str, *args: Any) -> None:
        for callback in self._listeners.get(event, []):
            try:
                callback(*args)
            except Exception as e:
                logger.error("Registry listener failed", registry_event=event, error=str(e))

    def _build_service(self, service_id: str, config: Union[ServiceConfig, Mapping[str, Any], None]) -> Service:
        if not SERVICE_ID_PATTERN.match(service_id or ""):
            raise ServiceConfigurationError(f"Invalid service id '{service_id}'", service_id=service_id)

        try:
            if config is None:
                config = ServiceConfig()
            elif not isinstance(config, ServiceConfig):
                config = ServiceConfig.model_validate(dict(config))
            fields = {name: getattr(config, name) for name in ServiceConfig.model_fields}
            fields["name"] = fields["name"] or service_id
            return Service(service_id=service_id, **fields)
        except ValidationError as e:
            raise ServiceConfigurationError(
                f"Invalid configuration for service '{service_id}': {e.error_count()} error(s)\n{e}",
                service_id=service_id,
            ) from e
