"""
Extension Dispatcher

Runs a custom endpoint contributed by a registered service: route resolution,
access check at the service's tier, argument validation, global middleware,
then the endpoint callback. The dispatcher itself is handed to callbacks so
they can reach the upstream through ``make_ollama_request``.
"""
import inspect
from typing import Any, Dict, Optional

from fastapi import Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
import structlog

from ..core.context import ProxyRequest
from ..core.registry import ServiceRegistry
from ..core.service import EndpointDefinition
from ..core.upstream import UpstreamClient
from ..gateway.exceptions import ExtensionError, GatewayError
from .auth.gate import AccessGate
from .auth.trust import TrustContext

logger = structlog.get_logger()


def validate_arguments(endpoint: EndpointDefinition, params: Dict[str, Any]) -> Dict[str, Any]:
    """Apply declared defaults, check required arguments and coerce types"""
    validated = dict(params)
    for name, spec in endpoint.args.items():
        value = params.get(name)
        if value is None:
            if spec.required:
                raise ExtensionError(
                    f"Missing parameter(s): {name}",
                    code="rest_missing_callback_param",
                    status_code=400,
                    details={"params": [name]},
                )
            if spec.default is not None:
                validated[name] = spec.default
            continue
        try:
            validated[name] = spec.coerce(value)
        except ValueError as e:
            raise ExtensionError(
                f"Invalid parameter(s): {name} {e}",
                code="rest_invalid_param",
                status_code=400,
                details={"params": {name: str(e)}},
            )
    return validated


class ExtensionDispatcher:
    """Executes registered extension endpoints"""

    def __init__(self, registry: ServiceRegistry, upstream: UpstreamClient):
        self.registry = registry
        self.upstream = upstream

    async def make_ollama_request(self, path: str, body: Optional[Dict[str, Any]] = None, method: str = "POST") -> Dict[str, Any]:
        """Forward a request to Ollama on behalf of an extension"""
        return await self.upstream.send(path, body or {}, method)

    async def dispatch(self, request: ProxyRequest, gate: AccessGate, ctx: TrustContext) -> Response:
        resolved = self.registry.resolve(request.method, request.route)
        if resolved is None:
            raise ExtensionError("Custom endpoint not found", code="endpoint_not_found", status_code=404)

        service, endpoint = resolved.service, resolved.endpoint
        await gate.check(service.permissions, request.user, ctx)

        request.params = validate_arguments(endpoint, request.params)
        request = await self._run_middleware(request, resolved.route)

        if endpoint.callback is None:
            raise ExtensionError("No callback defined for this endpoint", code="no_callback", status_code=500)

        try:
            result = endpoint.callback(request, self)
            if inspect.isawaitable(result):
                result = await result
        except GatewayError:
            raise
        except Exception as e:
            logger.error("Custom endpoint failed", service_id=service.service_id,
                         route=resolved.route, error=str(e), error_type=type(e).__name__)
            raise ExtensionError(f"Error executing custom endpoint: {e}", code="endpoint_error", status_code=500)

        if isinstance(result, Response):
            return result
        return JSONResponse(jsonable_encoder(result))

    async def _run_middleware(self, request: ProxyRequest, route: str) -> ProxyRequest:
        try:
            processed = await self.registry.process_middleware(request, route)
        except GatewayError:
            raise
        except Exception as e:
            logger.error("Middleware failed", route=route, error=str(e), error_type=type(e).__name__)
            raise ExtensionError(f"Error processing middleware: {e}", code="middleware_error", status_code=500)
        if not isinstance(processed, ProxyRequest):
            raise ExtensionError("Middleware must return the request", code="middleware_error", status_code=500)
        return processed
