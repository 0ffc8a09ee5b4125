"""
Dependency Injection for the OllamaPress API

FastAPI dependencies resolving settings, the registry, the upstream client,
the current session and the access gate from ``app.state``.
"""
from dataclasses import dataclass
import json
from typing import Annotated, Any, Callable, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import structlog

from ..core.context import ProxyRequest
from ..core.registry import ServiceRegistry
from ..core.upstream import UpstreamClient
from ..gateway.config import GatewayConfig
from ..gateway.exceptions import GatewayError
from .auth.gate import AccessGate
from .auth.jwt_handler import JWTHandler, SessionUser
from .auth.security import RateLimiter
from .auth.trust import INTERNAL_SCOPE_MARKER, TrustContext, build_trust_policy

logger = structlog.get_logger()
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> GatewayConfig:
    """Current settings, read on every request"""
    return request.app.state.settings_provider()


def get_registry(request: Request) -> ServiceRegistry:
    return request.app.state.registry


def get_jwt_handler(settings: Annotated[GatewayConfig, Depends(get_settings)]) -> JWTHandler:
    return JWTHandler(secret_key=settings.jwt_secret, nonce_ttl=settings.nonce_ttl)


def get_upstream(request: Request, settings: Annotated[GatewayConfig, Depends(get_settings)]) -> UpstreamClient:
    return UpstreamClient(settings.ollama, transport=request.app.state.upstream_transport)


def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    jwt_handler: Annotated[JWTHandler, Depends(get_jwt_handler)],
) -> Optional[SessionUser]:
    """Session user from the bearer token, None for anonymous callers"""
    if credentials is None:
        return None
    user = jwt_handler.verify_session_token(credentials.credentials)
    if user is None:
        logger.info("Ignoring invalid session token")
    return user


def build_trust_context(request: Request) -> TrustContext:
    client = request.scope.get("client")
    return TrustContext(
        headers={key.lower(): value for key, value in request.headers.items()},
        query=dict(request.query_params),
        client_host=client[0] if client else None,
        has_client_socket=client is not None,
        internal_marker=bool(request.scope.get(INTERNAL_SCOPE_MARKER)),
    )


def build_proxy_request(request: Request, params: Dict[str, Any], user: Optional[SessionUser]) -> ProxyRequest:
    client = request.scope.get("client")
    return ProxyRequest(
        method=request.method,
        route=request.url.path,
        params=params,
        headers={key.lower(): value for key, value in request.headers.items()},
        user=user,
        client_host=client[0] if client else None,
    )


def get_gate(
    request: Request,
    settings: Annotated[GatewayConfig, Depends(get_settings)],
    registry: Annotated[ServiceRegistry, Depends(get_registry)],
    jwt_handler: Annotated[JWTHandler, Depends(get_jwt_handler)],
) -> AccessGate:
    policy = request.app.state.trust_policy or build_trust_policy(
        settings.access.get_trust_strategies(),
        registry,
        jwt_handler,
        site_url=settings.site_url,
        salt=settings.service_token_salt,
    )
    limiter = RateLimiter(
        request.app.state.counter_store,
        max_requests=settings.access.rate_limit_requests,
        window_seconds=settings.access.rate_limit_window,
    )
    return AccessGate(settings.access, policy, limiter)


async def read_params(request: Request) -> Dict[str, Any]:
    """Query string merged with the JSON body, body values win"""
    params: Dict[str, Any] = dict(request.query_params)
    raw = await request.body()
    if raw.strip():
        try:
            body = json.loads(raw)
        except ValueError:
            raise GatewayError("Invalid JSON body.", code="rest_invalid_json", status_code=400)
        if not isinstance(body, dict):
            raise GatewayError("JSON body must be an object.", code="rest_invalid_json", status_code=400)
        params.update(body)
    return params


@dataclass
class AccessGrant:
    """Outcome of a permitted access check"""
    user: Optional[SessionUser]
    privileged: bool


def require_tier(tier: str) -> Callable[..., Any]:
    """Dependency factory running the access gate for a fixed tier"""

    async def _tier_dependency(
        request: Request,
        gate: Annotated[AccessGate, Depends(get_gate)],
        user: Annotated[Optional[SessionUser], Depends(get_current_user)],
    ) -> AccessGrant:
        await gate.check(tier, user, build_trust_context(request))
        return AccessGrant(user=user, privileged=gate.is_privileged(user))

    return _tier_dependency


# Type aliases for dependency injection
SettingsInterface = Annotated[GatewayConfig, Depends(get_settings)]
RegistryInterface = Annotated[ServiceRegistry, Depends(get_registry)]
UpstreamInterface = Annotated[UpstreamClient, Depends(get_upstream)]
GateInterface = Annotated[AccessGate, Depends(get_gate)]
CurrentUser = Annotated[Optional[SessionUser], Depends(get_current_user)]
Params = Annotated[Dict[str, Any], Depends(read_params)]
ReadAccess = Annotated[AccessGrant, Depends(require_tier("read"))]
ManageAccess = Annotated[AccessGrant, Depends(require_tier("manage"))]
