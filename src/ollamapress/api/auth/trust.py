"""
Internal Request Trust Policy

Decides whether an unauthenticated request comes from a trusted, internal
caller. The policy is an ordered list of named strategies; the first one that
matches wins. Strategies are small objects so each can be tested, reordered or
left out through configuration.
"""
import hashlib
import hmac
import ipaddress
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

import structlog

from ...core.registry import ServiceRegistry
from .jwt_handler import JWTHandler

logger = structlog.get_logger()

SERVICE_TOKEN_HEADER = "x-ollamapress-service-token"
PLUGIN_HEADER = "x-ollamapress-plugin"
NONCE_HEADER = "x-ollamapress-nonce"
NONCE_QUERY_PARAM = "_wpnonce"
INTERNAL_SCOPE_MARKER = "ollamapress.internal"


@dataclass
class TrustContext:
    """What the strategies may look at, extracted from the ASGI request"""
    headers: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, str] = field(default_factory=dict)
    client_host: Optional[str] = None
    has_client_socket: bool = True
    internal_marker: bool = False


def derive_service_token(service_id: str, site_url: str, salt: str = "") -> str:
    """Token a registered service presents to be trusted as internal"""
    return hashlib.sha256(f"{salt}{service_id}{site_url}".encode("utf-8")).hexdigest()


class TrustStrategy(Protocol):
    name: str

    def matches(self, ctx: TrustContext) -> bool:
        ...


class ServiceTokenStrategy:
    """Header carries the derived token of a registered service"""
    name = "service_token"

    def __init__(self, registry: ServiceRegistry, site_url: str, salt: str = ""):
        self.registry = registry
        self.site_url = site_url
        self.salt = salt

    def matches(self, ctx: TrustContext) -> bool:
        presented = ctx.headers.get(SERVICE_TOKEN_HEADER)
        if not presented:
            return False
        for service in self.registry.list():
            expected = derive_service_token(service.service_id, self.site_url, self.salt)
            if hmac.compare_digest(presented, expected):
                return True
        return False


class PluginIdentityStrategy:
    """Header names a registered service (trust on presence)"""
    name = "plugin_identity"

    def __init__(self, registry: ServiceRegistry):
        self.registry = registry

    def matches(self, ctx: TrustContext) -> bool:
        plugin = ctx.headers.get(PLUGIN_HEADER)
        return bool(plugin) and self.registry.has(plugin)


class NonceStrategy:
    """Valid request nonce issued by this gateway"""
    name = "nonce"

    def __init__(self, jwt_handler: JWTHandler):
        self.jwt_handler = jwt_handler

    def matches(self, ctx: TrustContext) -> bool:
        nonce = ctx.headers.get(NONCE_HEADER) or ctx.query.get(NONCE_QUERY_PARAM)
        return bool(nonce) and self.jwt_handler.verify_nonce(nonce)


class HostContextStrategy:
    """Call made from inside the gateway process, no client socket"""
    name = "host_context"

    def matches(self, ctx: TrustContext) -> bool:
        return ctx.internal_marker or not ctx.has_client_socket


class LoopbackStrategy:
    """Client address is a loopback address"""
    name = "loopback"

    def matches(self, ctx: TrustContext) -> bool:
        if not ctx.client_host:
            return False
        try:
            return ipaddress.ip_address(ctx.client_host).is_loopback
        except ValueError:
            return False


class TrustPolicy:
    """Ordered strategies, any match marks the request as internal"""

    def __init__(self, strategies: List[TrustStrategy]):
        self.strategies = strategies

    def match(self, ctx: TrustContext) -> Optional[str]:
        """Name of the first matching strategy, None when the request is external"""
        for strategy in self.strategies:
            if strategy.matches(ctx):
                return strategy.name
        return None


def build_trust_policy(
    names: List[str],
    registry: ServiceRegistry,
    jwt_handler: JWTHandler,
    site_url: str,
    salt: str = "",
) -> TrustPolicy:
    """Build a policy from strategy names, unknown names are logged and skipped"""
    factories = {
        ServiceTokenStrategy.name: lambda: ServiceTokenStrategy(registry, site_url, salt),
        PluginIdentityStrategy.name: lambda: PluginIdentityStrategy(registry),
        NonceStrategy.name: lambda: NonceStrategy(jwt_handler),
        HostContextStrategy.name: HostContextStrategy,
        LoopbackStrategy.name: LoopbackStrategy,
    }
    strategies: List[TrustStrategy] = []
    for name in names:
        factory = factories.get(name)
        if factory is None:
            logger.warning("Unknown trust strategy ignored", strategy=name)
            continue
        strategies.append(factory())
    return TrustPolicy(strategies)
