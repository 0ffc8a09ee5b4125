"""
Access Gate

Per-request permission decision for the ``read`` and ``manage`` tiers. A
rejection is raised as an AuthError or RateLimitError before any upstream call
is made; returning normally means the request is permitted.
"""
from typing import Optional

import structlog

from ...gateway.config import AccessConfig
from ...gateway.exceptions import AuthError, RateLimitError
from .jwt_handler import SessionUser
from .security import RateLimiter, rate_limit_identity
from .trust import TrustContext, TrustPolicy

logger = structlog.get_logger()

READ = "read"
MANAGE = "manage"


class AccessGate:
    """
    Access decisions for one request

    Built per request from the current settings, so toggling external access or
    rate limiting applies to the next call.
    """

    def __init__(self, config: AccessConfig, trust_policy: TrustPolicy, rate_limiter: RateLimiter):
        self.config = config
        self.trust_policy = trust_policy
        self.rate_limiter = rate_limiter

    def is_privileged(self, user: Optional[SessionUser]) -> bool:
        return user is not None and user.is_privileged(self.config.get_privileged_roles())

    async def check(self, tier: str, user: Optional[SessionUser], ctx: TrustContext) -> None:
        if tier == MANAGE:
            self._check_manage(user)
        else:
            await self._check_read(user, ctx)

    def _check_manage(self, user: Optional[SessionUser]) -> None:
        if user is None:
            logger.info("Request rejected", tier=MANAGE, reason="unauthenticated")
            raise AuthError("You must be logged in to access this resource.", status_code=401)
        if not self.is_privileged(user):
            logger.info("Request rejected", tier=MANAGE, reason="unprivileged", user_id=user.user_id)
            raise AuthError("You cannot access this resource.", status_code=403)

    async def _check_read(self, user: Optional[SessionUser], ctx: TrustContext) -> None:
        if user is not None:
            return

        strategy = self.trust_policy.match(ctx)
        if strategy is not None:
            logger.debug("Internal request trusted", strategy=strategy)
            return

        if not self.config.allow_external_access:
            logger.info("Request rejected", tier=READ, reason="external_access_disabled",
                        client=ctx.client_host)
            raise AuthError("You must be logged in to access this resource.", status_code=401)

        origin = ctx.headers.get("origin", "")
        allowed_origins = self.config.get_allowed_origins()
        if origin and allowed_origins and origin not in allowed_origins:
            logger.info("Request rejected", tier=READ, reason="origin_not_allowed", origin=origin)
            raise AuthError("Origin not allowed.", code="origin_not_allowed", status_code=403)

        if self.config.rate_limit_enabled:
            identity = rate_limit_identity(None, ctx.client_host)
            if not await self.rate_limiter.is_allowed(identity):
                raise RateLimitError(
                    "Rate limit exceeded. Please try again later.",
                    details={"limit": self.rate_limiter.max_requests,
                             "window_seconds": self.rate_limiter.window_seconds},
                )
