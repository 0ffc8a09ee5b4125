"""
Security Utilities for OllamaPress

Fixed-window rate limiting and the model allow-list check.
"""
import hashlib
from typing import List, Optional

import structlog

from ...gateway.exceptions import AuthError

logger = structlog.get_logger()

RATE_KEY_PREFIX = "ollamapress_rate_"


def rate_limit_identity(user_id: Optional[str], client_host: Optional[str]) -> str:
    """Identity of a caller, the user id when authenticated, the remote address otherwise"""
    if user_id:
        return f"user:{user_id}"
    return f"ip:{client_host or 'unknown'}"


class RateLimiter:
    """
    Fixed-window rate limiter over a counter store

    The first hit of a window creates the counter with a TTL equal to the
    window; the store's expiry is what resets it.
    """

    def __init__(self, store, max_requests: int = 60, window_seconds: int = 60):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @staticmethod
    def key_for(identity: str) -> str:
        return RATE_KEY_PREFIX + hashlib.sha256(identity.encode("utf-8")).hexdigest()

    async def is_allowed(self, identity: str) -> bool:
        """Count this request and report whether it fits in the window"""
        count = await self.store.incr(self.key_for(identity), self.window_seconds)
        if count > self.max_requests:
            logger.warning("Rate limit exceeded", identity_key=self.key_for(identity)[:24],
                           requests=count, limit=self.max_requests)
            return False
        return True


def check_model_allowed(model: Optional[str], allowed_models: List[str], privileged: bool) -> None:
    """Reject a non-privileged caller asking for a model outside the allow-list"""
    if privileged or not allowed_models or not model:
        return
    if model not in allowed_models:
        logger.warning("Model not allowed", model=model)
        raise AuthError(
            f"Model '{model}' is not allowed. Allowed models: {', '.join(allowed_models)}",
            code="model_not_allowed",
            status_code=403,
            details={"allowed_models": allowed_models},
        )
