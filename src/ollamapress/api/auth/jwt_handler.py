"""
JWT Session Handler for OllamaPress

Bearer tokens stand for an authenticated session (user, role, capabilities).
The same signing key issues short-lived request nonces that mark a call as
coming from a page the gateway itself served.
"""
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field
import jwt
from jwt.exceptions import InvalidTokenError
import structlog

logger = structlog.get_logger()

MANAGE_CAPABILITY = "manage_options"
NONCE_ACTION = "ollamapress_rest"


class SessionUser(BaseModel):
    """Authenticated caller decoded from a session token"""
    user_id: str
    username: str
    role: str = "subscriber"
    capabilities: List[str] = Field(default_factory=list)

    def is_privileged(self, privileged_roles: Iterable[str]) -> bool:
        return MANAGE_CAPABILITY in self.capabilities or self.role in set(privileged_roles)


class JWTHandler:
    """
    Session token and nonce management

    Single Responsibility - only token encoding and validation
    """

    def __init__(self, secret_key: str, nonce_ttl: int = 43200):
        self.secret_key = secret_key
        self.algorithm = "HS256"
        self.access_token_expire = timedelta(hours=24)
        self.nonce_expire = timedelta(seconds=nonce_ttl)

    def _get_current_timestamp(self) -> datetime:
        return datetime.now(timezone.utc)

    def create_session_token(
        self,
        user_id: str,
        username: str,
        role: str = "subscriber",
        capabilities: Optional[List[str]] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a session token for a user

        Args:
            user_id: Stable identifier, also used as rate-limit identity
            username: Display name carried in ``sub``
            role: Role name checked against the privileged roles
            capabilities: Extra grants such as ``manage_options``
            expires_delta: Custom lifetime, defaults to 24 hours

        Returns:
            Encoded JWT token string
        """
        now = self._get_current_timestamp()
        payload = {
            "sub": username,
            "user_id": str(user_id),
            "role": role,
            "capabilities": list(capabilities or []),
            "exp": now + (expires_delta or self.access_token_expire),
            "iat": now,
            "type": "session",
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.info("Session token created", user_id=str(user_id), role=role)
        return token

    def verify_session_token(self, token: str) -> Optional[SessionUser]:
        """Decode a session token, None when invalid or expired"""
        payload = self._decode(token)
        if not payload or payload.get("type") != "session":
            return None

        username = payload.get("sub")
        user_id = payload.get("user_id")
        if username is None or user_id is None:
            logger.warning("Invalid session token payload", claims=sorted(payload))
            return None

        return SessionUser(
            user_id=str(user_id),
            username=username,
            role=payload.get("role", "subscriber"),
            capabilities=payload.get("capabilities", []),
        )

    def create_nonce(self, user_id: str = "0", action: str = NONCE_ACTION) -> str:
        """Issue a request nonce bound to an action"""
        now = self._get_current_timestamp()
        payload = {
            "sub": str(user_id),
            "action": action,
            "exp": now + self.nonce_expire,
            "iat": now,
            "type": "nonce",
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_nonce(self, nonce: str, action: str = NONCE_ACTION) -> bool:
        payload = self._decode(nonce)
        return bool(payload) and payload.get("type") == "nonce" and payload.get("action") == action

    def _decode(self, token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except InvalidTokenError as e:
            logger.debug(
                "Token validation failed",
                error=str(e),
                token_preview=token[:20] + "..." if len(token) > 20 else token,
            )
            return None
