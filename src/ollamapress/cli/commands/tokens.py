"""OllamaPress credential commands

Mint session tokens, request nonces and per-service tokens with the
configured secrets.
"""
from datetime import timedelta
from typing import List, Optional

import typer
from rich.console import Console

from ...api.auth.jwt_handler import NONCE_ACTION, JWTHandler
from ...api.auth.trust import derive_service_token
from ...core.service import SERVICE_ID_PATTERN
from ...gateway.config import get_config
from ..utils.decorators import handle_exceptions

console = Console()


@handle_exceptions
def token(
    username: str = typer.Argument(..., help="Username carried by the session"),
    user_id: Optional[str] = typer.Option(None, "--user-id", "-u", help="User id, defaults to the username"),
    role: str = typer.Option("subscriber", "--role", "-r", help="Role checked against the privileged roles"),
    capability: Optional[List[str]] = typer.Option(None, "--capability", "-c", help="Extra capability, repeatable"),
    hours: int = typer.Option(24, "--hours", help="Token lifetime in hours"),
):
    """Mint a session bearer token"""
    config = get_config()
    handler = JWTHandler(secret_key=config.jwt_secret, nonce_ttl=config.nonce_ttl)
    value = handler.create_session_token(
        user_id=user_id or username,
        username=username,
        role=role,
        capabilities=capability or [],
        expires_delta=timedelta(hours=hours),
    )
    console.print(value, soft_wrap=True)


@handle_exceptions
def nonce(
    user_id: str = typer.Option("0", "--user-id", "-u", help="User id bound to the nonce"),
    action: str = typer.Option(NONCE_ACTION, "--action", help="Action the nonce is valid for"),
):
    """Issue a request nonce for X-OllamaPress-Nonce"""
    config = get_config()
    handler = JWTHandler(secret_key=config.jwt_secret, nonce_ttl=config.nonce_ttl)
    console.print(handler.create_nonce(user_id=user_id, action=action), soft_wrap=True)


@handle_exceptions
def service_token(service_id: str = typer.Argument(..., help="Registered service id")):
    """Print the service token a trusted extension must send"""
    if not SERVICE_ID_PATTERN.fullmatch(service_id):
        raise ValueError(f"'{service_id}' is not a valid service id")
    config = get_config()
    console.print(derive_service_token(service_id, config.site_url, config.service_token_salt))
