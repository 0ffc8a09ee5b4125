# src/core/context.py
"""
Request object handed to middleware, hooks and extension callbacks.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..api.auth.jwt_handler import SessionUser


@dataclass
class ProxyRequest:
    """Mutable view of an inbound call.

    ``params`` holds the query string merged with the JSON body; middleware
    may rewrite it with ``set_param`` or return a new request altogether.
    """
    method: str
    route: str
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    user: Optional[SessionUser] = None
    client_host: Optional[str] = None

    def get_param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)

    def set_param(self, name: str, value: Any) -> None:
        self.params[name] = value

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)
