"""Shared fixtures: a gateway app wired to a fake Ollama server."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from ollamapress.api.auth.jwt_handler import JWTHandler
from ollamapress.api.server import create_app
from ollamapress.core.registry import ServiceRegistry
from ollamapress.gateway.config import AccessConfig, GatewayConfig, OllamaConfig
from ollamapress.integration.redis_client import MemoryCounterStore

JWT_SECRET = "test-secret"
OLLAMA_URL = "http://ollama.test/api"


def make_settings(**access) -> GatewayConfig:
    return GatewayConfig(
        jwt_secret=JWT_SECRET,
        site_url="http://testserver",
        redis_url="",
        extension_modules="",
        ollama=OllamaConfig(url=OLLAMA_URL, default_model="llama3.2"),
        access=AccessConfig(**access),
    )


class FakeOllama:
    """Records upstream calls and answers like a minimal Ollama server."""

    def __init__(self):
        self.calls = []
        self.replies = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append({"method": request.method, "path": request.url.path, "body": body})
        if request.url.path == "/":
            return httpx.Response(200, text="Ollama is running")
        path = request.url.path[len("/api"):]
        reply = self.replies.get(path, {"ok": True, "path": path})
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json=reply)

    @property
    def last(self):
        return self.calls[-1]

    @property
    def api_calls(self):
        return [call for call in self.calls if call["path"] != "/"]


class Gateway:
    """Test harness bundling the app, its collaborators and a client."""

    def __init__(self, **access):
        self.settings = make_settings(**access)
        self.registry = ServiceRegistry()
        self.ollama = FakeOllama()
        self.store = MemoryCounterStore()
        self.app = create_app(
            settings_provider=lambda: self.settings,
            registry=self.registry,
            upstream_transport=httpx.MockTransport(self.ollama.handler),
            counter_store=self.store,
        )
        self.client = TestClient(self.app)
        self.jwt = JWTHandler(secret_key=JWT_SECRET)

    def token(self, user_id="7", username="alice", role="subscriber", capabilities=None):
        return self.jwt.create_session_token(user_id, username, role=role, capabilities=capabilities)

    def auth(self, **kwargs):
        return {"Authorization": f"Bearer {self.token(**kwargs)}"}

    def admin(self):
        return self.auth(user_id="1", username="admin", role="administrator")


@pytest.fixture
def gateway():
    return Gateway()


@pytest.fixture
def external_gateway():
    return Gateway(allow_external_access=True)
