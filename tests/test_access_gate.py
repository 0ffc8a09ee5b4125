"""Tests for the access gate as seen through the HTTP API."""

import pytest

from conftest import Gateway

READ_OPERATIONS = [
    ("POST", "/ollama/v1/generate"),
    ("POST", "/ollama/v1/chat"),
    ("POST", "/ollama/v1/embed"),
    ("GET", "/ollama/v1/models"),
    ("GET", "/ollama/v1/running"),
    ("POST", "/ollama/v1/info"),
    ("GET", "/ollama/v1/extensions"),
]

MANAGE_OPERATIONS = [
    ("POST", "/ollama/v1/create"),
    ("POST", "/ollama/v1/copy"),
    ("DELETE", "/ollama/v1/delete"),
    ("POST", "/ollama/v1/pull"),
    ("POST", "/ollama/v1/push"),
]


class TestReadTier:
    @pytest.mark.parametrize("method,path", READ_OPERATIONS)
    def test_anonymous_rejected_when_external_access_disabled(self, gateway, method, path):
        response = gateway.client.request(method, path)
        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "rest_forbidden"
        assert body["data"]["status"] == 401
        assert gateway.ollama.api_calls == []

    @pytest.mark.parametrize("method,path", READ_OPERATIONS)
    def test_authenticated_user_allowed(self, gateway, method, path):
        response = gateway.client.request(method, path, headers=gateway.auth())
        assert response.status_code == 200

    def test_invalid_token_treated_as_anonymous(self, gateway):
        response = gateway.client.get("/ollama/v1/models", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_anonymous_allowed_when_external_access_enabled(self, external_gateway):
        response = external_gateway.client.get("/ollama/v1/models")
        assert response.status_code == 200
        assert external_gateway.ollama.last["path"] == "/api/tags"

    def test_settings_read_per_request(self, gateway):
        assert gateway.client.get("/ollama/v1/models").status_code == 401
        gateway.settings.access.allow_external_access = True
        assert gateway.client.get("/ollama/v1/models").status_code == 200


class TestManageTier:
    @pytest.mark.parametrize("method,path", MANAGE_OPERATIONS)
    def test_unprivileged_user_forbidden(self, gateway, method, path):
        response = gateway.client.request(method, path, headers=gateway.auth())
        assert response.status_code == 403
        assert gateway.ollama.api_calls == []

    @pytest.mark.parametrize("method,path", MANAGE_OPERATIONS)
    def test_anonymous_unauthorized_even_with_external_access(self, external_gateway, method, path):
        response = external_gateway.client.request(method, path)
        assert response.status_code == 401

    @pytest.mark.parametrize("method,path", MANAGE_OPERATIONS)
    def test_administrator_allowed(self, gateway, method, path):
        response = gateway.client.request(method, path, json={"name": "llama3.2"}, headers=gateway.admin())
        assert response.status_code == 200

    def test_manage_capability_grants_privilege(self, gateway):
        headers = gateway.auth(role="editor", capabilities=["manage_options"])
        response = gateway.client.post("/ollama/v1/pull", json={"name": "llama3.2"}, headers=headers)
        assert response.status_code == 200

    def test_trusted_internal_call_is_not_enough(self, gateway):
        response = gateway.client.post("/ollama/v1/pull", headers={"X-OllamaPress-Nonce": gateway.jwt.create_nonce()})
        assert response.status_code == 401


class TestRateLimit:
    def test_sixty_first_request_rejected(self, external_gateway):
        for _ in range(60):
            assert external_gateway.client.get("/ollama/v1/models").status_code == 200

        response = external_gateway.client.get("/ollama/v1/models")
        assert response.status_code == 429
        body = response.json()
        assert body["code"] == "rate_limited"
        assert body["data"] == {"status": 429, "limit": 60, "window_seconds": 60}

    def test_authenticated_users_not_counted(self, external_gateway):
        for _ in range(61):
            assert external_gateway.client.get("/ollama/v1/models", headers=external_gateway.auth()).status_code == 200

    def test_disabled_rate_limit(self):
        gw = Gateway(allow_external_access=True, rate_limit_enabled=False, rate_limit_requests=1)
        for _ in range(3):
            assert gw.client.get("/ollama/v1/models").status_code == 200

    def test_custom_limit(self):
        gw = Gateway(allow_external_access=True, rate_limit_requests=2)
        assert gw.client.get("/ollama/v1/models").status_code == 200
        assert gw.client.get("/ollama/v1/models").status_code == 200
        assert gw.client.get("/ollama/v1/models").status_code == 429

    def test_rejected_before_upstream(self):
        gw = Gateway(allow_external_access=True, rate_limit_requests=1)
        gw.client.get("/ollama/v1/models")
        gw.client.get("/ollama/v1/models")
        assert len(gw.ollama.api_calls) == 1


class TestOrigins:
    def test_unlisted_origin_rejected(self):
        gw = Gateway(allow_external_access=True, allowed_origins="https://blog.example")
        response = gw.client.get("/ollama/v1/models", headers={"Origin": "https://evil.example"})
        assert response.status_code == 403
        assert response.json()["code"] == "origin_not_allowed"

    def test_listed_origin_allowed(self):
        gw = Gateway(allow_external_access=True, allowed_origins="https://blog.example\nhttps://shop.example")
        response = gw.client.get("/ollama/v1/models", headers={"Origin": "https://shop.example"})
        assert response.status_code == 200

    def test_no_origin_header_allowed(self):
        gw = Gateway(allow_external_access=True, allowed_origins="https://blog.example")
        assert gw.client.get("/ollama/v1/models").status_code == 200


class TestTrustedCallers:
    def test_nonce_header(self, gateway):
        headers = {"X-OllamaPress-Nonce": gateway.jwt.create_nonce()}
        assert gateway.client.get("/ollama/v1/models", headers=headers).status_code == 200

    def test_nonce_query_parameter(self, gateway):
        nonce = gateway.jwt.create_nonce()
        assert gateway.client.get(f"/ollama/v1/models?_wpnonce={nonce}").status_code == 200

    def test_forged_nonce_rejected(self, gateway):
        headers = {"X-OllamaPress-Nonce": "forged"}
        assert gateway.client.get("/ollama/v1/models", headers=headers).status_code == 401

    def test_plugin_header_for_registered_service(self, gateway):
        gateway.registry.register("translator")
        headers = {"X-OllamaPress-Plugin": "translator"}
        assert gateway.client.get("/ollama/v1/models", headers=headers).status_code == 200

    def test_plugin_header_for_unknown_service(self, gateway):
        headers = {"X-OllamaPress-Plugin": "translator"}
        assert gateway.client.get("/ollama/v1/models", headers=headers).status_code == 401

    def test_service_token(self, gateway):
        from ollamapress.api.auth.trust import derive_service_token

        gateway.registry.register("translator")
        token = derive_service_token("translator", gateway.settings.site_url, gateway.settings.service_token_salt)
        headers = {"X-OllamaPress-Service-Token": token}
        assert gateway.client.get("/ollama/v1/models", headers=headers).status_code == 200

    def test_disabled_strategy_not_consulted(self):
        gw = Gateway(trust_strategies="loopback")
        headers = {"X-OllamaPress-Nonce": gw.jwt.create_nonce()}
        assert gw.client.get("/ollama/v1/models", headers=headers).status_code == 401

    def test_in_process_host_marks_scope(self, gateway):
        from fastapi.testclient import TestClient

        from ollamapress.api.auth.trust import INTERNAL_SCOPE_MARKER

        async def host(scope, receive, send):
            if scope["type"] == "http":
                scope = {**scope, INTERNAL_SCOPE_MARKER: True}
            await gateway.app(scope, receive, send)

        assert TestClient(host).get("/ollama/v1/models").status_code == 200
        assert gateway.client.get("/ollama/v1/models").status_code == 401

    def test_scope_marker_ignored_when_host_context_disabled(self):
        from fastapi.testclient import TestClient

        from ollamapress.api.auth.trust import INTERNAL_SCOPE_MARKER

        gw = Gateway(trust_strategies="nonce")

        async def host(scope, receive, send):
            await gw.app({**scope, INTERNAL_SCOPE_MARKER: True}, receive, send)

        assert TestClient(host).get("/ollama/v1/models").status_code == 401
