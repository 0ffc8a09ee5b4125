"""Tests for ollamapress.core.registry."""

import pytest

from ollamapress.core.context import ProxyRequest
from ollamapress.core.registry import SERVICE_REGISTERED, SERVICE_UNREGISTERED, ServiceRegistry
from ollamapress.gateway.exceptions import ServiceConfigurationError


def echo(request, dispatcher):
    return {"params": request.params}


def translator_config(**overrides):
    config = {
        "description": "Translator",
        "endpoints": {"/translate": {"methods": "POST", "callback": echo}},
    }
    config.update(overrides)
    return config


class TestRegister:
    def test_register_then_has(self):
        reg = ServiceRegistry()
        assert reg.register("translator", translator_config()) is True
        assert reg.has("translator")

    def test_defaults_applied(self):
        reg = ServiceRegistry()
        reg.register("bare")
        service = reg.get("bare")
        assert service.name == "bare"
        assert service.version == "1.0.0"
        assert service.permissions == "read"
        assert service.priority == 10
        assert service.endpoints == []

    def test_duplicate_id_rejected(self):
        reg = ServiceRegistry()
        reg.register("translator", translator_config())
        assert reg.register("translator", translator_config(description="Other")) is False
        assert reg.get("translator").description == "Translator"

    @pytest.mark.parametrize("service_id", ["", "has space", "slash/id", "dot.id"])
    def test_invalid_id_raises(self, service_id):
        reg = ServiceRegistry()
        with pytest.raises(ServiceConfigurationError):
            reg.register(service_id, {})

    def test_invalid_permission_raises(self):
        reg = ServiceRegistry()
        with pytest.raises(ServiceConfigurationError) as excinfo:
            reg.register("bad", {"permissions": "admin"})
        assert excinfo.value.service_id == "bad"
        assert not reg.has("bad")

    def test_non_callable_middleware_raises(self):
        reg = ServiceRegistry()
        with pytest.raises(ServiceConfigurationError):
            reg.register("bad", {"middleware": ["not callable"]})

    def test_endpoint_path_must_start_with_slash(self):
        reg = ServiceRegistry()
        with pytest.raises(ServiceConfigurationError):
            reg.register("bad", {"endpoints": {"translate": {"callback": echo}}})

    def test_derived_route(self):
        reg = ServiceRegistry()
        reg.register("translator", translator_config())
        resolved = reg.resolve("POST", "/ollama/v1/extensions/translator/translate")
        assert resolved is not None
        assert resolved.service.service_id == "translator"
        assert resolved.endpoint.methods == "POST"

    def test_method_is_part_of_the_route_key(self):
        reg = ServiceRegistry()
        reg.register("translator", translator_config())
        assert reg.resolve("GET", "/ollama/v1/extensions/translator/translate") is None

    def test_endpoints_accept_list_form(self):
        reg = ServiceRegistry()
        reg.register("lister", {"endpoints": [{"path": "/a", "methods": "get"}, {"path": "/b/"}]})
        assert reg.resolve("GET", "/ollama/v1/extensions/lister/a") is not None
        assert reg.resolve("POST", "/ollama/v1/extensions/lister/b") is not None


class TestUnregister:
    def test_unregister_then_has_false(self):
        reg = ServiceRegistry()
        reg.register("translator", translator_config())
        assert reg.unregister("translator") is True
        assert not reg.has("translator")

    def test_unregister_removes_routes(self):
        reg = ServiceRegistry()
        reg.register("translator", translator_config())
        reg.unregister("translator")
        assert reg.resolve("POST", "/ollama/v1/extensions/translator/translate") is None
        assert reg.routes() == {}

    def test_unregister_removes_middleware(self):
        reg = ServiceRegistry()
        reg.register("mw", {"middleware": [lambda request, route: request]})
        reg.unregister("mw")
        assert reg.middleware() == []

    def test_unregister_unknown_returns_false(self):
        assert ServiceRegistry().unregister("missing") is False

    def test_id_reusable_after_unregister(self):
        reg = ServiceRegistry()
        reg.register("translator", translator_config())
        reg.unregister("translator")
        assert reg.register("translator", translator_config(description="Again")) is True


class TestListing:
    def test_list_in_registration_order(self):
        reg = ServiceRegistry()
        for service_id in ("b", "a", "c"):
            reg.register(service_id)
        assert [s.service_id for s in reg.list()] == ["b", "a", "c"]

    def test_summary_shape(self):
        reg = ServiceRegistry()
        reg.register("translator", translator_config(author="Team"))
        assert reg.get("translator").summary() == {
            "id": "translator",
            "name": "translator",
            "description": "Translator",
            "version": "1.0.0",
            "author": "Team",
            "endpoints_count": 1,
            "middleware_count": 0,
            "permissions": "read",
        }

    def test_describe_names_callbacks(self):
        reg = ServiceRegistry()
        reg.register("translator", translator_config())
        described = reg.get("translator").describe()
        assert described["endpoints"][0]["route"] == "/ollama/v1/extensions/translator/translate"
        assert described["endpoints"][0]["callback"] == "echo"

    def test_get_missing_returns_none(self):
        assert ServiceRegistry().get("nope") is None


class TestRouteCollision:
    def test_same_route_same_method_rejected(self):
        reg = ServiceRegistry()
        reg.register("svc", {"endpoints": {"/a": {"callback": echo}, "/a/": {"callback": echo}}})
        assert not reg.has("svc")

    def test_collision_leaves_tables_untouched(self):
        reg = ServiceRegistry()
        mw = lambda request, route: request  # noqa: E731
        result = reg.register("svc", {
            "middleware": [mw],
            "endpoints": [{"path": "/x", "callback": echo}, {"path": "/x", "callback": echo}],
        })
        assert result is False
        assert reg.middleware() == []
        assert reg.routes() == {}


class TestMiddlewareOrdering:
    async def test_priority_order_regardless_of_registration_order(self):
        reg = ServiceRegistry()
        calls = []

        def late(request, route):
            calls.append("priority-10")
            return request

        def early(request, route):
            calls.append("priority-5")
            return request

        reg.register("late", {"priority": 10, "middleware": [late]})
        reg.register("early", {"priority": 5, "middleware": [early]})

        await reg.process_middleware(ProxyRequest(method="POST", route="/x"), "/x")
        assert calls == ["priority-5", "priority-10"]

    async def test_equal_priority_keeps_registration_order(self):
        reg = ServiceRegistry()
        calls = []
        reg.register("first", {"middleware": [lambda r, route: calls.append("first") or r]})
        reg.register("second", {"middleware": [lambda r, route: calls.append("second") or r]})

        await reg.process_middleware(ProxyRequest(method="GET", route="/x"), "/x")
        assert calls == ["first", "second"]

    async def test_middleware_can_rewrite_params(self):
        reg = ServiceRegistry()

        async def upper(request, route):
            request.set_param("text", request.get_param("text").upper())
            return request

        reg.register("upper", {"middleware": [upper]})
        result = await reg.process_middleware(ProxyRequest(method="POST", route="/x", params={"text": "hi"}), "/x")
        assert result.params == {"text": "HI"}


class TestHooks:
    async def test_hooks_receive_arguments(self):
        reg = ServiceRegistry()
        seen = []
        reg.register("audit", {"hooks": {"post_generate": lambda request, response: seen.append(response)}})
        await reg.execute_hooks("post_generate", None, {"response": "ok"})
        assert seen == [{"response": "ok"}]

    async def test_failing_hook_does_not_stop_siblings(self):
        reg = ServiceRegistry()
        seen = []

        def broken(request):
            raise RuntimeError("boom")

        async def working(request):
            seen.append("ran")

        reg.register("broken", {"hooks": {"pre_chat": broken}})
        reg.register("working", {"hooks": {"pre_chat": working}})

        await reg.execute_hooks("pre_chat", None)
        assert seen == ["ran"]

    async def test_unknown_hook_is_noop(self):
        reg = ServiceRegistry()
        reg.register("svc")
        await reg.execute_hooks("nothing")


class TestFilters:
    async def test_filters_chain_in_registration_order(self):
        reg = ServiceRegistry()
        reg.register("add", {"filters": {"allowed_models": lambda models: models + ["mistral"]}})
        reg.register("sort", {"filters": {"allowed_models": lambda models: sorted(models)}})
        assert await reg.apply_filters("allowed_models", ["llama3.2"]) == ["llama3.2", "mistral"]

    async def test_missing_filter_returns_value(self):
        assert await ServiceRegistry().apply_filters("allowed_models", ["x"]) == ["x"]


class TestEvents:
    def test_register_and_unregister_notify(self):
        reg = ServiceRegistry()
        events = []
        reg.subscribe(SERVICE_REGISTERED, lambda service_id, service: events.append(("reg", service_id)))
        reg.subscribe(SERVICE_UNREGISTERED, lambda service_id: events.append(("unreg", service_id)))
        reg.register("svc")
        reg.unregister("svc")
        assert events == [("reg", "svc"), ("unreg", "svc")]

    def test_failing_listener_does_not_block_registration(self):
        reg = ServiceRegistry()

        def broken(service_id, service):
            raise RuntimeError("listener down")

        reg.subscribe(SERVICE_REGISTERED, broken)
        assert reg.register("svc") is True
