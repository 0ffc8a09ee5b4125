"""
Built-in Ollama proxy routes

Each route runs the access gate at its fixed tier, marshals the caller's
parameters into an upstream body and forwards it. The upstream reply, error
marker included, is returned unchanged.
"""
from typing import Any, Callable, Dict, Mapping

from fastapi import APIRouter, Request
import structlog

from ...core.payloads import (
    build_chat_body,
    build_copy_body,
    build_create_body,
    build_delete_body,
    build_embed_body,
    build_generate_body,
    build_info_body,
    build_transfer_body,
)
from ...core.registry import ServiceRegistry
from ...gateway.config import GatewayConfig
from ...gateway.exceptions import GatewayError
from ..auth.security import check_model_allowed
from ..dependencies import (
    AccessGrant,
    ManageAccess,
    Params,
    ReadAccess,
    RegistryInterface,
    SettingsInterface,
    UpstreamInterface,
    build_proxy_request,
)
from ..models.responses import ERROR_RESPONSES

logger = structlog.get_logger()
router = APIRouter(responses=ERROR_RESPONSES)

ALLOWED_MODELS_FILTER = "allowed_models"


def _marshal(builder: Callable[..., Dict[str, Any]], params: Mapping[str, Any], *args: Any) -> Dict[str, Any]:
    try:
        return builder(params, *args)
    except (TypeError, ValueError) as e:
        raise GatewayError(f"Invalid parameter: {e}", code="rest_invalid_param", status_code=400)


async def _check_model(registry: ServiceRegistry, settings: GatewayConfig, access: AccessGrant, model: Any) -> None:
    allowed = await registry.apply_filters(ALLOWED_MODELS_FILTER, settings.access.get_allowed_models())
    check_model_allowed(str(model) if model else None, list(allowed), access.privileged)


@router.post("/generate")
async def generate_completion(
    request: Request,
    access: ReadAccess,
    params: Params,
    settings: SettingsInterface,
    registry: RegistryInterface,
    upstream: UpstreamInterface,
):
    """Generate a completion"""
    await _check_model(registry, settings, access, params.get("model"))
    proxy_request = build_proxy_request(request, params, access.user)
    await registry.execute_hooks("pre_generate", proxy_request)

    body = _marshal(build_generate_body, proxy_request.params, settings.ollama.default_model)
    response = await upstream.send("/generate", body)

    await registry.execute_hooks("post_generate", proxy_request, response)
    return response


@router.post("/chat")
async def generate_chat(
    request: Request,
    access: ReadAccess,
    params: Params,
    settings: SettingsInterface,
    registry: RegistryInterface,
    upstream: UpstreamInterface,
):
    """Generate the next chat message"""
    await _check_model(registry, settings, access, params.get("model"))
    proxy_request = build_proxy_request(request, params, access.user)
    await registry.execute_hooks("pre_chat", proxy_request)

    body = _marshal(build_chat_body, proxy_request.params, settings.ollama.default_model)
    response = await upstream.send("/chat", body)

    await registry.execute_hooks("post_chat", proxy_request, response)
    return response


@router.post("/embed")
async def generate_embedding(
    access: ReadAccess,
    params: Params,
    settings: SettingsInterface,
    registry: RegistryInterface,
    upstream: UpstreamInterface,
):
    await _check_model(registry, settings, access, params.get("model"))
    return await upstream.send("/embed", _marshal(build_embed_body, params))


@router.get("/models")
async def list_models(access: ReadAccess, upstream: UpstreamInterface):
    """List local models"""
    return await upstream.send("/tags", method="GET")


@router.get("/running")
async def list_running_models(access: ReadAccess, upstream: UpstreamInterface):
    """List models loaded in memory"""
    return await upstream.send("/ps", method="GET")


@router.post("/info")
async def model_info(
    access: ReadAccess,
    params: Params,
    settings: SettingsInterface,
    registry: RegistryInterface,
    upstream: UpstreamInterface,
):
    await _check_model(registry, settings, access, params.get("name"))
    return await upstream.send("/show", _marshal(build_info_body, params))


@router.post("/create")
async def create_model(access: ManageAccess, params: Params, upstream: UpstreamInterface):
    return await upstream.send("/create", _marshal(build_create_body, params))


@router.post("/copy")
async def copy_model(access: ManageAccess, params: Params, upstream: UpstreamInterface):
    return await upstream.send("/copy", _marshal(build_copy_body, params))


@router.delete("/delete")
async def delete_model(access: ManageAccess, params: Params, upstream: UpstreamInterface):
    logger.info("Model deletion requested", model=params.get("name"), user_id=access.user.user_id)
    return await upstream.send("/delete", _marshal(build_delete_body, params), method="DELETE")


@router.post("/pull")
async def pull_model(access: ManageAccess, params: Params, upstream: UpstreamInterface):
    return await upstream.send("/pull", _marshal(build_transfer_body, params))


@router.post("/push")
async def push_model(access: ManageAccess, params: Params, upstream: UpstreamInterface):
    return await upstream.send("/push", _marshal(build_transfer_body, params))
