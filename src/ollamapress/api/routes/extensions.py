"""
Extension routes

Listing of registered services and the catch-all route that dispatches calls to
their custom endpoints.
"""
from fastapi import APIRouter, Request

from ...gateway.exceptions import ExtensionError
from ..dependencies import (
    CurrentUser,
    GateInterface,
    Params,
    ReadAccess,
    RegistryInterface,
    UpstreamInterface,
    build_proxy_request,
    build_trust_context,
)
from ..dispatcher import ExtensionDispatcher
from ..models.responses import ERROR_RESPONSES

router = APIRouter(responses=ERROR_RESPONSES)

CUSTOM_ENDPOINT_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@router.get("/extensions")
async def list_extensions(access: ReadAccess, registry: RegistryInterface):
    """List all registered extensions"""
    services = [service.summary() for service in registry.list()]
    return {"extensions": services, "total": len(services)}


@router.get("/extensions/{service_id}")
async def get_extension_info(service_id: str, access: ReadAccess, registry: RegistryInterface):
    service = registry.get(service_id)
    if service is None:
        raise ExtensionError("Extension not found", code="extension_not_found", status_code=404)
    return service.describe()


@router.api_route("/extensions/{service_id}/{path:path}", methods=CUSTOM_ENDPOINT_METHODS)
async def handle_custom_endpoint(
    request: Request,
    service_id: str,
    path: str,
    params: Params,
    user: CurrentUser,
    gate: GateInterface,
    registry: RegistryInterface,
    upstream: UpstreamInterface,
):
    """Dispatch to a custom endpoint registered by a service"""
    proxy_request = build_proxy_request(request, params, user)
    dispatcher = ExtensionDispatcher(registry, upstream)
    return await dispatcher.dispatch(proxy_request, gate, build_trust_context(request))
