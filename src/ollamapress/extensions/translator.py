"""
Translator extension

Registers ``simple-translator`` with one endpoint,
``POST /ollama/v1/extensions/simple-translator/translate``. Enable it with
``OLLAMAPRESS_EXTENSION_MODULES=ollamapress.extensions.translator:setup``.
"""
from typing import Any, Dict

from ..core.context import ProxyRequest
from ..core.registry import ServiceRegistry

SERVICE_ID = "simple-translator"


async def translate_text(request: ProxyRequest, dispatcher) -> Dict[str, Any]:
    text = request.get_param("text").strip()
    target_language = request.get_param("target_language").strip()

    result = await dispatcher.make_ollama_request(
        "/generate",
        {
            "model": request.get_param("model") or dispatcher.upstream.config.default_model,
            "prompt": f"Translate this text into {target_language}:\n\n{text}",
            "stream": False,
        },
    )
    if "error" in result:
        return {"success": False, "error": result["error"]}

    return {
        "success": True,
        "original": text,
        "translated": result.get("response", ""),
        "target_language": target_language,
    }


def setup(registry: ServiceRegistry) -> bool:
    return registry.register(SERVICE_ID, {
        "name": SERVICE_ID,
        "description": "Simple translator backed by the local model",
        "version": "1.0.0",
        "author": "OllamaPress",
        "permissions": "read",
        "endpoints": {
            "/translate": {
                "methods": "POST",
                "callback": translate_text,
                "args": {
                    "text": {"required": True, "type": "string"},
                    "target_language": {"required": True, "type": "string"},
                    "model": {"type": "string"},
                },
            },
        },
    })
