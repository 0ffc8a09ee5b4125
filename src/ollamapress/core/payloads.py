# src/core/payloads.py
"""
Upstream body builders for the built-in operations.

Each builder takes the caller's merged parameters and returns the JSON body sent
to Ollama. Fields are copied verbatim, type-coerced, or replaced by a default
when absent or empty.
"""
from typing import Any, Dict, List, Mapping

DEFAULT_PROMPT = "Please enter a prompt."
DEFAULT_MESSAGES = [{"role": "user", "content": "Hello!"}]
DEFAULT_KEEP_ALIVE = "5m"

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"", "0", "false", "no", "off"}


def to_bool(value: Any) -> bool:
    """Coerce JSON booleans and the usual query-string spellings"""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"'{value}' is not a boolean")
    return bool(value)


def to_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set)):
        return list(value)
    return [value]


def _present(params: Mapping[str, Any], key: str) -> bool:
    return params.get(key) is not None


def build_generate_body(params: Mapping[str, Any], default_model: str) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "model": str(params.get("model") or default_model),
        "prompt": str(params.get("prompt") or DEFAULT_PROMPT),
    }
    if _present(params, "stream"):
        body["stream"] = to_bool(params["stream"])
    if params.get("suffix"):
        body["suffix"] = str(params["suffix"])
    if params.get("images"):
        body["images"] = to_list(params["images"])
    if params.get("format"):
        # Ollama accepts "json" or a JSON schema object
        body["format"] = params["format"] if isinstance(params["format"], dict) else str(params["format"])
    if params.get("options"):
        body["options"] = dict(params["options"])
    if params.get("system"):
        body["system"] = str(params["system"])
    if params.get("template"):
        body["template"] = str(params["template"])
    if params.get("context"):
        body["context"] = params["context"]
    if _present(params, "raw"):
        body["raw"] = to_bool(params["raw"])
    body["keep_alive"] = str(params.get("keep_alive") or DEFAULT_KEEP_ALIVE)
    return body


def build_chat_body(params: Mapping[str, Any], default_model: str) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "model": str(params.get("model") or default_model),
        "messages": to_list(params["messages"]) if params.get("messages") else [dict(m) for m in DEFAULT_MESSAGES],
    }
    if _present(params, "stream"):
        body["stream"] = to_bool(params["stream"])
    if params.get("tools"):
        body["tools"] = to_list(params["tools"])
    if params.get("format"):
        body["format"] = params["format"] if isinstance(params["format"], dict) else str(params["format"])
    if params.get("options"):
        body["options"] = dict(params["options"])
    body["keep_alive"] = str(params.get("keep_alive") or DEFAULT_KEEP_ALIVE)
    return body


def build_embed_body(params: Mapping[str, Any]) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    if params.get("model"):
        body["model"] = str(params["model"])
    if params.get("input"):
        body["input"] = to_list(params["input"])
    body["truncate"] = to_bool(params["truncate"]) if _present(params, "truncate") else True
    if params.get("options"):
        body["options"] = dict(params["options"])
    if params.get("keep_alive"):
        body["keep_alive"] = str(params["keep_alive"])
    return body


def build_create_body(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Only non-empty fields are forwarded"""
    candidates = {
        "name": params.get("name"),
        "modelfile": params.get("modelfile"),
        "stream": to_bool(params["stream"]) if _present(params, "stream") else None,
        "path": params.get("path"),
    }
    return {key: value for key, value in candidates.items() if value}


def build_info_body(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "name": str(params.get("name") or ""),
        "verbose": to_bool(params.get("verbose", False)),
    }


def build_copy_body(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "source": str(params.get("source") or ""),
        "destination": str(params.get("destination") or ""),
    }


def build_delete_body(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {"name": str(params.get("name") or "")}


def build_transfer_body(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Body shared by pull and push"""
    return {
        "name": str(params.get("name") or ""),
        "insecure": to_bool(params.get("insecure", False)),
        "stream": to_bool(params.get("stream", False)),
    }
