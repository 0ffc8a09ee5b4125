# src/core/upstream.py
"""
Upstream client for the Ollama HTTP API

Every failure is returned as ``{"error": message}`` so route handlers and
extension callbacks always get a dict they can branch on.
"""
import json
import re
from typing import Any, Dict, List, Optional, Union

import httpx
import structlog

from ..gateway.config import OllamaConfig, get_ollama_config
from ..gateway.exceptions import UpstreamDecodeError, UpstreamTransportError

logger = structlog.get_logger()

INVALID_RESPONSE = "Invalid API response"
_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)


class UpstreamClient:
    """Client Ollama utilisé par les routes et les extensions"""

    def __init__(self, config: Optional[OllamaConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or get_ollama_config()
        self.transport = transport

    @property
    def base_url(self) -> str:
        return self.config.url.rstrip("/")

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout if timeout is not None else self.config.timeout,
            transport=self.transport,
            headers={"Content-Type": "application/json"},
        )

    async def send(self, path: str, body: Optional[Dict[str, Any]] = None, method: str = "POST") -> Dict[str, Any]:
        """Send a request to Ollama and return the decoded JSON or an error marker"""
        try:
            return await self._send(path, body or {}, method.upper())
        except UpstreamTransportError as e:
            logger.warning("Ollama request failed", path=path, method=method, error=str(e))
            return {"error": str(e)}
        except UpstreamDecodeError as e:
            logger.warning("Ollama returned an invalid response", path=path, method=method, error=str(e))
            return {"error": INVALID_RESPONSE}

    async def _send(self, path: str, body: Dict[str, Any], method: str) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                if method == "GET":
                    response = await client.request(method, url)
                else:
                    response = await client.request(method, url, content=json.dumps(body))
        except httpx.HTTPError as e:
            raise UpstreamTransportError(str(e) or type(e).__name__) from e

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamDecodeError(response.text[:200]) from e
        if data is None:
            raise UpstreamDecodeError("null body")
        if not isinstance(data, dict):
            data = {"data": data}
        return self._clean(data)

    def _clean(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Remove reasoning blocks emitted by thinking models when configured"""
        if self.config.strip_think_tags and isinstance(data.get("response"), str) and "<think>" in data["response"]:
            data["response"] = _THINK_BLOCK.sub("", data["response"]).strip()
        return data

    async def generate(self, prompt: str, **options: Any) -> Dict[str, Any]:
        """Génère du texte, ``stream`` désactivé par défaut"""
        params: Dict[str, Any] = {"model": self.config.default_model, "stream": False}
        params.update(options)
        params["prompt"] = prompt
        return await self.send("/generate", params)

    async def chat(self, messages: List[Dict[str, Any]], **options: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {"model": self.config.default_model, "stream": False}
        params.update(options)
        params["messages"] = messages
        return await self.send("/chat", params)

    async def embed(self, input: Union[str, List[str]], model: Optional[str] = None) -> Dict[str, Any]:
        return await self.send("/embed", {"model": model or self.config.default_model, "input": input})

    async def list_models(self) -> Dict[str, Any]:
        return await self.send("/tags", method="GET")

    async def model_info(self, name: str) -> Dict[str, Any]:
        return await self.send("/show", {"name": name})

    async def ping(self) -> bool:
        """Check that the Ollama server root answers 200"""
        root = self.base_url[: -len("/api")] if self.base_url.endswith("/api") else self.base_url
        try:
            async with self._client(timeout=5) as client:
                response = await client.get(root or "/")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.debug("Ollama ping failed", url=root, error=str(e))
            return False
