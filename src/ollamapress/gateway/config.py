# src/ollamapress/gateway/config.py
"""
Configuration OllamaPress - Pydantic V2 settings

Every value can be set through the environment (or a ``.env`` file). The
gateway reads settings through ``get_config()`` on each request, so a changed
environment is picked up without restarting the registry.
"""
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TRUST_STRATEGIES = "service_token,plugin_identity,nonce,host_context,loopback"


def _split_lines(raw: str) -> List[str]:
    """Split a newline or comma separated option into clean entries."""
    entries = []
    for line in raw.replace(",", "\n").splitlines():
        line = line.strip()
        if line:
            entries.append(line)
    return entries


class OllamaConfig(BaseSettings):
    """Configuration Ollama upstream"""

    url: str = Field(default="http://localhost:11434/api")
    timeout: int = Field(default=30)
    default_model: str = Field(default="llama3.2")
    strip_think_tags: bool = Field(default=False)

    model_config = SettingsConfigDict(env_prefix="OLLAMA_", case_sensitive=False, extra="ignore")


class AccessConfig(BaseSettings):
    """Access gate configuration"""

    allow_external_access: bool = Field(default=False)
    # One origin per line, empty means every origin is accepted
    allowed_origins: str = Field(default="")
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_requests: int = Field(default=60)
    rate_limit_window: int = Field(default=60)
    # Empty means every model is accepted
    allowed_models: str = Field(default="")
    privileged_roles: str = Field(default="administrator")
    trust_strategies: str = Field(default=DEFAULT_TRUST_STRATEGIES)

    model_config = SettingsConfigDict(env_prefix="OLLAMAPRESS_ACCESS_", case_sensitive=False, extra="ignore")

    def get_allowed_origins(self) -> List[str]:
        """Origins accepted from external callers"""
        return _split_lines(self.allowed_origins)

    def get_allowed_models(self) -> List[str]:
        """Models non-privileged callers may request"""
        return _split_lines(self.allowed_models)

    def get_privileged_roles(self) -> set[str]:
        return set(_split_lines(self.privileged_roles))

    def get_trust_strategies(self) -> List[str]:
        return _split_lines(self.trust_strategies)


class GatewayConfig(BaseSettings):
    """Configuration principale avec sous-configs"""

    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)
    version: str = Field(default="0.2.0")

    # HTTP server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    site_url: str = Field(default="http://localhost:8000")

    # Secrets
    jwt_secret: str = Field(default="change-me", description="Signs session tokens and nonces")
    service_token_salt: str = Field(default="", description="Salt mixed into service tokens")
    nonce_ttl: int = Field(default=43200)

    # Empty redis_url keeps rate-limit counters in process memory
    redis_url: str = Field(default="")

    # Comma-separated "package.module:function" callables run with the registry at startup
    extension_modules: str = Field(default="")

    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    access: AccessConfig = Field(default_factory=AccessConfig)

    model_config = SettingsConfigDict(
        env_prefix="OLLAMAPRESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def get_extension_modules(self) -> List[str]:
        return _split_lines(self.extension_modules)


def get_config() -> GatewayConfig:
    """Récupère la configuration complète"""
    return GatewayConfig()


def get_ollama_config() -> OllamaConfig:
    """Récupère seulement la config Ollama"""
    return OllamaConfig()
