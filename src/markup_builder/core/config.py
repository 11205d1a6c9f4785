"""Application configuration primitives."""

from __future__ import annotations

import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRETS_PATH = Path(".secrets/secrets.toml")


def _authorization_header(api_key: str | None) -> dict[str, str]:
    if not api_key:
        return {}
    return {"Authorization": f"Bearer {api_key}"}


class Settings(BaseSettings):
    """Central configuration for field discovery and markup application."""

    provider_base_url: HttpUrl = "http://127.0.0.1:8765/mcp"
    provider_api_key: str | None = None
    provider_transport: Literal["streamable_http"] = "streamable_http"
    provider_service_name: str = "trimble_connect_workspace"
    provider_tool_overrides: dict[str, str] = {}

    request_timeout: float = 30.0
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    max_concurrency: int = 8
    include_hidden_properties: bool = True

    discovery_field_limit: int = 20
    discovery_sample_limit: int = 2

    default_prefix: str = ""
    default_separator: str = " | "
    point_markups: bool = True
    markup_unit_scale: float = 1000.0
    summary_suffix: str = "tk"

    model_config = SettingsConfigDict(env_prefix="MARKUP_", env_file=(), extra="ignore")

    def provider_mcp_config(self) -> dict[str, Any]:
        """Return the MCP configuration block for the workspace provider."""
        config: dict[str, Any] = {
            "transport": self.provider_transport,
            "url": str(self.provider_base_url),
        }
        headers = _authorization_header(self.provider_api_key)
        if headers:
            config["headers"] = headers
        if self.request_timeout and self.request_timeout > 0:
            config["timeout"] = float(self.request_timeout)
        return config

    def mcp_service_configs(self) -> dict[str, dict[str, Any]]:
        """Return a mapping of MCP service names to their configuration blocks."""
        service_name = self.provider_service_name or "trimble_connect_workspace"
        return {service_name: self.provider_mcp_config()}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, merged with ``.secrets/secrets.toml``."""
    return Settings(**_load_settings_overrides())


# secrets.toml key in the provider table -> Settings field
_PROVIDER_KEYS = {
    "url": "provider_base_url",
    "transport": "provider_transport",
    "service_name": "provider_service_name",
}


def _load_settings_overrides(secrets_path: Path = DEFAULT_SECRETS_PATH) -> dict[str, Any]:
    """Read provider and markup overrides from the secrets file, if present."""
    if not secrets_path.exists():
        return {}
    with secrets_path.open("rb") as handle:
        data = tomllib.load(handle)

    overrides: dict[str, Any] = {}
    provider_cfg = next(
        (
            data[name]
            for name in ("workspace", "provider", "trimble_connect")
            if isinstance(data.get(name), dict)
        ),
        {},
    )
    for source, target in _PROVIDER_KEYS.items():
        overrides[target] = provider_cfg.get(source)
    overrides["provider_api_key"] = _bearer_token(
        provider_cfg.get("api_key") or provider_cfg.get("authorization")
    )
    overrides["request_timeout"] = _as_float(provider_cfg.get("timeout"))
    tools = provider_cfg.get("tools")
    if isinstance(tools, dict):
        overrides["provider_tool_overrides"] = {str(op): str(tool) for op, tool in tools.items()}

    for key, value in (data.get("markup") or {}).items():
        if key in Settings.model_fields:
            overrides[key] = value
    return {key: value for key, value in overrides.items() if value is not None}


def _bearer_token(value: str | None) -> str | None:
    token = (value or "").strip()
    if token[:7].lower() == "bearer ":
        token = token[7:].strip()
    return token or None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
