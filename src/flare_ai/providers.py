"""Provider selection and endpoint resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

import httpx
from loguru import logger

from flare_ai.errors import TransportError

OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"
OLLAMA_DEFAULT_API_BASE = "http://localhost:11434/v1"
OPENROUTER_REFERER = "http://localhost"


class Provider(StrEnum):
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"

    @property
    def requires_api_key(self) -> bool:
        return self is Provider.OPENROUTER

    @property
    def fallback_model(self) -> str:
        if self is Provider.OPENROUTER:
            return "mistralai/mistral-7b-instruct:free"
        return "llama3"


@dataclass(frozen=True)
class Endpoint:
    """Resolved chat-completions target for one ask."""

    provider: Provider
    url: str
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def authenticated(self) -> bool:
        return "Authorization" in self.headers


def normalize_api_base(raw: str | None, default: str) -> str:
    if raw is None or not raw.strip():
        return default
    return raw.strip().rstrip("/")


def resolve_endpoint(provider: Provider, *, base_url: str | None = None, api_key: str | None = None) -> Endpoint:
    """Resolve the provider once into a URL and its auth headers."""
    if provider is Provider.OPENROUTER:
        return Endpoint(
            provider=provider,
            url=f"{OPENROUTER_API_BASE}/chat/completions",
            headers={
                "Authorization": f"Bearer {api_key or ''}",
                "HTTP-Referer": OPENROUTER_REFERER,
            },
        )

    base = normalize_api_base(base_url, OLLAMA_DEFAULT_API_BASE)
    return Endpoint(provider=provider, url=f"{base}/chat/completions")


async def list_ollama_models(base_url: str | None, *, client: httpx.AsyncClient | None = None) -> list[str]:
    """Return model ids advertised by an Ollama server's OpenAI-compatible API."""
    url = f"{normalize_api_base(base_url, OLLAMA_DEFAULT_API_BASE)}/models"
    owns_client = client is None
    http = client or httpx.AsyncClient()
    try:
        response = await http.get(url)
    except httpx.HTTPError as exc:
        raise TransportError(f"Failed to fetch models: {exc!s}") from exc
    finally:
        if owns_client:
            await http.aclose()

    if response.is_error:
        raise TransportError(f"Failed to fetch models: {response.status_code}", status_code=response.status_code)

    try:
        payload = response.json()
    except ValueError as exc:
        raise TransportError("Unexpected response format from Ollama models API") from exc
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        raise TransportError("Unexpected response format from Ollama models API")

    model_ids = [item["id"] for item in data if isinstance(item, dict) and isinstance(item.get("id"), str)]
    logger.debug("ollama.models url={} count={}", url, len(model_ids))
    return model_ids
