import httpx
import pytest

from flare_ai.errors import TransportError
from flare_ai.providers import Provider, list_ollama_models, resolve_endpoint


def test_openrouter_endpoint_carries_auth() -> None:
    endpoint = resolve_endpoint(Provider.OPENROUTER, api_key="sk-1", base_url="http://ignored")

    assert endpoint.url == "https://openrouter.ai/api/v1/chat/completions"
    assert endpoint.headers == {"Authorization": "Bearer sk-1", "HTTP-Referer": "http://localhost"}
    assert endpoint.authenticated


@pytest.mark.parametrize(
    ("base_url", "expected"),
    [
        (None, "http://localhost:11434/v1/chat/completions"),
        ("   ", "http://localhost:11434/v1/chat/completions"),
        ("http://gpu-box:11434/v1/", "http://gpu-box:11434/v1/chat/completions"),
    ],
)
def test_ollama_endpoint(base_url: str | None, expected: str) -> None:
    endpoint = resolve_endpoint(Provider.OLLAMA, base_url=base_url, api_key="unused")

    assert endpoint.url == expected
    assert endpoint.headers == {}
    assert not endpoint.authenticated


def test_fallback_models() -> None:
    assert Provider.OPENROUTER.fallback_model == "mistralai/mistral-7b-instruct:free"
    assert Provider.OLLAMA.fallback_model == "llama3"
    assert Provider.OPENROUTER.requires_api_key
    assert not Provider.OLLAMA.requires_api_key


@pytest.mark.asyncio
async def test_list_ollama_models() -> None:
    seen: list[str] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"object": "list", "data": [{"id": "llama3:latest"}, {"id": "qwen2:7b"}]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        models = await list_ollama_models("http://gpu-box:11434/v1/", client=client)

    assert models == ["llama3:latest", "qwen2:7b"]
    assert seen == ["http://gpu-box:11434/v1/models"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="down"),
        httpx.Response(200, json={"models": []}),
        httpx.Response(200, text="not json"),
    ],
)
async def test_list_ollama_models_errors(response: httpx.Response) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return response

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        with pytest.raises(TransportError):
            await list_ollama_models(None, client=client)
