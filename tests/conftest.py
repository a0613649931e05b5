from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from ollama_relay.config import Settings
from ollama_relay.core.relay import Relay
from ollama_relay.main import create_app
from ollama_relay.providers.ollama import OllamaProvider

UPSTREAM = "http://ollama.test"


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered in exactly the given transport reads."""

    def __init__(self, chunks: Iterable[bytes], error: Optional[Exception] = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.reads = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.reads += 1
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


def ndjson(*objects: Dict[str, Any]) -> bytes:
    return b"".join(json.dumps(o, ensure_ascii=False).encode("utf-8") + b"\n" for o in objects)


def stream_response(stream: ChunkedStream, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, headers={"content-type": "application/x-ndjson"}, stream=stream)


class FakeOllama:
    """Stands in for the Ollama server; records every request it receives."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        return route(request)

    def on(self, path: str, route: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[path] = route

    def reply(self, path: str, response: httpx.Response) -> None:
        self.routes[path] = lambda request: response

    def payloads(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        ollama_url=UPSTREAM,
        default_model="llama3.2",
        log_level="DEBUG",
    )


@pytest.fixture
def fake_ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def provider(settings: Settings, fake_ollama: FakeOllama) -> OllamaProvider:
    return OllamaProvider(settings, transport=fake_ollama.transport)


@pytest.fixture
def relay(provider: OllamaProvider, settings: Settings) -> Relay:
    return Relay(provider, settings)


@pytest.fixture
def client(settings: Settings, provider: OllamaProvider) -> TestClient:
    return TestClient(create_app(settings, provider))
