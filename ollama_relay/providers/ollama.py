from __future__ import annotations
import logging
from typing import Any, AsyncIterator, Dict, Optional
import httpx

from ollama_relay.config import Settings
from ollama_relay.core.errors import UpstreamError, UpstreamPayloadError

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
TAGS_PATH = "/api/tags"


def _error_text(resp: httpx.Response) -> str:
    """Ollama reports failures as ``{"error": "..."}``; fall back to the raw body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:500]
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return resp.text[:500]


def _status_error(resp: httpx.Response) -> UpstreamError:
    detail = _error_text(resp)
    return UpstreamError(
        f"Ollama API error: {resp.reason_phrase or resp.status_code}",
        status=resp.status_code,
        detail=detail,
    )


class OllamaProvider:
    """HTTP client for an Ollama server. Every call opens and closes its own client."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.base_url = settings.ollama_url
        self._timeout = httpx.Timeout(
            connect=settings.connect_timeout,
            read=settings.read_timeout,
            write=30.0,
            pool=settings.connect_timeout,
        )
        self._transport = transport
        self._carry_partial_lines = settings.ndjson_carry_partial_lines

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
            trust_env=True,
        )

    async def generate(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.post(GENERATE_PATH, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Ollama API unreachable: {e.__class__.__name__}", detail=str(e)) from e

        if resp.is_error:
            raise _status_error(resp)
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamPayloadError("Malformed Ollama response", status=resp.status_code, detail=resp.text[:500]) from e
        if not isinstance(data, dict):
            raise UpstreamPayloadError("Malformed Ollama response", status=resp.status_code, detail=resp.text[:500])
        return data

    async def stream_lines(self, payload: Dict[str, Any]) -> AsyncIterator[str]:
        received = False
        try:
            async with self._client() as client:
                async with client.stream("POST", GENERATE_PATH, json=payload) as resp:
                    if resp.is_error:
                        await resp.aread()
                        raise _status_error(resp)
                    if self._carry_partial_lines:
                        async for line in resp.aiter_lines():
                            received = True
                            yield line
                    else:
                        # Each read is taken as whole lines; a line split across reads is lost
                        async for text in resp.aiter_text():
                            if not text:
                                continue
                            received = True
                            for line in text.split("\n"):
                                yield line
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"Ollama stream failed: {e.__class__.__name__}",
                detail=str(e) or repr(e),
            ) from e
        if not received:
            raise UpstreamError("Ollama returned an empty response body")

    async def list_models(self) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.get(TAGS_PATH)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Ollama API unreachable: {e.__class__.__name__}", detail=str(e)) from e

        if resp.is_error:
            raise _status_error(resp)
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamPayloadError("Malformed Ollama model listing", status=resp.status_code, detail=resp.text[:500]) from e
        if not isinstance(data, dict):
            raise UpstreamPayloadError("Malformed Ollama model listing", status=resp.status_code, detail=resp.text[:500])
        return data
