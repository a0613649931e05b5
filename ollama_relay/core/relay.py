"""Generation relay between callers and the upstream inference server.

``Relay.prepare`` validates a call and resolves the model before anything is
sent upstream. ``Relay.stream`` re-emits each ``response`` fragment as soon as
its NDJSON line decodes; ``Relay.complete`` waits for the buffered body.
Neither keeps state between calls.
"""
from __future__ import annotations
import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional

from ollama_relay.config import Settings
from ollama_relay.core.errors import ClientInputError, UpstreamError, UpstreamPayloadError
from ollama_relay.core.ndjson import DecodedLine, decode_line
from ollama_relay.providers.base import InferenceProvider
from ollama_relay.schemas.chat import ChatRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    model_id: str
    system_prompt: str = ""
    streaming: bool = False

    def upstream_payload(self) -> Dict[str, Any]:
        return {
            "model": self.model_id,
            "prompt": self.prompt,
            "system": self.system_prompt,
            "stream": self.streaming,
        }


@dataclass
class StreamStats:
    fragments: int = 0
    chars: int = 0
    skipped: int = 0
    done: bool = False


class Relay:
    def __init__(self, provider: InferenceProvider, settings: Settings) -> None:
        self._provider = provider
        self._default_model = settings.default_model

    def prepare(self, request: ChatRequest) -> GenerationRequest:
        if not request.message:
            raise ClientInputError("Message is required")
        return GenerationRequest(
            prompt=request.message,
            model_id=request.model or self._default_model,
            system_prompt=request.systemPrompt or "",
            streaming=request.stream,
        )

    async def complete(self, request: GenerationRequest) -> str:
        payload = request.upstream_payload()
        payload["stream"] = False
        data = await self._provider.generate(payload)
        text = data.get("response")
        if not isinstance(text, str):
            raise UpstreamPayloadError("Malformed Ollama response", detail="missing 'response' field")
        logger.info("relay complete model=%s chars=%d", request.model_id, len(text))
        return text

    async def stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Yield fragments in upstream order.

        Raises ``UpstreamError`` if the upstream fails at any point, including
        after fragments were yielded; callers must treat that as truncation.
        Closing the generator early closes the upstream response.
        """
        payload = request.upstream_payload()
        payload["stream"] = True
        stats = StreamStats()
        logger.info("relay stream start model=%s", request.model_id)
        try:
            async with aclosing(self._provider.stream_lines(payload)) as lines:
                async for raw in lines:
                    if not raw.strip():
                        continue
                    fragment = self._fragment(decode_line(raw), stats, request.model_id)
                    if fragment:
                        yield fragment
        except UpstreamError as e:
            logger.error(
                "relay stream failed model=%s after %d fragments: %s status=%s detail=%s",
                request.model_id, stats.fragments, e.message, e.status, e.detail,
            )
            raise
        logger.info(
            "relay stream complete model=%s fragments=%d chars=%d skipped=%d done=%s",
            request.model_id, stats.fragments, stats.chars, stats.skipped, stats.done,
        )

    def _fragment(self, line: DecodedLine, stats: StreamStats, model_id: str) -> Optional[str]:
        if not line.ok:
            stats.skipped += 1
            logger.warning("Skipping malformed stream line model=%s: %s (%.80r)", model_id, line.error, line.raw)
            return None
        chunk = line.payload or {}
        if isinstance(chunk.get("error"), str):
            # Ollama reports mid-generation failures in-band
            raise UpstreamError("Ollama stream error", detail=chunk["error"])
        if chunk.get("done") is True:
            stats.done = True
            logger.debug(
                "upstream done model=%s eval_count=%s total_duration=%s done_reason=%s",
                model_id, chunk.get("eval_count"), chunk.get("total_duration"), chunk.get("done_reason"),
            )
        text = chunk.get("response")
        if not isinstance(text, str) or not text:
            return None
        stats.fragments += 1
        stats.chars += len(text)
        return text
