from contextlib import aclosing
from typing import AsyncIterator, Optional
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ollama_relay.api.deps import get_relay
from ollama_relay.core.errors import StreamInterrupted, UpstreamError
from ollama_relay.core.relay import Relay
from ollama_relay.schemas.chat import ChatRequest, ChatResponse, ErrorResponse

router = APIRouter()
logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


async def _replay(first: Optional[str], fragments: AsyncIterator[str]) -> AsyncIterator[str]:
    async with aclosing(fragments):
        try:
            if first is not None:
                yield first
            async for fragment in fragments:
                yield fragment
        except UpstreamError as e:
            logger.warning("/chat stream aborted after response started: %s", e.message)
            raise StreamInterrupted(e.message) from e


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def chat(request: ChatRequest, relay: Relay = Depends(get_relay)):
    """Relay a prompt to the inference server, streamed as plain text or buffered as JSON.

    With ``stream: true`` the upstream is consulted before the response is
    committed: if it fails before producing any text the reply is a JSON
    error (502) rather than a text stream. A failure after text has been sent
    aborts the connection, so a truncated stream never looks complete.
    """
    generation = relay.prepare(request)
    logger.info("/chat start model=%s stream=%s", generation.model_id, generation.streaming)

    if not generation.streaming:
        text = await relay.complete(generation)
        return ChatResponse(response=text)

    # Pull the first fragment before committing to a 200 so an upstream that
    # fails up front still gets a JSON error instead of an aborted stream.
    fragments = relay.stream(generation)
    try:
        first: Optional[str] = await fragments.__anext__()
    except StopAsyncIteration:
        first = None

    return StreamingResponse(
        _replay(first, fragments),
        media_type="text/plain; charset=utf-8",
        headers=STREAM_HEADERS,
    )
