from __future__ import annotations
from typing import Any, AsyncIterator, Dict, Protocol


class InferenceProvider(Protocol):
    base_url: str

    async def generate(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a non-streaming generation and return the decoded JSON body."""
        ...

    def stream_lines(self, payload: Dict[str, Any]) -> AsyncIterator[str]:
        """Yield each NDJSON line of a streaming generation, newline stripped."""
        ...

    async def list_models(self) -> Dict[str, Any]:
        """Return the raw model listing body."""
        ...
