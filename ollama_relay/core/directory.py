from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ollama_relay.core.errors import UpstreamError
from ollama_relay.providers.base import InferenceProvider

logger = logging.getLogger(__name__)


@dataclass
class ModelListing:
    models: List[str] = field(default_factory=list)
    error: Optional[str] = None


def extract_model_names(data: Dict[str, Any]) -> List[str]:
    """Names from an Ollama ``/api/tags`` body, in upstream order, duplicates kept."""
    entries = data.get("models")
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValueError(f"'models' is a {type(entries).__name__}, expected a list")
    names: List[str] = []
    for entry in entries:
        name = entry.get("name") if isinstance(entry, dict) else None
        if not isinstance(name, str) or not name:
            logger.debug("Ignoring model entry without a name: %r", entry)
            continue
        names.append(name)
    return names


class ModelDirectory:
    def __init__(self, provider: InferenceProvider) -> None:
        self._provider = provider

    async def list_models(self) -> ModelListing:
        """Never raises; an upstream failure yields an empty listing with ``error`` set."""
        try:
            data = await self._provider.list_models()
            models = extract_model_names(data)
        except (UpstreamError, ValueError) as e:
            detail = getattr(e, "detail", None) or str(e)
            logger.warning("Error fetching models from %s: %s", self._provider.base_url, detail)
            return ModelListing(models=[], error="Failed to fetch models")
        return ModelListing(models=models)
