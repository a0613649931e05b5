"""Per-line decoding of newline-delimited JSON bodies.

Line framing is done by httpx (``Response.aiter_lines``); this module only
turns one line into a result, so a bad line is reported instead of raised.
"""
from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DecodedLine:
    """One non-blank NDJSON line: either a decoded object or the reason it was skipped."""

    raw: str
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def decode_line(line: str) -> DecodedLine:
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        return DecodedLine(raw=line, error=str(exc))
    if not isinstance(payload, dict):
        return DecodedLine(raw=line, error=f"expected a JSON object, got {type(payload).__name__}")
    return DecodedLine(raw=line, payload=payload)
