from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Inbound relay call. ``message`` is checked by the relay, not here, so an
    empty prompt gets the same 400 whether it is missing or empty."""

    message: Optional[str] = None
    systemPrompt: Optional[str] = None
    stream: bool = False
    model: Optional[str] = None


class ChatResponse(BaseModel):
    response: str


class ModelListResponse(BaseModel):
    models: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    models: Optional[List[str]] = None
