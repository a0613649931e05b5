from fastapi import Request

from ollama_relay.core.directory import ModelDirectory
from ollama_relay.core.relay import Relay


def get_relay(request: Request) -> Relay:
    return request.app.state.relay


def get_directory(request: Request) -> ModelDirectory:
    return request.app.state.directory
