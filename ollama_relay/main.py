from typing import Optional
import logging

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from ollama_relay.config import Settings, get_settings
from ollama_relay.api.chat import router as chat_router
from ollama_relay.api.models import router as models_router
from ollama_relay.core.directory import ModelDirectory
from ollama_relay.core.errors import install_exception_handlers
from ollama_relay.core.logging import setup_logging
from ollama_relay.core.relay import Relay
from ollama_relay.providers.base import InferenceProvider
from ollama_relay.providers.ollama import OllamaProvider

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, provider: Optional[InferenceProvider] = None) -> FastAPI:
    settings = settings or get_settings()
    # Setup logging early
    setup_logging(settings.log_level)
    app = FastAPI(title="Ollama Relay", version=__version__)

    provider = provider or OllamaProvider(settings)
    app.state.settings = settings
    app.state.relay = Relay(provider, settings)
    app.state.directory = ModelDirectory(provider)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(o).rstrip("/") for o in settings.allowed_origins],
        allow_origin_regex=r"https?://(localhost|127\.0\.0\.1):3000",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)

    api = APIRouter()
    api.include_router(chat_router)
    api.include_router(models_router)
    app.include_router(api, prefix="/api")

    @app.get("/healthz")
    def healthz():
        return {"status": "ok", "upstream": provider.base_url, "model": settings.default_model}

    @app.get("/")
    def root():
        return {"service": "ollama-relay", "version": __version__}

    logger.info("Relay ready upstream=%s default_model=%s", provider.base_url, settings.default_model)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host=settings.server_host, port=settings.server_port)


if __name__ == "__main__":
    run()
