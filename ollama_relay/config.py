from functools import lru_cache
from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    # Allow both localhost and 127.0.0.1 for local development
    allowed_origins: List[AnyHttpUrl] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]  # type: ignore
    log_level: str = "INFO"

    # Upstream inference server (Ollama HTTP API)
    ollama_url: str = "http://localhost:11434"
    default_model: str = Field(
        default="llama3.2",
        validation_alias=AliasChoices("model_name", "default_model"),
    )
    connect_timeout: float = 10.0
    # Bounds how long a hung upstream can hold a stream open between reads
    read_timeout: float = 120.0
    # False treats each transport read as whole lines: a line split across reads is dropped
    ndjson_carry_partial_lines: bool = True

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=("../.env", ".env"),
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("ollama_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
