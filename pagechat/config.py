"""Runtime settings, read from the environment (and `.env` when present)."""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Provider credential, shared by the chat and rerank calls
    cohere_api_key: Optional[str] = Field(None, alias="COHERE_API_KEY")

    # Chat / completion (OpenAI-compatible endpoint)
    chat_base_url: str = Field("https://api.cohere.ai/compatibility/v1", alias="CHAT_BASE_URL")
    chat_model: str = Field("command-r-plus-08-2024", alias="CHAT_MODEL")
    chat_temperature: float = Field(0.3, alias="CHAT_TEMPERATURE")

    # Rerank
    rerank_url: str = Field("https://api.cohere.com/v2/rerank", alias="RERANK_URL")
    rerank_model: str = Field("rerank-english-v3.0", alias="RERANK_MODEL")
    rerank_top_n: int = Field(3, alias="RERANK_TOP_N", ge=1)
    rerank_min_score: Optional[float] = Field(None, alias="RERANK_MIN_SCORE", ge=0.0, le=1.0)

    # Chunking
    chunk_size: int = Field(1000, alias="CHUNK_SIZE", ge=1)

    # Timeouts (seconds) and retries
    fetch_timeout: float = Field(15.0, alias="FETCH_TIMEOUT", gt=0)
    provider_timeout: float = Field(60.0, alias="PROVIDER_TIMEOUT", gt=0)
    provider_max_retries: int = Field(2, alias="PROVIDER_MAX_RETRIES", ge=0)

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    return Settings()
