"""
External clients (chat + rerank), built once at startup and passed in.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
import openai

from pagechat.config import Settings, get_settings
from pagechat.errors import MissingCredentialsError
from pagechat.retrieval.rerank import Reranker

logger = logging.getLogger(__name__)


@dataclass
class Provider:
    chat: openai.AsyncOpenAI
    reranker: Reranker
    http: httpx.AsyncClient

    async def aclose(self) -> None:
        await self.http.aclose()
        await self.chat.close()


def build_provider(settings: Optional[Settings] = None) -> Provider:
    """Create the shared clients. Raises MissingCredentialsError without an API key."""
    settings = settings or get_settings()
    if not settings.cohere_api_key:
        raise MissingCredentialsError("COHERE_API_KEY")

    http = httpx.AsyncClient(timeout=settings.provider_timeout, follow_redirects=True)
    chat = openai.AsyncOpenAI(
        api_key=settings.cohere_api_key,
        base_url=settings.chat_base_url,
        timeout=settings.provider_timeout,
        max_retries=settings.provider_max_retries,
    )
    reranker = Reranker(
        client=http,
        api_key=settings.cohere_api_key,
        url=settings.rerank_url,
        model=settings.rerank_model,
        timeout=settings.provider_timeout,
        max_retries=settings.provider_max_retries,
    )
    logger.info(f"Provider ready: chat={settings.chat_model} rerank={settings.rerank_model}")
    return Provider(chat=chat, reranker=reranker, http=http)
