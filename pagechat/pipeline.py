"""
The request pipeline: load -> chunk -> select -> generate.

`RagPipeline` is the single implementation behind the HTTP route, the CLI and
library use. It holds no per-request state.
"""
import logging
from typing import Optional

from pagechat.api.schemas import ChatResponse
from pagechat.config import Settings, get_settings
from pagechat.data.loader import load_content
from pagechat.errors import InvalidRequestError
from pagechat.llm.synthesize import generate_answer
from pagechat.provider import Provider, build_provider
from pagechat.retrieval.chunking import chunk_text
from pagechat.retrieval.rerank import select_chunks
from pagechat.utils.timing import measure_latency

logger = logging.getLogger(__name__)


def validate_input(url: Optional[str], text: Optional[str], query: Optional[str]) -> None:
    missing = []
    if not (url and url.strip()) and not (text and text.strip()):
        missing.append("URL (or Text)")
    if not (query and query.strip()):
        missing.append("Query")
    if missing:
        verb = "is" if len(missing) == 1 else "are"
        raise InvalidRequestError(f"{' and '.join(missing)} {verb} required")


class RagPipeline:
    def __init__(self, provider: Provider, settings: Optional[Settings] = None):
        self.provider = provider
        self.settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RagPipeline":
        """Library entry point; fails fast when the credential is missing."""
        settings = settings or get_settings()
        return cls(build_provider(settings), settings)

    async def aclose(self) -> None:
        await self.provider.aclose()

    @measure_latency
    async def run(
        self,
        url: Optional[str] = None,
        text: Optional[str] = None,
        query: Optional[str] = None,
    ) -> ChatResponse:
        validate_input(url, text, query)
        url = url.strip() if url and url.strip() else None
        query = query.strip()

        clean_text = await load_content(
            url=url,
            text=text,
            client=self.provider.http,
            timeout=self.settings.fetch_timeout,
        )
        if not clean_text:
            raise InvalidRequestError("No content could be extracted from the provided input.")

        chunks = chunk_text(clean_text, self.settings.chunk_size)
        logger.info(f"Created {len(chunks)} chunks")

        relevant_chunks = await select_chunks(
            query,
            chunks,
            self.provider.reranker,
            top_n=self.settings.rerank_top_n,
            min_score=self.settings.rerank_min_score,
        )

        generated = await generate_answer(
            query,
            relevant_chunks,
            client=self.provider.chat,
            model=self.settings.chat_model,
            temperature=self.settings.chat_temperature,
        )

        return ChatResponse(
            answer=generated.answer,
            citations=generated.citations,
            sources=relevant_chunks,
        )
