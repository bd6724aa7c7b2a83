import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from pagechat.errors import ProviderError
from pagechat.utils.timing import measure_latency

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RerankResult:
    index: int
    relevance_score: float


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


class Reranker:
    """Client for a Cohere-style `/rerank` endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        url: str = "https://api.cohere.com/v2/rerank",
        model: str = "rerank-english-v3.0",
        timeout: float = 60.0,
        max_retries: int = 2,
        backoff: float = 1.0,
    ):
        self.client = client
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff

    async def _post(self, payload: dict) -> dict:
        response = await self.client.post(
            self.url,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def rerank(self, query: str, documents: Sequence[str], top_n: int = 3) -> List[RerankResult]:
        """Score `documents` against `query`; results come back best first."""
        payload = {
            "model": self.model,
            "query": query,
            "documents": list(documents),
            "top_n": top_n,
        }
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries + 1),
                wait=wait_exponential(multiplier=self.backoff, min=self.backoff, max=10),
                retry=retry_if_exception(_is_retryable),
                reraise=True,
            ):
                with attempt:
                    data = await self._post(payload)
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"Rerank failed with status {e.response.status_code}: {e.response.text}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Rerank request failed: {e}") from e

        results = []
        for item in data.get("results", []):
            idx = item.get("index")
            if not isinstance(idx, int) or not 0 <= idx < len(documents):
                logger.warning(f"Reranker returned out-of-range index {idx!r}; ignoring")
                continue
            results.append(RerankResult(index=idx, relevance_score=float(item.get("relevance_score", 0.0))))
        results.sort(key=lambda r: r.relevance_score, reverse=True)
        return results


@measure_latency
async def select_chunks(
    query: str,
    chunks: Sequence[str],
    reranker: Reranker,
    top_n: int = 3,
    min_score: Optional[float] = None,
) -> List[str]:
    """Pick the `top_n` chunks most relevant to `query`, most relevant first.

    With a single chunk there is nothing to rank and the reranker is skipped.
    When `min_score` is set, results scoring at or below it are dropped; if
    that leaves nothing, the best result is kept anyway.
    """
    if len(chunks) <= 1:
        logger.info("Single chunk, skipping rerank")
        return list(chunks)

    logger.info(f"Reranking {len(chunks)} chunks for query: {query!r}")
    results = await reranker.rerank(query, chunks, top_n=top_n)

    if min_score is not None:
        kept = [r for r in results if r.relevance_score > min_score]
        if not kept and results:
            logger.warning(
                f"No rerank result scored above {min_score}; keeping best match "
                f"(score {results[0].relevance_score:.3f})"
            )
            kept = results[:1]
        results = kept

    return [chunks[r.index] for r in results[:top_n]]
