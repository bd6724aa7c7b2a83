"""
Document fetcher.

`fetch_html` never raises: a failed fetch comes back as a `FetchResult`
carrying a `FetchError`, so callers decide how to degrade.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# Plenty of sites reject clients that don't look like a desktop browser.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


@dataclass(frozen=True)
class FetchError:
    kind: str  # "http_status" | "network" | "invalid_url"
    message: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class FetchResult:
    url: str
    html: Optional[str] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fetch_html(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 15.0,
) -> FetchResult:
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    try:
        response = await client.get(url, headers=BROWSER_HEADERS, timeout=timeout)
    except (httpx.InvalidURL, ValueError) as e:
        return FetchResult(url=url, error=FetchError(kind="invalid_url", message=str(e) or type(e).__name__))
    except httpx.HTTPError as e:
        return FetchResult(url=url, error=FetchError(kind="network", message=str(e) or type(e).__name__))
    finally:
        if owns_client:
            await client.aclose()

    if not response.is_success:
        snippet = response.text[:100] if response.content else ""
        return FetchResult(
            url=url,
            error=FetchError(
                kind="http_status",
                message=f"Failed to fetch URL. Status: {response.status_code} {response.reason_phrase}. {snippet}".strip(),
                status_code=response.status_code,
            ),
        )

    return FetchResult(url=url, html=response.text)
