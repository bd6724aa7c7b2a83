"""
Content loader: turns a URL or pasted text into one normalized string.

Document acquisition fails often (login walls, JS-rendered apps, bot
blocking). Instead of erroring, a failed URL is replaced by a system note that
tells the answer model to ask the user to paste the text.
"""
import logging
import re
from typing import Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from pagechat.data.fetch import fetch_html

logger = logging.getLogger(__name__)

NOISE_TAGS = ["script", "style", "nav", "footer"]

# (domain, display name)
LOGIN_WALL_DOMAINS = [
    ("linkedin.com", "LinkedIn"),
    ("outlook.office.com", "Outlook"),
    ("gmail.com", "Gmail"),
    ("facebook.com", "Facebook"),
    ("instagram.com", "Instagram"),
    ("twitter.com", "Twitter"),
    ("x.com", "X (Twitter)"),
]

LOGIN_WALL_TEMPLATE = (
    "[SYSTEM NOTE: The user is attempting to access a {name} URL ({url}) which is behind a LOGIN WALL. "
    "You CANNOT access this page. Explicitly tell the user: \"This appears to be a protected {name} page "
    "which requires a login. Please copy and paste the text directly into the input box so I can analyze it.\"]"
    "\nURL: {url}"
)

GENERIC_FALLBACK_PHRASE = "Unable to extract content from"

GENERIC_TEMPLATE = (
    "[SYSTEM NOTE: " + GENERIC_FALLBACK_PHRASE + " {url}. The website might utilize dynamic JavaScript "
    "rendering (SPA) or block automated access. Please ask the user to verify the URL or try pasting "
    "the text directly.]"
    "\nURL: {url}"
)

_whitespace_re = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _whitespace_re.sub(" ", text).strip()


def extract_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NOISE_TAGS):
        tag.decompose()
    root = soup.body or soup
    return collapse_whitespace(root.get_text(" "))


def match_login_wall(url: str) -> Optional[str]:
    """Return the display name of the login-gated site `url` points at, if any."""
    try:
        host = (urlparse(url).hostname or "").lower()
        if not host:
            # Scheme-less input like "linkedin.com/in/someone"
            host = (urlparse(f"//{url}").hostname or "").lower()
    except ValueError:
        # e.g. "http://[::1" (unbalanced IPv6 brackets)
        return None
    for domain, name in LOGIN_WALL_DOMAINS:
        if host == domain or host.endswith("." + domain):
            return name
    return None


def fallback_notice(url: str) -> str:
    name = match_login_wall(url)
    if name:
        return LOGIN_WALL_TEMPLATE.format(name=name, url=url)
    return GENERIC_TEMPLATE.format(url=url)


async def load_content(
    url: Optional[str] = None,
    text: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 15.0,
) -> str:
    if url:
        logger.info(f"Processing URL: {url}")
        result = await fetch_html(url, client=client, timeout=timeout)
        clean_text = ""
        if result.ok:
            clean_text = extract_text(result.html or "")
        else:
            logger.warning(f"Fetch failed for {url} ({result.error.kind}): {result.error.message}")

        if not clean_text:
            logger.warning(f"Scraping yielded empty text for {url}. Using fallback.")
            clean_text = fallback_notice(url)
        return clean_text

    if text:
        logger.info("Processing raw text input")
        return collapse_whitespace(text)

    return ""
