# bizscout/crawler/fetcher.py
"""
Fetcher module: plain HTTP GET with a browser User-Agent and a hard timeout,
plus the content-quality gate shared by every HTML-producing strategy.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional

from aiohttp import ClientError, ClientSession, ClientTimeout
from bs4 import BeautifulSoup

from bizscout.config import CrawlerConfig
from bizscout.crawler.models import PageData
from bizscout.errors import RetrievalError

__all__ = ["DirectFetcher", "assess_content", "browser_headers"]

_JS_REQUIRED_RE = re.compile(
    r"(please\s+)?(enable|turn\s+on)\s+javascript|javascript\s+is\s+(required|disabled)"
    r"|you\s+need\s+to\s+enable\s+javascript",
    re.I,
)
# Wording a challenge interstitial shows in its title or body text.
_PAGE_CHALLENGE_MARKERS = (
    "just a moment...",
    "attention required! | cloudflare",
    "checking your browser before accessing",
    "ddos protection by",
    "are you a robot",
)
# Markup hooks of challenge pages; real pages behind the same CDN also load
# beacon scripts from these paths, so they only count on thin pages.
_MARKUP_CHALLENGE_MARKERS = (
    "cf-browser-verification",
    "challenge-platform",
    "cf-chl-",
)


def browser_headers(user_agent: str) -> dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


def assess_content(html: str, min_chars: int = 100) -> Optional[str]:
    """Return why *html* is not usable content, or ``None`` if it is.

    Pages that are nearly empty, ask for JavaScript, or show a bot challenge
    count as empty even when the HTTP call itself succeeded.
    """
    if not html or not html.strip():
        return "empty response"

    soup = BeautifulSoup(html, "html.parser")
    title_tag = soup.find("title")
    title = title_tag.get_text(" ", strip=True).lower() if title_tag else ""
    for element in soup(["script", "style", "noscript", "template"]):
        element.decompose()
    text = " ".join(soup.stripped_strings)

    visible = f"{title} {text.lower()}"
    for marker in _PAGE_CHALLENGE_MARKERS:
        if marker in visible:
            return f"bot challenge detected ({marker})"
    lowered = html.lower()
    if len(text) < min_chars * 3:
        for marker in _MARKUP_CHALLENGE_MARKERS:
            if marker in lowered:
                return f"bot challenge detected ({marker})"

    if len(text) < min_chars:
        if _JS_REQUIRED_RE.search(text) or _JS_REQUIRED_RE.search(lowered):
            return "page requires JavaScript"
        return f"too little content ({len(text)} chars)"
    if _JS_REQUIRED_RE.search(text) and len(text) < min_chars * 3:
        return "page requires JavaScript"
    return None


class DirectFetcher:
    """Fetches one URL without rendering; the last general-purpose resort."""

    def __init__(self, session: ClientSession, config: CrawlerConfig) -> None:
        self.session = session
        self.config = config
        self.logger = logging.getLogger("BizScout")

    async def fetch(self, url: str) -> PageData:
        """Return the page or raise :class:`RetrievalError`."""
        timeout = ClientTimeout(total=self.config.fetch_timeout)
        try:
            async with self.session.get(
                url,
                headers=browser_headers(self.config.user_agent),
                timeout=timeout,
                allow_redirects=True,
            ) as resp:
                if resp.status >= 400 or resp.status < 200:
                    raise RetrievalError(f"HTTP {resp.status}: {resp.reason or 'error'}")
                ctype = resp.headers.get("Content-Type", "").lower()
                if ctype and "html" not in ctype and "xml" not in ctype and "text" not in ctype:
                    raise RetrievalError(f"Unsupported content type: {ctype}")
                text = await resp.text(errors="replace")
                final_url = str(resp.url)
        except asyncio.TimeoutError as exc:
            raise RetrievalError(f"Timeout after {self.config.fetch_timeout:g}s") from exc
        except ClientError as exc:
            raise RetrievalError(f"Network error: {exc}") from exc

        self.logger.debug("Fetched %s (%d bytes)", final_url, len(text))
        return PageData(url=final_url or url, html=text)
