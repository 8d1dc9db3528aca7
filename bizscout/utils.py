# File: bizscout/utils.py
"""bizscout.utils: URL helpers shared by the engine and the CLI."""

from __future__ import annotations

from typing import Sequence
from urllib.parse import urlparse

from bizscout.errors import InvalidURLError
from bizscout.logger import logger

__all__: Sequence[str] = (
    "is_http_url",
    "validate_url",
    "extract_domain",
)


def is_http_url(url: object) -> bool:
    """True for an absolute URL with an ``http``/``https`` scheme and a host."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def validate_url(url: object) -> str:
    """Return the stripped URL or raise :class:`InvalidURLError`."""
    if not is_http_url(url):
        logger.debug("Rejected crawl target: %r", url)
        raise InvalidURLError(f"Invalid URL: {url!r} is not an absolute http(s) URL")
    return str(url).strip()


def extract_domain(url: str) -> str:
    """Host of *url* without a leading ``www.``."""
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host
