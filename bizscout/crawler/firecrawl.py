# bizscout/crawler/firecrawl.py
"""
Client for the managed multi-page crawl API (Firecrawl v1).

Every outbound call passes through the shared :class:`RateLimiter`; in mock
mode the same calls are answered from :mod:`bizscout.crawler.fixtures`.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout

from bizscout.config import CrawlerConfig
from bizscout.crawler import fixtures
from bizscout.crawler.throttle import RateLimiter
from bizscout.errors import RateLimitError, RetrievalError

__all__ = ["FirecrawlClient", "BUSINESS_EXTRACTION_SCHEMA", "BUSINESS_EXTRACTION_PROMPT"]

BUSINESS_EXTRACTION_PROMPT = """\
Extract comprehensive business information from this webpage. Focus on:

1. Business identity: official business name, description, mission statement
2. Contact information: phone numbers, email addresses, physical addresses
3. Location details: city, state, country, postal codes, service areas
4. Business operations: industry type, services offered, products sold
5. Company details: founded date, team size, leadership, certifications
6. Social presence: social media links and handles

Be precise and only extract information that is explicitly stated on the webpage.
"""


def _prop(type_: str, description: str, **extra: Any) -> Dict[str, Any]:
    return {"type": type_, "description": description, **extra}


BUSINESS_EXTRACTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "businessName": _prop("string", "Official business name (clean, without page title artifacts)"),
        "description": _prop("string", "Business description, mission, or value proposition"),
        "industry": _prop("string", "Primary industry or business category"),
        "services": _prop("array", "List of services or products offered", items={"type": "string"}),
        "phone": _prop("string", "Primary phone number with area code"),
        "email": _prop("string", "Primary contact email address"),
        "address": _prop("string", "Full street address"),
        "city": _prop("string", "City name"),
        "state": _prop("string", "State or province"),
        "country": _prop("string", "Country (use US for United States)"),
        "postalCode": _prop("string", "ZIP or postal code"),
        "founded": _prop("string", "Year founded (YYYY format)"),
        "socialMedia": {
            "type": "object",
            "properties": {
                "facebook": _prop("string", "Facebook page URL"),
                "instagram": _prop("string", "Instagram profile URL"),
                "twitter": _prop("string", "Twitter/X profile URL"),
                "linkedin": _prop("string", "LinkedIn company page URL"),
            },
        },
        "teamSize": _prop("string", "Number of employees or team size"),
        "certifications": _prop(
            "array", "Professional certifications or accreditations", items={"type": "string"}
        ),
    },
    "required": ["businessName"],
}


class FirecrawlClient:
    """Thin async wrapper over ``POST /v1/crawl`` and ``GET /v1/crawl/{id}``."""

    def __init__(
        self,
        config: CrawlerConfig,
        session: Optional[ClientSession],
        limiter: RateLimiter,
    ) -> None:
        self.config = config
        self.session = session
        self.limiter = limiter
        self.base_url = str(config.firecrawl_base_url).rstrip("/")
        self.use_mock = config.use_mock_managed_api
        # unknown domains get a made-up profile only while developing
        self._mock_generic = config.runtime_mode == "development"
        self.logger = logging.getLogger("BizScout")
        # job handle -> crawled URL, so mock job statuses answer for the right site
        self._mock_jobs: Dict[str, str] = {}

    @property
    def available(self) -> bool:
        return self.use_mock or bool(self.config.firecrawl_api_key)

    def build_request(self, url: str) -> Dict[str, Any]:
        return {
            "url": url,
            "crawlerOptions": {
                "includes": list(self.config.include_patterns),
                "excludes": list(self.config.exclude_patterns),
                "maxDepth": self.config.max_depth,
                "limit": self.config.page_limit,
                "mode": "default",
                "ignoreSitemap": False,
                "allowBackwardCrawling": False,
                "allowExternalContentLinks": False,
            },
            "pageOptions": {
                "onlyMainContent": True,
                "includeLinks": True,
                "waitFor": 2000,
            },
            "extractorOptions": {
                "mode": "llm-extraction",
                "extractionPrompt": BUSINESS_EXTRACTION_PROMPT,
                "extractionSchema": BUSINESS_EXTRACTION_SCHEMA,
            },
        }

    async def crawl(self, url: str) -> Mapping[str, Any]:
        """Start a crawl; the response carries ``data`` pages or a job ``id``."""
        await self.limiter.acquire()
        self.logger.info(
            "Managed crawl for %s (maxDepth=%d, limit=%d)", url, self.config.max_depth, self.config.page_limit
        )
        if self.use_mock:
            self.logger.info("Managed crawl API in mock mode for %s", url)
            response = fixtures.mock_crawl_response(url, allow_generic=self._mock_generic)
            if response.get("id"):
                self._mock_jobs[response["id"]] = url
            return response
        return await self._request("POST", f"{self.base_url}/v1/crawl", json=self.build_request(url))

    async def job_status(self, handle: str) -> Mapping[str, Any]:
        await self.limiter.acquire()
        if self.use_mock:
            return fixtures.mock_job_status(
                handle, self._mock_jobs.get(handle, "https://example.com"), allow_generic=self._mock_generic
            )
        return await self._request("GET", f"{self.base_url}/v1/crawl/{handle}")

    async def _request(self, method: str, url: str, **kwargs: Any) -> Mapping[str, Any]:
        if not self.config.firecrawl_api_key:
            raise RetrievalError("Managed crawl API key is not configured")
        if self.session is None:
            raise RuntimeError("Session not initialized")
        headers = {"Authorization": f"Bearer {self.config.firecrawl_api_key}"}
        timeout = ClientTimeout(total=self.config.managed_timeout)
        try:
            async with self.session.request(method, url, headers=headers, timeout=timeout, **kwargs) as resp:
                if resp.status == 429:
                    raise RateLimitError("Managed crawl API rate limit exceeded (429)")
                if resp.status >= 400:
                    body = await resp.text()
                    raise RetrievalError(f"Managed crawl API error {resp.status}: {body[:200]}")
                data = await resp.json(content_type=None)
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise RetrievalError(f"Managed crawl API request failed: {exc!r}") from exc
        if not isinstance(data, dict):
            raise RetrievalError("Managed crawl API returned a non-object response")
        return data
