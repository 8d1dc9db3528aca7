# File: tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator
from typing import List, Optional, Sequence

import pytest
from aiohttp import web

from bizscout.config import CrawlerConfig
from bizscout.crawler.models import CrawlRequest, PageData, StrategyOutcome

LONG_TEXT = (
    "Family-owned bakery serving the neighbourhood since 1987 with fresh bread, "
    "seasonal pastries and custom cakes baked every morning in our own ovens."
)

BUSINESS_HTML = f"""
<html>
<head>
  <title>Sunrise Bakery | Fresh Bread in Austin</title>
  <meta name="description" content="Sunrise Bakery bakes fresh bread daily.">
  <meta property="og:image" content="/img/storefront.jpg">
  <script type="application/ld+json">
  {{
    "@context": "https://schema.org",
    "@type": "Bakery",
    "name": "Sunrise Bakery",
    "telephone": "(512) 555-0199",
    "email": "hello@sunrisebakery.com",
    "address": {{
      "@type": "PostalAddress",
      "streetAddress": "101 Congress Ave",
      "addressLocality": "Austin",
      "addressRegion": "TX",
      "postalCode": "78701",
      "addressCountry": "US"
    }},
    "geo": {{"@type": "GeoCoordinates", "latitude": 30.2672, "longitude": -97.7431}}
  }}
  </script>
</head>
<body>
  <nav><ul><li>Home page link</li><li>About us link</li></ul></nav>
  <main>
    <h1>Sunrise Bakery</h1>
    <p>{LONG_TEXT}</p>
    <h2>What we bake</h2>
    <ul>
      <li>Sourdough bread</li>
      <li>Custom cakes</li>
      <li>Seasonal pastries</li>
    </ul>
    <a href="https://www.facebook.com/sunrisebakery">Facebook</a>
    <a href="https://instagram.com/sunrisebakery">Instagram</a>
  </main>
  <footer><ul><li>Privacy policy</li></ul></footer>
</body>
</html>
"""


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement: records delays and advances an optional clock."""

    def __init__(self, clock: Optional[FakeClock] = None) -> None:
        self.calls: List[float] = []
        self.clock = clock

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        if self.clock is not None:
            self.clock.advance(delay)


class StubStrategy:
    """Strategy returning a canned outcome and counting its runs."""

    def __init__(
        self,
        name: str,
        pages: Sequence[PageData] = (),
        *,
        error: Optional[str] = None,
        raises: Optional[BaseException] = None,
        model_tag: str = "stub",
        confidence: float = 0.6,
    ) -> None:
        self.name = name
        self.pages = list(pages)
        self.error = error
        self.raises = raises
        self.model_tag = model_tag
        self.confidence = confidence
        self.calls: List[CrawlRequest] = []

    async def run(self, request, progress) -> StrategyOutcome:
        self.calls.append(request)
        if self.raises is not None:
            raise self.raises
        if self.error is not None or not self.pages:
            return StrategyOutcome.failure(self.name, self.error or "no content")
        return StrategyOutcome(strategy=self.name, pages=list(self.pages))


class StubProvider:
    """Model provider answering with fixed text, or raising."""

    def __init__(self, answer: str = "", *, raises: Optional[BaseException] = None, model: str = "test/model"):
        self.answer = answer
        self.raises = raises
        self.model = model
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.raises is not None:
            raise self.raises
        return self.answer


@pytest.fixture()
def test_config() -> CrawlerConfig:
    """Config for offline tests: no waiting, no managed API, fixtures for known domains only."""
    return CrawlerConfig(
        runtime_mode="test",
        user_agent="TestAgent/1.0",
        fetch_timeout=2.0,
        min_request_interval=0,
        poll_interval=0,
        mock_managed_api=False,
    )


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def business_page() -> PageData:
    return PageData(url="https://sunrisebakery.com/", html=BUSINESS_HTML)


async def serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()
