# bizscout/crawler/strategies.py
"""
Retrieval strategies and the chain that tries them in priority order.

Each strategy reports its result as a :class:`StrategyOutcome` instead of
raising; the chain moves on to the next strategy until one yields usable
content and only reports a terminal failure once every strategy is spent.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterator, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from aiohttp import ClientSession

from bizscout.config import CrawlerConfig
from bizscout.crawler import fixtures
from bizscout.crawler.browser import BrowserFetcher
from bizscout.crawler.fetcher import DirectFetcher, assess_content
from bizscout.crawler.firecrawl import FirecrawlClient
from bizscout.crawler.models import CrawlRequest, PageData, StrategyOutcome
from bizscout.crawler.poller import PROGRESS_FLOOR, JobPoller, Sleeper
from bizscout.crawler.throttle import RateLimiter
from bizscout.errors import JobPollingError, RetrievalError
from bizscout.jobs import ProgressReporter

__all__ = [
    "Strategy",
    "ManagedCrawlStrategy",
    "BrowserStrategy",
    "DirectFetchStrategy",
    "FixtureStrategy",
    "StrategyChain",
    "build_default_chain",
    "RETRIEVAL_FAILED",
]

RETRIEVAL_FAILED = "Failed to retrieve meaningful content"

logger = logging.getLogger("BizScout")


@runtime_checkable
class Strategy(Protocol):
    name: str
    model_tag: str
    confidence: float

    async def run(self, request: CrawlRequest, progress: ProgressReporter) -> StrategyOutcome: ...


def _usable_html(page: PageData, min_chars: int) -> Optional[str]:
    """Reason the page is unusable, or ``None``."""
    return assess_content(page.html or page.markdown, min_chars)


class ManagedCrawlStrategy:
    """Multi-page crawl with built-in extraction through the managed API."""

    name = "firecrawl"
    model_tag = "firecrawl-llm-multipage"
    confidence = 0.95

    def __init__(
        self,
        client: FirecrawlClient,
        config: CrawlerConfig,
        *,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.client = client
        self.config = config
        self._sleep = sleep

    @staticmethod
    def _page(item: Mapping[str, Any], fallback_url: str) -> PageData:
        metadata = item.get("metadata") if isinstance(item.get("metadata"), Mapping) else {}
        extract = item.get("llm_extraction") or item.get("extract")
        return PageData(
            url=item.get("url") or metadata.get("sourceURL") or fallback_url,
            html=item.get("html") or item.get("content") or "",
            markdown=item.get("markdown") or "",
            extract=extract if isinstance(extract, Mapping) and extract else None,
            metadata=dict(metadata),
        )

    async def run(self, request: CrawlRequest, progress: ProgressReporter) -> StrategyOutcome:
        if not self.client.available:
            return StrategyOutcome.failure(self.name, "managed crawl API is not configured")

        try:
            response = await self.client.crawl(request.url)
        except RetrievalError as exc:
            return StrategyOutcome.failure(self.name, str(exc))

        handle = response.get("id") or response.get("jobId")
        data = response.get("data")
        if response.get("success") is False and not data and not handle:
            return StrategyOutcome.failure(self.name, str(response.get("error") or "managed crawl rejected"))

        if isinstance(data, list) and data:
            items: List[Mapping[str, Any]] = data
        elif handle:
            await progress(PROGRESS_FLOOR, "Crawl job started", external_handle=str(handle))
            poller = JobPoller(
                self.client.job_status,
                interval=self.config.poll_interval,
                max_attempts=self.config.poll_max_attempts,
                sleep=self._sleep,
                on_progress=progress,
            )
            try:
                items = await poller.poll(str(handle))
            except (JobPollingError, RetrievalError) as exc:
                return StrategyOutcome(strategy=self.name, error=str(exc), job_handle=str(handle))
        else:
            return StrategyOutcome.failure(self.name, "managed crawl returned neither pages nor a job handle")

        pages = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            page = self._page(item, request.url)
            reason = None if page.extract else _usable_html(page, self.config.min_content_chars)
            if reason:
                logger.debug("Skipping managed page %s: %s", page.url, reason)
                continue
            pages.append(page)

        if not pages:
            return StrategyOutcome(
                strategy=self.name,
                error="managed crawl returned no usable pages",
                job_handle=str(handle) if handle else None,
            )
        return StrategyOutcome(strategy=self.name, pages=pages, job_handle=str(handle) if handle else None)


class _SinglePageStrategy:
    """Shared body for strategies that fetch exactly one page."""

    name = ""
    model_tag = ""
    confidence = 0.0

    def __init__(self, fetcher: Any, config: CrawlerConfig) -> None:
        self.fetcher = fetcher
        self.config = config

    async def run(self, request: CrawlRequest, progress: ProgressReporter) -> StrategyOutcome:
        try:
            page = await self.fetcher.fetch(request.url)
        except RetrievalError as exc:
            return StrategyOutcome.failure(self.name, str(exc))
        reason = _usable_html(page, self.config.min_content_chars)
        if reason:
            return StrategyOutcome.failure(self.name, reason)
        return StrategyOutcome(strategy=self.name, pages=[page])


class BrowserStrategy(_SinglePageStrategy):
    name = "headless"
    model_tag = "headless-browser"
    confidence = 0.7

    def __init__(self, fetcher: BrowserFetcher, config: CrawlerConfig) -> None:
        super().__init__(fetcher, config)


class DirectFetchStrategy(_SinglePageStrategy):
    name = "direct"
    model_tag = "direct-fetch"
    confidence = 0.6

    def __init__(self, fetcher: DirectFetcher, config: CrawlerConfig) -> None:
        super().__init__(fetcher, config)


class FixtureStrategy:
    """Canned content; never part of a production chain."""

    name = "fixture"
    model_tag = "mock-data"
    confidence = 0.5

    def __init__(self, config: CrawlerConfig) -> None:
        self.config = config

    async def run(self, request: CrawlRequest, progress: ProgressReporter) -> StrategyOutcome:
        profile = fixtures.fixture_profile(
            request.url, allow_generic=self.config.runtime_mode == "development"
        )
        if profile is None:
            return StrategyOutcome.failure(self.name, f"no fixture for {fixtures.fixture_domain(request.url)}")
        page = PageData(
            url=request.url,
            html=fixtures.render_fixture_html(profile, request.url),
            extract=fixtures.fixture_extract(profile),
            metadata={"fixture": True},
        )
        return StrategyOutcome(strategy=self.name, pages=[page])


class StrategyChain:
    """Ordered strategies; the first usable outcome wins."""

    def __init__(self, strategies: Sequence[Strategy]) -> None:
        self.strategies = list(strategies)

    def __iter__(self) -> Iterator[Strategy]:
        return iter(self.strategies)

    def __len__(self) -> int:
        return len(self.strategies)

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.strategies]

    def get(self, name: str) -> Optional[Strategy]:
        for strategy in self.strategies:
            if strategy.name == name:
                return strategy
        return None

    async def retrieve(self, request: CrawlRequest, progress: ProgressReporter) -> StrategyOutcome:
        for strategy in self.strategies:
            logger.info("Trying %s strategy for %s", strategy.name, request.url)
            try:
                outcome = await strategy.run(request, progress)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("%s strategy raised for %s: %s", strategy.name, request.url, exc)
                continue
            if outcome.ok:
                logger.info(
                    "%s strategy succeeded for %s (%d pages)", strategy.name, request.url, len(outcome.pages)
                )
                return outcome
            logger.warning("%s strategy failed for %s: %s", strategy.name, request.url, outcome.error)

        logger.error("All retrieval strategies failed for %s", request.url)
        return StrategyOutcome.failure("none", RETRIEVAL_FAILED)


def build_default_chain(
    config: CrawlerConfig,
    session: ClientSession,
    *,
    limiter: Optional[RateLimiter] = None,
    sleep: Sleeper = asyncio.sleep,
) -> StrategyChain:
    """Managed API, headless browser, direct fetch and fixtures, as the environment allows."""
    strategies: List[Strategy] = []

    client = FirecrawlClient(config, session, limiter or RateLimiter(config.min_request_interval))
    if client.available:
        strategies.append(ManagedCrawlStrategy(client, config, sleep=sleep))
    else:
        logger.info("Managed crawl API unavailable: no API key and mock mode off")

    if config.headless_enabled:
        strategies.append(BrowserStrategy(BrowserFetcher(config), config))
    strategies.append(DirectFetchStrategy(DirectFetcher(session, config), config))
    if config.fixtures_enabled:
        strategies.append(FixtureStrategy(config))

    logger.debug("Strategy chain: %s", ", ".join(s.name for s in strategies))
    return StrategyChain(strategies)
