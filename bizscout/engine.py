# File: bizscout/engine.py
"""bizscout.engine: crawl orchestration from cache lookup to the final result."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from aiohttp import ClientSession

from bizscout.aggregator import AggregationState, CrawlResult
from bizscout.cache import ResultCache
from bizscout.config import CrawlerConfig, load_config
from bizscout.crawler.models import CrawlRequest, PageData, PageExtraction, StrategyOutcome
from bizscout.crawler.strategies import RETRIEVAL_FAILED, StrategyChain, build_default_chain
from bizscout.crawler.throttle import RateLimiter
from bizscout.enrichment.enricher import Enricher
from bizscout.enrichment.llm import OpenRouterClient
from bizscout.errors import InvalidURLError
from bizscout.jobs import JobStore, ProgressReporter
from bizscout.logger import logger
from bizscout.parser.html_parser import extract_from_managed, extract_page
from bizscout.utils import validate_url

__all__ = ["Engine"]

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Engine:
    """Facade for the CLI and the tests.

    ``Idle -> CacheCheck -> Retrieving -> Extracting -> Aggregating -> Caching -> Done``,
    with ``Failed`` reachable from validation and retrieval only. Built once per
    process: the cache and the managed-API rate limiter live as long as the
    engine does.
    """

    @staticmethod
    def load_config(path: Optional[str]) -> CrawlerConfig:
        """Load YAML/JSON config (plus environment overrides) or defaults."""
        return load_config(path)

    def __init__(
        self,
        config: CrawlerConfig,
        *,
        cache: Optional[ResultCache] = None,
        chain: Optional[StrategyChain] = None,
        enricher: Optional[Enricher] = None,
        job_store: Optional[JobStore] = None,
        clock: Clock = _utcnow,
    ) -> None:
        self.config = config
        self.cache = cache if cache is not None else ResultCache(config.cache_ttl, config.cache_max_size)
        self.chain = chain
        self.enricher = enricher
        self.job_store = job_store
        self._clock = clock
        self.limiter = RateLimiter(config.min_request_interval)

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    async def crawl(self, url: str, job_id: Any = None) -> CrawlResult:
        """Crawl one business website. Never raises; failures come back as results."""
        progress = ProgressReporter(self.job_store, job_id)

        try:
            request = CrawlRequest(url=validate_url(url), job_id=job_id)
        except InvalidURLError as exc:
            logger.warning("Crawl rejected: %s", exc)
            return CrawlResult.failed(str(url), str(exc), self._clock())

        cached = self.cache.get(request.url)
        if cached is not None:
            logger.info("Cache hit for %s", request.url)
            await progress(100, "Served from cache")
            return cached

        logger.info("Crawl started for %s", request.url)
        await progress(10, "Starting crawl")
        try:
            if self.chain is not None:
                result = await self._run(request, progress, self.chain, self.enricher)
            else:
                async with ClientSession() as session:
                    chain = build_default_chain(self.config, session, limiter=self.limiter)
                    enricher = self.enricher or self._default_enricher(session)
                    result = await self._run(request, progress, chain, enricher)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Crawl of %s failed unexpectedly: %s", request.url, exc)
            result = CrawlResult.failed(request.url, "Unexpected error while crawling", self._clock())

        if result.success:
            self.cache.put(request.url, result)
            await progress(100, "Crawl completed")
        else:
            await progress(100, f"Crawl failed: {result.error}")
        return result

    def crawl_sync(self, url: str, job_id: Any = None) -> CrawlResult:
        """Blocking wrapper around :meth:`crawl`."""
        return asyncio.run(self.crawl(url, job_id))

    # ------------------------------------------------------------------ #
    # Internals                                                          #
    # ------------------------------------------------------------------ #

    def _default_enricher(self, session: ClientSession) -> Optional[Enricher]:
        if not self.config.openrouter_api_key:
            logger.debug("Model enrichment disabled: no model provider key")
            return None
        return Enricher(
            OpenRouterClient(self.config, session),
            timeout=self.config.llm_timeout,
            char_limit=self.config.prompt_char_limit,
        )

    async def _run(
        self,
        request: CrawlRequest,
        progress: ProgressReporter,
        chain: StrategyChain,
        enricher: Optional[Enricher],
    ) -> CrawlResult:
        outcome = await chain.retrieve(request, progress)
        if not outcome.ok:
            return CrawlResult.failed(request.url, outcome.error or RETRIEVAL_FAILED, self._clock())

        extractions = await self._extract(outcome, enricher)

        await progress(80, "Aggregating results")
        strategy = chain.get(outcome.strategy)
        state = AggregationState()
        for extraction in extractions:
            state.add(extraction)
        crawled_at = self._clock()
        record = state.finalize(
            request.url,
            model=strategy.model_tag if strategy is not None else outcome.strategy,
            confidence=strategy.confidence if strategy is not None else 0.5,
            source=outcome.strategy,
            processed_at=crawled_at,
        )
        logger.info(
            "Crawl of %s finished via %s: %d pages, name=%r",
            request.url,
            outcome.strategy,
            len(outcome.pages),
            record.name,
        )
        return CrawlResult.succeeded(request.url, record, crawled_at)

    async def _extract(self, outcome: StrategyOutcome, enricher: Optional[Enricher]) -> List[PageExtraction]:
        extractions: List[PageExtraction] = []
        for page in outcome.pages:
            extraction = self._extract_page(page)
            # pages that came with their own extraction already had a model pass
            if page.extract is None and enricher is not None:
                enriched = await enricher.enrich(page, extraction)
                extraction.fill_from(enriched)
            extractions.append(extraction)
        return extractions

    @staticmethod
    def _extract_page(page: PageData) -> PageExtraction:
        if page.extract:
            extraction = extract_from_managed(page.extract, page.url)
            if page.html:
                extraction.fill_from(extract_page(page))
            return extraction
        return extract_page(page)
