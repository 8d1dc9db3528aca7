# File: tests/test_engine.py
"""End-to-end crawl behaviour of bizscout.engine.Engine with stubbed collaborators."""
from __future__ import annotations

import dataclasses
import json
from datetime import datetime, timezone

import pytest

from bizscout.cache import ResultCache
from bizscout.config import CrawlerConfig
from bizscout.crawler.models import PageData
from bizscout.crawler.strategies import RETRIEVAL_FAILED, FixtureStrategy, StrategyChain
from bizscout.engine import Engine
from bizscout.enrichment.enricher import Enricher
from bizscout.errors import EnrichmentError
from bizscout.jobs import InMemoryJobStore
from conftest import BUSINESS_HTML, FakeClock, StubProvider, StubStrategy

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_engine(config, *strategies, provider=None, store=None, cache=None):
    return Engine(
        config,
        cache=cache,
        chain=StrategyChain(strategies),
        enricher=Enricher(provider) if provider is not None else None,
        job_store=store,
        clock=lambda: NOW,
    )


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "url",
    ["ftp://example.com/file", "example.com", "/relative/path", "javascript:alert(1)", "", "http://"],
)
async def test_invalid_url_fails_without_retrieval(test_config, url):
    strategy = StubStrategy("direct", [PageData(url="x", html=BUSINESS_HTML)])
    engine = make_engine(test_config, strategy)

    result = await engine.crawl(url)

    assert result.success is False
    assert "Invalid URL" in result.error
    assert strategy.calls == []
    assert len(engine.cache) == 0


@pytest.mark.asyncio()
async def test_repeated_crawl_hits_cache(test_config):
    url = "https://sunrisebakery.com/"
    strategy = StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)])
    engine = make_engine(test_config, strategy)

    first = await engine.crawl(url)
    second = await engine.crawl(url)

    assert first.success
    assert second is first
    assert second.json() == first.json()
    assert len(strategy.calls) == 1


@pytest.mark.asyncio()
async def test_cached_result_cannot_be_altered_by_caller(test_config):
    url = "https://sunrisebakery.com/"
    engine = make_engine(test_config, StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)]))

    first = await engine.crawl(url)
    with pytest.raises(dataclasses.FrozenInstanceError):
        first.data.location.city = "Tampered"
    with pytest.raises(TypeError):
        first.data.social_links["facebook"] = "https://facebook.com/tampered"

    second = await engine.crawl(url)
    assert second is first
    assert second.data.location.city == "Austin"
    assert second.to_dict()["data"]["location"]["city"] == "Austin"


@pytest.mark.asyncio()
async def test_cache_expiry_triggers_new_retrieval(test_config):
    url = "https://sunrisebakery.com/"
    clock = FakeClock()
    strategy = StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)])
    engine = make_engine(test_config, strategy, cache=ResultCache(ttl=60, clock=clock))

    await engine.crawl(url)
    clock.advance(61)
    await engine.crawl(url)

    assert len(strategy.calls) == 2


@pytest.mark.asyncio()
async def test_all_strategies_failing(test_config):
    engine = make_engine(
        test_config,
        StubStrategy("headless", error="render timeout"),
        StubStrategy("direct", raises=ConnectionError("refused")),
    )

    result = await engine.crawl("https://down.example/")

    assert result.success is False
    assert result.error == RETRIEVAL_FAILED
    assert result.data is None
    assert len(engine.cache) == 0
    # strategy internals do not leak into the result
    assert "refused" not in result.json()


@pytest.mark.asyncio()
async def test_heuristic_crawl_builds_record(test_config):
    url = "https://sunrisebakery.com/"
    engine = make_engine(test_config, StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)], model_tag="direct-fetch", confidence=0.6))

    result = await engine.crawl(url)
    record = result.data

    assert result.success
    assert result.url == url
    assert result.crawled_at == NOW
    assert record.name == "Sunrise Bakery"
    assert record.phone == "(512) 555-0199"
    assert record.location.city == "Austin"
    assert list(record.services) == ["Sourdough bread", "Custom cakes", "Seasonal pastries"]
    assert record.enrichment.model == "direct-fetch"
    assert record.enrichment.confidence == 0.6
    assert record.enrichment.source == "direct"


@pytest.mark.asyncio()
async def test_provider_failure_keeps_heuristic_data(test_config):
    url = "https://sunrisebakery.com/"
    provider = StubProvider(raises=EnrichmentError("provider down"))
    engine = make_engine(test_config, StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)]), provider=provider)

    result = await engine.crawl(url)

    assert result.success is True
    assert len(provider.prompts) == 1
    assert result.data.name == "Sunrise Bakery"
    assert result.data.email == "hello@sunrisebakery.com"
    assert result.data.employee_count is None
    assert result.data.enrichment.model_confidence is None
    assert result.data.enrichment.target_audience is None
    assert result.data.enrichment.enriched_pages == 0


@pytest.mark.asyncio()
async def test_model_output_is_validated_before_merge(test_config):
    url = "https://sunrisebakery.com/"
    answer = json.dumps(
        {
            "businessDetails": {"employeeCount": "abc", "founded": "circa 1990", "industry": "Bakery"},
            "enrichment": {"confidence": 1.7, "targetAudience": "Neighbourhood families"},
        }
    )
    engine = make_engine(
        test_config,
        StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)]),
        provider=StubProvider(f"```json\n{answer}\n```"),
    )

    record = (await engine.crawl(url)).data

    assert record.employee_count is None
    assert record.founded is None
    assert record.industry == "Bakery"
    assert record.enrichment.model_confidence == 0.5
    assert record.enrichment.target_audience == "Neighbourhood families"
    assert record.enrichment.enriched_pages == 1
    # heuristic fields are not replaced by model output
    assert record.name == "Sunrise Bakery"


@pytest.mark.asyncio()
async def test_pages_with_managed_extraction_skip_enrichment(test_config):
    url = "https://acme.example/"
    page = PageData(url=url, extract={"businessName": "Acme Corp", "phone": "555-0100"})
    provider = StubProvider("{}")
    engine = make_engine(
        test_config,
        StubStrategy("firecrawl", [page], model_tag="firecrawl-llm-multipage", confidence=0.95),
        provider=provider,
    )

    record = (await engine.crawl(url)).data

    assert provider.prompts == []
    assert record.name == "Acme Corp"
    assert record.enrichment.model == "firecrawl-llm-multipage"
    assert record.enrichment.confidence == 0.95


@pytest.mark.asyncio()
async def test_multi_page_merge_rules(test_config):
    url = "https://acme.example/"
    home = PageData(
        url=url,
        extract={
            "businessName": "Acme",
            "description": "A" * 40,
            "phone": "111",
            "email": "a@acme.example",
            "services": ["Pizza", "Pasta"],
            "socialMedia": {"facebook": "X"},
        },
    )
    contact = PageData(
        url=f"{url}contact",
        extract={
            "businessName": "Acme Contact Page",
            "description": "B" * 120,
            "phone": "222",
            "email": "b@acme.example",
            "address": "1 Main St",
            "services": ["Pasta", "Salads"],
            "socialMedia": {"facebook": "Y", "linkedin": "Z"},
        },
    )
    engine = make_engine(test_config, StubStrategy("firecrawl", [home, contact]))

    record = (await engine.crawl(url)).data

    assert record.name == "Acme"
    assert record.description == "B" * 120
    assert (record.phone, record.email, record.address) == ("222", "b@acme.example", "1 Main St")
    assert list(record.services) == ["Pizza", "Pasta", "Salads"]
    assert dict(record.social_links) == {"facebook": "X", "linkedin": "Z"}
    assert list(record.source_pages) == [url, f"{url}contact"]


@pytest.mark.asyncio()
async def test_progress_milestones(test_config):
    store = InMemoryJobStore()
    url = "https://sunrisebakery.com/"
    engine = make_engine(test_config, StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)]), store=store)

    await engine.crawl(url, job_id=17)

    assert [u.percent for u in store.updates[17]] == [10, 80, 100]


@pytest.mark.asyncio()
async def test_progress_store_failure_does_not_abort(test_config):
    class BrokenStore:
        def update_progress(self, *args, **kwargs):
            raise RuntimeError("db down")

    url = "https://sunrisebakery.com/"
    engine = make_engine(test_config, StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)]), store=BrokenStore())

    assert (await engine.crawl(url, job_id="j")).success


@pytest.mark.asyncio()
async def test_fixture_fallback_when_network_strategies_fail(test_config):
    engine = Engine(
        test_config,
        chain=StrategyChain(
            [
                StubStrategy("headless", error="browser missing"),
                StubStrategy("direct", error="HTTP 503"),
                FixtureStrategy(test_config),
            ]
        ),
        clock=lambda: NOW,
    )

    result = await engine.crawl("https://bluebottlecoffee.com/")
    record = result.data

    assert result.success
    assert record.name == "Blue Bottle Coffee"
    assert record.phone == "(510) 653-3394"
    assert record.location.postal_code == "94607"
    assert record.location.lat == 37.7749
    assert record.founded == "2002"
    assert record.enrichment.model == "mock-data"


@pytest.mark.asyncio()
async def test_unexpected_error_becomes_failed_result(test_config):
    class ExplodingChain(StrategyChain):
        async def retrieve(self, request, progress):
            raise KeyError("bug")

    engine = Engine(test_config, chain=ExplodingChain([]), clock=lambda: NOW)
    result = await engine.crawl("https://acme.example/")

    assert result.success is False
    assert result.error
    assert len(engine.cache) == 0


def test_crawl_sync(test_config):
    url = "https://sunrisebakery.com/"
    engine = make_engine(test_config, StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)]))
    assert engine.crawl_sync(url).success


def test_load_config_helper(tmp_path):
    path = tmp_path / "c.yaml"
    path.write_text("runtime_mode: test\n", encoding="utf-8")
    assert isinstance(Engine.load_config(str(path)), CrawlerConfig)
