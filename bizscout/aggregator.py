# File: bizscout/aggregator.py
"""bizscout.aggregator: merges per-page extractions into one business record."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from bizscout.crawler.models import Location, PageExtraction
from bizscout.parser.location import infer_location_from_url

__all__ = [
    "MAX_SERVICES",
    "AggregationState",
    "EnrichmentSummary",
    "BusinessRecord",
    "CrawlResult",
    "aggregate_pages",
]

MAX_SERVICES = 10
DEFAULT_COUNTRY = "US"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _union(target: List[str], values: Iterable[str]) -> None:
    for value in values:
        if value and value not in target:
            target.append(value)


@dataclass(frozen=True, slots=True)
class EnrichmentSummary:
    """Which retrieval path produced the record and how far it is trusted."""

    model: str
    confidence: float
    processed_at: datetime
    source: str
    business_category: Optional[str] = None
    target_audience: Optional[str] = None
    service_offerings: Tuple[str, ...] = ()
    key_differentiators: Tuple[str, ...] = ()
    model_confidence: Optional[float] = None
    enriched_pages: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "confidence": self.confidence,
            "processedAt": _iso(self.processed_at),
            "source": self.source,
            "businessCategory": self.business_category,
            "targetAudience": self.target_audience,
            "serviceOfferings": list(self.service_offerings),
            "keyDifferentiators": list(self.key_differentiators),
            "modelConfidence": self.model_confidence,
            "enrichedPages": self.enriched_pages,
        }


@dataclass(frozen=True, slots=True)
class BusinessRecord:
    """Final merged business data of one crawl."""

    name: Optional[str]
    description: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    address: Optional[str]
    location: Location
    enrichment: EnrichmentSummary
    services: Tuple[str, ...] = ()
    social_links: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    image_url: Optional[str] = None
    categories: Tuple[str, ...] = ()
    industry: Optional[str] = None
    founded: Optional[str] = None
    employee_count: Optional[str] = None
    products: Tuple[str, ...] = ()
    certifications: Tuple[str, ...] = ()
    source_pages: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "location": self.location.to_dict(),
            "services": list(self.services),
            "socialLinks": dict(self.social_links),
            "imageUrl": self.image_url,
            "categories": list(self.categories),
            "businessDetails": {
                "industry": self.industry,
                "founded": self.founded,
                "employeeCount": self.employee_count,
                "products": list(self.products),
                "certifications": list(self.certifications),
            },
            "llmEnhanced": self.enrichment.to_dict(),
            "sourcePages": list(self.source_pages),
        }


@dataclass(frozen=True, slots=True)
class CrawlResult:
    """Terminal output of one crawl. Never mutated once produced."""

    success: bool
    url: str
    crawled_at: datetime
    data: Optional[BusinessRecord] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, url: str, data: BusinessRecord, crawled_at: datetime) -> "CrawlResult":
        return cls(success=True, url=url, crawled_at=crawled_at, data=data)

    @classmethod
    def failed(cls, url: str, error: str, crawled_at: Optional[datetime] = None) -> "CrawlResult":
        return cls(
            success=False,
            url=url,
            crawled_at=crawled_at or datetime.now(timezone.utc),
            error=error or "Crawl failed",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "url": self.url,
            "crawledAt": _iso(self.crawled_at),
            "data": self.data.to_dict() if self.data is not None else None,
            "error": self.error,
        }

    def json(self, *, pretty: bool = False) -> str:
        """JSON text of the result."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


class AggregationState:
    """Accumulator for one crawl; pages are added in crawl order.

    * name, image, industry, founded, employee count: first non-null wins
    * description: longest wins
    * phone/email/address: taken together from the page with the highest
      count of non-null members; a later page needs a strictly higher count
    * location: first page establishes it, later pages fill empty sub-fields
    * services: order-preserving union, at most ``MAX_SERVICES``
    * social links: first value per platform wins
    """

    def __init__(self) -> None:
        self.name: Optional[str] = None
        self.description: Optional[str] = None
        self.phone: Optional[str] = None
        self.email: Optional[str] = None
        self.address: Optional[str] = None
        self.contact_score = 0
        self.location: Optional[Location] = None
        self.services: List[str] = []
        self.social_links: Dict[str, str] = {}
        self.image_url: Optional[str] = None
        self.categories: List[str] = []
        self.industry: Optional[str] = None
        self.founded: Optional[str] = None
        self.employee_count: Optional[str] = None
        self.products: List[str] = []
        self.certifications: List[str] = []
        self.business_category: Optional[str] = None
        self.target_audience: Optional[str] = None
        self.differentiators: List[str] = []
        self.model_confidence: Optional[float] = None
        self.enriched_pages = 0
        self.pages: List[str] = []

    def add(self, extraction: PageExtraction) -> None:
        ext = extraction
        if ext.url and ext.url not in self.pages:
            self.pages.append(ext.url)

        self.name = self.name or ext.name
        if ext.description and len(ext.description) > len(self.description or ""):
            self.description = ext.description

        score = ext.contact_score()
        if score > self.contact_score:
            self.phone, self.email, self.address = ext.phone, ext.email, ext.address
            self.contact_score = score

        if ext.location is not None and not ext.location.is_empty():
            self.location = ext.location if self.location is None else self.location.merged_with(ext.location)

        for service in ext.services:
            if len(self.services) >= MAX_SERVICES:
                break
            if service and service not in self.services:
                self.services.append(service)

        for platform, link in ext.social_links.items():
            if link:
                self.social_links.setdefault(platform, link)

        self.image_url = self.image_url or ext.image_url
        _union(self.categories, ext.categories)
        self.industry = self.industry or ext.industry
        self.founded = self.founded or ext.founded
        self.employee_count = self.employee_count or ext.employee_count
        _union(self.products, ext.products)
        _union(self.certifications, ext.certifications)

        self.business_category = self.business_category or ext.business_category
        self.target_audience = self.target_audience or ext.target_audience
        _union(self.differentiators, ext.differentiators)
        if ext.model is not None:
            self.enriched_pages += 1
            if self.model_confidence is None:
                self.model_confidence = ext.confidence

    def finalize(
        self,
        url: str,
        *,
        model: str,
        confidence: float,
        source: str,
        processed_at: Optional[datetime] = None,
    ) -> BusinessRecord:
        """Freeze the accumulated state into a :class:`BusinessRecord`.

        URL-derived location hints only fill sub-fields still empty, and the
        country falls back to ``US`` last.
        """
        location = (self.location or Location()).merged_with(infer_location_from_url(url))
        location = location.merged_with(Location(address=self.address, country=DEFAULT_COUNTRY))

        summary = EnrichmentSummary(
            model=model,
            confidence=confidence,
            processed_at=processed_at or datetime.now(timezone.utc),
            source=source,
            business_category=self.business_category or self.industry,
            target_audience=self.target_audience,
            service_offerings=tuple(self.services),
            key_differentiators=tuple(self.differentiators),
            model_confidence=self.model_confidence,
            enriched_pages=self.enriched_pages,
        )
        return BusinessRecord(
            name=self.name,
            description=self.description,
            phone=self.phone,
            email=self.email,
            address=self.address,
            location=location,
            enrichment=summary,
            services=tuple(self.services),
            social_links=MappingProxyType(dict(self.social_links)),
            image_url=self.image_url,
            categories=tuple(self.categories),
            industry=self.industry,
            founded=self.founded,
            employee_count=self.employee_count,
            products=tuple(self.products),
            certifications=tuple(self.certifications),
            source_pages=tuple(self.pages),
        )


def aggregate_pages(
    extractions: Iterable[PageExtraction],
    url: str,
    *,
    model: str,
    confidence: float,
    source: str,
    processed_at: Optional[datetime] = None,
) -> BusinessRecord:
    """Run every extraction through one :class:`AggregationState`."""
    state = AggregationState()
    for extraction in extractions:
        state.add(extraction)
    return state.finalize(url, model=model, confidence=confidence, source=source, processed_at=processed_at)
