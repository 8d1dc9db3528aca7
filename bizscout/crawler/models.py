# bizscout/crawler/models.py
"""
Data models shared by the retrieval strategies, the extractor and the aggregator.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional

LOCATION_FIELDS = ("address", "city", "state", "country", "postal_code", "lat", "lng")


@dataclass(frozen=True, slots=True)
class CrawlRequest:
    """One crawl target plus the optional external job to report progress to."""

    url: str
    job_id: Optional[Any] = None


@dataclass(slots=True)
class PageData:
    """Raw content of a single page as delivered by a retrieval strategy."""

    url: str
    html: str = ""
    markdown: str = ""
    extract: Optional[Mapping[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Location:
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    def completeness(self) -> int:
        return sum(1 for name in LOCATION_FIELDS if getattr(self, name) is not None)

    def is_empty(self) -> bool:
        return self.completeness() == 0

    def merged_with(self, other: Optional["Location"]) -> "Location":
        """New location with the sub-fields still missing here taken from *other*."""
        if other is None:
            return self
        missing = {
            name: getattr(other, name)
            for name in LOCATION_FIELDS
            if getattr(self, name) is None and getattr(other, name) is not None
        }
        return replace(self, **missing) if missing else self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "postalCode": self.postal_code,
            "lat": self.lat,
            "lng": self.lng,
        }


@dataclass(slots=True)
class PageExtraction:
    """Partial business fields found on one page.

    ``None`` means "not found yet"; an empty list or dict is never used to
    signal a negative result.
    """

    url: str = ""
    name: Optional[str] = None
    description: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    location: Optional[Location] = None
    services: List[str] = field(default_factory=list)
    social_links: Dict[str, str] = field(default_factory=dict)
    image_url: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    founded: Optional[str] = None
    industry: Optional[str] = None
    employee_count: Optional[str] = None
    products: List[str] = field(default_factory=list)
    certifications: List[str] = field(default_factory=list)
    confidence: Optional[float] = None
    business_category: Optional[str] = None
    target_audience: Optional[str] = None
    differentiators: List[str] = field(default_factory=list)
    model: Optional[str] = None

    def contact_score(self) -> int:
        return sum(1 for value in (self.phone, self.email, self.address) if value)

    def fill_from(self, other: Optional["PageExtraction"]) -> None:
        """Fill fields still empty here from *other*; nothing set is replaced."""
        if other is None:
            return
        for f in fields(self):
            if f.name == "url":
                continue
            mine, theirs = getattr(self, f.name), getattr(other, f.name)
            if f.name == "location":
                if theirs is None or theirs.is_empty():
                    continue
                self.location = theirs if mine is None else mine.merged_with(theirs)
            elif isinstance(mine, list):
                mine.extend(v for v in theirs if v not in mine)
            elif isinstance(mine, dict):
                for key, value in theirs.items():
                    mine.setdefault(key, value)
            elif mine is None and theirs is not None:
                setattr(self, f.name, theirs)

    def is_empty(self) -> bool:
        for f in fields(self):
            if f.name == "url":
                continue
            value = getattr(self, f.name)
            if isinstance(value, Location):
                if not value.is_empty():
                    return False
            elif value:
                return False
        return True


@dataclass(slots=True)
class StrategyOutcome:
    """What one retrieval strategy produced: pages on success, an error otherwise."""

    strategy: str
    pages: List[PageData] = field(default_factory=list)
    error: Optional[str] = None
    job_handle: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.pages)

    @classmethod
    def failure(cls, strategy: str, error: str) -> "StrategyOutcome":
        return cls(strategy=strategy, error=error)
