"""bizscout.enrichment.enricher: model-based enrichment of one page's extraction.

The model answers in free text. The answer is reduced to the first JSON
object it contains and validated field by field into :class:`EnrichmentPayload`
before any of it is allowed into a :class:`PageExtraction`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from bizscout.crawler.models import Location, PageData, PageExtraction
from bizscout.enrichment.llm import ModelProvider
from bizscout.parser.html_parser import clean_text
from bizscout.parser.location import normalize_country

__all__ = [
    "EnrichmentDetails",
    "EnrichmentInsights",
    "EnrichmentPayload",
    "Enricher",
    "build_prompt",
    "extract_json",
    "validate_enrichment",
]

logger = logging.getLogger("BizScout")

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.S)
_EMPLOYEES_RE = re.compile(r"^\d[\d,]*(\s*[-–]\s*\d[\d,]*|\+)?$")
_FOUNDED_RE = re.compile(r"^\d{4}(-\d{2}-\d{2})?$")
DEFAULT_CONFIDENCE = 0.5


# ---------------------------------------------------------------------------
# Validation models
# ---------------------------------------------------------------------------


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    text = " ".join(str(value).split())
    if not text or text.lower() in ("null", "none", "unknown", "n/a"):
        return None
    return text


def _texts(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    out: List[str] = []
    for item in value:
        text = _text(item)
        if text and text not in out:
            out.append(text)
    return out


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class EnrichmentDetails(_Lenient):
    industry: Optional[str] = None
    founded: Optional[str] = None
    employee_count: Optional[str] = None
    products: List[str] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None

    @field_validator("industry", "address", "city", "state", "country", "postal_code", mode="before")
    @classmethod
    def _plain_text(cls, v: Any) -> Optional[str]:
        return _text(v)

    @field_validator("products", "services", "certifications", mode="before")
    @classmethod
    def _text_list(cls, v: Any) -> List[str]:
        return _texts(v)

    @field_validator("employee_count", mode="before")
    @classmethod
    def _employees(cls, v: Any) -> Optional[str]:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v) if v > 0 else None
        text = _text(v) if isinstance(v, str) else None
        return text if text and _EMPLOYEES_RE.match(text) else None

    @field_validator("founded", mode="before")
    @classmethod
    def _founded(cls, v: Any) -> Optional[str]:
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        text = _text(v) if isinstance(v, str) else None
        return text if text and _FOUNDED_RE.match(text) else None


class EnrichmentInsights(_Lenient):
    extracted_entities: List[str] = Field(default_factory=list)
    business_category: Optional[str] = None
    service_offerings: List[str] = Field(default_factory=list)
    target_audience: Optional[str] = None
    key_differentiators: List[str] = Field(default_factory=list)
    confidence: Optional[float] = None
    model: Optional[str] = None
    processed_at: Optional[datetime] = None

    @field_validator("business_category", "target_audience", mode="before")
    @classmethod
    def _plain_text(cls, v: Any) -> Optional[str]:
        return _text(v)

    @field_validator("extracted_entities", "service_offerings", "key_differentiators", mode="before")
    @classmethod
    def _text_list(cls, v: Any) -> List[str]:
        return _texts(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> Optional[float]:
        if v is None:
            return None
        try:
            number = float(v)
        except (TypeError, ValueError):
            return DEFAULT_CONFIDENCE
        return number if 0.0 <= number <= 1.0 else DEFAULT_CONFIDENCE

    @field_validator("model", mode="before")
    @classmethod
    def _model(cls, v: Any) -> Optional[str]:
        return _text(v)

    @field_validator("processed_at", mode="before")
    @classmethod
    def _processed_at(cls, v: Any) -> Any:
        return v if isinstance(v, datetime) else None


class EnrichmentPayload(BaseModel):
    details: EnrichmentDetails = Field(default_factory=EnrichmentDetails)
    insights: EnrichmentInsights = Field(default_factory=EnrichmentInsights)


# ---------------------------------------------------------------------------
# Prompt / parsing
# ---------------------------------------------------------------------------


def build_prompt(extraction: PageExtraction, text: str, limit: int = 4000) -> str:
    """One bounded prompt: known fields plus the first *limit* chars of page text."""
    known = {
        "name": extraction.name,
        "description": extraction.description,
        "phone": extraction.phone,
        "email": extraction.email,
        "address": extraction.address,
        "services": extraction.services or None,
    }
    known = {k: v for k, v in known.items() if v}
    return (
        "You analyse a business website. Using ONLY facts explicitly stated in the page "
        "text below, return a single JSON object and nothing else. Use null for anything "
        "that is not stated or that you are unsure about. Do not guess.\n\n"
        "Output format:\n"
        "{\n"
        '  "businessDetails": {\n'
        '    "industry": string|null,\n'
        '    "founded": "YYYY" or "YYYY-MM-DD" or null,\n'
        '    "employeeCount": "50" or "10-50" or "500+" or null,\n'
        '    "products": [string],\n'
        '    "services": [string],\n'
        '    "certifications": [string],\n'
        '    "address": string|null, "city": string|null, "state": string|null,\n'
        '    "country": string|null, "postalCode": string|null\n'
        "  },\n"
        '  "enrichment": {\n'
        '    "extractedEntities": [string],\n'
        '    "businessCategory": string|null,\n'
        '    "serviceOfferings": [string],\n'
        '    "targetAudience": string|null,\n'
        '    "keyDifferentiators": [string],\n'
        '    "confidence": number between 0 and 1\n'
        "  }\n"
        "}\n\n"
        f"Already extracted:\n{json.dumps(known, ensure_ascii=True)}\n\n"
        f"Page text:\n{text[:limit]}"
    )


def _balanced_object(text: str) -> Optional[str]:
    start = text.find("{")
    while start != -1:
        depth, in_string, escaped = 0, False, False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        start = text.find("{", start + 1)
    return None


def extract_json(text: str) -> Optional[dict[str, Any]]:
    """First JSON object in *text* (code fences stripped), or ``None``."""
    if not text:
        return None
    fenced = _FENCE_RE.search(text)
    candidates = [fenced.group(1).strip()] if fenced else []
    candidates.append(text.strip())
    for candidate in candidates:
        snippet = candidate if candidate.startswith("{") and candidate.endswith("}") else _balanced_object(candidate)
        if not snippet:
            continue
        try:
            data = json.loads(snippet)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None


def validate_enrichment(
    payload: Mapping[str, Any],
    model: str,
    *,
    now: Optional[datetime] = None,
) -> EnrichmentPayload:
    """Turn untrusted model JSON into the strict payload shape.

    Accepts the nested ``businessDetails`` + ``enrichment``/``llmEnhanced``
    form as well as a flat object carrying the same keys.
    """
    details_raw = payload.get("businessDetails")
    details_src = dict(payload)
    if isinstance(details_raw, Mapping):
        details_src.update(details_raw)
    location_raw = payload.get("location")
    if isinstance(location_raw, Mapping):
        for key, value in location_raw.items():
            details_src.setdefault(key, value)

    insights_raw = payload.get("enrichment") or payload.get("llmEnhanced")
    insights_src = dict(insights_raw) if isinstance(insights_raw, Mapping) else dict(payload)

    try:
        details = EnrichmentDetails.model_validate(details_src)
    except ValidationError as exc:
        logger.debug("Enrichment details rejected: %s", exc)
        details = EnrichmentDetails()
    try:
        insights = EnrichmentInsights.model_validate(insights_src)
    except ValidationError as exc:
        logger.debug("Enrichment insights rejected: %s", exc)
        insights = EnrichmentInsights()

    insights.model = model
    insights.processed_at = now or datetime.now(timezone.utc)
    return EnrichmentPayload(details=details, insights=insights)


def payload_to_extraction(payload: EnrichmentPayload, url: str = "") -> PageExtraction:
    d, i = payload.details, payload.insights
    location = Location(
        address=d.address,
        city=d.city,
        state=d.state,
        country=normalize_country(d.country),
        postal_code=d.postal_code,
    )
    return PageExtraction(
        url=url,
        address=d.address,
        location=None if location.is_empty() else location,
        services=list(d.services or i.service_offerings),
        industry=d.industry or i.business_category,
        founded=d.founded,
        employee_count=d.employee_count,
        products=list(d.products),
        certifications=list(d.certifications),
        confidence=i.confidence,
        business_category=i.business_category,
        target_audience=i.target_audience,
        differentiators=list(i.key_differentiators),
        model=i.model,
    )


# ---------------------------------------------------------------------------
# Enricher
# ---------------------------------------------------------------------------


class Enricher:
    """Runs the model pass for one page. Never raises: failures yield ``None``."""

    def __init__(
        self,
        provider: Optional[ModelProvider],
        *,
        timeout: float = 30.0,
        char_limit: int = 4000,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.provider = provider
        self.timeout = timeout
        self.char_limit = char_limit
        self._clock = clock

    @property
    def enabled(self) -> bool:
        if self.provider is None:
            return False
        return getattr(self.provider, "available", True)

    async def enrich(self, page: PageData, extraction: PageExtraction) -> Optional[PageExtraction]:
        if not self.enabled:
            return None
        text = clean_text(page.html) or page.markdown
        if not text:
            return None

        prompt = build_prompt(extraction, text, self.char_limit)
        model = getattr(self.provider, "model", "unknown")
        try:
            answer = await asyncio.wait_for(self.provider.complete(prompt), timeout=self.timeout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Model enrichment failed for %s: %s", page.url, exc)
            return None

        data = extract_json(answer)
        if data is None:
            logger.warning("Model enrichment for %s returned no parsable JSON", page.url)
            return None

        payload = validate_enrichment(data, model, now=self._clock())
        return payload_to_extraction(payload, url=page.url)
