"""Business-field extraction from a single page.

Two inputs are supported:

* raw HTML: :func:`extract_page` reads embedded JSON-LD first and then falls
  back to page heuristics (``<h1>``, meta/og tags, social links, list items,
  keyword categories) for every field still empty;
* managed-API extraction payloads: :func:`extract_from_managed` maps the
  flat schema fields (``businessName``, ``phone``, …) as well as the nested
  ``contactInfo`` / ``location`` / ``additionalInfo`` shape.

:func:`clean_text` produces the normalized main-content text that the model
enrichment prompt is built from.
"""
from __future__ import annotations

import json
import re
import unicodedata
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

from bizscout.crawler.models import Location, PageData, PageExtraction
from bizscout.parser.location import normalize_country

__all__: Sequence[str] = (
    "ParsedPage",
    "parse_html",
    "business_blocks",
    "extract_page",
    "extract_from_managed",
    "clean_text",
    "SOCIAL_DOMAINS",
    "CATEGORY_KEYWORDS",
)

MAX_SERVICES = 10
SERVICE_MIN_CHARS = 5
SERVICE_MAX_CHARS = 100

SOCIAL_DOMAINS: Dict[str, tuple[str, ...]] = {
    "facebook": ("facebook.com", "fb.com"),
    "instagram": ("instagram.com",),
    "twitter": ("twitter.com", "x.com"),
    "linkedin": ("linkedin.com",),
    "youtube": ("youtube.com",),
    "tiktok": ("tiktok.com",),
}

CATEGORY_KEYWORDS: Dict[str, tuple[str, ...]] = {
    "restaurant": ("restaurant", "menu", "dining", "cuisine", "pizza", "takeout"),
    "cafe": ("coffee", "espresso", "cafe", "bakery"),
    "healthcare": ("medical", "clinic", "physician", "doctor", "patient", "healthcare"),
    "dental": ("dentist", "dental", "orthodont"),
    "legal": ("attorney", "lawyer", "law firm", "legal services"),
    "retail": ("shop", "store", "boutique", "retail"),
    "technology": ("software", "saas", "platform", "cloud", "api"),
    "real estate": ("real estate", "realtor", "property", "homes for sale"),
    "automotive": ("auto repair", "dealership", "vehicle", "automotive"),
    "beauty": ("salon", "spa", "barber", "beauty"),
    "fitness": ("gym", "fitness", "yoga", "personal training"),
    "construction": ("contractor", "construction", "roofing", "plumbing", "remodel"),
    "finance": ("accounting", "bookkeeping", "financial", "insurance", "payments"),
    "education": ("school", "tutoring", "academy", "courses"),
}

_WS_RE = re.compile(r"\s+")
_FOUNDED_RE = re.compile(r"^(\d{4})(-\d{2}(-\d{2})?)?")
_TITLE_SPLIT_RE = re.compile(r"\s+[|\-–—:]\s+")
_NOISE_TAGS = ("script", "style", "noscript", "template", "nav", "header", "footer", "svg", "iframe", "form")


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------


def _clean(value: Any, limit: int = 2000) -> Optional[str]:
    """Collapse whitespace; empty or non-scalar → None."""
    if value is None or isinstance(value, (dict, list, tuple, set, bool)):
        return None
    text = _WS_RE.sub(" ", str(value)).strip()
    return text[:limit] if text else None


def _float(value: Any, bound: float) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if -bound <= number <= bound else None


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    out: List[str] = []
    for item in value:
        text = _clean(item, limit=200)
        if text and text not in out:
            out.append(text)
    return out


def _founded(value: Any) -> Optional[str]:
    text = _clean(value, limit=40)
    if not text:
        return None
    match = _FOUNDED_RE.match(text)
    return match.group(0) if match else None


def _social_platform(url: str) -> Optional[str]:
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    for platform, domains in SOCIAL_DOMAINS.items():
        if any(host == d or host.endswith("." + d) for d in domains):
            return platform
    return None


def _social_map(value: Any) -> Dict[str, str]:
    links: Dict[str, str] = {}
    if isinstance(value, Mapping):
        for platform, link in value.items():
            text = _clean(link, limit=500)
            if text:
                links.setdefault(str(platform).lower(), text)
    else:
        for link in _string_list(value):
            platform = _social_platform(link)
            if platform:
                links.setdefault(platform, link)
    return links


# ---------------------------------------------------------------------------
# Page structure
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ParsedPage:
    """Title, visible text, meta tags and JSON-LD blocks of one page."""

    url: str
    title: str
    text: str
    meta: dict[str, str] = field(default_factory=dict)
    structured: list[dict[str, Any]] = field(default_factory=list)


def _meta_tags(soup: BeautifulSoup) -> dict[str, str]:
    meta: dict[str, str] = {}
    for tag in soup.find_all("meta"):
        if not isinstance(tag, Tag):
            continue
        key = tag.get("property") or tag.get("name") or tag.get("itemprop")
        content = tag.get("content")
        if isinstance(key, str) and isinstance(content, str) and content.strip():
            meta.setdefault(key.strip().lower(), content.strip())
    return meta


def _walk_ld(node: Any) -> Iterator[dict[str, Any]]:
    if isinstance(node, list):
        for item in node:
            yield from _walk_ld(item)
    elif isinstance(node, dict):
        if "@graph" in node:
            yield from _walk_ld(node["@graph"])
        else:
            yield node


def _json_ld_blocks(soup: BeautifulSoup) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = []
    for tag in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = tag.string or tag.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw.strip())
        except ValueError:
            continue
        blocks.extend(_walk_ld(data))
    return blocks


def parse_html(page: Any) -> ParsedPage:
    """Parse raw HTML (string) or a :class:`PageData` object."""
    if isinstance(page, PageData):
        html, base_url = page.html, page.url
    else:
        html, base_url = str(page), ""

    soup = BeautifulSoup(html, "html.parser")
    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    meta = _meta_tags(soup)
    structured = _json_ld_blocks(soup)
    for element in soup(["script", "style", "noscript", "template"]):
        element.decompose()
    text = " ".join(soup.stripped_strings)
    return ParsedPage(url=base_url, title=title, text=text, meta=meta, structured=structured)


# ---------------------------------------------------------------------------
# Structured metadata (JSON-LD)
# ---------------------------------------------------------------------------

# Nodes describing the business itself; ranked ahead of any other typed node.
BUSINESS_TYPES = frozenset(
    {
        "organization",
        "corporation",
        "localbusiness",
        "professionalservice",
        "store",
        "foodestablishment",
        "restaurant",
        "cafeorcoffeeshop",
        "bakery",
        "medicalbusiness",
        "medicalclinic",
        "medicalorganization",
        "physician",
        "dentist",
        "legalservice",
        "attorney",
        "homeandconstructionbusiness",
        "plumber",
        "electrician",
        "generalcontractor",
        "automotivebusiness",
        "autorepair",
        "healthandbeautybusiness",
        "sportsactivitylocation",
        "financialservice",
        "realestateagent",
        "educationalorganization",
    }
)
# Page furniture that shares the graph with the business node but never describes it.
NON_BUSINESS_TYPES = frozenset(
    {
        "webpage",
        "website",
        "aboutpage",
        "contactpage",
        "collectionpage",
        "itempage",
        "faqpage",
        "searchresultspage",
        "breadcrumblist",
        "listitem",
        "itemlist",
        "sitenavigationelement",
        "wpheader",
        "wpfooter",
        "imageobject",
        "videoobject",
        "searchaction",
        "readaction",
        "entrypoint",
        "article",
        "blogposting",
        "newsarticle",
        "person",
        "review",
        "aggregaterating",
        "offer",
        "question",
        "answer",
    }
)


def _ld_types(block: Mapping[str, Any]) -> List[str]:
    raw = block.get("@type")
    values = raw if isinstance(raw, list) else [raw]
    types = []
    for value in values:
        if isinstance(value, str) and value.strip():
            # "https://schema.org/Bakery" and "schema:Bakery" name the same type
            types.append(re.split(r"[/:#]", value.strip())[-1].lower())
    return types


def _business_rank(block: Mapping[str, Any]) -> Optional[int]:
    """0 for known business types, 1 for other types, 2 untyped, ``None`` to skip."""
    types = _ld_types(block)
    if not types:
        return 2
    if any(t in BUSINESS_TYPES for t in types):
        return 0
    if all(t in NON_BUSINESS_TYPES for t in types):
        return None
    return 1


def business_blocks(blocks: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """JSON-LD nodes that may describe the business, most specific first."""
    ranked = []
    for index, block in enumerate(blocks):
        rank = _business_rank(block)
        if rank is not None:
            ranked.append((rank, index, block))
    ranked.sort(key=lambda item: (item[0], item[1]))
    return [block for _, _, block in ranked]


def _fill(location: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None and location.get(key) is None:
        location[key] = value


def _apply_ld_address(extraction: PageExtraction, location: Dict[str, Any], address: Any) -> None:
    if isinstance(address, list) and address:
        address = address[0]
    if isinstance(address, str):
        text = _clean(address, limit=500)
        extraction.address = extraction.address or text
        _fill(location, "address", text)
        return
    if not isinstance(address, Mapping):
        return
    street = _clean(address.get("streetAddress"), limit=500)
    country = address.get("addressCountry")
    if isinstance(country, Mapping):
        country = country.get("name")
    _fill(location, "address", street)
    _fill(location, "city", _clean(address.get("addressLocality"), limit=100))
    _fill(location, "state", _clean(address.get("addressRegion"), limit=100))
    _fill(location, "postal_code", _clean(address.get("postalCode"), limit=20))
    _fill(location, "country", normalize_country(_clean(country, limit=100)))
    if street and not extraction.address:
        region = " ".join(p for p in (location.get("state"), location.get("postal_code")) if p)
        parts = [street, location.get("city"), region]
        extraction.address = ", ".join(p for p in parts if p)


def _apply_structured(extraction: PageExtraction, blocks: Iterable[Mapping[str, Any]], base_url: str) -> None:
    location: Dict[str, Any] = {}
    for block in business_blocks(blocks):
        extraction.name = extraction.name or _clean(block.get("name"), limit=500)
        extraction.description = extraction.description or _clean(block.get("description"))
        extraction.phone = extraction.phone or _clean(block.get("telephone"), limit=50)
        email = _clean(block.get("email"), limit=200)
        if email and email.lower().startswith("mailto:"):
            email = email[7:]
        extraction.email = extraction.email or email
        extraction.founded = extraction.founded or _founded(block.get("foundingDate"))
        _apply_ld_address(extraction, location, block.get("address"))

        geo = block.get("geo")
        if isinstance(geo, Mapping):
            _fill(location, "lat", _float(geo.get("latitude"), 90))
            _fill(location, "lng", _float(geo.get("longitude"), 180))

        for platform, link in _social_map(block.get("sameAs")).items():
            extraction.social_links.setdefault(platform, link)

        image = block.get("image") or block.get("logo")
        if isinstance(image, Mapping):
            image = image.get("url")
        if isinstance(image, list) and image:
            image = image[0]
        if isinstance(image, str) and image.strip() and not extraction.image_url:
            extraction.image_url = urljoin(base_url, image.strip())

    found = Location(**location)
    if not found.is_empty():
        extraction.location = found if extraction.location is None else extraction.location.merged_with(found)


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------


def _first_paragraph(soup: BeautifulSoup) -> Optional[str]:
    for p in soup.find_all("p"):
        text = _clean(p.get_text(" ", strip=True))
        if text and len(text) >= 40:
            return text
    return None


def _name_from_title(title: str) -> Optional[str]:
    if not title:
        return None
    return _clean(_TITLE_SPLIT_RE.split(title)[0], limit=500)


def _services_from_lists(soup: BeautifulSoup) -> List[str]:
    services: List[str] = []
    for li in soup.find_all("li"):
        if li.find_parent(["nav", "header", "footer"]) is not None:
            continue
        text = _clean(li.get_text(" ", strip=True), limit=SERVICE_MAX_CHARS + 1)
        if not text or not (SERVICE_MIN_CHARS <= len(text) <= SERVICE_MAX_CHARS):
            continue
        if text not in services:
            services.append(text)
        if len(services) >= MAX_SERVICES:
            break
    return services


def _categories(text: str) -> List[str]:
    lowered = text.lower()
    found: List[str] = []
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(re.search(rf"\b{re.escape(k)}", lowered) for k in keywords):
            found.append(category)
    return found


def _apply_heuristics(extraction: PageExtraction, soup: BeautifulSoup, parsed: ParsedPage) -> None:
    meta = parsed.meta

    if not extraction.name:
        h1 = soup.find("h1")
        extraction.name = (
            (_clean(h1.get_text(" ", strip=True), limit=500) if h1 else None)
            or _clean(meta.get("og:site_name"), limit=500)
            or _name_from_title(parsed.title)
        )

    if not extraction.description:
        extraction.description = (
            _clean(meta.get("description"))
            or _clean(meta.get("og:description"))
            or _first_paragraph(soup)
        )

    for tag in soup.find_all("a", href=True):
        href = str(tag["href"]).strip()
        lowered = href.lower()
        if lowered.startswith("tel:") and not extraction.phone:
            extraction.phone = _clean(href[4:], limit=50)
        elif lowered.startswith("mailto:") and not extraction.email:
            extraction.email = _clean(href[7:].split("?", 1)[0], limit=200)
        else:
            platform = _social_platform(href)
            if platform:
                extraction.social_links.setdefault(platform, href)

    if not extraction.image_url:
        og_image = meta.get("og:image")
        if og_image:
            extraction.image_url = urljoin(parsed.url, og_image)
        else:
            img = soup.find("img", src=True)
            if img is not None:
                extraction.image_url = urljoin(parsed.url, str(img["src"]).strip())

    if not extraction.services:
        extraction.services = _services_from_lists(soup)

    if not extraction.categories:
        keywords = meta.get("keywords", "")
        extraction.categories = _categories(" ".join((parsed.title, keywords, parsed.text[:5000])))


def extract_page(page: PageData) -> PageExtraction:
    """Structured metadata first, heuristics for everything still empty."""
    extraction = PageExtraction(url=page.url)
    if not page.html:
        return extraction

    parsed = parse_html(page)
    _apply_structured(extraction, parsed.structured, page.url)
    soup = BeautifulSoup(page.html, "html.parser")
    _apply_heuristics(extraction, soup, parsed)
    return extraction


# ---------------------------------------------------------------------------
# Managed-API extraction payloads
# ---------------------------------------------------------------------------


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def extract_from_managed(extract: Mapping[str, Any], url: str = "") -> PageExtraction:
    """Map a managed-API extraction object into a :class:`PageExtraction`."""
    contact = extract.get("contactInfo") if isinstance(extract.get("contactInfo"), Mapping) else {}
    loc = extract.get("location") if isinstance(extract.get("location"), Mapping) else {}
    extra = extract.get("additionalInfo") if isinstance(extract.get("additionalInfo"), Mapping) else {}
    coords = loc.get("coordinates") if isinstance(loc.get("coordinates"), Mapping) else {}

    address = _clean(_pick(extract, "address") or _pick(contact, "address") or _pick(loc, "address"), limit=500)
    location = Location(
        address=address,
        city=_clean(_pick(extract, "city") or _pick(loc, "city"), limit=100),
        state=_clean(_pick(extract, "state") or _pick(loc, "state"), limit=100),
        country=normalize_country(_clean(_pick(extract, "country") or _pick(loc, "country"), limit=100)),
        postal_code=_clean(_pick(extract, "postalCode") or _pick(loc, "postalCode"), limit=20),
        lat=_float(_pick(loc, "lat") or _pick(coords, "latitude"), 90),
        lng=_float(_pick(loc, "lng") or _pick(coords, "longitude"), 180),
    )

    return PageExtraction(
        url=url,
        name=_clean(_pick(extract, "businessName", "name"), limit=500),
        description=_clean(_pick(extract, "description", "businessDescription")),
        phone=_clean(_pick(extract, "phone") or _pick(contact, "phone"), limit=50),
        email=_clean(_pick(extract, "email") or _pick(contact, "email"), limit=200),
        address=address,
        location=None if location.is_empty() else location,
        services=_string_list(_pick(extract, "services")),
        social_links=_social_map(_pick(extract, "socialMedia", "socialLinks")),
        image_url=_clean(_pick(extract, "imageUrl", "logo"), limit=500),
        founded=_founded(_pick(extract, "founded") or _pick(extra, "founded")),
        industry=_clean(
            _pick(extract, "industry") or _pick(extra, "industry") or _pick(extract, "businessCategory"), limit=200
        ),
        employee_count=_clean(_pick(extract, "teamSize", "employeeCount") or _pick(extra, "employees"), limit=50),
        certifications=_string_list(_pick(extract, "certifications")),
    )


# ---------------------------------------------------------------------------
# Text for the model prompt
# ---------------------------------------------------------------------------


def clean_text(html: str) -> str:
    """Main-content text with page chrome removed and whitespace/ASCII normalized."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(list(_NOISE_TAGS)):
        element.decompose()
    root = soup.find("main") or soup.find("article") or soup.find(attrs={"role": "main"}) or soup.body or soup
    text = root.get_text(" ", strip=True)
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _WS_RE.sub(" ", text).strip()
