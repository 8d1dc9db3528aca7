# bizscout/crawler/fixtures.py
"""
Canned business content used when the network must not be touched.

Two consumers:

* :class:`~bizscout.crawler.strategies.FixtureStrategy`: last link of the
  strategy chain outside production.
* :class:`~bizscout.crawler.firecrawl.FirecrawlClient` in mock mode: answers
  crawl and job-status calls with responses shaped like the real API.
"""
from __future__ import annotations

import html
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bizscout.utils import extract_domain

__all__ = [
    "FIXTURE_PROFILES",
    "fixture_domain",
    "has_fixture",
    "fixture_profile",
    "fixture_extract",
    "render_fixture_html",
    "mock_crawl_response",
    "mock_job_status",
]

FIXTURE_PROFILES: Dict[str, Dict[str, Any]] = {
    "bluebottlecoffee.com": {
        "name": "Blue Bottle Coffee",
        "industry": "coffee shop",
        "description": (
            "Specialty coffee roaster and retailer known for high-quality, freshly roasted "
            "coffee beans and artisanal brewing methods."
        ),
        "phone": "(510) 653-3394",
        "email": "info@bluebottlecoffee.com",
        "location": {
            "address": "300 Webster St, Oakland, CA 94607",
            "city": "Oakland",
            "state": "CA",
            "country": "US",
            "postalCode": "94607",
            "lat": 37.7749,
            "lng": -122.4194,
        },
        "services": ["coffee", "espresso", "pastries", "coffee beans", "brewing equipment"],
        "founded": "2002",
    },
    "brownphysicians.org": {
        "name": "Brown Physicians",
        "industry": "healthcare",
        "description": (
            "Multi-specialty physician practice affiliated with Brown University providing "
            "comprehensive healthcare services."
        ),
        "phone": "(401) 444-5648",
        "email": "info@brownphysicians.org",
        "location": {
            "address": "593 Eddy St, Providence, RI 02903",
            "city": "Providence",
            "state": "RI",
            "country": "US",
            "postalCode": "02903",
            "lat": 41.8240,
            "lng": -71.4128,
        },
        "services": [
            "primary care",
            "internal medicine",
            "family medicine",
            "preventive care",
            "health screenings",
        ],
    },
    "princestreetpizza.com": {
        "name": "Prince Street Pizza",
        "industry": "restaurant",
        "description": (
            "Iconic New York pizza shop famous for its pepperoni square slices and authentic "
            "Italian-style pizza."
        ),
        "phone": "(212) 966-4100",
        "location": {
            "address": "27 Prince St, New York, NY 10012",
            "city": "New York",
            "state": "NY",
            "country": "US",
            "postalCode": "10012",
            "lat": 40.7223,
            "lng": -73.9948,
        },
        "services": ["pizza", "pepperoni pizza", "cheese pizza", "sicilian pizza", "takeout", "delivery"],
    },
    "anchormedical.org": {
        "name": "Anchor Medical Associates",
        "industry": "healthcare",
        "description": (
            "Comprehensive medical practice specializing in cardiovascular health and "
            "internal medicine."
        ),
        "phone": "(617) 555-0123",
        "email": "contact@anchormedical.org",
        "location": {
            "address": "123 Medical Center Dr, Boston, MA 02118",
            "city": "Boston",
            "state": "MA",
            "country": "US",
            "postalCode": "02118",
            "lat": 42.3601,
            "lng": -71.0589,
        },
        "services": [
            "cardiology",
            "internal medicine",
            "diagnostic imaging",
            "preventive care",
            "specialist referrals",
        ],
    },
    "stripe.com": {
        "name": "Stripe",
        "industry": "Financial Technology",
        "description": (
            "Online payment processing for internet businesses. Stripe is a suite of payment "
            "APIs that powers commerce for online businesses of all sizes."
        ),
        "phone": "+1-888-926-2289",
        "email": "support@stripe.com",
        "location": {
            "address": "354 Oyster Point Blvd, South San Francisco, CA 94080",
            "city": "South San Francisco",
            "state": "CA",
            "country": "US",
            "postalCode": "94080",
            "lat": 37.6624,
            "lng": -122.3897,
        },
        "services": [
            "Payment Processing",
            "Online Payments",
            "Subscription Management",
            "Marketplace Payments",
            "Mobile Payments",
            "International Payments",
        ],
        "social": {
            "twitter": "https://twitter.com/stripe",
            "linkedin": "https://linkedin.com/company/stripe",
            "facebook": "https://facebook.com/StripeHQ",
        },
        "founded": "2010",
        "employees": "4000+",
    },
    "tesla.com": {
        "name": "Tesla",
        "industry": "Automotive",
        "description": "Tesla designs and manufactures electric vehicles, energy generation and storage systems.",
        "phone": "+1-650-681-5000",
        "email": "info@tesla.com",
        "location": {
            "address": "1 Tesla Road, Austin, TX 78725",
            "city": "Austin",
            "state": "TX",
            "country": "US",
            "postalCode": "78725",
            "lat": 30.2672,
            "lng": -97.7431,
        },
        "services": [
            "Electric Vehicles",
            "Energy Storage",
            "Solar Panels",
            "Supercharging Network",
            "Autonomous Driving",
        ],
        "social": {
            "twitter": "https://twitter.com/tesla",
            "linkedin": "https://linkedin.com/company/tesla-motors",
            "facebook": "https://facebook.com/tesla",
        },
        "founded": "2003",
        "employees": "127000+",
    },
}


fixture_domain = extract_domain


def has_fixture(url: str) -> bool:
    return fixture_domain(url) in FIXTURE_PROFILES


def _generic_profile(domain: str) -> Dict[str, Any]:
    label = domain.rsplit(".", 1)[0] if "." in domain else domain
    name = " ".join(part.capitalize() for part in label.replace("-", ".").split(".") if part) or "Business"
    return {
        "name": name,
        "industry": "service",
        "description": f"{name} provides quality services to local customers.",
        "location": {"city": "San Francisco", "state": "CA", "country": "US"},
        "services": [],
    }


def fixture_profile(url: str, *, allow_generic: bool = False) -> Optional[Dict[str, Any]]:
    """Known profile for the URL's domain, a generic one if allowed, else None."""
    domain = fixture_domain(url)
    profile = FIXTURE_PROFILES.get(domain)
    if profile is not None:
        return profile
    if allow_generic and domain:
        return _generic_profile(domain)
    return None


def fixture_extract(profile: Dict[str, Any]) -> Dict[str, Any]:
    """Profile in the flat shape the managed API extraction schema returns."""
    location = profile.get("location") or {}
    return {
        "businessName": profile["name"],
        "description": profile.get("description"),
        "industry": profile.get("industry"),
        "services": list(profile.get("services") or []),
        "phone": profile.get("phone"),
        "email": profile.get("email"),
        "address": location.get("address"),
        "city": location.get("city"),
        "state": location.get("state"),
        "country": location.get("country"),
        "postalCode": location.get("postalCode"),
        "founded": profile.get("founded"),
        "teamSize": profile.get("employees"),
        "socialMedia": dict(profile.get("social") or {}),
        "location": {"lat": location.get("lat"), "lng": location.get("lng")},
    }


def render_fixture_html(profile: Dict[str, Any], url: str) -> str:
    """Small but complete HTML page carrying the profile."""
    esc = html.escape
    location = profile.get("location") or {}
    services = "".join(f"<li>{esc(s)}</li>" for s in profile.get("services") or [])
    social = "".join(
        f'<a href="{esc(link)}">{esc(platform)}</a>' for platform, link in (profile.get("social") or {}).items()
    )
    contact = " | ".join(esc(v) for v in (profile.get("phone"), profile.get("email")) if v)
    return (
        "<html><head>"
        f"<title>{esc(profile['name'])}</title>"
        f'<meta name="description" content="{esc(profile.get("description") or "")}">'
        "</head><body>"
        f"<h1>{esc(profile['name'])}</h1>"
        f"<main><p>{esc(profile.get('description') or '')}</p>"
        f"<h2>Services</h2><ul>{services}</ul>"
        f"<p>{esc(location.get('address') or '')}</p><p>{contact}</p>"
        f"<nav>{social}</nav></main>"
        "</body></html>"
    )


def _mock_page(url: str, profile: Dict[str, Any]) -> Dict[str, Any]:
    services = "\n".join(f"- {s}" for s in profile.get("services") or [])
    return {
        "url": url,
        "markdown": f"# {profile['name']}\n\n{profile.get('description') or ''}\n\n## Services\n{services}",
        "html": render_fixture_html(profile, url),
        "metadata": {
            "title": profile["name"],
            "description": profile.get("description"),
            "sourceURL": url,
            "statusCode": 200,
        },
        "llm_extraction": fixture_extract(profile),
    }


def mock_crawl_response(url: str, *, allow_generic: bool = False) -> Dict[str, Any]:
    """Immediate-data crawl response for *url*.

    Unknown domains get a generic profile only when *allow_generic* is set;
    otherwise the response is a rejection, like a live API refusing the URL.
    """
    profile = fixture_profile(url, allow_generic=allow_generic)
    if profile is None and allow_generic:
        profile = _generic_profile("business")
    if profile is None:
        return {"success": False, "error": f"No fixture data for {url}", "data": []}
    return {
        "success": True,
        "id": f"job-{uuid.uuid4().hex[:12]}",
        "url": url,
        "data": [_mock_page(url, profile)],
    }


def mock_job_status(
    handle: str, url: str, status: str = "completed", *, allow_generic: bool = False
) -> Dict[str, Any]:
    expires = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    data = mock_crawl_response(url, allow_generic=allow_generic)["data"] if status == "completed" else []
    if status == "completed" and data:
        return {
            "success": True,
            "status": "completed",
            "total": 1,
            "completed": 1,
            "expiresAt": expires,
            "data": data,
        }
    if status == "scraping":
        return {"success": True, "status": "scraping", "total": 1, "completed": 0, "expiresAt": expires, "data": []}
    return {
        "success": False,
        "status": "failed",
        "total": 1,
        "completed": 0,
        "expiresAt": expires,
        "data": [],
        "error": "Crawl job failed - unable to access target URL",
    }
