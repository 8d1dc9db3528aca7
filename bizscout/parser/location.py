"""URL-based location hints: the weakest location signal, used only to fill gaps."""

from __future__ import annotations

import re
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse

from bizscout.crawler.models import Location

__all__ = ["infer_location_from_url", "normalize_country", "COUNTRY_TLDS", "US_STATES", "CITY_HOSTNAMES"]

# country-code TLDs (and common second-level forms) → ISO country
COUNTRY_TLDS: Dict[str, str] = {
    "co.uk": "GB",
    "uk": "GB",
    "ca": "CA",
    "com.au": "AU",
    "au": "AU",
    "co.nz": "NZ",
    "nz": "NZ",
    "ie": "IE",
    "de": "DE",
    "fr": "FR",
    "es": "ES",
    "it": "IT",
    "nl": "NL",
    "be": "BE",
    "ch": "CH",
    "at": "AT",
    "se": "SE",
    "no": "NO",
    "dk": "DK",
    "fi": "FI",
    "pl": "PL",
    "pt": "PT",
    "mx": "MX",
    "com.br": "BR",
    "br": "BR",
    "co.za": "ZA",
    "za": "ZA",
    "in": "IN",
    "co.in": "IN",
    "jp": "JP",
    "co.jp": "JP",
    "sg": "SG",
    "us": "US",
}

US_STATES: Dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR", "california": "CA",
    "colorado": "CO", "connecticut": "CT", "delaware": "DE", "florida": "FL", "georgia": "GA",
    "hawaii": "HI", "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV", "newhampshire": "NH",
    "newjersey": "NJ", "newmexico": "NM", "newyork": "NY", "northcarolina": "NC",
    "northdakota": "ND", "ohio": "OH", "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA",
    "rhodeisland": "RI", "southcarolina": "SC", "southdakota": "SD", "tennessee": "TN",
    "texas": "TX", "utah": "UT", "vermont": "VT", "virginia": "VA", "washington": "WA",
    "westvirginia": "WV", "wisconsin": "WI", "wyoming": "WY",
}

# hostname token → (city, state)
CITY_HOSTNAMES: Dict[str, Tuple[str, str]] = {
    "nyc": ("New York", "NY"),
    "newyorkcity": ("New York", "NY"),
    "brooklyn": ("Brooklyn", "NY"),
    "la": ("Los Angeles", "CA"),
    "losangeles": ("Los Angeles", "CA"),
    "sf": ("San Francisco", "CA"),
    "sanfrancisco": ("San Francisco", "CA"),
    "oakland": ("Oakland", "CA"),
    "sandiego": ("San Diego", "CA"),
    "sanjose": ("San Jose", "CA"),
    "seattle": ("Seattle", "WA"),
    "portland": ("Portland", "OR"),
    "chicago": ("Chicago", "IL"),
    "boston": ("Boston", "MA"),
    "providence": ("Providence", "RI"),
    "philly": ("Philadelphia", "PA"),
    "philadelphia": ("Philadelphia", "PA"),
    "atlanta": ("Atlanta", "GA"),
    "miami": ("Miami", "FL"),
    "orlando": ("Orlando", "FL"),
    "tampa": ("Tampa", "FL"),
    "dallas": ("Dallas", "TX"),
    "houston": ("Houston", "TX"),
    "austin": ("Austin", "TX"),
    "sanantonio": ("San Antonio", "TX"),
    "denver": ("Denver", "CO"),
    "phoenix": ("Phoenix", "AZ"),
    "vegas": ("Las Vegas", "NV"),
    "lasvegas": ("Las Vegas", "NV"),
    "nashville": ("Nashville", "TN"),
    "detroit": ("Detroit", "MI"),
    "minneapolis": ("Minneapolis", "MN"),
    "dc": ("Washington", "DC"),
}

_TOKEN_SPLIT_RE = re.compile(r"[.\-_]+")


def _country_from_host(host: str) -> Optional[str]:
    parts = host.split(".")
    if len(parts) >= 3:
        two_level = ".".join(parts[-2:])
        if two_level in COUNTRY_TLDS:
            return COUNTRY_TLDS[two_level]
    return COUNTRY_TLDS.get(parts[-1]) if len(parts) >= 2 else None


def infer_location_from_url(url: str) -> Optional[Location]:
    """Guess location from the hostname alone; ``None`` when nothing matches.

    City/state tokens are only looked for in the registrable label and its
    subdomains, never in the TLD.
    """
    host = (urlparse(url).hostname or "").lower()
    if not host or "." not in host:
        return None
    if host.startswith("www."):
        host = host[4:]

    country = _country_from_host(host)
    city: Optional[str] = None
    state: Optional[str] = None

    labels = host.split(".")[:-1]
    tokens = [t for label in labels for t in _TOKEN_SPLIT_RE.split(label) if t]
    joined = "".join(labels)

    for token in tokens:
        if token in CITY_HOSTNAMES:
            city, state = CITY_HOSTNAMES[token]
            break
    if city is None:
        for key, (known_city, known_state) in CITY_HOSTNAMES.items():
            if len(key) >= 6 and key in joined:
                city, state = known_city, known_state
                break

    if state is None:
        for token in tokens:
            if token in US_STATES:
                state = US_STATES[token]
                break
        else:
            for name, code in US_STATES.items():
                if len(name) >= 6 and name in joined:
                    state = code
                    break

    if state is not None and country is None:
        country = "US"

    location = Location(city=city, state=state, country=country)
    return None if location.is_empty() else location


_COUNTRY_NAMES: Dict[str, str] = {
    "united states": "US",
    "united states of america": "US",
    "usa": "US",
    "u.s.": "US",
    "u.s.a.": "US",
    "america": "US",
    "united kingdom": "GB",
    "great britain": "GB",
    "england": "GB",
    "uk": "GB",
    "canada": "CA",
    "australia": "AU",
    "new zealand": "NZ",
    "ireland": "IE",
    "germany": "DE",
    "france": "FR",
    "spain": "ES",
    "italy": "IT",
    "mexico": "MX",
    "india": "IN",
}


def normalize_country(value: Optional[str]) -> Optional[str]:
    """Two-letter code for known country names; other values pass through."""
    if not value:
        return None
    text = value.strip()
    if len(text) == 2 and text.isalpha():
        return text.upper()
    return _COUNTRY_NAMES.get(text.lower(), text)
