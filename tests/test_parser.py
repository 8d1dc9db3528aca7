# File: tests/test_parser.py
"""Tests for structured/heuristic extraction (bizscout.parser.html_parser)."""
from __future__ import annotations

from bizscout.crawler.models import PageData
from bizscout.parser.html_parser import business_blocks, clean_text, extract_from_managed, extract_page, parse_html


def test_json_ld_fields(business_page):
    ext = extract_page(business_page)

    assert ext.name == "Sunrise Bakery"
    assert ext.phone == "(512) 555-0199"
    assert ext.email == "hello@sunrisebakery.com"
    assert ext.address == "101 Congress Ave, Austin, TX 78701"
    assert ext.location is not None
    assert ext.location.city == "Austin"
    assert ext.location.state == "TX"
    assert ext.location.postal_code == "78701"
    assert ext.location.country == "US"
    assert ext.location.lat == 30.2672
    assert ext.location.lng == -97.7431


def test_heuristics_fill_remaining_fields(business_page):
    ext = extract_page(business_page)

    assert ext.description == "Sunrise Bakery bakes fresh bread daily."
    assert ext.image_url == "https://sunrisebakery.com/img/storefront.jpg"
    assert ext.social_links == {
        "facebook": "https://www.facebook.com/sunrisebakery",
        "instagram": "https://instagram.com/sunrisebakery",
    }
    # nav/footer list items are chrome, not services
    assert ext.services == ["Sourdough bread", "Custom cakes", "Seasonal pastries"]
    assert "cafe" in ext.categories


def test_graph_blocks_and_heading_fallback():
    html = """
    <html><head><title>Acme Plumbing - Home</title>
    <script type="application/ld+json">
      {"@context": "https://schema.org", "@graph": [
        {"@type": "WebSite", "url": "https://acme.example"},
        {"@type": "Plumber", "telephone": "555-0100", "foundingDate": "1999-04-01"}
      ]}
    </script></head>
    <body><h1>Acme Plumbing Co</h1>
    <p>We fix leaks, install water heaters and handle emergency calls around the clock.</p>
    <a href="mailto:info@acme.example?subject=Hi">Mail</a>
    <img src="/logo.png"></body></html>
    """
    ext = extract_page(PageData(url="https://acme.example/about", html=html))

    assert ext.name == "Acme Plumbing Co"
    assert ext.phone == "555-0100"
    assert ext.founded == "1999-04-01"
    assert ext.email == "info@acme.example"
    assert ext.description.startswith("We fix leaks")
    assert ext.image_url == "https://acme.example/logo.png"


def test_title_used_when_no_heading():
    html = "<html><head><title>Bright Dental | Smiles for all</title></head><body><p>x</p></body></html>"
    ext = extract_page(PageData(url="https://brightdental.example/", html=html))
    assert ext.name == "Bright Dental"


def test_services_length_bounds_and_cap():
    items = "".join(f"<li>Service number {i}</li>" for i in range(15))
    html = f"<html><body><ul><li>Tiny</li>{items}<li>{'x' * 120}</li></ul></body></html>"
    ext = extract_page(PageData(url="https://example.com/", html=html))

    assert len(ext.services) == 10
    assert "Tiny" not in ext.services
    assert ext.services[0] == "Service number 0"


def test_invalid_json_ld_is_ignored():
    html = (
        '<html><head><script type="application/ld+json">{not json</script></head>'
        "<body><h1>Fallback Name</h1></body></html>"
    )
    ext = extract_page(PageData(url="https://example.com/", html=html))
    assert ext.name == "Fallback Name"


def test_empty_page_gives_empty_extraction():
    assert extract_page(PageData(url="https://example.com/")).is_empty()


def test_parse_html_title_and_meta():
    html = (
        '<html><head><title>T</title><meta name="Description" content="D"></head><body>'
        '<script>var x = 1;</script><p>Visible copy</p></body></html>'
    )
    parsed = parse_html(PageData(url="https://example.com/", html=html))

    assert parsed.title == "T"
    assert parsed.meta["description"] == "D"
    assert parsed.text == "Visible copy"


def test_business_node_preferred_over_page_nodes():
    html = """
    <html><head><title>Home - Acme Plumbing</title>
    <script type="application/ld+json">
      {"@context": "https://schema.org", "@graph": [
        {"@type": "WebPage", "name": "Home - Acme Plumbing", "description": "Welcome"},
        {"@type": "BreadcrumbList", "name": "Breadcrumbs"},
        {"@type": "Plumber", "name": "Acme Plumbing Co.",
         "description": "Licensed plumbers serving Denver since 1999.",
         "telephone": "(303) 555-0100",
         "address": {"@type": "PostalAddress", "addressLocality": "Denver", "addressRegion": "CO"}}
      ]}
    </script></head><body><h1>Welcome</h1></body></html>
    """
    ext = extract_page(PageData(url="https://acme.example/", html=html))

    assert ext.name == "Acme Plumbing Co."
    assert ext.description == "Licensed plumbers serving Denver since 1999."
    assert ext.phone == "(303) 555-0100"
    assert ext.location.city == "Denver"


def test_business_blocks_ranking():
    blocks = [
        {"@type": "WebSite", "name": "Site"},
        {"name": "Untyped"},
        {"@type": "Event", "name": "Open House"},
        {"@type": ["Organization", "Brand"], "name": "Listed"},
        {"@type": "https://schema.org/Plumber", "name": "Url Typed"},
    ]
    names = [block["name"] for block in business_blocks(blocks)]
    assert names == ["Listed", "Url Typed", "Open House", "Untyped"]


def test_extract_from_managed_flat_shape():
    ext = extract_from_managed(
        {
            "businessName": "Blue Bottle Coffee",
            "phone": "(510) 653-3394",
            "email": "info@bluebottlecoffee.com",
            "address": "300 Webster St, Oakland, CA 94607",
            "city": "Oakland",
            "state": "CA",
            "country": "United States",
            "services": ["coffee", "espresso", "coffee"],
            "socialMedia": {"Instagram": "https://instagram.com/bluebottle", "twitter": ""},
            "founded": "2002",
            "teamSize": "500+",
        },
        url="https://bluebottlecoffee.com/",
    )

    assert ext.name == "Blue Bottle Coffee"
    assert ext.location.city == "Oakland"
    assert ext.location.country == "US"
    assert ext.services == ["coffee", "espresso"]
    assert ext.social_links == {"instagram": "https://instagram.com/bluebottle"}
    assert ext.founded == "2002"
    assert ext.employee_count == "500+"


def test_extract_from_managed_nested_shape():
    ext = extract_from_managed(
        {
            "name": "Brown Physicians",
            "contactInfo": {"phone": "(401) 444-5648", "email": "info@brownphysicians.org"},
            "location": {
                "city": "Providence",
                "state": "RI",
                "coordinates": {"latitude": 41.824, "longitude": -71.4128},
            },
            "additionalInfo": {"industry": "healthcare", "founded": "1994"},
            "socialLinks": ["https://www.linkedin.com/company/brown-physicians"],
        }
    )

    assert ext.phone == "(401) 444-5648"
    assert ext.location.lat == 41.824
    assert ext.industry == "healthcare"
    assert ext.founded == "1994"
    assert ext.social_links["linkedin"].endswith("brown-physicians")


def test_clean_text_prefers_main_and_strips_chrome():
    html = (
        "<html><body><header>Top menu</header><nav>Links</nav>"
        "<main><p>Café   serving   espresso</p><script>var x = 1;</script></main>"
        "<footer>Copyright</footer></body></html>"
    )
    text = clean_text(html)

    assert text == "Cafe serving espresso"
    assert clean_text("") == ""
