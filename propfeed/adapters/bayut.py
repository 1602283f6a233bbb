"""Bayut (bayut.sa) adapter."""
from typing import List, Optional

from propfeed.adapters.base import ListingPageAdapter, SessionLike, SiteProfile, session_for
from propfeed.schemas.scraper_schema import Location, Source
from propfeed.services.browser_service import BrowserConfig
from propfeed.services.captcha_service import CaptchaSolver
from propfeed.services.parser_service import classify_property_type, extract_features

PROFILE = SiteProfile(
    source=Source.BAYUT,
    base_url="https://www.bayut.sa",
    seed_urls=(
        "https://www.bayut.sa/to-buy/property/riyadh/",
        "https://www.bayut.sa/to-rent/property/riyadh/",
        "https://www.bayut.sa/to-buy/apartments/riyadh/",
        "https://www.bayut.sa/to-buy/villas/riyadh/",
    ),
    card_selectors=(
        '[data-testid="property-card"]',
        ".property-card",
        ".listing-card",
        '[class*="PropertyCard"]',
        '[class*="ListingCard"]',
    ),
    fallback_link_selector='a[href*="/property/"], a[href*="/listing/"]',
    title_selectors=("h2", "h3", '[data-testid*="title"]', ".title", '[class*="title"]'),
    price_selectors=('[data-testid*="price"]', ".price", '[class*="price"]', '[class*="Price"]'),
    location_selectors=('[data-testid*="location"]', ".location", '[class*="location"]', '[class*="Location"]'),
    area_selectors=('[data-testid*="area"]', ".area", '[class*="area"]', '[class*="size"]'),
    item_cap=50,
    max_pages=15,
    item_delay_ms=(500, 1000),
    seed_delay_ms=(5000, 8000),
    block_resources=("image", "stylesheet", "font"),
)

FEATURES = (
    ("Parking", ("parking", "موقف")),
    ("Swimming Pool", ("pool", "مسبح")),
    ("Garden", ("garden", "حديقة")),
    ("Gym", ("gym", "جيم")),
    ("Security", ("security", "أمن")),
    ("Elevator", ("elevator", "مصعد")),
    ("Balcony", ("balcony", "شرفة")),
)


def parse_location(text: str, url: str = "") -> Location:
    """'District, ..., City' with Riyadh as the default city."""
    parts = [part.strip() for part in text.split(",") if part.strip()]
    return Location(
        city=parts[-1] if parts else "Riyadh",
        district=parts[0] if parts else "Unknown",
        region="Riyadh Region",
    )


def classify(text: str, url: str = "") -> str:
    return classify_property_type(text)


def features(text: str) -> List[str]:
    return extract_features(text, FEATURES)


def create_adapter(
    config: Optional[BrowserConfig] = None,
    session: Optional[SessionLike] = None,
    solver: Optional[CaptchaSolver] = None,
) -> ListingPageAdapter:
    session = session or session_for(PROFILE, config, solver)
    return ListingPageAdapter(PROFILE, session, classify=classify, features=features, location=parse_location)
