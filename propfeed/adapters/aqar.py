"""Aqar (sa.aqar.fm) adapter. Listings are Arabic-first."""
from typing import List, Optional

from propfeed.adapters.base import ListingPageAdapter, SessionLike, SiteProfile, session_for
from propfeed.schemas.scraper_schema import Location, Source
from propfeed.services.browser_service import BrowserConfig
from propfeed.services.captcha_service import CaptchaSolver
from propfeed.services.parser_service import (
    DEFAULT_CITY_MAP,
    classify_property_type,
    extract_features,
)

PROFILE = SiteProfile(
    source=Source.AQAR,
    base_url="https://sa.aqar.fm",
    seed_urls=(
        "https://sa.aqar.fm/search?city=الرياض&type=للبيع",
        "https://sa.aqar.fm/search?city=الرياض&type=للإيجار",
        "https://sa.aqar.fm/apartments-for-sale/riyadh",
        "https://sa.aqar.fm/villas-for-sale/riyadh",
    ),
    card_selectors=(
        ".property-item",
        ".listing-item",
        ".ad-item",
        '[class*="property"]',
        '[class*="listing"]',
        '[class*="ad-card"]',
    ),
    fallback_link_selector='a[href*="/property/"], a[href*="/ad/"], a[href*="/listing/"]',
    title_selectors=("h2", "h3", ".title", ".ad-title", '[class*="title"]', ".property-title"),
    price_selectors=(".price", ".ad-price", '[class*="price"]', ".property-price"),
    location_selectors=(".location", ".ad-location", '[class*="location"]', ".property-location"),
    area_selectors=(".area", ".ad-area", '[class*="area"]', '[class*="size"]', ".property-area"),
    excluded_image_tokens=("placeholder", "logo", "avatar"),
    item_cap=40,
    max_pages=15,
    item_delay_ms=(800, 1500),
    seed_delay_ms=(6000, 10000),
    detail_delay_ms=(3000, 5000),
    block_resources=("stylesheet", "font"),
    detail_description_selectors=(".description", ".property-description", ".ad-description"),
    detail_feature_selector=".feature, .amenity, .property-feature",
    detail_agent_selectors=(".agent-name", ".contact-name"),
    detail_phone_selectors=(".agent-phone", ".contact-phone"),
    detail_email_selectors=(".agent-email", ".contact-email"),
)

TYPE_RULES = (
    ("villa", ("فيلا", "villa")),
    ("office", ("مكتب", "office")),
    ("land", ("أرض", "land")),
    ("commercial", ("محل", "تجاري", "commercial")),
    ("villa", ("بيت", "house")),
    ("commercial", ("مستودع", "warehouse")),
)

FEATURES = (
    ("Parking", ("موقف", "parking")),
    ("Swimming Pool", ("مسبح", "pool")),
    ("Garden", ("حديقة", "garden")),
    ("Gym", ("جيم", "gym")),
    ("Security", ("أمن", "security")),
    ("Elevator", ("مصعد", "elevator")),
    ("Balcony", ("شرفة", "balcony")),
    ("Furnished", ("مفروش", "furnished")),
    ("Air Conditioning", ("تكييف", "air condition", "a/c")),
    ("Maid Room", ("خادمة", "maid")),
    ("Driver Room", ("سائق", "driver")),
)


def parse_location(text: str, url: str = "") -> Location:
    """'الحي، ...، المدينة' with the city translated through the city map."""
    parts = [part.strip() for part in text.replace("،", ",").split(",") if part.strip()]
    arabic_city = parts[-1] if parts else "الرياض"
    return Location(
        city=DEFAULT_CITY_MAP.get(arabic_city, arabic_city),
        district=parts[0] if parts else "Unknown",
        region="Saudi Arabia",
    )


def classify(text: str, url: str = "") -> str:
    return classify_property_type(text, rules=TYPE_RULES)


def features(text: str) -> List[str]:
    return extract_features(text, FEATURES)


def create_adapter(
    config: Optional[BrowserConfig] = None,
    session: Optional[SessionLike] = None,
    solver: Optional[CaptchaSolver] = None,
) -> ListingPageAdapter:
    session = session or session_for(PROFILE, config, solver)
    return ListingPageAdapter(PROFILE, session, classify=classify, features=features, location=parse_location)
