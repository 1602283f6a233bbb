"""Wasalt (wasalt.sa) adapter.

Seed URLs are category pages, so the seed URL is the strongest hint for the
property type and the city; card text only refines them.
"""
from typing import List, Optional

from propfeed.adapters.base import ListingPageAdapter, SessionLike, SiteProfile, session_for
from propfeed.schemas.scraper_schema import Contact, Location, Source
from propfeed.services.browser_service import BrowserConfig
from propfeed.services.captcha_service import CaptchaSolver
from propfeed.services.parser_service import classify_property_type, extract_features, find_contact

PROFILE = SiteProfile(
    source=Source.WASALT,
    base_url="https://wasalt.sa",
    seed_urls=(
        "https://wasalt.sa/properties/for-sale/riyadh",
        "https://wasalt.sa/properties/for-rent/riyadh",
        "https://wasalt.sa/villas/riyadh",
        "https://wasalt.sa/apartments/riyadh",
        "https://wasalt.sa/commercial/riyadh",
    ),
    card_selectors=(
        ".property-card",
        ".listing-card",
        ".property-item",
        '[data-testid="property"]',
        '[class*="property"]',
        '[class*="listing"]',
        '[class*="PropertyCard"]',
    ),
    fallback_link_selector=(
        'a[href*="/property/"], a[href*="/listing/"], a[href*="/villa/"], a[href*="/apartment/"]'
    ),
    title_selectors=("h1", "h2", "h3", ".title", ".property-title", '[class*="title"]', '[class*="Title"]'),
    price_selectors=(".price", ".property-price", '[class*="price"]', '[class*="Price"]', '[data-testid*="price"]'),
    location_selectors=(".location", ".property-location", '[class*="location"]', '[class*="Location"]', ".address"),
    area_selectors=(".area", ".property-area", '[class*="area"]', '[class*="size"]', '[class*="Area"]'),
    description_selectors=(".description", ".property-description", '[class*="description"]', ".summary"),
    item_cap=35,
    max_pages=12,
    item_delay_ms=(1000, 2000),
    seed_delay_ms=(7000, 12000),
    load_delay_ms=(5000, 8000),
    detail_delay_ms=(4000, 7000),
    block_resources=("stylesheet", "font"),
    detail_description_selectors=(".description", ".property-description", ".details"),
    detail_feature_selector=".feature, .amenity, .property-feature, .facility",
    detail_agent_selectors=(".agent-name", ".contact-name", ".broker-name"),
    detail_phone_selectors=(".agent-phone", ".contact-phone", ".phone"),
    detail_email_selectors=(".agent-email", ".contact-email", ".email"),
)

URL_TYPE_RULES = (
    ("villa", ("villa",)),
    ("apartment", ("apartment",)),
    ("commercial", ("commercial",)),
    ("office", ("office",)),
    ("land", ("land",)),
)

TYPE_RULES = (
    ("villa", ("villa", "فيلا")),
    ("office", ("office", "مكتب")),
    ("land", ("land", "أرض")),
    ("commercial", ("commercial", "تجاري", "shop", "محل")),
    ("commercial", ("warehouse", "مستودع")),
)

URL_CITIES = (
    ("riyadh", "Riyadh"),
    ("jeddah", "Jeddah"),
    ("dammam", "Dammam"),
    ("mecca", "Mecca"),
    ("medina", "Medina"),
)

TEXT_CITIES = (
    (("riyadh", "الرياض"), "Riyadh"),
    (("jeddah", "جدة"), "Jeddah"),
    (("dammam", "الدمام"), "Dammam"),
)

FEATURES = (
    ("Parking", ("parking", "موقف", "garage")),
    ("Swimming Pool", ("pool", "مسبح", "swimming")),
    ("Garden", ("garden", "حديقة", "landscap")),
    ("Gym", ("gym", "جيم", "fitness")),
    ("Security", ("security", "أمن", "guard")),
    ("Elevator", ("elevator", "مصعد", "lift")),
    ("Balcony", ("balcony", "شرفة", "terrace")),
    ("Furnished", ("furnished", "مفروش")),
    ("Air Conditioning", ("تكييف", "air condition", "a/c")),
    ("Maid Room", ("maid", "خادمة", "servant")),
    ("Driver Room", ("driver", "سائق")),
    ("Majlis", ("majlis", "مجلس")),
    ("Modern Kitchen", ("kitchen", "مطبخ")),
    ("Laundry Room", ("laundry", "غسيل")),
    ("Storage", ("storage", "تخزين")),
    ("City View", ("view", "إطلالة")),
)


def parse_location(text: str, url: str = "") -> Location:
    """City from the URL, overridden by the last part of the location text."""
    parts = [part.strip() for part in text.replace("،", ",").split(",") if part.strip()]

    city = "Riyadh"
    lowered_url = url.lower()
    for token, name in URL_CITIES:
        if token in lowered_url:
            city = name
            break

    if parts:
        last = parts[-1].lower()
        for tokens, name in TEXT_CITIES:
            if any(token in last for token in tokens):
                city = name
                break

    return Location(city=city, district=parts[0] if parts else "Unknown", region="Saudi Arabia")


def classify(text: str, url: str = "") -> str:
    return classify_property_type(text, url=url, rules=TYPE_RULES, url_rules=URL_TYPE_RULES)


def features(text: str) -> List[str]:
    return extract_features(text, FEATURES)


def contact(text: str) -> Optional[Contact]:
    return find_contact(text, agent="Wasalt Agent")


def create_adapter(
    config: Optional[BrowserConfig] = None,
    session: Optional[SessionLike] = None,
    solver: Optional[CaptchaSolver] = None,
) -> ListingPageAdapter:
    session = session or session_for(PROFILE, config, solver)
    return ListingPageAdapter(
        PROFILE,
        session,
        classify=classify,
        features=features,
        location=parse_location,
        contact=contact,
    )
