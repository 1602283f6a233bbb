"""Parser service: shared HTML/text helpers used by every site adapter.

Adapters fetch a rendered page through the browser session and parse
``page.content()`` with BeautifulSoup. The helpers here are free functions
working on ``bs4.Tag`` elements or plain strings, so they can be tested
without a browser.

Listing markup on the Saudi portals is bilingual (English and Arabic), so
price/area/room/feature detection accepts both vocabularies.
"""
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from propfeed.core.logging import get_logger
from propfeed.schemas.scraper_schema import LOCAL_CURRENCY, Contact, Price, Rooms, Size

logger = get_logger(__name__)


# (canonical type, keywords) checked in order; first hit wins.
TypeRules = Sequence[Tuple[str, Sequence[str]]]

# (feature tag, keywords)
FeatureTable = Sequence[Tuple[str, Sequence[str]]]

DEFAULT_TYPE_RULES: TypeRules = (
    ("villa", ("villa", "فيلا")),
    ("office", ("office", "مكتب")),
    ("land", ("land", "أرض")),
    ("commercial", ("commercial", "تجاري")),
)

DEFAULT_CITY_MAP: Dict[str, str] = {
    "الرياض": "Riyadh",
    "جدة": "Jeddah",
    "الدمام": "Dammam",
    "مكة": "Mecca",
    "المدينة": "Medina",
    "الطائف": "Taif",
    "الخبر": "Khobar",
    "الأحساء": "Al-Ahsa",
}

_WHITESPACE = re.compile(r"\s+")
_NUMBER = re.compile(r"\d[\d,\.]*")
_BEDROOMS = re.compile(r"(\d+)\s*(غرف|غرفة|bedroom|bed)", re.IGNORECASE)
_BATHROOMS = re.compile(r"(\d+)\s*(حمام|bathroom|bath)", re.IGNORECASE)
_PHONE = re.compile(r"(\+966|966|05)\s*\d{8,9}")
_EMAIL = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and newlines into single spaces."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def _parse_number(text: str) -> float:
    match = _NUMBER.search(text)
    if not match:
        return 0
    num_str = match.group().replace(",", "")
    # "1.200.000" style thousands separators
    if num_str.count(".") > 1:
        num_str = num_str.replace(".", "")
    try:
        return float(num_str)
    except ValueError:
        logger.debug("Unparseable number in '%s'", text)
        return 0


def extract_price(text: Optional[str]) -> Price:
    """Parse a price label like '1,200,000 SAR' or '45,000 ريال / سنة'."""
    text = clean_text(text)
    lowered = text.lower()
    if "month" in lowered or "شهر" in text:
        period = "monthly"
    elif "year" in lowered or "سنة" in text:
        period = "yearly"
    else:
        period = "sale"
    return Price(amount=_parse_number(text), currency=LOCAL_CURRENCY, period=period)


def extract_area(text: Optional[str]) -> Size:
    """Parse an area label like '250 sqm' or '1,200 قدم'."""
    text = clean_text(text)
    unit = "sqft" if ("sqft" in text.lower() or "قدم" in text) else "sqm"
    return Size(area=_parse_number(text), unit=unit)


def extract_rooms(text: Optional[str]) -> Rooms:
    text = text or ""
    bedrooms = _BEDROOMS.search(text)
    bathrooms = _BATHROOMS.search(text)
    return Rooms(
        bedrooms=int(bedrooms.group(1)) if bedrooms else None,
        bathrooms=int(bathrooms.group(1)) if bathrooms else None,
    )


def safe_select(element: Tag, selector: str) -> List[Tag]:
    """``element.select`` that treats selectors soupsieve rejects as no match."""
    try:
        return element.select(selector)
    except Exception:
        logger.debug("Unsupported selector '%s'", selector)
        return []


def safe_select_one(element: Tag, selector: str) -> Optional[Tag]:
    found = safe_select(element, selector)
    return found[0] if found else None


def first_text(element: Tag, selectors: Iterable[str]) -> str:
    """Text of the first selector candidate that yields non-empty text."""
    for selector in selectors:
        el = safe_select_one(element, selector)
        if el:
            text = clean_text(el.get_text(" "))
            if text:
                return text
    return ""


def first_attr(element: Tag, selectors: Iterable[str], attr: str) -> Optional[str]:
    for selector in selectors:
        el = safe_select_one(element, selector)
        if el and el.get(attr):
            return el.get(attr)
    return None


def absolute_url(base: str, href: Optional[str]) -> str:
    if not href:
        return ""
    return urljoin(base, href.strip())


def collect_images(
    element: Tag,
    base_url: str,
    excluded_tokens: Sequence[str] = (),
    attrs: Sequence[str] = ("src", "data-src", "data-lazy"),
) -> List[str]:
    """Absolute image URLs under ``element``, skipping placeholders/logos."""
    images: List[str] = []
    for img in element.find_all("img"):
        src = next((img.get(attr) for attr in attrs if img.get(attr)), None)
        if not src or src.startswith("data:"):
            continue
        if any(token in src.lower() for token in excluded_tokens):
            continue
        url = absolute_url(base_url, src)
        if url not in images:
            images.append(url)
    return images


def find_contact(text: Optional[str], agent: Optional[str] = None) -> Optional[Contact]:
    """Phone/e-mail found in free text, or None when neither is present."""
    text = text or ""
    phone = _PHONE.search(text)
    email = _EMAIL.search(text)
    if not phone and not email:
        return None
    return Contact(
        phone=phone.group(0) if phone else None,
        email=email.group(0) if email else None,
        agent=agent,
    )


def classify_property_type(
    text: Optional[str],
    url: Optional[str] = None,
    rules: TypeRules = DEFAULT_TYPE_RULES,
    url_rules: Optional[TypeRules] = None,
) -> str:
    """Map listing text (and optionally its URL) to a canonical type.

    URL rules are checked first when a URL is given; default is apartment.
    """
    if url:
        lowered_url = url.lower()
        for type_name, keywords in url_rules or rules:
            if any(keyword in lowered_url for keyword in keywords):
                return type_name

    lowered = (text or "").lower()
    for type_name, keywords in rules:
        if any(keyword.lower() in lowered for keyword in keywords):
            return type_name
    return "apartment"


def extract_features(text: Optional[str], keyword_table: FeatureTable) -> List[str]:
    lowered = (text or "").lower()
    features: List[str] = []
    for tag, keywords in keyword_table:
        if any(keyword.lower() in lowered for keyword in keywords):
            features.append(tag)
    return features


def normalize_city(text: Optional[str], city_map: Dict[str, str] = DEFAULT_CITY_MAP) -> Optional[str]:
    """English city name for the first Arabic (or English) city found in text."""
    if not text:
        return None
    lowered = text.lower()
    for arabic, english in city_map.items():
        if arabic in text or english.lower() in lowered:
            return english
    return None


def parse_next_page(soup: Tag, base_url: str, selectors: Sequence[str]) -> Optional[str]:
    """URL of the pagination "next" link; None when absent or disabled."""
    for selector in selectors:
        el = safe_select_one(soup, selector)
        if el is None:
            continue
        if el.has_attr("disabled") or "disabled" in (el.get("class") or []):
            return None
        if el.get("href"):
            return absolute_url(base_url, el["href"])
    return None


def find_listing_cards(soup: Tag, card_selectors: Sequence[str], fallback_link_selector: str) -> List[Tag]:
    """Listing cards via the configured selectors, in order.

    When no card selector matches, falls back to the closest
    ``div``/``article``/``section`` ancestor of each listing-looking link.
    """
    for selector in card_selectors:
        cards = safe_select(soup, selector)
        if cards:
            logger.debug("Matched %d cards with '%s'", len(cards), selector)
            return cards

    containers: List[Tag] = []
    for link in safe_select(soup, fallback_link_selector):
        container = link.find_parent(["div", "article", "section"])
        if container is not None and all(container is not seen for seen in containers):
            containers.append(container)
    if containers:
        logger.debug("Fallback link heuristic found %d containers", len(containers))
    return containers


def card_link(card: Tag, base_url: str, link_selector: str) -> str:
    """Listing URL for a card: the card itself when it is an anchor, else its first matching link."""
    if card.name == "a" and card.get("href"):
        return absolute_url(base_url, card["href"])
    link = safe_select_one(card, link_selector) or card.find("a", href=True)
    if link is not None and link.get("href"):
        return absolute_url(base_url, link["href"])
    return ""
