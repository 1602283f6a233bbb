"""Mapper service: canonicalizes raw scraped records into ``Property`` objects.

Handles:
- De-duplication by listing URL (first seen wins, order preserved)
- Deterministic ids: ``{source}-{stable_hash(listing_url)}``
- Free-form property type → one of the five canonical types
- Parking/furnished flags derived from feature tags
- Contact block → agent
"""
from typing import Iterable, List, Optional

from propfeed.core.logging import get_logger
from propfeed.schemas.property_schema import (
    Agent,
    Property,
    PropertyDetails,
    PropertyLocation,
    PropertyStatus,
    PropertyType,
)
from propfeed.schemas.scraper_schema import Contact, ScrapedProperty

logger = get_logger(__name__)

_DIGITS36 = "0123456789abcdefghijklmnopqrstuvwxyz"

_TYPE_KEYWORDS = (
    (PropertyType.VILLA, ("villa", "house")),
    (PropertyType.OFFICE, ("office",)),
    (PropertyType.LAND, ("land", "plot")),
    (PropertyType.COMMERCIAL, ("commercial", "shop", "warehouse")),
)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_DIGITS36[rem])
    return "".join(reversed(digits))


def stable_hash(text: str) -> str:
    """32-bit ``h = h * 31 + code_unit`` rolling hash, base-36 of its absolute value.

    Iterates UTF-16 code units so ids match those produced by browser-side
    consumers hashing the same URL.
    """
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h = _to_int32((h << 5) - h + code_unit)
    return _base36(abs(h))


def generate_property_id(raw: ScrapedProperty) -> str:
    return f"{raw.source.value}-{stable_hash(raw.listing_url)}"


def map_property_type(raw_type: Optional[str]) -> PropertyType:
    lowered = (raw_type or "").lower()
    for property_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return property_type
    return PropertyType.APARTMENT


def _has_feature(features: Iterable[str], keyword: str) -> bool:
    return any(keyword in feature.lower() for feature in features)


def _to_agent(contact: Optional[Contact]) -> Optional[Agent]:
    if contact is None:
        return None
    return Agent(
        id="scraped-agent",
        name=contact.agent or "Unknown",
        phone=contact.phone or "",
        email=contact.email or "",
    )


def to_property(raw: ScrapedProperty) -> Property:
    """Map one raw record to the canonical schema."""
    return Property(
        id=generate_property_id(raw),
        title=raw.title,
        description=raw.description,
        price=raw.price.amount,
        currency=raw.price.currency,
        location=PropertyLocation(city=raw.location.city, district=raw.location.district),
        details=PropertyDetails(
            bedrooms=raw.rooms.bedrooms if raw.rooms else None,
            bathrooms=raw.rooms.bathrooms if raw.rooms else None,
            area=raw.size.area if raw.size else 0,
            parking=_has_feature(raw.features, "parking"),
            furnished=_has_feature(raw.features, "furnished"),
        ),
        images=list(raw.images),
        type=map_property_type(raw.property_type),
        status=PropertyStatus.AVAILABLE,
        features=list(raw.features),
        agent=_to_agent(raw.contact),
        source=raw.source,
        listing_url=raw.listing_url,
        created_at=raw.scraped_at,
        updated_at=raw.scraped_at,
    )


def dedupe_by_url(raw: Iterable[ScrapedProperty]) -> List[ScrapedProperty]:
    seen: set[str] = set()
    unique: List[ScrapedProperty] = []
    for item in raw:
        if item.listing_url in seen:
            continue
        seen.add(item.listing_url)
        unique.append(item)
    return unique


def process_properties(raw: Iterable[ScrapedProperty]) -> List[Property]:
    """Canonicalize raw records in a single pass, skipping repeated listing URLs."""
    raw = list(raw)
    unique = dedupe_by_url(raw)
    if len(unique) != len(raw):
        logger.debug("Dropped %d duplicate listings", len(raw) - len(unique))
    return [to_property(item) for item in unique]
