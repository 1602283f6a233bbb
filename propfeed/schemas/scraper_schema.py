"""Raw per-source listing records and run results.

A ``ScrapedProperty`` is what an adapter extracts from one listing card or
detail page, before canonicalization. ``listing_url`` is its identity.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import Field

from propfeed.schemas.base_schema import CamelModel


class Source(str, Enum):
    BAYUT = "bayut"
    AQAR = "aqar"
    WASALT = "wasalt"
    SREM = "srem"
    IMPORTED = "imported"
    SAMPLE = "sample"


# Sources that have an adapter in the scraping fleet, in launch order.
FLEET_SOURCES: tuple[Source, ...] = (Source.BAYUT, Source.AQAR, Source.WASALT, Source.SREM)

LOCAL_CURRENCY = "SAR"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Location(CamelModel):
    city: str
    district: str
    region: Optional[str] = None


class Price(CamelModel):
    amount: float = 0
    currency: str = LOCAL_CURRENCY
    period: Optional[Literal["monthly", "yearly", "sale"]] = None


class Size(CamelModel):
    area: float = 0
    unit: Literal["sqm", "sqft"] = "sqm"


class Rooms(CamelModel):
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None


class Contact(CamelModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    agent: Optional[str] = None


class ScrapedProperty(CamelModel):
    title: str
    location: Location
    price: Price
    property_type: str
    size: Optional[Size] = None
    rooms: Optional[Rooms] = None
    description: str = ""
    images: List[str] = []
    contact: Optional[Contact] = None
    listing_url: str
    source: Source
    scraped_at: datetime = Field(default_factory=utcnow)
    features: List[str] = []


class ScrapingResult(CamelModel):
    success: bool = False
    properties: List[ScrapedProperty] = []
    errors: List[str] = []
    source: Source
    scraped_at: datetime = Field(default_factory=utcnow)
    total_found: int = 0
    note: Optional[str] = None


def _empty_source_counts() -> Dict[str, int]:
    return {source.value: 0 for source in FLEET_SOURCES}


class ScrapingStats(CamelModel):
    total_properties: int = 0
    new_properties: int = 0
    updated_properties: int = 0
    errors: int = 0
    last_run: datetime = Field(default_factory=utcnow)
    sources: Dict[str, int] = Field(default_factory=_empty_source_counts)
