"""Canonical Property schema.

This is the normalized, de-duplicated listing record served to downstream
consumers. Instances are produced only by the canonicalization pipeline
(``mapper_service.process_properties``) and are frozen.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict

from propfeed.schemas.base_schema import CamelModel
from propfeed.schemas.scraper_schema import Source


class PropertyType(str, Enum):
    APARTMENT = "apartment"
    VILLA = "villa"
    OFFICE = "office"
    LAND = "land"
    COMMERCIAL = "commercial"


class PropertyStatus(str, Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    RENTED = "rented"
    PENDING = "pending"


class _Frozen(CamelModel):
    model_config = ConfigDict(frozen=True)


class Coordinates(_Frozen):
    latitude: float
    longitude: float


class PropertyLocation(_Frozen):
    city: str
    district: str
    coordinates: Optional[Coordinates] = None  # populated by geocoding, out of scope here


class PropertyDetails(_Frozen):
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area: float = 0
    parking: bool = False
    furnished: bool = False


class Agent(_Frozen):
    id: str
    name: str
    phone: str = ""
    email: str = ""


class Property(_Frozen):
    id: str
    title: str
    description: str = ""
    price: float
    currency: str
    location: PropertyLocation
    details: PropertyDetails
    images: List[str] = []
    type: PropertyType
    status: PropertyStatus = PropertyStatus.AVAILABLE
    features: List[str] = []
    agent: Optional[Agent] = None
    source: Source
    listing_url: str
    created_at: datetime
    updated_at: datetime
