"""Synthetic fallback listings served when a source yields nothing."""
from typing import Dict, List, Protocol

from propfeed.schemas.scraper_schema import (
    Contact,
    Location,
    Price,
    Rooms,
    ScrapedProperty,
    Size,
    Source,
)

FALLBACK_IMAGES = [
    "https://images.unsplash.com/photo-1560518883-ce09059eeffa?w=800&h=600&fit=crop&crop=entropy&auto=format&q=80",
    "https://images.unsplash.com/photo-1564013799919-ab600027ffc6?w=800&h=600&fit=crop&crop=entropy&auto=format&q=80",
]


class FallbackStrategy(Protocol):
    def generate(self, source: Source) -> List[ScrapedProperty]:
        ...

    def size_for(self, source: Source) -> int:
        ...


def _profile(title, amount, district, property_type, area, bedrooms, bathrooms, features):
    return {
        "title": title,
        "amount": amount,
        "district": district,
        "property_type": property_type,
        "area": area,
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "features": features,
    }


FALLBACK_PROFILES: Dict[Source, List[dict]] = {
    Source.BAYUT: [
        _profile(
            "Premium Villa with Pool in Al Nakheel District", 2_800_000, "Al Nakheel", "villa", 480, 5, 4,
            ["Swimming Pool", "Private Garden", "Maid Room", "Driver Room", "Garage", "Security System"],
        ),
        _profile(
            "Luxury Apartment in King Fahd Financial District", 950_000, "King Fahd", "apartment", 200, 3, 2,
            ["City View", "Balcony", "Parking", "Gym Access", "Concierge"],
        ),
    ],
    Source.AQAR: [
        _profile(
            "Modern Family Villa in Al Malqa", 2_200_000, "Al Malqa", "villa", 420, 4, 3,
            ["Garden", "Majlis", "Modern Kitchen", "Parking", "Storage"],
        ),
        _profile(
            "Elegant Studio in Al Olaya", 520_000, "Al Olaya", "apartment", 95, 1, 1,
            ["Furnished", "AC", "High-Speed Internet", "Security", "Elevator"],
        ),
    ],
    Source.WASALT: [
        _profile(
            "Executive Office Space in KAFD", 1_800_000, "KAFD", "office", 300, 0, 3,
            ["Reception Area", "Conference Rooms", "Premium Location", "Parking", "Central AC"],
        ),
        _profile(
            "Prime Retail Space in Al Tahlia", 1_200_000, "Al Tahlia", "commercial", 150, 0, 1,
            ["Street Facing", "High Foot Traffic", "Display Windows", "Storage Area"],
        ),
    ],
    Source.SREM: [
        _profile(
            "Residential Land Plot in Al Narjis", 1_500_000, "Al Narjis", "land", 625, 0, 0,
            ["Corner Plot", "Street Width 20m", "Title Deed Registered"],
        ),
        _profile(
            "Registered Apartment in Al Yasmin", 780_000, "Al Yasmin", "apartment", 160, 3, 2,
            ["Parking", "Elevator", "Title Deed Registered"],
        ),
    ],
}


class FallbackGenerator:
    """Two fixed listings per fleet source, marked as fallback data."""

    def __init__(self, profiles: Dict[Source, List[dict]] = FALLBACK_PROFILES):
        self.profiles = profiles

    def size_for(self, source: Source) -> int:
        return len(self.profiles.get(source, []))

    def generate(self, source: Source) -> List[ScrapedProperty]:
        name = source.value
        return [
            ScrapedProperty(
                title=profile["title"],
                location=Location(city="Riyadh", district=profile["district"], region="Riyadh Region"),
                price=Price(amount=profile["amount"]),
                property_type=profile["property_type"],
                size=Size(area=profile["area"], unit="sqm"),
                rooms=Rooms(bedrooms=profile["bedrooms"], bathrooms=profile["bathrooms"]),
                description=f"{profile['title']} - Advanced scraping fallback data for {name}",
                images=list(FALLBACK_IMAGES),
                listing_url=f"https://{name}.com/advanced-fallback-{index}",
                source=source,
                features=list(profile["features"]),
                contact=Contact(
                    agent=f"{name} Advanced Agent",
                    phone="+966 11 000 0000",
                    email=f"advanced@{name}.com",
                ),
            )
            for index, profile in enumerate(self.profiles.get(source, []), start=1)
        ]
