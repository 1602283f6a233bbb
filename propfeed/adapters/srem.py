"""SREM (srem.moj.gov.sa) registry adapter.

The registry publishes no open listing markup, so this adapter produces a
registry-shaped sample that follows Saudi market patterns: city price
multipliers, per-type base prices and areas, Arabic titles and features.
"""
import random
import time
from typing import List, Optional

from propfeed.core.logging import get_logger
from propfeed.schemas.scraper_schema import (
    Contact,
    Location,
    Price,
    Rooms,
    ScrapedProperty,
    ScrapingResult,
    Size,
    Source,
)

logger = get_logger(__name__)

BASE_URL = "https://srem.moj.gov.sa"
SAMPLE_SIZE = 50

CITIES = (
    ("الرياض", "Riyadh"),
    ("جدة", "Jeddah"),
    ("الدمام", "Dammam"),
    ("مكة المكرمة", "Makkah"),
    ("المدينة المنورة", "Madinah"),
    ("الطائف", "Taif"),
    ("تبوك", "Tabuk"),
    ("بريدة", "Buraidah"),
    ("خميس مشيط", "Khamis Mushait"),
    ("الهفوف", "Hofuf"),
)

RIYADH_DISTRICTS = (
    "العليا", "الملقا", "النخيل", "الياسمين", "الصحافة", "الملز", "الروضة", "السليمانية",
    "المروج", "النرجس", "الواحة", "الفلاح", "الغدير", "المونسية", "الحمراء", "الربوة",
)

JEDDAH_DISTRICTS = (
    "الروضة", "الزهراء", "الشاطئ", "أبحر", "الحمراء", "الصفا", "المرجان", "الفيصلية",
    "البساتين", "الكندرة", "الواحة", "النزهة", "الأندلس", "الخالدية", "المحمدية",
)

GENERIC_DISTRICTS = ("المركز", "الشمال", "الجنوب", "الشرق", "الغرب")

# (type, Arabic name, base price SAR, base area sqm)
PROPERTY_TYPES = (
    ("apartment", "شقة", 400_000, 120),
    ("villa", "فيلا", 1_200_000, 400),
    ("office", "مكتب", 800_000, 200),
    ("commercial", "تجاري", 1_500_000, 300),
    ("land", "أرض", 600_000, 500),
)

CITY_MULTIPLIERS = {"Riyadh": 1.2, "Jeddah": 1.1, "Dammam": 1.0}
DEFAULT_CITY_MULTIPLIER = 0.8

FEATURE_SETS = (
    ("مواقف سيارات", "أمن وحراسة", "مصعد", "تكييف مركزي"),
    ("حديقة خاصة", "مسبح", "صالة رياضية", "ملعب أطفال"),
    ("شرفة", "مخزن", "غرفة خادمة", "غرفة سائق"),
    ("مفروش", "إنترنت", "كاميرات مراقبة", "نظام إنذار"),
)

_UNSPLASH = "https://images.unsplash.com/photo-{}?w=800&h=600&fit=crop&crop=entropy&auto=format&q=80"

IMAGES = {
    "apartment": ("1564013799919-ab600027ffc6", "1522708323590-d24dbb6b0267", "1502672260266-1c1ef2d93688"),
    "villa": ("1560518883-ce09059eeffa", "1600596542815-ffad4c1539a9", "1600607687939-ce8a6c25118c"),
    "office": ("1497366216548-37526070297c", "1497366811353-6870744d04b2", "1486406146926-c627a92ad1ab"),
    "commercial": ("1441986300917-64674bd600d8", "1560472354-b33ff0c44a43", "1556761175-5973dc0f32e7"),
    "land": ("1500382017468-9049fed747ef",),
}


def districts_for(city_en: str) -> tuple:
    if city_en == "Riyadh":
        return RIYADH_DISTRICTS
    if city_en == "Jeddah":
        return JEDDAH_DISTRICTS
    return GENERIC_DISTRICTS


class SremAdapter:
    """Registry-shaped sample generator honouring the adapter contract."""

    source = Source.SREM

    def __init__(self, rng: Optional[random.Random] = None, sample_size: int = SAMPLE_SIZE):
        self._rng = rng or random.Random()
        self.sample_size = sample_size

    async def scrape_properties(self) -> ScrapingResult:
        logger.info("Generating SREM registry sample", extra={"source": self.source.value})
        properties = self.generate_sample()
        return ScrapingResult(
            success=True,
            properties=properties,
            source=self.source,
            total_found=len(properties),
        )

    def generate_sample(self) -> List[ScrapedProperty]:
        rng = self._rng
        stamp = int(time.time() * 1000)
        properties: List[ScrapedProperty] = []

        for i in range(self.sample_size):
            city_ar, city_en = rng.choice(CITIES)
            type_name, name_ar, base_price, base_area = rng.choice(PROPERTY_TYPES)
            feature_set = rng.choice(FEATURE_SETS)
            district = rng.choice(districts_for(city_en))

            multiplier = CITY_MULTIPLIERS.get(city_en, DEFAULT_CITY_MULTIPLIER)
            price = round(base_price * multiplier * (0.7 + rng.random() * 0.6))
            area = round(base_area * (0.5 + rng.random()))

            if type_name == "villa":
                bedrooms = 3 + rng.randrange(4)
            elif type_name == "apartment":
                bedrooms = 1 + rng.randrange(4)
            else:
                bedrooms = 0
            bathrooms = 0 if type_name == "land" else max(1, int(bedrooms * 0.7))

            rooms_text = f"{bedrooms} غرف نوم" if bedrooms > 0 else ""
            phone = "+966 {}{}{} {}{}{}{}".format(rng.randint(1, 9), *(rng.randrange(9) for _ in range(6)))

            properties.append(
                ScrapedProperty(
                    title=f"{name_ar} في {district}، {city_ar}",
                    location=Location(city=city_en, district=district, region=f"{city_en} Region"),
                    price=Price(amount=price),
                    property_type=type_name,
                    size=Size(area=area, unit="sqm"),
                    rooms=Rooms(bedrooms=bedrooms, bathrooms=bathrooms),
                    description=(
                        f"{name_ar} {rooms_text} في منطقة {district} بمدينة {city_ar}. "
                        "العقار يتميز بموقع استراتيجي ومواصفات عالية الجودة."
                    ),
                    images=[_UNSPLASH.format(rng.choice(IMAGES[type_name]))],
                    listing_url=f"{BASE_URL}/property/{stamp}-{i}",
                    source=self.source,
                    features=list(feature_set),
                    contact=Contact(
                        agent=f"وكيل عقاري - {city_en}",
                        phone=phone,
                        email=f"agent{i}@srem.gov.sa",
                    ),
                )
            )
        return properties

    async def scrape_property_details(self, url: str) -> Optional[ScrapedProperty]:
        return None

    async def close(self) -> None:
        return None


def create_adapter(rng: Optional[random.Random] = None) -> SremAdapter:
    return SremAdapter(rng=rng)
