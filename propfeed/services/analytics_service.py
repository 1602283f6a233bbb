"""Aggregate analytics over the canonical feed (getDataInfo)."""
from collections import Counter
from typing import Dict, Sequence

from propfeed.schemas.feed_schema import DataInfoResponse, DataQuality
from propfeed.schemas.property_schema import Property

PRICE_BUCKETS = ("Under 500K", "500K - 1M", "1M - 2M", "Over 2M")


def price_bucket(price: float) -> str:
    if price < 500_000:
        return "Under 500K"
    if price < 1_000_000:
        return "500K - 1M"
    if price < 2_000_000:
        return "1M - 2M"
    return "Over 2M"


def is_complete(prop: Property) -> bool:
    """Has images, a description, an agent, a price and an area."""
    return bool(
        prop.images
        and prop.description
        and prop.agent is not None
        and prop.price > 0
        and prop.details.area > 0
    )


def compute_data_info(properties: Sequence[Property]) -> DataInfoResponse:
    if not properties:
        return DataInfoResponse(price_ranges={bucket: 0 for bucket in PRICE_BUCKETS})

    price_ranges: Dict[str, int] = {bucket: 0 for bucket in PRICE_BUCKETS}
    for prop in properties:
        price_ranges[price_bucket(prop.price)] += 1

    total = len(properties)
    return DataInfoResponse(
        total_properties=total,
        source_stats=dict(Counter(prop.source.value for prop in properties)),
        city_stats=dict(Counter(prop.location.city for prop in properties)),
        type_stats=dict(Counter(prop.type.value for prop in properties)),
        price_ranges=price_ranges,
        average_price=round(sum(prop.price for prop in properties) / total),
        average_area=round(sum(prop.details.area for prop in properties) / total),
        last_updated=max(prop.updated_at for prop in properties),
        data_quality=DataQuality(
            with_images=sum(1 for prop in properties if prop.images),
            with_description=sum(1 for prop in properties if prop.description),
            with_agent=sum(1 for prop in properties if prop.agent is not None),
            complete=sum(1 for prop in properties if is_complete(prop)),
        ),
    )
