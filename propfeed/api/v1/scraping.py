"""Scraping API router: launch runs, query the feed, manage the cache and schedule.
/api/v1/scraping
"""
from typing import Optional

from fastapi import APIRouter, Query, Request

from propfeed.api.deps import FeedServiceDep
from propfeed.api.responses import ok
from propfeed.schemas.base_schema import ApiResponse
from propfeed.schemas.feed_schema import (
    ClearCacheRequest,
    DataInfoResponse,
    ExportResponse,
    HistoryQuery,
    HistoryResponse,
    ImportRequest,
    ImportResponse,
    MessageResponse,
    PropertiesQuery,
    PropertiesResponse,
    ScheduleRequest,
    ScheduleResponse,
    StartRequest,
    StartResponse,
    StatusResponse,
)
from propfeed.schemas.property_schema import PropertyType
from propfeed.schemas.scraper_schema import Source

router = APIRouter()


@router.post("/start", response_model=ApiResponse[StartResponse])
async def start_scraping(request: Request, feed: FeedServiceDep, payload: Optional[StartRequest] = None):
    """Run the given sources sequentially, or the whole fleet when none are given.

    Overlapping runs are rejected with 409.
    """
    result = await feed.start(payload or StartRequest())
    return ok(result, result.message, request)


@router.get("/status", response_model=ApiResponse[StatusResponse])
async def get_status(request: Request, feed: FeedServiceDep):
    return ok(feed.status(), "Status retrieved successfully", request)


@router.get("/properties", response_model=ApiResponse[PropertiesResponse])
async def get_properties(
    request: Request,
    feed: FeedServiceDep,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    source: Optional[Source] = Query(None),
    city: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[float] = Query(None, ge=0, alias="maxPrice"),
    property_type: Optional[PropertyType] = Query(None, alias="propertyType"),
):
    """Canonical properties, filtered then paginated."""
    query = PropertiesQuery(
        limit=limit,
        offset=offset,
        source=source,
        city=city,
        min_price=min_price,
        max_price=max_price,
        property_type=property_type,
    )
    result = feed.get_properties(query)
    return ok(result, f"{result.count} of {result.total} properties", request)


@router.get("/history", response_model=ApiResponse[HistoryResponse])
async def get_history(
    request: Request,
    feed: FeedServiceDep,
    limit: int = Query(20, ge=1, le=500),
    source: Optional[Source] = Query(None),
):
    """Run history, newest first."""
    result = feed.get_history(HistoryQuery(limit=limit, source=source))
    return ok(result, "History retrieved successfully", request)


@router.post("/cache/clear", response_model=ApiResponse[MessageResponse])
async def clear_cache(request: Request, feed: FeedServiceDep, payload: Optional[ClearCacheRequest] = None):
    result = feed.clear_cache(payload or ClearCacheRequest())
    return ok(result, result.message, request)


@router.post("/import", response_model=ApiResponse[ImportResponse])
async def import_properties(request: Request, payload: ImportRequest, feed: FeedServiceDep):
    """Import a JSON array of raw listings. Malformed input is reported in the body, not as an HTTP error."""
    result = feed.import_json(payload)
    return ok(result, result.message, request)


@router.get("/export", response_model=ApiResponse[ExportResponse])
async def export_properties(request: Request, feed: FeedServiceDep, source: Optional[Source] = Query(None)):
    result = feed.export_json(source)
    return ok(result, result.message or f"Exported {result.count} properties", request)


@router.get("/data-info", response_model=ApiResponse[DataInfoResponse])
async def get_data_info(request: Request, feed: FeedServiceDep):
    """Distributions, price buckets, averages and data-quality counters."""
    return ok(feed.data_info(), "Data info computed successfully", request)


@router.post("/schedule", response_model=ApiResponse[ScheduleResponse])
async def control_schedule(request: Request, payload: ScheduleRequest, feed: FeedServiceDep):
    result = feed.set_schedule(payload)
    return ok(result, result.message, request)
