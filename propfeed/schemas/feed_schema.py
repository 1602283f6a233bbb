"""Pydantic schemas for the feed procedures (start, status, properties, history...)."""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from propfeed.schemas.base_schema import CamelModel
from propfeed.schemas.property_schema import Property, PropertyType
from propfeed.schemas.scraper_schema import ScrapingResult, ScrapingStats, Source


class StartRequest(CamelModel):
    sources: Optional[List[Source]] = None


class SourceResultSummary(CamelModel):
    """A ScrapingResult without the property bodies, as kept in history."""
    source: Source
    success: bool
    total_found: int
    errors: List[str] = []
    note: Optional[str] = None
    scraped_at: datetime

    @classmethod
    def from_result(cls, result: ScrapingResult) -> "SourceResultSummary":
        return cls(
            source=result.source,
            success=result.success,
            total_found=result.total_found,
            errors=list(result.errors),
            note=result.note,
            scraped_at=result.scraped_at,
        )


class HistoryEntry(CamelModel):
    id: str
    start_time: datetime
    end_time: datetime
    sources: List[Source]
    success: bool
    total_properties: int = 0
    total_errors: int = 0
    stats: Optional[ScrapingStats] = None
    results: Optional[List[SourceResultSummary]] = None
    note: Optional[str] = None


class StartResponse(CamelModel):
    success: bool
    message: str
    stats: Optional[ScrapingStats] = None
    results: Optional[List[SourceResultSummary]] = None
    history_entry: HistoryEntry
    note: Optional[str] = None


class ScheduleStatus(CamelModel):
    enabled: bool = False
    jobs: Dict[str, Optional[str]] = {}


class StatusSummary(CamelModel):
    total_properties: int = 0
    last_run: Optional[datetime] = None
    sources: Dict[str, int] = {}


class StatusResponse(CamelModel):
    success: bool = True
    is_scraping_all: bool = False
    current_sources: Dict[str, bool] = {}
    history: List[HistoryEntry] = []
    summary: StatusSummary = StatusSummary()
    schedule: ScheduleStatus = ScheduleStatus()


class PropertiesQuery(CamelModel):
    limit: int = Field(50, ge=1, le=500)
    offset: int = Field(0, ge=0)
    source: Optional[Source] = None
    city: Optional[str] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    property_type: Optional[PropertyType] = None


class PropertyFilters(CamelModel):
    source: Optional[Source] = None
    city: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    property_type: Optional[PropertyType] = None


class PropertiesResponse(CamelModel):
    success: bool = True
    properties: List[Property] = []
    count: int = 0
    total: int = 0
    has_more: bool = False
    filters: PropertyFilters = PropertyFilters()


class HistoryQuery(CamelModel):
    limit: int = Field(20, ge=1, le=500)
    source: Optional[Source] = None


class HistoryResponse(CamelModel):
    success: bool = True
    history: List[HistoryEntry] = []
    total_runs: int = 0
    filtered: bool = False
    source: Optional[Source] = None


class ClearCacheRequest(CamelModel):
    clear_history: bool = True
    clear_properties: bool = True


class MessageResponse(CamelModel):
    success: bool
    message: str


class ImportRequest(CamelModel):
    json_data: str
    source: Optional[Source] = None


class ImportResponse(CamelModel):
    success: bool
    message: str
    count: int = 0
    error: Optional[str] = None


class ExportResponse(CamelModel):
    success: bool
    data: str = "[]"
    count: int = 0
    message: Optional[str] = None
    error: Optional[str] = None


class DataQuality(CamelModel):
    with_images: int = 0
    with_description: int = 0
    with_agent: int = 0
    complete: int = 0


class DataInfoResponse(CamelModel):
    success: bool = True
    total_properties: int = 0
    source_stats: Dict[str, int] = {}
    city_stats: Dict[str, int] = {}
    type_stats: Dict[str, int] = {}
    price_ranges: Dict[str, int] = {}
    average_price: float = 0
    average_area: float = 0
    last_updated: Optional[datetime] = None
    data_quality: DataQuality = DataQuality()


class ScheduleRequest(CamelModel):
    enabled: bool


class ScheduleResponse(CamelModel):
    success: bool
    message: str
    schedule: ScheduleStatus = ScheduleStatus()
