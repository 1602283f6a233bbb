"""Feed service: the procedures exposed to the API boundary.

Owns the run history and wraps the ScrapingManager and ScrapeScheduler.
Query procedures always return a well-formed payload: on an internal
failure they log and fall back to the default (empty) response. Only
AlreadyRunningError and UnknownSourceError propagate to the caller.
"""
import json
import uuid
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from propfeed.core.exceptions import AlreadyRunningError, ImportFormatError, UnknownSourceError
from propfeed.core.logging import get_logger
from propfeed.schemas.feed_schema import (
    ClearCacheRequest,
    DataInfoResponse,
    ExportResponse,
    HistoryEntry,
    HistoryQuery,
    HistoryResponse,
    ImportRequest,
    ImportResponse,
    MessageResponse,
    PropertiesQuery,
    PropertiesResponse,
    PropertyFilters,
    ScheduleRequest,
    ScheduleResponse,
    ScheduleStatus,
    SourceResultSummary,
    StartRequest,
    StartResponse,
    StatusResponse,
    StatusSummary,
)
from propfeed.schemas.property_schema import Property
from propfeed.schemas.scraper_schema import (
    FLEET_SOURCES,
    ScrapedProperty,
    ScrapingResult,
    ScrapingStats,
    Source,
    utcnow,
)
from propfeed.services.analytics_service import compute_data_info
from propfeed.services.mapper_service import dedupe_by_url
from propfeed.services.scheduler_service import ScrapeScheduler
from propfeed.services.scraper_service import ScrapingManager

logger = get_logger(__name__)

STATUS_HISTORY_SIZE = 5


class FeedService:
    def __init__(
        self,
        manager: ScrapingManager,
        scheduler: Optional[ScrapeScheduler] = None,
        history_limit: int = 100,
    ):
        self.manager = manager
        self.scheduler = scheduler
        self.history_limit = history_limit
        self.history: List[HistoryEntry] = []

    # ── start ──

    async def start(self, request: StartRequest) -> StartResponse:
        """Run the requested sources one after another, or the whole fleet."""
        sources = request.sources or []
        for source in sources:
            if source not in self.manager.adapters:
                raise UnknownSourceError(f"Unknown source: {source.value}", detail={"source": source.value})
        if self.manager.guard.busy:
            raise AlreadyRunningError("Scraping is already in progress")

        if sources:
            return await self._start_sources(sources)
        return await self._start_fleet()

    async def _start_sources(self, sources: List[Source]) -> StartResponse:
        started = utcnow()
        results: List[ScrapingResult] = []
        for source in sources:
            results.append(await self.manager.scrape_specific_source(source))

        total = sum(result.total_found for result in results)
        stats = ScrapingStats(
            total_properties=total,
            new_properties=total,
            errors=sum(len(result.errors) for result in results),
        )
        for result in results:
            stats.sources[result.source.value] = result.total_found

        notes = [f"{result.source.value}: {result.note}" for result in results if result.note]
        note = "; ".join(notes) or None
        summaries = [SourceResultSummary.from_result(result) for result in results]
        entry = self._append_history(
            HistoryEntry(
                id=uuid.uuid4().hex,
                start_time=started,
                end_time=utcnow(),
                sources=list(sources),
                success=True,
                total_properties=total,
                total_errors=stats.errors,
                stats=stats,
                results=summaries,
                note=note,
            )
        )
        names = ", ".join(source.value for source in sources)
        return StartResponse(
            success=True,
            message=f"Scraping completed for {names}. Found {total} properties.",
            stats=stats,
            results=summaries,
            history_entry=entry,
            note=note,
        )

    async def _start_fleet(self) -> StartResponse:
        started = utcnow()
        stats = await self.manager.scrape_all_sources()
        entry = self._append_history(
            HistoryEntry(
                id=uuid.uuid4().hex,
                start_time=started,
                end_time=utcnow(),
                sources=list(self.manager.adapters),
                success=True,
                total_properties=stats.total_properties,
                total_errors=stats.errors,
                stats=stats,
            )
        )
        return StartResponse(
            success=True,
            message=f"Scraping completed for all sources. Found {stats.total_properties} properties.",
            stats=stats,
            history_entry=entry,
        )

    def _append_history(self, entry: HistoryEntry) -> HistoryEntry:
        self.history.append(entry)
        if len(self.history) > self.history_limit:
            self.history = self.history[-self.history_limit:]
        return entry

    # ── queries ──

    def schedule_status(self) -> ScheduleStatus:
        if self.scheduler is None:
            return ScheduleStatus()
        return ScheduleStatus(**self.scheduler.status())

    def status(self) -> StatusResponse:
        try:
            guard = self.manager.status()
            current = {source.value: False for source in FLEET_SOURCES}
            current.update(guard["current_sources"])

            properties = self.manager.get_scraped_properties()
            counts = {source.value: 0 for source in FLEET_SOURCES}
            for prop in properties:
                if prop.source.value in counts:
                    counts[prop.source.value] += 1

            if self.history:
                last_run = self.history[-1].end_time
            else:
                last_run = self.manager.last_stats.last_run if self.manager.last_stats else None

            return StatusResponse(
                is_scraping_all=guard["is_scraping_all"],
                current_sources=current,
                history=self.history[-STATUS_HISTORY_SIZE:],
                summary=StatusSummary(total_properties=len(properties), last_run=last_run, sources=counts),
                schedule=self.schedule_status(),
            )
        except Exception as e:
            logger.error("Error building scraping status: %s", str(e), exc_info=True)
            return StatusResponse()

    def get_properties(self, query: PropertiesQuery) -> PropertiesResponse:
        filters = PropertyFilters(
            source=query.source,
            city=query.city,
            min_price=query.min_price,
            max_price=query.max_price,
            property_type=query.property_type,
        )
        try:
            properties = self._filter(self.manager.get_scraped_properties(), query)
            total = len(properties)
            page = properties[query.offset: query.offset + query.limit]
            return PropertiesResponse(
                properties=page,
                count=len(page),
                total=total,
                has_more=query.offset + query.limit < total,
                filters=filters,
            )
        except Exception as e:
            logger.error("Error getting scraped properties: %s", str(e), exc_info=True)
            return PropertiesResponse(filters=filters)

    @staticmethod
    def _filter(properties: List[Property], query: PropertiesQuery) -> List[Property]:
        if query.source is not None:
            properties = [p for p in properties if p.source == query.source]
        if query.city:
            needle = query.city.lower()
            properties = [p for p in properties if needle in p.location.city.lower()]
        if query.min_price is not None:
            properties = [p for p in properties if p.price >= query.min_price]
        if query.max_price is not None:
            properties = [p for p in properties if p.price <= query.max_price]
        if query.property_type is not None:
            properties = [p for p in properties if p.type == query.property_type]
        return properties

    def get_history(self, query: HistoryQuery) -> HistoryResponse:
        try:
            entries = self.history
            if query.source is not None:
                entries = [entry for entry in entries if query.source in entry.sources]
            # history is appended in run order
            newest_first = entries[::-1]
            return HistoryResponse(
                history=newest_first[: query.limit],
                total_runs=len(entries),
                filtered=query.source is not None,
                source=query.source,
            )
        except Exception as e:
            logger.error("Error getting scraping history: %s", str(e), exc_info=True)
            return HistoryResponse(source=query.source)

    def data_info(self) -> DataInfoResponse:
        try:
            return compute_data_info(self.manager.get_scraped_properties())
        except Exception as e:
            logger.error("Error computing data info: %s", str(e), exc_info=True)
            return DataInfoResponse()

    # ── mutations ──

    def clear_cache(self, request: ClearCacheRequest) -> MessageResponse:
        cleared = []
        if request.clear_properties:
            self.manager.clear_cache()
            cleared.append("properties")
        if request.clear_history:
            self.history = []
            cleared.append("history")
        if not cleared:
            return MessageResponse(success=True, message="Nothing to clear")
        return MessageResponse(success=True, message=f"Cleared: {' and '.join(cleared)}")

    def import_json(self, request: ImportRequest) -> ImportResponse:
        try:
            properties, skipped = self._parse_import(request.json_data, request.source or Source.IMPORTED)
        except ImportFormatError as e:
            logger.warning("Import rejected: %s", e.message)
            return ImportResponse(success=False, message="Failed to import properties", error=e.message)

        self.manager.add_properties(properties)
        message = f"Imported {len(properties)} properties"
        if skipped:
            message += f", skipped {skipped} invalid records"
        logger.info(message)
        return ImportResponse(success=True, message=message, count=len(properties))

    @staticmethod
    def _parse_import(json_data: str, default_source: Source) -> Tuple[List[ScrapedProperty], int]:
        try:
            payload = json.loads(json_data)
        except json.JSONDecodeError as e:
            raise ImportFormatError(f"Invalid JSON: {e.msg}", detail={"line": e.lineno, "column": e.colno})
        if not isinstance(payload, list):
            raise ImportFormatError("Expected a JSON array of properties")

        properties: List[ScrapedProperty] = []
        skipped = 0
        for item in payload:
            if not isinstance(item, dict):
                skipped += 1
                continue
            record: Dict[str, Any] = dict(item)
            if not record.get("source"):
                record["source"] = default_source.value
            try:
                properties.append(ScrapedProperty.model_validate(record))
            except ValidationError:
                skipped += 1
        return properties, skipped

    def export_json(self, source: Optional[Source] = None) -> ExportResponse:
        try:
            raw = dedupe_by_url(self.manager.get_raw_properties())
            if source is not None:
                raw = [item for item in raw if item.source == source]
            data = json.dumps(
                [item.model_dump(mode="json", by_alias=True) for item in raw],
                indent=2,
                ensure_ascii=False,
            )
            return ExportResponse(success=True, data=data, count=len(raw))
        except Exception as e:
            logger.error("Error exporting properties: %s", str(e), exc_info=True)
            return ExportResponse(success=False, message="Failed to export properties", error=str(e))

    def set_schedule(self, request: ScheduleRequest) -> ScheduleResponse:
        if self.scheduler is None:
            return ScheduleResponse(success=False, message="Scheduler is not configured")
        try:
            if request.enabled:
                self.scheduler.start()
            else:
                self.scheduler.stop()
        except Exception as e:
            logger.error("Error controlling scheduler: %s", str(e), exc_info=True)
            return ScheduleResponse(success=False, message=f"Failed to control auto scraping: {e}")
        state = "enabled" if request.enabled else "disabled"
        return ScheduleResponse(success=True, message=f"Auto scraping {state}", schedule=self.schedule_status())

    async def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()
        await self.manager.close()
