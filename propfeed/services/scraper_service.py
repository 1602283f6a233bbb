"""Scraper service: orchestrates the adapter fleet.

This service:
1. Guards against overlapping runs (rejected with AlreadyRunningError, never queued)
2. Runs all adapters concurrently with staggered start offsets
3. Substitutes fallback listings for any source that fails or yields nothing
4. Keeps the accumulated raw listings and the last ScrapingStats in memory
5. Canonicalizes on read via mapper_service
"""
import asyncio
import time
from collections import deque
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Deque, Dict, Iterable, Iterator, List, Mapping, Optional

from propfeed.adapters.base import PropertyAdapter
from propfeed.core.exceptions import AlreadyRunningError, UnknownSourceError
from propfeed.core.logging import get_logger, set_correlation_id
from propfeed.schemas.property_schema import Property
from propfeed.schemas.scraper_schema import (
    ScrapedProperty,
    ScrapingResult,
    ScrapingStats,
    Source,
    utcnow,
)
from propfeed.services.fallback_service import FallbackGenerator, FallbackStrategy
from propfeed.services.mapper_service import process_properties

logger = get_logger(__name__)

ERROR_LOG_SIZE = 50


class RunGuard:
    """Fleet-in-progress flag plus per-source running map."""

    def __init__(self) -> None:
        self.is_scraping_all = False
        self.current_sources: Dict[str, bool] = {}

    @property
    def busy(self) -> bool:
        return self.is_scraping_all or any(self.current_sources.values())

    @contextmanager
    def fleet(self) -> Iterator[None]:
        if self.busy:
            raise AlreadyRunningError("Scraping is already in progress")
        self.is_scraping_all = True
        try:
            yield
        finally:
            self.is_scraping_all = False

    @contextmanager
    def source(self, source: Source, exclusive: bool = True) -> Iterator[None]:
        """Mark ``source`` as running. Exclusive runs are refused while anything else runs."""
        if exclusive and self.busy:
            raise AlreadyRunningError(
                "Scraping is already in progress", detail={"source": source.value}
            )
        self.current_sources[source.value] = True
        try:
            yield
        finally:
            self.current_sources[source.value] = False

    def snapshot(self) -> Dict[str, Any]:
        return {"is_running": self.busy, "is_scraping_all": self.is_scraping_all, "current_sources": dict(self.current_sources)}


class ScrapingManager:
    def __init__(
        self,
        adapters: Mapping[Source, PropertyAdapter],
        fallback: Optional[FallbackStrategy] = None,
        stagger_delay: float = 30.0,
    ):
        self.adapters: Dict[Source, PropertyAdapter] = dict(adapters)
        self.fallback = fallback or FallbackGenerator()
        self.stagger_delay = stagger_delay
        self.guard = RunGuard()
        self._properties: List[ScrapedProperty] = []
        self._last_stats: Optional[ScrapingStats] = None
        self._last_duration: Optional[float] = None
        self._errors: Deque[str] = deque(maxlen=ERROR_LOG_SIZE)

    async def scrape_all_sources(self) -> ScrapingStats:
        """Run every adapter concurrently; sources that fail are filled with fallback data."""
        with self.guard.fleet():
            run_id = set_correlation_id()
            started = time.monotonic()
            logger.info("Starting fleet run over %d sources", len(self.adapters), extra={"run_id": run_id})

            self._properties = []
            stats = ScrapingStats()
            batches = await asyncio.gather(
                *(
                    self._run_fleet_task(index, source, adapter, stats)
                    for index, (source, adapter) in enumerate(self.adapters.items())
                )
            )
            self._properties = [item for batch in batches for item in batch]

            canonical = process_properties(self._properties)
            stats.total_properties = len(canonical)
            stats.new_properties = len(canonical)
            stats.last_run = utcnow()
            self._last_stats = stats
            self._last_duration = time.monotonic() - started

            logger.info(
                "Fleet run completed: %d properties, %d errors",
                stats.total_properties, stats.errors,
                extra={"run_id": run_id, "duration": round(self._last_duration, 2)},
            )
            return stats

    async def _run_fleet_task(
        self,
        index: int,
        source: Source,
        adapter: PropertyAdapter,
        stats: ScrapingStats,
    ) -> List[ScrapedProperty]:
        delay = index * self.stagger_delay
        if delay > 0:
            logger.info("Waiting %.0fs before starting %s", delay, source.value, extra={"source": source.value})
            await asyncio.sleep(delay)

        with self.guard.source(source, exclusive=False):
            try:
                result = await adapter.scrape_properties()
            except Exception as e:
                logger.error("Adapter %s failed: %s", source.value, str(e), exc_info=True, extra={"source": source.value})
                self._record_error(source, str(e))
                stats.errors += 1
                return self._fallback_into(stats, source)

            if not result.properties:
                stats.errors += max(1, len(result.errors))
                for message in result.errors:
                    self._record_error(source, message)
                logger.warning("%s returned no properties, using fallback data", source.value, extra={"source": source.value})
                return self._fallback_into(stats, source)

            stats.sources[source.value] = len(result.properties)
            logger.info("%s: scraped %d properties", source.value, len(result.properties), extra={"source": source.value})
            return list(result.properties)

    def _fallback_into(self, stats: ScrapingStats, source: Source) -> List[ScrapedProperty]:
        properties = self.fallback.generate(source)
        stats.sources[source.value] = len(properties)
        return properties

    async def scrape_specific_source(self, source: Source) -> ScrapingResult:
        """Run one adapter and replace that source's slice of the accumulated listings."""
        adapter = self.adapters.get(source)
        if adapter is None:
            raise UnknownSourceError(f"Unknown source: {source.value}", detail={"source": source.value})

        with self.guard.source(source):
            run_id = set_correlation_id()
            logger.info("Starting %s run", source.value, extra={"run_id": run_id, "source": source.value})
            try:
                result = await adapter.scrape_properties()
            except Exception as e:
                logger.error("Adapter %s failed: %s", source.value, str(e), exc_info=True, extra={"source": source.value})
                self._record_error(source, str(e))
                return self._fallback_result(source, [str(e)])

            if not result.properties:
                for message in result.errors:
                    self._record_error(source, message)
                return self._fallback_result(source, result.errors or ["No properties found"])

            self._replace_slice(source, result.properties)
            return result

    def _fallback_result(self, source: Source, errors: List[str]) -> ScrapingResult:
        properties = self.fallback.generate(source)
        self._replace_slice(source, properties)
        return ScrapingResult(
            success=True,
            properties=properties,
            errors=errors,
            source=source,
            total_found=len(properties),
            note=f"Using fallback data: {'; '.join(errors)}",
        )

    def _replace_slice(self, source: Source, properties: Iterable[ScrapedProperty]) -> None:
        kept = [item for item in self._properties if item.source != source]
        self._properties = kept + list(properties)

    def _record_error(self, source: Source, message: str) -> None:
        self._errors.append(f"[{utcnow().isoformat()}] {source.value}: {message}")

    def get_scraped_properties(self) -> List[Property]:
        return process_properties(self._properties)

    def get_raw_properties(self) -> List[ScrapedProperty]:
        return list(self._properties)

    def replace_properties(self, properties: Iterable[ScrapedProperty]) -> None:
        self._properties = list(properties)

    def add_properties(self, properties: Iterable[ScrapedProperty]) -> None:
        self._properties = self._properties + list(properties)

    def clear_cache(self) -> None:
        self._properties = []
        logger.info("Property cache cleared")

    @property
    def last_stats(self) -> Optional[ScrapingStats]:
        return self._last_stats

    def status(self) -> Dict[str, Any]:
        return self.guard.snapshot()

    def error_log(self) -> List[str]:
        return list(self._errors)

    def performance_stats(self) -> Dict[str, Any]:
        last_scraped: Optional[datetime] = max((p.scraped_at for p in self._properties), default=None)
        return {
            "total_properties_scraped": len(self._properties),
            "last_scraping_time": last_scraped,
            "sources_active": len(self.adapters),
            "last_run_duration": self._last_duration,
        }

    async def close(self) -> None:
        for source, adapter in self.adapters.items():
            try:
                await adapter.close()
            except Exception as e:
                logger.warning("Error closing %s adapter: %s", source.value, str(e))
