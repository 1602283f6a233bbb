"""Tests for feed service — the procedures behind the scraping API."""
import json

import pytest

from propfeed.core.exceptions import AlreadyRunningError, UnknownSourceError
from propfeed.schemas.feed_schema import (
    ClearCacheRequest,
    HistoryQuery,
    ImportRequest,
    PropertiesQuery,
    ScheduleRequest,
    StartRequest,
)
from propfeed.schemas.property_schema import PropertyType
from propfeed.schemas.scraper_schema import Source
from propfeed.services.fallback_service import FallbackGenerator
from propfeed.services.feed_service import FeedService
from tests.fakes import FakeAdapter


class TestStart:
    @pytest.mark.asyncio
    async def test_fleet_run_records_history(self, feed: FeedService):
        response = await feed.start(StartRequest())

        assert response.success is True
        assert response.stats.total_properties == 7
        assert response.stats.errors == 1
        assert response.history_entry.sources == [Source.BAYUT, Source.AQAR, Source.WASALT, Source.SREM]
        assert feed.history == [response.history_entry]

    @pytest.mark.asyncio
    async def test_selected_sources_run_sequentially(self, feed: FeedService):
        response = await feed.start(StartRequest(sources=[Source.BAYUT, Source.AQAR]))

        assert response.message == "Scraping completed for bayut, aqar. Found 4 properties."
        assert [r.source for r in response.results] == [Source.BAYUT, Source.AQAR]
        assert response.stats.sources["bayut"] == 3
        assert response.stats.sources["aqar"] == 1
        assert response.history_entry.results == response.results

    @pytest.mark.asyncio
    async def test_throwing_source_uses_fallback(self, feed: FeedService):
        feed.manager.adapters[Source.BAYUT] = FakeAdapter(Source.BAYUT, error=RuntimeError("every seed failed"))

        response = await feed.start(StartRequest(sources=[Source.BAYUT]))

        assert response.success is True
        assert response.stats.sources["bayut"] == FallbackGenerator().size_for(Source.BAYUT)
        assert "Using fallback data" in response.note

    @pytest.mark.asyncio
    async def test_rejected_while_running(self, feed: FeedService):
        with feed.manager.guard.fleet():
            with pytest.raises(AlreadyRunningError):
                await feed.start(StartRequest())
            with pytest.raises(AlreadyRunningError):
                await feed.start(StartRequest(sources=[Source.SREM]))
        assert feed.history == []

    @pytest.mark.asyncio
    async def test_unknown_source(self, feed: FeedService):
        with pytest.raises(UnknownSourceError):
            await feed.start(StartRequest(sources=[Source.IMPORTED]))

    @pytest.mark.asyncio
    async def test_history_bounded(self, feed: FeedService):
        for _ in range(feed.history_limit + 3):
            await feed.start(StartRequest(sources=[Source.SREM]))
        assert len(feed.history) == feed.history_limit


class TestQueries:
    @pytest.mark.asyncio
    async def test_pagination(self, feed: FeedService):
        await feed.start(StartRequest(sources=[Source.BAYUT]))

        response = feed.get_properties(PropertiesQuery(limit=1, offset=0))
        assert response.count == 1
        assert response.total == 3
        assert response.has_more is True

        last = feed.get_properties(PropertiesQuery(limit=2, offset=2))
        assert last.count == 1
        assert last.has_more is False

    @pytest.mark.asyncio
    async def test_filters(self, feed: FeedService):
        await feed.start(StartRequest())

        jeddah = feed.get_properties(PropertiesQuery(city="jed"))
        assert [p.location.city for p in jeddah.properties] == ["Jeddah"]
        assert jeddah.filters.city == "jed"

        villas = feed.get_properties(PropertiesQuery(source=Source.BAYUT, property_type=PropertyType.VILLA))
        assert villas.total == 1

        priced = feed.get_properties(PropertiesQuery(source=Source.BAYUT, min_price=500_000, max_price=1_000_000))
        assert priced.total == 1

    @pytest.mark.asyncio
    async def test_status(self, feed: FeedService):
        empty = feed.status()
        assert empty.summary.total_properties == 0
        assert empty.current_sources == {"bayut": False, "aqar": False, "wasalt": False, "srem": False}

        await feed.start(StartRequest())
        status = feed.status()
        assert status.is_scraping_all is False
        assert status.summary.total_properties == 7
        assert status.summary.sources["bayut"] == 3
        assert status.summary.last_run == feed.history[-1].end_time
        assert len(status.history) == 1

    @pytest.mark.asyncio
    async def test_history_newest_first_and_filtered(self, feed: FeedService):
        await feed.start(StartRequest(sources=[Source.BAYUT]))
        await feed.start(StartRequest(sources=[Source.SREM]))

        everything = feed.get_history(HistoryQuery())
        assert everything.total_runs == 2
        assert everything.history[0].sources == [Source.SREM]

        only_bayut = feed.get_history(HistoryQuery(source=Source.BAYUT))
        assert only_bayut.filtered is True
        assert only_bayut.total_runs == 1

    @pytest.mark.asyncio
    async def test_data_info(self, feed: FeedService):
        await feed.start(StartRequest(sources=[Source.BAYUT]))
        info = feed.data_info()

        assert info.total_properties == 3
        assert info.source_stats == {"bayut": 3}
        assert info.city_stats == {"Riyadh": 2, "Jeddah": 1}
        assert info.price_ranges == {"Under 500K": 1, "500K - 1M": 1, "1M - 2M": 0, "Over 2M": 1}
        assert info.data_quality.complete == 3

    def test_data_info_empty(self, feed: FeedService):
        info = feed.data_info()
        assert info.total_properties == 0
        assert info.price_ranges["Over 2M"] == 0

    def test_query_failure_returns_default(self, feed: FeedService, monkeypatch):
        def broken():
            raise RuntimeError("cache corrupted")

        monkeypatch.setattr(feed.manager, "get_scraped_properties", broken)
        response = feed.get_properties(PropertiesQuery(city="Riyadh"))
        assert response.success is True
        assert response.properties == []
        assert response.filters.city == "Riyadh"


class TestCache:
    @pytest.mark.asyncio
    async def test_clear_then_status_is_empty(self, feed: FeedService):
        await feed.start(StartRequest())

        response = feed.clear_cache(ClearCacheRequest(clear_history=True, clear_properties=True))
        assert response.message == "Cleared: properties and history"

        status = feed.status()
        assert status.summary.total_properties == 0
        assert status.history == []

    @pytest.mark.asyncio
    async def test_clear_properties_only(self, feed: FeedService):
        await feed.start(StartRequest(sources=[Source.SREM]))
        feed.clear_cache(ClearCacheRequest(clear_history=False))
        assert len(feed.history) == 1
        assert feed.get_properties(PropertiesQuery()).total == 0


class TestImportExport:
    def test_import_valid_and_invalid_records(self, feed: FeedService):
        payload = [
            {
                "title": "Imported villa",
                "location": {"city": "Riyadh", "district": "Hittin"},
                "price": {"amount": 3_000_000},
                "propertyType": "villa",
                "listingUrl": "https://partner.example/1",
            },
            {
                "title": "Tagged source",
                "location": {"city": "Jeddah", "district": "Al Rawdah"},
                "price": {"amount": 600_000},
                "property_type": "apartment",
                "listing_url": "https://www.bayut.sa/property/99",
                "source": "bayut",
            },
            {"title": "No url"},
            "not an object",
        ]
        response = feed.import_json(ImportRequest(json_data=json.dumps(payload)))

        assert response.success is True
        assert response.count == 2
        assert response.message == "Imported 2 properties, skipped 2 invalid records"
        sources = {p.listing_url: p.source for p in feed.get_properties(PropertiesQuery()).properties}
        assert sources == {"https://partner.example/1": Source.IMPORTED, "https://www.bayut.sa/property/99": Source.BAYUT}

    def test_import_uses_requested_source(self, feed: FeedService):
        payload = [{
            "title": "t", "location": {"city": "Riyadh", "district": "d"},
            "price": {"amount": 1}, "propertyType": "land", "listingUrl": "https://x.sa/1",
        }]
        feed.import_json(ImportRequest(json_data=json.dumps(payload), source=Source.SAMPLE))
        assert feed.get_properties(PropertiesQuery()).properties[0].source == Source.SAMPLE

    def test_import_invalid_json(self, feed: FeedService):
        response = feed.import_json(ImportRequest(json_data="{not json"))
        assert response.success is False
        assert response.count == 0
        assert response.error.startswith("Invalid JSON")

    def test_import_non_array(self, feed: FeedService):
        response = feed.import_json(ImportRequest(json_data='{"title": "x"}'))
        assert response.success is False
        assert response.error == "Expected a JSON array of properties"

    @pytest.mark.asyncio
    async def test_export_then_import(self, feed: FeedService):
        await feed.start(StartRequest(sources=[Source.BAYUT, Source.AQAR]))

        exported = feed.export_json(Source.BAYUT)
        assert exported.success is True
        assert exported.count == 3
        records = json.loads(exported.data)
        assert {r["source"] for r in records} == {"bayut"}
        assert "listingUrl" in records[0]

        feed.clear_cache(ClearCacheRequest())
        imported = feed.import_json(ImportRequest(json_data=exported.data))
        assert imported.count == 3
        assert feed.get_properties(PropertiesQuery(source=Source.BAYUT)).total == 3


class TestSchedule:
    def test_enable_and_disable(self, feed: FeedService, backend):
        enabled = feed.set_schedule(ScheduleRequest(enabled=True))
        assert enabled.success is True
        assert enabled.schedule.enabled is True
        assert set(enabled.schedule.jobs) == {"bayut", "aqar", "full"}
        assert backend.started is True

        disabled = feed.set_schedule(ScheduleRequest(enabled=False))
        assert disabled.schedule.enabled is False
        assert backend.stopped is True

    def test_without_scheduler(self, manager):
        response = FeedService(manager).set_schedule(ScheduleRequest(enabled=True))
        assert response.success is False
