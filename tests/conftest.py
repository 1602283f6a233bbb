"""Test fixtures — fake adapter fleet, feed service, async test client."""
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from propfeed.main import create_app
from propfeed.schemas.scraper_schema import Source
from propfeed.services.feed_service import FeedService
from propfeed.services.scheduler_service import ScrapeScheduler
from propfeed.services.scraper_service import ScrapingManager
from tests.fakes import FakeAdapter, FakeBackend, make_raw


def bayut_listings() -> List:
    return [
        make_raw("https://www.bayut.sa/property/1", title="Villa with pool", property_type="villa", price={"amount": 2_400_000}),
        make_raw("https://www.bayut.sa/property/2", location={"city": "Jeddah", "district": "Al Rawdah"}),
        make_raw("https://www.bayut.sa/property/3", price={"amount": 450_000}),
    ]


@pytest.fixture
def adapters():
    return {
        Source.BAYUT: FakeAdapter(Source.BAYUT, bayut_listings()),
        Source.AQAR: FakeAdapter(Source.AQAR, [make_raw("https://sa.aqar.fm/ad/1", source=Source.AQAR)]),
        Source.WASALT: FakeAdapter(Source.WASALT, error=RuntimeError("blocked")),
        Source.SREM: FakeAdapter(Source.SREM, [make_raw("https://srem.moj.gov.sa/property/1", source=Source.SREM)]),
    }


@pytest.fixture
def manager(adapters) -> ScrapingManager:
    return ScrapingManager(adapters, stagger_delay=0)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def feed(manager, backend) -> FeedService:
    scheduler = ScrapeScheduler(
        manager,
        {"bayut": "0 2 * * *", "aqar": "0 3 * * *", "full": "0 1 * * *"},
        backend_factory=lambda: backend,
    )
    return FeedService(manager, scheduler, history_limit=10)


@pytest_asyncio.fixture(scope="function")
async def client(feed: FeedService) -> AsyncGenerator[AsyncClient, None]:
    """Yield an HTTP test client bound to an app using the fake fleet."""
    app = create_app(feed_service=feed)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
