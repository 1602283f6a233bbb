"""In-memory stand-ins for the browser, adapters and cron backend."""
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

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


def make_raw(url: str, source: Source = Source.BAYUT, **overrides) -> ScrapedProperty:
    """A valid raw listing; ``url`` is its identity."""
    values = {
        "title": "Modern Apartment in Al Olaya",
        "location": Location(city="Riyadh", district="Al Olaya", region="Riyadh Region"),
        "price": Price(amount=850_000, period="sale"),
        "property_type": "apartment",
        "size": Size(area=140),
        "rooms": Rooms(bedrooms=3, bathrooms=2),
        "description": "Bright apartment close to the metro.",
        "images": ["https://cdn.example.com/1.jpg"],
        "contact": Contact(agent="Sara", phone="+966 512345678"),
        "listing_url": url,
        "source": source,
        "features": ["Parking", "Elevator"],
    }
    values.update(overrides)
    return ScrapedProperty(**values)


# ── browser ──


class FakeResponse:
    def __init__(self, status: int):
        self.status = status


class FakeElement:
    def __init__(self, attrs: Optional[Dict[str, str]] = None):
        self.attrs = attrs or {}

    async def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)


class FakeContext:
    def __init__(self, cookies: Optional[List[dict]] = None):
        self._cookies = cookies or []
        self.closed = False

    async def cookies(self) -> List[dict]:
        return list(self._cookies)

    async def close(self) -> None:
        self.closed = True


class FakePage:
    """Playwright-page stand-in. ``statuses`` are returned by successive ``goto`` calls."""

    def __init__(
        self,
        statuses: Iterable = (200,),
        cookies: Optional[List[dict]] = None,
        markers: Optional[Dict[str, FakeElement]] = None,
    ):
        self._statuses = list(statuses)
        self.context = FakeContext(cookies)
        self.markers = markers or {}
        self.visits: List[str] = []
        self.evaluated: List[tuple] = []

    async def goto(self, url: str, wait_until: str = "load", timeout: Optional[int] = None):
        self.visits.append(url)
        status = self._statuses.pop(0) if self._statuses else 200
        if isinstance(status, Exception):
            raise status
        return FakeResponse(status)

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        return self.markers.get(selector)

    async def evaluate(self, script: str, arg=None):
        self.evaluated.append((script, arg))


class FakeSolver:
    def __init__(self, result: bool = True):
        self.result = result
        self.calls: List[tuple] = []

    async def solve(self, page, sitekey, url) -> bool:
        self.calls.append((sitekey, url))
        return self.result


class FakeSession:
    """Browser-session stand-in serving canned HTML per URL.

    URLs missing from ``pages`` fail navigation; URLs in ``raising`` raise.
    ``close_error`` is raised by ``close()`` after marking the session closed.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        raising: Iterable[str] = (),
        close_error: Optional[Exception] = None,
    ):
        self.pages = pages or {}
        self.raising = set(raising)
        self.close_error = close_error
        self.navigated: List[str] = []
        self.pauses = 0
        self.pause_ranges: List[tuple] = []
        self.closed_pages = 0
        self.closed = False

    async def new_page(self):
        return {"url": None}

    async def navigate(self, page, url: str) -> bool:
        self.navigated.append(url)
        if url in self.raising:
            raise RuntimeError(f"browser crashed on {url}")
        if url not in self.pages:
            return False
        page["url"] = url
        return True

    async def pause(self, min_ms: float, max_ms: float) -> None:
        self.pauses += 1
        self.pause_ranges.append((min_ms, max_ms))

    async def page_content(self, page) -> str:
        return self.pages[page["url"]]

    async def close_page(self, page) -> None:
        self.closed_pages += 1

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


# ── playwright driver ──


class FakeRequest:
    def __init__(self, resource_type: str):
        self.resource_type = resource_type


class FakeRoute:
    def __init__(self, resource_type: str):
        self.request = FakeRequest(resource_type)
        self.outcome: Optional[str] = None

    async def abort(self) -> None:
        self.outcome = "aborted"

    async def continue_(self) -> None:
        self.outcome = "continued"


class FakeBrowserPage:
    def __init__(self, context: "FakeBrowserContext"):
        self.context = context
        self.default_timeout: Optional[int] = None
        self.routes: List[tuple] = []
        self.stealthed = False

    def set_default_timeout(self, timeout: int) -> None:
        self.default_timeout = timeout

    async def route(self, pattern: str, handler) -> None:
        self.routes.append((pattern, handler))


class FakeBrowserContext:
    def __init__(self, options: dict):
        self.options = options
        self.added_cookies: List[dict] = []

    async def add_cookies(self, cookies: List[dict]) -> None:
        self.added_cookies.extend(cookies)

    async def new_page(self) -> FakeBrowserPage:
        return FakeBrowserPage(self)


class FakeBrowser:
    def __init__(self, close_error: Optional[Exception] = None):
        self.close_error = close_error
        self.contexts: List[FakeBrowserContext] = []
        self.closed = False

    async def new_context(self, **options) -> FakeBrowserContext:
        context = FakeBrowserContext(options)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeDriver:
    """Started Playwright driver; ``chromium.launch`` returns ``browser`` or raises ``launch_error``."""

    def __init__(self, browser: Optional[FakeBrowser] = None, launch_error: Optional[Exception] = None):
        self.browser = browser or FakeBrowser()
        self.launch_error = launch_error
        self.launches: List[list] = []
        self.stops = 0
        self.chromium = self

    async def launch(self, headless: bool = True, args: Optional[list] = None) -> FakeBrowser:
        self.launches.append(list(args or []))
        if self.launch_error is not None:
            raise self.launch_error
        return self.browser

    async def stop(self) -> None:
        self.stops += 1


class FakePlaywright:
    """Stands in for ``async_playwright``; counts started drivers."""

    def __init__(self, driver: FakeDriver):
        self.driver = driver
        self.started = 0

    def __call__(self) -> "FakePlaywright":
        return self

    async def start(self) -> FakeDriver:
        self.started += 1
        return self.driver


class FakeStealth:
    async def apply_stealth_async(self, page: FakeBrowserPage) -> None:
        page.stealthed = True


# ── adapters ──


class FakeAdapter:
    """Adapter returning fixed properties, or raising ``error`` when set."""

    def __init__(
        self,
        source: Source,
        properties: Optional[List[ScrapedProperty]] = None,
        error: Optional[Exception] = None,
        errors: Optional[List[str]] = None,
        before: Optional[Callable] = None,
    ):
        self.source = source
        self.properties = properties or []
        self.error = error
        self.errors = errors or []
        self.before = before
        self.calls = 0
        self.closed = False

    async def scrape_properties(self) -> ScrapingResult:
        self.calls += 1
        if self.before is not None:
            await self.before()
        if self.error is not None:
            raise self.error
        return ScrapingResult(
            success=bool(self.properties),
            properties=list(self.properties),
            errors=list(self.errors),
            source=self.source,
            total_found=len(self.properties),
        )

    async def scrape_property_details(self, url: str) -> Optional[ScrapedProperty]:
        return None

    async def close(self) -> None:
        self.closed = True


# ── scheduler ──


class FakeBackend:
    def __init__(self, next_runs: Optional[Dict[str, datetime]] = None):
        self.jobs: Dict[str, tuple] = {}
        self.started = False
        self.stopped = False
        self.next_runs = next_runs or {}

    def schedule(self, job_id: str, cron_expr: str, task) -> None:
        self.jobs[job_id] = (cron_expr, task)

    def start(self) -> None:
        self.started = True

    def shutdown(self) -> None:
        self.stopped = True

    def next_run(self, job_id: str) -> Optional[datetime]:
        return self.next_runs.get(job_id)
