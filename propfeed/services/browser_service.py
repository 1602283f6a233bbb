"""Browser session layer: one stealth Chromium per site adapter.

A ``BrowserSession`` owns the Playwright driver, a lazily launched browser,
the cookie jar for its session key and the current proxy assignment. Pages
are created in fresh contexts with a random viewport/user agent and the
playwright-stealth evasions applied. ``navigate`` retries with exponential
backoff and rotates proxies once more than one attempt failed.
"""
import asyncio
import random
from typing import Any, Dict, List, Optional

from playwright.async_api import async_playwright
from playwright_stealth import Stealth
from pydantic import BaseModel

from propfeed.config import Settings
from propfeed.core.logging import get_logger
from propfeed.services.captcha_service import CaptchaSolver, TwoCaptchaSolver

logger = get_logger(__name__)

BACKOFF_CEILING_MS = 30_000

USER_AGENTS: List[str] = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36 Edg/123.0.0.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
]

VIEWPORTS: List[Dict[str, int]] = [
    {"width": 1366, "height": 768},
    {"width": 1920, "height": 1080},
    {"width": 1440, "height": 900},
    {"width": 1536, "height": 864},
    {"width": 1280, "height": 720},
]

EXTRA_HEADERS: Dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9,ar;q=0.8",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}

LAUNCH_ARGS: List[str] = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-infobars",
    "--disable-features=IsolateOrigins,site-per-process",
]

CAPTCHA_MARKERS = (".g-recaptcha", "#recaptcha", "[data-sitekey]", ".captcha", ".hcaptcha")


class Viewport(BaseModel):
    width: int = 1366
    height: int = 768


class BrowserConfig(BaseModel):
    max_pages: int = 10
    retry_attempts: int = 3
    timeout_ms: int = 60_000
    headless: bool = True
    use_proxy: bool = False
    proxy_list: List[str] = []
    rotate_sessions: bool = True
    solve_captcha: bool = True
    viewport: Viewport = Viewport()
    randomize_viewport: bool = True
    block_resources: List[str] = []
    pacing_scale: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "BrowserConfig":
        values: Dict[str, Any] = {
            "retry_attempts": settings.retry_attempts,
            "timeout_ms": settings.navigation_timeout_ms,
            "headless": settings.headless,
            "use_proxy": settings.use_proxy,
            "proxy_list": settings.proxy_list,
            "solve_captcha": settings.solve_captcha,
            "pacing_scale": settings.pacing_scale,
        }
        values.update(overrides)
        return cls(**values)


def compute_backoff(attempt: int, jitter: float) -> float:
    """Backoff in ms after ``attempt`` failures: ``min(1000 * 2^attempt + jitter, 30000)``."""
    return min(1000 * (2 ** attempt) + jitter, BACKOFF_CEILING_MS)


class BrowserSession:
    """Stealth browser session scoped to one site adapter."""

    def __init__(
        self,
        source: str,
        config: Optional[BrowserConfig] = None,
        solver: Optional[CaptchaSolver] = None,
        rng: Optional[random.Random] = None,
    ):
        self.source = source
        self.config = config or BrowserConfig()
        self.solver = solver or TwoCaptchaSolver()
        self._rng = rng or random.Random()
        self._playwright = None
        self._browser = None
        self._cookie_jar: Dict[str, List[Dict[str, Any]]] = {}
        self.current_proxy: Optional[str] = None

    @property
    def session_key(self) -> str:
        return f"{self.source}-{self.current_proxy or 'no-proxy'}"

    def random_user_agent(self) -> str:
        return self._rng.choice(USER_AGENTS)

    def cookies_for(self, key: Optional[str] = None) -> List[Dict[str, Any]]:
        return list(self._cookie_jar.get(key or self.session_key, []))

    async def init_session(self) -> None:
        """Launch the browser once; later calls reuse it."""
        if self._browser is not None:
            return

        args = [*LAUNCH_ARGS, f"--user-agent={self.random_user_agent()}"]
        if self.config.use_proxy and self.config.proxy_list:
            if self.current_proxy is None:
                self.current_proxy = self._rng.choice(self.config.proxy_list)
            args.append(f"--proxy-server={self.current_proxy}")

        if self._playwright is None:
            self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.config.headless, args=args)
        logger.info(
            "Browser launched for %s", self.source,
            extra={"source": self.source, "proxy": self.current_proxy},
        )

    async def new_page(self) -> Any:
        await self.init_session()

        if self.config.randomize_viewport:
            viewport = self._rng.choice(VIEWPORTS)
        else:
            viewport = self.config.viewport.model_dump()

        context = await self._browser.new_context(
            viewport=viewport,
            user_agent=self.random_user_agent(),
            extra_http_headers=EXTRA_HEADERS,
            locale="en-US",
        )
        cookies = self.cookies_for()
        if cookies:
            await context.add_cookies(cookies)

        page = await context.new_page()
        page.set_default_timeout(self.config.timeout_ms)
        await Stealth().apply_stealth_async(page)

        if self.config.block_resources:
            await page.route("**/*", self._route_handler)
        return page

    async def _route_handler(self, route: Any) -> None:
        if route.request.resource_type in self.config.block_resources:
            await route.abort()
        else:
            await route.continue_()

    async def navigate(self, page: Any, url: str) -> bool:
        """Load ``url`` in ``page``. Returns False once all attempts failed."""
        failures = 0
        for attempt in range(1, self.config.retry_attempts + 1):
            await self.pause(1000, 3000)
            try:
                response = await page.goto(url, wait_until="domcontentloaded", timeout=self.config.timeout_ms)
                status = response.status if response is not None else None
                if status == 200:
                    self._cookie_jar[self.session_key] = await page.context.cookies()
                    if self.config.solve_captcha:
                        await self.handle_captcha(page, url)
                    return True
                logger.warning(
                    "Navigation returned HTTP %s", status,
                    extra={"source": self.source, "url": url, "attempt": attempt, "status": status},
                )
            except Exception as e:
                logger.warning(
                    "Navigation error: %s", str(e),
                    extra={"source": self.source, "url": url, "attempt": attempt},
                )

            failures += 1
            if failures > 1 and self.config.use_proxy:
                self.rotate_proxy()
            if attempt < self.config.retry_attempts:
                await self._sleep_ms(compute_backoff(failures, self._rng.uniform(0, 1000)))

        logger.error(
            "Navigation failed after %d attempts", self.config.retry_attempts,
            extra={"source": self.source, "url": url},
        )
        return False

    async def handle_captcha(self, page: Any, url: str) -> bool:
        """Look for CAPTCHA markers and hand them to the solver. Returns True if one was found."""
        marker = None
        for selector in CAPTCHA_MARKERS:
            marker = await page.query_selector(selector)
            if marker is not None:
                break
        if marker is None:
            return False

        logger.warning("CAPTCHA detected", extra={"source": self.source, "url": url})
        sitekey = await marker.get_attribute("data-sitekey")
        if not sitekey:
            keyed = await page.query_selector("[data-sitekey]")
            if keyed is not None:
                sitekey = await keyed.get_attribute("data-sitekey")
        try:
            await self.solver.solve(page, sitekey, url)
        except Exception as e:
            logger.error("CAPTCHA solver raised: %s", str(e), extra={"source": self.source, "url": url})
        return True

    def rotate_proxy(self) -> Optional[str]:
        """Pick a different proxy from the pool; takes effect on the next browser launch."""
        pool = [p for p in self.config.proxy_list if p != self.current_proxy]
        if not pool:
            return self.current_proxy
        self.current_proxy = self._rng.choice(pool)
        logger.info("Rotated proxy", extra={"source": self.source, "proxy": self.current_proxy})
        return self.current_proxy

    async def pause(self, min_ms: float, max_ms: float) -> None:
        """Randomized human-pacing delay."""
        await self._sleep_ms(self._rng.uniform(min_ms, max_ms))

    async def _sleep_ms(self, ms: float) -> None:
        delay = ms * self.config.pacing_scale / 1000
        if delay > 0:
            await asyncio.sleep(delay)

    async def page_content(self, page: Any) -> str:
        return await page.content()

    async def close_page(self, page: Any) -> None:
        try:
            await page.context.close()
        except Exception as e:
            logger.debug("Error closing page: %s", str(e))

    async def close(self) -> None:
        """Release the browser and driver and clear session state."""
        browser, driver = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        self._cookie_jar.clear()
        self.current_proxy = None

        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning("Error closing browser: %s", str(e), extra={"source": self.source})
        if driver is not None:
            try:
                await driver.stop()
            except Exception as e:
                logger.warning("Error stopping Playwright driver: %s", str(e), extra={"source": self.source})
