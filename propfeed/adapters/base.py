"""Extraction contract and the generic listing-page adapter.

Every site adapter exposes ``source``, ``scrape_properties()``,
``scrape_property_details(url)`` and ``close()``. Most portals share the
same shape (seed search pages → listing cards → optional pagination), so
``ListingPageAdapter`` implements the flow once and each site contributes a
``SiteProfile`` (selectors, caps, delays) plus a few hook functions.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol, Tuple

from bs4 import Tag

from propfeed.core.logging import get_logger
from propfeed.schemas.scraper_schema import (
    Contact,
    Location,
    ScrapedProperty,
    ScrapingResult,
    Source,
)
from propfeed.services.browser_service import BrowserConfig, BrowserSession
from propfeed.services.captcha_service import CaptchaSolver
from propfeed.services.parser_service import (
    absolute_url,
    card_link,
    clean_text,
    collect_images,
    extract_area,
    extract_price,
    extract_rooms,
    find_listing_cards,
    first_text,
    parse_html,
    parse_next_page,
    safe_select,
)

logger = get_logger(__name__)

DelayRange = Tuple[int, int]

ClassifyHook = Callable[[str, str], str]
FeaturesHook = Callable[[str], List[str]]
LocationHook = Callable[[str, str], Location]
ContactHook = Callable[[str], Optional[Contact]]


class PropertyAdapter(Protocol):
    source: Source

    async def scrape_properties(self) -> ScrapingResult:
        ...

    async def scrape_property_details(self, url: str) -> Optional[ScrapedProperty]:
        ...

    async def close(self) -> None:
        ...


class SessionLike(Protocol):
    """The browser-session surface adapters depend on."""

    async def new_page(self) -> Any:
        ...

    async def navigate(self, page: Any, url: str) -> bool:
        ...

    async def pause(self, min_ms: float, max_ms: float) -> None:
        ...

    async def page_content(self, page: Any) -> str:
        ...

    async def close_page(self, page: Any) -> None:
        ...

    async def close(self) -> None:
        ...


@dataclass(frozen=True)
class SiteProfile:
    source: Source
    base_url: str
    seed_urls: Tuple[str, ...]
    card_selectors: Tuple[str, ...]
    fallback_link_selector: str
    title_selectors: Tuple[str, ...] = ("h2", "h3", ".title", '[class*="title"]')
    price_selectors: Tuple[str, ...] = (".price", '[class*="price"]')
    location_selectors: Tuple[str, ...] = (".location", '[class*="location"]')
    area_selectors: Tuple[str, ...] = (".area", '[class*="area"]', '[class*="size"]')
    description_selectors: Tuple[str, ...] = ()
    excluded_image_tokens: Tuple[str, ...] = ("placeholder", "logo")
    item_cap: int = 50
    max_pages: int = 10
    item_delay_ms: DelayRange = (500, 1000)
    seed_delay_ms: DelayRange = (5000, 8000)
    load_delay_ms: DelayRange = (3000, 5000)
    detail_delay_ms: DelayRange = (2000, 4000)
    next_page_selectors: Tuple[str, ...] = (
        '[data-testid="pagination-next"]',
        ".pagination-next",
        'a[aria-label="Next"]',
        "a.next-page",
        'a[rel="next"]',
    )
    block_resources: Tuple[str, ...] = ()
    detail_title_selectors: Tuple[str, ...] = ("h1", '[data-testid*="title"]', ".title")
    detail_price_selectors: Tuple[str, ...] = ('[data-testid*="price"]', ".price", '[class*="price"]')
    detail_location_selectors: Tuple[str, ...] = ('[data-testid*="location"]', ".location", '[class*="location"]')
    detail_area_selectors: Tuple[str, ...] = ('[data-testid*="area"]', ".area", '[class*="size"]')
    detail_description_selectors: Tuple[str, ...] = (".description", ".property-description")
    detail_feature_selector: str = ".feature, .amenity"
    detail_agent_selectors: Tuple[str, ...] = (".agent-name",)
    detail_phone_selectors: Tuple[str, ...] = (".agent-phone",)
    detail_email_selectors: Tuple[str, ...] = (".agent-email",)
    detail_gallery_selector: str = ".gallery img, .property-images img"


@dataclass
class CardFields:
    """Raw text pulled out of one listing card before interpretation."""
    title: str
    price_text: str = ""
    location_text: str = ""
    area_text: str = ""
    description: str = ""
    url: str = ""
    images: List[str] = field(default_factory=list)
    full_text: str = ""


class ListingPageAdapter:
    """Generic seed-page → cards → pagination adapter driven by a ``SiteProfile``."""

    def __init__(
        self,
        profile: SiteProfile,
        session: SessionLike,
        classify: ClassifyHook,
        features: FeaturesHook,
        location: LocationHook,
        contact: Optional[ContactHook] = None,
    ):
        self.profile = profile
        self.session = session
        self._classify = classify
        self._features = features
        self._location = location
        self._contact = contact

    @property
    def source(self) -> Source:
        return self.profile.source

    async def scrape_properties(self) -> ScrapingResult:
        result = ScrapingResult(source=self.source)
        seen_urls: set[str] = set()
        logger.info("Starting %s scrape", self.source.value, extra={"source": self.source.value})

        last_seed = len(self.profile.seed_urls) - 1
        try:
            for index, seed_url in enumerate(self.profile.seed_urls):
                try:
                    await self._scrape_seed(seed_url, result, seen_urls)
                except Exception as e:
                    logger.error("Seed scrape failed: %s", str(e), extra={"source": self.source.value, "url": seed_url})
                    result.errors.append(f"URL scraping failed: {seed_url} - {e}")
                if index < last_seed:
                    await self.session.pause(*self.profile.seed_delay_ms)
        finally:
            await self._close_session()

        result.success = len(result.properties) > 0
        result.total_found = len(result.properties)
        logger.info(
            "%s scrape completed: %d properties, %d errors",
            self.source.value, result.total_found, len(result.errors),
            extra={"source": self.source.value},
        )
        return result

    async def _scrape_seed(self, seed_url: str, result: ScrapingResult, seen_urls: set[str]) -> None:
        page = await self.session.new_page()
        try:
            url: Optional[str] = seed_url
            visited: set[str] = set()
            pages = 0
            while url and url not in visited and pages < self.profile.max_pages:
                visited.add(url)
                if not await self.session.navigate(page, url):
                    result.errors.append(f"Failed to navigate to: {url}")
                    return
                pages += 1
                await self.session.pause(*self.profile.load_delay_ms)

                soup = parse_html(await self.session.page_content(page))
                await self._extract_cards(soup, seed_url, result, seen_urls)
                url = self._next_page_url(soup, url)
        finally:
            await self.session.close_page(page)

    async def _extract_cards(self, soup: Tag, seed_url: str, result: ScrapingResult, seen_urls: set[str]) -> None:
        cards = find_listing_cards(soup, self.profile.card_selectors, self.profile.fallback_link_selector)
        logger.debug("Found %d cards on %s", len(cards), seed_url, extra={"source": self.source.value})

        for index, card in enumerate(cards[: self.profile.item_cap]):
            try:
                item = self.extract_card(card, seed_url)
                if item is not None and item.listing_url not in seen_urls:
                    seen_urls.add(item.listing_url)
                    result.properties.append(item)
            except Exception as e:
                logger.warning("Card %d extraction failed: %s", index, str(e), extra={"source": self.source.value})
                result.errors.append(f"Property extraction error: {e}")
            await self.session.pause(*self.profile.item_delay_ms)

    def _next_page_url(self, soup: Tag, current_url: str) -> Optional[str]:
        return parse_next_page(soup, current_url, self.profile.next_page_selectors)

    def read_card(self, card: Tag) -> CardFields:
        profile = self.profile
        return CardFields(
            title=first_text(card, profile.title_selectors),
            price_text=first_text(card, profile.price_selectors),
            location_text=first_text(card, profile.location_selectors),
            area_text=first_text(card, profile.area_selectors),
            description=first_text(card, profile.description_selectors),
            url=card_link(card, profile.base_url, profile.fallback_link_selector),
            images=collect_images(card, profile.base_url, profile.excluded_image_tokens),
            full_text=clean_text(card.get_text(" ")),
        )

    def extract_card(self, card: Tag, seed_url: str) -> Optional[ScrapedProperty]:
        """Build a raw record from one card; None when it has no title or link."""
        fields = self.read_card(card)
        if not fields.title or not fields.url:
            return None

        text = f"{fields.title} {fields.full_text}"
        return ScrapedProperty(
            title=clean_text(fields.title),
            location=self._location(fields.location_text, seed_url),
            price=extract_price(fields.price_text),
            property_type=self._classify(text, seed_url),
            size=extract_area(fields.area_text) if fields.area_text else None,
            rooms=extract_rooms(fields.full_text),
            description=clean_text(fields.description or fields.title),
            images=fields.images,
            contact=self._contact(fields.full_text) if self._contact else None,
            listing_url=fields.url,
            source=self.source,
            features=self._features(fields.full_text),
        )

    async def scrape_property_details(self, url: str) -> Optional[ScrapedProperty]:
        page = await self.session.new_page()
        try:
            if not await self.session.navigate(page, url):
                return None
            await self.session.pause(*self.profile.detail_delay_ms)
            soup = parse_html(await self.session.page_content(page))
            return self.extract_detail(soup, url)
        except Exception as e:
            logger.error("Detail scrape failed: %s", str(e), extra={"source": self.source.value, "url": url})
            return None
        finally:
            await self.session.close_page(page)

    def extract_detail(self, soup: Tag, url: str) -> Optional[ScrapedProperty]:
        profile = self.profile
        title = first_text(soup, profile.detail_title_selectors)
        if not title:
            return None

        full_text = clean_text(soup.get_text(" "))
        listed = [clean_text(el.get_text(" ")) for el in safe_select(soup, profile.detail_feature_selector)]
        features = [f for f in listed if f]
        for tag in self._features(full_text):
            if tag not in features:
                features.append(tag)

        area_text = first_text(soup, profile.detail_area_selectors)
        images: List[str] = []
        for img in safe_select(soup, profile.detail_gallery_selector):
            src = img.get("src") or img.get("data-src")
            if src:
                images.append(absolute_url(profile.base_url, src))

        return ScrapedProperty(
            title=title,
            location=self._location(first_text(soup, profile.detail_location_selectors), url),
            price=extract_price(first_text(soup, profile.detail_price_selectors)),
            property_type=self._classify(f"{title} {full_text}", url),
            size=extract_area(area_text) if area_text else None,
            rooms=extract_rooms(full_text),
            description=first_text(soup, profile.detail_description_selectors) or title,
            images=images,
            contact=self._detail_contact(soup, full_text),
            listing_url=url,
            source=self.source,
            features=features,
        )

    def _detail_contact(self, soup: Tag, full_text: str) -> Optional[Contact]:
        agent = first_text(soup, self.profile.detail_agent_selectors)
        phone = first_text(soup, self.profile.detail_phone_selectors)
        email = first_text(soup, self.profile.detail_email_selectors)
        if agent or phone or email:
            return Contact(agent=agent or None, phone=phone or None, email=email or None)
        if self._contact:
            return self._contact(full_text)
        return None

    async def _close_session(self) -> None:
        try:
            await self.session.close()
        except Exception as e:
            logger.warning("Error closing browser session: %s", str(e), extra={"source": self.source.value})

    async def close(self) -> None:
        await self.session.close()


def session_for(
    profile: SiteProfile,
    config: Optional[BrowserConfig] = None,
    solver: Optional[CaptchaSolver] = None,
) -> BrowserSession:
    """Browser session for ``profile``, with its page limit and blocked resource types."""
    config = (config or BrowserConfig()).model_copy(
        update={"max_pages": profile.max_pages, "block_resources": list(profile.block_resources)}
    )
    return BrowserSession(profile.source.value, config, solver=solver)
