"""Site adapters and the registry that builds the scraping fleet."""
from typing import Dict, Optional

from propfeed.adapters import aqar, bayut, srem, wasalt
from propfeed.adapters.base import ListingPageAdapter, PropertyAdapter, SiteProfile
from propfeed.adapters.srem import SremAdapter
from propfeed.config import Settings
from propfeed.schemas.scraper_schema import Source
from propfeed.services.browser_service import BrowserConfig
from propfeed.services.captcha_service import CaptchaSolver, TwoCaptchaSolver


def build_adapters(settings: Settings, solver: Optional[CaptchaSolver] = None) -> Dict[Source, PropertyAdapter]:
    """One adapter per fleet source, in launch order."""
    config = BrowserConfig.from_settings(settings)
    solver = solver or TwoCaptchaSolver(api_key=settings.captcha_api_key)
    return {
        Source.BAYUT: bayut.create_adapter(config, solver=solver),
        Source.AQAR: aqar.create_adapter(config, solver=solver),
        Source.WASALT: wasalt.create_adapter(config, solver=solver),
        Source.SREM: srem.create_adapter(),
    }


__all__ = [
    "ListingPageAdapter",
    "PropertyAdapter",
    "SiteProfile",
    "SremAdapter",
    "build_adapters",
]
