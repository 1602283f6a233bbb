"""CAPTCHA solving for browser sessions.

The default solver talks to the 2captcha HTTP API: submit the page sitekey
to ``in.php``, poll ``res.php`` for the token, then inject it into the
``g-recaptcha-response`` field of the page.
"""
import asyncio
from typing import Any, Optional, Protocol

import httpx

from propfeed.core.exceptions import CaptchaError
from propfeed.core.logging import get_logger

logger = get_logger(__name__)

TWOCAPTCHA_BASE_URL = "https://2captcha.com"


class CaptchaSolver(Protocol):
    async def solve(self, page: Any, sitekey: Optional[str], url: str) -> bool:
        ...


class TwoCaptchaSolver:
    """reCAPTCHA solver backed by 2captcha."""

    def __init__(
        self,
        api_key: str = "",
        poll_interval: float = 5.0,
        max_polls: int = 24,
        base_url: str = TWOCAPTCHA_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.base_url = base_url
        self._transport = transport

    async def solve(self, page: Any, sitekey: Optional[str], url: str) -> bool:
        if not self.api_key:
            logger.warning("CAPTCHA detected but no solver API key configured", extra={"url": url})
            return False
        if not sitekey:
            logger.warning("CAPTCHA detected without a sitekey", extra={"url": url})
            return False

        try:
            token = await self._request_token(sitekey, url)
            await page.evaluate(
                "token => { const el = document.getElementById('g-recaptcha-response');"
                " if (el) { el.innerHTML = token; el.value = token; } }",
                token,
            )
        except (CaptchaError, httpx.HTTPError) as e:
            logger.warning("CAPTCHA solving failed: %s", str(e), extra={"url": url})
            return False

        logger.info("CAPTCHA solved", extra={"url": url})
        return True

    async def _request_token(self, sitekey: str, url: str) -> str:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=30, transport=self._transport) as client:
            submit = await client.post(
                "/in.php",
                data={
                    "key": self.api_key,
                    "method": "userrecaptcha",
                    "googlekey": sitekey,
                    "pageurl": url,
                    "json": 1,
                },
            )
            submit.raise_for_status()
            payload = submit.json()
            if payload.get("status") != 1:
                raise CaptchaError("Captcha submission rejected", detail=payload.get("request"))
            captcha_id = payload["request"]

            for _ in range(self.max_polls):
                await asyncio.sleep(self.poll_interval)
                res = await client.get(
                    "/res.php",
                    params={"key": self.api_key, "action": "get", "id": captcha_id, "json": 1},
                )
                res.raise_for_status()
                result = res.json()
                if result.get("status") == 1:
                    return result["request"]
                if result.get("request") != "CAPCHA_NOT_READY":
                    raise CaptchaError("Captcha solving failed", detail=result.get("request"))

        raise CaptchaError("Timed out waiting for captcha token")
