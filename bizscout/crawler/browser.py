# bizscout/crawler/browser.py
"""
Headless Chromium fetch for JavaScript-driven pages (Playwright async API).
"""
from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from bizscout.config import CrawlerConfig
from bizscout.crawler.models import PageData
from bizscout.errors import RetrievalError

__all__ = ["BrowserFetcher"]

_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)


class BrowserFetcher:
    """Renders one page in a throwaway browser and returns the final DOM."""

    def __init__(self, config: CrawlerConfig) -> None:
        self.config = config
        self.logger = logging.getLogger("BizScout")

    async def fetch(self, url: str) -> PageData:
        timeout_ms = int(self.config.browser_timeout * 1000)
        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=True, args=list(_LAUNCH_ARGS))
                try:
                    context = await browser.new_context(
                        user_agent=self.config.user_agent,
                        viewport={"width": 1366, "height": 900},
                    )
                    page = await context.new_page()
                    page.set_default_timeout(timeout_ms)
                    response = await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                    if response is not None and response.status >= 400:
                        raise RetrievalError(f"HTTP {response.status}")
                    try:
                        await page.wait_for_load_state("networkidle", timeout=min(timeout_ms, 5000))
                    except PlaywrightTimeoutError:
                        self.logger.debug("networkidle not reached for %s, using current DOM", url)
                    html = await page.content()
                    final_url = page.url
                finally:
                    await browser.close()
        except PlaywrightTimeoutError as exc:
            raise RetrievalError(f"Render timeout after {self.config.browser_timeout:g}s") from exc
        except PlaywrightError as exc:
            raise RetrievalError(f"Browser error: {exc}") from exc

        self.logger.debug("Rendered %s (%d bytes)", final_url, len(html))
        return PageData(url=final_url or url, html=html)
