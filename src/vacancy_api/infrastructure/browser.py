from __future__ import annotations

import asyncio
import logging
from typing import Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

logger = logging.getLogger(__name__)

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class BrowserSession:
    """One lazily launched Chromium shared by every rendered fetch.

    Pages opened through ``new_page`` belong to the caller, which must close them.
    """

    def __init__(self, headless: bool = True) -> None:
        self._headless = headless
        self._lock = asyncio.Lock()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            if self._browser is None:
                playwright = await async_playwright().start()
                try:
                    self._browser = await playwright.chromium.launch(
                        headless=self._headless, args=LAUNCH_ARGS
                    )
                except Exception:
                    await playwright.stop()
                    raise
                self._playwright = playwright
                logger.info("Browser launched (headless=%s)", self._headless)
            return self._browser

    async def new_page(self) -> Page:
        browser = await self._ensure_browser()
        return await browser.new_page()

    async def close(self) -> None:
        async with self._lock:
            browser, self._browser = self._browser, None
            playwright, self._playwright = self._playwright, None
        if browser is not None:
            await browser.close()
            logger.info("Browser closed")
        if playwright is not None:
            await playwright.stop()
