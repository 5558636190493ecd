from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Response
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from vacancy_api.infrastructure.browser import BrowserSession
from vacancy_api.infrastructure.errors import ContentTimeout, TransportError
from vacancy_api.infrastructure.models import RenderedPage

logger = logging.getLogger(__name__)

CONTENT_SELECTOR = "#vacancy-content"
CONTENT_POPULATED_JS = (
    "() => {"
    f" const content = document.querySelector('{CONTENT_SELECTOR}');"
    " return content && content.children.length > 0;"
    " }"
)


def vacancy_page_url(base_url: str, store_code: str) -> str:
    return f"{base_url.rstrip('/')}/shop/detail/vacancy.html?store_code={store_code}"


class VacancyPageClient:
    """Loads a store's vacancy page in the shared browser.

    While the page loads, JSON responses from the structured endpoint are
    captured so the caller can prefer them over the rendered markup.
    """

    def __init__(
        self,
        session: BrowserSession,
        base_url: str,
        api_path_marker: str = "empty_seat",
        navigation_timeout: float = 30.0,
        content_selector_timeout: float = 10.0,
        content_populated_timeout: float = 15.0,
        settle_delay: float = 2.0,
        debug_dump_dir: Optional[Path] = None,
    ) -> None:
        self._session = session
        self._base_url = base_url
        self._api_path_marker = api_path_marker
        self._navigation_timeout_ms = navigation_timeout * 1000
        self._selector_timeout_ms = content_selector_timeout * 1000
        self._populated_timeout_ms = content_populated_timeout * 1000
        self._settle_delay_ms = settle_delay * 1000
        self._debug_dump_dir = debug_dump_dir

    async def fetch(self, store_code: str) -> RenderedPage:
        page = await self._session.new_page()
        pending: list[asyncio.Future] = []

        def on_response(response: Response) -> None:
            if self._api_path_marker in response.url:
                pending.append(asyncio.ensure_future(self._read_json(response)))

        page.on("response", on_response)
        try:
            url = vacancy_page_url(self._base_url, store_code)
            logger.info("Scraping URL: %s", url)
            try:
                await page.goto(url, wait_until="networkidle", timeout=self._navigation_timeout_ms)
            except PlaywrightError as e:
                raise TransportError(f"Navigation to {url} failed: {e}") from e

            try:
                await self._wait_for_content(page)
            except ContentTimeout:
                logger.warning("Timeout waiting for vacancy content of %s, proceeding anyway", store_code)

            await page.wait_for_timeout(self._settle_delay_ms)
            html = await page.content()

            captures = [c for c in await asyncio.gather(*pending) if c is not None]
            if self._debug_dump_dir is not None:
                self._dump(store_code, html, captures)

            if captures:
                captured_url, payload = captures[0]
                logger.info("Using captured API response from %s", captured_url)
                return RenderedPage(html=html, captured=payload, captured_url=captured_url)
            logger.info("API response not captured for %s, falling back to HTML parsing", store_code)
            return RenderedPage(html=html)
        finally:
            for fut in pending:
                fut.cancel()
            await page.close()

    async def _wait_for_content(self, page: Page) -> None:
        try:
            await page.wait_for_selector(CONTENT_SELECTOR, timeout=self._selector_timeout_ms)
            await page.wait_for_function(CONTENT_POPULATED_JS, timeout=self._populated_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ContentTimeout(str(e)) from e

    async def _read_json(self, response: Response) -> Optional[tuple[str, dict[str, Any]]]:
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return None
        try:
            data = await response.json()
        except (PlaywrightError, ValueError):
            logger.debug("Could not decode JSON from %s", response.url)
            return None
        if not isinstance(data, dict):
            return None
        logger.info("API request captured: %s", response.url)
        return response.url, data

    def _dump(self, store_code: str, html: str, captures: list[tuple[str, dict[str, Any]]]) -> None:
        dump_dir = self._debug_dump_dir
        dump_dir.mkdir(parents=True, exist_ok=True)
        (dump_dir / f"scraped-{store_code}.html").write_text(html, encoding="utf-8")
        if captures:
            body = [{"url": url, "response": data} for url, data in captures]
            (dump_dir / f"api-requests-{store_code}.json").write_text(
                json.dumps(body, ensure_ascii=False, indent=2), encoding="utf-8"
            )
        logger.debug("Debug dump for %s written to %s", store_code, dump_dir)
