"""Playwright browser manager for popdismiss."""

from __future__ import annotations

from pathlib import Path

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from popdismiss.exceptions import BrowserError
from popdismiss.logger import get_logger

log = get_logger(__name__)


class BrowserManager:
    """Manages Playwright browser lifecycle."""

    def __init__(self) -> None:
        self._playwright = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    async def start(self, headless: bool = True, base_url: str | None = None) -> None:
        """Launch browser, optionally resolving relative URLs against base_url."""
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=headless)
            if base_url:
                self._context = await self._browser.new_context(base_url=base_url)
            else:
                self._context = await self._browser.new_context()
            self._page = await self._context.new_page()
            log.info("browser_started", headless=headless, base_url=base_url)
        except Exception as exc:
            await self.stop()
            raise BrowserError(f"Failed to start browser: {exc}") from exc

    async def stop(self) -> None:
        """Close browser and cleanup."""
        try:
            if self._page and not self._page.is_closed():
                await self._page.close()
            if self._context:
                await self._context.close()
            if self._browser:
                await self._browser.close()
            if self._playwright:
                await self._playwright.stop()
        except Exception as exc:
            log.warning("browser_stop_error", error=str(exc))
        finally:
            self._page = None
            self._context = None
            self._browser = None
            self._playwright = None
            log.info("browser_stopped")

    async def get_page(self) -> Page:
        """Get the current page, reopening it if it was closed."""
        if self._page and not self._page.is_closed():
            return self._page
        if self._context:
            self._page = await self._context.new_page()
            return self._page
        raise BrowserError("Browser not started — call start() first")

    async def screenshot(self, path: str | None = None) -> bytes:
        """Take a screenshot of the current page."""
        page = await self.get_page()
        kwargs: dict = {"full_page": False, "type": "png"}
        if path:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            kwargs["path"] = path
        return await page.screenshot(**kwargs)

    @property
    def current_url(self) -> str:
        """Current page URL."""
        if self._page and not self._page.is_closed():
            return self._page.url
        return ""
