"""Per-scenario session: browser, driver, and the background popup dismisser."""

from __future__ import annotations

import asyncio
import math
from typing import Any

from popdismiss.browser import BrowserManager
from popdismiss.config import SuiteConfig
from popdismiss.driver import PlaywrightDriver
from popdismiss.exceptions import BrowserError, ResolveTimeoutError
from popdismiss.logger import get_logger
from popdismiss.models import ActionOutcome, ResolveResult
from popdismiss.poller import USE_DEFAULT, PollHandle, TransientElementResolver

log = get_logger(__name__)


class SuiteSession:
    """Browser session a scenario runs in.

    ``arm_popup_dismissal`` is the setup hook: it starts the resolver and
    returns right away, so the popup is dismissed in the background while
    the scenario proceeds. ``settle`` is the optional join point.
    """

    def __init__(
        self,
        config: SuiteConfig | None = None,
        browser: BrowserManager | None = None,
    ) -> None:
        self.config = config or SuiteConfig()
        self.browser = browser or BrowserManager()
        self.driver: PlaywrightDriver | None = None
        self.resolver: TransientElementResolver | None = None
        self.popup: PollHandle | None = None

    # --- Lifecycle ---

    async def start(self) -> None:
        """Launch the browser and build the resolver on its page."""
        await self.browser.start(
            headless=self.config.headless, base_url=self.config.base_url
        )
        page = await self.browser.get_page()
        self.driver = PlaywrightDriver(
            page, action_timeout_ms=self.config.action_timeout_ms
        )
        self.resolver = TransientElementResolver(
            self.driver,
            interval_ms=self.config.poll_interval_ms,
            timeout_ms=self.config.poll_timeout_ms,
            action=self.config.action,
        )
        log.info("session_started", base_url=self.config.base_url)

    async def stop(self) -> None:
        """Cancel any in-flight polling, then close the browser."""
        if self.resolver is not None:
            await self.resolver.aclose()
        await self.browser.stop()
        self.driver = None
        self.resolver = None
        log.info("session_stopped")

    async def __aenter__(self) -> SuiteSession:
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()

    # --- Popup dismissal ---

    def arm_popup_dismissal(
        self,
        locator: str | None = None,
        interval_ms: int | None = None,
        timeout_ms: int | None = USE_DEFAULT,
    ) -> PollHandle:
        """Start dismissing the popup in the background and return its handle."""
        resolver = self._require_resolver()
        self.popup = resolver.start(
            locator or self.config.popup_locator,
            interval_ms=interval_ms,
            timeout_ms=timeout_ms,
        )
        return self.popup

    async def settle(
        self, timeout_ms: int | None = None, require_found: bool = False
    ) -> ResolveResult | None:
        """Wait for the armed dismissal to terminate.

        Raises:
            DriverFault: If probing broke.
            ResolveTimeoutError: If ``require_found`` is set and the popup
                never appeared, or if the join itself exceeds ``timeout_ms``
                (the run is cancelled in that case).
        """
        handle = self.popup
        if handle is None:
            return None
        if timeout_ms is None:
            result = await handle.wait()
        else:
            try:
                result = await asyncio.wait_for(handle.wait(), timeout_ms / 1000)
            except asyncio.TimeoutError:
                elapsed = handle.elapsed_ms()
                handle.cancel()
                result = await handle.wait()
                if result.outcome != ActionOutcome.FOUND_AND_ACTED:
                    raise ResolveTimeoutError(handle.locator, elapsed) from None
        handle.raise_for_outcome(allow_timeout=not require_found)
        return result

    # --- Steps ---

    async def visit(self, path: str) -> None:
        """Navigate to a URL, relative paths resolving against the base URL."""
        await self._require_driver().navigate(path)
        log.info("page_visited", path=path)

    async def wait_seconds(self, seconds: float) -> None:
        ms = math.ceil(seconds * 1000)
        log.info("waiting", ms=ms)
        await self._require_driver().wait_ms(ms)

    async def is_present(self, selector: str) -> bool:
        elements = await self._require_driver().query(selector)
        return bool(elements)

    def _require_driver(self) -> PlaywrightDriver:
        if self.driver is None:
            raise BrowserError("Session not started — call start() first")
        return self.driver

    def _require_resolver(self) -> TransientElementResolver:
        if self.resolver is None:
            raise BrowserError("Session not started — call start() first")
        return self.resolver
