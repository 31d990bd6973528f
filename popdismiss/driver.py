"""Browser driver interface and its Playwright implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError

from popdismiss.logger import get_logger
from popdismiss.models import ActionKind

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Page

log = get_logger(__name__)

_DETACHED_MARKERS = ("not attached", "detached")


class BaseDriver(ABC):
    """The slice of a browser-automation API the resolver consumes."""

    @abstractmethod
    async def query(self, selector: str) -> list[Any]:
        """Return every element matching the selector, in document order."""

    @abstractmethod
    async def apply_action(self, element: Any, kind: ActionKind) -> bool:
        """Perform the action on the element.

        Returns False when the driver decided the action was a no-op
        (e.g. the element went away after it was found).
        """

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Load a URL in the current page."""

    @abstractmethod
    async def wait_ms(self, ms: int) -> None:
        """Pause the page for a number of milliseconds."""


class PlaywrightDriver(BaseDriver):
    """BaseDriver over a Playwright async Page."""

    def __init__(self, page: Page, action_timeout_ms: int = 5000) -> None:
        self.page = page
        self.action_timeout_ms = action_timeout_ms

    async def query(self, selector: str) -> list[ElementHandle]:
        return await self.page.query_selector_all(selector)

    async def apply_action(self, element: ElementHandle, kind: ActionKind) -> bool:
        try:
            if kind == ActionKind.DISPATCH_CLICK:
                # Raw DOM event, no visibility or stability checks.
                await element.dispatch_event("click")
            else:
                await element.click(timeout=self.action_timeout_ms)
        except PlaywrightError as exc:
            message = str(exc)
            if any(marker in message for marker in _DETACHED_MARKERS):
                log.warning(
                    "element_detached_before_action",
                    action=kind.value,
                    error=message[:120],
                )
                return False
            raise
        return True

    async def navigate(self, url: str) -> None:
        await self.page.goto(url, wait_until="domcontentloaded")

    async def wait_ms(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)
