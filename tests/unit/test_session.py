"""Tests for SuiteSession with a mocked browser."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from popdismiss.browser import BrowserManager
from popdismiss.config import SuiteConfig
from popdismiss.exceptions import BrowserError, DriverFault, ResolveTimeoutError
from popdismiss.models import ActionKind, ActionOutcome, PollState
from popdismiss.session import SuiteSession


def _mock_element() -> AsyncMock:
    el = AsyncMock()
    el.click = AsyncMock()
    return el


def _mock_browser(page: AsyncMock) -> MagicMock:
    browser = MagicMock(spec=BrowserManager)
    browser.start = AsyncMock()
    browser.stop = AsyncMock()
    browser.get_page = AsyncMock(return_value=page)
    return browser


def _mock_page(matches: list | None = None) -> AsyncMock:
    page = AsyncMock()
    page.query_selector_all = AsyncMock(return_value=matches or [])
    page.goto = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    return page


def _config(**overrides) -> SuiteConfig:
    overrides.setdefault("poll_interval_ms", 10)
    return SuiteConfig(**overrides)


class TestLifecycle:
    async def test_start_passes_config_to_browser(self) -> None:
        browser = _mock_browser(_mock_page())
        config = _config(headless=False, base_url="https://example.test")
        async with SuiteSession(config, browser=browser) as session:
            assert session.resolver.interval_ms == 10
            browser.start.assert_called_once_with(
                headless=False, base_url="https://example.test"
            )
        browser.stop.assert_called_once()
        assert session.resolver is None

    async def test_arm_before_start_raises(self) -> None:
        session = SuiteSession(_config(), browser=_mock_browser(_mock_page()))
        with pytest.raises(BrowserError, match="not started"):
            session.arm_popup_dismissal()

    async def test_stop_cancels_in_flight_dismissal(self) -> None:
        browser = _mock_browser(_mock_page())
        session = SuiteSession(_config(), browser=browser)
        await session.start()
        handle = session.arm_popup_dismissal()
        await asyncio.sleep(0.03)

        await session.stop()

        assert handle.state == PollState.CANCELLED
        browser.stop.assert_called_once()


class TestPopupDismissal:
    async def test_arm_returns_without_blocking(self) -> None:
        page = _mock_page()
        async with SuiteSession(_config(), browser=_mock_browser(page)) as session:
            handle = session.arm_popup_dismissal()
            assert not handle.done
            assert handle.locator == "#modal .modal-footer p"

    async def test_settle_after_click(self) -> None:
        element = _mock_element()
        page = _mock_page([element])
        config = _config(action=ActionKind.CLICK, action_timeout_ms=2500)
        async with SuiteSession(config, browser=_mock_browser(page)) as session:
            session.arm_popup_dismissal()
            result = await session.settle(require_found=True)

        assert result.outcome == ActionOutcome.FOUND_AND_ACTED
        element.click.assert_called_once_with(timeout=2500)
        page.query_selector_all.assert_called_with("#modal .modal-footer p")

    async def test_default_action_dispatches_dom_click(self) -> None:
        """Hidden modal markup still gets dismissed without actionability checks."""
        element = _mock_element()
        element.dispatch_event = AsyncMock()
        page = _mock_page([element])
        async with SuiteSession(_config(), browser=_mock_browser(page)) as session:
            session.arm_popup_dismissal()
            result = await session.settle(require_found=True)

        assert result.outcome == ActionOutcome.FOUND_AND_ACTED
        element.dispatch_event.assert_called_once_with("click")
        element.click.assert_not_called()

    async def test_arm_uses_configured_timeout(self) -> None:
        config = _config(poll_timeout_ms=40)
        async with SuiteSession(config, browser=_mock_browser(_mock_page())) as session:
            handle = session.arm_popup_dismissal()
            assert handle.settings.timeout_ms == 40

    async def test_arm_can_disable_configured_timeout(self) -> None:
        config = _config(poll_timeout_ms=40)
        async with SuiteSession(config, browser=_mock_browser(_mock_page())) as session:
            handle = session.arm_popup_dismissal(timeout_ms=None)
            assert handle.settings.timeout_ms is None

    async def test_locator_override(self) -> None:
        page = _mock_page([_mock_element()])
        async with SuiteSession(_config(), browser=_mock_browser(page)) as session:
            handle = session.arm_popup_dismissal("#cookie-banner button")
            await session.settle()
        assert handle.locator == "#cookie-banner button"

    async def test_settle_without_armed_handle(self) -> None:
        async with SuiteSession(_config(), browser=_mock_browser(_mock_page())) as session:
            assert await session.settle() is None

    async def test_settle_tolerates_resolver_timeout_by_default(self) -> None:
        config = _config(poll_timeout_ms=40)
        async with SuiteSession(config, browser=_mock_browser(_mock_page())) as session:
            session.arm_popup_dismissal()
            result = await session.settle()
        assert result.outcome == ActionOutcome.TIMED_OUT

    async def test_settle_require_found_raises_on_timeout(self) -> None:
        config = _config(poll_timeout_ms=40)
        async with SuiteSession(config, browser=_mock_browser(_mock_page())) as session:
            session.arm_popup_dismissal()
            with pytest.raises(ResolveTimeoutError, match="#modal .modal-footer p"):
                await session.settle(require_found=True)

    async def test_settle_join_timeout_cancels_unbounded_poll(self) -> None:
        async with SuiteSession(_config(), browser=_mock_browser(_mock_page())) as session:
            handle = session.arm_popup_dismissal()
            with pytest.raises(ResolveTimeoutError, match="not found after"):
                await session.settle(timeout_ms=50)
            assert handle.state == PollState.CANCELLED

    async def test_settle_surfaces_driver_fault(self) -> None:
        page = _mock_page()
        page.query_selector_all = AsyncMock(
            side_effect=PlaywrightError("Execution context was destroyed")
        )
        async with SuiteSession(_config(), browser=_mock_browser(page)) as session:
            session.arm_popup_dismissal()
            with pytest.raises(DriverFault, match="Execution context was destroyed"):
                await session.settle()


class TestSteps:
    async def test_visit(self) -> None:
        page = _mock_page()
        async with SuiteSession(_config(), browser=_mock_browser(page)) as session:
            await session.visit("entry_ad")
        page.goto.assert_called_once_with("entry_ad", wait_until="domcontentloaded")

    @pytest.mark.parametrize(
        ("seconds", "expected_ms"),
        [(3, 3000), (1.5, 1500), (0.0001, 1)],
    )
    async def test_wait_seconds_rounds_up(self, seconds, expected_ms) -> None:
        page = _mock_page()
        async with SuiteSession(_config(), browser=_mock_browser(page)) as session:
            await session.wait_seconds(seconds)
        page.wait_for_timeout.assert_called_once_with(expected_ms)

    async def test_is_present(self) -> None:
        page = _mock_page([_mock_element()])
        async with SuiteSession(_config(), browser=_mock_browser(page)) as session:
            assert await session.is_present("#modal:visible") is True
            page.query_selector_all = AsyncMock(return_value=[])
            assert await session.is_present("#modal:visible") is False
