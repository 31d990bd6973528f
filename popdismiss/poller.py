"""Background poller that acts on an element which may appear at any time.

A cookie banner or entry ad can show up immediately, several seconds after
load, or never. ``TransientElementResolver`` probes the page at a fixed
interval, applies one action to the first match it sees and stops. Each run
is owned by a ``PollHandle`` which carries its own task, so callers can let
it race the test body, join it at a synchronization point, or cancel it at
teardown.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from popdismiss.driver import BaseDriver
from popdismiss.exceptions import DriverFault, ResolverBusyError, ResolveTimeoutError
from popdismiss.logger import get_logger
from popdismiss.models import (
    ActionKind,
    ActionOutcome,
    PollSettings,
    PollState,
    ResolveResult,
)

log = get_logger(__name__)

# Marks a per-call timeout that was not given; None means "no timeout".
USE_DEFAULT: Any = object()


class PollHandle:
    """Live state of one polling run.

    State machine: ``idle -> polling -> {found_and_acted | timed_out |
    cancelled | failed}``. Terminal states are final; the first one reached
    wins and produces the single ``ResolveResult``.
    """

    def __init__(
        self,
        settings: PollSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.probes = 0
        self._clock = clock
        self._started = clock()
        self._started_at = datetime.now(tz=timezone.utc)
        self._state = PollState.IDLE
        self._task: asyncio.Task | None = None
        self._result: ResolveResult | None = None
        self._exception: DriverFault | None = None
        self._cancel_requested = False
        self._acting = False

    @property
    def locator(self) -> str:
        return self.settings.locator

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state.is_terminal

    @property
    def started(self) -> float:
        """Clock reading taken when the handle was created."""
        return self._started

    @property
    def result(self) -> ResolveResult | None:
        return self._result

    @property
    def exception(self) -> DriverFault | None:
        return self._exception

    def elapsed_ms(self) -> float:
        return (self._clock() - self._started) * 1000

    def cancel(self) -> bool:
        """Stop polling. Returns False if the handle had already terminated.

        Once the action has been sent to the page the run is committed: the
        request is ignored and the handle ends as found_and_acted.
        """
        if self.done or self._acting:
            return False
        self._cancel_requested = True
        if self._state == PollState.IDLE:
            # The task never ran; nothing will observe the cancellation.
            self._finish(ActionOutcome.CANCELLED)
        if self._task is not None and not self._task.done():
            self._task.cancel()
        return True

    async def wait(self) -> ResolveResult:
        """Join the run and return its result.

        Cancelling the waiter does not cancel polling; use ``cancel()``.
        """
        if self._task is None:
            raise RuntimeError("PollHandle was never started")
        try:
            await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.done():
                raise
        if self._result is None:
            self._finish(ActionOutcome.CANCELLED)
        return self._result

    def raise_for_outcome(self, allow_timeout: bool = False) -> None:
        """Raise if the run ended in a driver fault or an unwanted timeout."""
        if self._result is None:
            raise RuntimeError("PollHandle has not terminated yet")
        if self._result.outcome == ActionOutcome.FAILED and self._exception:
            raise self._exception
        if self._result.outcome == ActionOutcome.TIMED_OUT and not allow_timeout:
            raise ResolveTimeoutError(self.locator, self._result.elapsed_ms)

    def _attach(self, task: asyncio.Task) -> None:
        self._task = task

    def _mark_polling(self) -> None:
        self._state = PollState.POLLING

    def _fail(self, fault: DriverFault) -> None:
        self._exception = fault
        self._finish(ActionOutcome.FAILED, error=fault.detail)

    def _finish(
        self,
        outcome: ActionOutcome,
        *,
        matches: int = 0,
        action_applied: bool = False,
        error: str | None = None,
    ) -> None:
        if self._result is not None:
            return
        self._state = PollState(outcome.value)
        self._result = ResolveResult(
            locator=self.locator,
            outcome=outcome,
            probes=self.probes,
            matches=matches,
            action_applied=action_applied,
            elapsed_ms=self.elapsed_ms(),
            started_at=self._started_at,
            finished_at=datetime.now(tz=timezone.utc),
            error=error,
        )
        event = "poll_failed" if outcome == ActionOutcome.FAILED else "poll_finished"
        level = log.error if outcome == ActionOutcome.FAILED else log.info
        level(
            event,
            locator=self.locator,
            outcome=outcome.value,
            probes=self.probes,
            elapsed_ms=round(self._result.elapsed_ms, 1),
            error=error,
        )


class TransientElementResolver:
    """Probe for an element at a fixed interval and act on it once found."""

    def __init__(
        self,
        driver: BaseDriver,
        *,
        interval_ms: int = 2000,
        timeout_ms: int | None = None,
        action: ActionKind = ActionKind.CLICK,
        probe_immediately: bool = True,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.driver = driver
        self.interval_ms = interval_ms
        self.timeout_ms = timeout_ms
        self.action = action
        self.probe_immediately = probe_immediately
        self._clock = clock
        self._sleep = sleep
        self._active: PollHandle | None = None

    @property
    def active(self) -> PollHandle | None:
        """The in-flight handle, if any."""
        if self._active is not None and not self._active.done:
            return self._active
        return None

    def start(
        self,
        locator: str,
        interval_ms: int | None = None,
        timeout_ms: int | None = USE_DEFAULT,
    ) -> PollHandle:
        """Begin polling in the background and return the handle immediately.

        ``timeout_ms`` defaults to the resolver-wide timeout; pass ``None``
        to poll without a deadline. A second call for the same locator while
        a run is active joins that run, so concurrent callers never trigger
        two actions.

        Raises:
            ResolverBusyError: If another locator is being polled.
            pydantic.ValidationError: On an empty locator or non-positive
                interval/timeout.
        """
        active = self.active
        if active is not None:
            if active.locator == locator:
                log.debug("poll_joined", locator=locator)
                return active
            raise ResolverBusyError(active.locator, locator)

        settings = PollSettings(
            locator=locator,
            interval_ms=self.interval_ms if interval_ms is None else interval_ms,
            timeout_ms=self.timeout_ms if timeout_ms is USE_DEFAULT else timeout_ms,
            action=self.action,
            probe_immediately=self.probe_immediately,
        )
        handle = PollHandle(settings, clock=self._clock)
        task = asyncio.get_running_loop().create_task(
            self._poll(handle), name=f"poll:{locator}"
        )
        handle._attach(task)
        self._active = handle
        return handle

    async def resolve(
        self,
        locator: str,
        interval_ms: int | None = None,
        timeout_ms: int | None = USE_DEFAULT,
    ) -> ResolveResult:
        """Poll until the element is acted on, the budget runs out, or cancel."""
        handle = self.start(locator, interval_ms=interval_ms, timeout_ms=timeout_ms)
        return await handle.wait()

    async def aclose(self) -> None:
        """Cancel and join the in-flight run so no timer outlives the caller."""
        handle = self.active
        if handle is None:
            return
        handle.cancel()
        await handle.wait()

    async def _poll(self, handle: PollHandle) -> None:
        settings = handle.settings
        handle._mark_polling()
        interval = settings.interval_ms / 1000
        deadline = (
            None
            if settings.timeout_ms is None
            else handle.started + settings.timeout_ms / 1000
        )
        log.info(
            "poll_started",
            locator=settings.locator,
            interval_ms=settings.interval_ms,
            timeout_ms=settings.timeout_ms,
            action=settings.action.value,
        )
        try:
            if not settings.probe_immediately and not await self._pause(
                interval, deadline
            ):
                handle._finish(ActionOutcome.TIMED_OUT)
                return
            while True:
                handle.probes += 1
                try:
                    elements = await self._query(settings.locator, deadline)
                except asyncio.TimeoutError:
                    handle._finish(ActionOutcome.TIMED_OUT)
                    return
                log.debug(
                    "probe",
                    locator=settings.locator,
                    probe=handle.probes,
                    matches=len(elements),
                )
                if elements:
                    handle._acting = True
                    applied = await self.driver.apply_action(
                        elements[0], settings.action
                    )
                    handle._finish(
                        ActionOutcome.FOUND_AND_ACTED,
                        matches=len(elements),
                        action_applied=applied,
                    )
                    return
                if not await self._pause(interval, deadline):
                    handle._finish(ActionOutcome.TIMED_OUT)
                    return
        except asyncio.CancelledError:
            handle._finish(ActionOutcome.CANCELLED)
            if not handle._cancel_requested:
                raise
        except Exception as exc:
            fault = DriverFault(
                settings.locator,
                f"{type(exc).__name__}: {exc}",
                elapsed_ms=handle.elapsed_ms(),
            )
            fault.__cause__ = exc
            handle._fail(fault)
        finally:
            if self._active is handle:
                self._active = None

    async def _query(self, locator: str, deadline: float | None) -> list[Any]:
        if deadline is None:
            return await self.driver.query(locator)
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise asyncio.TimeoutError
        return await asyncio.wait_for(self.driver.query(locator), timeout=remaining)

    async def _pause(self, interval: float, deadline: float | None) -> bool:
        """Sleep until the next probe. False means the deadline has passed."""
        if deadline is None:
            await self._sleep(interval)
            return True
        remaining = deadline - self._clock()
        if remaining <= 0:
            return False
        await self._sleep(min(interval, remaining))
        return self._clock() < deadline
