"""popdismiss exception hierarchy."""


class PopDismissError(Exception):
    """Base exception for all popdismiss errors."""


class BrowserError(PopDismissError):
    """Raised on browser lifecycle errors."""


class DriverFault(PopDismissError):
    """Raised when the browser driver itself breaks during a probe or action."""

    def __init__(
        self, locator: str, detail: str, elapsed_ms: float | None = None
    ) -> None:
        self.locator = locator
        self.detail = detail
        self.elapsed_ms = elapsed_ms
        when = "" if elapsed_ms is None else f" after {elapsed_ms:.0f} ms"
        super().__init__(
            f"Driver fault while polling '{locator}'{when}: {detail}"
        )


class ResolveTimeoutError(PopDismissError):
    """Raised when an element never appeared within the polling budget."""

    def __init__(self, locator: str, elapsed_ms: float) -> None:
        self.locator = locator
        self.elapsed_ms = elapsed_ms
        super().__init__(
            f"Element '{locator}' not found after {elapsed_ms:.0f} ms"
        )


class ResolverBusyError(PopDismissError):
    """Raised when a resolver is asked to poll a second locator at once."""

    def __init__(self, active: str, requested: str) -> None:
        self.active = active
        self.requested = requested
        super().__init__(
            f"Resolver already polling '{active}', cannot start '{requested}'"
        )
