"""popdismiss — dismiss transient popups in the background of browser tests."""

from popdismiss.config import SuiteConfig
from popdismiss.driver import BaseDriver, PlaywrightDriver
from popdismiss.exceptions import (
    BrowserError,
    DriverFault,
    PopDismissError,
    ResolverBusyError,
    ResolveTimeoutError,
)
from popdismiss.models import (
    ActionKind,
    ActionOutcome,
    PollSettings,
    PollState,
    ResolveResult,
)
from popdismiss.poller import PollHandle, TransientElementResolver
from popdismiss.session import SuiteSession

__version__ = "0.1.0"

__all__ = [
    "ActionKind",
    "ActionOutcome",
    "BaseDriver",
    "BrowserError",
    "DriverFault",
    "PlaywrightDriver",
    "PollHandle",
    "PollSettings",
    "PollState",
    "PopDismissError",
    "ResolveResult",
    "ResolveTimeoutError",
    "ResolverBusyError",
    "SuiteConfig",
    "SuiteSession",
    "TransientElementResolver",
    "__version__",
]
