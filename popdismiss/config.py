"""Suite configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from popdismiss.models import ActionKind

DEFAULT_BASE_URL = "https://the-internet.herokuapp.com"
DEFAULT_POPUP_LOCATOR = "#modal .modal-footer p"


def _optional_int(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    return int(raw)


@dataclass
class SuiteConfig:
    """Settings shared by every scenario of a suite run."""

    base_url: str = DEFAULT_BASE_URL
    headless: bool = True
    popup_locator: str = DEFAULT_POPUP_LOCATOR
    poll_interval_ms: int = 2000
    poll_timeout_ms: int | None = None
    action: ActionKind = ActionKind.DISPATCH_CLICK
    action_timeout_ms: int = 5000
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> SuiteConfig:
        """Load config from environment variables."""
        return cls(
            base_url=os.environ.get("POPDISMISS_BASE_URL", DEFAULT_BASE_URL),
            headless=os.environ.get("POPDISMISS_HEADLESS", "true").lower() == "true",
            popup_locator=os.environ.get(
                "POPDISMISS_POPUP_LOCATOR", DEFAULT_POPUP_LOCATOR
            ),
            poll_interval_ms=int(os.environ.get("POPDISMISS_POLL_INTERVAL_MS", "2000")),
            poll_timeout_ms=_optional_int(os.environ.get("POPDISMISS_POLL_TIMEOUT_MS")),
            action=ActionKind(os.environ.get("POPDISMISS_ACTION", "dispatch_click")),
            action_timeout_ms=int(
                os.environ.get("POPDISMISS_ACTION_TIMEOUT_MS", "5000")
            ),
            log_level=os.environ.get("POPDISMISS_LOG_LEVEL", "INFO"),
            log_json=os.environ.get("POPDISMISS_LOG_JSON", "false").lower() == "true",
        )
