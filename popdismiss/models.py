"""All Pydantic models for popdismiss."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ActionKind(str, Enum):
    """Interaction applied to a found element."""

    CLICK = "click"
    DISPATCH_CLICK = "dispatch_click"


class PollState(str, Enum):
    """Lifecycle of a PollHandle."""

    IDLE = "idle"
    POLLING = "polling"
    FOUND_AND_ACTED = "found_and_acted"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self not in (PollState.IDLE, PollState.POLLING)


class ActionOutcome(str, Enum):
    """How a PollHandle terminated. Produced exactly once per handle."""

    FOUND_AND_ACTED = "found_and_acted"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class PollSettings(BaseModel):
    """Parameters of one polling run."""

    locator: str
    interval_ms: int = Field(default=2000, gt=0)
    timeout_ms: int | None = Field(default=None, gt=0)
    action: ActionKind = ActionKind.CLICK
    probe_immediately: bool = True

    @field_validator("locator")
    @classmethod
    def _locator_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("locator must be a non-empty selector")
        return value


class ResolveResult(BaseModel):
    """Terminal record of a polling run."""

    locator: str
    outcome: ActionOutcome
    probes: int = Field(ge=0)
    matches: int = 0
    action_applied: bool = False
    elapsed_ms: float
    started_at: datetime
    finished_at: datetime
    error: str | None = None
