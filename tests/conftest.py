"""Shared test fixtures for popdismiss."""
import asyncio
from pathlib import Path

import pytest

from popdismiss.driver import BaseDriver
from popdismiss.models import ActionKind

# Path to test fixtures
FIXTURES_DIR = Path(__file__).parent / "fixtures"
MOCK_PAGES_DIR = FIXTURES_DIR / "mock_pages"


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeDriver(BaseDriver):
    """Driver whose page shows the target elements from ``appear_at`` on."""

    def __init__(
        self,
        clock: FakeClock,
        appear_at: float | None = None,
        elements: list | None = None,
    ) -> None:
        self.clock = clock
        self.appear_at = appear_at
        self.elements = elements if elements is not None else ["button"]
        self.probe_times: list[float] = []
        self.actions: list[tuple] = []
        self.applied = True

    async def query(self, selector: str) -> list:
        self.probe_times.append(self.clock())
        if self.appear_at is not None and self.clock() >= self.appear_at:
            return list(self.elements)
        return []

    async def apply_action(self, element, kind: ActionKind) -> bool:
        self.actions.append((element, kind))
        return self.applied

    async def navigate(self, url: str) -> None:
        pass

    async def wait_ms(self, ms: int) -> None:
        pass


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def mock_pages_dir() -> Path:
    """Path to mock HTML pages."""
    return MOCK_PAGES_DIR


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_driver(clock):
    """Factory for FakeDriver instances bound to the fake clock."""
    def _make(appear_at: float | None = None, elements: list | None = None) -> FakeDriver:
        return FakeDriver(clock, appear_at=appear_at, elements=elements)
    return _make
