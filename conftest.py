"""Pytest configuration and shared fixtures."""

import os

import pytest
from loguru import logger

# Load env vars
from dotenv import load_dotenv
load_dotenv()


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "online: mark test as online test (drives a real browser against the live site)")


def pytest_collection_modifyitems(config, items):
    """Skip online tests unless BOOKING_ONLINE_TESTS=1."""
    if os.getenv("BOOKING_ONLINE_TESTS") == "1":
        return

    skip_online = pytest.mark.skip(reason="set BOOKING_ONLINE_TESTS=1 to run online tests")
    for item in items:
        if "online" in item.keywords:
            item.add_marker(skip_online)


# =============================================================================
# Fixtures
# =============================================================================

class FakeClock:
    """Monotonic clock + async sleep that only advance when slept on."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    """A FakeClock to pass as ConditionPoller(clock=..., sleep=...)."""
    return FakeClock()


@pytest.fixture
def log_messages():
    """Capture loguru output as (level, message) tuples."""
    messages = []
    handler_id = logger.add(
        lambda message: messages.append(
            (message.record["level"].name, message.record["message"])
        ),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)
