from collections.abc import Generator
from pathlib import Path

import pytest

from procspec.core.time_formats import TimeFormatResolver
from procspec.utils.logging import set_correlation_id
from tests.fakes import FakeCall, FakeProvider

here = Path(__file__).parent
root_path = here.parent


@pytest.fixture
def formats() -> TimeFormatResolver:
    return TimeFormatResolver()


@pytest.fixture
def fake_call() -> FakeCall:
    return FakeCall()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture(autouse=True)
def _reset_correlation_id() -> "Generator[None, None, None]":
    yield
    set_correlation_id(None)


@pytest.fixture
def utc_local_zone(monkeypatch: pytest.MonkeyPatch) -> "Generator[None, None, None]":
    """Pin the process time zone to UTC where the platform allows it."""
    import time

    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
