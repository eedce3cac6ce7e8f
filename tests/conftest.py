"""Shared fixtures."""

import pytest

from delta_hunter.store.time_series_store import TimeSeriesStore
from delta_hunter.utils.events import EventBus

from helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def store(clock, event_bus):
    s = TimeSeriesStore(max_tracked=150, clock=clock, event_bus=event_bus)
    yield s
    s.reset()
