"""
Integration Tests Package for the Smart Parking engine

This package contains integration tests that verify different components
of the system work together correctly.

Integration tests focus on:
1. Service layer use cases over a real parking lot
2. Command processing flow and history
3. Event publishing to the event bus and event store
4. The console entry point (demo and interactive menu)
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add the project root to Python path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from smart_parking.config import ParkingSettings  # noqa: E402
from smart_parking.infrastructure.factories import ServiceFactory  # noqa: E402
from smart_parking.infrastructure.messaging import InMemoryEventStore  # noqa: E402


class FakeClock:
    """Injectable clock that only moves when told to"""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 5, 12, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


class IntegrationTestConfig:
    """Configuration for integration tests"""

    # Single distance per category: VIP 5m, EV 15m, REGULAR 25m
    SETTINGS = {
        "seed": 42,
        "vip_distance_range": (5, 6),
        "ev_distance_range": (15, 16),
        "regular_distance_range": (25, 26),
    }

    SAMPLE_LOT_SIZE = 10


def create_test_factory(clock=None, **overrides):
    """
    Service factory wired with deterministic settings and an event store
    Returns: (factory, event_store)
    """
    values = dict(IntegrationTestConfig.SETTINGS)
    values.update(overrides)

    event_store = InMemoryEventStore()
    factory = ServiceFactory(
        settings=ParkingSettings(**values),
        clock=clock or FakeClock(),
        event_bus=ServiceFactory.create_event_bus(event_store)
    )
    return factory, event_store
