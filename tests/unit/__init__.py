"""
Unit Tests Package for the Smart Parking engine

Unit tests exercise one component at a time:
1. Value objects and entities
2. Slot layout and registry
3. Allocation and pricing strategies
4. The parking lot aggregate and the optimization pass
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add the project root to Python path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from smart_parking.config import ParkingSettings  # noqa: E402


class FakeClock:
    """Injectable clock that only moves when told to"""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 5, 12, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


def fixed_settings(**overrides):
    """
    Settings whose distance ranges hold a single value per category:
    VIP 5m, EV 15m, REGULAR 25m
    """
    values = {
        "seed": 42,
        "vip_distance_range": (5, 6),
        "ev_distance_range": (15, 16),
        "regular_distance_range": (25, 26),
    }
    values.update(overrides)
    return ParkingSettings(**values)
