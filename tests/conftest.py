import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from roster_bot.config import TrackerSettings


class FakeClock:
    """Deterministic clock; each call advances one second."""

    def __init__(self, start=None):
        self.current = start or datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def settings(clock):
    return TrackerSettings(app_id='test-app', clock=clock)


def make_csv(*lines: str) -> bytes:
    return ('\n'.join(lines) + '\n').encode('utf-8')
