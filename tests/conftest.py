"""
Pytest configuration and fixtures for kinetophone tests.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

LIFECYCLE_EVENTS = ['play', 'pause', 'timeupdate', 'seeking', 'seek', 'enter', 'exit', 'end']


class EventRecorder:
    """Collects (event, payload) pairs emitted by an engine."""

    def __init__(self):
        self.events = []

    def attach(self, bus, channels=()):
        names = list(LIFECYCLE_EVENTS)
        for channel in channels:
            names += [f'enter:{channel}', f'exit:{channel}']
        for name in names:
            bus.on(name, self._recorder(name))
        return self

    def _recorder(self, name):
        def record(*args):
            self.events.append((name, args[0] if args else None))
        return record

    def named(self, *names):
        return [(name, payload) for name, payload in self.events if name in names]

    def transitions(self):
        """Generic enter/exit events only, as (kind, start) pairs."""
        return [(name, payload['start']) for name, payload in self.named('enter', 'exit')]

    def names(self):
        return [name for name, _ in self.events]

    def clear(self):
        self.events = []


@pytest.fixture
def manual_clock():
    """Deterministic clock driven by the test."""
    from kinetophone.engine.clock import ManualClock
    return ManualClock()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def captions():
    """Single caption channel from the reference scenario."""
    return {'name': 'captions', 'timings': [{'start': 5, 'end': 10, 'data': 'hi'}]}


@pytest.fixture
def make_engine(manual_clock):
    """Factory building an engine on the manual clock."""
    from kinetophone.engine.kinetophone import Kinetophone

    def factory(channels=None, total_duration=1000, **kwargs):
        kwargs.setdefault('clock', manual_clock)
        return Kinetophone(channels, total_duration, **kwargs)

    return factory
