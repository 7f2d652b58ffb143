import os
from pathlib import Path
import sys

import pytest

# Kivy parses sys.argv on import unless told not to, and pytest's options
# are not Kivy's.
os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")

sys.path.append(str(Path(__file__).resolve().parents[1]))

from session_engine import settings  # noqa: E402
from session_engine.previous import PreviousPerformance, PreviousSet  # noqa: E402


class ManualEvent:
    """Stand-in for :class:`kivy.clock.ClockEvent` driven by ManualClock."""

    def __init__(self, callback, timeout, repeat, due):
        self.callback = callback
        self.timeout = timeout
        self.repeat = repeat
        self.due = due
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualClock:
    """Clock whose time only moves when :meth:`advance` is called."""

    def __init__(self):
        self.time = 0.0
        self.events: list[ManualEvent] = []

    def schedule_once(self, callback, timeout=0):
        event = ManualEvent(callback, timeout, False, self.time + timeout)
        self.events.append(event)
        return event

    def schedule_interval(self, callback, timeout):
        event = ManualEvent(callback, timeout, True, self.time + timeout)
        self.events.append(event)
        return event

    @property
    def pending(self):
        return [e for e in self.events if not e.cancelled]

    def advance(self, seconds):
        target = self.time + seconds
        while True:
            due = [e for e in self.pending if e.due <= target + 1e-9]
            if not due:
                break
            event = min(due, key=lambda e: e.due)
            self.time = event.due
            result = event.callback(event.timeout)
            if event.repeat and result is not False and not event.cancelled:
                event.due += event.timeout
            else:
                event.cancelled = True
        self.time = target


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def previous():
    return PreviousPerformance(
        sets=[
            PreviousSet(weight=60.0, reps=10, rir=2),
            PreviousSet(weight=62.5, reps=8, rir=None),
        ]
    )


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    """Point the settings module at a temporary file with a clean cache."""

    path = tmp_path / "settings.json"
    monkeypatch.setattr(settings, "SETTINGS_PATH", path)
    settings.clear_cache()
    yield path
    settings.clear_cache()
