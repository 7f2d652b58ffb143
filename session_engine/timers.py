"""Rest timers for an exercise.

Two modes exist and the caller picks one:

* :class:`ExerciseRestTimer` keeps the rest time used by the single
  workout-wide countdown.  The countdown itself belongs to the caller; the
  engine only asks for it to start.
* :class:`SetTimerPool` keeps a duration per set and runs at most one
  per-set countdown at a time, ticking once a second on the kivy clock.
"""

from __future__ import annotations

import logging
from functools import partial

from kivy.clock import Clock
from kivy.event import EventDispatcher

from session_engine import (
    DEFAULT_REST_TIME,
    DEFAULT_SET_TIMER,
    REST_TIME_PRESETS,
    REST_TIME_STEP,
)
from session_engine import codec


class ExerciseRestTimer:
    """Rest time for the workout-wide countdown started after each set."""

    def __init__(self, rest_time: int = DEFAULT_REST_TIME) -> None:
        self.rest_time = max(0, int(rest_time))

    def adjust(self, seconds: int) -> int:
        """Change the rest time by ``seconds``, never going below zero."""
        self.rest_time = max(0, self.rest_time + seconds)
        return self.rest_time

    def increase(self) -> int:
        return self.adjust(REST_TIME_STEP)

    def decrease(self) -> int:
        return self.adjust(-REST_TIME_STEP)

    def select(self, seconds: int) -> int:
        """Use one of :data:`REST_TIME_PRESETS` (``0`` turns the timer off)."""
        if seconds not in REST_TIME_PRESETS:
            logging.debug("Rest time %s is not a preset", seconds)
        self.rest_time = max(0, int(seconds))
        return self.rest_time

    @property
    def is_off(self) -> bool:
        return self.rest_time == 0

    @property
    def label(self) -> str:
        return f"Rest Timer: {codec.format_rest_time(self.rest_time)}"


class SetTimerPool(EventDispatcher):
    """Per-set rest durations with a single running countdown.

    ``set_timers`` maps a set id to the duration text typed by the user
    (``"3:00"``, ``"45"``...).  ``remaining`` holds the seconds left for the
    sets whose countdown has run.  Only ``active_set_id`` ever ticks.

    Events
    ------
    ``on_tick(set_id, remaining)``
        Fired after each one-second decrement.
    ``on_finished(set_id)``
        Fired when a countdown reaches zero.
    """

    __events__ = ("on_tick", "on_finished")

    def __init__(
        self,
        set_timers: dict[str, str] | None = None,
        *,
        enabled: bool = False,
        clock=None,
    ) -> None:
        super().__init__()
        self.enabled = enabled
        self.set_timers: dict[str, str] = dict(set_timers or {})
        self.remaining: dict[str, int] = {}
        self.active_set_id: str | None = None
        self._clock = clock or Clock
        self._event = None
        # incremented on every start so ticks from an old countdown are ignored
        self._run = 0
        self._initialized: set[str] = set()

    # ------------------------------------------------------------------
    # Default event handlers
    # ------------------------------------------------------------------

    def on_tick(self, set_id, remaining):
        pass

    def on_finished(self, set_id):
        pass

    # ------------------------------------------------------------------
    # Durations
    # ------------------------------------------------------------------

    def seed(self, set_ids) -> bool:
        """Give every set in ``set_ids`` without a duration the default one."""

        if not self.enabled:
            return False
        changed = False
        for set_id in set_ids:
            if set_id in self._initialized or self.set_timers.get(set_id):
                continue
            self.set_timers[set_id] = DEFAULT_SET_TIMER
            self._initialized.add(set_id)
            changed = True
        return changed

    def initialize_for_new_set(self, set_id: str, inherited: str | None = None) -> bool:
        """Seed the duration of a newly added set once per id."""

        if not self.enabled or set_id in self._initialized:
            return False
        self._initialized.add(set_id)
        self.set_timers[set_id] = inherited or DEFAULT_SET_TIMER
        return True

    def value(self, set_id: str) -> str:
        """Return the duration text shown for ``set_id``."""
        return self.set_timers.get(set_id) or DEFAULT_SET_TIMER

    def change(self, set_id: str, raw: str) -> str | None:
        """Store the duration typed for ``set_id``.

        The text is formatted as it is typed (``"930"`` -> ``"9:30"``).  The
        duration of a set whose countdown is running cannot be edited, and
        nothing is stored while per-set timers are off.
        """

        if not self.enabled:
            return None
        if set_id == self.active_set_id:
            logging.debug("Ignoring timer edit for running set %s", set_id)
            return None
        formatted = codec.format_timer_input(raw)
        self.set_timers[set_id] = formatted
        return formatted

    def remap(self, mapping: dict[str, str]) -> None:
        """Follow a renumbering of sets.

        ``mapping`` holds old id -> new id for every set that still exists;
        durations of ids missing from it are dropped along with any countdown
        they had running.
        """

        if self.active_set_id is not None and self.active_set_id not in mapping:
            self.stop(self.active_set_id)
        self.set_timers = {
            mapping[old]: value
            for old, value in self.set_timers.items()
            if old in mapping
        }
        self.remaining = {
            mapping[old]: value
            for old, value in self.remaining.items()
            if old in mapping
        }
        self._initialized = {mapping[old] for old in self._initialized if old in mapping}
        if self.active_set_id is not None:
            self.active_set_id = mapping[self.active_set_id]

    # ------------------------------------------------------------------
    # Countdown
    # ------------------------------------------------------------------

    def is_running(self, set_id: str) -> bool:
        return set_id == self.active_set_id

    def start(self, set_id: str) -> bool:
        """Start the countdown for ``set_id``, stopping any other one first.

        Returns ``False`` when the stored duration parses to zero seconds, in
        which case nothing runs.
        """

        if self.active_set_id is not None:
            self.stop(self.active_set_id)

        seconds = codec.parse_duration(self.value(set_id))
        if seconds <= 0:
            return False
        self._run += 1
        self.active_set_id = set_id
        self.remaining[set_id] = seconds
        self._event = self._clock.schedule_interval(partial(self._tick, self._run), 1)
        return True

    def stop(self, set_id: str) -> bool:
        """Stop the countdown for ``set_id`` if it is the running one."""

        if set_id is None or set_id != self.active_set_id:
            return False
        self._cancel()
        self.remaining.pop(set_id, None)
        return True

    def close(self) -> None:
        """Cancel any scheduled tick."""
        if self.active_set_id is not None:
            self.stop(self.active_set_id)

    def _cancel(self) -> None:
        if self._event is not None:
            self._event.cancel()
            self._event = None
        self.active_set_id = None

    def _tick(self, run: int, dt=None):
        set_id = self.active_set_id
        if run != self._run or set_id is None:
            return False

        current = self.remaining.get(set_id, 0)
        if current > 1:
            self.remaining[set_id] = current - 1
            self.dispatch("on_tick", set_id, current - 1)
            return None

        self.remaining[set_id] = 0
        if set_id in self.set_timers:
            self.set_timers[set_id] = codec.normalize_timer_value(self.set_timers[set_id])
        self._cancel()
        logging.debug("Set timer finished for set %s", set_id)
        self.dispatch("on_finished", set_id)
        return False

    # ------------------------------------------------------------------
    # Display helpers
    # ------------------------------------------------------------------

    def countdown_text(self, set_id: str) -> str:
        return codec.format_countdown(self.remaining.get(set_id, 0))

    def progress(self, set_id: str) -> float:
        """Return the fraction of the countdown still left for ``set_id``."""

        total = codec.parse_duration(self.value(set_id))
        if not total:
            return 0.0
        return self.remaining.get(set_id, 0) / total
