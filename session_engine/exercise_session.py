from __future__ import annotations

import logging
from functools import partial

from kivy.clock import Clock
from kivy.event import EventDispatcher

from session_engine import FOCUS_ADVANCE_DELAY
from session_engine.aggregator import SessionAggregator, build_snapshot, compute_totals
from session_engine.completion import (
    FEEDBACK_LIGHT,
    FEEDBACK_MEDIUM,
    FEEDBACK_SUCCESS,
    ExerciseTemplate,
    Feedback,
    FocusNext,
    StartRest,
    StartSetTimer,
    StopSetTimer,
    field_hints,
    toggle_completion,
)
from session_engine.previous import PreviousPerformance
from session_engine.sets import Set, SetLedger
from session_engine.settings import FeatureConfig
from session_engine.timers import ExerciseRestTimer, SetTimerPool


class ExerciseSession(EventDispatcher):
    """Live state of one exercise in an active workout.

    All edits go through this object.  After each one the totals and the
    state snapshot are recomputed and the matching event fires only if the
    value actually changed, so persistence is not hit on no-op edits.

    Events
    ------
    ``on_update_totals(exercise_id, total_volume, completed_set_count)``
    ``on_state_change(snapshot)``
        ``snapshot`` is ``{"sets": [...], "notes": str, "set_timers": {...}}``.
    ``on_timer_start(seconds)``
        Start the workout-wide rest countdown (exercise timer mode).
    ``on_feedback(kind)``
        Haptic feedback: ``"light"``, ``"medium"`` or ``"success"``.
    ``on_focus_request(set_id, field)``
        Move keyboard focus to ``field`` of the set ``set_id``.
    """

    __events__ = (
        "on_update_totals",
        "on_state_change",
        "on_timer_start",
        "on_feedback",
        "on_focus_request",
    )

    def __init__(
        self,
        exercise_id,
        *,
        initial_state: dict | None = None,
        template: ExerciseTemplate | None = None,
        previous: PreviousPerformance | None = None,
        config: FeatureConfig | None = None,
        rest_time: int | None = None,
        clock=None,
    ) -> None:
        """Create the session, restoring ``initial_state`` when given.

        When ``initial_state`` has no ``"sets"`` entry the ledger starts with
        one blank set per set of ``previous``, or a single blank set.  A saved
        empty list is restored as it is.  ``rest_time`` defaults to the one in
        ``config``.
        """

        super().__init__()
        self.exercise_id = exercise_id
        self.template = template or ExerciseTemplate()
        self.previous = previous or PreviousPerformance()
        self.config = config or FeatureConfig()
        self._clock = clock or Clock
        self._focus_event = None

        state = initial_state or {}
        restored = state.get("sets")
        self.ledger = SetLedger(restored or [])
        if restored is None:
            self.ledger.seed(len(self.previous))
        self.notes: str = state.get("notes") or ""

        self.rest_timer = ExerciseRestTimer(
            self.config.rest_time if rest_time is None else rest_time
        )
        self.timers = SetTimerPool(
            state.get("set_timers"),
            enabled=self.config.per_set_timers,
            clock=self._clock,
        )
        self.timers.seed(s.id for s in self.ledger)
        self.timers.bind(on_finished=self._on_set_timer_finished)

        self.aggregator = SessionAggregator()

    # ------------------------------------------------------------------
    # Default event handlers
    # ------------------------------------------------------------------

    def on_update_totals(self, exercise_id, total_volume, completed_set_count):
        pass

    def on_state_change(self, snapshot):
        pass

    def on_timer_start(self, seconds):
        pass

    def on_feedback(self, kind):
        pass

    def on_focus_request(self, set_id, field):
        pass

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def sets(self) -> list[Set]:
        return self.ledger.sets

    @property
    def set_timers(self) -> dict[str, str]:
        return dict(self.timers.set_timers)

    @property
    def active_set_id(self) -> str | None:
        return self.timers.active_set_id

    @property
    def totals(self) -> tuple[float, int]:
        """Return ``(total_volume, completed_set_count)``."""
        return compute_totals(self.ledger)

    def hints(self, index: int) -> dict[str, str]:
        """Return placeholder text for the inputs of the set at ``index``."""
        return field_hints(
            index,
            template=self.template,
            previous=self.previous,
            config=self.config,
        )

    def to_dict(self) -> dict:
        """Return a JSON-serialisable representation of the exercise state."""
        return build_snapshot(self.ledger, self.notes, self.timers.set_timers)

    @classmethod
    def from_dict(cls, exercise_id, data: dict, **kwargs) -> "ExerciseSession":
        """Reconstruct a session from :meth:`to_dict` output."""
        return cls(exercise_id, initial_state=data, **kwargs)

    @classmethod
    def from_history(
        cls,
        exercise_id,
        history: list[dict] | None,
        *,
        config: FeatureConfig | None = None,
        **kwargs,
    ) -> "ExerciseSession":
        """Start a session with previous performance read from ``history``.

        Weights are shown in the ``weight_unit`` of ``config``.
        """
        config = config or FeatureConfig()
        previous = PreviousPerformance.from_history(history, unit=config.weight_unit)
        return cls(exercise_id, previous=previous, config=config, **kwargs)

    # ------------------------------------------------------------------
    # Set edits
    # ------------------------------------------------------------------

    def add_set(self) -> Set:
        """Append a blank set; its timer copies the previous last set's."""

        last = self.ledger[len(self.ledger) - 1] if len(self.ledger) else None
        inherited = self.timers.set_timers.get(last.id) if last is not None else None
        new_set = self.ledger.add_set()
        self.timers.initialize_for_new_set(new_set.id, inherited)
        self.dispatch("on_feedback", FEEDBACK_LIGHT)
        self._commit()
        return new_set

    def delete_set(self, set_id: str) -> bool:
        self.dispatch("on_feedback", FEEDBACK_MEDIUM)
        mapping = self.ledger.delete_set(set_id)
        if mapping is None:
            return False
        self.timers.remap(mapping)
        self._commit()
        return True

    def set_weight(self, set_id: str, raw: str) -> Set | None:
        updated = self.ledger.set_weight(set_id, raw)
        self._commit()
        return updated

    def set_reps(self, set_id: str, raw: str) -> Set | None:
        updated = self.ledger.set_reps(set_id, raw)
        self._commit()
        return updated

    def set_rir(self, set_id: str, raw: str) -> Set | None:
        updated = self.ledger.set_rir(set_id, raw)
        self._commit()
        return updated

    def set_notes(self, text: str) -> None:
        self.notes = text or ""
        self._commit()

    def toggle_completion(self, index: int, focused: bool = False) -> Set:
        """Tick or untick the set at ``index``.

        ``focused`` tells whether one of the set's inputs had keyboard focus;
        if so, focus moves to the next incomplete set once the change has
        been committed.
        """

        if not 0 <= index < len(self.ledger):
            raise IndexError(f"No set at index {index}")
        current = self.ledger[index]
        result = toggle_completion(
            current,
            index,
            template=self.template,
            previous=self.previous,
            config=self.config,
            rest_time=self.rest_timer.rest_time,
            focused=focused,
        )
        stored = self.ledger.replace(index, result.set)
        self._commit()
        self._run_effects(result.effects)
        return stored

    # ------------------------------------------------------------------
    # Rest timers
    # ------------------------------------------------------------------

    def adjust_rest_time(self, seconds: int) -> int:
        return self.rest_timer.adjust(seconds)

    def select_rest_time(self, seconds: int) -> int:
        self.dispatch("on_feedback", FEEDBACK_LIGHT)
        return self.rest_timer.select(seconds)

    def set_timer_change(self, set_id: str, raw: str) -> str | None:
        formatted = self.timers.change(set_id, raw)
        self._commit()
        return formatted

    def start_set_timer(self, set_id: str) -> bool:
        return self.timers.start(set_id)

    def stop_set_timer(self, set_id: str) -> bool:
        return self.timers.stop(set_id)

    def apply_config(self, config: FeatureConfig) -> None:
        """Switch feature settings, e.g. between timer modes."""

        self.config = config
        if not config.per_set_timers:
            self.timers.close()
        self.timers.enabled = config.per_set_timers
        self.timers.seed(s.id for s in self.ledger)
        self._commit()

    def _on_set_timer_finished(self, pool, set_id):
        self.dispatch("on_feedback", FEEDBACK_SUCCESS)
        # expiry may have rewritten the stored duration text
        self._commit()

    # ------------------------------------------------------------------
    # Effects and notifications
    # ------------------------------------------------------------------

    def _run_effects(self, effects) -> None:
        for effect in effects:
            if isinstance(effect, Feedback):
                self.dispatch("on_feedback", effect.kind)
            elif isinstance(effect, StartRest):
                self.dispatch("on_timer_start", effect.seconds)
            elif isinstance(effect, StartSetTimer):
                self.timers.start(effect.set_id)
            elif isinstance(effect, StopSetTimer):
                self.timers.stop(effect.set_id)
            elif isinstance(effect, FocusNext):
                self._schedule_focus(effect.index, effect.field)
            else:
                logging.debug("Unhandled effect %r", effect)

    def _schedule_focus(self, index: int, field: str) -> None:
        if self._focus_event is not None:
            self._focus_event.cancel()
        self._focus_event = self._clock.schedule_once(
            partial(self._advance_focus, index, field), FOCUS_ADVANCE_DELAY
        )

    def _advance_focus(self, index: int, field: str, dt=None) -> None:
        self._focus_event = None
        for later in self.ledger.sets[index + 1:]:
            if not later.completed:
                self.dispatch("on_focus_request", later.id, field)
                return

    def sync(self) -> None:
        """Send totals and state if they changed since the last notification.

        Call once after binding listeners to publish the initial state.
        """
        self._commit()

    def _commit(self) -> None:
        totals = self.aggregator.totals_changed(self.ledger)
        if totals is not None:
            volume, count = totals
            self.dispatch("on_update_totals", self.exercise_id, volume, count)
        snapshot = self.aggregator.state_changed(
            self.ledger.sets, self.notes, self.timers.set_timers
        )
        if snapshot is not None:
            self.dispatch("on_state_change", snapshot)

    def close(self) -> None:
        """Cancel pending focus moves and any running set countdown."""

        if self._focus_event is not None:
            self._focus_event.cancel()
            self._focus_event = None
        self.timers.close()
