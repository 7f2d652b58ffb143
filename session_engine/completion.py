"""State transition run when a set's checkbox is toggled.

:func:`toggle_completion` never touches timers, haptics or input focus
itself.  It returns the updated set together with a list of effects and the
caller decides how to carry them out.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Union

from session_engine import DEFAULT_REST_TIME
from session_engine import codec
from session_engine.previous import PreviousPerformance
from session_engine.sets import Set
from session_engine.settings import FeatureConfig

FEEDBACK_LIGHT = "light"
FEEDBACK_MEDIUM = "medium"
FEEDBACK_SUCCESS = "success"


@dataclass(frozen=True)
class Feedback:
    """Haptic feedback of the given ``kind``."""

    kind: str


@dataclass(frozen=True)
class FocusNext:
    """Move input focus to the next incomplete set after ``index``."""

    index: int
    field: str = "weight"


@dataclass(frozen=True)
class StartRest:
    """Start the workout-wide rest countdown."""

    seconds: int


@dataclass(frozen=True)
class StartSetTimer:
    set_id: str


@dataclass(frozen=True)
class StopSetTimer:
    set_id: str


Effect = Union[Feedback, FocusNext, StartRest, StartSetTimer, StopSetTimer]


@dataclass
class ExerciseTemplate:
    """Target ranges a routine defines for an exercise, all optional."""

    rep_range_min: int | None = None
    rep_range_max: int | None = None
    rir_range_min: int | None = None
    rir_range_max: int | None = None

    @staticmethod
    def _range(low, high) -> str | None:
        if low is None or high is None:
            return None
        return f"{low}-{high}"

    @property
    def rep_range(self) -> str | None:
        return self._range(self.rep_range_min, self.rep_range_max)

    @property
    def rir_range(self) -> str | None:
        return self._range(self.rir_range_min, self.rir_range_max)

    @classmethod
    def from_dict(cls, data: dict | None) -> "ExerciseTemplate":
        data = data or {}
        return cls(
            rep_range_min=data.get("rep_range_min"),
            rep_range_max=data.get("rep_range_max"),
            rir_range_min=data.get("rir_range_min"),
            rir_range_max=data.get("rir_range_max"),
        )


@dataclass
class CompletionResult:
    set: Set
    effects: List[Effect] = field(default_factory=list)

    def of_type(self, effect_type) -> list:
        return [e for e in self.effects if isinstance(e, effect_type)]


def _fallbacks(index, template, previous, config):
    """Return the (weight, reps, rir) values used for blanks, ``None`` if absent."""

    template = template or ExerciseTemplate()
    prev = None
    if config.show_previous_performance and previous is not None:
        prev = previous.at(index)

    weight = codec.as_text(prev.weight) if prev is not None else None

    reps = template.rep_range
    if reps is None and prev is not None:
        reps = codec.as_text(prev.reps)

    rir = template.rir_range
    if rir is None and prev is not None and prev.rir is not None:
        rir = codec.as_text(prev.rir)
    return weight, reps, rir


def toggle_completion(
    current: Set,
    index: int,
    *,
    template: ExerciseTemplate | None = None,
    previous: PreviousPerformance | None = None,
    config: FeatureConfig | None = None,
    rest_time: int = DEFAULT_REST_TIME,
    focused: bool = False,
) -> CompletionResult:
    """Flip ``current.completed`` and work out the consequences.

    Completing a set fills every blank field, template range first and then
    the previous workout's value at the same ``index``, and collapses reps
    and RIR ranges to their lower bound.  Fields that already hold a value
    are left alone.  ``focused`` tells whether one of the set's inputs had
    keyboard focus when the box was ticked.
    """

    config = config or FeatureConfig()

    if current.completed:
        effects: List[Effect] = [Feedback(FEEDBACK_LIGHT)]
        if config.per_set_timers:
            effects.append(StopSetTimer(current.id))
        return CompletionResult(replace(current, completed=False), effects)

    fill_weight, fill_reps, fill_rir = _fallbacks(index, template, previous, config)

    weight = current.weight.strip()
    if not weight and fill_weight:
        weight = fill_weight

    reps = current.reps.strip()
    if not reps and fill_reps:
        reps = fill_reps

    rir = current.rir.strip()
    if not rir and fill_rir:
        rir = fill_rir

    reps = codec.collapse_range(reps)
    rir = codec.collapse_range(rir)

    completed = replace(
        current,
        weight=weight,
        reps=reps,
        rir=rir,
        total=codec.derive_total(weight, reps),
        completed=True,
    )

    effects = [Feedback(FEEDBACK_SUCCESS)]
    if focused:
        effects.append(FocusNext(index))
    if config.rest_timer_enabled:
        if config.exercise_timer:
            effects.append(StartRest(rest_time))
        elif config.per_set_timers:
            effects.append(StartSetTimer(current.id))
    return CompletionResult(completed, effects)


def field_hints(
    index: int,
    *,
    template: ExerciseTemplate | None = None,
    previous: PreviousPerformance | None = None,
    config: FeatureConfig | None = None,
) -> dict[str, str]:
    """Return the placeholder text for each input of the set at ``index``.

    The hints show the same values a completion would fill in.
    """

    weight, reps, rir = _fallbacks(index, template, previous, config or FeatureConfig())
    return {
        "weight": weight or "0",
        "reps": reps or "0",
        "rir": rir or "0",
    }
