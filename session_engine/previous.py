"""Previous performance for an exercise, used as read-only fallback data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from session_engine import codec


@dataclass
class PreviousSet:
    """One set from the most recent earlier workout of the same exercise."""

    weight: float | None = None
    reps: int | None = None
    rir: int | None = None

    @property
    def total(self) -> float:
        return (self.weight or 0) * (self.reps or 0)

    def describe(self, unit: str = "kg") -> str:
        """Return the ``"60kg x 8 @ 2"`` text shown beside a set row."""

        text = f"{codec.as_text(self.weight)}{unit} x {codec.as_text(self.reps)}"
        if self.rir is not None:
            text += f" @ {codec.as_text(self.rir)}"
        return text


def _display_weight(kilograms, unit: str):
    if kilograms is None:
        return None
    return codec.round_to_half(codec.kg_to_unit(kilograms, unit))


@dataclass
class PreviousPerformance:
    """Snapshot of the last workout that included the exercise.

    ``sets`` line up by position with the sets of the current session and may
    be shorter than them.  ``date`` is passed through from the history record.
    """

    sets: List[PreviousSet] = field(default_factory=list)
    date: str | None = None

    @classmethod
    def from_history(cls, history: list[dict] | None, unit: str = "kg") -> "PreviousPerformance":
        """Build a snapshot from workout history, newest workout first.

        Weights are stored in kilograms; they are converted to ``unit`` and
        rounded to the nearest half so the fallback values match what the
        user can type.
        """

        if not history:
            return cls()
        last = history[0]
        raw_sets = last.get("sets") or []
        sets = [
            PreviousSet(
                weight=_display_weight(item.get("weight"), unit),
                reps=item.get("reps"),
                rir=item.get("rir"),
            )
            for item in raw_sets
        ]
        return cls(sets=sets, date=last.get("date_performed") or last.get("created_at"))

    def __len__(self) -> int:
        return len(self.sets)

    def at(self, index: int) -> PreviousSet | None:
        """Return the previous set at ``index`` if there is one."""

        if 0 <= index < len(self.sets):
            return self.sets[index]
        return None

    def best_set(self) -> PreviousSet | None:
        """Return the set that moved the most weight (first one on ties)."""

        best = None
        for item in self.sets:
            if best is None or item.total > best.total:
                best = item
        return best
