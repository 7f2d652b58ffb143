"""Totals and persistence snapshots derived from the set ledger.

Both outputs are diffed against the last value handed out so listeners are
only told about real changes, not about every edit that leaves the data as
it was.
"""

from __future__ import annotations

from typing import Iterable

from session_engine import codec
from session_engine.sets import Set


def completed_sets(sets: Iterable[Set]) -> list[Set]:
    """Return the completed sets that count toward totals (no warmups)."""
    return [s for s in sets if s.completed and not s.is_warmup]


def compute_totals(sets: Iterable[Set]) -> tuple[float, int]:
    """Return ``(total_volume, completed_set_count)`` for ``sets``."""

    counted = completed_sets(sets)
    volume = sum(codec.parse_number(s.total) for s in counted)
    return volume, len(counted)


def build_snapshot(sets: Iterable[Set], notes: str, set_timers: dict) -> dict:
    """Return the JSON-serialisable state of an exercise."""

    return {
        "sets": [s.to_dict() for s in sets],
        "notes": notes,
        "set_timers": dict(set_timers),
    }


def fingerprint(sets: Iterable[Set], notes: str, set_timers: dict) -> tuple:
    """Return a value describing everything persistence cares about.

    ``key`` and ``total`` are left out: the first never changes and the
    second follows from weight and reps.
    """

    rows = tuple((s.id, s.weight, s.reps, s.rir, s.completed) for s in sets)
    return rows, notes, tuple(sorted(set_timers.items()))


class SessionAggregator:
    """Remembers the last totals and state sent out for one exercise."""

    def __init__(self) -> None:
        self._last_totals: tuple[float, int] = (0, 0)
        self._last_fingerprint: tuple | None = None

    def totals_changed(self, sets: Iterable[Set]) -> tuple[float, int] | None:
        """Return the new ``(volume, count)`` if it differs from the last one."""

        totals = compute_totals(sets)
        if totals == self._last_totals:
            return None
        self._last_totals = totals
        return totals

    def state_changed(self, sets: list[Set], notes: str, set_timers: dict) -> dict | None:
        """Return a snapshot if the state differs from the last one sent."""

        current = fingerprint(sets, notes, set_timers)
        if current == self._last_fingerprint:
            return None
        self._last_fingerprint = current
        return build_snapshot(sets, notes, set_timers)
