"""The ordered list of sets logged for one exercise.

Sets are identified two ways.  ``id`` is what the user sees: ``"W"`` for a
warmup or the position among regular sets (``"1"``, ``"2"``...), and it is
rewritten whenever a set is deleted.  ``key`` is minted once by the ledger
and never changes, so callers can track a row across renumbering.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, replace
from typing import Iterator

from session_engine import WARMUP_SET_ID
from session_engine import codec

_KEY_PATTERN = re.compile(r"^set-(\d+)$")


@dataclass
class Set:
    """A single row of an exercise: weight x reps with optional RIR."""

    id: str
    key: str = ""
    weight: str = ""
    reps: str = ""
    rir: str = ""
    total: str = ""
    completed: bool = False

    @property
    def is_warmup(self) -> bool:
        return self.id == WARMUP_SET_ID

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Set":
        """Build a set from a stored dictionary, tolerating missing fields."""

        return cls(
            id=str(data.get("id", "")),
            key=data.get("key") or "",
            weight=codec.as_text(data.get("weight")),
            reps=codec.as_text(data.get("reps")),
            rir=codec.as_text(data.get("rir")),
            total=codec.as_text(data.get("total")),
            completed=bool(data.get("completed", False)),
        )


class SetLedger:
    """Owns the sets of one exercise instance and their identity keys."""

    def __init__(self, sets: list | None = None) -> None:
        self._next_key = 1
        loaded = [s if isinstance(s, Set) else Set.from_dict(s) for s in sets or []]
        self._sets: list[Set] = self._ensure_keys(loaded)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def _mint_key(self) -> str:
        key = f"set-{self._next_key}"
        self._next_key += 1
        return key

    def _ensure_keys(self, sets: list[Set]) -> list[Set]:
        """Advance the key counter past existing keys, then fill in blanks.

        Both passes are needed: a restored session can contain ``set-7``
        after a set with no key, and the blank one must not get ``set-7``.
        """

        for item in sets:
            match = _KEY_PATTERN.match(item.key or "")
            if match:
                self._next_key = max(self._next_key, int(match.group(1)) + 1)
        return [
            item if item.key else replace(item, key=self._mint_key())
            for item in sets
        ]

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._sets)

    def __iter__(self) -> Iterator[Set]:
        return iter(list(self._sets))

    def __getitem__(self, index: int) -> Set:
        return self._sets[index]

    @property
    def sets(self) -> list[Set]:
        """Return a copy of the current set list."""
        return list(self._sets)

    def index_of(self, set_id: str) -> int | None:
        """Return the position of the first set with ``set_id``."""

        for idx, item in enumerate(self._sets):
            if item.id == set_id:
                return idx
        return None

    def get(self, set_id: str) -> Set | None:
        idx = self.index_of(set_id)
        return None if idx is None else self._sets[idx]

    def to_list(self) -> list[dict]:
        return [item.to_dict() for item in self._sets]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _next_regular_id(self) -> str:
        numbers = [codec.parse_int(s.id) for s in self._sets if not s.is_warmup]
        return str(max(numbers) + 1) if numbers else "1"

    def seed(self, count: int = 1) -> list[Set]:
        """Fill an empty ledger with ``count`` blank sets (at least one)."""

        if self._sets:
            return []
        return [self.add_set() for _ in range(max(1, count))]

    def add_set(self) -> Set:
        """Append a blank regular set and return it."""

        new_set = Set(id=self._next_regular_id(), key=self._mint_key())
        self._sets.append(new_set)
        return new_set

    def delete_set(self, set_id: str) -> dict[str, str] | None:
        """Remove the set with ``set_id`` and renumber the regular sets.

        Returns a mapping of old id to new id for every surviving set
        (warmups map to themselves), or ``None`` if no set has ``set_id``.
        """

        idx = self.index_of(set_id)
        if idx is None:
            logging.debug("delete_set: no set with id %r", set_id)
            return None
        del self._sets[idx]

        mapping: dict[str, str] = {}
        number = 1
        renumbered: list[Set] = []
        for item in self._sets:
            if item.is_warmup:
                mapping[WARMUP_SET_ID] = WARMUP_SET_ID
                renumbered.append(item)
                continue
            new_id = str(number)
            number += 1
            mapping[item.id] = new_id
            renumbered.append(item if item.id == new_id else replace(item, id=new_id))
        self._sets = renumbered
        return mapping

    def _update(self, set_id: str, **changes) -> Set | None:
        idx = self.index_of(set_id)
        if idx is None:
            logging.debug("No set with id %r to update", set_id)
            return None
        updated = replace(self._sets[idx], **changes)
        self._sets[idx] = updated
        return updated

    def set_weight(self, set_id: str, raw: str) -> Set | None:
        current = self.get(set_id)
        if current is None:
            return None
        weight = codec.sanitize_weight(raw)
        return self._update(
            set_id, weight=weight, total=codec.derive_total(weight, current.reps)
        )

    def set_reps(self, set_id: str, raw: str) -> Set | None:
        current = self.get(set_id)
        if current is None:
            return None
        reps = codec.sanitize_reps(raw)
        return self._update(
            set_id, reps=reps, total=codec.derive_total(current.weight, reps)
        )

    def set_rir(self, set_id: str, raw: str) -> Set | None:
        return self._update(set_id, rir=codec.sanitize_rir(raw))

    def replace(self, index: int, new_set: Set) -> Set:
        """Store ``new_set`` at ``index`` keeping the existing key."""

        current = self._sets[index]
        stored = replace(new_set, key=current.key)
        self._sets[index] = stored
        return stored
