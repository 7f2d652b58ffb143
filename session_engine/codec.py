"""Pure helpers for sanitising and parsing the text typed into a set row.

Every value the user types is cleaned rather than rejected: unexpected
characters are stripped and numeric parsing of whatever is left falls back
to ``0``.  Nothing in this module raises on bad input.
"""

from __future__ import annotations

import math
import re

WEIGHT_MAX_LENGTH = 7
REPS_MAX_LENGTH = 7
RIR_MAX_LENGTH = 5

KG_TO_LBS = 2.20462

_NOT_WEIGHT = re.compile(r"[^0-9.]")
_NOT_RANGE = re.compile(r"[^0-9-]")
_NOT_DIGIT = re.compile(r"[^0-9]")
_LEADING_INT = re.compile(r"^(\d+)")
_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)")
_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")


def _collapse(text: str, separator: str) -> str:
    """Keep the first ``separator`` in ``text`` and drop any later ones."""

    parts = text.split(separator)
    if len(parts) > 2:
        return parts[0] + separator + "".join(parts[1:])
    return text


def sanitize_weight(raw: str | None) -> str:
    """Return ``raw`` reduced to digits and a single decimal point."""

    cleaned = _collapse(_NOT_WEIGHT.sub("", raw or ""), ".")
    return cleaned[:WEIGHT_MAX_LENGTH]


def sanitize_reps(raw: str | None) -> str:
    """Return ``raw`` reduced to a whole number or a ``lo-hi`` range."""

    cleaned = _collapse(_NOT_RANGE.sub("", raw or ""), "-")
    return cleaned[:REPS_MAX_LENGTH]


def sanitize_rir(raw: str | None) -> str:
    """Same as :func:`sanitize_reps` with a shorter length limit."""

    cleaned = _collapse(_NOT_RANGE.sub("", raw or ""), "-")
    return cleaned[:RIR_MAX_LENGTH]


def parse_number(text) -> float:
    """Parse the numeric prefix of ``text`` as a float, ``0.0`` if none."""

    if text is None:
        return 0.0
    match = _NUMBER_PREFIX.match(str(text))
    if not match:
        return 0.0
    return float(match.group(0))


def parse_int(text) -> int:
    """Parse the integer prefix of ``text``, ``0`` if none."""

    if text is None:
        return 0
    match = _INT_PREFIX.match(str(text))
    return int(match.group(0)) if match else 0


def reduce_range(text: str | None) -> int:
    """Return the lower bound of ``"lo-hi"`` or the value of a plain number.

    ``"8-12"`` gives ``8`` and ``"10"`` gives ``10``.  Text that does not
    start with a digit gives ``0``.
    """

    match = _LEADING_INT.match(text or "")
    return int(match.group(1)) if match else 0


def collapse_range(text: str) -> str:
    """Replace a ``lo-hi`` range with its lower bound, e.g. ``"8-12"`` -> ``"8"``."""

    if "-" in text:
        match = _LEADING_INT.match(text)
        if match:
            return match.group(1)
    return text


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def derive_total(weight: str, reps: str) -> str:
    """Return ``round(weight * reps)`` as text.

    A reps range counts as its lower bound, so ``"8-12"`` reps at ``"50"``
    gives ``"400"``.
    """

    return str(round_half_up(parse_number(weight) * reduce_range(reps)))


# ----------------------------------------------------------------------
# Timer text
# ----------------------------------------------------------------------


def format_timer_input(raw: str | None) -> str:
    """Format digits typed into a set timer field.

    One or two digits are kept as typed (seconds while editing).  With three
    or more digits the last two become seconds (capped at 59) and the rest
    minutes (capped at 99): ``"930"`` -> ``"9:30"``, ``"3000"`` -> ``"30:00"``.
    """

    digits = _NOT_DIGIT.sub("", raw or "")
    if len(digits) <= 2:
        return digits
    minutes = min(int(digits[:-2]), 99)
    seconds = min(int(digits[-2:]), 59)
    return f"{minutes}:{seconds:02d}"


def parse_duration(text: str | None) -> int:
    """Return the number of seconds described by ``"M:SS"`` or ``"SS"``."""

    if not text:
        return 0
    cleaned = text.strip()
    if ":" in cleaned:
        parts = cleaned.split(":")
        return parse_int(parts[0]) * 60 + parse_int(parts[1])
    return parse_int(cleaned)


def normalize_timer_value(text: str) -> str:
    """Rewrite a bare one or two digit timer value as ``00:SS``."""

    if not text or ":" in text:
        return text
    digits = _NOT_DIGIT.sub("", text)
    if 0 < len(digits) <= 2:
        return f"00:{int(digits):02d}"
    return text


def format_countdown(seconds: int) -> str:
    """Render remaining seconds as ``M:SS``."""

    if not seconds:
        return "0:00"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def format_rest_time(seconds: int) -> str:
    """Render the exercise rest time as ``MM:SS``, or ``Off`` for zero."""

    if seconds == 0:
        return "Off"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


# ----------------------------------------------------------------------
# Stored weights
# ----------------------------------------------------------------------


def round_to_half(value) -> float:
    """Round ``value`` to the nearest whole or half unit."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if math.isnan(value):
        return 0.0
    # strip float noise before rounding so 2.4999999999 becomes 2.5
    return math.floor(round(value, 10) * 2 + 0.5) / 2


def kg_to_unit(value, unit: str = "kg") -> float:
    """Convert a stored kilogram value to the display ``unit``."""

    if value is None:
        return 0.0
    if unit == "lbs":
        return value * KG_TO_LBS
    return value


def as_text(value) -> str:
    """Render a snapshot value the way it is shown in an input field."""

    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
