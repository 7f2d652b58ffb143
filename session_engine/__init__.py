"""Shared constants for the active workout session engine."""

from __future__ import annotations

# Display id given to warmup sets; they are never renumbered
WARMUP_SET_ID = "W"

# Default exercise-level rest time in seconds (2:30)
DEFAULT_REST_TIME = 150

# Step used by the +/- buttons of the exercise-level rest timer
REST_TIME_STEP = 10

# Rest time presets offered to the user; 0 turns the timer off
REST_TIME_PRESETS = [0, 30, 60, 90, 120, 150, 180]

# Default countdown for a set when per-set timers are in use
DEFAULT_SET_TIMER = "3:00"

# Delay before focusing the next set after a completion, in seconds
FOCUS_ADVANCE_DELAY = 0.1

TIMER_TYPE_EXERCISE = "exercise"
TIMER_TYPE_SET = "set"
TIMER_TYPES = (TIMER_TYPE_EXERCISE, TIMER_TYPE_SET)

# Previous weights are stored in kg and may be shown in either unit
WEIGHT_UNITS = ("kg", "lbs")

__all__ = [
    "WARMUP_SET_ID",
    "DEFAULT_REST_TIME",
    "REST_TIME_STEP",
    "REST_TIME_PRESETS",
    "DEFAULT_SET_TIMER",
    "FOCUS_ADVANCE_DELAY",
    "TIMER_TYPE_EXERCISE",
    "TIMER_TYPE_SET",
    "TIMER_TYPES",
    "WEIGHT_UNITS",
]
