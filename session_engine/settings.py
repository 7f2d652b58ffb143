"""Feature switches for the session engine and the JSON file they live in.

The settings are stored as a list of dictionaries to preserve order.
Each dictionary contains ``key``, ``value`` and ``type`` entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import json
import logging
from typing import Any, List, Dict

from session_engine import (
    DEFAULT_REST_TIME,
    TIMER_TYPE_EXERCISE,
    TIMER_TYPE_SET,
    TIMER_TYPES,
    WEIGHT_UNITS,
)

# Path to the JSON file where settings are persisted.
SETTINGS_PATH = Path(__file__).resolve().parents[1] / "data" / "settings.json"

# Default settings to initialize the file on first run.
DEFAULT_SETTINGS: List[Dict[str, Any]] = [
    {"key": "show_previous_performance", "value": True, "type": "bool"},
    {"key": "rest_timer_enabled", "value": True, "type": "bool"},
    {"key": "timer_type", "value": TIMER_TYPE_EXERCISE, "type": "choice"},
    {"key": "rest_time", "value": DEFAULT_REST_TIME, "type": "int"},
    {"key": "weight_unit", "value": "kg", "type": "choice"},
]

# Internal cache so settings are only read from disk once.
_settings_cache: List[Dict[str, Any]] | None = None


def load_settings() -> List[Dict[str, Any]]:
    """Load settings from :data:`SETTINGS_PATH` or create defaults."""
    if SETTINGS_PATH.exists():
        try:
            with SETTINGS_PATH.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
                if isinstance(data, list):
                    return data
        except (OSError, json.JSONDecodeError):
            logging.exception("Could not read settings from %s", SETTINGS_PATH)
    save_settings(DEFAULT_SETTINGS)
    return [item.copy() for item in DEFAULT_SETTINGS]


def save_settings(settings: List[Dict[str, Any]]) -> None:
    """Persist ``settings`` to :data:`SETTINGS_PATH`."""
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    with SETTINGS_PATH.open("w", encoding="utf-8") as fh:
        json.dump(settings, fh)


def get_settings() -> List[Dict[str, Any]]:
    """Return the cached settings list, loading from disk if needed."""
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = load_settings()
    return _settings_cache


def clear_cache() -> None:
    """Forget cached settings so the next read goes back to disk."""
    global _settings_cache
    _settings_cache = None


def get_value(key: str, default: Any = None) -> Any:
    """Fetch the value associated with ``key``."""
    for item in get_settings():
        if item.get("key") == key:
            return item.get("value")
    return default


def set_value(key: str, value: Any) -> None:
    """Update ``key`` with ``value`` and persist the change."""
    settings = get_settings()
    for item in settings:
        if item.get("key") == key:
            item["value"] = value
            break
    else:
        settings.append({"key": key, "value": value, "type": type(value).__name__})
    save_settings(settings)


@dataclass(frozen=True)
class FeatureConfig:
    """The switches that change how a set completion behaves.

    ``rest_time`` is the starting exercise-level rest in seconds and
    ``weight_unit`` the unit previous-performance weights are shown in.
    """

    show_previous_performance: bool = True
    rest_timer_enabled: bool = True
    timer_type: str = TIMER_TYPE_EXERCISE
    rest_time: int = DEFAULT_REST_TIME
    weight_unit: str = "kg"

    def __post_init__(self) -> None:
        if self.timer_type not in TIMER_TYPES:
            raise ValueError(f"Unknown timer type '{self.timer_type}'")
        if self.weight_unit not in WEIGHT_UNITS:
            raise ValueError(f"Unknown weight unit '{self.weight_unit}'")

    @property
    def per_set_timers(self) -> bool:
        return self.timer_type == TIMER_TYPE_SET

    @property
    def exercise_timer(self) -> bool:
        return self.timer_type == TIMER_TYPE_EXERCISE

    @classmethod
    def from_settings(cls) -> "FeatureConfig":
        """Build the configuration from the persisted settings."""

        return cls(
            show_previous_performance=bool(get_value("show_previous_performance", True)),
            rest_timer_enabled=bool(get_value("rest_timer_enabled", True)),
            timer_type=get_value("timer_type", TIMER_TYPE_EXERCISE),
            rest_time=int(get_value("rest_time", DEFAULT_REST_TIME)),
            weight_unit=get_value("weight_unit", "kg"),
        )
