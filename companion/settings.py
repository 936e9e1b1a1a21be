"""User settings stored next to the manual location file."""

import json
import logging
import math
import os

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".prayer_companion")
SETTINGS_FILE = os.path.join(CONFIG_DIR, "settings.json")

# Aladhan method ids: 2 = ISNA, 3 = MWL, 4 = Umm al-Qura, 5 = Egypt, 11 = Singapore, 13 = Turkey
DEFAULT_SETTINGS = {
    "method": 3,
    "reminder_minutes": [10, 5],
    "alignment_tolerance": 5.0,
    "log_level": "INFO",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _coerce(key: str, value):
    default = DEFAULT_SETTINGS[key]
    if key == "reminder_minutes":
        minutes = sorted({int(m) for m in value if int(m) > 0}, reverse=True)
        return minutes
    if key == "log_level":
        level = str(value).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level
    if key == "alignment_tolerance":
        tolerance = float(value)
        if not (math.isfinite(tolerance) and 0.0 <= tolerance <= 180.0):
            raise ValueError(f"Alignment tolerance out of range: {value}")
        return tolerance
    return type(default)(value)


def load_settings() -> dict:
    """Return settings with defaults filled in. A missing or corrupt file yields the defaults."""
    settings = {k: (list(v) if isinstance(v, list) else v) for k, v in DEFAULT_SETTINGS.items()}
    if not os.path.isfile(SETTINGS_FILE):
        return settings
    try:
        with open(SETTINGS_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", SETTINGS_FILE, exc)
        return settings
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: not a JSON object", SETTINGS_FILE)
        return settings

    for key in DEFAULT_SETTINGS:
        if key not in data:
            continue
        try:
            settings[key] = _coerce(key, data[key])
        except (TypeError, ValueError):
            logger.warning("Invalid value for %r in settings: %r", key, data[key])
    return settings


def save_settings(settings: dict) -> None:
    os.makedirs(CONFIG_DIR, exist_ok=True)
    known = {k: settings[k] for k in DEFAULT_SETTINGS if k in settings}
    with open(SETTINGS_FILE, "w", encoding="utf-8") as f:
        json.dump(known, f, indent=2)
