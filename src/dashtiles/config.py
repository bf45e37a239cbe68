import datetime
import os
from dataclasses import dataclass
from typing import Optional

import dotenv
import pytz

from dashtiles.core.widget_store import STORAGE_KEY
from dashtiles.tools.moon_tools.moon_phase import LUNAR_CYCLE_DAYS, REFERENCE_NEW_MOON
from dashtiles.utils.custom_exception import InputError

ENV_PREFIX = "DASHTILES_"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    return default if value in (None, "") else value


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise InputError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None


def parse_timestamp(value: str) -> datetime.datetime:
    """ISO-8601 timestamp; a trailing 'Z' and naive values are read as UTC."""
    try:
        parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise InputError(f"Not an ISO-8601 timestamp: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed


@dataclass
class Settings:
    """
    Runtime configuration. ``from_env`` reads a ``.env`` file (python-dotenv)
    and then the ``DASHTILES_*`` variables:

        DASHTILES_DB_PATH            sqlite file holding the widget slot
        DASHTILES_STORAGE_KEY        slot name (customWidgets)
        DASHTILES_WEATHER_LOCATION   wttr.in location (Moscow)
        DASHTILES_PHASE_TABLE_URL    phase table document; bundled file when unset
        DASHTILES_REFERENCE_NEW_MOON ISO timestamp of a known new moon
        DASHTILES_CYCLE_LENGTH_DAYS  synodic month length
        DASHTILES_TIMEZONE           pytz zone for the clock tile
        DASHTILES_HTTP_TIMEOUT       seconds per provider request
        DASHTILES_CLOCK_PERIOD       clock tick, seconds
        DASHTILES_STOPWATCH_PERIOD   stopwatch tick, seconds
    """
    db_path: str = "dashtiles.db"
    storage_key: str = STORAGE_KEY
    weather_location: str = "Moscow"
    phase_table_url: Optional[str] = None
    reference_new_moon: datetime.datetime = REFERENCE_NEW_MOON
    cycle_length_days: float = LUNAR_CYCLE_DAYS
    timezone: Optional[str] = None
    http_timeout: float = 10.0
    clock_period: float = 1.0
    stopwatch_period: float = 0.01

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        dotenv.load_dotenv(dotenv_path)
        defaults = cls()
        reference = _env("REFERENCE_NEW_MOON")
        return cls(
            db_path=_env("DB_PATH", defaults.db_path),
            storage_key=_env("STORAGE_KEY", defaults.storage_key),
            weather_location=_env("WEATHER_LOCATION", defaults.weather_location),
            phase_table_url=_env("PHASE_TABLE_URL"),
            reference_new_moon=parse_timestamp(reference) if reference else defaults.reference_new_moon,
            cycle_length_days=_env_float("CYCLE_LENGTH_DAYS", defaults.cycle_length_days),
            timezone=_env("TIMEZONE"),
            http_timeout=_env_float("HTTP_TIMEOUT", defaults.http_timeout),
            clock_period=_env_float("CLOCK_PERIOD", defaults.clock_period),
            stopwatch_period=_env_float("STOPWATCH_PERIOD", defaults.stopwatch_period),
        )
