"""Fetch helpers that turn provider failures into fallback outcomes."""

from typing import List

from dashtiles.core.results import Outcome
from dashtiles.ports.phase_table_port import PhaseTableSourcePort
from dashtiles.ports.weather_port import WeatherServicePort
from dashtiles.tools.moon_tools.moon_phase import FALLBACK_PHASE_TABLE, PhaseRange
from dashtiles.tools.weather_tools.core import PLACEHOLDER_WEATHER, WeatherReading
from dashtiles.utils.custom_exception import ProviderError
from dashtiles.utils.logging_handler import setup_logger

logger = setup_logger(__name__)


def fetch_phase_table(source: PhaseTableSourcePort) -> Outcome[List[PhaseRange]]:
    try:
        phases = list(source.fetch() or [])
        if not phases:
            raise ProviderError("Phase table source returned no phases")
    except ProviderError as e:
        logger.warning(f"Phase table unavailable, using built-in fallback: {e}")
        return Outcome.fallback(list(FALLBACK_PHASE_TABLE), str(e))
    except Exception as e:
        logger.exception(f"Unexpected error from phase table source, using built-in fallback: {e}")
        return Outcome.fallback(list(FALLBACK_PHASE_TABLE), str(e))
    return Outcome.success(phases)


def fetch_weather(provider: WeatherServicePort, location: str) -> Outcome[WeatherReading]:
    try:
        reading = provider.get_current_weather(location)
    except ProviderError as e:
        logger.warning(f"Weather unavailable for {location}: {e}")
        return Outcome.fallback(PLACEHOLDER_WEATHER, str(e))
    except Exception as e:
        logger.exception(f"Unexpected error from weather provider for {location}: {e}")
        return Outcome.fallback(PLACEHOLDER_WEATHER, str(e))
    return Outcome.success(reading)
