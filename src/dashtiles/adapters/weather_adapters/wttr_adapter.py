from urllib.parse import quote

import requests

from dashtiles.ports.weather_port import WeatherServicePort
from dashtiles.tools.weather_tools.core import WeatherReading
from dashtiles.utils.custom_exception import ProviderError
from dashtiles.utils.logging_handler import setup_logger

logger = setup_logger(__name__)


class WttrAdapter(WeatherServicePort):
    """Current conditions from wttr.in's JSON format (``?format=j1``)."""

    BASE_URL = "https://wttr.in"

    def __init__(self, timeout: float = 10.0, session: requests.Session = None):
        super().__init__()  # ensures self.extra = {}
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_current_weather(self, location: str) -> WeatherReading:
        url = f"{self.BASE_URL}/{quote(location)}"
        try:
            response = self.session.get(url, params={"format": "j1"}, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(f"Weather request for '{location}' failed: {e}") from e

        try:
            current = data["current_condition"][0]
            temperature = f"{current['temp_C']}°C"
            description = current["weatherDesc"][0]["value"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Unexpected weather payload for '{location}': {e!r}") from e

        self.extra = {k: v for k, v in current.items() if k not in ("temp_C", "weatherDesc")}
        logger.info(f"Weather for {location}: {temperature}, {description}.")
        return WeatherReading(temperature, description, self.extra)
