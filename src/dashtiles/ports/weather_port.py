# ports.py
from abc import ABC, abstractmethod
from dashtiles.tools.weather_tools.core import WeatherReading


class WeatherServicePort(ABC):
    def __init__(self):
        self.extra = {}

    @abstractmethod
    def get_current_weather(self, location: str) -> WeatherReading:
        """Raises ProviderError when the service is unreachable or returns junk."""
        pass
