# weathercore.py
from dataclasses import dataclass, field
from typing import Any, Dict

NO_DATA = "No data"
LOAD_FAILED = "Failed to load"


@dataclass(frozen=True)
class WeatherReading:
    temperature: str
    description: str
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"temperature": self.temperature, "description": self.description}


PLACEHOLDER_WEATHER = WeatherReading(temperature=NO_DATA, description=LOAD_FAILED)
