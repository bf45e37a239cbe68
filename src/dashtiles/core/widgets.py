from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from dashtiles.utils.custom_exception import InputError

MAX_LAPS = 20


class WidgetType(Enum):
    BASIC = "basic"
    COUNTER = "counter"
    NOTES = "notes"
    STOPWATCH = "stopwatch"

    @classmethod
    def parse(cls, value: Union[str, "WidgetType"]) -> "WidgetType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InputError(f"Unknown widget type: {value!r}") from None


WIDGET_ICONS = {
    WidgetType.NOTES: "document-text",
    WidgetType.COUNTER: "stats-chart",
    WidgetType.STOPWATCH: "stopwatch",
    WidgetType.BASIC: "text",
}

DEFAULT_TITLES = {
    WidgetType.NOTES: "My notes",
    WidgetType.COUNTER: "My counter",
    WidgetType.STOPWATCH: "Stopwatch",
    WidgetType.BASIC: "My text",
}


@dataclass
class TextData:
    content: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextData":
        return cls(content=str(data.get("content") or ""))


@dataclass
class CounterData:
    value: int = 0

    def increment(self) -> None:
        self.value += 1

    def decrement(self) -> None:
        self.value = max(0, self.value - 1)

    def reset(self) -> None:
        self.value = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CounterData":
        return cls(value=max(0, int(data.get("value", 0))))


@dataclass
class Lap:
    number: int
    formatted_time: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "formattedTime": self.formatted_time,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lap":
        # "time" is the key older blobs used for the formatted lap
        formatted = data.get("formattedTime", data.get("time", ""))
        return cls(
            number=int(data["number"]),
            formatted_time=str(formatted),
            timestamp=int(data.get("timestamp", 0)),
        )


@dataclass
class StopwatchData:
    elapsed_ms: int = 0
    is_running: bool = False
    start_epoch_ms: int = 0
    laps: List[Lap] = field(default_factory=list)

    def add_lap(self, formatted_time: str, timestamp: int) -> Lap:
        """Prepend a lap and keep only the most recent MAX_LAPS."""
        number = self.laps[0].number + 1 if self.laps else 1
        lap = Lap(number=number, formatted_time=formatted_time, timestamp=timestamp)
        self.laps.insert(0, lap)
        del self.laps[MAX_LAPS:]
        return lap

    def to_dict(self) -> Dict[str, Any]:
        return {
            "elapsedMs": self.elapsed_ms,
            "isRunning": self.is_running,
            "startEpochMs": self.start_epoch_ms,
            "laps": [lap.to_dict() for lap in self.laps],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StopwatchData":
        elapsed = data.get("elapsedMs", data.get("time", 0))
        start = data.get("startEpochMs", data.get("startTime", 0))
        laps = [Lap.from_dict(lap) for lap in data.get("laps") or []]
        return cls(
            elapsed_ms=max(0, int(elapsed)),
            # only a real boolean marks a stopwatch as running
            is_running=data.get("isRunning") is True,
            start_epoch_ms=int(start or 0),
            laps=laps[:MAX_LAPS],
        )


WidgetData = Union[TextData, CounterData, StopwatchData]

_DATA_TYPES = {
    WidgetType.BASIC: TextData,
    WidgetType.NOTES: TextData,
    WidgetType.COUNTER: CounterData,
    WidgetType.STOPWATCH: StopwatchData,
}


def initial_data(widget_type: WidgetType, content: Optional[str] = None) -> WidgetData:
    """Default payload for a freshly created widget of the given type."""
    if widget_type == WidgetType.COUNTER:
        return CounterData()
    if widget_type == WidgetType.STOPWATCH:
        return StopwatchData()
    return TextData(content=content or "")


@dataclass
class WidgetRecord:
    id: str
    title: str
    type: WidgetType
    icon: str
    data: WidgetData

    def __post_init__(self):
        expected = _DATA_TYPES[self.type]
        if not isinstance(self.data, expected):
            raise InputError(
                f"Widget {self.id!r} of type {self.type.value} needs {expected.__name__}, "
                f"got {type(self.data).__name__}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "icon": self.icon,
            "data": self.data.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "WidgetRecord":
        """
        Rebuild a record from its persisted form.

        Raises:
            InputError: unknown type or missing id.
            KeyError, TypeError, ValueError, OverflowError: malformed payload fields.
        """
        widget_type = WidgetType.parse(raw.get("type"))
        widget_id = raw.get("id")
        if widget_id in (None, ""):
            raise InputError("Widget record has no id")
        data = _DATA_TYPES[widget_type].from_dict(raw.get("data") or {})
        return cls(
            id=str(widget_id),
            title=str(raw.get("title") or DEFAULT_TITLES[widget_type]),
            type=widget_type,
            icon=str(raw.get("icon") or WIDGET_ICONS[widget_type]),
            data=data,
        )


@dataclass(frozen=True)
class WidgetRequest:
    """What a prompt yields: the chosen type, a title and optional text content."""
    type: WidgetType
    title: str = ""
    content: Optional[str] = None
