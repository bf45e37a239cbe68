import datetime
from dataclasses import dataclass
from typing import Optional

import pytz

from dashtiles.tools.time_tools.base_tool import TimeTool
from dashtiles.tools.time_tools.engine import TimerEngine
from dashtiles.utils.logging_handler import setup_logger

logger = setup_logger(__name__)

CLOCK_KEY = "clock"


@dataclass(frozen=True)
class ClockReading:
    time: str
    date: str

    def to_dict(self):
        return {"time": self.time, "date": self.date}


class Clock(TimeTool):
    """The live clock tile: recomputes the current time once per period."""

    def __init__(self, engine: TimerEngine, timezone_str: Optional[str] = None, period: float = 1.0,
                 time_format: str = "%H:%M:%S", date_format: str = "%Y-%m-%d"):
        super().__init__(engine, CLOCK_KEY, period)
        self.timezone_str = timezone_str
        self.time_format = time_format
        self.date_format = date_format
        self.now = Clock.get_current_datetime(timezone_str)
        self.reading = self._read(self.now)

    @staticmethod
    def get_current_utc_datetime():
        """Returns the current UTC datetime object."""
        return datetime.datetime.now(pytz.utc)

    @staticmethod
    def get_current_datetime(timezone_str=None):
        """
        Returns the current datetime object, optionally localized to a specific timezone.
        If no timezone_str is provided, or it is unknown, returns UTC datetime.
        """
        if timezone_str:
            try:
                tz = pytz.timezone(timezone_str)
                return datetime.datetime.now(pytz.utc).astimezone(tz)
            except pytz.exceptions.UnknownTimeZoneError:
                logger.warning(f"Unknown timezone '{timezone_str}'. Returning UTC datetime.")
        return Clock.get_current_utc_datetime()

    def _read(self, now):
        return ClockReading(time=now.strftime(self.time_format), date=now.strftime(self.date_format))

    def start(self):
        self._tick()
        self._schedule()
        self.on_start.emit()
        logger.info("Clock started.")

    def stop(self):
        if self._cancel():
            self.on_stop.emit()
            logger.info("Clock stopped.")

    def get_status(self):
        return {"is_running": self.is_scheduled, **self.reading.to_dict()}

    def _tick(self):
        self.now = Clock.get_current_datetime(self.timezone_str)
        self.reading = self._read(self.now)
        self.on_tick.emit(reading=self.reading)
