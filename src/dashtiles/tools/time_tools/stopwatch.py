from typing import Callable, Optional

from dashtiles.core.widgets import Lap, StopwatchData, WidgetRecord, WidgetType
from dashtiles.tools.time_tools.base_tool import TimeTool
from dashtiles.tools.time_tools.engine import TimerEngine
from dashtiles.utils import Event
from dashtiles.utils.custom_exception import InputError, StorageError
from dashtiles.utils.logging_handler import setup_logger
from dashtiles.utils.time_conversions import format_ms_to_clock, now_ms

logger = setup_logger(__name__)

STOPWATCH_PERIOD = 0.01


def job_key(widget_id: str) -> str:
    return f"stopwatch:{widget_id}"


class Stopwatch(TimeTool):
    """
    Drives one stopwatch widget. States are Stopped and Running; the state
    itself lives in the widget's StopwatchData so it is persisted with the
    rest of the collection.
    """
    def __init__(
        self,
        widget: WidgetRecord,
        engine: TimerEngine,
        persist: Callable[[], None],
        period: float = STOPWATCH_PERIOD,
        clock: Callable[[], int] = now_ms,
    ):
        if widget.type != WidgetType.STOPWATCH:
            raise InputError(f"Widget {widget.id!r} is a {widget.type.value}, not a stopwatch")
        super().__init__(engine, job_key(widget.id), period)
        self.widget = widget
        self._persist = persist
        self._clock = clock
        self._persist_failing = False
        self.on_lap = Event()

    @property
    def data(self) -> StopwatchData:
        return self.widget.data

    @property
    def is_running(self):
        return self.data.is_running

    def start(self):
        if self.data.is_running:
            logger.warning(f"Stopwatch {self.widget.id} is already running.")
            return
        self.data.start_epoch_ms = self._clock() - self.data.elapsed_ms
        self.data.is_running = True
        self._schedule()
        self.on_start.emit(widget_id=self.widget.id)
        logger.info(f"Stopwatch {self.widget.id} started.")
        self._persist()

    def resume(self):
        """Re-arm the job of a stopwatch that was persisted as running, keeping its start time."""
        if self.data.is_running and not self.is_scheduled:
            self._refresh_elapsed()
            self._schedule()
            logger.info(f"Stopwatch {self.widget.id} resumed at {format_ms_to_clock(self.data.elapsed_ms)}.")

    def release(self):
        """Cancel the periodic job without touching the widget's state."""
        self._cancel()

    def stop(self):
        if not self.data.is_running:
            return
        self._refresh_elapsed()
        self.data.is_running = False
        self._cancel()
        self.on_stop.emit(widget_id=self.widget.id, elapsed_ms=self.data.elapsed_ms)
        logger.info(f"Stopwatch {self.widget.id} stopped at {format_ms_to_clock(self.data.elapsed_ms)}.")
        self._persist()

    def reset(self):
        self.stop()
        self._cancel()
        self.data.elapsed_ms = 0
        self.data.start_epoch_ms = 0
        self.data.laps = []
        self.on_reset.emit(widget_id=self.widget.id, elapsed_ms=0, elapsed_formatted=format_ms_to_clock(0))
        logger.info(f"Stopwatch {self.widget.id} reset.")
        self._persist()

    def lap(self) -> Optional[Lap]:
        if not self.data.is_running:
            logger.warning(f"Stopwatch {self.widget.id} is not running, cannot record lap.")
            return None
        self._refresh_elapsed()
        lap = self.data.add_lap(format_ms_to_clock(self.data.elapsed_ms), self._clock())
        self.on_lap.emit(widget_id=self.widget.id, lap=lap, all_laps=list(self.data.laps))
        logger.info(f"Lap {lap.number} recorded on stopwatch {self.widget.id}: {lap.formatted_time}.")
        self._persist()
        return lap

    def get_status(self):
        if self.data.is_running:
            self._refresh_elapsed()
        return {
            "is_running": self.data.is_running,
            "elapsed_ms": self.data.elapsed_ms,
            "elapsed_formatted": format_ms_to_clock(self.data.elapsed_ms),
            "laps": [lap.to_dict() for lap in self.data.laps],
        }

    def _refresh_elapsed(self):
        self.data.elapsed_ms = max(0, self._clock() - self.data.start_epoch_ms)

    def _tick(self):
        if not self.data.is_running:
            self._cancel()
            return
        self._refresh_elapsed()
        try:
            self._persist()
        except StorageError as e:
            # warn once per failure streak; the in-memory value stays authoritative
            if not self._persist_failing:
                logger.warning(f"Stopwatch {self.widget.id} tick could not be saved: {e}")
            self._persist_failing = True
        else:
            self._persist_failing = False
        self.on_tick.emit(elapsed_ms=self.data.elapsed_ms, elapsed_formatted=format_ms_to_clock(self.data.elapsed_ms))
