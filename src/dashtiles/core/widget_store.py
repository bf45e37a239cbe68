import json
from typing import Callable, Dict, List, Optional, Union

from dashtiles.core.widgets import (
    DEFAULT_TITLES,
    WIDGET_ICONS,
    CounterData,
    TextData,
    WidgetRecord,
    WidgetType,
    initial_data,
)
from dashtiles.ports.storage_port import KeyValueStorePort
from dashtiles.tools.time_tools.engine import TimerEngine
from dashtiles.tools.time_tools.stopwatch import STOPWATCH_PERIOD, Stopwatch
from dashtiles.utils.custom_exception import InputError, StorageError, WidgetNotFoundError
from dashtiles.utils.logging_handler import setup_logger
from dashtiles.utils.time_conversions import now_ms

logger = setup_logger(__name__)

STORAGE_KEY = "customWidgets"

COUNTER_OPERATIONS = {
    "increment": CounterData.increment,
    "decrement": CounterData.decrement,
    "reset": CounterData.reset,
}


class WidgetStateStore:
    """
    The user's widgets, in display order, mirrored to one key-value slot.

    Every state change is followed by a full overwrite of the slot. When a
    write fails, StorageError reaches the caller and the in-memory collection
    stays the source of truth until the next successful save.
    """

    def __init__(
        self,
        storage: KeyValueStorePort,
        engine: TimerEngine,
        key: str = STORAGE_KEY,
        clock: Callable[[], int] = now_ms,
        stopwatch_period: float = STOPWATCH_PERIOD,
    ):
        self.storage = storage
        self.engine = engine
        self.key = key
        self._clock = clock
        self.stopwatch_period = stopwatch_period
        self._records: List[WidgetRecord] = []
        self._stopwatches: Dict[str, Stopwatch] = {}
        self._last_id = 0

    def records(self) -> List[WidgetRecord]:
        return list(self._records)

    def __len__(self):
        return len(self._records)

    def get(self, widget_id: str) -> WidgetRecord:
        for record in self._records:
            if record.id == widget_id:
                return record
        raise WidgetNotFoundError(f"No widget with id {widget_id!r}")

    def find(self, widget_id: str) -> Optional[WidgetRecord]:
        try:
            return self.get(widget_id)
        except WidgetNotFoundError:
            return None

    def load(self) -> List[WidgetRecord]:
        """Replace the collection with the persisted one. Absent or malformed data loads as empty."""
        self._drop_stopwatches()
        self._records = []
        try:
            blob = self.storage.get(self.key)
        except StorageError as e:
            logger.warning(f"Could not read widgets, starting empty: {e}")
            return self.records()
        if not blob:
            return self.records()

        try:
            raw_records = json.loads(blob)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Persisted widgets are not valid JSON, starting empty: {e}")
            return self.records()
        if not isinstance(raw_records, list):
            logger.warning("Persisted widgets are not a list, starting empty.")
            return self.records()

        seen = set()
        for raw in raw_records:
            try:
                record = WidgetRecord.from_dict(raw)
            except (InputError, KeyError, TypeError, ValueError, OverflowError, AttributeError) as e:
                logger.warning(f"Skipping malformed widget record {raw!r}: {e}")
                continue
            if record.id in seen:
                logger.warning(f"Skipping duplicate widget id {record.id}.")
                continue
            seen.add(record.id)
            self._records.append(record)
            self._bump_last_id(record.id)

        logger.info(f"Loaded {len(self._records)} widget(s).")
        return self.records()

    def save(self, records: Optional[List[WidgetRecord]] = None) -> None:
        """
        Serialize the whole collection and overwrite the slot.

        Passing ``records`` replaces the collection first; stopwatch drivers
        are rebound to the new records and running ones keep ticking.
        """
        if records is not None:
            self._drop_stopwatches()
            self._records = list(records)
            for record in self._records:
                self._bump_last_id(record.id)
            self.resume_running()
        blob = json.dumps([record.to_dict() for record in self._records], ensure_ascii=False)
        self.storage.set(self.key, blob)

    def create(self, widget_type: Union[str, WidgetType], title: str = "", content: Optional[str] = None) -> WidgetRecord:
        widget_type = WidgetType.parse(widget_type)
        record = WidgetRecord(
            id=self._next_id(),
            title=title.strip() if title and title.strip() else DEFAULT_TITLES[widget_type],
            type=widget_type,
            icon=WIDGET_ICONS[widget_type],
            data=initial_data(widget_type, content),
        )
        self._records.append(record)
        logger.info(f"Created {widget_type.value} widget {record.id} '{record.title}'.")
        self.save()
        return record

    def remove(self, widget_id: str) -> bool:
        """Delete a widget. Unknown ids leave both the collection and the slot untouched."""
        record = self.find(widget_id)
        if record is None:
            logger.warning(f"Remove ignored, no widget with id {widget_id!r}.")
            return False
        if record.type == WidgetType.STOPWATCH and record.data.is_running:
            self.stopwatch(widget_id).stop()
        stopwatch = self._stopwatches.pop(widget_id, None)
        if stopwatch is not None:
            stopwatch.release()
        self._records = [r for r in self._records if r.id != widget_id]
        logger.info(f"Removed widget {widget_id}.")
        self.save()
        return True

    def mutate(self, widget_id: str, operation: str) -> WidgetRecord:
        """Apply a counter operation: increment, decrement (floors at zero) or reset."""
        record = self.get(widget_id)
        if record.type != WidgetType.COUNTER:
            raise InputError(f"Widget {widget_id!r} is a {record.type.value}, not a counter")
        action = COUNTER_OPERATIONS.get(operation)
        if action is None:
            raise InputError(f"Unknown counter operation {operation!r}")
        action(record.data)
        self.save()
        return record

    def update_content(self, widget_id: str, content: str) -> WidgetRecord:
        record = self.get(widget_id)
        if not isinstance(record.data, TextData):
            raise InputError(f"Widget {widget_id!r} is a {record.type.value}, it has no text content")
        record.data.content = content
        self.save()
        return record

    def stopwatch(self, widget_id: str) -> Stopwatch:
        """The driver bound to a stopwatch widget; created on first use."""
        driver = self._stopwatches.get(widget_id)
        if driver is None:
            record = self.get(widget_id)
            driver = Stopwatch(record, self.engine, self.save, period=self.stopwatch_period, clock=self._clock)
            self._stopwatches[widget_id] = driver
        return driver

    def resume_running(self) -> List[str]:
        """Re-arm the jobs of stopwatches persisted as running."""
        resumed = []
        for record in self._records:
            if record.type == WidgetType.STOPWATCH and record.data.is_running:
                self.stopwatch(record.id).resume()
                resumed.append(record.id)
        return resumed

    def _drop_stopwatches(self):
        for driver in self._stopwatches.values():
            driver.release()
        self._stopwatches = {}

    def _bump_last_id(self, widget_id: str):
        if widget_id.isascii() and widget_id.isdigit():
            self._last_id = max(self._last_id, int(widget_id))

    def _next_id(self) -> str:
        candidate = max(self._clock(), self._last_id + 1)
        self._last_id = candidate
        return str(candidate)
