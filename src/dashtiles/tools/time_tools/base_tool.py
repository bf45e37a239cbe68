from abc import ABC, abstractmethod

from dashtiles.tools.time_tools.engine import TimerEngine
from dashtiles.utils import Event
from dashtiles.utils.logging_handler import setup_logger

logger = setup_logger(__name__)


class TimeTool(ABC):
    """
    An abstract base class for time-driven tiles and widgets (e.g., Clock, Stopwatch).
    It owns one keyed periodic job on the shared TimerEngine and the hook
    events listeners subscribe to.
    """
    def __init__(self, engine: TimerEngine, key: str, period: float):
        """Initializes the TimeTool with its job key, tick period and event hooks."""
        self.engine = engine
        self.key = key
        self.period = period

        self.on_tick = Event()
        self.on_start = Event()
        self.on_stop = Event()
        self.on_reset = Event()

    @property
    def is_scheduled(self):
        """True while the tool's periodic job is active on the engine."""
        return self.engine.is_active(self.key)

    def _schedule(self):
        """Launch the periodic job. A second call while active is a no-op."""
        self.engine.start_job(self.key, self.period, self._tick)

    def _cancel(self):
        """Cancel the periodic job, if any."""
        return self.engine.cancel_job(self.key)

    @abstractmethod
    def start(self):
        pass

    @abstractmethod
    def stop(self):
        pass

    @abstractmethod
    def get_status(self):
        """
        Abstract method to retrieve the current status of the tool.
        Should return a dictionary containing relevant state data.
        """
        pass

    @abstractmethod
    def _tick(self):
        """Called by the engine once per period while the job is active."""
        pass
