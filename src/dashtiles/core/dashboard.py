import asyncio
import datetime
from typing import Any, Callable, Dict, List, Optional

import pytz

from dashtiles.config import Settings
from dashtiles.core.providers import fetch_phase_table, fetch_weather
from dashtiles.core.results import Outcome
from dashtiles.core.widget_store import WidgetStateStore
from dashtiles.core.widgets import WidgetRecord
from dashtiles.ports.phase_table_port import PhaseTableSourcePort
from dashtiles.ports.prompt_port import WidgetPromptPort
from dashtiles.ports.storage_port import KeyValueStorePort
from dashtiles.ports.weather_port import WeatherServicePort
from dashtiles.tools.moon_tools.moon_phase import (
    FALLBACK_PHASE_TABLE,
    MoonPhaseCalculator,
    MoonReading,
    PhaseRange,
)
from dashtiles.tools.time_tools.clock import Clock
from dashtiles.tools.time_tools.engine import TimerEngine
from dashtiles.tools.weather_tools.core import WeatherReading
from dashtiles.utils.logging_handler import setup_logger
from dashtiles.utils.time_conversions import now_ms

logger = setup_logger(__name__)


class DashboardSession:
    """
    Everything one open dashboard screen owns: the timer engine, the widget
    store, the clock and the three built-in tiles.

    ``start()`` must run on the event loop that will drive the ticks.
    ``close()`` cancels the clock, every stopwatch job and any fetch still
    in flight.
    """

    def __init__(
        self,
        settings: Settings,
        storage: KeyValueStorePort,
        weather_provider: WeatherServicePort,
        phase_source: PhaseTableSourcePort,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings
        self.weather_provider = weather_provider
        self.phase_source = phase_source
        self.engine = TimerEngine(loop)
        self.store = WidgetStateStore(
            storage,
            self.engine,
            key=settings.storage_key,
            clock=clock,
            stopwatch_period=settings.stopwatch_period,
        )
        self.clock = Clock(self.engine, settings.timezone, period=settings.clock_period)
        self.calculator = MoonPhaseCalculator(settings.reference_new_moon, settings.cycle_length_days)

        self.phases: List[PhaseRange] = list(FALLBACK_PHASE_TABLE)
        self.phase_outcome: Optional[Outcome[List[PhaseRange]]] = None
        self.moon: Optional[MoonReading] = None
        self.weather: Optional[WeatherReading] = None
        self.weather_outcome: Optional[Outcome[WeatherReading]] = None

        self._tasks = set()
        self._started = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> "DashboardSession":
        if self._started:
            return self
        self._started = True
        self.store.load()
        resumed = self.store.resume_running()
        if resumed:
            logger.info(f"Resumed {len(resumed)} running stopwatch(es).")
        self.clock.start()
        self._spawn(self._load_moon())
        self._spawn(self._load_weather())
        logger.info("Dashboard session started.")
        return self

    async def wait_ready(self):
        """Wait for the fetches launched so far."""
        pending = [task for task in self._tasks if not task.done()]
        while pending:
            await asyncio.gather(*pending, return_exceptions=True)
            pending = [task for task in self._tasks if not task.done()]

    def refresh_moon(self, now: Optional[datetime.datetime] = None) -> MoonReading:
        now = now or datetime.datetime.now(pytz.utc)
        self.moon = self.calculator.calculate(now, self.phases)
        return self.moon

    async def refresh_phases(self) -> Outcome[List[PhaseRange]]:
        outcome = await asyncio.to_thread(fetch_phase_table, self.phase_source)
        self.phase_outcome = outcome
        self.phases = list(outcome.value)
        return outcome

    async def refresh_weather(self) -> Outcome[WeatherReading]:
        outcome = await asyncio.to_thread(fetch_weather, self.weather_provider, self.settings.weather_location)
        self.weather_outcome = outcome
        self.weather = outcome.value
        return outcome

    def add_widget(self, prompt: WidgetPromptPort) -> Optional[WidgetRecord]:
        request = prompt.ask()
        if request is None:
            logger.info("Widget creation cancelled.")
            return None
        return self.store.create(request.type, request.title, request.content)

    def tiles(self) -> List[Dict[str, Any]]:
        weather = self.weather.to_dict() if self.weather else {"temperature": None, "description": None}
        moon = self.moon.to_dict() if self.moon else {"phaseName": None, "emoji": None, "ageDays": None, "description": None}
        return [
            {"id": "weather", "title": f"Weather in {self.settings.weather_location}", "icon": "partly-sunny", "data": weather},
            {"id": "time", "title": "Current time", "icon": "time", "data": self.clock.reading.to_dict()},
            {"id": "moon", "title": "Moon phase", "icon": "moon", "data": moon},
        ]

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.clock.stop()
        cancelled = self.engine.cancel_all()
        for task in list(self._tasks):
            task.cancel()
        logger.info(f"Dashboard session closed ({cancelled} job(s) and {len(self._tasks)} fetch(es) cancelled).")

    async def _load_moon(self):
        await self.refresh_phases()
        self.refresh_moon()

    async def _load_weather(self):
        await self.refresh_weather()

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background fetch {task.get_coro().__qualname__} failed: {error!r}")
