import asyncio
from typing import Callable, Dict, List, Optional

from dashtiles.utils.logging_handler import setup_logger

logger = setup_logger(__name__)


class PeriodicJob:
    """
    A callback re-armed on the event loop every ``period`` seconds until cancelled.

    Fires are not phase-aligned: each one is scheduled ``period`` after the
    previous callback returned.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, key: str, period: float, callback: Callable[[], None]):
        if period <= 0:
            raise ValueError("Period must be positive")
        self.loop = loop
        self.key = key
        self.period = period
        self.callback = callback
        self.fires = 0
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled and self._handle is not None

    def start(self):
        if self._handle is None and not self._cancelled:
            self._handle = self.loop.call_later(self.period, self._fire)

    def cancel(self):
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self):
        if self._cancelled:
            return
        self.fires += 1
        try:
            self.callback()
        except Exception:
            logger.exception(f"Periodic job '{self.key}' raised; keeping it scheduled.")
        # the callback may have cancelled this job
        if not self._cancelled:
            self._handle = self.loop.call_later(self.period, self._fire)


class TimerEngine:
    """Keyed periodic jobs sharing one event loop. One job per key at most."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._jobs: Dict[str, PeriodicJob] = {}

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def start_job(self, key: str, period: float, callback: Callable[[], None]) -> PeriodicJob:
        """Schedule callback under key. An active job with the same key is returned as is."""
        job = self._jobs.get(key)
        if job is not None and job.active:
            logger.warning(f"Job '{key}' is already running.")
            return job
        job = PeriodicJob(self.loop, key, period, callback)
        job.start()
        self._jobs[key] = job
        logger.debug(f"Job '{key}' scheduled every {period}s.")
        return job

    def cancel_job(self, key: str) -> bool:
        job = self._jobs.pop(key, None)
        if job is None:
            return False
        was_active = job.active
        job.cancel()
        logger.debug(f"Job '{key}' cancelled.")
        return was_active

    def is_active(self, key: str) -> bool:
        job = self._jobs.get(key)
        return job is not None and job.active

    def get_job(self, key: str) -> Optional[PeriodicJob]:
        return self._jobs.get(key)

    def active_keys(self) -> List[str]:
        return [key for key, job in self._jobs.items() if job.active]

    def cancel_all(self) -> int:
        keys = list(self._jobs)
        for key in keys:
            self._jobs.pop(key).cancel()
        if keys:
            logger.info(f"Cancelled {len(keys)} periodic job(s).")
        return len(keys)
