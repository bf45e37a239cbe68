import asyncio
import inspect
from dashtiles.utils.logging_handler import setup_logger

logger = setup_logger(__name__)


class Event:
    """A list of listeners called in order; a failing listener never reaches the emitter."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._listeners = []
        self.loop = loop

    def add_listener(self, listener):
        if not callable(listener):
            raise ValueError("Listener must be callable")
        self._listeners.append(listener)

    def remove_listener(self, listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, *args, **kwargs):
        for listener in list(self._listeners):
            try:
                result = listener(*args, **kwargs)

                # coroutine listeners run as tasks on the owning loop
                if inspect.iscoroutine(result):
                    loop = self.loop or asyncio.get_running_loop()
                    loop.create_task(self._safe_task(result))

            except Exception:
                logger.exception("Error in event listener")

    async def _safe_task(self, coro):
        try:
            await coro
        except Exception:
            logger.exception("Unhandled exception in async event listener")
